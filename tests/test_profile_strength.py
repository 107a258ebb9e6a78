"""
Unit tests for profile completion and strength.
"""

import pytest

from errors import NotFoundError
from profile_strength import evaluate_profile, get_status
from schemas import ProfileData


def _full_profile(**overrides) -> ProfileData:
    fields = {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "education_level": "undergraduate",
        "degree": "B.Tech",
        "major": "Computer Science",
        "graduation_year": 2024,
        "gpa": 3.7,
        "intended_degree": "masters",
        "field_of_study": "Computer Science",
        "target_intake_year": 2026,
        "preferred_countries": ["Canada"],
        "budget_min": 20000,
        "budget_max": 50000,
        "funding_plan": "loan",
        "ielts_status": "completed",
        "gre_status": "completed",
        "toefl_status": "not-required",
        "gmat_status": "not-required",
        "sop_status": "ready",
    }
    fields.update(overrides)
    return ProfileData(**fields)


class TestEvaluateProfile:

    def test_complete_strong_profile(self):
        evaluation = evaluate_profile(_full_profile())

        assert evaluation.completion == 100
        assert evaluation.strength == 100
        assert evaluation.next_actions == []
        assert evaluation.breakdown.strength["academics"].status == "strong"

    def test_empty_profile(self):
        evaluation = evaluate_profile(ProfileData())

        assert evaluation.completion == 0
        assert evaluation.strength == 0
        assert len(evaluation.next_actions) == 3
        assert evaluation.next_actions[0] == "Add your degree"
        assert evaluation.breakdown.completion["basic_info"].status == "missing"

    def test_percentage_gpa_uses_percentage_thresholds(self):
        strong = evaluate_profile(_full_profile(gpa=88))
        average = evaluate_profile(_full_profile(gpa=75))
        weak = evaluate_profile(_full_profile(gpa=60))

        assert strong.breakdown.strength["academics"].score == 40
        assert average.breakdown.strength["academics"].score == 25
        assert weak.breakdown.strength["academics"].score == 10

    def test_four_point_gpa_thresholds(self):
        average = evaluate_profile(_full_profile(gpa=3.2))
        weak = evaluate_profile(_full_profile(gpa=2.5))

        assert average.breakdown.strength["academics"].status == "average"
        assert weak.breakdown.strength["academics"].status == "weak"

    def test_exam_progress_levels(self):
        one_done = evaluate_profile(_full_profile(gre_status="not-started", toefl_status="not-started"))
        in_progress = evaluate_profile(_full_profile(
            ielts_status="in progress", gre_status="not-started",
            toefl_status="not-started", gmat_status="not-started",
        ))

        assert one_done.breakdown.strength["exams"].score == 25
        assert in_progress.breakdown.strength["exams"].score == 10

    def test_one_exam_plus_waivers_counts_as_strong(self):
        evaluation = evaluate_profile(_full_profile(gre_status="not-started"))

        assert evaluation.breakdown.strength["exams"].score == 40

    def test_sop_draft_is_half_credit(self):
        evaluation = evaluate_profile(_full_profile(sop_status="Drafting"))

        assert evaluation.breakdown.strength["sop"].score == 10

    def test_missing_sop_adds_next_action(self):
        evaluation = evaluate_profile(_full_profile(sop_status=None))

        assert "Draft your SOP" in evaluation.next_actions

    def test_missing_profile_raises(self):
        with pytest.raises(NotFoundError):
            evaluate_profile(None)


@pytest.mark.parametrize("score,max_score,status", [
    (0, 40, "missing"),
    (40, 40, "strong"),
    (32, 40, "strong"),
    (16, 40, "average"),
    (10, 40, "weak"),
])
def test_get_status(score, max_score, status):
    assert get_status(score, max_score) == status
