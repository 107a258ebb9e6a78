"""
Profile completion and profile strength.

Completion measures how much of the profile is filled in. Strength measures
how ready the filled-in profile is (GPA quality, exams done, SOP state).
The two rubrics are independent.
"""

import logging
from typing import Dict, List, Optional

from errors import NotFoundError
from models import ExamStatus, SopStatus
from normalization import is_percentage_gpa
from schemas import ProfileBreakdown, ProfileData, ProfileEvaluation, SectionStrength

logger = logging.getLogger(__name__)


def get_status(score: int, max_score: int) -> str:
    """Map a section score to strong / average / weak / missing."""
    if score == 0:
        return "missing"
    if score >= max_score * 0.8:
        return "strong"
    if score >= max_score * 0.4:
        return "average"
    return "weak"


def _filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _section(score: int, max_score: int) -> SectionStrength:
    score = min(score, max_score)
    return SectionStrength(status=get_status(score, max_score), score=score, max_score=max_score)


def calculate_completion(profile: ProfileData, next_actions: List[str]) -> Dict[str, SectionStrength]:
    sections = {}

    # Basic info (20 points)
    basic = 0
    if _filled(profile.name): basic += 10
    if _filled(profile.email): basic += 10
    sections["basic_info"] = _section(basic, 20)

    # Academic background (25 points)
    academic = 0
    if _filled(profile.education_level): academic += 5
    if _filled(profile.degree): academic += 5
    else: next_actions.append("Add your degree")
    if _filled(profile.major): academic += 5
    if profile.gpa is not None: academic += 5
    else: next_actions.append("Add your GPA")
    if profile.graduation_year is not None: academic += 5
    sections["academic_background"] = _section(academic, 25)

    # Study goals (25 points)
    goals = 0
    if profile.intended_degree is not None: goals += 7
    if _filled(profile.field_of_study): goals += 6
    else: next_actions.append("Select field of study")
    if profile.target_intake_year is not None: goals += 6
    if profile.preferred_countries: goals += 6
    else: next_actions.append("Select countries")
    sections["study_goals"] = _section(goals, 25)

    # Budget & funding (10 points)
    budget = 0
    if profile.budget_min is not None: budget += 3
    if profile.budget_max is not None: budget += 3
    else: next_actions.append("Set your budget")
    if profile.funding_plan is not None: budget += 4
    else: next_actions.append("Add funding plan")
    sections["budget"] = _section(budget, 10)

    # Exams set (10 points)
    exams_set = sum(1 for s in profile.exam_statuses().values() if s != ExamStatus.NOT_STARTED)
    exams = 10 if exams_set >= 2 else 5 if exams_set >= 1 else 0
    sections["exams"] = _section(exams, 10)

    # SOP (10 points)
    sop = 10 if profile.sop_status != SopStatus.NOT_STARTED else 0
    sections["sop"] = _section(sop, 10)

    return sections


def _academic_strength(gpa: Optional[float]) -> int:
    if gpa is None or gpa <= 0:
        return 0
    if is_percentage_gpa(gpa):
        strong, average = 85, 70
    else:
        strong, average = 3.5, 3.0
    if gpa >= strong:
        return 40
    if gpa >= average:
        return 25
    return 10


def calculate_strength(profile: ProfileData, next_actions: List[str]) -> Dict[str, SectionStrength]:
    sections = {}

    # ACADEMICS (40 points)
    sections["academics"] = _section(_academic_strength(profile.gpa), 40)

    # EXAMS (40 points)
    statuses = list(profile.exam_statuses().values())
    completed = statuses.count(ExamStatus.COMPLETED)
    in_progress = statuses.count(ExamStatus.IN_PROGRESS)
    not_required = statuses.count(ExamStatus.NOT_REQUIRED)

    if completed >= 2 or (completed >= 1 and not_required >= 2):
        exams = 40
    elif completed >= 1:
        exams = 25
    elif in_progress >= 1:
        exams = 10
    else:
        exams = 0
        next_actions.append("Complete IELTS/TOEFL")
    sections["exams"] = _section(exams, 40)

    # SOP (20 points)
    if profile.sop_status == SopStatus.READY:
        sop = 20
    elif profile.sop_status == SopStatus.DRAFT:
        sop = 10
    else:
        sop = 0
        next_actions.append("Draft your SOP")
    sections["sop"] = _section(sop, 20)

    return sections


def evaluate_profile(profile: Optional[ProfileData]) -> ProfileEvaluation:
    """Compute completion (0-100) and strength (0-100) with a per-section breakdown."""
    if profile is None:
        raise NotFoundError("Profile is required for evaluation")

    next_actions: List[str] = []
    completion_sections = calculate_completion(profile, next_actions)
    strength_sections = calculate_strength(profile, next_actions)

    completion = min(sum(s.score for s in completion_sections.values()), 100)
    strength = min(sum(s.score for s in strength_sections.values()), 100)

    logger.info(f"[PROFILE_STRENGTH] user_id={profile.id} completion={completion} strength={strength}")

    return ProfileEvaluation(
        completion=completion,
        strength=strength,
        breakdown=ProfileBreakdown(completion=completion_sections, strength=strength_sections),
        next_actions=next_actions[:3],
    )
