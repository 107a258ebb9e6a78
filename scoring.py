"""
University fit scoring and Dream/Target/Safe categorization.

The score is an additive rubric, not a calibrated probability. A higher
score means the profile fits the university comfortably, so high scores are
"safe" and low scores are "dream" (reach) schools.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from errors import DataValidationError, NotFoundError
from models import CategoryEnum
from normalization import gpa_on_four_scale, normalize_country
from schemas import CategorizedRecommendations, FitResult, ProfileData, Program, UniversityRecord

logger = logging.getLogger(__name__)

# Category thresholds
SAFE_MIN_SCORE = 60
TARGET_MIN_SCORE = 35

# Budget
WITHIN_BUDGET_POINTS = 30
SLIGHTLY_OVER_BUDGET_POINTS = 15
BUDGET_TOLERANCE = 1.2

# Academics
DEGREE_MATCH_POINTS = 15
GPA_EXCEEDS_POINTS = 25
GPA_MEETS_POINTS = 15
GPA_EXCEEDS_MARGIN = 0.3
NO_MIN_GPA_POINTS = 10
NO_MATCHING_PROGRAM_POINTS = 10

# Admission odds
HIGH_ACCEPTANCE_POINTS = 20
MODERATE_ACCEPTANCE_POINTS = 10

PREFERRED_COUNTRY_POINTS = 5


def categorize_score(score: int) -> CategoryEnum:
    """Map a fit score to its bucket: >= 60 safe, 35-59 target, < 35 dream."""
    if score >= SAFE_MIN_SCORE:
        return CategoryEnum.SAFE
    if score >= TARGET_MIN_SCORE:
        return CategoryEnum.TARGET
    return CategoryEnum.DREAM


def acceptance_chance(score: int) -> str:
    if score >= 60:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def matching_programs(profile: ProfileData, university: UniversityRecord) -> List[Program]:
    """Programs offered at the profile's intended degree level."""
    if profile.intended_degree is None:
        return []
    return [p for p in university.programs if p.degree == profile.intended_degree]


def estimate_total_cost(profile: ProfileData, university: UniversityRecord) -> int:
    """
    Average yearly tuition plus living cost.

    Tuition is averaged over the programs at the intended degree level, or over
    every program when none match. A program without its own tuition uses the
    university-wide tuition fee.
    """
    programs = matching_programs(profile, university) or university.programs
    if not programs:
        raise DataValidationError(f"University '{university.name}' has no programs")

    fallback = university.tuition_fee or 0
    tuitions = [p.tuition_per_year if p.tuition_per_year is not None else fallback for p in programs]
    avg_tuition = sum(tuitions) / len(tuitions)
    return int(round(avg_tuition + (university.living_cost_per_year or 0)))


def _score_budget(profile: ProfileData, total_cost: int, reasons: List[str], risks: List[str]) -> int:
    if profile.budget_max is None:
        return 0

    if total_cost <= profile.budget_max:
        reasons.append("Within budget")
        return WITHIN_BUDGET_POINTS
    if total_cost <= profile.budget_max * BUDGET_TOLERANCE:
        reasons.append("Slightly above budget")
        return SLIGHTLY_OVER_BUDGET_POINTS

    risks.append("May exceed budget")
    return 0


def _score_academics(
    profile: ProfileData,
    university: UniversityRecord,
    reasons: List[str],
    risks: List[str],
) -> int:
    programs = matching_programs(profile, university)
    if not programs:
        # Not offering the intended degree is not penalized
        return NO_MATCHING_PROGRAM_POINTS

    points = DEGREE_MATCH_POINTS

    # The most accessible matching program decides the GPA check
    min_gpas = [p.requirements.min_gpa for p in programs if p.requirements.min_gpa is not None]
    if not min_gpas:
        return points + NO_MIN_GPA_POINTS

    gpa = gpa_on_four_scale(profile.gpa)
    if gpa is None:
        return points

    min_gpa = min(min_gpas)
    if gpa >= min_gpa + GPA_EXCEEDS_MARGIN:
        reasons.append("GPA exceeds requirements")
        points += GPA_EXCEEDS_POINTS
    elif gpa >= min_gpa:
        reasons.append("GPA meets requirements")
        points += GPA_MEETS_POINTS
    else:
        risks.append(f"Min GPA: {min_gpa}")
    return points


def _score_admission(university: UniversityRecord, reasons: List[str], risks: List[str]) -> int:
    rate = university.acceptance_rate
    if rate is None:
        return 0

    if rate > 60:
        reasons.append("High acceptance rate")
        return HIGH_ACCEPTANCE_POINTS
    if rate > 30:
        reasons.append("Moderate acceptance")
        return MODERATE_ACCEPTANCE_POINTS
    if rate < 15:
        risks.append("Highly competitive")
    return 0


def _score_preference(profile: ProfileData, university: UniversityRecord, reasons: List[str]) -> int:
    preferred = {normalize_country(c).lower() for c in profile.preferred_countries}
    if normalize_country(university.country).lower() in preferred:
        reasons.append("In your preferred country")
        return PREFERRED_COUNTRY_POINTS
    return 0


def score_university(profile: Optional[ProfileData], university: UniversityRecord) -> FitResult:
    """
    Score a university against a student profile.

    Checks run in a fixed order (budget, academics, admission odds, country
    preference) and reasons/risks are reported in that order.

    Raises:
        NotFoundError: profile is missing
        DataValidationError: university has no programs
    """
    if profile is None:
        raise NotFoundError("Profile is required for scoring")

    reasons: List[str] = []
    risks: List[str] = []

    total_cost = estimate_total_cost(profile, university)

    score = 0
    score += _score_budget(profile, total_cost, reasons, risks)
    score += _score_academics(profile, university, reasons, risks)
    score += _score_admission(university, reasons, risks)
    score += _score_preference(profile, university, reasons)

    return FitResult(
        university=university,
        score=score,
        category=categorize_score(score),
        reasons=reasons,
        risks=risks,
        estimated_cost=total_cost,
        acceptance_chance=acceptance_chance(score),
    )


def _ranking_key(result: FitResult) -> Tuple[int, int, int, str]:
    ranking = result.university.ranking
    return (-result.score, ranking is None, ranking or 0, result.university.name)


def compute_recommendations(
    profile: Optional[ProfileData],
    universities: Iterable[UniversityRecord],
    per_category_limit: Optional[int] = None,
) -> CategorizedRecommendations:
    """
    Score a batch of universities and group them into dream/target/safe.

    The whole batch is scored before bucketing. Each bucket is sorted by
    score (descending), then ranking, then name, and optionally capped at
    per_category_limit entries.
    """
    if profile is None:
        raise NotFoundError("Profile is required for recommendations")

    scored = [score_university(profile, uni) for uni in universities]
    scored.sort(key=_ranking_key)

    categorized = {category: [] for category in CategoryEnum}
    for result in scored:
        bucket = categorized[result.category]
        if per_category_limit is None or len(bucket) < per_category_limit:
            bucket.append(result)

    logger.info(
        f"[SCORING] Scored {len(scored)} universities: "
        f"dream={len(categorized[CategoryEnum.DREAM])}, "
        f"target={len(categorized[CategoryEnum.TARGET])}, "
        f"safe={len(categorized[CategoryEnum.SAFE])}"
    )

    return CategorizedRecommendations(
        dream=categorized[CategoryEnum.DREAM],
        target=categorized[CategoryEnum.TARGET],
        safe=categorized[CategoryEnum.SAFE],
    )
