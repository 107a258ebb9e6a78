"""Builders for profile and university records used across tests."""

from schemas import ProfileData, UniversityRecord


def make_profile(**overrides) -> ProfileData:
    fields = {
        "gpa": 3.8,
        "budget_max": 70000,
        "intended_degree": "masters",
        "preferred_countries": ["USA"],
    }
    fields.update(overrides)
    return ProfileData(**fields)


def make_university(**overrides) -> UniversityRecord:
    fields = {
        "name": "Example State University",
        "country": "USA",
        "acceptance_rate": 70,
        "tuition_fee": 30000,
        "living_cost_per_year": 15000,
        "programs": [{"name": "MS Computer Science", "degree": "masters", "requirements": {"min_gpa": 3.0}}],
    }
    fields.update(overrides)
    return UniversityRecord(**fields)
