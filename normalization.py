"""
Normalization helpers for profile and university data.

Profiles arrive from onboarding forms and universities from several sources,
so country names, degree labels, readiness statuses and GPA scales are
brought to one canonical form here before anything is scored.
"""

import base64
import binascii
import logging
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Country normalization mapping
COUNTRY_MAPPING = {
    "USA": "United States",
    "US": "United States",
    "United States": "United States",
    "United States of America": "United States",
    "UK": "United Kingdom",
    "United Kingdom": "United Kingdom",
    "Great Britain": "United Kingdom",
    "England": "United Kingdom",
    "Canada": "Canada",
    "Australia": "Australia",
    "Germany": "Germany",
    "Singapore": "Singapore",
    "Ireland": "Ireland",
    "Netherlands": "Netherlands",
    "France": "France",
    "Switzerland": "Switzerland",
}

DEGREE_MAPPING = {
    "bachelors": "bachelors",
    "bachelor": "bachelors",
    "bachelor's": "bachelors",
    "bs": "bachelors",
    "ba": "bachelors",
    "bsc": "bachelors",
    "undergraduate": "bachelors",
    "masters": "masters",
    "master": "masters",
    "master's": "masters",
    "ms": "masters",
    "msc": "masters",
    "ma": "masters",
    "graduate": "masters",
    "mba": "mba",
    "phd": "phd",
    "ph.d": "phd",
    "ph.d.": "phd",
    "doctorate": "phd",
}

# Values above this are read as percentages, the rest as a 4.0 GPA
PERCENTAGE_GPA_THRESHOLD = 10.0


def normalize_country(country: Optional[str]) -> str:
    """Normalize country input to a canonical country name."""
    if not country:
        return ""

    # Try exact match first
    normalized = COUNTRY_MAPPING.get(country.strip())
    if normalized:
        return normalized

    # Try case-insensitive match
    for key, value in COUNTRY_MAPPING.items():
        if key.lower() == country.strip().lower():
            return value

    # Unknown countries pass through unchanged
    return country.strip()


def normalize_degree(degree: Optional[str]) -> Optional[str]:
    """Map a free-text degree label ("Master's", "MS", "MBA") to bachelors/masters/mba/phd."""
    if not degree or not degree.strip():
        return None
    return DEGREE_MAPPING.get(degree.strip().lower())


def normalize_exam_status(status: Optional[str]) -> str:
    """
    Normalize exam status values to: not-started | in-progress | completed | not-required
    Handles common variations and NULL values.
    """
    if not status or status.strip() == "":
        return "not-started"

    status_lower = status.lower().strip().replace("_", "-")

    if status_lower in ["completed", "done", "finished", "taken"]:
        return "completed"

    if status_lower in ["not-required", "not required", "n/a", "na", "waived", "exempt"]:
        return "not-required"

    if status_lower in ["in-progress", "in progress", "started", "planning", "scheduled", "preparing"]:
        return "in-progress"

    if status_lower in ["not-started", "not started", "pending", "todo", "none"]:
        return "not-started"

    # Default to in-progress if unknown
    logger.warning(f"Unknown exam status value: '{status}', defaulting to in-progress")
    return "in-progress"


def normalize_sop_status(status: Optional[str]) -> str:
    """Normalize SOP status values to: not-started | draft | ready"""
    if not status or status.strip() == "":
        return "not-started"

    status_lower = status.lower().strip().replace("_", "-")

    if status_lower in ["ready", "completed", "done", "finished", "final"]:
        return "ready"

    if status_lower in ["draft", "drafting", "in-progress", "in progress", "started"]:
        return "draft"

    if status_lower in ["not-started", "not started", "pending", "todo", "none"]:
        return "not-started"

    logger.warning(f"Unknown SOP status value: '{status}', defaulting to draft")
    return "draft"


def parse_gpa(raw: Union[str, int, float, None]) -> Optional[float]:
    """Parse a GPA that may be stored as text. Returns None when absent or unreadable."""
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    text = raw.strip().rstrip("%").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        logger.warning(f"Unreadable GPA value: '{raw}'")
        return None


def is_percentage_gpa(gpa: float) -> bool:
    return gpa > PERCENTAGE_GPA_THRESHOLD


def gpa_on_four_scale(gpa: Optional[float]) -> Optional[float]:
    """Convert a GPA to the 4.0 scale (percentages are divided by 25)."""
    if gpa is None:
        return None
    if is_percentage_gpa(gpa):
        return round(gpa * 4.0 / 100.0, 2)
    return gpa


def generate_university_id(name: str, country: str) -> str:
    """
    Stable university id: base64("name::country") with '/', '+' and '=' removed.
    Bit-compatible with ids already held by existing selections.
    """
    encoded = base64.b64encode(f"{name}::{country}".encode("utf-8")).decode("ascii")
    return encoded.replace("/", "").replace("+", "").replace("=", "")


def decode_university_id(university_id: str) -> Optional[Tuple[str, str]]:
    """
    Recover (name, country) from a university id.

    Ids whose encoding contained '/' or '+' cannot be reversed exactly; those
    return None, as does anything that is not an encoded "name::country" pair.
    """
    padded = university_id + "=" * (-len(university_id) % 4)
    try:
        decoded = base64.b64decode(padded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    name, sep, country = decoded.partition("::")
    if not sep or not name or not country:
        return None
    return name, country
