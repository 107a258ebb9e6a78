"""
Live university directory (Hipo Labs universities API).

The directory only knows names, countries and web domains. Rankings,
acceptance rates, costs and programs are synthesized deterministically from
per-country averages and a hash of the university name, so the same
university always gets the same record.
"""

import logging
import math
from typing import Dict, List, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from cache import ResponseCache
from config import settings
from errors import DataValidationError, ExternalSourceError
from normalization import decode_university_id, generate_university_id, normalize_country
from schemas import UniversityRecord

logger = logging.getLogger(__name__)

COUNTRY_DEFAULTS = {
    "United States": {"default_city": "Various", "base_ranking": 50, "avg_acceptance_rate": 50,
                      "avg_international_ratio": 15, "avg_tuition": 45000, "avg_living_cost": 18000,
                      "avg_app_fee": 80},
    "United Kingdom": {"default_city": "Various", "base_ranking": 40, "avg_acceptance_rate": 40,
                       "avg_international_ratio": 35, "avg_tuition": 28000, "avg_living_cost": 15000,
                       "avg_app_fee": 50},
    "Canada": {"default_city": "Various", "base_ranking": 60, "avg_acceptance_rate": 55,
               "avg_international_ratio": 25, "avg_tuition": 35000, "avg_living_cost": 14000,
               "avg_app_fee": 100},
    "Germany": {"default_city": "Various", "base_ranking": 80, "avg_acceptance_rate": 45,
                "avg_international_ratio": 20, "avg_tuition": 500, "avg_living_cost": 12000,
                "avg_app_fee": 0},
    "Australia": {"default_city": "Various", "base_ranking": 70, "avg_acceptance_rate": 60,
                  "avg_international_ratio": 30, "avg_tuition": 38000, "avg_living_cost": 16000,
                  "avg_app_fee": 100},
    "Singapore": {"default_city": "Singapore", "base_ranking": 30, "avg_acceptance_rate": 25,
                  "avg_international_ratio": 40, "avg_tuition": 40000, "avg_living_cost": 15000,
                  "avg_app_fee": 50},
    "Ireland": {"default_city": "Various", "base_ranking": 100, "avg_acceptance_rate": 55,
                "avg_international_ratio": 25, "avg_tuition": 25000, "avg_living_cost": 14000,
                "avg_app_fee": 60},
    "Netherlands": {"default_city": "Various", "base_ranking": 90, "avg_acceptance_rate": 50,
                    "avg_international_ratio": 30, "avg_tuition": 18000, "avg_living_cost": 13000,
                    "avg_app_fee": 100},
}

PROGRAM_FIELDS = [
    "Computer Science", "Data Science", "Artificial Intelligence", "Engineering", "Business",
    "Finance", "Information Technology", "Cybersecurity", "Healthcare", "Biotechnology",
    "Psychology", "Education", "Law", "Architecture", "Media",
]
PHD_FIELDS = ["Computer Science", "Data Science", "Engineering", "Business", "Psychology", "Biotechnology"]

# The US list is too large to fetch by country, so it is assembled from name searches
US_SEARCH_TERMS = [
    "MIT", "Stanford", "Harvard", "Yale", "Princeton", "Columbia", "Cornell", "Berkeley", "UCLA",
    "Michigan", "Duke", "Northwestern", "Chicago", "NYU", "Carnegie", "Georgia Tech", "Purdue",
    "Texas", "Florida", "Boston",
]
US_MAX_RESULTS = 50
COUNTRY_MAX_RESULTS = 100


def get_country_defaults(country: str) -> Dict:
    return COUNTRY_DEFAULTS.get(normalize_country(country), COUNTRY_DEFAULTS["United States"])


def hash_string(text: str) -> int:
    """32-bit string hash, stable across runs (unlike hash())."""
    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 2 ** 31:
        value -= 2 ** 32
    return abs(value)


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def generate_programs(defaults: Dict, name_hash: int) -> List[Dict]:
    """Synthesize the program list a university offers."""
    offers_mba = name_hash % 3 == 0
    offers_phd = name_hash % 4 == 0

    num_fields = 5 + (name_hash % 4)
    shuffled = sorted(PROGRAM_FIELDS, key=lambda f: (name_hash + len(f)) % 10)
    offered_fields = set(shuffled[:num_fields])

    candidates = []
    for field in PROGRAM_FIELDS:
        if field in offered_fields:
            candidates.append((f"BS in {field}", "bachelors", field, "4 years"))
    for field in PROGRAM_FIELDS:
        if field in offered_fields:
            candidates.append((f"MS in {field}", "masters", field, "2 years"))
    if offers_mba:
        candidates.append(("MBA", "mba", "Business", "2 years"))
        candidates.append(("Executive MBA", "mba", "Business", "1.5 years"))
    if offers_phd:
        for field in PHD_FIELDS:
            if field in offered_fields:
                candidates.append((f"PhD in {field}", "phd", field, "4-5 years"))

    programs = []
    for index, (name, degree, field, duration) in enumerate(candidates):
        step = (name_hash + index) % 10
        if degree == "bachelors":
            multiplier, min_gpa, ielts, toefl = 0.9, 2.5 + step / 20, 6.0, 80
        elif degree == "masters":
            multiplier, min_gpa, ielts, toefl = 1.0, 3.0 + step / 20, 6.5, 90
        elif degree == "mba":
            multiplier, min_gpa, ielts, toefl = 1.5, 3.0 + step / 20, 7.0, 100
        else:
            # PhDs are often funded
            multiplier, min_gpa, ielts, toefl = 0.3, 3.3 + step / 25, 7.0, 100

        programs.append({
            "name": name,
            "degree": degree,
            "field": field,
            "duration": duration,
            "tuition_per_year": int(_round_half_up(defaults["avg_tuition"] * multiplier)),
            "requirements": {
                "min_gpa": _round_half_up(min_gpa, 1),
                "ielts_min": ielts,
                "toefl_min": toefl,
                "gre_required": degree in ("masters", "phd"),
                "gmat_required": degree == "mba",
            },
        })
    return programs


def synthesize_university(
    name: str,
    country: str,
    city: Optional[str] = None,
    website: str = "",
    ranking: Optional[int] = None,
) -> UniversityRecord:
    """Build a full university record from a name and country."""
    defaults = get_country_defaults(country)
    name_hash = hash_string(name)

    return UniversityRecord(
        id=generate_university_id(name, country),
        name=name,
        country=country,
        city=city or defaults["default_city"],
        website=website,
        ranking=ranking if ranking is not None else defaults["base_ranking"] + (name_hash % 200),
        acceptance_rate=max(10, min(90, defaults["avg_acceptance_rate"] + (name_hash % 40) - 20)),
        international_student_ratio=max(5, min(60, defaults["avg_international_ratio"] + (name_hash % 30) - 15)),
        scholarships_available=name_hash % 3 != 0,
        tuition_fee=max(0, defaults["avg_tuition"] + (name_hash % 30000) - 15000),
        living_cost_per_year=max(0, defaults["avg_living_cost"] + (name_hash % 8000) - 4000),
        application_fee=defaults["avg_app_fee"],
        description=f"{name} is a university located in {country}. Visit their website for more information.",
        programs=generate_programs(defaults, name_hash),
    )


def transform_api_record(raw: Dict, country: Optional[str] = None) -> UniversityRecord:
    """Convert one directory API entry into a UniversityRecord."""
    name = raw.get("name")
    country = country or raw.get("country")
    if not name or not country:
        raise DataValidationError(f"Directory record missing name or country: {raw}")

    web_pages = raw.get("web_pages") or []
    domains = raw.get("domains") or []
    if web_pages:
        website = web_pages[0]
    elif domains:
        website = f"https://{domains[0]}"
    else:
        website = ""

    return synthesize_university(name, country, city=raw.get("state-province"), website=website)


class UniversityDirectory:
    """Client for the university directory with retries and an injected response cache."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        cache: Optional[ResponseCache] = None,
        client: Optional[httpx.Client] = None,
        backoff: float = 1.0,
    ):
        self.base_url = base_url or settings.UNIVERSITY_API_URL
        self.retries = retries if retries is not None else settings.UNIVERSITY_API_RETRIES
        self.backoff = backoff
        self.cache = cache if cache is not None else ResponseCache(settings.UNIVERSITY_CACHE_TTL_SECONDS)
        self.client = client or httpx.Client(
            timeout=timeout if timeout is not None else settings.UNIVERSITY_API_TIMEOUT,
            headers={"Accept": "application/json"},
        )

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, params: Dict) -> List[Dict]:
        retrying = Retrying(
            stop=stop_after_attempt(max(self.retries, 1)),
            wait=wait_exponential(multiplier=self.backoff, min=self.backoff, max=10 * self.backoff),
            retry=retry_if_exception_type(httpx.HTTPError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    response = self.client.get(self.base_url, params=params)
                    response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[DIRECTORY] Request failed after {self.retries} attempts: params={params}, error={str(e)}")
            raise ExternalSourceError(f"University directory request failed: {str(e)}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalSourceError("University directory returned invalid JSON") from e
        if not isinstance(data, list):
            raise ExternalSourceError("University directory returned an unexpected payload")
        return data

    def _fetch_us_by_name(self) -> List[UniversityRecord]:
        results: Dict[str, UniversityRecord] = {}
        failures = 0

        for term in US_SEARCH_TERMS:
            try:
                raw = self._request({"name": term, "country": "United States"})
            except ExternalSourceError as e:
                failures += 1
                logger.warning(f"[DIRECTORY] US search for '{term}' failed: {str(e)}")
                continue

            for entry in raw[:5]:
                record = transform_api_record(entry, "United States")
                results.setdefault(record.name, record)
            if len(results) >= US_MAX_RESULTS:
                break

        if failures == len(US_SEARCH_TERMS):
            raise ExternalSourceError("Failed to fetch universities for United States")
        return list(results.values())[:US_MAX_RESULTS]

    def fetch_by_country(self, country: str) -> List[UniversityRecord]:
        """All directory universities for a country (capped). Raises ExternalSourceError on failure."""
        normalized = normalize_country(country)
        cache_key = f"country:{normalized}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if normalized == "United States":
            universities = self._fetch_us_by_name()
        else:
            raw = self._request({"country": normalized})
            universities = [transform_api_record(entry, normalized) for entry in raw[:COUNTRY_MAX_RESULTS]]

        logger.info(f"[DIRECTORY] Fetched {len(universities)} universities for {normalized}")
        self.cache.set(cache_key, universities)
        return universities

    def fetch_for_countries(self, countries: List[str], limit_per_country: int = 30) -> List[UniversityRecord]:
        """
        Universities for several countries. A failing country is skipped; if
        every country fails the error is raised.
        """
        results: List[UniversityRecord] = []
        failed: List[str] = []

        for country in countries:
            try:
                results.extend(self.fetch_by_country(country)[:limit_per_country])
            except ExternalSourceError as e:
                logger.error(f"[DIRECTORY] Skipping {country}: {str(e)}")
                failed.append(country)

        if countries and len(failed) == len(countries):
            raise ExternalSourceError(f"Failed to fetch universities for {', '.join(failed)}")
        return results

    def search(self, query: str, limit: int = 50) -> List[UniversityRecord]:
        """Search by name. Queries shorter than two characters return nothing."""
        if not query or len(query.strip()) < 2:
            return []

        cache_key = f"search:{query.strip().lower()}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        raw = self._request({"name": query.strip()})
        universities = [transform_api_record(entry) for entry in raw[:limit] if entry.get("country")]
        self.cache.set(cache_key, universities)
        return universities

    def get_by_name(self, name: str, country: str) -> Optional[UniversityRecord]:
        raw = self._request({"name": name, "country": normalize_country(country)})
        for entry in raw:
            if (entry.get("name") or "").lower() == name.lower():
                return transform_api_record(entry, country)
        return None

    def get_by_id(self, university_id: str) -> Optional[UniversityRecord]:
        decoded = decode_university_id(university_id)
        if not decoded:
            raise DataValidationError("Invalid university ID")
        name, country = decoded
        return self.get_by_name(name, country)
