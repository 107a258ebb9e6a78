"""
Tests for the live university directory client.

HTTP traffic goes through httpx.MockTransport; no network access is needed.
"""

import httpx
import pytest

from cache import ResponseCache
from errors import DataValidationError, ExternalSourceError
from normalization import generate_university_id
from university_source import (
    UniversityDirectory,
    hash_string,
    synthesize_university,
    transform_api_record,
)

BASE_URL = "http://directory.test/search"

CANADA = [
    {
        "name": "University of Toronto",
        "country": "Canada",
        "web_pages": ["https://www.utoronto.ca/"],
        "domains": ["utoronto.ca"],
        "state-province": "Ontario",
    },
    {
        "name": "McGill University",
        "country": "Canada",
        "web_pages": [],
        "domains": ["mcgill.ca"],
    },
]


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def make_directory(responder, retries=2):
    recorder = Recorder(responder)
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    directory = UniversityDirectory(
        base_url=BASE_URL,
        retries=retries,
        cache=ResponseCache(ttl_seconds=60),
        client=client,
        backoff=0,
    )
    return directory, recorder


class TestSynthesis:

    def test_hash_matches_known_values(self):
        assert hash_string("") == 0
        assert hash_string("a") == 97
        assert hash_string("ab") == 3105

    def test_synthesis_is_deterministic(self):
        first = synthesize_university("University of Toronto", "Canada")
        second = synthesize_university("University of Toronto", "Canada")

        assert first.model_dump() == second.model_dump()
        assert first.id == generate_university_id("University of Toronto", "Canada")

    def test_synthesized_record_is_scoreable(self):
        record = synthesize_university("Technische Universität Berlin", "Germany")

        assert record.programs
        assert record.tuition_fee >= 0
        assert 10 <= record.acceptance_rate <= 90

    def test_explicit_ranking_is_kept(self):
        record = synthesize_university("University of Oxford", "UK", ranking=4)

        assert record.ranking == 4

    def test_transform_uses_domain_when_no_web_page(self):
        record = transform_api_record(CANADA[1])

        assert record.website == "https://mcgill.ca"
        assert record.country == "Canada"

    def test_transform_requires_name_and_country(self):
        with pytest.raises(DataValidationError):
            transform_api_record({"name": "Nameless", "web_pages": []})


class TestUniversityDirectory:

    def test_fetch_by_country(self):
        directory, recorder = make_directory(lambda request: httpx.Response(200, json=CANADA))

        universities = directory.fetch_by_country("Canada")

        assert [u.name for u in universities] == ["University of Toronto", "McGill University"]
        assert universities[0].website == "https://www.utoronto.ca/"
        assert universities[0].city == "Ontario"
        assert recorder.requests[0].url.params["country"] == "Canada"

    def test_country_results_are_cached(self):
        directory, recorder = make_directory(lambda request: httpx.Response(200, json=CANADA))

        directory.fetch_by_country("Canada")
        directory.fetch_by_country("Canada")

        assert len(recorder.requests) == 1

    def test_cache_invalidation_refetches(self):
        directory, recorder = make_directory(lambda request: httpx.Response(200, json=CANADA))

        directory.fetch_by_country("Canada")
        directory.cache.invalidate("country:Canada")
        directory.fetch_by_country("Canada")

        assert len(recorder.requests) == 2

    def test_server_errors_are_retried_then_raised(self):
        directory, recorder = make_directory(lambda request: httpx.Response(500), retries=3)

        with pytest.raises(ExternalSourceError):
            directory.fetch_by_country("Canada")

        assert len(recorder.requests) == 3

    def test_zero_retries_makes_a_single_attempt(self):
        directory, recorder = make_directory(lambda request: httpx.Response(500), retries=0)

        with pytest.raises(ExternalSourceError):
            directory.fetch_by_country("Canada")

        assert directory.retries == 0
        assert len(recorder.requests) == 1

    def test_recovers_after_transient_failure(self):
        responses = iter([httpx.Response(503), httpx.Response(200, json=CANADA)])
        directory, recorder = make_directory(lambda request: next(responses))

        universities = directory.fetch_by_country("Canada")

        assert len(universities) == 2
        assert len(recorder.requests) == 2

    def test_invalid_payload_raises(self):
        directory, _ = make_directory(lambda request: httpx.Response(200, json={"error": "nope"}))

        with pytest.raises(ExternalSourceError):
            directory.fetch_by_country("Canada")

    def test_failed_fetch_is_not_cached(self):
        responses = iter([httpx.Response(500), httpx.Response(500), httpx.Response(200, json=CANADA)])
        directory, _ = make_directory(lambda request: next(responses))

        with pytest.raises(ExternalSourceError):
            directory.fetch_by_country("Canada")

        assert len(directory.fetch_by_country("Canada")) == 2

    def test_fetch_for_countries_skips_failing_country(self):
        def responder(request):
            if request.url.params["country"] == "Germany":
                return httpx.Response(500)
            return httpx.Response(200, json=CANADA)

        directory, _ = make_directory(responder)

        universities = directory.fetch_for_countries(["Canada", "Germany"])

        assert {u.country for u in universities} == {"Canada"}

    def test_fetch_for_countries_raises_when_all_fail(self):
        directory, _ = make_directory(lambda request: httpx.Response(500))

        with pytest.raises(ExternalSourceError):
            directory.fetch_for_countries(["Canada", "Germany"])

    def test_united_states_is_assembled_from_name_searches(self):
        def responder(request):
            name = request.url.params["name"]
            return httpx.Response(200, json=[
                {"name": f"{name} University", "country": "United States", "web_pages": []},
                {"name": "Shared College", "country": "United States", "web_pages": []},
            ])

        directory, recorder = make_directory(responder)

        universities = directory.fetch_by_country("USA")

        names = [u.name for u in universities]
        assert names.count("Shared College") == 1
        assert all(u.country == "United States" for u in universities)
        assert all(r.url.params["country"] == "United States" for r in recorder.requests)

    def test_short_search_makes_no_request(self):
        directory, recorder = make_directory(lambda request: httpx.Response(200, json=CANADA))

        assert directory.search("a") == []
        assert recorder.requests == []

    def test_search(self):
        directory, recorder = make_directory(lambda request: httpx.Response(200, json=CANADA))

        results = directory.search("Toronto")

        assert len(results) == 2
        assert recorder.requests[0].url.params["name"] == "Toronto"

    def test_get_by_id(self):
        directory, recorder = make_directory(lambda request: httpx.Response(200, json=CANADA))
        university_id = generate_university_id("McGill University", "Canada")

        record = directory.get_by_id(university_id)

        assert record.name == "McGill University"
        assert recorder.requests[0].url.params["name"] == "McGill University"

    def test_get_by_id_not_found(self):
        directory, _ = make_directory(lambda request: httpx.Response(200, json=[]))

        assert directory.get_by_id(generate_university_id("Unknown College", "Canada")) is None

    def test_get_by_invalid_id(self):
        directory, _ = make_directory(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(DataValidationError):
            directory.get_by_id("!!!")
