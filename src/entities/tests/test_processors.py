"""Tests for the per-kind entity processors."""

import asyncio
from datetime import date

import httpx
import pytest

from src.entities.client import MetadataClient
from src.entities.collection import CollectionProcessor, collection_popularity
from src.entities.company import CompanyProcessor, categorize_company
from src.entities.genre import GenreProcessor
from src.entities.keyword import KeywordProcessor, categorize_keyword
from src.entities.model import EntityKind
from src.entities.person import PersonProcessor, career_stage, genre_diversity

TODAY = date(2026, 1, 1)


def routing_transport(routes: dict[str, object], failures: set[str] | None = None):
    """Answer provider paths from a dict; listed failures return HTTP 500."""
    failures = failures or set()

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/3")
        if path in failures:
            return httpx.Response(500, json={})
        if path == "/discover/movie":
            path = f"/company/{request.url.params['with_companies']}/movies"
        if path.startswith("/search/"):
            path = f"{path}?{request.url.params['query']}"
        payload = routes.get(path)
        if payload is None:
            return httpx.Response(404, json={})
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


def gather(processor, routes, terms, limit=10, failures=None):
    async def scenario():
        transport = routing_transport(routes, failures)
        async with MetadataClient("k", transport=transport, min_interval=0) as client:
            return await processor.gather(client, terms, limit)

    return asyncio.run(scenario())


@pytest.fixture
def company_routes():
    return {
        "/search/company?pixar": {
            "results": [
                {"id": 3, "name": "Pixar Animation Studios", "origin_country": "US"},
                {"id": 3, "name": "Pixar Animation Studios", "origin_country": "US"},
            ],
            "total_pages": 1,
        },
        "/company/3": {"description": "", "headquarters": "Emeryville"},
        "/company/3/movies": {
            "total_results": 30,
            "results": [
                {"id": 1, "title": "Toy Story", "release_date": "1995-11-22", "vote_average": 8.0, "genre_ids": [16, 35]},
                {"id": 2, "title": "Elio", "release_date": "2025-06-20", "vote_average": 7.0, "genre_ids": [16, 10751]},
            ],
        },
    }


def test_company_gather_scores_and_dedupes(company_routes):
    processor = CompanyProcessor(delay=0, today=TODAY)
    companies = gather(processor, company_routes, ["pixar"])

    assert list(companies) == ["company_3"]
    pixar = companies["company_3"]
    assert pixar.kind is EntityKind.COMPANY
    # 10 + 30/5 + 25 popular + 2 recent + 10 quality
    assert pixar.popularity == 53
    assert pixar.payload["category"] == "animation"
    assert "animation" in pixar.keywords
    assert "pixar animation" in pixar.keywords
    assert "united states" in pixar.keywords
    assert pixar.genres[0] == "Animation"


def test_company_lookup_failure_is_skipped(company_routes):
    processor = CompanyProcessor(delay=0, today=TODAY)
    companies = gather(processor, company_routes, ["missing", "pixar"])
    assert list(companies) == ["company_3"]


def test_company_detail_failure_still_builds_entity(company_routes):
    processor = CompanyProcessor(delay=0, today=TODAY)
    companies = gather(processor, company_routes, ["pixar"], failures={"/company/3"})
    assert companies["company_3"].description.startswith("Animation studio")


def test_categorize_company_falls_back_to_description():
    assert categorize_company("Acme", "An independent outfit") == "independent"
    assert categorize_company("Acme") == "production"


def test_collection_requires_two_parts():
    routes = {
        "/search/collection?saw": {
            "results": [{"id": 10, "name": "Saw Collection"}, {"id": 11, "name": "Lonely Collection"}],
            "total_pages": 1,
        },
        "/collection/10": {
            "overview": "Jigsaw games.",
            "parts": [
                {"id": 1, "title": "Saw", "release_date": "2004-10-29", "vote_average": 7.4, "genre_ids": [27]},
                {"id": 2, "title": "Saw II", "release_date": "2005-10-28", "vote_average": 6.7, "genre_ids": [27, 80]},
            ],
        },
        "/collection/11": {"parts": [{"id": 3, "title": "Alone", "release_date": "2001-01-01"}]},
    }
    collections = gather(CollectionProcessor(delay=0, today=TODAY), routes, ["saw"])

    assert list(collections) == ["collection_10"]
    saw = collections["collection_10"]
    assert saw.collection_id == 10
    assert saw.genres[0] == "Horror"
    assert saw.release_date == "2004-10-29"
    assert saw.payload["franchise_type"] == "horror"
    assert saw.payload["sequencing"]["type"] == "duology"
    assert saw.payload["release_span"]["span_years"] == 2


def test_collection_popularity_rewards_franchise_names():
    parts = [{"vote_average": 8.0, "popularity": 60}] * 3
    # 20 + 15 parts + 35 major + 10 "collection" + 15 quality + 10 peak popularity
    assert collection_popularity("Star Wars Collection", parts) == 100
    assert collection_popularity("Obscure", []) == 20


def test_genre_lists_merge_across_media():
    routes = {
        "/genre/movie/list": {"genres": [{"id": 28, "name": "Action"}, {"id": 18, "name": "Drama"}]},
        "/genre/tv/list": {"genres": [{"id": 18, "name": "Drama"}, {"id": 10759, "name": "Action & Adventure"}]},
    }
    genres = gather(GenreProcessor(), routes, [])

    assert sorted(genres) == ["genre_10759", "genre_18", "genre_28"]
    assert genres["genre_18"].payload["applies_to"] == ["movie", "tv"]
    assert genres["genre_28"].popularity == 95
    assert genres["genre_10759"].popularity == 50


def test_keyword_gather_limits_per_term():
    routes = {
        "/search/keyword?christmas": {
            "results": [{"id": i, "name": f"christmas {i}"} for i in range(1, 9)],
            "total_pages": 1,
        },
    }
    for i in range(1, 9):
        routes[f"/keyword/{i}/movies"] = {"total_results": 4, "results": []}

    keywords = gather(KeywordProcessor(delay=0, today=TODAY), routes, ["christmas"])

    assert len(keywords) == 5
    assert keywords["keyword_1"].payload["category"] == "seasonal"
    assert "xmas" in keywords["keyword_1"].keywords


def test_categorize_keyword_general_fallback():
    assert categorize_keyword("unicycle") == "general"


def test_person_popularity_floor():
    routes = {
        "/search/person?nolan": {
            "results": [
                {"id": 525, "name": "Christopher Nolan", "popularity": 20, "known_for_department": "Directing"},
                {"id": 9, "name": "Obscure Nolan", "popularity": 1},
            ],
            "total_pages": 1,
        },
        "/person/525": {"biography": "Director.", "place_of_birth": "London, England, UK"},
        "/person/525/movie_credits": {
            "cast": [],
            "crew": [
                {"id": 1, "title": "Memento", "release_date": "2000-09-05", "job": "Director", "genre_ids": [9648, 53]},
                {"id": 2, "title": "Inception", "release_date": "2010-07-15", "job": "Director", "genre_ids": [28, 878]},
            ],
        },
    }
    people = gather(PersonProcessor(delay=0), routes, ["nolan"])

    assert list(people) == ["person_525"]
    nolan = people["person_525"]
    assert nolan.payload["profession"] == "director"
    assert nolan.payload["career_span"] == {"start": 2000, "end": 2010}
    assert nolan.payload["career"]["primary_role"] == "crew"
    assert "london" in nolan.keywords


def test_career_stage_thresholds():
    credits = [{"release_date": "2020-01-01"}] * 3
    assert career_stage(credits) == "emerging"
    assert career_stage([{"release_date": f"{1980 + i}-01-01"} for i in range(70)]) == "legend"


def test_genre_diversity_bounds():
    assert genre_diversity({"Drama": 5}) == 0.0
    assert genre_diversity({"Drama": 2, "Comedy": 2}) == pytest.approx(1.0)
