import asyncio

import pytest

from movie_agent import tmdb_client
from movie_agent.tmdb_client import TmdbClient


class FakeSearch:
    calls = []

    def movie(self, **kwargs):
        FakeSearch.calls.append(("movie", kwargs))
        return {"page": 1, "results": [{"id": 1}], "total_pages": 1, "total_results": 1}

    def person(self, **kwargs):
        FakeSearch.calls.append(("person", kwargs))
        return {"page": 1, "results": [], "total_pages": 0, "total_results": 0}


class FakeMovies:
    calls = []

    def __init__(self, movie_id):
        self.movie_id = movie_id

    def info(self, **kwargs):
        FakeMovies.calls.append((self.movie_id, kwargs))
        return {"id": self.movie_id}


@pytest.fixture
def client(monkeypatch):
    FakeSearch.calls = []
    FakeMovies.calls = []
    monkeypatch.setattr(tmdb_client.tmdb, "Search", FakeSearch)
    monkeypatch.setattr(tmdb_client.tmdb, "Movies", FakeMovies)
    return TmdbClient("tmdb-key")


def test_api_key_is_set(client):
    assert tmdb_client.tmdb.API_KEY == "tmdb-key"


def test_search_default_query_shape(client):
    result = asyncio.run(client.search("movie", "The Dark Knight"))

    assert result["total_results"] == 1
    assert FakeSearch.calls == [
        (
            "movie",
            {"query": "The Dark Knight", "include_adult": "false", "language": "en-US", "page": 1},
        )
    ]


def test_search_optional_filters(client):
    asyncio.run(
        client.search("movie", "Heat", year=1995, primary_release_year=1995, region="US")
    )

    _, params = FakeSearch.calls[0]
    assert params["year"] == 1995
    assert params["primary_release_year"] == 1995
    assert params["region"] == "US"


def test_search_rejects_unknown_kind(client):
    with pytest.raises(ValueError, match="collection"):
        asyncio.run(client.search("collection", "Alien"))


def test_movie_details_appends_videos_and_credits(client):
    result = asyncio.run(client.movie_details(155))

    assert result == {"id": 155}
    assert FakeMovies.calls == [
        (155, {"language": "en-US", "append_to_response": "videos,credits"})
    ]


def test_movie_details_without_appended_fields(client):
    asyncio.run(client.movie_details(155, append_to_response=[]))

    assert FakeMovies.calls == [(155, {"language": "en-US"})]
