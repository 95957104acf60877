import asyncio
from typing import Any, Dict, List, Optional

import tmdbsimple as tmdb
from structlog import get_logger

logger = get_logger("tmdb-client")

SEARCH_KINDS = ("movie", "tv", "person", "multi")
DEFAULT_APPEND_TO_RESPONSE = ["videos", "credits"]


class TmdbClient:
    """Async facade over tmdbsimple.

    tmdbsimple is blocking (requests), so every call runs in a worker thread.
    HTTP errors surface as ``requests.HTTPError`` and are not retried.
    """

    def __init__(self, api_key: str, language: str = "en-US"):
        tmdb.API_KEY = api_key
        self.language = language

    async def search(
        self,
        kind: str,
        query: str,
        include_adult: bool = False,
        language: Optional[str] = None,
        page: int = 1,
        region: Optional[str] = None,
        year: Optional[int] = None,
        primary_release_year: Optional[int] = None,
    ) -> Dict[str, Any]:
        if kind not in SEARCH_KINDS:
            raise ValueError(f"Unsupported TMDB search kind: {kind}")

        params: Dict[str, Any] = {
            "query": query,
            "include_adult": str(include_adult).lower(),
            "language": language or self.language,
            "page": page,
        }
        if region:
            params["region"] = region
        if year:
            params["year"] = year
        if primary_release_year:
            params["primary_release_year"] = primary_release_year

        search = tmdb.Search()
        response = await asyncio.to_thread(getattr(search, kind), **params)
        logger.info(
            "CompletedTmdbSearch",
            kind=kind,
            query=query,
            total_results=response.get("total_results"),
        )
        return response

    async def movie_details(
        self, movie_id: int, append_to_response: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"language": self.language}
        if append_to_response is None:
            append_to_response = DEFAULT_APPEND_TO_RESPONSE
        if append_to_response:
            params["append_to_response"] = ",".join(append_to_response)

        movie = tmdb.Movies(movie_id)
        response = await asyncio.to_thread(movie.info, **params)
        logger.info("CompletedTmdbMovieDetails", movie_id=movie_id)
        return response
