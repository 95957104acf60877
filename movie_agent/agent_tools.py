# tool definitions and their implementations live together so the expert
# only ever sees a registry and a list of schemas. New tools are added here
# without touching the orchestration loop.
import asyncio
from typing import Any, Dict, List, Optional

from structlog import get_logger

from .config import Config
from .tmdb_client import TmdbClient
from .tool_registry import ToolRegistry

logger = get_logger("agent-tools")

IMAGE_FIELDS = ("poster_path", "backdrop_path", "profile_path", "logo_path")

TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "search_movies",
            "description": "search TMDB for movies by title",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The movie title to search for",
                    },
                    "year": {
                        "type": "integer",
                        "description": "Optional release year to narrow the search",
                    },
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "search_people",
            "description": "search TMDB for people by name",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The person's name to search for",
                    }
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_movie_details",
            "description": """Get full details for a movie by its TMDB id,
            including budget, runtime, cast, crew and videos""",
            "parameters": {
                "type": "object",
                "properties": {
                    "movie_id": {
                        "type": "integer",
                        "description": "The TMDB movie id",
                    }
                },
                "required": ["movie_id"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "search_movie_details",
            "description": """Search TMDB for movies by title and return full
            details (cast, crew, videos) for the top matches""",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The movie title to search for",
                    },
                    "max_results": {
                        "type": "integer",
                        "description": "How many of the top matches to expand",
                    },
                    "year": {
                        "type": "integer",
                        "description": "Optional release year to narrow the search",
                    },
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "search_multi",
            "description": "search TMDB for movies, tv shows and people in one query",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Free text to search for",
                    }
                },
                "required": ["query"],
            },
        },
    },
]

NESTED_RECORD_FIELDS = ("known_for", "production_companies")


class AgentTools:
    def __init__(self, config: Config, tmdb_client: TmdbClient):
        self.tools = TOOLS
        self.config = config
        self.tmdb = tmdb_client
        self.image_base_url = config.image_base_url.rstrip("/")

    def get_tools(self) -> List[Dict[str, Any]]:
        return self.tools

    def register(self, registry: ToolRegistry) -> ToolRegistry:
        registry.register("search_movies", self.search_movies)
        registry.register("search_people", self.search_people)
        registry.register("get_movie_details", self.get_movie_details)
        registry.register("search_movie_details", self.search_movie_details)
        registry.register("search_multi", self.search_multi)
        return registry

    def _absolute_image_paths(self, record: Dict[str, Any]) -> Dict[str, Any]:
        for field in IMAGE_FIELDS:
            path = record.get(field)
            if isinstance(path, str) and path.startswith("/"):
                record[field] = f"{self.image_base_url}{path}"

        for field in NESTED_RECORD_FIELDS:
            nested = record.get(field)
            if isinstance(nested, list):
                record[field] = [
                    self._absolute_image_paths(x) if isinstance(x, dict) else x
                    for x in nested
                ]

        credits = record.get("credits")
        if isinstance(credits, dict):
            for group in ("cast", "crew"):
                if isinstance(credits.get(group), list):
                    credits[group] = [
                        self._absolute_image_paths(x) for x in credits[group]
                    ]
        return record

    def _normalize_search(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            **data,
            "results": [
                self._absolute_image_paths(x) for x in data.get("results", [])
            ],
        }

    async def search_movies(self, query: str, year: Optional[int] = None) -> Dict[str, Any]:
        logger.info("SearchMovies", query=query, year=year)
        data = await self.tmdb.search("movie", query, year=year)
        return self._normalize_search(data)

    async def search_people(self, query: str) -> Dict[str, Any]:
        logger.info("SearchPeople", query=query)
        data = await self.tmdb.search("person", query)
        return self._normalize_search(data)

    async def search_multi(self, query: str) -> Dict[str, Any]:
        logger.info("SearchMulti", query=query)
        data = await self.tmdb.search("multi", query)
        return self._normalize_search(data)

    async def get_movie_details(self, movie_id: int) -> Dict[str, Any]:
        logger.info("GetMovieDetails", movie_id=movie_id)
        details = await self.tmdb.movie_details(movie_id)
        return self._absolute_image_paths(details)

    async def search_movie_details(
        self,
        query: str,
        max_results: Optional[int] = None,
        year: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        if max_results is None:
            max_results = self.config.max_detail_results
        data = await self.tmdb.search("movie", query, year=year)
        top_results = data.get("results", [])[:max_results]
        if not top_results:
            logger.info("NoMoviesFound", query=query)
            return []

        details = await asyncio.gather(
            *[self.tmdb.movie_details(movie["id"]) for movie in top_results]
        )
        logger.info(
            "CompletedMovieDetailSearch", query=query, n_results=len(details)
        )
        return [self._absolute_image_paths(x) for x in details]
