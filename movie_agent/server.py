import json
import time
from typing import Any, AsyncIterator, Dict

from openai import AsyncOpenAI
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, StreamingResponse
from starlette.routing import Route
from structlog import get_logger

from .agent_card import build_agent_card
from .agent_tools import AgentTools
from .cinema_expert import CinemaExpert
from .config import Config, get_config
from .models import utc_now
from .request_handler import (
    A2AError,
    RequestHandler,
    SingleResponse,
    StreamResponse,
    error_response,
)
from .task_store import InMemoryTaskStore
from .tmdb_client import TmdbClient
from .tool_registry import ToolRegistry

logger = get_logger("server")


def startup_application(config: Config = None) -> RequestHandler:
    config = config or get_config()
    client = AsyncOpenAI(api_key=config.llm_api_key, base_url=config.llm_base_url)
    tools = AgentTools(config, TmdbClient(config.tmdb_api_key))
    registry = tools.register(ToolRegistry())
    expert = CinemaExpert(config, client, registry, tools.get_tools())
    return RequestHandler(expert, InMemoryTaskStore(), build_agent_card(config))


def _sse_frame(payload: Dict[str, Any], event: str = None) -> str:
    frame = f"id: {int(time.time() * 1000)}\n"
    if event:
        frame += f"event: {event}\n"
    return frame + f"data: {json.dumps(payload)}\n\n"


async def _sse(events: AsyncIterator[Dict[str, Any]], request_id) -> AsyncIterator[str]:
    try:
        async for event in events:
            yield _sse_frame(event)
    except Exception as e:
        logger.exception("StreamingFailed", request_id=request_id)
        error = e if isinstance(e, A2AError) else A2AError.internal_error(str(e) or "Streaming error")
        yield _sse_frame(error_response(request_id, error), event="error")


def create_app(handler: RequestHandler) -> Starlette:
    async def jsonrpc_endpoint(request: Request):
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return JSONResponse(
                error_response(None, A2AError.parse_error()), status_code=400
            )

        request_id = body.get("id") if isinstance(body, dict) else None
        try:
            result = await handler.handle(body)
        except Exception:
            logger.exception("UnhandledRequestError", request_id=request_id)
            return JSONResponse(
                error_response(request_id, A2AError.internal_error("General processing error")),
                status_code=500,
            )

        match result:
            case SingleResponse(body=payload):
                return JSONResponse(payload)
            case StreamResponse(events=events):
                return StreamingResponse(
                    _sse(events, request_id),
                    media_type="text/event-stream",
                    headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
                )

    async def agent_card(request: Request):
        return JSONResponse(handler.agent_card)

    async def health_check(request: Request):
        return JSONResponse({"status": "ok", "timestamp": utc_now()})

    middleware = [
        Middleware(
            CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]
        )
    ]

    return Starlette(
        routes=[
            Route("/", jsonrpc_endpoint, methods=["POST"]),
            Route("/.well-known/agent.json", agent_card, methods=["GET"]),
            Route("/health", health_check, methods=["GET"]),
        ],
        middleware=middleware,
    )
