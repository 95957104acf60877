import asyncio
import copy
from types import SimpleNamespace

import pytest

from movie_agent.agent_tools import AgentTools
from movie_agent.cinema_expert import CinemaExpert
from movie_agent.config import Config
from movie_agent.events import EventQueue
from movie_agent.models import Message, RequestContext, TextPart
from movie_agent.tool_registry import ToolRegistry


def completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def tool_call(name, arguments="{}", call_id="call_1"):
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


class FakeLLM:
    """Stands in for AsyncOpenAI; replays canned completions in order."""

    def __init__(self, responses, on_create=None):
        self.responses = list(responses)
        self.requests = []
        self.on_create = on_create
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(copy.deepcopy(kwargs))
        if self.on_create:
            self.on_create(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def empty_search():
    return {"page": 1, "results": [], "total_pages": 0, "total_results": 0}


class FakeTmdb:
    def __init__(self, search_results=None, details=None, error=None):
        self.search_results = search_results or {}
        self.details = details or {}
        self.error = error
        self.searches = []
        self.detail_calls = []

    async def search(self, kind, query, **options):
        self.searches.append((kind, query, options))
        if self.error:
            raise self.error
        return copy.deepcopy(self.search_results.get(kind, empty_search()))

    async def movie_details(self, movie_id, append_to_response=None):
        self.detail_calls.append(movie_id)
        if self.error:
            raise self.error
        return copy.deepcopy(self.details[movie_id])


def user_message(text, message_id="msg-1", metadata=None, parts=None):
    return Message(
        role="user",
        parts=parts if parts is not None else [TextPart(text=text)],
        message_id=message_id,
        task_id="task-1",
        context_id="ctx-1",
        metadata=metadata,
    )


def request_context(message, existing_task=None, task_id="task-1", context_id="ctx-1"):
    return RequestContext(
        user_message=message,
        task_id=task_id,
        context_id=context_id,
        existing_task=existing_task,
    )


def run_execution(expert, context):
    async def run():
        queue = EventQueue()
        await expert.execute(context, queue)
        queue.close()
        return [event async for event in queue]

    return asyncio.run(run())


@pytest.fixture
def config():
    return Config(
        llm_api_key="test-key",
        llm_base_url="http://llm.test/v1",
        generative_model_id="test-model",
        tmdb_api_key="tmdb-key",
    )


@pytest.fixture
def make_expert(config):
    def factory(llm, tmdb=None):
        tools = AgentTools(config, tmdb or FakeTmdb())
        registry = tools.register(ToolRegistry())
        return CinemaExpert(config, llm, registry, tools.get_tools())

    return factory


def rpc(method, params, request_id=1):
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


def send_params(text, message_id="msg-1", task_id=None, context_id=None):
    message = {
        "kind": "message",
        "role": "user",
        "messageId": message_id,
        "parts": [{"kind": "text", "text": text}],
    }
    if task_id:
        message["taskId"] = task_id
    if context_id:
        message["contextId"] = context_id
    return {"message": message}
