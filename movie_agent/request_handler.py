import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError
from structlog import get_logger

from .cinema_expert import CinemaExpert
from .events import EventQueue
from .models import (
    TERMINAL_STATES,
    A2AModel,
    Message,
    RequestContext,
    Task,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    new_id,
)
from .task_store import InMemoryTaskStore

logger = get_logger("request-handler")


class A2AError(Exception):
    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_jsonrpc_error(self) -> Dict[str, Any]:
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def parse_error(cls, message: str = "Invalid JSON payload", data: Any = None):
        return cls(-32700, message, data)

    @classmethod
    def invalid_request(cls, message: str = "Request payload validation error", data: Any = None):
        return cls(-32600, message, data)

    @classmethod
    def method_not_found(cls, method: str):
        return cls(-32601, f"Method not found: {method}")

    @classmethod
    def invalid_params(cls, message: str = "Invalid parameters", data: Any = None):
        return cls(-32602, message, data)

    @classmethod
    def internal_error(cls, message: str = "Internal error", data: Any = None):
        return cls(-32603, message, data)

    @classmethod
    def task_not_found(cls, task_id: str):
        return cls(-32001, f"Task not found: {task_id}")

    @classmethod
    def task_not_cancelable(cls, task_id: str, state: str):
        return cls(-32002, f"Task {task_id} is in state {state} and cannot be canceled")


class JSONRPCRequest(BaseModel):
    jsonrpc: Literal["2.0"]
    id: Optional[Union[str, int]] = None
    method: str
    params: Dict[str, Any] = {}


class MessageSendParams(A2AModel):
    message: Message
    metadata: Optional[Dict[str, Any]] = None


class TaskIdParams(A2AModel):
    id: str
    metadata: Optional[Dict[str, Any]] = None


class TaskQueryParams(TaskIdParams):
    history_length: Optional[int] = None


@dataclass
class SingleResponse:
    body: Dict[str, Any]


@dataclass
class StreamResponse:
    events: AsyncIterator[Dict[str, Any]]


TransportResult = Union[SingleResponse, StreamResponse]


def success_response(request_id, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def error_response(request_id, error: A2AError) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_jsonrpc_error()}


class RequestHandler:
    """Turns JSON-RPC requests into agent executions and task store updates."""

    def __init__(
        self,
        agent: CinemaExpert,
        task_store: InMemoryTaskStore,
        agent_card: Dict[str, Any],
    ):
        self.agent = agent
        self.task_store = task_store
        self.agent_card = agent_card
        self._running: Dict[str, asyncio.Task] = {}

    async def handle(self, body: Any) -> TransportResult:
        request_id = body.get("id") if isinstance(body, dict) else None
        try:
            request = JSONRPCRequest.model_validate(body)
        except ValidationError as e:
            return SingleResponse(
                error_response(request_id, A2AError.invalid_request(data=str(e)))
            )

        logger.info("HandlingRequest", method=request.method, request_id=request.id)
        try:
            if request.method == "message/stream":
                params = MessageSendParams.model_validate(request.params)
                context = await self._build_context(params)
                return StreamResponse(self._stream(request.id, context))

            if request.method == "message/send":
                params = MessageSendParams.model_validate(request.params)
                result = await self.on_message_send(params)
            elif request.method == "tasks/get":
                result = await self.on_get_task(
                    TaskQueryParams.model_validate(request.params)
                )
            elif request.method == "tasks/cancel":
                result = await self.on_cancel_task(
                    TaskIdParams.model_validate(request.params)
                )
            else:
                raise A2AError.method_not_found(request.method)
        except ValidationError as e:
            return SingleResponse(
                error_response(request.id, A2AError.invalid_params(data=str(e)))
            )
        except A2AError as e:
            logger.warning("RequestRejected", code=e.code, reason=e.message)
            return SingleResponse(error_response(request.id, e))

        return SingleResponse(success_response(request.id, result.to_wire()))

    async def _build_context(self, params: MessageSendParams) -> RequestContext:
        message = params.message
        existing_task = None
        if message.task_id:
            existing_task = await self.task_store.get(message.task_id)
            if existing_task is None:
                raise A2AError.task_not_found(message.task_id)
            if existing_task.status.state in TERMINAL_STATES:
                raise A2AError.invalid_request(
                    f"Task {existing_task.id} is in a terminal state "
                    f"({existing_task.status.state.value}) and cannot be modified"
                )

        task_id = message.task_id or new_id()
        if message.context_id:
            context_id = message.context_id
        elif existing_task is not None:
            context_id = existing_task.context_id
        else:
            context_id = new_id()

        user_message = message.model_copy(
            update={"task_id": task_id, "context_id": context_id}
        )
        if existing_task is not None:
            existing_task = existing_task.model_copy(
                update={"history": [*existing_task.history, user_message]}
            )
            await self.task_store.save(existing_task)

        return RequestContext(
            user_message=user_message,
            task_id=task_id,
            context_id=context_id,
            existing_task=existing_task,
        )

    def _start(self, context: RequestContext) -> Tuple[EventQueue, asyncio.Task]:
        """Run the agent, folding each event into the task store before the caller sees it.

        The store stays current even when nobody drains the returned queue.
        """
        queue = EventQueue()

        async def run_agent(agent_queue: EventQueue):
            try:
                await self.agent.execute(context, agent_queue)
            finally:
                agent_queue.close()

        async def produce():
            agent_queue = EventQueue()
            try:
                runner = asyncio.create_task(run_agent(agent_queue))
                async for event in agent_queue:
                    await self.task_store.apply(event)
                    queue.publish(event)
                await runner
            finally:
                queue.close()
                self._running.pop(context.task_id, None)

        producer = asyncio.create_task(produce())
        self._running[context.task_id] = producer
        return queue, producer

    async def on_message_send(self, params: MessageSendParams) -> Task:
        context = await self._build_context(params)
        queue, producer = self._start(context)
        async for _ in queue:
            pass
        await producer
        return await self.task_store.get(context.task_id)

    async def _stream(
        self, request_id, context: RequestContext
    ) -> AsyncIterator[Dict[str, Any]]:
        queue, producer = self._start(context)
        async for event in queue:
            yield success_response(request_id, event.to_wire())
        await producer

    async def on_get_task(self, params: TaskQueryParams) -> Task:
        task = await self.task_store.get(params.id)
        if task is None:
            raise A2AError.task_not_found(params.id)
        if params.history_length is not None:
            history = task.history[-params.history_length:] if params.history_length > 0 else []
            task = task.model_copy(update={"history": history})
        return task

    async def on_cancel_task(self, params: TaskIdParams) -> Task:
        task = await self.task_store.get(params.id)
        if task is None:
            raise A2AError.task_not_found(params.id)
        if task.status.state in TERMINAL_STATES:
            raise A2AError.task_not_cancelable(task.id, task.status.state.value)

        if task.id in self._running:
            # the running execution publishes the canceled event at its checkpoint
            await self.agent.cancel(task.id)
            return task

        logger.info("IdleTaskCanceled", task_id=task.id)
        return await self.task_store.apply(
            TaskStatusUpdateEvent(
                task_id=task.id,
                context_id=task.context_id,
                status=TaskStatus(state=TaskState.canceled),
                final=True,
            )
        )
