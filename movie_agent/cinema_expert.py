import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

from openai import AsyncOpenAI
from structlog import get_logger

from .config import Config
from .context_store import CancellationSet, ConversationContextStore
from .events import EventQueue
from .models import (
    Message,
    RequestContext,
    Task,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    ToolCall,
    agent_message,
    utc_now,
)
from .prompt import build_system_prompt
from .tool_registry import ToolRegistry

logger = get_logger("cinema-expert")

WORKING_TEXT = "Processing your question, hang tight!"
NO_INPUT_TEXT = "No message found to process."
FALLBACK_REPLY = "Completed."
TOOL_PLACEHOLDER = "Using tools to get information..."
FINAL_ANSWER_INSTRUCTION = "Please provide your final answer based on this information."

SENTINEL_STATES = {
    "COMPLETED": TaskState.completed,
    "AWAITING_USER_INPUT": TaskState.input_required,
}


def parse_reply(text: str) -> Tuple[str, TaskState]:
    """Split model output into the reply body and the state named on its last line."""
    lines = text.strip().splitlines() or [""]
    sentinel = lines[-1].strip().upper()
    body = "\n".join(lines[:-1]).strip()

    state = SENTINEL_STATES.get(sentinel)
    if state is None:
        # an unrecognized sentinel is treated as an answered question
        logger.warning("UnexpectedFinalStateLine", final_state_line=sentinel)
        state = TaskState.completed
    return body or FALLBACK_REPLY, state


def to_chat_messages(history: List[Message]) -> List[Dict[str, str]]:
    messages = []
    for m in history:
        content = m.text()
        if content:
            messages.append(
                {
                    "role": "assistant" if m.role == "agent" else "user",
                    "content": content,
                }
            )
    return messages


class CinemaExpert:
    def __init__(
        self,
        config: Config,
        llm_client: AsyncOpenAI,
        tool_registry: ToolRegistry,
        tools: List[Dict[str, Any]],
        context_store: Optional[ConversationContextStore] = None,
        cancellations: Optional[CancellationSet] = None,
    ):
        self.llm_client = llm_client
        self.registry = tool_registry
        self.tools = tools
        self.config = config
        self.contexts = context_store or ConversationContextStore()
        self.cancellations = cancellations or CancellationSet()
        logger.info("CinemaExpertInitialized", tools=tool_registry.names())

    async def cancel(self, task_id: str) -> None:
        # the running execute() publishes the canceled event at its checkpoint
        self.cancellations.add(task_id)
        logger.info("TaskCancellationRequested", task_id=task_id)

    def _status_update(
        self,
        context: RequestContext,
        state: TaskState,
        text: Optional[str] = None,
        message: Optional[Message] = None,
        final: bool = False,
    ) -> TaskStatusUpdateEvent:
        if message is None and text is not None:
            message = agent_message(text, context.task_id, context.context_id)
        return TaskStatusUpdateEvent(
            task_id=context.task_id,
            context_id=context.context_id,
            status=TaskStatus(state=state, message=message),
            final=final,
        )

    def _system_prompt(self, context: RequestContext) -> str:
        goal = None
        for metadata in (
            context.existing_task.metadata if context.existing_task else None,
            context.user_message.metadata,
        ):
            if metadata and isinstance(metadata.get("goal"), str) and metadata["goal"]:
                goal = metadata["goal"]
                break
        return build_system_prompt(utc_now(), goal)

    async def _complete(self, messages: List[Dict[str, str]], with_tools: bool):
        kwargs: Dict[str, Any] = {}
        if with_tools:
            kwargs["tools"] = self.tools
            kwargs["tool_choice"] = self.config.tool_choice
        return await self.llm_client.chat.completions.create(
            model=self.config.generative_model_id,
            messages=messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            **kwargs,
        )

    async def _run_tool(self, tool_call: ToolCall) -> str:
        try:
            result = await self.registry.invoke(tool_call)
        except Exception as e:
            logger.error("ToolCallFailed", tool=tool_call.name, error=str(e))
            return f"Tool {tool_call.name} error: {e}"
        return f"Tool {tool_call.name} result: {json.dumps(result, indent=2, default=str)}"

    async def handle_tool_calls(self, tool_calls: List[ToolCall]) -> str:
        results = await asyncio.gather(*[self._run_tool(x) for x in tool_calls])
        return "\n\n".join(results)

    async def execute(self, context: RequestContext, event_queue: EventQueue) -> None:
        task_id, context_id = context.task_id, context.context_id
        user_message = context.user_message
        logger.info(
            "ProcessingMessage",
            message_id=user_message.message_id,
            task_id=task_id,
            context_id=context_id,
        )

        if context.existing_task is None:
            event_queue.publish(
                Task(
                    id=task_id,
                    context_id=context_id,
                    status=TaskStatus(state=TaskState.submitted),
                    history=[user_message],
                    metadata=user_message.metadata,
                )
            )

        event_queue.publish(
            self._status_update(context, TaskState.working, text=WORKING_TEXT)
        )

        try:
            self.contexts.append_if_absent(context_id, user_message)
            history = self.contexts.get_or_create(context_id)

            messages = [{"role": "system", "content": self._system_prompt(context)}]
            messages += to_chat_messages(history)

            if len(messages) <= 1:
                logger.warning("NoTextMessagesFound", task_id=task_id)
                event_queue.publish(
                    self._status_update(
                        context, TaskState.failed, text=NO_INPUT_TEXT, final=True
                    )
                )
                return

            response = await self._complete(messages, with_tools=True)

            if self.cancellations.is_cancelled(task_id):
                logger.info("TaskCanceled", task_id=task_id)
                event_queue.publish(
                    self._status_update(context, TaskState.canceled, final=True)
                )
                return

            choice = response.choices[0]
            reply_text = choice.message.content or ""

            if choice.message.tool_calls:
                tool_calls = [
                    ToolCall(
                        id=x.id, name=x.function.name, arguments=x.function.arguments
                    )
                    for x in choice.message.tool_calls
                ]
                logger.info(
                    "HandlingToolCalls",
                    task_id=task_id,
                    tools=[x.name for x in tool_calls],
                )
                tool_output = await self.handle_tool_calls(tool_calls)

                follow_up = messages + [
                    {
                        "role": "assistant",
                        "content": choice.message.content or TOOL_PLACEHOLDER,
                    },
                    {
                        "role": "user",
                        "content": f"Tool results:\n{tool_output}\n\n{FINAL_ANSWER_INSTRUCTION}",
                    },
                ]
                final_response = await self._complete(follow_up, with_tools=False)
                reply_text = final_response.choices[0].message.content or ""

            logger.info("ModelResponse", task_id=task_id, response=reply_text)
            reply, state = parse_reply(reply_text)

            reply_message = agent_message(reply, task_id, context_id)
            self.contexts.append_if_absent(context_id, reply_message)
            event_queue.publish(
                self._status_update(context, state, message=reply_message, final=True)
            )
            logger.info("TaskFinished", task_id=task_id, state=state.value)

        except Exception as e:
            logger.exception("TaskFailed", task_id=task_id)
            event_queue.publish(
                self._status_update(
                    context, TaskState.failed, text=f"Agent error: {e}", final=True
                )
            )
