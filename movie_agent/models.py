import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class A2AModel(BaseModel):
    """Wire models are camelCase on the protocol side, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class TextPart(A2AModel):
    kind: Literal["text"] = "text"
    text: str
    metadata: Optional[Dict[str, Any]] = None


class FilePart(A2AModel):
    kind: Literal["file"] = "file"
    file: Dict[str, Any]
    metadata: Optional[Dict[str, Any]] = None


class DataPart(A2AModel):
    kind: Literal["data"] = "data"
    data: Dict[str, Any]
    metadata: Optional[Dict[str, Any]] = None


Part = Annotated[Union[TextPart, FilePart, DataPart], Field(discriminator="kind")]


class Message(A2AModel):
    kind: Literal["message"] = "message"
    role: Literal["user", "agent"]
    parts: List[Part]
    message_id: str = Field(default_factory=new_id)
    task_id: Optional[str] = None
    context_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def text(self) -> str:
        """Joined text of the non-empty text parts; other part kinds are skipped."""
        return "\n".join(
            part.text for part in self.parts if part.kind == "text" and part.text
        )


def agent_message(text: str, task_id: str, context_id: str) -> Message:
    return Message(
        role="agent",
        parts=[TextPart(text=text)],
        task_id=task_id,
        context_id=context_id,
    )


class TaskState(str, Enum):
    submitted = "submitted"
    working = "working"
    input_required = "input-required"
    completed = "completed"
    failed = "failed"
    canceled = "canceled"
    unknown = "unknown"


TERMINAL_STATES = {TaskState.completed, TaskState.failed, TaskState.canceled}


class TaskStatus(A2AModel):
    state: TaskState
    message: Optional[Message] = None
    timestamp: str = Field(default_factory=utc_now)


class Task(A2AModel):
    kind: Literal["task"] = "task"
    id: str
    context_id: str
    status: TaskStatus
    history: List[Message] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


class TaskStatusUpdateEvent(A2AModel):
    kind: Literal["status-update"] = "status-update"
    task_id: str
    context_id: str
    status: TaskStatus
    final: bool = False
    metadata: Optional[Dict[str, Any]] = None


Event = Union[Task, TaskStatusUpdateEvent]


class RequestContext(BaseModel):
    """Everything one turn of the agent needs, resolved by the request handler."""

    user_message: Message
    task_id: str
    context_id: str
    existing_task: Optional[Task] = None


class ToolCall(BaseModel):
    id: str
    name: str
    arguments: str = "{}"
