import json
from typing import Any, Awaitable, Callable, Dict

from structlog import get_logger

from .models import ToolCall

logger = get_logger("tool-registry")

ToolFunction = Callable[..., Awaitable[Any]]


class ToolError(Exception):
    pass


class UnknownToolError(ToolError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolArgumentsError(ToolError):
    pass


class ToolRegistry:
    """Maps the function names advertised to the LLM onto async callables."""

    def __init__(self):
        self._tools: Dict[str, ToolFunction] = {}

    def register(self, name: str, func: ToolFunction) -> None:
        # last registration for a name wins
        self._tools[name] = func

    def names(self):
        return sorted(self._tools)

    async def invoke(self, tool_call: ToolCall) -> Any:
        func = self._tools.get(tool_call.name)
        if func is None:
            raise UnknownToolError(tool_call.name)

        try:
            arguments = json.loads(tool_call.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(
                f"Invalid arguments for tool {tool_call.name}: {e}"
            ) from e
        if not isinstance(arguments, dict):
            raise ToolArgumentsError(
                f"Arguments for tool {tool_call.name} must be a JSON object"
            )

        try:
            return await func(**arguments)
        except Exception:
            logger.exception("ToolExecutionFailed", tool=tool_call.name)
            raise
