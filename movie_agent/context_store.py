from typing import Dict, List, Set

from .models import Message


class ConversationContextStore:
    """Per-context message history, kept for the life of the process."""

    def __init__(self):
        self._contexts: Dict[str, List[Message]] = {}

    def get_or_create(self, context_id: str) -> List[Message]:
        return self._contexts.setdefault(context_id, [])

    def append_if_absent(self, context_id: str, message: Message) -> bool:
        history = self.get_or_create(context_id)
        if any(m.message_id == message.message_id for m in history):
            return False
        history.append(message)
        return True


class CancellationSet:
    # task ids are never reused, so entries are never removed
    def __init__(self):
        self._task_ids: Set[str] = set()

    def add(self, task_id: str) -> None:
        self._task_ids.add(task_id)

    def is_cancelled(self, task_id: str) -> bool:
        return task_id in self._task_ids

    __contains__ = is_cancelled
