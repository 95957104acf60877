from typing import Dict, Optional

from .models import Event, Task, TaskStatusUpdateEvent


class InMemoryTaskStore:
    def __init__(self):
        self._tasks: Dict[str, Task] = {}

    async def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def save(self, task: Task) -> None:
        self._tasks[task.id] = task

    async def apply(self, event: Event) -> Optional[Task]:
        """Fold a published event into the stored snapshot of its task."""
        if isinstance(event, Task):
            await self.save(event)
            return event

        if isinstance(event, TaskStatusUpdateEvent):
            task = self._tasks.get(event.task_id)
            if task is None:
                task = Task(
                    id=event.task_id,
                    context_id=event.context_id,
                    status=event.status,
                )
            task = task.model_copy(update={"status": event.status})
            message = event.status.message
            if message is not None and all(
                m.message_id != message.message_id for m in task.history
            ):
                task.history = [*task.history, message]
            await self.save(task)
            return task

        return None
