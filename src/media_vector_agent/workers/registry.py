"""
Реестр обработчиков задач (task_type -> handler).

Правила:
- обработчик: (Task) -> dict, ошибки пробрасывает наверх (их ловит пул)
- неизвестный тип задачи не ошибка пула: задача завершается completed
  с поясняющим payload ("не умеем" отличаем от "пытались и упали")
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from media_vector_agent.common.errors import UnknownTaskType
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.domain.enums import TaskType
from media_vector_agent.queue.tasks import Task

if TYPE_CHECKING:
    from media_vector_agent.services.media_service import MediaAnalysisService

log = get_project_logger()

Handler = Callable[[Task], dict[str, Any]]


def unknown_task_result(task_type: str) -> dict[str, Any]:
    return {"error": "unknown task type", "task_type": task_type, "unknown_task_type": True}


class TaskRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, task_type: str | TaskType, handler: Handler) -> None:
        key = task_type.value if isinstance(task_type, TaskType) else task_type
        self._handlers[key] = handler

    def handler_for(self, task_type: str) -> Handler:
        try:
            return self._handlers[task_type]
        except KeyError:
            raise UnknownTaskType(task_type) from None

    @property
    def task_types(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, task: Task) -> dict[str, Any]:
        try:
            handler = self.handler_for(task.task_type)
        except UnknownTaskType:
            log.warning(
                "task_type_unknown",
                extra={"payload": {"task_id": task.task_id, "task_type": task.task_type}},
            )
            return unknown_task_result(task.task_type)
        return handler(task)


def build_default_registry(service: MediaAnalysisService) -> TaskRegistry:
    registry = TaskRegistry()
    registry.register(TaskType.analyze_media, service.handle_analyze_media)
    registry.register(TaskType.analyze_image, service.analyze_media)
    registry.register(TaskType.analyze_multiple_images, service.analyze_batch)
    registry.register(TaskType.analyze_media_batch, service.analyze_batch)
    return registry
