"""
Постановка задач в очередь (сторона продюсера).

Назначение:
- единое имя очереди медиа
- валидация payload по типу задачи до постановки
- статус pending пишет сама очередь при постановке
- BackendUnavailable ретраится с backoff
"""

from __future__ import annotations

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.domain.enums import TaskType

from .retry import call_with_backoff
from .task_queue import TaskQueue
from .tasks import BatchTaskPayload, MediaTaskPayload, parse_payload

log = get_project_logger()

# =============================================================================
# ИМЕНА ОЧЕРЕДЕЙ
# =============================================================================
Q_MEDIA = "media_processing"


def media_queue_name() -> str:
    return get_settings().queue_name or Q_MEDIA


def enqueue_task(
    queue: TaskQueue, task_type: str, data: dict, queue_name: str | None = None
) -> str:
    """
    Валидировать payload и поставить задачу. Возвращает task_id.
    """
    payload = parse_payload(task_type, data)
    qname = queue_name or media_queue_name()
    s = get_settings()

    task_id = call_with_backoff(
        lambda: queue.enqueue(qname, task_type, payload.model_dump(exclude_none=True)),
        op="enqueue",
        max_attempts=s.worker_status_retries,
        backoff_sec=s.worker_error_backoff_sec,
    )
    log.info(
        "task_enqueued",
        extra={"payload": {"queue": qname, "task_id": task_id, "task_type": task_type}},
    )
    return task_id


def enqueue_analyze_media(queue: TaskQueue, *, file_path: str) -> str:
    """
    Поставить анализ одного файла.
    """
    data = MediaTaskPayload(file_path=file_path).model_dump()
    return enqueue_task(queue, TaskType.analyze_media.value, data)


def enqueue_analyze_batch(
    queue: TaskQueue,
    *,
    file_paths: list[str],
    max_chunk_size: int | None = None,
    max_parallel: int | None = None,
    task_type: str = TaskType.analyze_multiple_images.value,
) -> str:
    """
    Поставить анализ набора файлов как единой последовательности.
    """
    data = BatchTaskPayload(
        file_paths=file_paths, max_chunk_size=max_chunk_size, max_parallel=max_parallel
    ).model_dump(exclude_none=True)
    return enqueue_task(queue, task_type, data)
