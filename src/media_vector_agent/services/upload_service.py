"""
Приём загруженных файлов и постановка задач анализа.

Используется в:
- HTTP upload endpoint
- скриптах локальной загрузки

Правила:
- без batch_analyze: одна задача analyze_media на файл
- с batch_analyze: одна задача analyze_multiple_images на весь набор,
  параметры батча фиксируются в задаче (явные или из настроек)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import BackendUnavailable, ValidationError
from media_vector_agent.common.ids import new_upload_name
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.queue.dispatcher import enqueue_analyze_batch, enqueue_analyze_media
from media_vector_agent.queue.task_queue import TaskQueue
from media_vector_agent.storage.blob import delete, put_bytes

log = get_project_logger()


@dataclass
class UploadResult:
    task_ids: list[str]
    file_paths: list[str]
    batch_analyze: bool
    max_chunk_size: int | None = None
    max_parallel: int | None = None
    files: list[str] = field(default_factory=list)


def _positive_or_default(value: int | None, default: int) -> int:
    return value if value is not None and value > 0 else default


def _discard(file_paths: list[str]) -> None:
    # только файлы, на которые не ссылается ни одна задача
    for p in file_paths:
        delete(p)
    if file_paths:
        log.warning("upload_files_discarded", extra={"payload": {"files": len(file_paths)}})


def ingest_uploads(
    queue: TaskQueue,
    files: list[tuple[str, bytes]],
    *,
    batch_analyze: bool = False,
    max_chunk_size: int | None = None,
    max_parallel: int | None = None,
) -> UploadResult:
    """
    files: список (исходное имя, содержимое).
    """
    s = get_settings()
    if not files:
        raise ValidationError("Не передано ни одного файла")
    if len(files) > s.upload_max_files:
        raise ValidationError(
            f"Можно загрузить не больше {s.upload_max_files} файлов",
            {"files": len(files), "max": s.upload_max_files},
        )
    for name, data in files:
        if len(data) > s.upload_max_bytes:
            raise ValidationError(
                "Файл слишком большой",
                {"file": name, "bytes": len(data), "max": s.upload_max_bytes},
            )

    file_paths = [put_bytes(new_upload_name(name), data) for name, data in files]
    names = [name for name, _ in files]

    if not batch_analyze:
        task_ids: list[str] = []
        try:
            for p in file_paths:
                task_ids.append(enqueue_analyze_media(queue, file_path=p))
        except BackendUnavailable:
            _discard(file_paths[len(task_ids) :])
            raise
        log.info("upload_queued", extra={"payload": {"files": len(file_paths), "batch": False}})
        return UploadResult(
            task_ids=task_ids, file_paths=file_paths, batch_analyze=False, files=names
        )

    chunk_size = _positive_or_default(max_chunk_size, s.batch_chunk_size)
    parallel = _positive_or_default(max_parallel, s.batch_max_parallel)
    try:
        task_id = enqueue_analyze_batch(
            queue, file_paths=file_paths, max_chunk_size=chunk_size, max_parallel=parallel
        )
    except BackendUnavailable:
        _discard(file_paths)
        raise
    log.info(
        "upload_queued",
        extra={
            "payload": {
                "files": len(file_paths),
                "batch": True,
                "max_chunk_size": chunk_size,
                "max_parallel": parallel,
            }
        },
    )
    return UploadResult(
        task_ids=[task_id],
        file_paths=file_paths,
        batch_analyze=True,
        max_chunk_size=chunk_size,
        max_parallel=parallel,
        files=names,
    )
