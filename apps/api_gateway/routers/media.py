"""
HTTP роуты загрузки медиа.

- POST /v1/upload  (multipart: files[], batch_analyze, max_chunk_size, max_parallel)

Ответ 202: задачи поставлены, результат опрашивается через /v1/tasks/{task_id}.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from apps.api_gateway.deps import get_task_queue, http_error
from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import AppError
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.contracts.http_api import UploadResponse
from media_vector_agent.queue.task_queue import TaskQueue
from media_vector_agent.services.upload_service import ingest_uploads

log = get_project_logger()

router = APIRouter()


def read_capped(f: UploadFile, limit: int) -> bytes:
    """
    Прочитать не больше limit + 1 байт: этого хватает, чтобы отклонить
    слишком большой файл, не загружая его в память целиком.
    """
    return f.file.read(limit + 1)


@router.post(
    "/upload", response_model=UploadResponse, status_code=status.HTTP_202_ACCEPTED
)
def upload_media(
    files: list[UploadFile] = File(...),
    batch_analyze: bool = Form(default=False),
    max_chunk_size: int | None = Form(default=None),
    max_parallel: int | None = Form(default=None),
    queue: TaskQueue = Depends(get_task_queue),
) -> UploadResponse:
    limit = get_settings().upload_max_bytes
    items = [(f.filename or "file", read_capped(f, limit)) for f in files]
    try:
        res = ingest_uploads(
            queue,
            items,
            batch_analyze=batch_analyze,
            max_chunk_size=max_chunk_size,
            max_parallel=max_parallel,
        )
    except AppError as e:
        raise http_error(e) from e

    return UploadResponse(
        message="Files uploaded and queued for processing",
        task_ids=res.task_ids,
        files=res.files,
        batch_analyze=res.batch_analyze,
        file_count=len(res.file_paths),
        max_chunk_size=res.max_chunk_size,
        max_parallel=res.max_parallel,
    )
