"""
HTTP роуты статуса задач.

- GET /v1/tasks/{task_id}

Результат отдаётся только для завершённых задач (completed/failed).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from apps.api_gateway.deps import get_task_queue, http_error
from media_vector_agent.common.errors import AppError
from media_vector_agent.contracts.http_api import TaskStatusResponse
from media_vector_agent.queue.task_queue import TaskQueue

router = APIRouter()


@router.get("/tasks/{task_id}", response_model=TaskStatusResponse)
def get_task(task_id: str, queue: TaskQueue = Depends(get_task_queue)) -> TaskStatusResponse:
    try:
        task_status = queue.get_status(task_id)
        result = queue.get_result(task_id) if task_status.is_terminal else None
    except AppError as e:
        raise http_error(e) from e
    return TaskStatusResponse(task_id=task_id, status=task_status, result=result)
