"""
FastAPI Depends.

Сюда выносим:
- общий клиент очереди и сервисы (в тестах подменяются через dependency_overrides)
- перевод AppError в HTTPException
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, status

from media_vector_agent.common.errors import AppError, ErrCode
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.llm.orchestrator import build_inference_provider
from media_vector_agent.queue.task_queue import TaskQueue
from media_vector_agent.services.search_service import SearchService
from media_vector_agent.storage.store import SqlMediaRecordStore

log = get_project_logger()

_STATUS_BY_CODE = {
    ErrCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrCode.REDIS_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.DB_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.INFERENCE_PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
}


@lru_cache(maxsize=1)
def get_task_queue() -> TaskQueue:
    return TaskQueue()


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return SearchService(build_inference_provider(), SqlMediaRecordStore(), get_task_queue())


def http_error(e: AppError) -> HTTPException:
    code = _STATUS_BY_CODE.get(e.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    log.warning(
        "http_app_error",
        extra={"payload": {"code": e.code, "status": code, "err": e.message[:200]}},
    )
    return HTTPException(
        status_code=code,
        detail={"code": e.code, "message": e.message, "details": e.details or {}},
    )
