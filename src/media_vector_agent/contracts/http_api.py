"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные структуры для клиентов
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from media_vector_agent.domain.enums import MediaKind, TaskStatus

from .versions import HTTP_API_VERSION


# =============================================================================
# ЗАПРОСЫ
# =============================================================================
class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1)
    media_type: MediaKind | None = None


# =============================================================================
# ОТВЕТЫ
# =============================================================================
class UploadResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    message: str
    task_ids: list[str]
    files: list[str]
    batch_analyze: bool = False
    file_count: int = 0
    max_chunk_size: int | None = None
    max_parallel: int | None = None


class TaskStatusResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    task_id: str
    status: TaskStatus
    result: dict[str, Any] | None = None


class SearchHit(BaseModel):
    id: int
    file_path: str
    media_type: MediaKind
    text: str
    distance: float
    is_batch: bool = False
    batch_id: str | None = None
    batch_paths: list[str] = Field(default_factory=list)
    created_at: str | None = None


class SearchResponse(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    query: str
    results: list[SearchHit]


class ConfigResponse(BaseModel):
    version: str
    worker_count: int
    queue_name: str
    batch_chunk_size: int
    batch_max_parallel: int
    upload_max_files: int
    inference_provider: str
    vision_model: str
    embedding_model: str
    embedding_dim: int
