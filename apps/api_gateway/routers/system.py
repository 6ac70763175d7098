"""
Служебные роуты.

- GET /v1/config: параметры обработки, которые видит клиент
"""

from __future__ import annotations

from fastapi import APIRouter

from media_vector_agent.common.config import get_settings
from media_vector_agent.contracts.http_api import ConfigResponse

router = APIRouter()


@router.get("/config", response_model=ConfigResponse)
def get_config() -> ConfigResponse:
    s = get_settings()
    return ConfigResponse(
        version=s.app_version,
        worker_count=s.worker_count,
        queue_name=s.queue_name,
        batch_chunk_size=s.batch_chunk_size,
        batch_max_parallel=s.batch_max_parallel,
        upload_max_files=s.upload_max_files,
        inference_provider=s.inference_provider,
        vision_model=s.vision_model,
        embedding_model=s.embedding_model,
        embedding_dim=s.embedding_dim,
    )
