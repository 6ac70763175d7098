"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- загрузка медиа и постановка задач анализа
- статус задач, семантический поиск, параметры обработки
- раздача загруженных файлов (/uploads)

Архитектурно:
- upload сохраняет файлы в общий каталог и ставит задачи в Redis
- воркер (apps/worker_media) обрабатывает задачи и пишет статус/результат
- клиент опрашивает /v1/tasks/{task_id} до терминального статуса
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from apps.api_gateway.routers.media import router as media_router
from apps.api_gateway.routers.search import router as search_router
from apps.api_gateway.routers.system import router as system_router
from apps.api_gateway.routers.tasks import router as tasks_router
from media_vector_agent.common.config import get_settings
from media_vector_agent.common.logging import get_project_logger, setup_logging
from media_vector_agent.common.metrics import setup_metrics_endpoint
from media_vector_agent.storage import blob
from media_vector_agent.storage.db import init_db

log = get_project_logger()


def _parse_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return origins or ["*"]


def _create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Media Vector Agent", version=settings.app_version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.cors_allowed_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_metrics_endpoint(app)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @app.on_event("startup")
    def startup_db() -> None:
        if settings.db_auto_init:
            init_db()
            log.info("db_ready")

    uploads = blob.base_dir()
    uploads.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=uploads), name="uploads")

    app.include_router(media_router, prefix="/v1")
    app.include_router(tasks_router, prefix="/v1")
    app.include_router(search_router, prefix="/v1")
    app.include_router(system_router, prefix="/v1")

    return app


setup_logging()

app = _create_app()
