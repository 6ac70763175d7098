"""
Worker media.

Алгоритм:
- BLPOP из очереди медиа (QUEUE_NAME, по умолчанию media_processing)
- N потоков-воркеров (WORKER_COUNT), каждый берёт задачи независимо
- обработчик по task_type: анализ файла / батча -> эмбеддинг -> запись в БД
- статус и результат задачи пишутся в Redis (TTL 24ч)

Остановка: SIGINT/SIGTERM, текущие задачи дорабатываются до конца.
"""

from __future__ import annotations

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.logging import get_project_logger, setup_logging
from media_vector_agent.llm.orchestrator import build_inference_provider
from media_vector_agent.services.media_service import MediaAnalysisService
from media_vector_agent.storage.db import init_db
from media_vector_agent.storage.store import SqlMediaRecordStore
from media_vector_agent.workers.lifecycle import run
from media_vector_agent.workers.registry import build_default_registry

log = get_project_logger()


def main() -> None:
    setup_logging()
    s = get_settings()

    if s.db_auto_init:
        init_db()
        log.info("db_ready")

    service = MediaAnalysisService(build_inference_provider(), SqlMediaRecordStore())
    registry = build_default_registry(service)
    log.info(
        "worker_media_starting",
        extra={
            "payload": {
                "queue": s.queue_name,
                "workers": s.worker_count,
                "provider": s.inference_provider,
                "task_types": registry.task_types,
            }
        },
    )
    run(registry, num_workers=s.worker_count)


if __name__ == "__main__":
    main()
