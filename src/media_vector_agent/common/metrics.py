"""
Метрики Prometheus для сервиса.

Назначение:
- Экспорт /metrics
- Счётчики задач очереди, задержки обработки, чанки батчей
- Используется API Gateway и воркером
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

REQUESTS_TOTAL = Counter(
    "media_requests_total",
    "Общее количество HTTP запросов",
    ["service", "route", "method", "status"],
)

HTTP_REQUEST_LATENCY_MS = Histogram(
    "media_http_request_latency_ms",
    "Задержка HTTP запроса (мс)",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

# Обработка задач очереди
QUEUE_TASKS_TOTAL = Counter(
    "media_queue_tasks_total",
    "Количество обработанных задач очереди",
    ["queue", "task_type", "result"],  # result=completed|failed|unknown_type
)

TASK_LATENCY_MS = Histogram(
    "media_task_latency_ms",
    "Время выполнения обработчика задачи (мс)",
    ["task_type"],
    buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000, 180000),
)

BATCH_CHUNKS_TOTAL = Counter(
    "media_batch_chunks_total",
    "Количество обработанных чанков батча",
    ["result"],  # ok|failed|skipped
)

QUEUE_DEPTH = Gauge(
    "media_queue_depth",
    "Текущая длина очереди задач",
    ["queue"],
)

METRICS_COLLECTION_ERRORS_TOTAL = Counter(
    "media_metrics_collection_errors_total",
    "Ошибки сборки служебных метрик",
    ["source"],
)


@contextmanager
def track_task_latency(task_type: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        TASK_LATENCY_MS.labels(task_type=task_type).observe(elapsed_ms)


def refresh_queue_metrics() -> None:
    from media_vector_agent.common.config import get_settings
    from media_vector_agent.common.errors import BackendUnavailable
    from media_vector_agent.queue.task_queue import TaskQueue

    queue_name = get_settings().queue_name
    try:
        QUEUE_DEPTH.labels(queue=queue_name).set(TaskQueue().depth(queue_name))
    except BackendUnavailable:
        METRICS_COLLECTION_ERRORS_TOTAL.labels(source="queue_metrics").inc()


# =============================================================================
# ENDPOINT /metrics
# =============================================================================
def setup_metrics_endpoint(app: FastAPI, service: str = "api-gateway") -> None:
    """
    Регистрирует endpoint /metrics для Prometheus.
    """

    @app.middleware("http")
    async def http_metrics(request: Request, call_next):
        route = request.url.path
        method = request.method
        started = time.perf_counter()

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        REQUESTS_TOTAL.labels(
            service=service,
            route=route,
            method=method,
            status=str(response.status_code),
        ).inc()
        HTTP_REQUEST_LATENCY_MS.labels(service=service, route=route, method=method).observe(
            elapsed_ms
        )
        return response

    @app.get("/metrics")
    def metrics() -> Response:
        refresh_queue_metrics()
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
