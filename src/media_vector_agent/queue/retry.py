"""
Retry-утилиты для операций с бэкендом очереди.

Назначение:
- BackendUnavailable не должен превращаться в потерю статуса задачи
- простой backoff (sleep) между попытками, число попыток ограничено

Важно:
- это синхронная реализация (подходит для наших воркеров-потоков)
- ретраится только BackendUnavailable, остальные ошибки пробрасываются сразу
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from media_vector_agent.common.errors import BackendUnavailable
from media_vector_agent.common.logging import get_project_logger

log = get_project_logger()

T = TypeVar("T")


def call_with_backoff(
    fn: Callable[[], T],
    *,
    op: str,
    max_attempts: int = 3,
    backoff_sec: float = 1.0,
    sleep: Callable[[float], object] = time.sleep,
) -> T:
    """
    Вызвать fn, повторяя при BackendUnavailable.
    Задержка растёт линейно: backoff_sec * attempt.
    После исчерпания попыток пробрасывает последнюю ошибку.
    """
    attempts = max(1, int(max_attempts))
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except BackendUnavailable as e:
            if attempt >= attempts:
                log.error(
                    "backend_retry_exhausted",
                    extra={"payload": {"op": op, "attempts": attempt, "err": str(e)[:200]}},
                )
                raise
            delay = backoff_sec * attempt
            log.warning(
                "backend_retry",
                extra={
                    "payload": {
                        "op": op,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "backoff_sec": delay,
                    }
                },
            )
            if delay > 0:
                sleep(delay)
    raise AssertionError("unreachable")
