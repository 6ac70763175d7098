"""
Жизненный цикл процесса воркеров.

Алгоритм:
- стартуем пул из N потоков
- SIGINT/SIGTERM (или request_shutdown) выставляют событие остановки
- дожидаемся события, останавливаем пул и ждём текущие задачи
"""

from __future__ import annotations

import signal
import threading
from typing import Any

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.queue.dispatcher import media_queue_name
from media_vector_agent.queue.task_queue import TaskQueue

from .pool import WorkerPool
from .registry import TaskRegistry

log = get_project_logger()

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleController:
    def __init__(self, pool: WorkerPool, num_workers: int) -> None:
        if num_workers < 1:
            raise ValueError("num_workers must be >= 1")
        self.pool = pool
        self.num_workers = num_workers
        self._shutdown = threading.Event()
        self._previous_handlers: dict[int, Any] = {}

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def request_shutdown(self, reason: str = "requested") -> None:
        if not self._shutdown.is_set():
            log.info("shutdown_requested", extra={"payload": {"reason": reason}})
        self._shutdown.set()

    def _on_signal(self, signum, frame) -> None:
        self.request_shutdown(signal.Signals(signum).name)

    def _install_signal_handlers(self) -> None:
        # signal.signal работает только из главного потока
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in _SHUTDOWN_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._on_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def run(self, stop_timeout: float | None = None) -> bool:
        """
        Блокирует до сигнала остановки. Возвращает результат pool.stop().
        """
        self._install_signal_handlers()
        try:
            self.pool.start(self.num_workers)
            log.info(
                "worker_service_started",
                extra={
                    "payload": {"queue": self.pool.queue_name, "workers": self.num_workers}
                },
            )
            self._shutdown.wait()
        finally:
            stopped = self.pool.stop(stop_timeout)
            self._restore_signal_handlers()
        log.info("worker_service_stopped", extra={"payload": {"all_stopped": stopped}})
        return stopped


def build_controller(
    registry: TaskRegistry,
    *,
    num_workers: int | None = None,
    queue: TaskQueue | None = None,
    queue_name: str | None = None,
) -> LifecycleController:
    pool = WorkerPool(queue or TaskQueue(), registry, queue_name or media_queue_name())
    return LifecycleController(pool, num_workers or get_settings().worker_count)


def run(
    registry: TaskRegistry,
    *,
    num_workers: int | None = None,
    queue: TaskQueue | None = None,
    queue_name: str | None = None,
) -> bool:
    controller = build_controller(
        registry, num_workers=num_workers, queue=queue, queue_name=queue_name
    )
    return controller.run()
