"""
Пул воркеров очереди медиа.

Алгоритм каждого воркера (поток):
- BLPOP из очереди с коротким таймаутом
- ошибка бэкенда -> пауза error_backoff_sec и снова
- пусто -> пауза idle_sleep_sec и снова
- задача -> processing -> обработчик -> completed/failed + результат

Важно:
- воркеры не делят изменяемого состояния, координация только через Redis
- исключение обработчика превращается в failed-результат, поток не падает
- результат и терминальный статус пишутся с повтором, пока Redis не ответит
  или пул не остановят
- stop() ждёт, пока каждый поток закончит текущую итерацию;
  вызов inference в полёте не отменяется, пул дожидается его завершения
"""

from __future__ import annotations

import threading
from typing import Any

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import BackendUnavailable, ValidationError, error_code_of
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.common.metrics import QUEUE_TASKS_TOTAL, track_task_latency
from media_vector_agent.common.utils import safe_dict
from media_vector_agent.domain.enums import TaskStatus
from media_vector_agent.queue.retry import call_with_backoff
from media_vector_agent.queue.task_queue import TaskQueue
from media_vector_agent.queue.tasks import Task

from .registry import TaskRegistry

log = get_project_logger()


class WorkerPool:
    def __init__(
        self,
        queue: TaskQueue,
        registry: TaskRegistry,
        queue_name: str,
        *,
        dequeue_timeout_sec: float | None = None,
        idle_sleep_sec: float | None = None,
        error_backoff_sec: float | None = None,
        status_retries: int | None = None,
    ) -> None:
        s = get_settings()
        self.queue = queue
        self.registry = registry
        self.queue_name = queue_name
        self.dequeue_timeout_sec = float(
            s.worker_dequeue_timeout_sec if dequeue_timeout_sec is None else dequeue_timeout_sec
        )
        self.idle_sleep_sec = float(
            s.worker_idle_sleep_sec if idle_sleep_sec is None else idle_sleep_sec
        )
        self.error_backoff_sec = float(
            s.worker_error_backoff_sec if error_backoff_sec is None else error_backoff_sec
        )
        self.status_retries = int(
            s.worker_status_retries if status_retries is None else status_retries
        )

        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def size(self) -> int:
        return len(self._threads)

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    # -------------------------------------------------------------------------
    # Управление
    # -------------------------------------------------------------------------
    def start(self, num_workers: int) -> None:
        if num_workers < 1:
            raise ValueError("num_workers must be >= 1")
        if self.running:
            raise RuntimeError("worker pool already running")

        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self._loop, args=(worker_id,), name=f"media-worker-{worker_id}", daemon=True
            )
            for worker_id in range(num_workers)
        ]
        for t in self._threads:
            t.start()
        log.info(
            "worker_pool_started",
            extra={"payload": {"queue": self.queue_name, "workers": num_workers}},
        )

    def stop(self, timeout: float | None = None) -> bool:
        """
        Остановить пул и дождаться потоков.
        timeout=None: ждать сколько нужно (до конца текущих обработчиков).
        Возвращает True, если все потоки завершились.
        """
        log.info("worker_pool_stopping", extra={"payload": {"queue": self.queue_name}})
        self._stop.set()
        for t in self._threads:
            t.join(timeout)
        stopped = not self.running
        log.info(
            "worker_pool_stopped",
            extra={"payload": {"queue": self.queue_name, "all_stopped": stopped}},
        )
        return stopped

    # -------------------------------------------------------------------------
    # Цикл воркера
    # -------------------------------------------------------------------------
    def _loop(self, worker_id: int) -> None:
        log.info("worker_started", extra={"payload": {"worker_id": worker_id}})
        try:
            while not self._stop.is_set():
                try:
                    task = self.queue.dequeue(self.queue_name, self.dequeue_timeout_sec)
                except BackendUnavailable as e:
                    log.error(
                        "worker_dequeue_error",
                        extra={"payload": {"worker_id": worker_id, "err": str(e)[:250]}},
                    )
                    self._stop.wait(self.error_backoff_sec)
                    continue
                except ValidationError as e:
                    log.error(
                        "worker_bad_envelope",
                        extra={"payload": {"worker_id": worker_id, "details": e.details}},
                    )
                    continue

                if task is None:
                    self._stop.wait(self.idle_sleep_sec)
                    continue

                try:
                    self.process_task(task, worker_id=worker_id)
                except Exception as e:
                    # ошибки обработчика уже превращены в failed, здесь только сбой самого воркера
                    log.error(
                        "worker_iteration_error",
                        extra={
                            "payload": {
                                "worker_id": worker_id,
                                "task_id": task.task_id,
                                "err": str(e)[:250],
                            }
                        },
                    )
                    self._stop.wait(self.error_backoff_sec)
        finally:
            log.info("worker_stopped", extra={"payload": {"worker_id": worker_id}})

    def _with_retry(self, op: str, fn) -> None:
        call_with_backoff(
            fn, op=op, max_attempts=self.status_retries, backoff_sec=self.error_backoff_sec
        )

    def _persist_outcome(self, task_id: str, result: dict[str, Any], status: TaskStatus) -> bool:
        """
        Записать результат и терминальный статус.
        Повторяет при недоступности бэкенда, пока запись не пройдёт или пул не остановят.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                self.queue.store_result(task_id, result)
                self.queue.set_status(task_id, status)
                return True
            except BackendUnavailable as e:
                if self._stop.is_set():
                    log.error(
                        "task_outcome_lost",
                        extra={
                            "payload": {
                                "task_id": task_id,
                                "attempts": attempt,
                                "err": str(e)[:200],
                            }
                        },
                    )
                    return False
                delay = self.error_backoff_sec * min(attempt, 5)
                log.warning(
                    "task_outcome_retry",
                    extra={
                        "payload": {"task_id": task_id, "attempt": attempt, "backoff_sec": delay}
                    },
                )
                self._stop.wait(delay)

    def process_task(self, task: Task, *, worker_id: int = 0) -> TaskStatus:
        """
        Обработать одну задачу и записать терминальный статус с результатом.
        """
        log.info(
            "task_processing",
            extra={
                "payload": {
                    "worker_id": worker_id,
                    "task_id": task.task_id,
                    "task_type": task.task_type,
                    "data": safe_dict(task.data, max_len=200),
                }
            },
        )
        try:
            self._with_retry(
                "set_status_processing",
                lambda: self.queue.set_status(task.task_id, TaskStatus.processing),
            )
        except BackendUnavailable:
            # задачу всё равно обрабатываем: статус processing информативный
            log.warning(
                "task_processing_status_lost", extra={"payload": {"task_id": task.task_id}}
            )

        status = TaskStatus.completed
        metric_result = "completed"
        result: dict[str, Any]
        try:
            with track_task_latency(task.task_type):
                result = self.registry.dispatch(task)
            if result.get("unknown_task_type"):
                metric_result = "unknown_type"
        except Exception as e:
            status = TaskStatus.failed
            metric_result = "failed"
            result = {"error": str(e) or e.__class__.__name__, "error_code": error_code_of(e)}
            log.error(
                "task_failed",
                exc_info=True,
                extra={
                    "payload": {
                        "worker_id": worker_id,
                        "task_id": task.task_id,
                        "task_type": task.task_type,
                        "err": str(e)[:250],
                    }
                },
            )

        persisted = self._persist_outcome(task.task_id, result, status)

        QUEUE_TASKS_TOTAL.labels(
            queue=self.queue_name, task_type=task.task_type, result=metric_result
        ).inc()
        log.info(
            "task_finished",
            extra={
                "payload": {
                    "task_id": task.task_id,
                    "status": status.value,
                    "persisted": persisted,
                }
            },
        )
        return status
