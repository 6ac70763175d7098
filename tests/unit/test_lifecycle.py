from __future__ import annotations

import threading
import time

import pytest

from media_vector_agent.domain.enums import TaskStatus
from media_vector_agent.workers.lifecycle import LifecycleController, build_controller
from media_vector_agent.workers.pool import WorkerPool
from media_vector_agent.workers.registry import TaskRegistry


def _controller(task_queue, registry, workers=2) -> LifecycleController:
    pool = WorkerPool(
        task_queue,
        registry,
        "q",
        dequeue_timeout_sec=0.05,
        idle_sleep_sec=0.01,
        error_backoff_sec=0.01,
        status_retries=3,
    )
    return LifecycleController(pool, workers)


def test_run_blocks_until_shutdown_and_drains_in_flight(task_queue) -> None:
    started = threading.Event()
    registry = TaskRegistry()

    def slow(task):
        started.set()
        time.sleep(0.2)
        return {"ok": True}

    registry.register("slow", slow)
    task_id = task_queue.enqueue("q", "slow", {})
    ctl = _controller(task_queue, registry)

    outcome: dict[str, bool] = {}
    runner = threading.Thread(target=lambda: outcome.update(stopped=ctl.run()))
    runner.start()

    assert started.wait(5)
    assert ctl.pool.running
    ctl.request_shutdown()
    runner.join(5)

    assert not runner.is_alive()
    assert outcome["stopped"] is True
    assert ctl.shutdown_requested
    assert not ctl.pool.running
    assert task_queue.get_status(task_id) == TaskStatus.completed


def test_shutdown_before_run_returns_immediately(task_queue) -> None:
    ctl = _controller(task_queue, TaskRegistry())
    ctl.request_shutdown()
    assert ctl.run() is True
    assert ctl.pool.size == 2


def test_build_controller_uses_settings(task_queue, monkeypatch) -> None:
    from media_vector_agent.common.config import get_settings

    monkeypatch.setattr(get_settings(), "worker_count", 3)
    monkeypatch.setattr(get_settings(), "queue_name", "custom")
    ctl = build_controller(TaskRegistry(), queue=task_queue)
    assert ctl.num_workers == 3
    assert ctl.pool.queue_name == "custom"


def test_rejects_zero_workers(task_queue) -> None:
    with pytest.raises(ValueError):
        _controller(task_queue, TaskRegistry(), workers=0)
