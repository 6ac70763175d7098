from __future__ import annotations

import json

import pytest

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import ValidationError
from media_vector_agent.queue.dispatcher import (
    enqueue_analyze_batch,
    enqueue_analyze_media,
    enqueue_task,
)


@pytest.fixture(autouse=True)
def _fast_retry(monkeypatch):
    s = get_settings()
    monkeypatch.setattr(s, "queue_name", "media_processing")
    monkeypatch.setattr(s, "worker_error_backoff_sec", 0.0)


def test_enqueue_analyze_media(task_queue, fake_redis) -> None:
    task_id = enqueue_analyze_media(task_queue, file_path="/u/cat.png")

    raw = json.loads(fake_redis.lists["media_processing"][0])
    assert raw["task_id"] == task_id
    assert raw["task_type"] == "analyze_media"
    assert raw["data"] == {"file_path": "/u/cat.png"}


def test_enqueue_batch_omits_unset_overrides(task_queue, fake_redis) -> None:
    enqueue_analyze_batch(task_queue, file_paths=["/a", "/b", "/c"], max_parallel=2)

    raw = json.loads(fake_redis.lists["media_processing"][0])
    assert raw["task_type"] == "analyze_multiple_images"
    assert raw["data"] == {"file_paths": ["/a", "/b", "/c"], "max_parallel": 2}


def test_invalid_payload_never_reaches_queue(task_queue, fake_redis) -> None:
    with pytest.raises(ValidationError):
        enqueue_task(task_queue, "analyze_media_batch", {"file_paths": []})
    assert fake_redis.lists.get("media_processing") is None


def test_enqueue_retries_backend_errors(task_queue, fake_redis) -> None:
    fake_redis.fail_ops["rpush"] = 1
    task_id = enqueue_analyze_media(task_queue, file_path="/u/a.png")
    assert task_queue.get_status(task_id).value == "pending"
    assert len(fake_redis.lists["media_processing"]) == 1
    # неудавшаяся попытка не оставляет pending-ключ без задачи
    status_keys = [k for k in fake_redis.kv if k.endswith(":status")]
    assert status_keys == [f"task:{task_id}:status"]
