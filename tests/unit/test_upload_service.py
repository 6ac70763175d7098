from __future__ import annotations

import json
from pathlib import Path

import pytest

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import BackendUnavailable, ValidationError
from media_vector_agent.services.upload_service import ingest_uploads
from media_vector_agent.storage import blob


@pytest.fixture(autouse=True)
def _uploads(monkeypatch, tmp_path):
    s = get_settings()
    monkeypatch.setattr(s, "uploads_dir", str(tmp_path))
    monkeypatch.setattr(s, "queue_name", "media_processing")
    monkeypatch.setattr(s, "upload_max_files", 5)
    monkeypatch.setattr(s, "batch_chunk_size", 3)
    monkeypatch.setattr(s, "batch_max_parallel", 4)
    return tmp_path


def _queued(fake_redis) -> list[dict]:
    return [json.loads(raw) for raw in fake_redis.lists.get("media_processing", [])]


def test_one_task_per_file(task_queue, fake_redis, tmp_path) -> None:
    res = ingest_uploads(task_queue, [("a.png", b"A"), ("b.png", b"B")])

    assert len(res.task_ids) == 2
    assert res.batch_analyze is False
    queued = _queued(fake_redis)
    assert [q["task_type"] for q in queued] == ["analyze_media", "analyze_media"]
    for q, content in zip(queued, (b"A", b"B"), strict=True):
        path = Path(q["data"]["file_path"])
        assert path.parent == tmp_path.resolve()
        assert path.read_bytes() == content


def test_batch_upload_is_single_task_with_resolved_params(task_queue, fake_redis) -> None:
    files = [(f"{i}.jpg", b"x") for i in range(4)]
    res = ingest_uploads(task_queue, files, batch_analyze=True, max_parallel=2)

    assert len(res.task_ids) == 1
    assert res.max_chunk_size == 3
    assert res.max_parallel == 2
    (queued,) = _queued(fake_redis)
    assert queued["task_type"] == "analyze_multiple_images"
    assert len(queued["data"]["file_paths"]) == 4
    assert queued["data"]["max_chunk_size"] == 3
    assert queued["data"]["max_parallel"] == 2
    assert task_queue.get_status(res.task_ids[0]).value == "pending"


def test_non_positive_overrides_fall_back(task_queue) -> None:
    res = ingest_uploads(task_queue, [("a.jpg", b"x")], batch_analyze=True, max_chunk_size=0)
    assert res.max_chunk_size == 3


def test_limits(task_queue, monkeypatch) -> None:
    with pytest.raises(ValidationError):
        ingest_uploads(task_queue, [])
    with pytest.raises(ValidationError):
        ingest_uploads(task_queue, [(f"{i}.png", b"x") for i in range(6)])

    monkeypatch.setattr(get_settings(), "upload_max_bytes", 3)
    with pytest.raises(ValidationError):
        ingest_uploads(task_queue, [("big.png", b"xxxx")])


def test_blob_rejects_path_traversal() -> None:
    with pytest.raises(ValueError):
        blob.put_bytes("../escape.png", b"x")


def test_files_removed_when_queue_is_down(task_queue, fake_redis, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "worker_error_backoff_sec", 0.0)
    fake_redis.fail_ops["set"] = 100

    with pytest.raises(BackendUnavailable):
        ingest_uploads(task_queue, [("a.jpg", b"x"), ("b.jpg", b"y")], batch_analyze=True)

    assert list(tmp_path.iterdir()) == []
