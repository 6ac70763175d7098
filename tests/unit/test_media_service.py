from __future__ import annotations

import pytest

from media_vector_agent.common.errors import BatchChunkError, HandlerError, ProviderError
from media_vector_agent.domain.enums import TaskStatus
from media_vector_agent.queue.tasks import Task
from media_vector_agent.services.media_service import MediaAnalysisService
from media_vector_agent.workers.pool import WorkerPool
from media_vector_agent.workers.registry import build_default_registry


def _service(provider, store, k: int = 3, p: int = 4) -> MediaAnalysisService:
    return MediaAnalysisService(
        provider,
        store,
        load_bytes=lambda path: path.rsplit("/", 1)[-1].encode(),
        batch_chunk_size=k,
        batch_max_parallel=p,
    )


def test_single_image_analyzed_embedded_and_stored(provider, record_store) -> None:
    svc = _service(provider, record_store)
    task = Task(task_id="t1", task_type="analyze_image", data={"file_path": "/u/cat.png"})
    res = svc.analyze_media(task)

    assert res == {
        "id": 1,
        "file_path": "/u/cat.png",
        "media_type": "image",
        "text": "image:cat.png",
    }
    assert provider.ops("embed") == ["image:cat.png"]
    rec = record_store.records[0]
    assert rec["is_batch"] is False
    assert rec["batch_id"] is None


def test_video_detected_by_extension(provider, record_store) -> None:
    svc = _service(provider, record_store)
    res = svc.handle_analyze_media(
        Task(task_id="t1", task_type="analyze_media", data={"file_path": "/u/clip.MP4"})
    )
    assert res["media_type"] == "video"
    assert record_store.records[0]["media_type"] == "video"


def test_analyze_media_with_file_paths_runs_batch(provider, record_store) -> None:
    svc = _service(provider, record_store)
    res = svc.handle_analyze_media(
        Task(
            task_id="b1",
            task_type="analyze_media",
            data={"file_paths": ["/u/a.png", "/u/b.png"]},
        )
    )
    assert res["is_batch"] is True
    assert res["batch_paths"] == ["/u/a.png", "/u/b.png"]


def test_batch_record_shape(provider, record_store) -> None:
    svc = _service(provider, record_store, k=2, p=2)
    paths = ["/u/a.png", "/u/b.png", "/u/c.png"]
    res = svc.analyze_batch(
        Task(task_id="batch-1", task_type="analyze_multiple_images", data={"file_paths": paths})
    )

    assert res["file_path"] == "/u/a.png"
    assert res["file_count"] == 3
    assert res["is_batch"] is True
    assert res["batch_id"] == "batch-1"
    assert res["batch_paths"] == paths
    assert res["chunk_count"] == 2
    assert res["synthesized"] is True
    assert res["text"] == "synthesis"
    assert res["processing_time_ms"] >= 0

    rec = record_store.records[0]
    assert rec["file_path"] == "/u/a.png"
    assert rec["batch_id"] == "batch-1"
    assert rec["is_batch"] is True


def test_payload_overrides_batch_defaults(provider, record_store) -> None:
    svc = _service(provider, record_store, k=10, p=4)
    res = svc.analyze_batch(
        Task(
            task_id="b",
            task_type="analyze_media_batch",
            data={"file_paths": ["/a", "/b", "/c", "/d"], "max_chunk_size": 2},
        )
    )
    assert res["chunk_count"] == 2


def test_invalid_payload_is_handler_error(provider, record_store) -> None:
    svc = _service(provider, record_store)
    with pytest.raises(HandlerError):
        svc.analyze_batch(Task(task_id="b", task_type="analyze_multiple_images", data={}))


def test_provider_failure_propagates_without_record(provider, record_store) -> None:
    provider.fail_on_media = True
    svc = _service(provider, record_store)
    with pytest.raises(ProviderError):
        svc.analyze_media(
            Task(task_id="t", task_type="analyze_image", data={"file_path": "/a.png"})
        )
    assert record_store.records == []


def test_chunk_failure_leaves_no_partial_record(provider, record_store) -> None:
    def hook(items, prompt):
        if items == [b"c.png"]:
            raise ProviderError("inference_provider_error", "model crashed")
        return "ok"

    provider.sequence_hook = hook
    svc = _service(provider, record_store, k=1, p=2)
    with pytest.raises(BatchChunkError):
        svc.analyze_batch(
            Task(
                task_id="b",
                task_type="analyze_multiple_images",
                data={"file_paths": ["/u/a.png", "/u/b.png", "/u/c.png"]},
            )
        )
    assert record_store.records == []


def test_batch_end_to_end_through_worker(provider, record_store, task_queue) -> None:
    svc = _service(provider, record_store, k=2, p=2)
    registry = build_default_registry(svc)
    pool = WorkerPool(
        task_queue,
        registry,
        "media_processing",
        dequeue_timeout_sec=0.05,
        idle_sleep_sec=0.01,
        error_backoff_sec=0.01,
        status_retries=3,
    )
    paths = ["/u/1.jpg", "/u/2.jpg", "/u/3.jpg"]
    task_id = task_queue.enqueue(
        "media_processing", "analyze_multiple_images", {"file_paths": paths}
    )

    status = pool.process_task(task_queue.dequeue("media_processing", 0.1))

    assert status == TaskStatus.completed
    assert task_queue.get_status(task_id) == TaskStatus.completed
    result = task_queue.get_result(task_id)
    assert result["is_batch"] is True
    assert result["batch_paths"] == paths
    assert result["file_count"] == 3
    assert len(record_store.records) == 1


def test_failed_batch_recorded_as_failed(provider, record_store, task_queue) -> None:
    def hook(items, prompt):
        raise RuntimeError("down")

    provider.sequence_hook = hook
    svc = _service(provider, record_store, k=1, p=1)
    pool = WorkerPool(task_queue, build_default_registry(svc), "q", error_backoff_sec=0.0)
    task_id = task_queue.enqueue("q", "analyze_media_batch", {"file_paths": ["/a", "/b"]})

    assert pool.process_task(task_queue.dequeue("q", 0.1)) == TaskStatus.failed

    result = task_queue.get_result(task_id)
    assert result["error_code"] == "batch_chunk_error"
    assert "down" in result["error"]
    assert record_store.records == []
