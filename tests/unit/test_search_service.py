from __future__ import annotations

import pytest

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import ValidationError
from media_vector_agent.domain.enums import MediaKind
from media_vector_agent.services.search_service import SearchService


def _seed(store) -> None:
    store.create(file_path="/a.png", media_type=MediaKind.image, text="x", embedding=[1.0, 0, 0, 0])
    store.create(
        file_path="/b.png",
        media_type=MediaKind.image,
        text="batch",
        embedding=[5.0, 0, 0, 0],
        is_batch=True,
        batch_id="batch-1",
    )
    store.create(file_path="/c.mp4", media_type=MediaKind.video, text="v", embedding=[9.0, 0, 0, 0])


def test_results_ordered_by_distance(provider, record_store, task_queue) -> None:
    _seed(record_store)
    svc = SearchService(provider, record_store, task_queue)

    # эмбеддинг фейка = длина текста запроса
    hits = svc.search("abcd", top_k=3)

    assert [h["file_path"] for h in hits] == ["/b.png", "/a.png", "/c.mp4"]
    assert hits[0]["distance"] <= hits[1]["distance"] <= hits[2]["distance"]


def test_batch_hits_get_paths_from_task_result(provider, record_store, task_queue) -> None:
    _seed(record_store)
    task_queue.store_result("batch-1", {"batch_paths": ["/b.png", "/b2.png"]})
    svc = SearchService(provider, record_store, task_queue)

    hits = svc.search("abcde", top_k=1)

    assert hits[0]["batch_id"] == "batch-1"
    assert hits[0]["batch_paths"] == ["/b.png", "/b2.png"]


def test_batch_paths_empty_when_result_expired(provider, record_store, task_queue) -> None:
    _seed(record_store)
    hits = SearchService(provider, record_store, task_queue).search("abcde", top_k=1)
    assert hits[0]["batch_paths"] == []


def test_media_type_filter(provider, record_store) -> None:
    _seed(record_store)
    hits = SearchService(provider, record_store).search("a", top_k=5, media_type=MediaKind.video)
    assert [h["file_path"] for h in hits] == ["/c.mp4"]


def test_default_top_k(provider, record_store, monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "search_default_top_k", 2)
    _seed(record_store)
    assert len(SearchService(provider, record_store).search("abc")) == 2


@pytest.mark.parametrize("query,top_k", [("   ", 5), ("cat", 10_000)])
def test_invalid_requests(provider, record_store, query, top_k) -> None:
    with pytest.raises(ValidationError):
        SearchService(provider, record_store).search(query, top_k=top_k)
