"""
Семантический поиск по описаниям медиа.

Алгоритм:
- эмбеддинг запроса тем же провайдером, что и при индексации
- k ближайших записей по косинусному расстоянию
- для батч-записей список файлов подтягивается из результата задачи (batch_id)
"""

from __future__ import annotations

from typing import Any

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import BackendUnavailable, ValidationError
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.domain.enums import MediaKind
from media_vector_agent.llm.base import InferenceProvider
from media_vector_agent.queue.task_queue import TaskQueue
from media_vector_agent.storage.store import RecordStore

log = get_project_logger()


class SearchService:
    def __init__(
        self, provider: InferenceProvider, store: RecordStore, queue: TaskQueue | None = None
    ) -> None:
        self.provider = provider
        self.store = store
        self.queue = queue

    def search(
        self, query: str, top_k: int | None = None, media_type: MediaKind | None = None
    ) -> list[dict[str, Any]]:
        s = get_settings()
        query = (query or "").strip()
        if not query:
            raise ValidationError("Пустой поисковый запрос")
        k = int(top_k or s.search_default_top_k)
        if k < 1 or k > s.search_max_top_k:
            raise ValidationError(
                "top_k вне допустимого диапазона", {"top_k": k, "max": s.search_max_top_k}
            )

        vector = self.provider.embed(query)
        hits = self.store.nearest(vector, k, media_type=media_type)
        for hit in hits:
            if hit.get("is_batch") and hit.get("batch_id"):
                hit["batch_paths"] = self._batch_paths(hit["batch_id"])

        log.info(
            "search_done",
            extra={"payload": {"top_k": k, "hits": len(hits), "query_len": len(query)}},
        )
        return hits

    def _batch_paths(self, batch_id: str) -> list[str]:
        if self.queue is None:
            return []
        try:
            result = self.queue.get_result(batch_id)
        except BackendUnavailable as e:
            log.warning(
                "search_batch_paths_unavailable",
                extra={"payload": {"batch_id": batch_id, "err": str(e)[:200]}},
            )
            return []
        paths = (result or {}).get("batch_paths")
        return [str(p) for p in paths] if isinstance(paths, list) else []
