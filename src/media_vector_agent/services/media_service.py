"""
Обработчики задач анализа медиа.

Используется воркером через реестр обработчиков:
- analyze_media: один файл -> описание -> эмбеддинг -> запись
- analyze_batch: набор файлов -> батч-анализ (чанки + синтез) -> эмбеддинг -> одна запись

Важно:
- запись батча: file_path = первый файл, batch_id = task_id;
  список файлов хранится только в результате задачи (batch_paths)
- ошибки пробрасываются наверх, статус failed ставит пул
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import HandlerError, ValidationError
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.domain.enums import detect_media_kind
from media_vector_agent.llm.base import InferenceProvider
from media_vector_agent.processing.batching import BatchAnalyzer
from media_vector_agent.queue.tasks import (
    BatchTaskPayload,
    MediaTaskPayload,
    Task,
    TaskPayload,
    parse_payload,
)
from media_vector_agent.storage import blob
from media_vector_agent.storage.store import RecordStore

log = get_project_logger()


class MediaAnalysisService:
    def __init__(
        self,
        provider: InferenceProvider,
        store: RecordStore,
        *,
        load_bytes: Callable[[str], bytes] = blob.read_path,
        batch_chunk_size: int | None = None,
        batch_max_parallel: int | None = None,
    ) -> None:
        s = get_settings()
        self.provider = provider
        self.store = store
        self.load_bytes = load_bytes
        self.batch_chunk_size = int(batch_chunk_size or s.batch_chunk_size)
        self.batch_max_parallel = int(batch_max_parallel or s.batch_max_parallel)

    @staticmethod
    def _payload(task: Task) -> TaskPayload:
        try:
            return parse_payload(task.task_type, task.data)
        except ValidationError as e:
            raise HandlerError("Невалидный payload задачи", e.details) from e

    def handle_analyze_media(self, task: Task) -> dict[str, Any]:
        """analyze_media: с file_paths это батч, иначе один файл."""
        payload = self._payload(task)
        if isinstance(payload, BatchTaskPayload):
            return self._analyze_batch(task, payload)
        return self._analyze_single(task, payload)

    def analyze_media(self, task: Task) -> dict[str, Any]:
        payload = self._payload(task)
        if not isinstance(payload, MediaTaskPayload):
            raise HandlerError("Ожидался один файл", {"task_type": task.task_type})
        return self._analyze_single(task, payload)

    def analyze_batch(self, task: Task) -> dict[str, Any]:
        payload = self._payload(task)
        if not isinstance(payload, BatchTaskPayload):
            raise HandlerError("Ожидался набор файлов", {"task_type": task.task_type})
        return self._analyze_batch(task, payload)

    # -------------------------------------------------------------------------
    # Реализация
    # -------------------------------------------------------------------------
    def _analyze_single(self, task: Task, payload: MediaTaskPayload) -> dict[str, Any]:
        kind = detect_media_kind(payload.file_path)
        data = self.load_bytes(payload.file_path)
        text = self.provider.describe_media(data, kind)
        embedding = self.provider.embed(text)
        rec = self.store.create(
            file_path=payload.file_path, media_type=kind, text=text, embedding=embedding
        )
        log.info(
            "media_analyzed",
            extra={
                "payload": {
                    "task_id": task.task_id,
                    "record_id": rec["id"],
                    "media_type": kind.value,
                    "text_len": len(text),
                }
            },
        )
        return {
            "id": rec["id"],
            "file_path": payload.file_path,
            "media_type": kind.value,
            "text": text,
        }

    def _analyze_batch(self, task: Task, payload: BatchTaskPayload) -> dict[str, Any]:
        started = time.perf_counter()
        paths = list(payload.file_paths)
        analyzer = BatchAnalyzer(
            self.provider,
            self.load_bytes,
            max_chunk_size=payload.max_chunk_size or self.batch_chunk_size,
            max_parallel=payload.max_parallel or self.batch_max_parallel,
        )
        analysis = analyzer.analyze(paths)
        embedding = self.provider.embed(analysis.text)

        kind = detect_media_kind(paths[0])
        rec = self.store.create(
            file_path=paths[0],
            media_type=kind,
            text=analysis.text,
            embedding=embedding,
            is_batch=True,
            batch_id=task.task_id,
        )
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        log.info(
            "media_batch_analyzed",
            extra={
                "payload": {
                    "task_id": task.task_id,
                    "record_id": rec["id"],
                    "files": len(paths),
                    "chunks": analysis.chunk_count,
                    "synthesized": analysis.synthesized,
                    "elapsed_ms": elapsed_ms,
                }
            },
        )
        return {
            "id": rec["id"],
            "file_path": paths[0],
            "media_type": kind.value,
            "text": analysis.text,
            "file_count": len(paths),
            "is_batch": True,
            "batch_id": task.task_id,
            "batch_paths": paths,
            "chunk_count": analysis.chunk_count,
            "synthesized": analysis.synthesized,
            "processing_time_ms": elapsed_ms,
        }
