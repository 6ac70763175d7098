"""
Батч-анализ набора медиа как единой последовательности.

Алгоритм:
- N <= max_chunk_size: один вызов describe_sequence со всеми файлами
- иначе: режем по порядку на чанки размера <= max_chunk_size,
  чанки идут параллельно, но не больше max_parallel вызовов одновременно
  (счётный семафор)
- тексты чанков собираются по индексу чанка, а не по порядку завершения
- если чанков больше одного: один вызов синтеза поверх текстов чанков (по порядку)

Ошибки:
- первая же ошибка чанка прерывает весь батч (BatchChunkError),
  ещё не начатые чанки не вызывают модель, частичный результат не сохраняется
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypeVar

from media_vector_agent.common.errors import AppError, BatchChunkError
from media_vector_agent.common.logging import get_project_logger
from media_vector_agent.common.metrics import BATCH_CHUNKS_TOTAL
from media_vector_agent.llm.base import InferenceProvider
from media_vector_agent.llm.prompts import SEQUENCE_PROMPT, chunk_prompt, synthesis_prompt

log = get_project_logger()

T = TypeVar("T")


@dataclass
class BatchAnalysis:
    text: str
    chunk_count: int
    synthesized: bool


class _ChunkSkipped(Exception):
    """Чанк не запускался: батч уже прерван другой ошибкой."""


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """
    Разбить список на подряд идущие куски длины <= size.
    Чанк i покрывает items[i*size : min((i+1)*size, len(items))].
    """
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchAnalyzer:
    def __init__(
        self,
        provider: InferenceProvider,
        load_bytes: Callable[[str], bytes],
        *,
        max_chunk_size: int,
        max_parallel: int,
    ) -> None:
        if max_chunk_size < 1 or max_parallel < 1:
            raise ValueError("max_chunk_size and max_parallel must be >= 1")
        self.provider = provider
        self.load_bytes = load_bytes
        self.max_chunk_size = max_chunk_size
        self.max_parallel = max_parallel

    def analyze(self, paths: Sequence[str]) -> BatchAnalysis:
        if not paths:
            raise ValueError("empty batch")

        if len(paths) <= self.max_chunk_size:
            items = [self.load_bytes(p) for p in paths]
            text = self.provider.describe_sequence(items, SEQUENCE_PROMPT)
            return BatchAnalysis(text=text, chunk_count=1, synthesized=False)

        chunks = partition(paths, self.max_chunk_size)
        log.info(
            "batch_chunked",
            extra={
                "payload": {
                    "items": len(paths),
                    "chunks": len(chunks),
                    "max_chunk_size": self.max_chunk_size,
                    "max_parallel": self.max_parallel,
                }
            },
        )
        texts = self._run_chunks(chunks)

        if len(texts) == 1:
            return BatchAnalysis(text=texts[0], chunk_count=1, synthesized=False)

        text = self.provider.generate(synthesis_prompt(texts))
        return BatchAnalysis(text=text, chunk_count=len(texts), synthesized=True)

    def _run_chunks(self, chunks: list[list[str]]) -> list[str]:
        total = len(chunks)
        results: list[str | None] = [None] * total
        semaphore = threading.BoundedSemaphore(self.max_parallel)
        aborted = threading.Event()

        def run_one(index: int, chunk: list[str]) -> None:
            with semaphore:
                if aborted.is_set():
                    BATCH_CHUNKS_TOTAL.labels(result="skipped").inc()
                    raise _ChunkSkipped()
                try:
                    items = [self.load_bytes(p) for p in chunk]
                    results[index] = self.provider.describe_sequence(
                        items, chunk_prompt(index + 1, total)
                    )
                except Exception:
                    aborted.set()
                    BATCH_CHUNKS_TOTAL.labels(result="failed").inc()
                    raise
            BATCH_CHUNKS_TOTAL.labels(result="ok").inc()

        workers = min(total, self.max_parallel)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch-chunk") as pool:
            futures: dict[Future[None], int] = {
                pool.submit(run_one, i, chunk): i for i, chunk in enumerate(chunks)
            }
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            if any(f.exception() is not None for f in done):
                aborted.set()
                for f in futures:
                    f.cancel()

        # после выхода из пула все чанки завершены, пропущены или отменены
        failed = [
            f
            for f in futures
            if not f.cancelled()
            and f.exception() is not None
            and not isinstance(f.exception(), _ChunkSkipped)
        ]
        if failed:
            first = min(failed, key=lambda f: futures[f])
            exc = first.exception()
            index = futures[first]
            log.error(
                "batch_chunk_failed",
                extra={"payload": {"chunk_index": index, "chunks": total, "err": str(exc)[:300]}},
            )
            details = exc.details if isinstance(exc, AppError) else None
            raise BatchChunkError(index, str(exc), details) from exc

        return [text or "" for text in results]
