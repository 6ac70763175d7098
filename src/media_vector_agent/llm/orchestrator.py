from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, TypeVar

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import ErrCode, ProviderError
from media_vector_agent.common.logging import get_inference_logger
from media_vector_agent.domain.enums import MediaKind

from .base import InferenceProvider

log = get_inference_logger()

T = TypeVar("T")


class InferenceOrchestrator(InferenceProvider):
    """Обёртка над провайдером: ретраи, проверка размерности, единые ошибки.

    Логики провайдера здесь нет, только orchestration.
    """

    def __init__(
        self,
        provider: InferenceProvider,
        *,
        retries: int | None = None,
        backoff_ms: int | None = None,
        embedding_dim: int | None = None,
    ) -> None:
        s = get_settings()
        self.provider = provider
        self.retries = int(s.inference_retries if retries is None else retries)
        self.backoff_ms = int(s.inference_retry_backoff_ms if backoff_ms is None else backoff_ms)
        self.embedding_dim = int(s.embedding_dim if embedding_dim is None else embedding_dim)

    def _retry(self, op: str, fn: Callable[..., T], *args: Any) -> T:
        last_err: BaseException | None = None
        for attempt in range(self.retries + 1):
            try:
                return fn(*args)
            except Exception as e:
                last_err = e
                log.warning(
                    "inference_call_failed",
                    extra={"payload": {"op": op, "attempt": attempt + 1, "err": str(e)[:300]}},
                )
                if attempt >= self.retries:
                    break
                time.sleep(self.backoff_ms / 1000.0)

        if isinstance(last_err, ProviderError):
            raise last_err
        raise ProviderError(
            ErrCode.INFERENCE_PROVIDER_ERROR,
            f"Inference не ответил после ретраев ({op})",
            {"err": str(last_err)[:300]},
        ) from last_err

    def describe_media(self, data: bytes, kind: MediaKind) -> str:
        return self._retry("describe_media", self.provider.describe_media, data, kind)

    def describe_sequence(self, items: list[bytes], prompt: str) -> str:
        return self._retry("describe_sequence", self.provider.describe_sequence, items, prompt)

    def generate(self, prompt: str) -> str:
        return self._retry("generate", self.provider.generate, prompt)

    def embed(self, text: str) -> list[float]:
        vector = self._retry("embed", self.provider.embed, text)
        if self.embedding_dim and len(vector) != self.embedding_dim:
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                "Размерность эмбеддинга не совпадает с EMBEDDING_DIM",
                {"expected": self.embedding_dim, "got": len(vector)},
            )
        return vector


def build_inference_provider() -> InferenceProvider:
    s = get_settings()
    name = (s.inference_provider or "").strip().lower()

    if name == "mock":
        from .mock import MockInferenceProvider

        return InferenceOrchestrator(MockInferenceProvider(dim=s.embedding_dim))

    from .ollama import OllamaProvider

    return InferenceOrchestrator(OllamaProvider())
