"""
Mock inference для тестов и dev.

Назначение:
- гонять пайплайн без Ollama
- предсказуемый результат: одинаковый текст -> одинаковый вектор
"""

from __future__ import annotations

import hashlib
import math

from media_vector_agent.common.config import get_settings
from media_vector_agent.domain.enums import MediaKind

from .base import InferenceProvider


class MockInferenceProvider(InferenceProvider):
    def __init__(self, dim: int | None = None) -> None:
        self.dim = int(dim or get_settings().embedding_dim)

    def describe_media(self, data: bytes, kind: MediaKind) -> str:
        digest = hashlib.sha256(data).hexdigest()[:12]
        return f"mock {kind.value} description ({len(data)} bytes, {digest})"

    def describe_sequence(self, items: list[bytes], prompt: str) -> str:
        sizes = ",".join(str(len(b)) for b in items)
        return f"mock sequence of {len(items)} items [{sizes}]"

    def generate(self, prompt: str) -> str:
        return f"mock synthesis ({len(prompt)} chars)"

    def embed(self, text: str) -> list[float]:
        seed = hashlib.sha256(text.encode("utf-8")).digest()
        raw = [((seed[i % len(seed)] + i) % 251) / 251.0 - 0.5 for i in range(self.dim)]
        norm = math.sqrt(sum(x * x for x in raw)) or 1.0
        return [x / norm for x in raw]
