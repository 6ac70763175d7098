from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import ErrCode, ProviderError
from media_vector_agent.common.logging import get_inference_logger
from media_vector_agent.common.utils import b64_encode
from media_vector_agent.domain.enums import MediaKind

from .base import InferenceProvider
from .prompts import media_prompt

log = get_inference_logger()


@dataclass
class OllamaConfig:
    """Настройки Ollama API."""

    base_url: str
    vision_model: str = "gemma3"
    embedding_model: str = "nomic-embed-text"
    timeout_s: int = 300


class OllamaProvider(InferenceProvider):
    """Провайдер через HTTP API Ollama (/api/generate, /api/embeddings)."""

    def __init__(self, cfg: OllamaConfig | None = None, session: Any | None = None) -> None:
        if cfg is None:
            s = get_settings()
            cfg = OllamaConfig(
                base_url=s.ollama_base_url,
                vision_model=s.vision_model,
                embedding_model=s.embedding_model,
                timeout_s=int(s.inference_timeout_sec),
            )
        self.cfg = cfg
        self.http = session if session is not None else requests.Session()

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/api/{endpoint}"
        try:
            resp = self.http.post(url, json=payload, timeout=self.cfg.timeout_s)
        except requests.RequestException as e:
            log.error(
                "inference_http_error",
                extra={"payload": {"endpoint": endpoint, "url": url, "err": str(e)[:300]}},
            )
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                f"Ошибка HTTP при вызове Ollama ({url})",
                {"err": str(e)[:300]},
            ) from e

        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                "Ollama вернул ошибку",
                {"endpoint": endpoint, "status": resp.status_code, "text_head": resp.text[:500]},
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                "Ollama вернул невалидный JSON",
                {"err": str(e), "text_head": resp.text[:500]},
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                "Ollama вернул неожиданный ответ",
                {"data_head": str(data)[:500]},
            )
        return data

    def _generate(self, prompt: str, images: list[bytes] | None = None) -> str:
        payload: dict[str, Any] = {
            "model": self.cfg.vision_model,
            "prompt": prompt,
            "stream": False,
        }
        if images:
            payload["images"] = [b64_encode(b) for b in images]

        data = self._post("generate", payload)
        if "response" not in data:
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                "В ответе Ollama нет поля response",
                {"data_head": str(data)[:500]},
            )
        response = data["response"]
        if isinstance(response, str):
            return response
        if isinstance(response, bool | int | float):
            return str(response)
        raise ProviderError(
            ErrCode.INFERENCE_PROVIDER_ERROR,
            f"Неожиданный тип response: {type(response).__name__}",
        )

    def describe_media(self, data: bytes, kind: MediaKind) -> str:
        return self._generate(media_prompt(kind), [data])

    def describe_sequence(self, items: list[bytes], prompt: str) -> str:
        return self._generate(prompt, list(items))

    def generate(self, prompt: str) -> str:
        return self._generate(prompt)

    def embed(self, text: str) -> list[float]:
        data = self._post("embeddings", {"model": self.cfg.embedding_model, "prompt": text})
        embedding = data.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise ProviderError(
                ErrCode.INFERENCE_PROVIDER_ERROR,
                "Ollama не вернул эмбеддинг",
                {"data_head": str(data)[:300]},
            )
        return [float(x) for x in embedding]
