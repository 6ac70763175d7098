"""
Базовые типы для inference-сервиса.

Контракт провайдера:
- медиа -> текст (одиночный файл и последовательность файлов)
- текст -> текст (синтез нескольких описаний)
- текст -> вектор эмбеддинга
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from media_vector_agent.domain.enums import MediaKind


class InferenceProvider(ABC):
    """
    Интерфейс провайдера inference.
    Любая ошибка провайдера поднимается как ProviderError.
    """

    @abstractmethod
    def describe_media(self, data: bytes, kind: MediaKind) -> str:
        """
        Описать одно изображение/видео естественным языком.
        """
        raise NotImplementedError

    @abstractmethod
    def describe_sequence(self, items: list[bytes], prompt: str) -> str:
        """
        Описать несколько файлов одним вызовом как связную последовательность.
        """
        raise NotImplementedError

    @abstractmethod
    def generate(self, prompt: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        raise NotImplementedError
