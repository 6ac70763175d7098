"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP/очередей/результатов задач
- единый стиль исключений по проекту

Политика:
- BackendUnavailable: очередь/хранилище недоступны -> ретрай с backoff
- HandlerError / ProviderError / BatchChunkError: падает только задача
- UnknownTaskType: не ошибка пула, задача завершается с пояснением
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"

    # Задачи
    HANDLER_ERROR = "handler_error"
    UNKNOWN_TASK_TYPE = "unknown_task_type"
    BATCH_CHUNK_ERROR = "batch_chunk_error"

    # Провайдеры
    INFERENCE_PROVIDER_ERROR = "inference_provider_error"

    # Инфра/хранилища
    DB_ERROR = "db_error"
    REDIS_ERROR = "redis_error"
    STORAGE_ERROR = "storage_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Не найдено", details: dict | None = None) -> None:
        super().__init__(ErrCode.NOT_FOUND, message, details)


class BackendUnavailable(AppError):
    def __init__(
        self, message: str = "Бэкенд очереди недоступен", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.REDIS_ERROR, message, details)


class HandlerError(AppError):
    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.HANDLER_ERROR, message, details)


class UnknownTaskType(AppError):
    def __init__(self, task_type: str) -> None:
        super().__init__(
            ErrCode.UNKNOWN_TASK_TYPE, "unknown task type", {"task_type": task_type}
        )


class BatchChunkError(AppError):
    def __init__(self, chunk_index: int, message: str, details: dict | None = None) -> None:
        super().__init__(
            ErrCode.BATCH_CHUNK_ERROR,
            f"chunk {chunk_index} failed: {message}",
            {"chunk_index": chunk_index, **(details or {})},
        )
        self.chunk_index = chunk_index


class ProviderError(AppError):
    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        super().__init__(code, message, details)


def error_code_of(exc: BaseException) -> str:
    if isinstance(exc, AppError):
        return exc.code
    return ErrCode.HANDLER_ERROR
