"""
Локальное файловое хранилище загрузок (uploads).

API и воркер монтируют один и тот же каталог, задача несёт путь к файлу.
"""

from __future__ import annotations

from pathlib import Path

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import AppError, ErrCode


def base_dir() -> Path:
    return Path(get_settings().uploads_dir or "./uploads").resolve()


def _key_to_path(key: str) -> Path:
    # защита от path traversal
    key = key.replace("\\", "/").lstrip("/")
    if not key or ".." in key.split("/"):
        raise ValueError("invalid key")
    return base_dir() / key


def put_bytes(key: str, data: bytes) -> str:
    """Сохранить bytes и вернуть путь к файлу (строкой, как он уйдёт в задачу)."""
    p = _key_to_path(key)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)
    return str(p)


def read_path(file_path: str) -> bytes:
    """
    Прочитать файл по пути из задачи.
    """
    try:
        return Path(file_path).read_bytes()
    except OSError as e:
        raise AppError(
            ErrCode.STORAGE_ERROR,
            f"Не удалось прочитать файл: {file_path}",
            {"err": str(e)[:200]},
        ) from e


def delete(file_path: str) -> None:
    try:
        Path(file_path).unlink()
    except FileNotFoundError:
        pass
