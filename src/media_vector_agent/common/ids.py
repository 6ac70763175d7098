"""
Генерация идентификаторов.

Назначение:
- task_id для очереди (монотонный по времени + случайный хвост)
- уникальные имена загруженных файлов
"""

from __future__ import annotations

import secrets
import time


def new_task_id() -> str:
    """
    Идентификатор задачи.
    Формат: <UTC unix ns>_<rand>

    Лексикографический порядок совпадает с порядком создания в пределах одной
    длины timestamp, хвост исключает коллизии при одинаковых наносекундах.
    """
    return f"{time.time_ns()}_{secrets.token_hex(4)}"


def new_upload_name(filename: str) -> str:
    """
    Имя файла для uploads: <unix ns>_<rand>_<исходное имя без пути>.
    """
    base = (filename or "file").replace("\\", "/").rsplit("/", 1)[-1].strip() or "file"
    return f"{time.time_ns()}_{secrets.token_hex(3)}_{base}"
