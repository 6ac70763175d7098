"""
Доменные перечисления (enum).

Используются во всей системе:
- статус задачи в очереди
- тип задачи (имя обработчика)
- вид медиа
"""

from __future__ import annotations

import enum
from pathlib import PurePath


class TaskStatus(str, enum.Enum):
    """
    Статус задачи.

    pending -> processing -> completed | failed
    unknown: записи нет (истекла или не создавалась)
    """

    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    unknown = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.completed, TaskStatus.failed)


class TaskType(str, enum.Enum):
    """
    Типы задач, которые знает воркер.
    """

    analyze_media = "analyze_media"
    analyze_image = "analyze_image"  # legacy, одиночный файл
    analyze_multiple_images = "analyze_multiple_images"
    analyze_media_batch = "analyze_media_batch"


class MediaKind(str, enum.Enum):
    """
    Вид медиафайла.
    """

    image = "image"
    video = "video"


VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi", ".mkv", ".webm"})


def detect_media_kind(file_path: str) -> MediaKind:
    """
    Вид медиа по расширению; всё неизвестное считаем изображением.
    """
    if PurePath(file_path).suffix.lower() in VIDEO_EXTENSIONS:
        return MediaKind.video
    return MediaKind.image
