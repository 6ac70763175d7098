"""
Контракты задач очереди.

Правила:
- конверт задачи сериализуется в JSON: task_id, task_type, data, created
- data валидируется по типу задачи ещё при постановке (не в обработчике)
- после постановки задача неизменяема
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from media_vector_agent.common.errors import ValidationError
from media_vector_agent.common.time import parse_iso, utc_now
from media_vector_agent.domain.enums import TaskType


@dataclass(frozen=True)
class Task:
    task_id: str
    task_type: str
    data: dict[str, Any] = field(default_factory=dict)
    created: datetime = field(default_factory=utc_now)

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_id": self.task_id,
                "task_type": self.task_type,
                "data": self.data,
                "created": self.created.isoformat(),
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> Task:
        try:
            obj = json.loads(raw)
            return cls(
                task_id=str(obj["task_id"]),
                task_type=str(obj["task_type"]),
                data=dict(obj.get("data") or {}),
                created=parse_iso(obj["created"]) if obj.get("created") else utc_now(),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationError(
                "Невалидный конверт задачи", {"err": str(e)[:200], "raw": str(raw)[:300]}
            ) from e


# =============================================================================
# PAYLOAD ПО ТИПАМ ЗАДАЧ
# =============================================================================
class MediaTaskPayload(BaseModel):
    """Один файл."""

    model_config = ConfigDict(extra="forbid")

    file_path: str = Field(min_length=1)


class BatchTaskPayload(BaseModel):
    """Набор связанных файлов, анализируется как последовательность."""

    model_config = ConfigDict(extra="forbid")

    file_paths: list[str] = Field(min_length=1)
    max_chunk_size: int | None = Field(default=None, ge=1)
    max_parallel: int | None = Field(default=None, ge=1)


TaskPayload = MediaTaskPayload | BatchTaskPayload

_SINGLE_TYPES = {TaskType.analyze_image.value}
_BATCH_TYPES = {TaskType.analyze_multiple_images.value, TaskType.analyze_media_batch.value}


def parse_payload(task_type: str, data: dict[str, Any]) -> TaskPayload:
    """
    Разбор data в вариант payload.

    analyze_media принимает оба варианта: с file_paths это батч.
    Для неизвестных типов поднимается ValidationError.
    """
    try:
        if task_type in _SINGLE_TYPES:
            return MediaTaskPayload.model_validate(data)
        if task_type in _BATCH_TYPES:
            return BatchTaskPayload.model_validate(data)
        if task_type == TaskType.analyze_media.value:
            if "file_paths" in data:
                return BatchTaskPayload.model_validate(data)
            return MediaTaskPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Невалидный payload задачи",
            {
                "task_type": task_type,
                "errors": e.errors(include_url=False, include_context=False, include_input=False),
            },
        ) from e
    raise ValidationError("Неизвестный тип задачи", {"task_type": task_type})
