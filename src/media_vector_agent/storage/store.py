"""
Хранилище записей медиа для сервисов.

Назначение:
- одна сессия на вызов (воркеры пишут конкурентно, по записи на задачу)
- сервисы работают со словарями, ORM наружу не уходит
- в тестах подменяется in-memory реализацией того же контракта
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from media_vector_agent.common.errors import AppError, ErrCode
from media_vector_agent.domain.enums import MediaKind

from .db import db_session
from .models import MediaRecord
from .repositories import MediaRecordRepository


class RecordStore(ABC):
    @abstractmethod
    def create(
        self,
        *,
        file_path: str,
        media_type: MediaKind,
        text: str,
        embedding: list[float],
        is_batch: bool = False,
        batch_id: str | None = None,
    ) -> dict[str, Any]:
        """Сохранить запись, вернуть её поля (без эмбеддинга)."""
        raise NotImplementedError

    @abstractmethod
    def nearest(
        self,
        vector: list[float],
        k: int,
        *,
        media_type: MediaKind | None = None,
    ) -> list[dict[str, Any]]:
        """k ближайших записей по возрастанию расстояния, с полем distance."""
        raise NotImplementedError


def record_to_dict(record: MediaRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "file_path": record.file_path,
        "media_type": MediaKind(record.media_type).value,
        "text": record.text,
        "is_batch": bool(record.is_batch),
        "batch_id": record.batch_id,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


class SqlMediaRecordStore(RecordStore):
    def create(
        self,
        *,
        file_path: str,
        media_type: MediaKind,
        text: str,
        embedding: list[float],
        is_batch: bool = False,
        batch_id: str | None = None,
    ) -> dict[str, Any]:
        try:
            with db_session() as session:
                repo = MediaRecordRepository(session)
                rec = repo.add(
                    MediaRecord(
                        file_path=file_path,
                        media_type=media_type,
                        text=text,
                        embedding=embedding,
                        is_batch=is_batch,
                        batch_id=batch_id,
                    )
                )
                return record_to_dict(rec)
        except IntegrityError as e:
            raise AppError(
                ErrCode.DB_ERROR,
                "Запись с таким file_path уже существует",
                {"file_path": file_path},
            ) from e
        except SQLAlchemyError as e:
            raise AppError(
                ErrCode.DB_ERROR, "Ошибка записи в БД", {"err": str(e)[:300]}
            ) from e

    def nearest(
        self,
        vector: list[float],
        k: int,
        *,
        media_type: MediaKind | None = None,
    ) -> list[dict[str, Any]]:
        try:
            with db_session() as session:
                rows = MediaRecordRepository(session).nearest(vector, k, media_type=media_type)
                return [{**record_to_dict(rec), "distance": dist} for rec, dist in rows]
        except SQLAlchemyError as e:
            raise AppError(ErrCode.DB_ERROR, "Ошибка поиска в БД", {"err": str(e)[:300]}) from e
