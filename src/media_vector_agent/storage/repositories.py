"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только CRUD и запросы
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from media_vector_agent.domain.enums import MediaKind

from .models import MediaRecord


# =============================================================================
# MEDIA RECORD REPOSITORY
# =============================================================================
class MediaRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, record: MediaRecord) -> MediaRecord:
        """Добавить запись; flush назначает id без commit."""
        self.session.add(record)
        self.session.flush()
        return record

    def nearest(
        self,
        vector: list[float],
        k: int,
        *,
        media_type: MediaKind | None = None,
    ) -> list[tuple[MediaRecord, float]]:
        """
        k ближайших по cosine distance (по возрастанию расстояния).
        """
        distance = MediaRecord.embedding.cosine_distance(vector)
        stmt = select(MediaRecord, distance.label("distance"))
        if media_type is not None:
            stmt = stmt.where(MediaRecord.media_type == media_type)
        stmt = stmt.order_by(distance).limit(k)
        return [(rec, float(dist)) for rec, dist in self.session.execute(stmt).all()]
