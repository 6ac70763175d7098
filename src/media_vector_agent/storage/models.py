"""
ORM-модели базы данных.

Назначение:
- Хранение описаний медиа и их эмбеддингов
- Поиск ближайших соседей (pgvector, cosine)

Инвариант:
- file_path уникален; для батча это первый путь набора
- batch_paths в БД не хранится, берётся из результата задачи батча
"""

from __future__ import annotations

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.time import utc_now
from media_vector_agent.domain.enums import MediaKind

EMBEDDING_DIM = get_settings().embedding_dim


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# MEDIA RECORD
# =============================================================================
class MediaRecord(Base):
    """
    Медиафайл (или батч файлов) + описание + эмбеддинг.
    """

    __tablename__ = "media_embeddings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    file_path: Mapped[str] = mapped_column(String(1024), unique=True, nullable=False)
    media_type: Mapped[MediaKind] = mapped_column(
        Enum(MediaKind, name="mediakind"), default=MediaKind.image, nullable=False
    )

    text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    embedding: Mapped[list[float]] = mapped_column(Vector(EMBEDDING_DIM), nullable=False)

    is_batch: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    batch_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index(
            "ix_media_embeddings_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": 16, "ef_construction": 64},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<MediaRecord(id={self.id}, file_path='{self.file_path}', is_batch={self.is_batch})>"
        )
