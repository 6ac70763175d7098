"""
Инициальная миграция.

Создаёт:
- расширение vector
- таблицу media_embeddings
- HNSW индекс (cosine) по embedding, индекс по batch_id
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

from media_vector_agent.common.config import get_settings

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "media_embeddings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("file_path", sa.String(length=1024), nullable=False, unique=True),
        sa.Column("media_type", sa.Enum("image", "video", name="mediakind"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("embedding", Vector(get_settings().embedding_dim), nullable=False),
        sa.Column("is_batch", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("batch_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_media_embeddings_batch_id", "media_embeddings", ["batch_id"])
    op.create_index(
        "ix_media_embeddings_embedding_hnsw",
        "media_embeddings",
        ["embedding"],
        postgresql_using="hnsw",
        postgresql_with={"m": 16, "ef_construction": 64},
        postgresql_ops={"embedding": "vector_cosine_ops"},
    )


def downgrade() -> None:
    op.drop_index("ix_media_embeddings_embedding_hnsw", table_name="media_embeddings")
    op.drop_index("ix_media_embeddings_batch_id", table_name="media_embeddings")
    op.drop_table("media_embeddings")

    op.execute("DROP TYPE IF EXISTS mediakind")
