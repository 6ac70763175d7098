from media_vector_agent.domain.enums import MediaKind
from media_vector_agent.storage.db import db_session
from media_vector_agent.storage.models import EMBEDDING_DIM, MediaRecord
from media_vector_agent.storage.store import record_to_dict


def test_db_session_context_manager_smoke():
    with db_session() as s:
        # просто проверяем, что session создаётся
        assert s is not None

        # НЕ вставляем запись (в CI можно подключить test контейнер позже)
        rec = MediaRecord(
            id=1,
            file_path="/uploads/1_cat.png",
            media_type=MediaKind.image,
            text="кот на окне",
            embedding=[0.0] * EMBEDDING_DIM,
            is_batch=False,
            batch_id=None,
        )
        assert record_to_dict(rec)["media_type"] == "image"
        assert record_to_dict(rec)["file_path"] == "/uploads/1_cat.png"
