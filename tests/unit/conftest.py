from __future__ import annotations

import threading
import time

import pytest
import redis

from media_vector_agent.common.errors import ProviderError
from media_vector_agent.domain.enums import MediaKind
from media_vector_agent.llm.base import InferenceProvider
from media_vector_agent.queue.task_queue import TaskQueue
from media_vector_agent.storage.store import RecordStore


class FakeRedis:
    """Минимальный потокобезопасный Redis: строки и списки."""

    def __init__(self) -> None:
        self.kv: dict[str, str] = {}
        self.ttl: dict[str, int | None] = {}
        self.lists: dict[str, list[str]] = {}
        self.fail_ops: dict[str, int] = {}
        self._cond = threading.Condition()

    def _maybe_fail(self, op: str) -> None:
        left = self.fail_ops.get(op, 0)
        if left > 0:
            self.fail_ops[op] = left - 1
            raise redis.ConnectionError(f"{op} failed")

    def set(self, key, value, ex=None):
        with self._cond:
            self._maybe_fail("set")
            self.kv[key] = value
            self.ttl[key] = ex
            return True

    def get(self, key):
        with self._cond:
            self._maybe_fail("get")
            return self.kv.get(key)

    def rpush(self, name, *values):
        with self._cond:
            self._maybe_fail("rpush")
            self.lists.setdefault(name, []).extend(values)
            self._cond.notify_all()
            return len(self.lists[name])

    def llen(self, name):
        with self._cond:
            return len(self.lists.get(name, []))

    def blpop(self, keys, timeout=0):
        deadline = time.monotonic() + float(timeout or 0)
        with self._cond:
            self._maybe_fail("blpop")
            while True:
                for k in keys:
                    items = self.lists.get(k)
                    if items:
                        return k, items.pop(0)
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    """MULTI/EXEC: команды копятся и применяются все или ни одной."""

    def __init__(self, redis_: FakeRedis) -> None:
        self.redis = redis_
        self.commands: list[tuple[str, tuple, dict]] = []

    def __enter__(self) -> FakePipeline:
        return self

    def __exit__(self, *exc) -> None:
        self.commands.clear()

    def set(self, key, value, ex=None):
        self.commands.append(("set", (key, value), {"ex": ex}))
        return self

    def rpush(self, name, *values):
        self.commands.append(("rpush", (name, *values), {}))
        return self

    def execute(self):
        with self.redis._cond:
            for op, _, _ in self.commands:
                self.redis._maybe_fail(op)
            return [getattr(self.redis, op)(*args, **kw) for op, args, kw in self.commands]


class FakeProvider(InferenceProvider):
    """Записывает вызовы; поведение чанков настраивается через хуки."""

    def __init__(self, dim: int = 4) -> None:
        self.dim = dim
        self.calls: list[tuple[str, object]] = []
        self.sequence_hook = None
        self.fail_on_media = False
        self._lock = threading.Lock()

    def _record(self, op: str, arg: object) -> None:
        with self._lock:
            self.calls.append((op, arg))

    def ops(self, op: str) -> list[object]:
        with self._lock:
            return [arg for name, arg in self.calls if name == op]

    def describe_media(self, data: bytes, kind: MediaKind) -> str:
        self._record("describe_media", (data, kind))
        if self.fail_on_media:
            raise ProviderError("inference_provider_error", "model unavailable")
        return f"{kind.value}:{data.decode()}"

    def describe_sequence(self, items: list[bytes], prompt: str) -> str:
        self._record("describe_sequence", (list(items), prompt))
        if self.sequence_hook is not None:
            return self.sequence_hook(list(items), prompt)
        return "+".join(b.decode() for b in items)

    def generate(self, prompt: str) -> str:
        self._record("generate", prompt)
        return "synthesis"

    def embed(self, text: str) -> list[float]:
        self._record("embed", text)
        return [float(len(text))] + [0.0] * (self.dim - 1)


class InMemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self.records: list[dict] = []
        self._lock = threading.Lock()

    def create(self, *, file_path, media_type, text, embedding, is_batch=False, batch_id=None):
        with self._lock:
            rec = {
                "id": len(self.records) + 1,
                "file_path": file_path,
                "media_type": MediaKind(media_type).value,
                "text": text,
                "is_batch": is_batch,
                "batch_id": batch_id,
                "created_at": None,
                "embedding": list(embedding),
            }
            self.records.append(rec)
            return {k: v for k, v in rec.items() if k != "embedding"}

    def nearest(self, vector, k, *, media_type=None):
        rows = [
            r for r in self.records if media_type is None or r["media_type"] == media_type.value
        ]
        scored = [
            {
                **{key: v for key, v in r.items() if key != "embedding"},
                "distance": abs(r["embedding"][0] - vector[0]),
            }
            for r in rows
        ]
        return sorted(scored, key=lambda r: r["distance"])[:k]


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def task_queue(fake_redis) -> TaskQueue:
    return TaskQueue(client=fake_redis, ttl_sec=86400)


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()
