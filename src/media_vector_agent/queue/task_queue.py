"""
Очередь задач поверх Redis (списки + ключи со сроком жизни).

Назначение:
- FIFO-очередь на имя: RPUSH в хвост, BLPOP с головы
- статус и результат задачи: task:<id>:status / task:<id>:result, TTL 24ч
- любая ошибка Redis -> BackendUnavailable (вызывающий ретраит с backoff)

Ограничение:
- доставка at-least-once не гарантируется: задача, снятая воркером, который
  упал до записи статуса, теряется (re-delivery не реализован)
"""

from __future__ import annotations

import json
from typing import Any

import redis

from media_vector_agent.common.config import get_settings
from media_vector_agent.common.errors import BackendUnavailable
from media_vector_agent.common.ids import new_task_id
from media_vector_agent.common.time import utc_now
from media_vector_agent.domain.enums import TaskStatus

from .redis import redis_client
from .tasks import Task


def status_key(task_id: str) -> str:
    return f"task:{task_id}:status"


def result_key(task_id: str) -> str:
    return f"task:{task_id}:result"


class TaskQueue:
    """
    Клиент очереди. Redis-клиент передаётся в конструктор (в тестах фейк),
    по умолчанию берётся общий redis_client().
    """

    def __init__(self, client: redis.Redis | None = None, ttl_sec: int | None = None) -> None:
        self.client = client if client is not None else redis_client()
        self.ttl_sec = int(ttl_sec if ttl_sec is not None else get_settings().task_ttl_sec)

    # -------------------------------------------------------------------------
    # Очередь
    # -------------------------------------------------------------------------
    def enqueue(self, queue_name: str, task_type: str, payload: dict[str, Any]) -> str:
        """
        Статус pending и RPUSH идут одной транзакцией (MULTI/EXEC):
        воркер не может увидеть задачу раньше статуса, а при сбое не остаётся
        pending-ключа без задачи в очереди.
        """
        task = Task(task_id=new_task_id(), task_type=task_type, data=payload, created=utc_now())
        try:
            with self.client.pipeline(transaction=True) as pipe:
                pipe.set(status_key(task.task_id), TaskStatus.pending.value, ex=self.ttl_sec)
                pipe.rpush(queue_name, task.to_json())
                pipe.execute()
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось поставить задачу в очередь",
                {"queue": queue_name, "err": str(e)[:200]},
            ) from e
        return task.task_id

    def dequeue(self, queue_name: str, timeout: float) -> Task | None:
        """
        Ждёт задачу не дольше timeout секунд.
        None при пустой очереди - нормальное состояние простоя, не ошибка.
        """
        try:
            item = self.client.blpop([queue_name], timeout=timeout)
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось получить задачу из очереди",
                {"queue": queue_name, "err": str(e)[:200]},
            ) from e
        if not item:
            return None
        _, raw = item
        return Task.from_json(raw)

    def depth(self, queue_name: str) -> int:
        try:
            return int(self.client.llen(queue_name))
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось прочитать длину очереди", {"queue": queue_name, "err": str(e)[:200]}
            ) from e

    # -------------------------------------------------------------------------
    # Статус / результат
    # -------------------------------------------------------------------------
    def set_status(self, task_id: str, status: TaskStatus) -> None:
        try:
            self.client.set(status_key(task_id), TaskStatus(status).value, ex=self.ttl_sec)
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось записать статус задачи", {"task_id": task_id, "err": str(e)[:200]}
            ) from e

    def get_status(self, task_id: str) -> TaskStatus:
        try:
            raw = self.client.get(status_key(task_id))
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось прочитать статус задачи", {"task_id": task_id, "err": str(e)[:200]}
            ) from e
        if raw is None:
            return TaskStatus.unknown
        try:
            return TaskStatus(raw)
        except ValueError:
            return TaskStatus.unknown

    def store_result(self, task_id: str, payload: dict[str, Any]) -> None:
        try:
            self.client.set(
                result_key(task_id),
                json.dumps(payload, ensure_ascii=False, default=str),
                ex=self.ttl_sec,
            )
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось записать результат задачи", {"task_id": task_id, "err": str(e)[:200]}
            ) from e

    def get_result(self, task_id: str) -> dict[str, Any] | None:
        try:
            raw = self.client.get(result_key(task_id))
        except redis.RedisError as e:
            raise BackendUnavailable(
                "Не удалось прочитать результат задачи", {"task_id": task_id, "err": str(e)[:200]}
            ) from e
        if raw is None:
            return None
        result = json.loads(raw)
        return result if isinstance(result, dict) else {"value": result}
