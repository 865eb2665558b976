"""
进度推送通道 - 任务状态快照 → 订阅者

职责：
1. 订阅：可限定到单个任务，不限定则接收所有任务
2. 发布：快照投递给该任务的订阅者和全部不限定订阅者
3. 清理：任务进入终态后关闭其限定订阅者；空闲超时或投递失败的订阅者被移除
   （无人消费的订阅者在下次发布时按最后活动时间判定超时）

订阅者以阻塞迭代方式消费（events / sse_events），适合 SSE 之类的长连接。

测试要点：
- test_scoped_subscriber: 只收到自己任务的快照
- test_catch_all_subscriber: 收到所有任务
- test_closed_on_terminal: 终态后关闭
- test_idle_timeout: 空闲超时移除
- test_unconsumed_subscriber_expires: 无人消费的订阅者在发布时移除
- test_sse_format: SSE 文本
"""

from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from collections.abc import Callable, Iterator

from ..config import get_config
from ..models import JobSnapshot

logger = logging.getLogger(__name__)

_CLOSED = object()

# 单个订阅者最多积压的快照数，超出视为投递失败
MAX_PENDING = 1000


def format_sse(snapshot: JobSnapshot) -> str:
    """SSE 文本帧"""
    return f"event: status\ndata: {snapshot.model_dump_json()}\n\n"


class Subscriber:
    """订阅者（单消费者）"""

    def __init__(
        self,
        job_id: str | None,
        idle_timeout: float,
        on_close: Callable[[Subscriber], None] | None = None,
    ):
        self.subscriber_id = str(uuid.uuid4())
        self.job_id = job_id
        self.idle_timeout = idle_timeout
        self.closed = False
        self.last_active = time.monotonic()
        self._queue: queue.Queue = queue.Queue(maxsize=MAX_PENDING)
        self._on_close = on_close

    def is_idle(self, now: float) -> bool:
        return now - self.last_active >= self.idle_timeout

    def deliver(self, snapshot: JobSnapshot) -> None:
        """
        投递快照

        Raises:
            queue.Full: 积压过多
        """
        self._queue.put_nowait(snapshot)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            logger.debug(f"订阅者队列已满，关闭标记未入队: {self.subscriber_id}")

    def events(self) -> Iterator[JobSnapshot]:
        """阻塞迭代快照，关闭或空闲超时后结束"""
        while True:
            if self.closed and self._queue.empty():
                break
            self.last_active = time.monotonic()
            try:
                item = self._queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                logger.info(f"订阅者空闲超时: {self.subscriber_id}")
                self.close()
                break
            if item is _CLOSED:
                break
            yield item

        if self._on_close is not None:
            self._on_close(self)

    def sse_events(self) -> Iterator[str]:
        for snapshot in self.events():
            yield format_sse(snapshot)


class NotificationChannel:
    """推送通道"""

    def __init__(self, idle_timeout: float | None = None):
        self.idle_timeout = idle_timeout or get_config().notifications.subscriber_timeout_sec
        self._scoped: dict[str, list[Subscriber]] = {}
        self._catch_all: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, job_id: str | None = None, idle_timeout: float | None = None) -> Subscriber:
        """订阅（job_id 为 None 时接收所有任务）"""
        subscriber = Subscriber(
            job_id=job_id,
            idle_timeout=idle_timeout or self.idle_timeout,
            on_close=self.unsubscribe,
        )
        with self._lock:
            if job_id is None:
                self._catch_all.append(subscriber)
            else:
                self._scoped.setdefault(job_id, []).append(subscriber)
        logger.debug(f"新订阅者: {subscriber.subscriber_id} (job={job_id or '*'})")
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._remove(subscriber)
        subscriber.close()

    def publish(self, snapshot: JobSnapshot) -> None:
        """投递给该任务的订阅者与不限定订阅者"""
        now = time.monotonic()
        with self._lock:
            targets = list(self._scoped.get(snapshot.job_id, ())) + list(self._catch_all)
            idle = [s for s in targets if s.is_idle(now)]
            targets = [s for s in targets if s not in idle]
            if snapshot.status.is_terminal:
                finished = self._scoped.pop(snapshot.job_id, [])
            else:
                finished = []

        for subscriber in idle:
            logger.info(f"订阅者空闲超时，移除: {subscriber.subscriber_id}")
            self.unsubscribe(subscriber)

        for subscriber in targets:
            try:
                subscriber.deliver(snapshot)
            except queue.Full:
                logger.warning(f"快照投递失败，移除订阅者: {subscriber.subscriber_id}")
                self.unsubscribe(subscriber)

        for subscriber in finished:
            subscriber.close()

    def subscriber_count(self, job_id: str | None = None) -> int:
        with self._lock:
            if job_id is None:
                return len(self._catch_all) + sum(len(s) for s in self._scoped.values())
            return len(self._scoped.get(job_id, ()))

    def _remove(self, subscriber: Subscriber) -> None:
        if subscriber.job_id is None:
            if subscriber in self._catch_all:
                self._catch_all.remove(subscriber)
            return
        scoped = self._scoped.get(subscriber.job_id)
        if scoped and subscriber in scoped:
            scoped.remove(subscriber)
            if not scoped:
                del self._scoped[subscriber.job_id]
