"""ActivityHub -- 内存中活动条目广播器

每个订阅者持有一个 asyncio.Queue，按 task_id 分组，支持 subscribe/unsubscribe/broadcast。
订阅者消费过慢导致队列写满时，清空队列并推入 QUEUE_OVERFLOW 标记，
订阅者收到标记后从存储补读错过的条目（活动日志是持久化的，补读不会丢条目）。
"""

import asyncio
from collections import defaultdict
from typing import Final

import structlog
from agenthq.core.models import ActivityLogEntry

log = structlog.get_logger()

QUEUE_OVERFLOW: Final = object()


class ActivityHub:
    """活动条目广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        # task_id -> set of asyncio.Queue
        self._subscribers: dict[int, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, task_id: int) -> asyncio.Queue:
        """订阅指定任务的活动流

        Args:
            task_id: 要订阅的任务 ID

        Returns:
            asyncio.Queue 实例，新条目（或 QUEUE_OVERFLOW 标记）会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[task_id].add(queue)
        return queue

    async def unsubscribe(self, task_id: int, queue: asyncio.Queue) -> None:
        """取消订阅"""
        self._subscribers[task_id].discard(queue)
        if not self._subscribers[task_id]:
            del self._subscribers[task_id]

    async def broadcast(self, entry: ActivityLogEntry) -> None:
        """向条目所属任务的所有订阅者广播

        没有关联任务的条目不广播。
        """
        if entry.task_id is None:
            return

        for queue in self._subscribers.get(entry.task_id, set()):
            try:
                queue.put_nowait(entry)
            except asyncio.QueueFull:
                _mark_overflow(queue)
                log.warning(
                    "activity_subscriber_overflow",
                    task_id=entry.task_id,
                    entry_id=entry.id,
                )

    def subscriber_count(self, task_id: int) -> int:
        return len(self._subscribers.get(task_id, ()))


def _mark_overflow(queue: asyncio.Queue) -> None:
    # 队列中的条目都会被补读覆盖，清空后只留一个标记
    while not queue.empty():
        queue.get_nowait()
    queue.put_nowait(QUEUE_OVERFLOW)
