"""SSE 活动流路由

GET /api/stream/task/{task_id}: SSE 实时推送指定任务的活动条目。
支持历史条目推送、实时新条目推送、Last-Event-ID 断线重连、心跳保活。
"""

import asyncio
import json

from agenthq.core.config import SSE_HEARTBEAT_INTERVAL
from agenthq.core.models import SETTLING_ACTIONS, ActivityLogEntry
from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from ..deps import get_activity_hub, get_dispatch_service, get_store_group
from ..errors import task_not_found
from ..services.activity_hub import QUEUE_OVERFLOW

router = APIRouter()


def _entry_to_sse(entry: ActivityLogEntry, is_final: bool = False) -> dict:
    """将活动条目转换为 SSE 消息"""
    data = entry.model_dump(mode="json")
    data["final"] = is_final
    return {
        "id": str(entry.id),
        "event": entry.action.value,
        "data": json.dumps(data, ensure_ascii=False),
    }


def _parse_last_event_id(value: str | None) -> int:
    if value is None or not value.isdigit():
        return 0
    return int(value)


@router.get("/api/stream/task/{task_id}")
async def stream_task_activity(
    task_id: int,
    request: Request,
    store_group=Depends(get_store_group),
    activity_hub=Depends(get_activity_hub),
    dispatch_service=Depends(get_dispatch_service),
):
    """SSE 活动流端点

    1. 先推送历史条目（Last-Event-ID 之后的）
    2. 没有进行中的派发时，推送完历史即结束
    3. 否则实时推送新条目，直到一条结束派发的条目（final: true）
    4. 订阅队列溢出时从存储补读错过的条目
    5. 心跳保活；心跳时发现派发已全部结束则关闭
    """
    task = await store_group.task_store.get_task(task_id)
    if task is None:
        return task_not_found(task_id)

    last_seen = _parse_last_event_id(request.headers.get("last-event-id"))

    async def entries_after(entry_id: int) -> list[ActivityLogEntry]:
        entries = await store_group.activity_store.get_entries_for_task(task_id)
        return [e for e in entries if e.id is not None and e.id > entry_id]

    async def event_generator():
        nonlocal last_seen

        # 先订阅再读历史，避免两者之间的新条目丢失
        queue = await activity_hub.subscribe(task_id)
        try:
            for entry in await entries_after(last_seen):
                last_seen = entry.id
                yield _entry_to_sse(entry)

            if not dispatch_service.has_outstanding(task_id):
                return

            while True:
                try:
                    item = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                except TimeoutError:
                    if not dispatch_service.has_outstanding(task_id):
                        return
                    # 心跳保活
                    yield {"comment": "heartbeat"}
                    continue

                if item is QUEUE_OVERFLOW:
                    live_entries = await entries_after(last_seen)
                else:
                    live_entries = [item]

                for entry in live_entries:
                    if entry.id is not None and entry.id <= last_seen:
                        # 已随历史推送过；若它结束了派发，流也到此结束
                        if entry.action in SETTLING_ACTIONS:
                            return
                        continue
                    last_seen = entry.id or last_seen
                    is_final = entry.action in SETTLING_ACTIONS
                    yield _entry_to_sse(entry, is_final=is_final)
                    if is_final:
                        return
        finally:
            await activity_hub.unsubscribe(task_id, queue)

    return EventSourceResponse(event_generator())
