"""活动日志路由

GET /api/activity: 最近的活动条目（最新在前），可按 task_id 筛选。
"""

from agenthq.core.config import ACTIVITY_PAGE_DEFAULT, ACTIVITY_PAGE_MAX
from fastapi import APIRouter, Depends, Query

from ..deps import get_store_group
from ..services.task_service import TaskService

router = APIRouter()


@router.get("/api/activity")
async def list_activity(
    task_id: int | None = Query(default=None, description="只看某个任务"),
    limit: int = Query(default=ACTIVITY_PAGE_DEFAULT, ge=1, le=ACTIVITY_PAGE_MAX),
    store_group=Depends(get_store_group),
):
    service = TaskService(store_group)
    entries = await service.list_activity(limit=limit, task_id=task_id)
    return {"activity": [e.model_dump(mode="json") for e in entries]}
