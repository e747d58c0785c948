"""任务路由

GET    /api/tasks: 任务列表，支持 agent / status / client_id / project_id 筛选（"all" 视为不筛选）。
POST   /api/tasks: 创建任务。
GET    /api/tasks/{task_id}: 任务详情，含活动条目。
PATCH  /api/tasks/{task_id}: 手动编辑。
DELETE /api/tasks/{task_id}: 删除任务。
"""

from agenthq.core.exceptions import InvalidReferenceError
from agenthq.core.models import TaskCreate, TaskUpdate
from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse

from ..deps import get_activity_hub, get_store_group
from ..errors import error_response, task_not_found
from ..services.task_service import TaskService

router = APIRouter()


@router.get("/api/tasks")
async def list_tasks(
    agent: str | None = Query(default=None, description="按 Agent 筛选"),
    status: str | None = Query(default=None, description="按状态筛选"),
    client_id: int | None = Query(default=None),
    project_id: int | None = Query(default=None),
    store_group=Depends(get_store_group),
):
    """查询任务列表，按优先级、再按创建时间倒序"""
    service = TaskService(store_group)
    tasks = await service.list_tasks(
        agent=agent,
        status=status,
        client_id=client_id,
        project_id=project_id,
    )
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: TaskCreate,
    store_group=Depends(get_store_group),
    activity_hub=Depends(get_activity_hub),
):
    """创建任务，初始状态 queued"""
    service = TaskService(store_group, activity_hub)
    try:
        task = await service.create_task(body)
    except InvalidReferenceError:
        return error_response(
            400, "INVALID_REFERENCE", "client_id or project_id does not exist"
        )
    return JSONResponse(status_code=201, content={"task": task.model_dump(mode="json")})


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: int,
    store_group=Depends(get_store_group),
):
    """查询任务详情，包含该任务的活动条目"""
    service = TaskService(store_group)
    task = await service.get_task(task_id)
    if task is None:
        return task_not_found(task_id)

    activity = await service.get_task_activity(task_id)
    return {
        "task": task.model_dump(mode="json"),
        "activity": [e.model_dump(mode="json") for e in activity],
    }


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: int,
    body: TaskUpdate,
    store_group=Depends(get_store_group),
    activity_hub=Depends(get_activity_hub),
):
    """手动编辑任务

    - 只应用请求体中显式给出的字段
    - needs_info 任务补充 requirements 且未给出 status 时自动回到 queued
    """
    service = TaskService(store_group, activity_hub)
    try:
        task = await service.update_task(task_id, body)
    except InvalidReferenceError:
        return error_response(
            400, "INVALID_REFERENCE", "client_id or project_id does not exist"
        )
    if task is None:
        return task_not_found(task_id)
    return {"task": task.model_dump(mode="json")}


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: int,
    store_group=Depends(get_store_group),
    activity_hub=Depends(get_activity_hub),
):
    service = TaskService(store_group, activity_hub)
    deleted = await service.delete_task(task_id)
    if not deleted:
        return task_not_found(task_id)
    return {"deleted": True, "id": task_id}
