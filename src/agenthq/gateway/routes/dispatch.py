"""派发路由

POST /api/tasks/{task_id}/dispatch: 派发任务给其 Agent，立即返回，不等待 Agent 结束。
- 200: 已派发（响应头 X-Dispatch-ID 与响应体 dispatch_id 一致，可用于检索该次派发的日志）
- 400: 任务未分配 Agent
- 404: 任务不存在
"""

from agenthq.core.exceptions import DispatchRejectedError, TaskNotFoundError
from fastapi import APIRouter, Depends, Response

from ..deps import get_dispatch_service
from ..errors import error_response, task_not_found
from ..services.dispatch_service import DispatchService

router = APIRouter()


@router.post("/api/tasks/{task_id}/dispatch")
async def dispatch_task(
    task_id: int,
    response: Response,
    dispatch_service: DispatchService = Depends(get_dispatch_service),
):
    try:
        result = await dispatch_service.dispatch(task_id)
    except TaskNotFoundError:
        return task_not_found(task_id)
    except DispatchRejectedError as e:
        return error_response(400, "AGENT_UNASSIGNED", e.reason)

    response.headers["X-Dispatch-ID"] = result.dispatch_id
    return result.model_dump(mode="json")
