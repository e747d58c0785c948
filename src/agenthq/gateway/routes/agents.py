"""Agent 注册表路由

GET /api/agents: 已知 Agent 档案，附带各 Agent 当前任务按状态的计数。
"""

from agenthq.core.models import AGENTS, AgentId, TaskStatus
from fastapi import APIRouter, Depends

from ..deps import get_store_group

router = APIRouter()


@router.get("/api/agents")
async def list_agents(store_group=Depends(get_store_group)):
    tasks = await store_group.task_store.list_tasks()

    agents = []
    for agent_id, profile in AGENTS.items():
        if agent_id == AgentId.UNASSIGNED:
            continue
        counts = {status.value: 0 for status in TaskStatus}
        for task in tasks:
            if task.agent == agent_id:
                counts[task.status.value] += 1
        agents.append({**profile.model_dump(mode="json"), "task_counts": counts})

    return {"agents": agents}
