"""DispatchService -- 任务派发编排

派发流程：
1. 校验任务存在且已分配 Agent
2. 基于派发前的任务快照组合 briefing
3. 单事务写入 queued -> in_progress 簿记 + dispatched 活动条目（先于进程启动落盘）
4. asyncio.create_task 启动后台 Agent 调用，立即返回
5. 后台 continuation 将结果解析为 tagged variant，写入对应的状态流转 + 活动条目

后台 continuation 每次派发只执行一次，所有失败路径都收敛到 blocked。
"""

import asyncio
from datetime import UTC, datetime

import structlog
from agenthq.core.briefing import compose_briefing
from agenthq.core.config import ACTIVITY_DETAIL_MAX_CHARS, ERROR_DETAIL_MAX_CHARS
from agenthq.core.exceptions import DispatchRejectedError, TaskNotFoundError
from agenthq.core.interpreter import interpret_reply
from agenthq.core.lifecycle import dispatch_fields, outcome_fields
from agenthq.core.models import (
    OUTCOME_ACTION,
    ActivityAction,
    ActivityLogEntry,
    CompletedOutcome,
    DispatchOutcome,
    FailedOutcome,
    NeedsInfoOutcome,
    OutcomeKind,
    Task,
    UnstructuredOutcome,
    is_dispatchable,
)
from agenthq.core.store import StoreGroup, update_task_and_record_activity
from agenthq.dispatch import AgentRunner, DispatchError
from pydantic import BaseModel
from ulid import ULID

log = structlog.get_logger()


class DispatchResult(BaseModel):
    """派发确认（不等待 Agent 结束）"""

    dispatched: bool = True
    dispatch_id: str
    task: Task
    briefing: str


class DispatchService:
    """任务派发编排器 -- 每个应用一个实例，持有所有进行中的后台派发"""

    def __init__(
        self,
        store_group: StoreGroup,
        runner: AgentRunner,
        activity_hub=None,
    ) -> None:
        self._stores = store_group
        self._runner = runner
        self._activity_hub = activity_hub
        # 持有后台 task 的强引用，避免执行途中被回收
        self._pending: set[asyncio.Task] = set()
        # task_id -> 进行中的派发数
        self._outstanding: dict[int, int] = {}

    @property
    def runner(self) -> AgentRunner:
        return self._runner

    def has_outstanding(self, task_id: int) -> bool:
        """任务是否有尚未结束的派发"""
        return self._outstanding.get(task_id, 0) > 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def dispatch(self, task_id: int) -> DispatchResult:
        """派发任务给其 Agent

        Args:
            task_id: 任务 id

        Returns:
            DispatchResult，包含更新后的任务快照与 briefing

        Raises:
            TaskNotFoundError: 任务不存在
            DispatchRejectedError: 任务未分配 Agent（无状态变化、不启动进程）
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if not is_dispatchable(task.agent):
            raise DispatchRejectedError(
                task_id, "Task must be assigned to an agent before dispatch"
            )

        client, project = await self._stores.get_task_context(task)
        briefing = compose_briefing(task, client, project)

        dispatch_id = str(ULID())
        agent = task.agent.value
        now = datetime.now(UTC)
        entry = ActivityLogEntry(
            task_id=task_id,
            client_id=task.client_id,
            project_id=task.project_id,
            agent=agent,
            action=ActivityAction.DISPATCHED,
            detail=f'Task dispatched to {agent}: "{task.title}"',
            created_at=now,
        )

        # in_progress 必须在进程启动前落盘
        async with self._stores.write_lock:
            stored = await update_task_and_record_activity(
                self._stores.conn,
                self._stores.task_store,
                self._stores.activity_store,
                task_id,
                dispatch_fields(now),
                now,
                entry,
                increment_dispatch_count=True,
            )
        await self._broadcast(stored)

        updated = await self._stores.task_store.get_task(task_id)
        if updated is None:
            raise TaskNotFoundError(task_id)

        if self.has_outstanding(task_id):
            log.warning(
                "dispatch_overlaps_outstanding",
                task_id=task_id,
                dispatch_id=dispatch_id,
                outstanding=self._outstanding[task_id],
            )

        self._outstanding[task_id] = self._outstanding.get(task_id, 0) + 1
        background = asyncio.create_task(
            self._run_dispatch(task_id, agent, briefing, dispatch_id),
            name=f"dispatch-{dispatch_id}",
        )
        self._pending.add(background)
        background.add_done_callback(lambda t: self._on_dispatch_done(task_id, t))

        log.info(
            "task_dispatched",
            task_id=task_id,
            dispatch_id=dispatch_id,
            agent=agent,
            dispatch_count=updated.dispatch_count,
            briefing_length=len(briefing),
        )

        return DispatchResult(dispatch_id=dispatch_id, task=updated, briefing=briefing)

    async def wait_idle(self) -> None:
        """等待所有进行中的派发结束（测试与优雅关闭）"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def shutdown(self) -> None:
        """取消所有进行中的派发，对应 Agent 进程会被 kill

        被取消的任务保持 in_progress，可见且可重新派发。
        """
        if not self._pending:
            return
        log.warning("dispatch_shutdown_cancelling", pending=len(self._pending))
        for background in list(self._pending):
            background.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_dispatch_done(self, task_id: int, background: asyncio.Task) -> None:
        self._pending.discard(background)
        remaining = self._outstanding.get(task_id, 0) - 1
        if remaining > 0:
            self._outstanding[task_id] = remaining
        else:
            self._outstanding.pop(task_id, None)

    async def _run_dispatch(
        self,
        task_id: int,
        agent: str,
        briefing: str,
        dispatch_id: str,
    ) -> None:
        """后台 continuation：调用 Agent -> 解析结果 -> 写入状态流转"""
        structlog.contextvars.bind_contextvars(
            dispatch_id=dispatch_id,
            task_id=task_id,
        )
        outcome = await self._invoke_agent(agent, briefing)
        log.info("dispatch_outcome", kind=outcome.kind)
        await self._apply_outcome(task_id, agent, outcome)

    async def _invoke_agent(self, agent: str, briefing: str) -> DispatchOutcome:
        """调用 Agent，并把任何失败都转换为 FailedOutcome"""
        try:
            result = await self._runner.run(agent, briefing)
        except DispatchError as e:
            log.warning(
                "agent_dispatch_failed",
                agent=agent,
                error_type=type(e).__name__,
                error=str(e),
            )
            return FailedOutcome(error_message=str(e))
        except Exception as e:
            log.error(
                "agent_dispatch_unexpected_error",
                agent=agent,
                error_type=type(e).__name__,
                exc_info=True,
            )
            return FailedOutcome(error_message=f"{type(e).__name__}: {e}")

        return interpret_reply(result.stdout)

    async def _apply_outcome(
        self,
        task_id: int,
        agent: str,
        outcome: DispatchOutcome,
    ) -> None:
        """写入结果；写入失败时退化为 FailedOutcome 再试一次"""
        try:
            await self._write_outcome(task_id, agent, outcome)
            return
        except Exception as e:
            log.error(
                "dispatch_outcome_write_failed",
                kind=outcome.kind,
                error_type=type(e).__name__,
                exc_info=True,
            )
            if isinstance(outcome, FailedOutcome):
                return
            fallback = FailedOutcome(
                error_message=f"could not record agent outcome: {type(e).__name__}: {e}"
            )

        try:
            await self._write_outcome(task_id, agent, fallback)
        except Exception:
            # 已无法写入存储，只能记录日志；continuation 不得向事件循环抛出
            log.error("dispatch_fallback_write_failed", exc_info=True)

    async def _write_outcome(
        self,
        task_id: int,
        agent: str,
        outcome: DispatchOutcome,
    ) -> None:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            log.warning("dispatch_task_vanished", kind=outcome.kind)
            return

        now = datetime.now(UTC)
        entry = ActivityLogEntry(
            task_id=task_id,
            client_id=task.client_id,
            project_id=task.project_id,
            agent=agent,
            action=OUTCOME_ACTION[OutcomeKind(outcome.kind)],
            detail=outcome_detail(outcome),
            created_at=now,
        )
        async with self._stores.write_lock:
            stored = await update_task_and_record_activity(
                self._stores.conn,
                self._stores.task_store,
                self._stores.activity_store,
                task_id,
                outcome_fields(outcome, now),
                now,
                entry,
            )
        await self._broadcast(stored)

    async def _broadcast(self, entry: ActivityLogEntry | None) -> None:
        if self._activity_hub and entry is not None:
            await self._activity_hub.broadcast(entry)


def outcome_detail(outcome: DispatchOutcome) -> str:
    """派发结果对应的活动条目文本"""
    if isinstance(outcome, NeedsInfoOutcome):
        return f"Agent needs info: {outcome.questions[:ACTIVITY_DETAIL_MAX_CHARS]}"
    if isinstance(outcome, CompletedOutcome):
        return f"Task completed: {outcome.summary[:ACTIVITY_DETAIL_MAX_CHARS]}"
    if isinstance(outcome, UnstructuredOutcome):
        return f"Agent output received ({len(outcome.output)} chars)"
    return f"Dispatch failed: {outcome.error_message[:ERROR_DETAIL_MAX_CHARS]}"
