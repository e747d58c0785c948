"""任务生命周期规则 -- 纯函数，计算每种流转需要写入的字段

派发路径与手动编辑路径共享 completed_at 规则：
status 变为 done 时写入完成时间，变为其他状态时清空。
"""

from datetime import datetime
from typing import Any

from .models.enums import OUTCOME_STATUS, OutcomeKind, TaskStatus
from .models.outcome import DispatchOutcome, FailedOutcome, NeedsInfoOutcome
from .models.task import EDITABLE_FIELDS, Task

DISPATCH_ERROR_PREFIX = "DISPATCH ERROR: "


def completed_at_for(
    status: TaskStatus,
    previous_status: TaskStatus,
    previous_completed_at: datetime | None,
    now: datetime,
) -> datetime | None:
    """根据目标状态计算 completed_at

    done -> done 保留原有完成时间；其余进入 done 的流转写入 now。
    """
    if status != TaskStatus.DONE:
        return None
    if previous_status == TaskStatus.DONE and previous_completed_at is not None:
        return previous_completed_at
    return now


def dispatch_fields(now: datetime) -> dict[str, Any]:
    """queued -> in_progress 的簿记字段

    dispatch_count 的自增由 store 在 SQL 中完成，不在此处计算。
    """
    return {
        "status": TaskStatus.IN_PROGRESS,
        "completed_at": None,
        "last_dispatched_at": now,
    }


def outcome_fields(
    outcome: DispatchOutcome,
    now: datetime,
) -> dict[str, Any]:
    """派发结束后需要写入的字段

    unstructured 只保存输出，不触碰 status / completed_at。
    """
    kind = OutcomeKind(outcome.kind)
    target = OUTCOME_STATUS[kind]

    if isinstance(outcome, NeedsInfoOutcome):
        fields: dict[str, Any] = {
            "agent_questions": outcome.questions,
            "agent_output": outcome.output,
        }
    elif isinstance(outcome, FailedOutcome):
        fields = {"agent_output": DISPATCH_ERROR_PREFIX + outcome.error_message}
    else:
        fields = {"agent_output": outcome.output}

    if target is not None:
        fields["status"] = target
        fields["completed_at"] = now if target == TaskStatus.DONE else None
    return fields


def manual_edit_fields(
    existing: Task,
    changes: dict[str, Any],
    now: datetime,
) -> dict[str, Any]:
    """手动编辑需要写入的字段

    Args:
        existing: 编辑前的任务
        changes: 调用方显式传入的字段（已限定在 EDITABLE_FIELDS 内）
        now: 当前时间

    Returns:
        最终要写入的字段（不含 updated_at）
    """
    fields = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}

    # 回答 needs_info：补充需求且未显式指定状态 -> 自动回到 queued
    if (
        "requirements" in fields
        and existing.status == TaskStatus.NEEDS_INFO
        and "status" not in fields
    ):
        fields["status"] = TaskStatus.QUEUED
        fields["agent_questions"] = ""

    if "status" in fields:
        fields["completed_at"] = completed_at_for(
            TaskStatus(fields["status"]),
            existing.status,
            existing.completed_at,
            now,
        )
    return fields


def summarize_changes(existing: Task, fields: dict[str, Any]) -> str:
    """生成 `key: old → new` 形式的变更摘要，无变化返回空字符串"""
    changes: list[str] = []
    for key in EDITABLE_FIELDS:
        if key not in fields:
            continue
        old = getattr(existing, key)
        new = fields[key]
        if old != new:
            changes.append(f"{key}: {_display(old)} → {_display(new)}")
    return "; ".join(changes)


def _display(value: Any) -> str:
    if value is None:
        return "null"
    return str(value)
