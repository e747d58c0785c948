"""Briefing 组装 -- 纯函数，把任务及其客户/项目上下文拼成发给 Agent 的文本

输出顺序固定：头部、客户、项目、描述、需求、上次输出、备注、指令尾部。
指令尾部无条件附加，下游解析依赖 Agent 按约定回写标记。
"""

from .interpreter import NEEDS_INFO_MARKER, TASK_COMPLETE_MARKER
from .models.context import Client, Project
from .models.task import Task

BRIEFING_HEADER = "=== TASK BRIEFING ==="
INSTRUCTIONS_HEADER = "=== INSTRUCTIONS ==="

INSTRUCTION_FOOTER: tuple[str, ...] = (
    INSTRUCTIONS_HEADER,
    "Execute this task. Work through it step by step.",
    (
        "If you need more information or clarification from the project owner "
        "before you can proceed, respond with your output so far, then on a new "
        f"line write {NEEDS_INFO_MARKER} followed by your specific questions "
        "(one per line)."
    ),
    (
        f"If you complete the task, end with {TASK_COMPLETE_MARKER} followed by "
        "a brief summary of what was done."
    ),
)


def compose_briefing(
    task: Task,
    client: Client | None = None,
    project: Project | None = None,
) -> str:
    """组装任务 briefing

    Args:
        task: 待派发任务（派发前快照）
        client: 可选客户上下文
        project: 可选项目上下文

    Returns:
        以换行连接的 briefing 文本
    """
    lines: list[str] = [
        BRIEFING_HEADER,
        f"TASK #{task.id}: {task.title}",
        f"PRIORITY: {task.priority}",
        f"CATEGORY: {task.category}",
    ]

    if client is not None:
        lines.append("")
        lines.append(f"CLIENT: {client.name}")
        if client.platform:
            lines.append(f"PLATFORM: {client.platform}")
        if client.shopify_store:
            lines.append(f"SHOPIFY: {client.shopify_store}")
        if client.wp_login_url:
            lines.append(f"WP LOGIN: {client.wp_login_url}")
        if client.notes:
            lines.append(f"CLIENT NOTES: {client.notes}")

    if project is not None:
        lines.append("")
        lines.append(f"PROJECT: {project.name}")
        if project.project_type:
            lines.append(f"TYPE: {project.project_type}")
        if project.description:
            lines.append(f"PROJECT DESCRIPTION: {project.description}")

    lines.append("")
    lines.append(f"DESCRIPTION: {task.description or '(none provided)'}")

    if task.requirements:
        lines.extend(["", "REQUIREMENTS:", task.requirements])

    # 让 Agent 记得自己上一次的尝试
    if task.dispatch_count > 0 and task.agent_output:
        lines.extend(["", "PREVIOUS AGENT OUTPUT:", task.agent_output])

    if task.notes:
        lines.extend(["", f"NOTES: {task.notes}"])

    lines.append("")
    lines.extend(INSTRUCTION_FOOTER)

    return "\n".join(lines)


def has_instruction_footer(briefing: str) -> bool:
    """briefing 是否以完整的指令尾部结尾"""
    return briefing.endswith("\n".join(INSTRUCTION_FOOTER))
