"""Agent 回复解析 -- 把原始输出归类为 needs-info / completed / unstructured

显式扫描两个字面标记（仅 ASCII 大小写不敏感），不依赖正则方言。
优先级：NEEDS_INFO 先于 TASK_COMPLETE；同时出现时一律视为 needs-info。
"""

import json
import string

from .models.outcome import CompletedOutcome, NeedsInfoOutcome, UnstructuredOutcome

NEEDS_INFO_MARKER = "NEEDS_INFO:"
TASK_COMPLETE_MARKER = "TASK_COMPLETE:"

# 结构化信封中按顺序尝试的字段
ENVELOPE_FIELDS: tuple[str, ...] = ("reply", "content", "message")

# 只折叠 ASCII 字母：长度不变，非 ASCII 字符（ſ、ı 等）不会折叠成标记字母
_ASCII_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)


def fold_ascii(text: str) -> str:
    """ASCII 字母转大写，其余字符原样保留，下标与原文一一对应"""
    return text.translate(_ASCII_UPPER)


def find_marker(text: str, marker: str, start: int = 0) -> int:
    """大小写不敏感地查找标记，返回起始下标，未找到返回 -1

    marker 必须是大写 ASCII。
    """
    return fold_ascii(text).find(marker, start)


def unwrap_envelope(raw_output: str) -> str:
    """提取有效输出

    原始输出若是带 reply/content/message 字段的 JSON 对象，取第一个非空字段
    （非字符串值按 JSON 序列化为文本）；否则原样返回（去除首尾空白）。
    """
    text = raw_output.strip()
    try:
        parsed = json.loads(text)
    except ValueError:
        return text

    if isinstance(parsed, dict):
        for field in ENVELOPE_FIELDS:
            value = parsed.get(field)
            if not value:
                continue
            if isinstance(value, str):
                return value
            return json.dumps(value, ensure_ascii=False)
    return text


def interpret_reply(
    raw_output: str,
) -> NeedsInfoOutcome | CompletedOutcome | UnstructuredOutcome:
    """解析 Agent 回复

    Args:
        raw_output: Agent 进程的标准输出

    Returns:
        三种结果之一；未包含任何标记时返回 UnstructuredOutcome（不是错误）
    """
    output = unwrap_envelope(raw_output)
    folded = fold_ascii(output)

    needs_info_at = folded.find(NEEDS_INFO_MARKER)
    if needs_info_at >= 0:
        start = needs_info_at + len(NEEDS_INFO_MARKER)
        end = folded.find(TASK_COMPLETE_MARKER, start)
        questions = output[start:] if end < 0 else output[start:end]
        return NeedsInfoOutcome(output=output, questions=questions.strip())

    complete_at = folded.find(TASK_COMPLETE_MARKER)
    if complete_at >= 0:
        summary = output[complete_at + len(TASK_COMPLETE_MARKER) :]
        return CompletedOutcome(output=output, summary=summary.strip())

    return UnstructuredOutcome(output=output)
