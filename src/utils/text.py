# -*- coding: utf-8 -*-
from __future__ import annotations

# WebSocket 控制帧负载上限为 125 字节，关闭码占 2 字节
CLOSE_REASON_LIMIT = 123
TRUNCATION_MARKER = "..."


def truncate_utf8(text: str, limit: int = CLOSE_REASON_LIMIT, marker: str = TRUNCATION_MARKER) -> str:
    """按 UTF-8 字节数截断文本（不截断多字节字符），超长时追加截断标记

    Args:
        text: 原文本
        limit: 最大字节数（含截断标记）
        marker: 截断标记

    Returns:
        编码后不超过 limit 字节的文本
    """
    if not text:
        return ""

    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text

    budget = max(0, limit - len(marker.encode("utf-8")))
    # errors="ignore" 会丢弃被截断一半的多字节字符
    head = encoded[:budget].decode("utf-8", errors="ignore")
    return f"{head}{marker}"


def one_line(text: str, max_length: int = 200) -> str:
    """压缩为单行并限制长度（用于日志）"""
    flat = " ".join(str(text).split())
    if len(flat) > max_length:
        return flat[:max_length - 3] + "..."
    return flat
