# -*- coding: utf-8 -*-
"""
报文编解码

Envelope <-> 字节（UTF-8 JSON）。引擎只依赖 encode/decode 这一对契约。
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Optional, Union

from pydantic import ValidationError

from core.exceptions import EnvelopeDecodeError
from .models import Envelope

NSEC_PER_SEC = 1_000_000_000

TimestampLike = Union[int, float, datetime, None]


def encode(envelope: Envelope) -> bytes:
    """编码为字节"""
    return envelope.model_dump_json(exclude_none=True).encode("utf-8")


def decode(data: Union[bytes, bytearray, str]) -> Envelope:
    """从字节（或文本）解码

    Raises:
        EnvelopeDecodeError: 内容不是合法报文
    """
    size = len(data)
    if not data:
        raise EnvelopeDecodeError("Empty message received.", payload_size=0)

    try:
        return Envelope.model_validate_json(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise EnvelopeDecodeError(f"Invalid message received: {errors}", payload_size=size) from e


def now_ns() -> int:
    """当前时间（纳秒，Unix 纪元）"""
    return time.time_ns()


def to_nanoseconds(value: TimestampLike) -> int:
    """转换为纳秒时间戳

    Args:
        value: int 视为纳秒，float 视为秒，datetime 按其时刻，None 取当前时间
    """
    if value is None:
        return now_ns()
    if isinstance(value, datetime):
        seconds = int(value.timestamp())
        return seconds * NSEC_PER_SEC + value.microsecond * 1_000
    if isinstance(value, bool):
        raise TypeError("时间戳不能是布尔值")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value * NSEC_PER_SEC)
    raise TypeError(f"不支持的时间戳类型: {type(value).__name__}")


def describe(envelope: Optional[Envelope]) -> str:
    """报文简述（用于日志）"""
    if envelope is None:
        return "<none>"
    if envelope.label is not None:
        label = envelope.label
        return f"label({label.type.value}:{label.name}@{label.channel or '-'})"
    if envelope.error is not None:
        return f"error({envelope.error.message})"
    return envelope.kind.value
