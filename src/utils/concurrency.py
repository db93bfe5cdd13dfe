# -*- coding: utf-8 -*-
from __future__ import annotations

import threading
from typing import Optional


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """等待取消，返回是否已取消"""
        return self._event.wait(timeout)


def interruptible_sleep(seconds: float, cancel_token: CancelToken) -> bool:
    """可中断的等待

    Args:
        seconds: 等待秒数（<= 0 时立即返回）
        cancel_token: 取消令牌，被取消时立即结束等待

    Returns:
        bool: True 表示正常完成，False 表示被取消
    """
    if cancel_token.cancelled():
        return False
    if seconds <= 0:
        return True
    return not cancel_token.wait(seconds)
