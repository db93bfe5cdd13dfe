# -*- coding: utf-8 -*-
"""设备端（SUT）连接"""

from typing import Any, Optional

from .base import MessageConnection
from .interface import ConnectionListener


class DeviceConnection(MessageConnection):
    """与被测系统的 WebSocket 连接，物理标签以文本帧收发"""

    def __init__(self, url: str, listener: Optional[ConnectionListener] = None, **kwargs: Any):
        kwargs.setdefault("name", "device")
        super().__init__(url, listener, **kwargs)

    def send_text(self, message: str) -> None:
        """发送一条物理标签（文本帧）"""
        self.send(str(message))
