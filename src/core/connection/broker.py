# -*- coding: utf-8 -*-
"""控制面（AMP）连接"""

from typing import Any, Optional

from .base import MessageConnection
from .interface import ConnectionListener


class BrokerConnection(MessageConnection):
    """
    与 AMP 的 WebSocket 连接

    握手时携带 Bearer 令牌；报文以二进制帧传输。
    """

    def __init__(
        self,
        url: str,
        token: str,
        listener: Optional[ConnectionListener] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("name", "broker")
        header = dict(kwargs.pop("header", None) or {})
        if token:
            header["Authorization"] = f"Bearer {token}"
        super().__init__(url, listener, header=header, **kwargs)
        self._has_token = bool(token)

    def send(self, data: Any) -> None:
        """报文统一以二进制帧发送"""
        if isinstance(data, str):
            data = data.encode("utf-8")
        super().send(data)

    def __repr__(self) -> str:
        # 令牌不出现在日志中
        token = "***" if self._has_token else "<none>"
        return f"BrokerConnection(url={self.url!r}, token={token}, state={self.state.value})"
