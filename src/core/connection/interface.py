"""
连接生命周期定义
"""

from enum import Enum
from typing import Protocol, Union


# WebSocket 关闭码
NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006  # 未收到关闭帧（通常是对端不可达）

Payload = Union[bytes, str]


class ConnectionState(str, Enum):
    """连接句柄生命周期状态"""
    CREATED = "created"      # 已创建，未连接
    OPENING = "opening"      # 握手中
    OPEN = "open"            # 已打开
    CLOSING = "closing"      # 关闭中
    CLOSED = "closed"        # 已关闭

    def is_live(self) -> bool:
        """是否持有活动的传输"""
        return self in (ConnectionState.OPENING, ConnectionState.OPEN, ConnectionState.CLOSING)


class ConnectionListener(Protocol):
    """
    连接事件监听者协议
    所有回调都在连接的读线程中调用，实现方不得阻塞
    """

    def on_open(self) -> None:
        """连接已打开"""
        ...

    def on_close(self, code: int, reason: str) -> None:
        """连接已关闭"""
        ...

    def on_message(self, payload: Payload) -> None:
        """收到一帧消息（二进制为 bytes，文本为 str）"""
        ...

    def on_error(self, info: str) -> None:
        """传输错误"""
        ...
