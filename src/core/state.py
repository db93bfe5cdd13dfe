"""
适配器状态定义
"""

from enum import Enum


class AdapterState(str, Enum):
    """适配器（AdapterCore）状态

    正常流程严格单调：DISCONNECTED -> CONNECTED -> ANNOUNCED -> CONFIGURED -> READY
    任何已连接状态都可能落入 ERROR 或 DISCONNECTED
    """
    DISCONNECTED = "disconnected"        # 未连接
    CONNECTED = "connected"              # 已连接，尚未声明
    ANNOUNCED = "announced"              # 已发送声明
    CONFIGURED = "configured"            # 已收到配置
    READY = "ready"                      # 就绪，可接收激励
    ERROR = "error"                      # 错误，等待连接关闭

    def is_connected(self) -> bool:
        """是否处于已连接状态"""
        return self in (
            AdapterState.CONNECTED,
            AdapterState.ANNOUNCED,
            AdapterState.CONFIGURED,
            AdapterState.READY,
        )

    def accepts_ready(self) -> bool:
        """Handler 是否可以在此状态下发送 Ready"""
        return self in (AdapterState.CONFIGURED, AdapterState.READY)

    def __str__(self):
        return self.value
