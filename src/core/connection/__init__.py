"""
连接模块
提供与 AMP 和被测系统通信的 WebSocket 连接
"""

from .interface import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    ConnectionListener,
    ConnectionState,
    Payload,
)
from .base import MessageConnection
from .broker import BrokerConnection
from .device import DeviceConnection

__all__ = [
    "ABNORMAL_CLOSURE",
    "NORMAL_CLOSURE",
    "ConnectionListener",
    "ConnectionState",
    "Payload",
    "MessageConnection",
    "BrokerConnection",
    "DeviceConnection",
]
