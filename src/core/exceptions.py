# -*- coding: utf-8 -*-
"""
自定义异常类
提供细分的异常类型，便于错误处理和日志记录
"""

from typing import Optional, Dict, Any


class AdapterError(Exception):
    """适配器基础异常类"""

    error_code: str = "ADAPTER_ERROR"

    def __init__(
        self,
        message: str = "适配器内部错误",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于日志和健康检查）"""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ==================== 协议相关异常 ====================

class ProtocolViolation(AdapterError):
    """当前状态下收到了不应出现的事件"""
    error_code = "PROTOCOL_VIOLATION"

    def __init__(self, message: str, state: Optional[str] = None, event: Optional[str] = None):
        details = {}
        if state:
            details["state"] = state
        if event:
            details["event"] = event
        super().__init__(message, details)


class EnvelopeDecodeError(AdapterError):
    """无法解析的报文"""
    error_code = "ENVELOPE_DECODE_ERROR"

    def __init__(self, message: str = "无法解析收到的报文", payload_size: int = 0):
        super().__init__(message, {"payload_size": payload_size})


# ==================== 连接相关异常 ====================

class ConnectionStateError(AdapterError):
    """连接状态不允许该操作（重复 connect、未打开时 send 等）"""
    error_code = "CONNECTION_STATE"

    def __init__(self, message: str, endpoint: str = "", state: str = ""):
        super().__init__(message, {"endpoint": endpoint, "state": state})


class TransportError(AdapterError):
    """底层传输失败"""
    error_code = "TRANSPORT_ERROR"

    def __init__(self, message: str, endpoint: str = ""):
        super().__init__(message, {"endpoint": endpoint})


# ==================== 其他异常 ====================

class HandlerError(AdapterError):
    """SUT Handler 执行失败"""
    error_code = "HANDLER_ERROR"


class ConfigurationError(AdapterError):
    """配置错误"""
    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str = "配置无效", field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else {})
