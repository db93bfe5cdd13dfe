"""
报文模块
提供 Envelope 数据模型、编解码和标签构造函数
"""

from .models import (
    Announcement,
    Configuration,
    ConfigurationItem,
    Envelope,
    EnvelopeKind,
    ErrorMessage,
    Label,
    LabelType,
    Parameter,
    ParameterValue,
    ValueType,
)
from .codec import decode, encode, now_ns, to_nanoseconds
from .labels import config_item, configuration, parameter, parameter_value, response, stimulus

__all__ = [
    "Announcement",
    "Configuration",
    "ConfigurationItem",
    "Envelope",
    "EnvelopeKind",
    "ErrorMessage",
    "Label",
    "LabelType",
    "Parameter",
    "ParameterValue",
    "ValueType",
    "decode",
    "encode",
    "now_ns",
    "to_nanoseconds",
    "config_item",
    "configuration",
    "parameter",
    "parameter_value",
    "response",
    "stimulus",
]
