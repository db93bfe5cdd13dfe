# -*- coding: utf-8 -*-
"""
报文数据模型 (Pydantic)

与 AMP 交换的所有报文（Envelope）及其负载的定义。
Envelope 是按 kind 区分的联合类型，每种 kind 只携带对应的负载字段。
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ==================== 参数与取值 ====================

class ValueType(str, Enum):
    """参数取值类型"""
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"


class ParameterValue(BaseModel):
    """带类型的取值（只设置其中一个字段）"""
    model_config = ConfigDict(frozen=True)

    integer: Optional[int] = Field(None, description="整数值")
    string: Optional[str] = Field(None, description="字符串值")
    boolean: Optional[bool] = Field(None, description="布尔值")
    decimal: Optional[float] = Field(None, description="小数值")

    @model_validator(mode="after")
    def _single_value(self) -> "ParameterValue":
        set_fields = [t.value for t in ValueType if getattr(self, t.value) is not None]
        if len(set_fields) > 1:
            raise ValueError(f"取值只能设置一种类型，实际: {set_fields}")
        return self

    @property
    def type(self) -> Optional[ValueType]:
        """当前取值类型（未设置时为 None）"""
        for value_type in ValueType:
            if getattr(self, value_type.value) is not None:
                return value_type
        return None

    @property
    def value(self) -> Any:
        """Python 原生值"""
        value_type = self.type
        return getattr(self, value_type.value) if value_type else None


class Parameter(BaseModel):
    """标签参数"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="参数名")
    value: ParameterValue = Field(default_factory=ParameterValue, description="参数值")


# ==================== 标签 ====================

class LabelType(str, Enum):
    """标签方向"""
    STIMULUS = "stimulus"
    RESPONSE = "response"


class Label(BaseModel):
    """激励/响应标签"""
    model_config = ConfigDict(frozen=True)

    type: LabelType = Field(..., description="方向: stimulus / response")
    name: str = Field(..., min_length=1, description="标签名")
    channel: str = Field("", description="通道名")
    parameters: List[Parameter] = Field(default_factory=list, description="有序参数列表")
    physical_label: Optional[str] = Field(None, description="SUT 层面的原始表示")
    timestamp: int = Field(0, ge=0, description="时间戳（纳秒，Unix 纪元）")
    correlation_id: Optional[str] = Field(None, description="关联 ID")

    def parameter(self, name: str) -> Optional[Parameter]:
        """按名称查找参数"""
        for param in self.parameters:
            if param.name == name:
                return param
        return None


# ==================== 配置 ====================

class ConfigurationItem(BaseModel):
    """配置项"""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="配置键")
    description: str = Field("", description="配置说明")
    value: ParameterValue = Field(default_factory=ParameterValue, description="配置值")


class Configuration(BaseModel):
    """适配器配置（声明时为默认值/结构，AMP 下发时为实际值）"""
    model_config = ConfigDict(frozen=True)

    items: List[ConfigurationItem] = Field(default_factory=list, description="配置项列表")

    def item(self, key: str) -> Optional[ConfigurationItem]:
        for entry in self.items:
            if entry.key == key:
                return entry
        return None

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值（Python 原生值）"""
        entry = self.item(key)
        if entry is None or entry.value.value is None:
            return default
        return entry.value.value


# ==================== 报文负载 ====================

class Announcement(BaseModel):
    """适配器声明"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="适配器名称")
    labels: List[Label] = Field(default_factory=list, description="支持的标签")
    configuration: Configuration = Field(default_factory=Configuration, description="配置结构及默认值")


class ErrorMessage(BaseModel):
    """错误信息"""
    model_config = ConfigDict(frozen=True)

    message: str = Field("", description="可读的错误描述")


class EnvelopeKind(str, Enum):
    """报文类型"""
    ANNOUNCEMENT = "announcement"
    CONFIGURATION = "configuration"
    LABEL = "label"
    RESET = "reset"
    READY = "ready"
    ERROR = "error"


# kind -> 必须携带的负载字段（reset / ready 无负载）
_PAYLOAD_FIELDS = {
    EnvelopeKind.ANNOUNCEMENT: "announcement",
    EnvelopeKind.CONFIGURATION: "configuration",
    EnvelopeKind.LABEL: "label",
    EnvelopeKind.ERROR: "error",
}


class Envelope(BaseModel):
    """报文（按 kind 区分的联合类型）"""
    model_config = ConfigDict(frozen=True)

    kind: EnvelopeKind = Field(..., description="报文类型")
    announcement: Optional[Announcement] = None
    configuration: Optional[Configuration] = None
    label: Optional[Label] = None
    error: Optional[ErrorMessage] = None

    @model_validator(mode="after")
    def _payload_matches_kind(self) -> "Envelope":
        expected = _PAYLOAD_FIELDS.get(self.kind)
        for payload_field in _PAYLOAD_FIELDS.values():
            present = getattr(self, payload_field) is not None
            if payload_field == expected and not present:
                raise ValueError(f"{self.kind.value} 报文缺少负载: {payload_field}")
            if payload_field != expected and present:
                raise ValueError(f"{self.kind.value} 报文不应携带负载: {payload_field}")
        return self

    # === 构造方法 ===

    @classmethod
    def of_announcement(cls, name: str, labels: List[Label], configuration: Configuration) -> "Envelope":
        return cls(
            kind=EnvelopeKind.ANNOUNCEMENT,
            announcement=Announcement(name=name, labels=list(labels), configuration=configuration),
        )

    @classmethod
    def of_configuration(cls, configuration: Configuration) -> "Envelope":
        return cls(kind=EnvelopeKind.CONFIGURATION, configuration=configuration)

    @classmethod
    def of_label(cls, label: Label) -> "Envelope":
        return cls(kind=EnvelopeKind.LABEL, label=label)

    @classmethod
    def of_reset(cls) -> "Envelope":
        return cls(kind=EnvelopeKind.RESET)

    @classmethod
    def of_ready(cls) -> "Envelope":
        return cls(kind=EnvelopeKind.READY)

    @classmethod
    def of_error(cls, message: str) -> "Envelope":
        return cls(kind=EnvelopeKind.ERROR, error=ErrorMessage(message=message))
