# -*- coding: utf-8 -*-
"""
SmartDoor 标签 <-> 设备消息转换

设备消息格式：大写标签名，参数值依次以 ':' 连接，例如 LOCK:1234。
反向转换时按标签声明恢复参数名和类型。
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.envelope import Label, LabelType, Parameter, ValueType, parameter

SEPARATOR = ":"


def _format_value(param: Parameter) -> str:
    value = param.value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def _parse_value(text: str, value_type: ValueType) -> Any:
    """按声明的类型解析参数值

    Raises:
        ValueError: 无法解析
    """
    if value_type == ValueType.INTEGER:
        return int(text)
    if value_type == ValueType.DECIMAL:
        return float(text)
    if value_type == ValueType.BOOLEAN:
        lowered = text.lower()
        if lowered not in ("true", "false"):
            raise ValueError(f"不是布尔值: {text}")
        return lowered == "true"
    return text


class SmartDoorConverter:
    """基于标签声明的转换器"""

    def __init__(self, labels: Iterable[Label], channel: str = "door"):
        self.channel = channel
        self._schemas: Dict[Tuple[LabelType, str], Label] = {
            (label.type, label.name): label for label in labels
        }

    def label_to_message(self, label: Label) -> str:
        """标签 -> 设备消息（未声明的标签同样转换，用于异常场景测试）"""
        parts = [label.name.upper()]
        parts.extend(_format_value(param) for param in label.parameters)
        return SEPARATOR.join(parts)

    def message_to_label(self, message: str, direction: LabelType = LabelType.RESPONSE) -> Label:
        """设备消息 -> 标签

        消息与声明不符时，整条消息转为小写作为标签名，不带参数。
        """
        head, *values = message.split(SEPARATOR)
        name = head.lower()
        schema = self._schemas.get((direction, name))

        parameters = self._restore_parameters(schema, values) if schema else None
        if parameters is None:
            name = message.lower()
            parameters = []

        return Label(type=direction, name=name, channel=self.channel, parameters=parameters)

    @staticmethod
    def _restore_parameters(schema: Label, values: List[str]) -> Optional[List[Parameter]]:
        if len(values) != len(schema.parameters):
            return None
        restored = []
        for declared, text in zip(schema.parameters, values):
            value_type = declared.value.type or ValueType.STRING
            try:
                restored.append(parameter(declared.name, value_type, _parse_value(text, value_type)))
            except ValueError:
                return None
        return restored
