# -*- coding: utf-8 -*-
"""标签、参数与配置项的便捷构造函数"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from .models import (
    Configuration,
    ConfigurationItem,
    Label,
    LabelType,
    Parameter,
    ParameterValue,
    ValueType,
)

# 各类型参数在声明中使用的默认值
_DEFAULT_VALUES = {
    ValueType.INTEGER: 0,
    ValueType.STRING: "",
    ValueType.BOOLEAN: False,
    ValueType.DECIMAL: 0.0,
}


def parameter_value(value: Any, value_type: Optional[Union[ValueType, str]] = None) -> ParameterValue:
    """构造带类型的取值

    Args:
        value: Python 值
        value_type: 指定类型；为空时按 value 推断

    Raises:
        ValueError: 不支持的类型
    """
    if value_type is None:
        if isinstance(value, bool):
            value_type = ValueType.BOOLEAN
        elif isinstance(value, int):
            value_type = ValueType.INTEGER
        elif isinstance(value, float):
            value_type = ValueType.DECIMAL
        elif isinstance(value, str):
            value_type = ValueType.STRING
        else:
            raise ValueError(f"{type(value).__name__} not yet implemented")

    try:
        value_type = ValueType(value_type)
    except ValueError:
        raise ValueError(f"{value_type} not yet implemented") from None

    return ParameterValue(**{value_type.value: value})


def parameter(name: str, value_type: Union[ValueType, str], value: Any = None) -> Parameter:
    """构造参数；未给出 value 时使用该类型的默认值（用于标签声明）"""
    try:
        value_type = ValueType(value_type)
    except ValueError:
        raise ValueError(f"{value_type} not yet implemented") from None

    if value is None:
        value = _DEFAULT_VALUES[value_type]
    return Parameter(name=name, value=parameter_value(value, value_type))


def label(
    name: str,
    direction: LabelType,
    parameters: Iterable[Parameter] = (),
    channel: str = "",
) -> Label:
    return Label(type=direction, name=name, channel=channel, parameters=list(parameters))


def stimulus(name: str, parameters: Iterable[Parameter] = (), channel: str = "") -> Label:
    return label(name, LabelType.STIMULUS, parameters, channel)


def response(name: str, parameters: Iterable[Parameter] = (), channel: str = "") -> Label:
    return label(name, LabelType.RESPONSE, parameters, channel)


def config_item(key: str, value: Any, description: str = "") -> ConfigurationItem:
    return ConfigurationItem(key=key, description=description, value=parameter_value(value))


def configuration(*items: ConfigurationItem) -> Configuration:
    return Configuration(items=list(items))
