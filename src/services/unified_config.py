# -*- coding: utf-8 -*-
"""
适配器配置

加载顺序（后者覆盖前者）：
1. AdapterConfig 默认值
2. JSON 配置文件
3. 环境变量（PA_ 前缀）
4. 显式覆盖（命令行参数）

使用方式：
    from services.unified_config import load_config, ConfigValidator

    cfg = load_config("adapter.json", overrides={"name": "door"})
    ok, errors, warnings = ConfigValidator().validate(cfg)
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from loguru import logger

from core.exceptions import ConfigurationError

ENV_PREFIX = "PA_"

# 数值字段 -> 目标类型
_NUMERIC_FIELDS = {
    "reconnect_delay": float,
    "ping_interval": float,
    "ping_timeout": float,
}

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


@dataclass
class AdapterConfig:
    """适配器配置（唯一定义）"""
    # AMP 连接
    name: str = ""
    url: str = ""
    token: str = ""

    # 被测系统
    handler: str = "smartdoor"

    # 日志
    log_level: str = "INFO"
    logs_dir: str = ""

    # 连接
    reconnect_delay: float = 0.0   # 0 表示立即重连
    ping_interval: float = 30
    ping_timeout: float = 10

    def to_dict(self, mask_secrets: bool = True) -> Dict[str, Any]:
        """导出为字典（默认隐藏令牌）"""
        data = asdict(self)
        if mask_secrets and data["token"]:
            data["token"] = "***"
        return data


def _coerce(key: str, value: Any) -> Any:
    target = _NUMERIC_FIELDS.get(key)
    if target is None:
        return "" if value is None else str(value)
    try:
        return target(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"配置项 {key} 不是有效的数字: {value!r}", field=key) from None


def _read_file(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"配置文件不存在: {config_file}", field="config") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"配置文件格式错误: {config_file}: {e}", field="config") from None

    if not isinstance(data, dict):
        raise ConfigurationError(f"配置文件顶层必须是对象: {config_file}", field="config")
    return data


def _read_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for f in fields(AdapterConfig):
        env_key = f"{ENV_PREFIX}{f.name.upper()}"
        if environ.get(env_key):
            values[f.name] = environ[env_key]
    return values


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AdapterConfig:
    """加载配置

    Args:
        config_file: JSON 配置文件路径
        overrides: 显式覆盖（值为 None 的项忽略）
        environ: 环境变量（默认 os.environ）

    Raises:
        ConfigurationError: 配置文件无法读取或数值无效
    """
    valid_fields = {f.name for f in fields(AdapterConfig)}
    merged: Dict[str, Any] = {}

    layers = []
    if config_file:
        layers.append(("file", _read_file(Path(config_file))))
    layers.append(("env", _read_env(os.environ if environ is None else environ)))
    layers.append(("overrides", {k: v for k, v in (overrides or {}).items() if v is not None}))

    for source, values in layers:
        unknown = set(values) - valid_fields
        if unknown:
            logger.debug(f"[Config] 忽略未知配置项 ({source}): {sorted(unknown)}")
        for key, value in values.items():
            if key in valid_fields:
                merged[key] = _coerce(key, value)

    config = AdapterConfig(**merged)
    logger.debug(f"[Config] 已加载配置: {config.to_dict()}")
    return config


class ConfigValidator:
    """配置验证器"""

    def __init__(self, known_handlers: Optional[List[str]] = None):
        """
        Args:
            known_handlers: 可用的 Handler 名称；为空时从 HandlerRegistry 读取
        """
        self._known_handlers = known_handlers
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate(self, config: AdapterConfig) -> Tuple[bool, List[str], List[str]]:
        """
        验证配置

        Returns:
            (是否通过, 错误列表, 警告列表)
        """
        self.errors = []
        self.warnings = []

        self._validate_identity(config)
        self._validate_url(config)
        self._validate_timing(config)
        self._validate_handler(config)

        return len(self.errors) == 0, self.errors, self.warnings

    def _validate_identity(self, config: AdapterConfig) -> None:
        if not config.name:
            self.errors.append("未设置适配器名称 (name / PA_NAME)")
        if not config.token:
            self.errors.append("未设置 AMP 令牌 (token / PA_TOKEN)")

    def _validate_url(self, config: AdapterConfig) -> None:
        if not config.url:
            self.errors.append("未设置 AMP 地址 (url / PA_URL)")
            return

        parsed = urlparse(config.url)
        if parsed.scheme not in ("ws", "wss") or not parsed.hostname:
            self.errors.append(f"AMP 地址必须是 ws:// 或 wss:// URL: {config.url}")
        elif parsed.scheme == "ws" and parsed.hostname not in _LOCAL_HOSTS:
            self.warnings.append(f"AMP 地址未加密 (ws://)，令牌将以明文传输: {config.url}")

    def _validate_timing(self, config: AdapterConfig) -> None:
        if config.reconnect_delay < 0:
            self.errors.append(f"重连等待不能为负数: {config.reconnect_delay}")
        if config.ping_interval < 0 or config.ping_timeout < 0:
            self.errors.append("心跳间隔和超时不能为负数")
        elif config.ping_interval and config.ping_timeout >= config.ping_interval:
            self.errors.append(
                f"心跳超时 ({config.ping_timeout}) 必须小于心跳间隔 ({config.ping_interval})"
            )

    def _validate_handler(self, config: AdapterConfig) -> None:
        known = self._known_handlers
        if known is None:
            from services.handlers import get_handler_registry
            known = get_handler_registry().list_handlers()
        if config.handler not in known:
            self.errors.append(f"未知的 Handler: {config.handler} (可用: {', '.join(known)})")


def validate_config_on_startup(config: AdapterConfig) -> bool:
    """
    启动时验证配置

    Returns:
        是否验证通过
    """
    validator = ConfigValidator()
    is_valid, errors, warnings = validator.validate(config)

    for warning in warnings:
        logger.warning(f"[配置警告] {warning}")
    for error in errors:
        logger.error(f"[配置错误] {error}")

    if is_valid:
        logger.info("[Config] 配置验证通过")
    return is_valid
