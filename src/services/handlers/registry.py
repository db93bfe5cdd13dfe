# -*- coding: utf-8 -*-
"""Handler 注册与发现"""

import importlib
from typing import Callable, Dict, List, Optional

from loguru import logger

from core.exceptions import ConfigurationError
from core.handler import Handler

HandlerFactory = Callable[[], Handler]

# 内置 Handler: (名称, 模块, 类名)
KNOWN_HANDLERS = [
    ("smartdoor", "services.handlers.smartdoor", "SmartDoorHandler"),
]


class HandlerRegistry:
    """Handler 注册表

    名称 -> 工厂函数（通常就是 Handler 类本身）
    """

    def __init__(self):
        self._factories: Dict[str, HandlerFactory] = {}

    def register(self, name: str, factory: HandlerFactory):
        """注册 Handler

        Args:
            name: Handler 名称
            factory: 无参工厂函数
        """
        if name in self._factories:
            logger.warning(f"Handler {name} 已存在，将被覆盖")
        self._factories[name] = factory
        logger.debug(f"注册 Handler: {name}")

    def create(self, name: str) -> Handler:
        """创建 Handler 实例

        Raises:
            ConfigurationError: 未注册的名称
        """
        factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(
                f"未知的 Handler: {name} (可用: {', '.join(self.list_handlers())})",
                field="handler",
            )
        return factory()

    def list_handlers(self) -> List[str]:
        """列出所有已注册的 Handler 名称"""
        return sorted(self._factories)


# 全局注册表实例
_global_registry: Optional[HandlerRegistry] = None


def get_handler_registry() -> HandlerRegistry:
    """获取全局注册表实例（自动注册内置 Handler）"""
    global _global_registry
    if _global_registry is None:
        _global_registry = HandlerRegistry()
        _register_known_handlers(_global_registry)
    return _global_registry


def _register_known_handlers(registry: HandlerRegistry):
    for name, module_name, class_name in KNOWN_HANDLERS:
        module = importlib.import_module(module_name)
        registry.register(name, getattr(module, class_name))
    logger.debug(f"已注册 {len(KNOWN_HANDLERS)} 个内置 Handler")
