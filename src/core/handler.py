# -*- coding: utf-8 -*-
"""SUT Handler 基类

所有被测系统的 Handler 都应继承此类并实现相应方法。
引擎在收到 AMP 的报文后调用 Handler；Handler 通过 adapter_core
回调 send_ready / send_response / send_error 把结果交还引擎。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from loguru import logger

from core.envelope import Configuration, Label

if TYPE_CHECKING:
    from core.engine import AdapterCore


class Handler(ABC):
    """SUT Handler 基类"""

    def __init__(self):
        self.adapter_core: Optional["AdapterCore"] = None
        self._configuration: Configuration = self.default_configuration()

    # === 核心属性（必须实现） ===

    @property
    @abstractmethod
    def name(self) -> str:
        """Handler 名称（唯一标识，如 'smartdoor'）"""
        pass

    # === 配置 ===

    def default_configuration(self) -> Configuration:
        """默认配置（随声明报文发送给 AMP）"""
        return Configuration()

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    @configuration.setter
    def configuration(self, configuration: Configuration) -> None:
        logger.debug(f"[{self.name}] 更新配置: {[item.key for item in configuration.items]}")
        self._configuration = configuration

    # === 能力接口（必须实现） ===

    @abstractmethod
    def supported_labels(self) -> List[Label]:
        """支持的激励/响应标签（随声明报文发送给 AMP）"""
        pass

    @abstractmethod
    def start(self) -> None:
        """准备被测系统；就绪后调用 adapter_core.send_ready()"""
        pass

    @abstractmethod
    def stop(self) -> None:
        """停止与被测系统的交互，释放资源"""
        pass

    @abstractmethod
    def reset(self) -> None:
        """将被测系统恢复到初始状态；完成后调用 adapter_core.send_ready()"""
        pass

    @abstractmethod
    def stimulate(self, label: Label) -> Optional[str]:
        """把激励发送给被测系统

        Args:
            label: AMP 下发的激励标签

        Returns:
            实际发送给被测系统的物理表示（无则返回 None）
        """
        pass

    # === 辅助方法 ===

    def _require_core(self) -> "AdapterCore":
        if self.adapter_core is None:
            raise RuntimeError(f"Handler {self.name} 未绑定 AdapterCore")
        return self.adapter_core

    def get_info(self) -> Dict[str, Any]:
        """获取 Handler 信息（用于健康检查）"""
        return {
            "name": self.name,
            "configuration": {item.key: item.value.value for item in self._configuration.items},
            "labels": len(self.supported_labels()),
        }
