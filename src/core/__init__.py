"""
插件适配器核心模块
提供协议引擎、有序任务队列、连接和报文模型
"""

__version__ = "1.0.0"

from .state import AdapterState
from .task_queue import OrderedTaskQueue, Task
from .handler import Handler
from .engine import AdapterCore

__all__ = [
    "AdapterState",
    "OrderedTaskQueue",
    "Task",
    "Handler",
    "AdapterCore",
]
