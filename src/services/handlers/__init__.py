"""
被测系统 Handler
"""

from .registry import HandlerRegistry, get_handler_registry

__all__ = ["HandlerRegistry", "get_handler_registry"]
