"""
SmartDoor 被测系统
"""

from .converters import SmartDoorConverter
from .handler import SmartDoorHandler

__all__ = ["SmartDoorConverter", "SmartDoorHandler"]
