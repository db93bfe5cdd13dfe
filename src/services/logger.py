# -*- coding: utf-8 -*-
from __future__ import annotations
import os
import sys
from typing import Optional
from loguru import logger
from pathlib import Path

LOG_FILE_NAME = "adapter.log"


def _normalize_level(level: Optional[str]) -> str:
    """标准化日志级别（内部辅助）"""
    return (level or "INFO").upper()


def configure_logger(level: str = "INFO", logs_dir: Optional[str] = None):
    """配置日志（文件 + 控制台）

    日志目录优先级：参数 > 环境变量 PA_LOGS_DIR > ./logs
    """
    logs_path = Path(logs_dir or os.getenv("PA_LOGS_DIR") or "logs")
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    normalized_level = _normalize_level(level)
    log_file = logs_path / LOG_FILE_NAME
    logger.add(str(log_file), rotation="5 MB", retention=5, enqueue=True, encoding="utf-8", level=normalized_level)
    logger.add(sys.stderr, level=normalized_level)
    return logger
