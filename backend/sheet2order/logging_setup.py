"""
日志初始化 - 按 LoggingConfig 应用 dictConfig

控制台输出挂在根 logger 上；log_to_file 为真时 sheet2order logger 额外写滚动文件（含 DEBUG）。
"""

from __future__ import annotations

import logging.config
from pathlib import Path
from typing import Any

from .config import RuntimeConfig, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_logging_config(config: RuntimeConfig) -> dict[str, Any]:
    """生成 dictConfig 配置"""
    level = config.logging.log_level.upper()
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "plain",
            "stream": "ext://sys.stdout",
        },
    }
    if config.logging.log_to_file:
        log_file = Path(config.logging.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "plain",
            "filename": str(log_file),
            "maxBytes": 10485760,
            "backupCount": 5,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "sheet2order": {
                "level": "DEBUG" if config.logging.log_to_file else level,
                "handlers": ["file"] if "file" in handlers else [],
                "propagate": True,
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }


def setup_logging(config: RuntimeConfig | None = None) -> None:
    """应用日志配置"""
    logging.config.dictConfig(build_logging_config(config or get_config()))
