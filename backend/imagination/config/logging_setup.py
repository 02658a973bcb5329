"""
日志初始化
"""

from __future__ import annotations

import logging

from .runtime_config import RuntimeConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: RuntimeConfig) -> None:
    """按运行期配置初始化根日志（可选写入 storage/logs/imagination.log）"""
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.logging.log_to_file:
        log_dir = config.storage_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "imagination.log", encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, config.logging.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True,
    )
