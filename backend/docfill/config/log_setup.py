"""
日志初始化 - 按 LoggingConfig 配置根日志器

各模块只使用 logging.getLogger(__name__)，在进程入口调用一次 setup_logging。
"""

from __future__ import annotations

import logging

from .runtime_config import RuntimeConfig, get_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def setup_logging(config: RuntimeConfig | None = None) -> None:
    """配置日志级别与输出（控制台，可选文件）"""
    config = config or get_config()
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.logging.log_to_file:
        log_dir = config.storage_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / config.logging.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=config.logging.log_level.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
