"""
配置层 - 加载运行期配置

职责：
- 加载 config/docfill_runtime.yaml（运行期参数）
- 提供类型安全的配置访问接口
- 初始化日志
"""

from .log_setup import setup_logging
from .runtime_config import (
    ConcurrencyConfig,
    DiscoveryConfig,
    InstantiationConfig,
    RuntimeConfig,
    get_config,
    reload_config,
)

__all__ = [
    "RuntimeConfig",
    "ConcurrencyConfig",
    "DiscoveryConfig",
    "InstantiationConfig",
    "get_config",
    "reload_config",
    "setup_logging",
]
