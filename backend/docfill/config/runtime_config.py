"""
运行期配置 - 读取 config/docfill_runtime.yaml

职责：
- 加载并发/拾取重试/超时/路径等运行参数
- 提供环境变量覆盖机制（DOCFILL_ 前缀，嵌套用 __ 分隔）
- 类型安全的配置访问
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_CONFIG_PATH = Path("config/docfill_runtime.yaml")


class ConcurrencyConfig(BaseModel):
    """并发配置"""

    max_workers: int | None = None  # 单任务计算线程数，None 表示 CPU 核数
    job_workers: int = 2            # 同时运行的批量任务数

    def resolve_max_workers(self) -> int:
        return self.max_workers or os.cpu_count() or 1


class PickupConfig(BaseModel):
    """任务拾取重试（创建与拾取不在同一事务/线程）"""

    max_retries: int = 10
    delay_ms: int = 500


class TimeoutConfig(BaseModel):
    """超时配置"""

    libreoffice_convert_sec: int = 120


class LibreOfficeConfig(BaseModel):
    """LibreOffice 转换进程配置"""

    exe_path: str = ""
    office_homes: list[str] = Field(
        default_factory=lambda: [
            "/usr/lib/libreoffice",
            "/opt/libreoffice",
            "/usr/local/libreoffice",
            "C:/Program Files/LibreOffice",
        ]
    )


class DiscoveryConfig(BaseModel):
    """字段发现配置"""

    max_field_length: int = 64
    max_dashes: int = 5
    bare_tokens: bool = True
    bare_token_min_length: int = 2
    allow_list: list[str] = Field(default_factory=list)  # 非空时仅接受其中的裸大写词
    deny_list: list[str] = Field(default_factory=list)


class InstantiationConfig(BaseModel):
    """模板实例化配置"""

    preserve_run_styles: bool = False


class NotificationConfig(BaseModel):
    """推送通道配置"""

    subscriber_timeout_sec: float = 1800.0


class UploadLimitsConfig(BaseModel):
    """上传限制"""

    max_file_mb: int = 50
    allowed_exts: list[str] = Field(
        default_factory=lambda: ["docx", "txt", "csv", "json", "xlsx", "pdf"]
    )


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "docfill.log"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 基础路径
    storage_dir: Path = Path("storage")

    # 各子配置
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    pickup: PickupConfig = Field(default_factory=PickupConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    libreoffice: LibreOfficeConfig = Field(default_factory=LibreOfficeConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    instantiation: InstantiationConfig = Field(default_factory=InstantiationConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    upload_limits: UploadLimitsConfig = Field(default_factory=UploadLimitsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "DOCFILL_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        kwargs: dict[str, Any] = {}
        if "storage_dir" in runtime_opts:
            kwargs["storage_dir"] = cls._resolve_path(path.parent, runtime_opts["storage_dir"])

        config = cls(
            concurrency=ConcurrencyConfig(**cls._extract(runtime_opts, "concurrency")),
            pickup=PickupConfig(**cls._extract(runtime_opts, "pickup")),
            timeouts=TimeoutConfig(**cls._extract(runtime_opts, "timeouts")),
            libreoffice=LibreOfficeConfig(**cls._extract(runtime_opts, "libreoffice")),
            discovery=DiscoveryConfig(**cls._extract(runtime_opts, "discovery")),
            instantiation=InstantiationConfig(**cls._extract(runtime_opts, "instantiation")),
            notifications=NotificationConfig(**cls._extract(runtime_opts, "notifications")),
            upload_limits=UploadLimitsConfig(**cls._extract(runtime_opts, "upload_limits")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
            **kwargs,
        )

        if config.libreoffice.exe_path:
            config.libreoffice.exe_path = str(
                cls._resolve_path(path.parent, config.libreoffice.exe_path)
            )
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（兼容 {default: x} 写法）"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    @staticmethod
    def _resolve_path(base_dir: Path, value: str | Path) -> Path:
        """相对路径基于配置文件所在目录解析"""
        p = Path(value)
        return p if p.is_absolute() else (base_dir / p).resolve()

    def get_samples_dir(self) -> Path:
        """模板文件目录"""
        return self.storage_dir / "samples"

    def get_downloads_dir(self) -> Path:
        """批量导出归档目录"""
        return self.storage_dir / "downloads"

    def get_job_dir(self, job_id: str) -> Path:
        """获取任务记录目录"""
        return self.storage_dir / "jobs" / job_id

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        for sub in ("samples", "downloads", "jobs"):
            (self.storage_dir / sub).mkdir(exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        path = Path(os.environ.get("DOCFILL_CONFIG_FILE", DEFAULT_CONFIG_PATH))
        _config = RuntimeConfig.from_yaml(path)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    _config = RuntimeConfig.from_yaml(yaml_path or DEFAULT_CONFIG_PATH)
    return _config
