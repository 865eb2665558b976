"""
配置加载单元测试

每个模块完成后必须运行：pytest backend/tests/unit/test_config.py -v
"""

import logging
from pathlib import Path

import pytest

from docfill.config import RuntimeConfig, get_config, reload_config, setup_logging
from docfill.config.runtime_config import ConcurrencyConfig, LoggingConfig


class TestRuntimeConfig:
    """运行期配置测试"""

    def test_default_config(self):
        """测试默认配置"""
        config = RuntimeConfig()
        assert config.pickup.max_retries == 10
        assert config.pickup.delay_ms == 500
        assert config.discovery.max_field_length == 64
        assert config.discovery.max_dashes == 5
        assert config.instantiation.preserve_run_styles is False

    def test_resolve_max_workers(self):
        """未配置时使用 CPU 核数"""
        assert ConcurrencyConfig(max_workers=3).resolve_max_workers() == 3
        assert ConcurrencyConfig().resolve_max_workers() >= 1

    def test_get_job_dir(self, runtime_config: RuntimeConfig):
        """测试获取任务目录"""
        job_dir = runtime_config.get_job_dir("test-job-id")
        assert job_dir == runtime_config.storage_dir / "jobs" / "test-job-id"

    def test_ensure_dirs(self, runtime_config: RuntimeConfig):
        assert runtime_config.get_samples_dir().is_dir()
        assert runtime_config.get_downloads_dir().is_dir()

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        """环境变量覆盖（嵌套用 __ 分隔）"""
        monkeypatch.setenv("DOCFILL_PICKUP__MAX_RETRIES", "3")
        assert RuntimeConfig().pickup.max_retries == 3


class TestFromYaml:
    """YAML 加载测试"""

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        config = RuntimeConfig.from_yaml(tmp_path / "absent.yaml")
        assert config.pickup.max_retries == 10

    def test_default_wrapper_and_relative_storage(self, tmp_path: Path):
        """{default: x} 写法展平，相对路径基于配置文件目录"""
        yaml_path = tmp_path / "runtime.yaml"
        yaml_path.write_text(
            "runtime_options:\n"
            "  storage_dir: data\n"
            "  pickup:\n"
            "    max_retries:\n"
            "      default: 4\n"
            "      desc: 重试次数\n"
            "    delay_ms: 100\n"
            "  discovery:\n"
            "    deny_list: [PDF]\n",
            encoding="utf-8",
        )
        config = RuntimeConfig.from_yaml(yaml_path)
        assert config.storage_dir == (tmp_path / "data").resolve()
        assert config.pickup.max_retries == 4
        assert config.pickup.delay_ms == 100
        assert config.discovery.deny_list == ["PDF"]

    def test_shipped_runtime_yaml(self):
        """仓库自带配置可加载"""
        path = Path(__file__).resolve().parents[2] / "config" / "docfill_runtime.yaml"
        config = RuntimeConfig.from_yaml(path)
        assert config.concurrency.max_workers is None
        assert "PDF" in config.discovery.deny_list

    def test_reload_config(self, tmp_path: Path):
        yaml_path = tmp_path / "runtime.yaml"
        yaml_path.write_text("runtime_options:\n  pickup:\n    delay_ms: 7\n", encoding="utf-8")
        config = reload_config(yaml_path)
        assert get_config() is config
        assert config.pickup.delay_ms == 7


class TestLogging:
    """日志初始化测试"""

    def test_setup_logging_with_file(self, runtime_config: RuntimeConfig):
        config = runtime_config.model_copy(
            update={"logging": LoggingConfig(log_level="debug", log_to_file=True)}
        )
        root = logging.getLogger()
        original_level = root.level
        setup_logging(config)
        try:
            logging.getLogger("docfill.test").debug("日志测试")
            assert logging.getLogger().level == logging.DEBUG
            for handler in logging.getLogger().handlers:
                handler.flush()
            log_file = config.storage_dir / "logs" / "docfill.log"
            assert "日志测试" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            root.setLevel(original_level)
