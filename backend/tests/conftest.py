"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(runtime_config, docx_factory):
        data = docx_factory([["Hello {{", "NAME", "}}"]])
"""

from __future__ import annotations

import io
from collections import Counter
from collections.abc import Callable
from pathlib import Path

import pytest
from docx import Document

from docfill.config import runtime_config as runtime_config_module
from docfill.config.runtime_config import (
    ConcurrencyConfig,
    NotificationConfig,
    PickupConfig,
    RuntimeConfig,
)
from docfill.doc_gen import (
    DocumentRenderer,
    FieldDiscoveryEngine,
    LibreOfficeEngine,
    TemplateInstantiator,
    build_converters,
    build_exporters,
)
from docfill.models import (
    DocumentRecord,
    FieldStyle,
    Template,
    TemplateField,
    ValueBinding,
)
from docfill.pipeline import NotificationChannel
from docfill.storage import TemplateFileStore, calculate_sha256


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def runtime_config(tmp_path: Path) -> RuntimeConfig:
    """运行期配置（存储目录指向临时目录，拾取重试缩短）"""
    config = RuntimeConfig(
        storage_dir=tmp_path / "storage",
        concurrency=ConcurrencyConfig(max_workers=4, job_workers=1),
        pickup=PickupConfig(max_retries=3, delay_ms=1),
        notifications=NotificationConfig(subscriber_timeout_sec=5),
    )
    config.ensure_dirs()
    return config


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, runtime_config: RuntimeConfig):
    """全局配置替换为测试配置"""
    monkeypatch.setattr(runtime_config_module, "_config", runtime_config)


# ============================================================================
# 渲染 Fixtures
# ============================================================================

@pytest.fixture
def offline_engine(runtime_config: RuntimeConfig) -> LibreOfficeEngine:
    """不可用的 LibreOffice 引擎"""
    return LibreOfficeEngine(exe_path="", config=runtime_config)


@pytest.fixture
def renderer(offline_engine: LibreOfficeEngine, runtime_config: RuntimeConfig) -> DocumentRenderer:
    return DocumentRenderer(
        converters=build_converters(offline_engine),
        exporters=build_exporters(offline_engine),
        instantiator=TemplateInstantiator(
            runtime_config.instantiation, FieldDiscoveryEngine(runtime_config.discovery)
        ),
    )


@pytest.fixture
def channel() -> NotificationChannel:
    return NotificationChannel(idle_timeout=5)


# ============================================================================
# 文档 Fixtures
# ============================================================================

@pytest.fixture
def docx_factory() -> Callable[..., bytes]:
    """
    构造 DOCX 字节

    paragraphs: 每个段落的 run 文本列表
    table: 表格单元格文本（二维）
    header: 页眉段落文本
    """

    def build(
        paragraphs: list[list[str]],
        table: list[list[str]] | None = None,
        header: str | None = None,
    ) -> bytes:
        document = Document()
        for runs in paragraphs:
            paragraph = document.add_paragraph()
            for text in runs:
                paragraph.add_run(text)
        if table:
            t = document.add_table(rows=len(table), cols=len(table[0]))
            for row, values in zip(t.rows, table):
                for cell, value in zip(row.cells, values):
                    cell.text = value
        if header is not None:
            document.sections[0].header.paragraphs[0].text = header
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return build


class CountingStore(TemplateFileStore):
    """记录每个路径被读取的次数"""

    def __init__(self, base_dir: Path):
        super().__init__(base_dir)
        self.reads: Counter[str] = Counter()

    def read(self, path: str) -> bytes:
        self.reads[path] += 1
        return super().read(path)


@pytest.fixture
def template_store(runtime_config: RuntimeConfig) -> CountingStore:
    return CountingStore(runtime_config.get_samples_dir())


@pytest.fixture
def greeting_template(template_store: CountingStore) -> Template:
    """txt 模板：Hello {{NAME}}, balance: """
    data = b"Hello {{NAME}}, balance: "
    path = template_store.save(data, "greeting.txt", "txt")
    return Template(
        template_id=1,
        name="greeting",
        file_path=path,
        content_hash=calculate_sha256(data),
        extension="txt",
        fields=[
            TemplateField(name="NAME", style=FieldStyle.REPLACE, required=True),
            TemplateField(name="balance", style=FieldStyle.RIGHT),
        ],
    )


@pytest.fixture
def make_document(greeting_template: Template) -> Callable[..., DocumentRecord]:
    def build(document_id: int, name: str, value: str | None = "Ann",
              template: Template | None = None) -> DocumentRecord:
        return DocumentRecord(
            document_id=document_id,
            name=name,
            template=template or greeting_template,
            values=[ValueBinding(field_name="NAME", value=value)],
        )

    return build
