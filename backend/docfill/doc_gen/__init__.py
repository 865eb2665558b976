"""
文档生成模块 - 字段发现/模板实例化/格式转换/导出

子模块：
- discovery: 字段发现引擎
- instantiation: 模板实例化引擎（DOCX run 级替换）
- converters: 非规范格式 → DOCX
- exporters: 已填充 DOCX → csv/txt/pdf/docx/xlsx
- renderer: 单文档渲染流程
- pdf_engine: LibreOffice 转换引擎
"""

from .converters import build_converters
from .discovery import FieldDiscoveryEngine, discover_fields
from .exporters import ExporterRegistry, build_exporters
from .instantiation import TemplateInstantiator
from .pdf_engine import LibreOfficeEngine
from .renderer import DocumentRenderer

__all__ = [
    "FieldDiscoveryEngine",
    "discover_fields",
    "TemplateInstantiator",
    "build_converters",
    "ExporterRegistry",
    "build_exporters",
    "DocumentRenderer",
    "LibreOfficeEngine",
]
