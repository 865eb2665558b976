"""
文档渲染 - 模板字节 → 规范化 → 实例化 → 导出

单文档导出与批量任务共用同一渲染流程；批量任务传入任务级转换器缓存。
"""

from __future__ import annotations

from collections.abc import Callable

from ..interfaces import IFormatConverter, normalize_extension
from ..models import Replacements
from ..registry import CapabilityRegistry
from .exporters import ExporterRegistry
from .instantiation import TemplateInstantiator

CANONICAL_EXTENSION = "docx"


class DocumentRenderer:
    """文档渲染器"""

    def __init__(
        self,
        converters: CapabilityRegistry[IFormatConverter],
        exporters: ExporterRegistry,
        instantiator: TemplateInstantiator | None = None,
    ):
        self.converters = converters
        self.exporters = exporters
        self.instantiator = instantiator or TemplateInstantiator()

    def canonicalize(
        self,
        data: bytes,
        extension: str,
        resolve_converter: Callable[[str], IFormatConverter] | None = None,
    ) -> bytes:
        """
        转换为规范 DOCX（docx 原样返回）

        Raises:
            UnsupportedFormat: 没有转换器支持该扩展名
            ConversionServiceUnavailable: 外部转换进程不可用
        """
        ext = normalize_extension(extension)
        if ext == CANONICAL_EXTENSION:
            return data
        resolve = resolve_converter or self.converters.resolve
        return resolve(ext).to_canonical(data)

    def render(
        self,
        template: bytes,
        extension: str,
        replacements: Replacements,
        export_format: str,
        resolve_converter: Callable[[str], IFormatConverter] | None = None,
    ) -> bytes:
        canonical = self.canonicalize(template, extension, resolve_converter)
        filled = self.instantiator.instantiate(canonical, replacements)
        return self.exporters.export(export_format, filled, replacements)
