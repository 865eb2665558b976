"""
导出器 - 已填充的规范文档（+ 替换表）→ 目标格式字节

- csv: 字段名一行 + 值一行，全部加引号，None 写为空串
- txt: 已填充文档的纯文本（正文段落 → 表格 → 页眉页脚，每段一行）
- docx: 原样返回
- pdf: LibreOffice docx→pdf，任何失败降级为空字节并记录警告
- xlsx: 两列（字段/值）工作表

测试要点：
- test_csv_export: 引号与空值
- test_txt_export: 文本内容
- test_pdf_degrades_to_empty: 转换失败返回空字节
- test_xlsx_export: 字段/值表
"""

from __future__ import annotations

import csv
import io
import logging

from docx import Document
from openpyxl import Workbook

from ..interfaces import DocFillError, IExporter
from ..models import Replacements
from ..registry import CapabilityRegistry
from .docx_blocks import document_text
from .pdf_engine import LibreOfficeEngine

logger = logging.getLogger(__name__)


class CsvExporter(IExporter):
    extensions = ("csv",)

    def export(self, document: bytes, replacements: Replacements) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(list(replacements))
        writer.writerow([r.value if r.value is not None else "" for r in replacements.values()])
        return buffer.getvalue().encode("utf-8")


class TxtExporter(IExporter):
    extensions = ("txt",)

    def export(self, document: bytes, replacements: Replacements) -> bytes:
        return document_text(Document(io.BytesIO(document))).encode("utf-8")


class DocxExporter(IExporter):
    extensions = ("docx",)

    def export(self, document: bytes, replacements: Replacements) -> bytes:
        return document


class PdfExporter(IExporter):
    """docx → pdf（失败时返回空字节）"""

    extensions = ("pdf",)

    def __init__(self, engine: LibreOfficeEngine):
        self.engine = engine

    def export(self, document: bytes, replacements: Replacements) -> bytes:
        try:
            return self.engine.convert(document, "docx", "pdf")
        except (DocFillError, OSError) as e:
            logger.warning(f"PDF 导出失败，输出空内容: {e}")
            return b""


class XlsxExporter(IExporter):
    extensions = ("xlsx",)

    def export(self, document: bytes, replacements: Replacements) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "fields"
        ws.append(["field", "value"])
        for name, replacement in replacements.items():
            ws.append([name, replacement.value if replacement.value is not None else ""])
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()


class ExporterRegistry(CapabilityRegistry[IExporter]):
    """导出器注册表"""

    def export(self, export_format: str, document: bytes, replacements: Replacements) -> bytes:
        """
        按目标格式导出

        Raises:
            UnsupportedFormat: 没有导出器支持该格式
        """
        return self.resolve(export_format).export(document, replacements)


def build_exporters(engine: LibreOfficeEngine) -> ExporterRegistry:
    """默认导出器注册表"""
    return ExporterRegistry(
        [
            CsvExporter(),
            TxtExporter(),
            PdfExporter(engine),
            DocxExporter(),
            XlsxExporter(),
        ]
    )
