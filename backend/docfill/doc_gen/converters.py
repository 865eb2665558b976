"""
格式转换器 - 非规范格式 → 规范文档（DOCX）

- txt: 每行一个段落
- json: 抽取出的模板文本，每行一个段落
- csv: 单个表格，每行一个表格行
- xlsx: 每个工作表一个标题段落 + 表格
- pdf: LibreOffice 子进程（可选，不可用时报告 available=False）

测试要点：
- test_txt_to_docx: 段落保持原文
- test_csv_to_docx: 表格行列
- test_pdf_unavailable: LibreOffice 不可用时报错
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile

from docx import Document
from openpyxl import load_workbook

from ..extractors.plain import JsonTextExtractor, decode_text
from ..interfaces import ConversionError, ConversionServiceUnavailable, IFormatConverter
from ..registry import CapabilityRegistry
from .pdf_engine import LibreOfficeEngine

logger = logging.getLogger(__name__)


def _save(document) -> bytes:
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _fill_table(document, rows: list[list[str]]) -> None:
    """按最大列数建表（列数不足的行以空串补齐）"""
    if not rows:
        return
    width = max(len(r) for r in rows) or 1
    table = document.add_table(rows=len(rows), cols=width)
    for row, values in zip(table.rows, rows):
        for cell, value in zip(row.cells, values):
            cell.text = value


class TxtToDocxConverter(IFormatConverter):
    """txt → docx"""

    extensions = ("txt",)

    def to_canonical(self, data: bytes) -> bytes:
        document = Document()
        for line in decode_text(data).splitlines():
            document.add_paragraph(line)
        return _save(document)


class JsonToDocxConverter(IFormatConverter):
    """json → docx（抽取出的模板文本按行成段）"""

    extensions = ("json",)

    def to_canonical(self, data: bytes) -> bytes:
        document = Document()
        for line in JsonTextExtractor().extract_text(data).splitlines():
            document.add_paragraph(line)
        return _save(document)


class CsvToDocxConverter(IFormatConverter):
    """csv → docx 表格"""

    extensions = ("csv",)

    def to_canonical(self, data: bytes) -> bytes:
        rows = [row for row in csv.reader(io.StringIO(decode_text(data))) if row]
        document = Document()
        _fill_table(document, rows)
        return _save(document)


class XlsxToDocxConverter(IFormatConverter):
    """xlsx → docx（每个工作表一个表格）"""

    extensions = ("xlsx",)

    def to_canonical(self, data: bytes) -> bytes:
        try:
            wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (OSError, ValueError, KeyError, zipfile.BadZipFile) as e:
            raise ConversionError(f"xlsx 读取失败: {e}") from e

        document = Document()
        try:
            for ws in wb.worksheets:
                rows = [
                    ["" if v is None else str(v) for v in values]
                    for values in ws.iter_rows(values_only=True)
                    if any(v is not None for v in values)
                ]
                if not rows:
                    continue
                document.add_paragraph(ws.title)
                _fill_table(document, rows)
        finally:
            wb.close()
        return _save(document)


class PdfToDocxConverter(IFormatConverter):
    """pdf → docx（LibreOffice）"""

    extensions = ("pdf",)

    def __init__(self, engine: LibreOfficeEngine):
        self.engine = engine

    @property
    def available(self) -> bool:
        return self.engine.available

    def to_canonical(self, data: bytes) -> bytes:
        if not self.available:
            raise ConversionServiceUnavailable("libreoffice")
        logger.debug(f"pdf → docx 转换: {len(data)} 字节")
        return self.engine.convert(data, "pdf", "docx")


def build_converters(engine: LibreOfficeEngine) -> CapabilityRegistry[IFormatConverter]:
    """默认转换器注册表"""
    return CapabilityRegistry(
        [
            TxtToDocxConverter(),
            JsonToDocxConverter(),
            CsvToDocxConverter(),
            XlsxToDocxConverter(),
            PdfToDocxConverter(engine),
        ]
    )
