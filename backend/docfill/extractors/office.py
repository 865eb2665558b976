"""
办公文档模板抽取器 - docx / xlsx / pdf

依赖：
- python-docx: 段落、表格、页眉页脚文本
- openpyxl: 工作表单元格值（只读模式）
- pdfplumber: PDF 页面文本

文件损坏或不是对应格式时抛出 UnrecognizedTemplateFormat。
"""

from __future__ import annotations

import io
import zipfile

import pdfplumber
from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pdfminer.psparser import PSException
from pdfplumber.utils.exceptions import PdfminerException

from ..doc_gen.docx_blocks import document_text
from ..interfaces import ITextExtractor, UnrecognizedTemplateFormat


class DocxTextExtractor(ITextExtractor):
    """docx 模板：正文段落、表格单元格、页眉、页脚"""

    extensions = ("docx",)

    def extract_text(self, data: bytes) -> str:
        try:
            document = Document(io.BytesIO(data))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
            raise UnrecognizedTemplateFormat("docx", f"docx 读取失败: {e}") from e
        return document_text(document)


class XlsxTextExtractor(ITextExtractor):
    """xlsx 模板：每行非空单元格以空格连接"""

    extensions = ("xlsx",)

    def extract_text(self, data: bytes) -> str:
        try:
            wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
            raise UnrecognizedTemplateFormat("xlsx", f"xlsx 读取失败: {e}") from e

        lines = []
        try:
            for ws in wb.worksheets:
                for row in ws.iter_rows(values_only=True):
                    cells = [str(v).strip() for v in row if v is not None]
                    line = " ".join(c for c in cells if c)
                    if line:
                        lines.append(line)
        finally:
            wb.close()
        return "\n".join(lines)


class PdfTextExtractor(ITextExtractor):
    """pdf 模板：逐页文本"""

    extensions = ("pdf",)

    def extract_text(self, data: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except (PdfminerException, PSException, KeyError, ValueError) as e:
            raise UnrecognizedTemplateFormat("pdf", f"pdf 读取失败: {e}") from e
        return "\n".join(p for p in pages if p.strip())
