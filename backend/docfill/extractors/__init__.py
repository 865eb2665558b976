"""
模板文本抽取 - 上传模板 → 原始文本（供字段发现）

子模块：
- plain: txt / json / csv
- office: docx / xlsx / pdf
"""

from ..registry import CapabilityRegistry
from ..interfaces import ITextExtractor
from .office import DocxTextExtractor, PdfTextExtractor, XlsxTextExtractor
from .plain import CsvTextExtractor, JsonTextExtractor, TxtTextExtractor


def build_extractors() -> CapabilityRegistry[ITextExtractor]:
    """默认抽取器注册表"""
    return CapabilityRegistry(
        [
            CsvTextExtractor(),
            DocxTextExtractor(),
            JsonTextExtractor(),
            TxtTextExtractor(),
            XlsxTextExtractor(),
            PdfTextExtractor(),
        ]
    )


__all__ = [
    "build_extractors",
    "CsvTextExtractor",
    "DocxTextExtractor",
    "JsonTextExtractor",
    "TxtTextExtractor",
    "XlsxTextExtractor",
    "PdfTextExtractor",
]
