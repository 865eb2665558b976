"""
DOCX 块遍历 - 正文/表格/页眉页脚中的段落

只访问有独立定义的页眉页脚（is_linked_to_previous=False），
避免读取时为链接到前一节的页眉页脚生成空定义。
"""

from __future__ import annotations

from collections.abc import Iterator

from docx.document import Document as DocxDocument
from docx.table import Table
from docx.text.paragraph import Paragraph


def iter_table_paragraphs(table: Table) -> Iterator[Paragraph]:
    """表格单元格内段落（含嵌套表格，合并单元格只访问一次）"""
    seen: set = set()  # 持有元素引用，lxml 代理对象身份保持稳定
    for row in table.rows:
        for cell in row.cells:
            if cell._tc in seen:
                continue
            seen.add(cell._tc)
            yield from cell.paragraphs
            for nested in cell.tables:
                yield from iter_table_paragraphs(nested)


def iter_headers_footers(document: DocxDocument):
    """所有有独立定义的页眉页脚（去重）"""
    seen: set[str] = set()
    for section in document.sections:
        for part in (
            section.header,
            section.footer,
            section.first_page_header,
            section.first_page_footer,
            section.even_page_header,
            section.even_page_footer,
        ):
            if part.is_linked_to_previous:
                continue
            key = str(part.part.partname)
            if key in seen:
                continue
            seen.add(key)
            yield part


def iter_all_paragraphs(document: DocxDocument) -> Iterator[Paragraph]:
    """正文段落 → 正文表格 → 页眉页脚（段落与表格）"""
    yield from document.paragraphs
    for table in document.tables:
        yield from iter_table_paragraphs(table)
    for part in iter_headers_footers(document):
        yield from part.paragraphs
        for table in part.tables:
            yield from iter_table_paragraphs(table)


def document_text(document: DocxDocument) -> str:
    """文档纯文本：每个非空段落一行"""
    lines = [p.text for p in iter_all_paragraphs(document)]
    return "\n".join(line for line in lines if line.strip())
