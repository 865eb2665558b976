"""
纯文本类模板抽取器 - txt / json / csv

json 模板优先取 text/template/body/content 中第一个非空字符串，否则返回整个JSON文本；
csv 模板逐行去除单元格首尾空白后以空格连接，丢弃空行。
"""

from __future__ import annotations

import csv
import io
import json
import logging

from ..interfaces import ITextExtractor

logger = logging.getLogger(__name__)

JSON_TEXT_KEYS = ("text", "template", "body", "content")


def decode_text(data: bytes) -> str:
    """UTF-8 解码（容忍BOM）"""
    return data.decode("utf-8-sig", errors="replace")


class TxtTextExtractor(ITextExtractor):
    """txt 模板"""

    extensions = ("txt",)

    def extract_text(self, data: bytes) -> str:
        return decode_text(data)


class JsonTextExtractor(ITextExtractor):
    """json 模板"""

    extensions = ("json",)

    def extract_text(self, data: bytes) -> str:
        raw = decode_text(data)
        try:
            node = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"JSON模板解析失败，按纯文本处理: {e}")
            return raw

        if isinstance(node, dict):
            for key in JSON_TEXT_KEYS:
                value = node.get(key)
                if isinstance(value, str) and value.strip():
                    return value
        return raw


class CsvTextExtractor(ITextExtractor):
    """csv 模板"""

    extensions = ("csv",)

    def extract_text(self, data: bytes) -> str:
        lines = []
        for row in csv.reader(io.StringIO(decode_text(data))):
            line = " ".join(cell.strip() for cell in row)
            if line.strip():
                lines.append(line)
        return "\n".join(lines)
