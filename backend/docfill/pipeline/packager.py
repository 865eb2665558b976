"""
归档写入器 - 批量导出结果打包为 zip

职责：
1. 单写者顺序写入条目（调用方按请求顺序写入）
2. 条目名为 <文档名>.<格式>，路径分隔符替换为下划线，重名时追加 _<文档ID>
3. 最快压缩级别

测试要点：
- test_entry_names: 条目命名
- test_duplicate_names: 重名处理
"""

from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\\/]+")


def entry_name(document_name: str, export_format: str) -> str:
    name = _SEPARATORS.sub("_", document_name).strip() or "document"
    return f"{name}.{export_format}"


class ArchiveWriter:
    """zip 归档写入器（上下文管理器）"""

    def __init__(self, archive_path: Path):
        self.archive_path = Path(archive_path)
        self.entries: list[str] = []
        self._zip: zipfile.ZipFile | None = None

    def __enter__(self) -> ArchiveWriter:
        self.archive_path.parent.mkdir(parents=True, exist_ok=True)
        self._zip = zipfile.ZipFile(
            self.archive_path, "w", zipfile.ZIP_DEFLATED, compresslevel=1
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def write_entry(
        self, document_name: str, export_format: str, data: bytes, document_id: int
    ) -> str:
        """写入一个条目，返回实际条目名"""
        if self._zip is None:
            raise RuntimeError("ArchiveWriter 未打开")

        name = entry_name(document_name, export_format)
        if name in self.entries:
            stem = name[: -(len(export_format) + 1)]
            name = f"{stem}_{document_id}.{export_format}"
        self._zip.writestr(name, data)
        self.entries.append(name)
        logger.debug(f"归档条目已写入: {name} ({len(data)} 字节)")
        return name
