"""
模板文件存储 - 上传模板落盘到 storage/samples

文件名为 <安全化原名>_<时间戳>.<扩展名>，同名时追加序号，不覆盖已有文件。
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from pathlib import Path

from ..interfaces import ITemplateStore, TemplateFileMissing, normalize_extension

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.-]+")


def calculate_sha256(data: bytes) -> str:
    """内容哈希（十六进制）"""
    return hashlib.sha256(data).hexdigest()


def safe_stem(name: str) -> str:
    stem = _UNSAFE_CHARS.sub("_", Path(name).stem).strip("._")
    return stem or "template"


class TemplateFileStore(ITemplateStore):
    """基于本地目录的模板文件存储"""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def save(self, data: bytes, original_name: str, extension: str) -> str:
        """保存模板字节，返回存储路径"""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        ext = normalize_extension(extension)
        base = f"{safe_stem(original_name)}_{int(time.time() * 1000)}"

        attempt = 0
        while True:
            suffix = f"_{attempt}" if attempt else ""
            path = self.base_dir / f"{base}{suffix}.{ext}"
            try:
                with open(path, "xb") as f:
                    f.write(data)
                break
            except FileExistsError:
                attempt += 1

        logger.info(f"模板文件已保存: {path}")
        return str(path)

    def read(self, path: str) -> bytes:
        file_path = Path(path)
        if not file_path.is_file():
            raise TemplateFileMissing(path)
        return file_path.read_bytes()
