"""
存储层 - 外部协作方的参考实现

子模块：
- file_store: 模板文件落盘与读取
- repositories: 模板与文档实例的内存仓库
"""

from .file_store import TemplateFileStore, calculate_sha256
from .repositories import DocumentRepository, TemplateRepository

__all__ = [
    "TemplateFileStore",
    "calculate_sha256",
    "TemplateRepository",
    "DocumentRepository",
]
