"""
内存仓库 - 模板与文档实例

线程安全：所有读写在锁内完成，返回副本。
"""

from __future__ import annotations

import itertools
import threading

from ..interfaces import IDocumentSource, TemplateNotFound
from ..models import DocumentRecord, Template


class TemplateRepository:
    """模板仓库"""

    def __init__(self):
        self._templates: dict[int, Template] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._ids)

    def add(self, template: Template) -> Template:
        with self._lock:
            self._templates[template.template_id] = template.model_copy(deep=True)
        return template

    def update(self, template: Template) -> None:
        with self._lock:
            if template.template_id not in self._templates:
                raise TemplateNotFound(template.template_id)
            self._templates[template.template_id] = template.model_copy(deep=True)

    def get(self, template_id: int) -> Template | None:
        with self._lock:
            template = self._templates.get(template_id)
            return template.model_copy(deep=True) if template else None

    def find_by_name(self, name: str) -> Template | None:
        with self._lock:
            for template in self._templates.values():
                if template.name == name:
                    return template.model_copy(deep=True)
        return None

    def find_by_hash(self, content_hash: str) -> Template | None:
        """按内容哈希查找（相同字节的重复上传复用已存文件）"""
        with self._lock:
            for template in self._templates.values():
                if template.content_hash == content_hash:
                    return template.model_copy(deep=True)
        return None

    def list_templates(self) -> list[Template]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._templates.values()]


class DocumentRepository(IDocumentSource):
    """文档实例仓库"""

    def __init__(self):
        self._documents: dict[int, DocumentRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._ids)

    def add(self, document: DocumentRecord) -> DocumentRecord:
        with self._lock:
            self._documents[document.document_id] = document.model_copy(deep=True)
        return document

    def get_document(self, document_id: int) -> DocumentRecord | None:
        with self._lock:
            document = self._documents.get(document_id)
            return document.model_copy(deep=True) if document else None
