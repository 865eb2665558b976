"""
模块接口契约 - 定义各模块的抽象接口与异常

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 抽取器/转换器/导出器统一实现 supports(extension)，由注册表按顺序分派
3. 外部协作方（模板文件存储、文档来源、任务持久化）只定义边界

使用方式：
    from docfill.interfaces import IExporter

    class MyExporter(IExporter):
        extensions = ("md",)

        def export(self, document: bytes, replacements: Replacements) -> bytes:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import DocumentRecord, ExportJob, Replacements


def normalize_extension(extension: str) -> str:
    """扩展名归一化：去前导点、去空白、转小写"""
    return extension.strip().lstrip(".").lower()


# ============================================================================
# 格式适配器接口
# ============================================================================

class ISupportsFormat(ABC):
    """格式能力声明 - 注册表据此做“首个匹配”分派"""

    extensions: tuple[str, ...] = ()

    def supports(self, extension: str) -> bool:
        """是否支持该扩展名（大小写不敏感）"""
        return normalize_extension(extension) in self.extensions


class ITextExtractor(ISupportsFormat):
    """文本抽取器接口 - 上传模板 → 原始文本（供字段发现）"""

    @abstractmethod
    def extract_text(self, data: bytes) -> str:
        """
        抽取模板文本

        Args:
            data: 上传文件的原始字节

        Returns:
            原始文本（可能为空串，由字段发现判定是否可用）
        """
        ...


class IFormatConverter(ISupportsFormat):
    """格式转换器接口 - 非规范格式 → 规范富文本（DOCX）"""

    @property
    def available(self) -> bool:
        """转换器当前是否可用（依赖外部进程的转换器可能不可用）"""
        return True

    @abstractmethod
    def to_canonical(self, data: bytes) -> bytes:
        """
        转换为规范格式

        Raises:
            ConversionServiceUnavailable: 外部转换进程不可用
            ConversionError: 转换失败
        """
        ...


class IExporter(ISupportsFormat):
    """导出器接口 - 已填充的规范文档 → 最终输出字节"""

    @abstractmethod
    def export(self, document: bytes, replacements: Replacements) -> bytes:
        """
        导出

        Args:
            document: 已完成替换的DOCX字节
            replacements: 字段名 → (替换方式, 值)

        Returns:
            目标格式字节
        """
        ...


# ============================================================================
# 外部协作方接口
# ============================================================================

class ITemplateStore(ABC):
    """模板文件存储接口 - 按路径读取模板字节"""

    @abstractmethod
    def read(self, path: str) -> bytes:
        """
        读取模板字节

        Raises:
            TemplateFileMissing: 路径在磁盘上不存在
        """
        ...


class IDocumentSource(ABC):
    """文档来源接口 - 按ID解析文档（含模板与字段值）"""

    @abstractmethod
    def get_document(self, document_id: int) -> DocumentRecord | None:
        """获取文档，不存在时返回None"""
        ...


class IJobManager(ABC):
    """导出任务持久化接口"""

    @abstractmethod
    def create_job(self, export_format: str, document_ids: list[int]) -> ExportJob:
        """创建任务（CREATED）"""
        ...

    @abstractmethod
    def get_job(self, job_id: str) -> ExportJob | None:
        """获取任务快照副本"""
        ...

    @abstractmethod
    def update_job(self, job: ExportJob) -> None:
        """持久化任务状态"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class DocFillError(Exception):
    """基础异常"""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | {self.details}"
        return self.message


class UnrecognizedTemplateFormat(DocFillError):
    """模板抽取文本为空或不可用"""

    def __init__(self, source: str | None = None, reason: str | None = None) -> None:
        super().__init__(
            reason or "模板文本为空，无法识别字段", {"source": source} if source else None
        )


class UnsupportedFormat(DocFillError):
    """没有适配器支持该扩展名"""

    def __init__(self, extension: str | None) -> None:
        super().__init__(f"不支持的格式: {extension!r}", {"extension": extension})
        self.extension = extension


class ConversionServiceUnavailable(DocFillError):
    """外部文档转换进程（LibreOffice）不可用"""

    def __init__(self, service: str = "libreoffice") -> None:
        super().__init__(f"文档转换服务不可用: {service}", {"service": service})


class ConversionError(DocFillError):
    """转换错误"""
    pass


class TemplateFileMissing(DocFillError):
    """模板文件在磁盘上不存在"""

    def __init__(self, path: str) -> None:
        super().__init__(f"模板文件不存在: {path}", {"path": path})
        self.path = path


class JobNotVisible(DocFillError):
    """任务在重试次数内始终不可见"""

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(f"任务不可见: {job_id}", {"job_id": job_id, "attempts": attempts})


class InvalidJobTransition(DocFillError):
    """非法的任务状态迁移"""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"非法状态迁移: {current} -> {target}", {"from": current, "to": target})


class JobNotFound(DocFillError):
    """任务不存在"""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"任务不存在: {job_id}", {"job_id": job_id})


class JobNotReady(DocFillError):
    """任务尚未完成，归档不可下载"""

    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(f"任务尚未完成: {job_id}", {"job_id": job_id, "status": status})


class DocumentNotFound(DocFillError):
    """文档不存在"""

    def __init__(self, document_ids: list[int]) -> None:
        super().__init__(f"文档不存在: {document_ids}", {"document_ids": document_ids})


class TemplateNotFound(DocFillError):
    """模板不存在"""

    def __init__(self, template_id: int) -> None:
        super().__init__(f"模板不存在: {template_id}", {"template_id": template_id})


class TemplateAlreadyExists(DocFillError):
    """模板名称重复"""

    def __init__(self, name: str) -> None:
        super().__init__(f"模板名称已存在: {name}", {"name": name})


class UnknownFieldBinding(DocFillError):
    """字段值引用了模板中不存在的字段"""

    def __init__(self, field_name: str, template_name: str) -> None:
        super().__init__(
            f"模板 {template_name} 中不存在字段: {field_name}",
            {"field_name": field_name, "template": template_name},
        )


class RequiredValueMissing(DocFillError):
    """必填字段缺少非空值"""

    def __init__(self, field_name: str, template_name: str) -> None:
        super().__init__(
            f"必填字段缺少值: {field_name}",
            {"field_name": field_name, "template": template_name},
        )


class UploadRejected(DocFillError):
    """上传文件不满足上传限制"""
    pass
