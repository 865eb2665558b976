"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- TemplateField / Template: 模板及其占位字段
- ValueBinding / DocumentRecord: 文档实例与字段值
- ExportJob / JobSnapshot: 批量导出任务与推送快照
"""

from .document import DocumentRecord, ValueBinding
from .field import FieldStyle, Replacement, Replacements, Template, TemplateField
from .job import DocumentFailure, ExportJob, JobSnapshot, JobStatus

__all__ = [
    "FieldStyle",
    "Replacement",
    "Replacements",
    "Template",
    "TemplateField",
    "ValueBinding",
    "DocumentRecord",
    "ExportJob",
    "JobSnapshot",
    "JobStatus",
    "DocumentFailure",
]
