"""
文档实例模型 - 终端用户为模板字段提供的值

校验规则：
- 引用未知字段的值被拒绝
- required=True 的字段必须有非空值
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..interfaces import RequiredValueMissing, UnknownFieldBinding
from .field import Replacement, Replacements, Template


class ValueBinding(BaseModel):
    """字段值绑定"""
    field_name: str
    value: str | None = None


class DocumentRecord(BaseModel):
    """文档实例（Documentation）"""
    document_id: int
    name: str
    template: Template
    values: list[ValueBinding] = Field(default_factory=list)

    def validate_bindings(self) -> None:
        """
        校验字段值

        Raises:
            UnknownFieldBinding: 值引用了模板中不存在的字段
            RequiredValueMissing: 必填字段没有非空值
        """
        known = set(self.template.field_names)
        for binding in self.values:
            if binding.field_name not in known:
                raise UnknownFieldBinding(binding.field_name, self.template.name)

        for field in self.template.fields:
            if not field.required:
                continue
            if not any(
                b.field_name == field.name and b.value is not None for b in self.values
            ):
                raise RequiredValueMissing(field.name, self.template.name)

    def build_replacements(self) -> Replacements:
        """按模板字段顺序连接字段值，构建替换表（无值的字段不进入替换表）"""
        replacements: Replacements = {}
        for field in self.template.fields:
            binding = next((b for b in self.values if b.field_name == field.name), None)
            if binding is None:
                continue
            replacements[field.name] = Replacement(field.style, binding.value)
        return replacements
