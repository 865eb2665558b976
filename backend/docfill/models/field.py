"""
字段与模板模型 - 模板声明的占位字段

REPLACE 字段在原位替换；RIGHT 字段是标签，值追加在紧随其后的冒号之后。
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field


class FieldStyle(str, Enum):
    """字段替换方式"""
    REPLACE = "REPLACE"  # 原位替换
    RIGHT = "RIGHT"      # 标签右侧追加


class Replacement(NamedTuple):
    """单个字段的替换指令"""
    style: FieldStyle
    value: str | None


# 字段名 → 替换指令
Replacements = dict[str, Replacement]


class TemplateField(BaseModel):
    """模板字段"""
    name: str
    style: FieldStyle = FieldStyle.REPLACE
    required: bool = False


class Template(BaseModel):
    """模板（Sample）"""
    template_id: int
    name: str
    file_path: str = Field(..., description="模板文件存储路径")
    content_hash: str = Field(..., description="SHA-256 十六进制")
    extension: str
    fields: list[TemplateField] = Field(default_factory=list)

    def get_field(self, name: str) -> TemplateField | None:
        """按名称查找字段"""
        for field in self.fields:
            if field.name == name:
                return field
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]
