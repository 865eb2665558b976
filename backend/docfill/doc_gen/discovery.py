"""
字段发现引擎 - 从模板原始文本中识别占位字段

两组模式在同一文本上独立匹配后合并：
1. 定界占位 {{NAME}} → REPLACE；兜底：定界符外的裸大写/下划线词（长度≥2）→ REPLACE
2. 标签 `Name:` / `Name-`（词/连字符序列紧跟冒号或短横线）→ RIGHT

后置过滤（两组通用）：长度≥64、全为短横线、短横线超过5个的候选被丢弃。
同名字段同时出现在两组时只保留 REPLACE。

测试要点：
- test_delimited_tokens: 定界占位识别
- test_label_tokens: 标签识别
- test_replace_wins_over_right: 同名优先级
- test_noise_filters: 噪声过滤
- test_blank_text: 空文本报错
- test_idempotent: 幂等
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..config import DiscoveryConfig, get_config
from ..interfaces import UnrecognizedTemplateFormat
from ..models import FieldStyle, TemplateField

# 定界占位
DELIMITED_PATTERN = re.compile(r"\{\{([^}]*)}}")

# 定界占位优先，其次是裸大写词（至少含一个字母）
TOKEN_PATTERN = re.compile(r"\{\{([^}]*)}}|\b((?=[A-Z_]*[A-Z])[A-Z_]{2,})\b")

# 标签：词/连字符序列紧跟冒号或短横线，且其后不再是词字符
LABEL_PATTERN = re.compile(r"(?<![\w{-])(\w[\w-]*?)[:\-](?![\w-])")


def token_name(match: re.Match[str]) -> str:
    """TOKEN_PATTERN 匹配项对应的字段名（已去空白）"""
    return (match.group(1) if match.group(1) is not None else match.group(2)).strip()


def is_delimited(match: re.Match[str]) -> bool:
    return match.group(1) is not None


class FieldDiscoveryEngine:
    """字段发现引擎"""

    def __init__(self, config: DiscoveryConfig | None = None):
        self.config = config or get_config().discovery
        self._allow = set(self.config.allow_list)
        self._deny = set(self.config.deny_list)

    def discover(self, text: str) -> list[TemplateField]:
        """
        识别模板字段（按首次出现顺序去重）

        Raises:
            UnrecognizedTemplateFormat: 文本为空
        """
        if not text or not text.strip():
            raise UnrecognizedTemplateFormat()

        replace_names = self._replace_candidates(text)
        replace_set = set(replace_names)
        right_names = [n for n in self._label_candidates(text) if n not in replace_set]

        fields = [TemplateField(name=n, style=FieldStyle.REPLACE) for n in replace_names]
        fields += [TemplateField(name=n, style=FieldStyle.RIGHT) for n in right_names]
        return fields

    def iter_replace_tokens(self, text: str) -> Iterator[re.Match[str]]:
        """REPLACE 候选匹配：定界占位，以及通过开关与名单的裸大写词"""
        for match in TOKEN_PATTERN.finditer(text):
            if is_delimited(match) or self._accept_bare(token_name(match)):
                yield match

    def _replace_candidates(self, text: str) -> list[str]:
        names: list[str] = []
        for match in self.iter_replace_tokens(text):
            name = token_name(match)
            if self._keep(name) and name not in names:
                names.append(name)
        return names

    def _label_candidates(self, text: str) -> list[str]:
        names: list[str] = []
        for match in LABEL_PATTERN.finditer(text):
            name = match.group(1).strip()
            if self._keep(name) and name not in names:
                names.append(name)
        return names

    def _accept_bare(self, name: str) -> bool:
        """裸大写词兜底：开关 + 允许/拒绝名单"""
        if not self.config.bare_tokens:
            return False
        if len(name) < self.config.bare_token_min_length:
            return False
        if name in self._deny:
            return False
        if self._allow and name not in self._allow:
            return False
        return True

    def _keep(self, name: str) -> bool:
        """噪声过滤"""
        if not name:
            return False
        if len(name) >= self.config.max_field_length:
            return False
        if all(c == "-" for c in name):
            return False
        if name.count("-") > self.config.max_dashes:
            return False
        return True


def discover_fields(text: str, config: DiscoveryConfig | None = None) -> list[TemplateField]:
    """便捷函数：识别模板字段"""
    return FieldDiscoveryEngine(config).discover(text)
