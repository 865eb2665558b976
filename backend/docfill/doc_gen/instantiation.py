"""
模板实例化引擎 - 在规范文档（DOCX）中替换字段值

占位符可能被拆分到多个独立样式的 run 中（如 "{{" / "NAME" / "}}"），
因此按段落拼接所有 run 文本后再匹配。

每个段落（正文、表格单元格含嵌套表格、页眉页脚）：
1. RIGHT：整段文本等于 RIGHT 字段名的 run，若下一个 run 去空白后恰为 ":"，
   改写为 "<name>: <value>" 并清空冒号 run；否则保持原样
2. REPLACE：对拼接文本按发现引擎的同一匹配规则（含裸词开关与名单）匹配，
   已绑定的 REPLACE 字段替换为值
   （值为 None 时替换为空串）；未绑定的占位保持原样；RIGHT 写入的值不再参与匹配
3. 默认模式：替换后的全文写入第一个 run，其余 run 清空（非首个 run 的样式丢失）；
   preserve_run_styles 模式：逐个匹配就地改写，跨 run 的占位把值写入首个覆盖 run

缺失绑定不报错；必填校验在文档实例校验阶段完成。

测试要点：
- test_split_runs: 跨 run 占位替换
- test_right_label_with_colon: RIGHT 字段追加
- test_right_label_without_colon: 无冒号不处理
- test_tables_headers_footers: 表格与页眉页脚
- test_preserve_run_styles: 保留样式模式
"""

from __future__ import annotations

import io
import logging
import re

from docx import Document
from docx.document import Document as DocxDocument
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from ..config import InstantiationConfig, get_config
from ..models import FieldStyle, Replacements
from .discovery import FieldDiscoveryEngine, token_name
from .docx_blocks import iter_all_paragraphs

logger = logging.getLogger(__name__)

# (起始下标, 结束下标, 替换值)，下标基于段落拼接文本
Substitution = tuple[int, int, str]


def _run_offsets(texts: list[str]) -> list[int]:
    offsets = []
    position = 0
    for text in texts:
        offsets.append(position)
        position += len(text)
    return offsets


class TemplateInstantiator:
    """模板实例化引擎"""

    def __init__(
        self,
        config: InstantiationConfig | None = None,
        discovery: FieldDiscoveryEngine | None = None,
    ):
        self.config = config or get_config().instantiation
        self.discovery = discovery or FieldDiscoveryEngine()

    def instantiate(self, template: bytes, replacements: Replacements) -> bytes:
        """DOCX 字节 → 已替换的 DOCX 字节"""
        document = Document(io.BytesIO(template))
        self.fill(document, replacements)
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    def fill(self, document: DocxDocument, replacements: Replacements) -> None:
        """就地替换整个文档"""
        count = 0
        for paragraph in iter_all_paragraphs(document):
            self.fill_paragraph(paragraph, replacements)
            count += 1
        logger.debug(f"实例化完成: {count} 个段落, {len(replacements)} 个字段")

    def fill_paragraph(self, paragraph: Paragraph, replacements: Replacements) -> None:
        runs = paragraph.runs
        if not runs:
            return

        labelled = self._apply_right_labels(runs, replacements)
        texts = [run.text for run in runs]
        substitutions = self._find_substitutions(texts, labelled, replacements)
        if not substitutions:
            return

        if self.config.preserve_run_styles:
            self._replace_in_place(runs, texts, substitutions)
        else:
            self._replace_collapsed(runs, texts, substitutions)

    def _apply_right_labels(self, runs: list[Run], replacements: Replacements) -> dict[int, int]:
        """改写 RIGHT 标签，返回 {run 下标: 字段名长度}"""
        labelled: dict[int, int] = {}
        for index, (current, following) in enumerate(zip(runs, runs[1:])):
            name = current.text
            replacement = replacements.get(name)
            if replacement is None or replacement.style is not FieldStyle.RIGHT:
                continue
            if following.text.strip() != ":":
                continue
            current.text = f"{name}: {replacement.value or ''}"
            following.text = ""
            labelled[index] = len(name)
        return labelled

    def _find_substitutions(
        self, texts: list[str], labelled: dict[int, int], replacements: Replacements
    ) -> list[Substitution]:
        offsets = _run_offsets(texts)
        # RIGHT 写入的 ": <value>" 区间
        inserted = [
            (offsets[i] + keep, offsets[i] + len(texts[i])) for i, keep in labelled.items()
        ]

        substitutions: list[Substitution] = []
        for match in self.discovery.iter_replace_tokens("".join(texts)):
            if any(match.start() < end and start < match.end() for start, end in inserted):
                continue
            value = self._substitute(match, replacements)
            if value != match.group(0):
                substitutions.append((match.start(), match.end(), value))
        return substitutions

    def _replace_collapsed(
        self, runs: list[Run], texts: list[str], substitutions: list[Substitution]
    ) -> None:
        full_text = "".join(texts)
        pieces = []
        position = 0
        for start, end, value in substitutions:
            pieces.append(full_text[position:start])
            pieces.append(value)
            position = end
        pieces.append(full_text[position:])

        runs[0].text = "".join(pieces)
        for run in runs[1:]:
            run.text = ""

    def _replace_in_place(
        self, runs: list[Run], texts: list[str], substitutions: list[Substitution]
    ) -> None:
        texts = list(texts)
        offsets = _run_offsets(texts)

        # 从右向左改写，左侧偏移量保持有效
        for start, end, value in reversed(substitutions):
            first = self._run_at(offsets, texts, start)
            last = self._run_at(offsets, texts, end - 1)

            head = texts[first][: start - offsets[first]]
            tail = texts[last][end - offsets[last]:]
            if first == last:
                texts[first] = head + value + tail
                continue
            texts[first] = head + value
            for i in range(first + 1, last):
                texts[i] = ""
            texts[last] = tail

        for run, text in zip(runs, texts):
            if run.text != text:
                run.text = text

    @staticmethod
    def _run_at(offsets: list[int], texts: list[str], index: int) -> int:
        """字符下标所在的 run（跳过空 run）"""
        for i in range(len(offsets) - 1, -1, -1):
            if offsets[i] <= index and texts[i]:
                return i
        return 0

    @staticmethod
    def _substitute(match: re.Match[str], replacements: Replacements) -> str:
        replacement = replacements.get(token_name(match))
        if replacement is None or replacement.style is not FieldStyle.REPLACE:
            return match.group(0)
        return replacement.value or ""
