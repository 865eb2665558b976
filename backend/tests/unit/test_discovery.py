"""
字段发现单元测试
"""

import pytest

from docfill.config import DiscoveryConfig
from docfill.doc_gen import FieldDiscoveryEngine, discover_fields
from docfill.interfaces import UnrecognizedTemplateFormat
from docfill.models import FieldStyle


def _pairs(fields):
    return [(f.name, f.style) for f in fields]


class TestDelimitedTokens:
    """定界占位测试"""

    def test_delimited_and_label(self):
        fields = discover_fields("Hello {{NAME}}, balance: ")
        assert _pairs(fields) == [
            ("NAME", FieldStyle.REPLACE),
            ("balance", FieldStyle.RIGHT),
        ]
        assert all(not f.required for f in fields)

    def test_inner_name_trimmed(self):
        assert _pairs(discover_fields("{{ first name }}")) == [("first name", FieldStyle.REPLACE)]

    def test_first_appearance_order(self):
        names = [f.name for f in discover_fields("{{B}} and {{A}} then {{B}}")]
        assert names == ["B", "A"]

    def test_bare_uppercase_tokens(self):
        fields = discover_fields("Dear CUSTOMER_NAME, your ID is ready")
        assert _pairs(fields) == [
            ("CUSTOMER_NAME", FieldStyle.REPLACE),
            ("ID", FieldStyle.REPLACE),
        ]

    def test_single_letter_not_bare_token(self):
        assert discover_fields("Grade A result") == []


class TestLabelTokens:
    """标签测试"""

    def test_hyphenated_label(self):
        assert _pairs(discover_fields("First-Name: Ann")) == [("First-Name", FieldStyle.RIGHT)]

    def test_dash_label(self):
        assert _pairs(discover_fields("Total- 10")) == [("Total", FieldStyle.RIGHT)]

    def test_time_is_not_label(self):
        assert discover_fields("meet at 12:30 today") == []

    def test_replace_wins_over_right(self):
        """同名字段只保留 REPLACE"""
        assert _pairs(discover_fields("NAME: {{NAME}}")) == [("NAME", FieldStyle.REPLACE)]


class TestNoiseFilters:
    """噪声过滤测试"""

    def test_length_limit(self):
        assert [f.name for f in discover_fields("{{" + "x" * 63 + "}}")] == ["x" * 63]
        assert discover_fields("{{" + "x" * 64 + "}}") == []

    def test_all_dashes_dropped(self):
        assert discover_fields("{{---}} ok") == []

    def test_dash_count(self):
        assert [f.name for f in discover_fields("{{a-b-c-d-e-f}}")] == ["a-b-c-d-e-f"]
        assert discover_fields("{{a-b-c-d-e-f-g}}") == []

    def test_empty_delimiters_dropped(self):
        assert discover_fields("{{ }} text") == []


class TestBareTokenConfig:
    """裸大写词配置测试"""

    def test_disabled(self):
        engine = FieldDiscoveryEngine(DiscoveryConfig(bare_tokens=False))
        assert _pairs(engine.discover("Dear CUSTOMER {{NAME}}")) == [("NAME", FieldStyle.REPLACE)]

    def test_deny_list(self):
        engine = FieldDiscoveryEngine(DiscoveryConfig(deny_list=["PDF"]))
        assert [f.name for f in engine.discover("Export PDF for CLIENT")] == ["CLIENT"]

    def test_allow_list(self):
        engine = FieldDiscoveryEngine(DiscoveryConfig(allow_list=["CLIENT"]))
        assert [f.name for f in engine.discover("ACME CLIENT")] == ["CLIENT"]

    def test_delimited_ignores_lists(self):
        engine = FieldDiscoveryEngine(DiscoveryConfig(deny_list=["PDF"], bare_tokens=False))
        assert [f.name for f in engine.discover("{{PDF}}")] == ["PDF"]


class TestEdgeCases:
    """边界情况测试"""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text(self, text):
        with pytest.raises(UnrecognizedTemplateFormat):
            discover_fields(text)

    def test_idempotent(self):
        text = "Invoice NO: {{NUMBER}}\nClient: ACME_CORP\nTotal- 10"
        assert discover_fields(text) == discover_fields(text)

    def test_unicode_label(self):
        assert _pairs(discover_fields("姓名: 张三")) == [("姓名", FieldStyle.RIGHT)]
