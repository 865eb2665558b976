"""
转换器/导出器/渲染器单元测试

LibreOffice 相关用例使用不可用引擎，不依赖本机安装。
"""

import io
import json
from pathlib import Path

import pytest
from docx import Document
from openpyxl import Workbook, load_workbook

from docfill.doc_gen import LibreOfficeEngine, build_converters, build_exporters, pdf_engine
from docfill.doc_gen.converters import (
    CsvToDocxConverter,
    JsonToDocxConverter,
    PdfToDocxConverter,
    TxtToDocxConverter,
    XlsxToDocxConverter,
)
from docfill.doc_gen.exporters import (
    CsvExporter,
    DocxExporter,
    PdfExporter,
    TxtExporter,
    XlsxExporter,
)
from docfill.interfaces import ConversionServiceUnavailable, UnsupportedFormat
from docfill.models import FieldStyle, Replacement

REPLACEMENTS = {
    "NAME": Replacement(FieldStyle.REPLACE, "Ann"),
    "balance": Replacement(FieldStyle.RIGHT, None),
}


def _open(data: bytes):
    return Document(io.BytesIO(data))


class TestConverters:
    """格式转换器测试"""

    def test_txt_to_docx(self):
        out = TxtToDocxConverter().to_canonical(b"Hello {{NAME}}\nbalance: ")
        assert [p.text for p in _open(out).paragraphs] == ["Hello {{NAME}}", "balance: "]

    def test_json_to_docx(self):
        data = json.dumps({"text": "Dear {{NAME}}"}).encode()
        assert _open(JsonToDocxConverter().to_canonical(data)).paragraphs[0].text == "Dear {{NAME}}"

    def test_csv_to_docx(self):
        """不等长行按最大列数建表"""
        out = CsvToDocxConverter().to_canonical(b"NAME,{{NAME}}\nTotal:,10,EUR\n")
        table = _open(out).tables[0]
        assert len(table.rows) == 2
        assert [c.text for c in table.rows[0].cells] == ["NAME", "{{NAME}}", ""]
        assert [c.text for c in table.rows[1].cells] == ["Total:", "10", "EUR"]

    def test_xlsx_to_docx(self):
        wb = Workbook()
        ws = wb.active
        ws.title = "Invoice"
        ws.append(["Client", "{{CLIENT}}"])
        empty = wb.create_sheet("Empty")
        empty["A1"] = None
        buffer = io.BytesIO()
        wb.save(buffer)

        document = _open(XlsxToDocxConverter().to_canonical(buffer.getvalue()))
        assert [p.text for p in document.paragraphs] == ["Invoice"]
        assert len(document.tables) == 1
        assert document.tables[0].cell(0, 1).text == "{{CLIENT}}"

    def test_pdf_unavailable(self, offline_engine: LibreOfficeEngine):
        converter = PdfToDocxConverter(offline_engine)
        assert converter.available is False
        with pytest.raises(ConversionServiceUnavailable):
            converter.to_canonical(b"%PDF-1.4")

    def test_registry(self, offline_engine: LibreOfficeEngine):
        registry = build_converters(offline_engine)
        assert isinstance(registry.resolve("CSV"), CsvToDocxConverter)
        with pytest.raises(UnsupportedFormat):
            registry.resolve("docx")


class TestExporters:
    """导出器测试"""

    def test_csv_export(self):
        """全部加引号，None 写为空串"""
        out = CsvExporter().export(b"", REPLACEMENTS)
        assert out == b'"NAME","balance"\n"Ann",""\n'

    def test_csv_export_escapes_quotes(self):
        out = CsvExporter().export(b"", {"Q": Replacement(FieldStyle.REPLACE, 'say "hi"')})
        assert out == b'"Q"\n"say ""hi"""\n'

    def test_txt_export(self, docx_factory):
        data = docx_factory([["Hello Ann"], ["balance: "]], table=[["a", "b"]])
        assert TxtExporter().export(data, REPLACEMENTS) == b"Hello Ann\nbalance: \na\nb"

    def test_docx_passthrough(self, docx_factory):
        data = docx_factory([["x"]])
        assert DocxExporter().export(data, REPLACEMENTS) is data

    def test_pdf_degrades_to_empty(self, offline_engine: LibreOfficeEngine, docx_factory):
        assert PdfExporter(offline_engine).export(docx_factory([["x"]]), REPLACEMENTS) == b""

    def test_xlsx_export(self):
        wb = load_workbook(io.BytesIO(XlsxExporter().export(b"", REPLACEMENTS)))
        rows = list(wb.active.iter_rows(values_only=True))
        assert rows[0] == ("field", "value")
        assert rows[1] == ("NAME", "Ann")
        assert rows[2][0] == "balance"
        assert rows[2][1] in ("", None)

    def test_registry_export(self, offline_engine: LibreOfficeEngine):
        registry = build_exporters(offline_engine)
        assert registry.export("CSV", b"", REPLACEMENTS).startswith(b'"NAME"')
        with pytest.raises(UnsupportedFormat):
            registry.export("md", b"", REPLACEMENTS)


class TestLibreOfficeEngine:
    """LibreOffice 引擎测试"""

    def test_unavailable_engine(self, offline_engine: LibreOfficeEngine):
        assert offline_engine.available is False
        with pytest.raises(ConversionServiceUnavailable):
            offline_engine.convert(b"data", "docx", "pdf")

    def test_convert_command(self, runtime_config):
        engine = LibreOfficeEngine(exe_path="/opt/lo/soffice", config=runtime_config)
        cmd = engine.build_command(Path("in.pdf"), Path("out"), "pdf", "docx")
        assert cmd[:3] == ["/opt/lo/soffice", "--headless", "--infilter=writer_pdf_import"]
        assert cmd[3:5] == ["--convert-to", "docx:MS Word 2007 XML"]
        assert cmd[-1] == "in.pdf"

    def test_docx_to_pdf_command(self, runtime_config):
        engine = LibreOfficeEngine(exe_path="/opt/lo/soffice", config=runtime_config)
        cmd = engine.build_command(Path("in.docx"), Path("out"), "docx", "pdf")
        assert "--infilter=writer_pdf_import" not in cmd
        assert cmd[cmd.index("--convert-to") + 1] == "pdf"

    def test_profile_dir_argument(self, runtime_config, tmp_path):
        engine = LibreOfficeEngine(exe_path="/opt/lo/soffice", config=runtime_config)
        profile = tmp_path / "profile"
        cmd = engine.build_command(
            Path("in.docx"), Path("out"), "docx", "pdf", profile_dir=profile
        )
        argument = f"-env:UserInstallation={profile.resolve().as_uri()}"
        assert cmd.index(argument) < cmd.index("--convert-to")

    def test_each_conversion_uses_own_profile(self, runtime_config, monkeypatch):
        """每次转换的用户配置目录都不同"""
        commands = []

        def fake_run(cmd, **kwargs):
            commands.append(cmd)
            out_dir = Path(cmd[cmd.index("--outdir") + 1])
            (out_dir / f"{Path(cmd[-1]).stem}.pdf").write_bytes(b"%PDF")

        monkeypatch.setattr(pdf_engine.subprocess, "run", fake_run)
        engine = LibreOfficeEngine(exe_path="/opt/lo/soffice", config=runtime_config)

        assert engine.convert(b"a", "docx", "pdf") == b"%PDF"
        assert engine.convert(b"b", "docx", "pdf") == b"%PDF"

        profiles = [
            next(arg for arg in cmd if arg.startswith("-env:UserInstallation=file://"))
            for cmd in commands
        ]
        assert len(set(profiles)) == 2


class TestDocumentRenderer:
    """渲染流程测试"""

    def test_txt_template_to_txt(self, renderer):
        """balance 标签与冒号在同一 run 中，RIGHT 不追加"""
        out = renderer.render(
            b"Hello {{NAME}}, balance: ",
            "txt",
            {
                "NAME": Replacement(FieldStyle.REPLACE, "Ann"),
                "balance": Replacement(FieldStyle.RIGHT, "10"),
            },
            "txt",
        )
        assert out == b"Hello Ann, balance: "

    def test_docx_canonical_passthrough(self, renderer, docx_factory):
        data = docx_factory([["x"]])
        assert renderer.canonicalize(data, ".DOCX") is data

    def test_pdf_template_unavailable(self, renderer):
        with pytest.raises(ConversionServiceUnavailable):
            renderer.render(b"%PDF", "pdf", REPLACEMENTS, "txt")
