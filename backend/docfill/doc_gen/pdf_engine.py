"""
LibreOffice 转换引擎 - soffice --headless 子进程

职责：
1. 启动时探测 LibreOffice 可执行文件（配置路径 → PATH → 常见安装目录）
2. 字节 → 字节的格式转换（pdf→docx、docx→pdf）
3. 不可用时抛出 ConversionServiceUnavailable，不影响其他格式

依赖：
- libreoffice: soffice 命令行（可选）

测试要点：
- test_unavailable_engine: 不可用时报错
- test_convert_command: 命令行参数
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from ..config import RuntimeConfig, get_config
from ..config.runtime_config import LibreOfficeConfig
from ..interfaces import ConversionError, ConversionServiceUnavailable, normalize_extension

logger = logging.getLogger(__name__)

# 目标扩展名 → --convert-to 参数
CONVERT_FILTERS = {
    "docx": "docx:MS Word 2007 XML",
    "pdf": "pdf",
}

# 源扩展名 → 导入过滤器
IMPORT_FILTERS = {
    "pdf": "writer_pdf_import",
}


def find_soffice(config: LibreOfficeConfig) -> str | None:
    """查找 soffice 可执行文件"""
    if config.exe_path:
        return config.exe_path if Path(config.exe_path).exists() else None

    found = shutil.which("soffice") or shutil.which("libreoffice")
    if found:
        return found

    for home in config.office_homes:
        for name in ("soffice", "soffice.exe"):
            candidate = Path(home) / "program" / name
            if candidate.exists():
                return str(candidate)
    return None


class LibreOfficeEngine:
    """LibreOffice 转换引擎"""

    def __init__(
        self,
        exe_path: str | None = None,
        timeout: int | None = None,
        config: RuntimeConfig | None = None,
    ):
        config = config or get_config()
        self.exe_path = exe_path if exe_path is not None else find_soffice(config.libreoffice)
        self.timeout = timeout or config.timeouts.libreoffice_convert_sec
        if self.exe_path:
            logger.info(f"LibreOffice 可用: {self.exe_path}")
        else:
            logger.warning("未找到 LibreOffice，pdf 相关转换不可用")

    @property
    def available(self) -> bool:
        return bool(self.exe_path)

    def convert(self, data: bytes, source_ext: str, target_ext: str) -> bytes:
        """
        格式转换

        Raises:
            ConversionServiceUnavailable: LibreOffice 不可用
            ConversionError: 转换超时或失败
        """
        if not self.available:
            raise ConversionServiceUnavailable("libreoffice")

        source_ext = normalize_extension(source_ext)
        target_ext = normalize_extension(target_ext)

        with tempfile.TemporaryDirectory(prefix="docfill_lo_") as tmp:
            workdir = Path(tmp)
            input_path = workdir / f"input.{source_ext}"
            input_path.write_bytes(data)
            out_dir = workdir / "out"
            out_dir.mkdir()

            # 每次调用使用独立的用户配置目录
            cmd = self.build_command(
                input_path, out_dir, source_ext, target_ext, profile_dir=workdir / "profile"
            )
            try:
                subprocess.run(
                    cmd,
                    capture_output=True,
                    timeout=self.timeout,
                    check=True,
                )
            except subprocess.TimeoutExpired as e:
                raise ConversionError(
                    f"LibreOffice 转换超时: {source_ext} -> {target_ext}",
                    {"timeout": self.timeout},
                ) from e
            except subprocess.CalledProcessError as e:
                raise ConversionError(
                    f"LibreOffice 转换失败: {source_ext} -> {target_ext}",
                    {"stderr": (e.stderr or b"").decode("utf-8", errors="replace")},
                ) from e
            except OSError as e:
                raise ConversionServiceUnavailable("libreoffice") from e

            output_path = out_dir / f"{input_path.stem}.{target_ext}"
            if not output_path.exists():
                raise ConversionError(
                    f"LibreOffice 未生成输出文件: {output_path.name}",
                    {"source": source_ext, "target": target_ext},
                )
            return output_path.read_bytes()

    def build_command(
        self,
        input_path: Path,
        out_dir: Path,
        source_ext: str,
        target_ext: str,
        profile_dir: Path | None = None,
    ) -> list[str]:
        cmd = [self.exe_path or "soffice", "--headless"]
        import_filter = IMPORT_FILTERS.get(source_ext)
        if import_filter:
            cmd.append(f"--infilter={import_filter}")
        if profile_dir is not None:
            cmd.append(f"-env:UserInstallation={profile_dir.resolve().as_uri()}")
        cmd += [
            "--convert-to", CONVERT_FILTERS.get(target_ext, target_ext),
            "--outdir", str(out_dir),
            str(input_path),
        ]
        return cmd
