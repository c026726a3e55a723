"""
文档栅格化 - LibreOffice 导出 PDF，再由 pdftoppm 逐页转 PNG

职责：
1. soffice --headless --convert-to pdf 导出中间 PDF
2. pdftoppm -png -rx <dpi> -ry <dpi> 逐页输出
3. 按文件名末尾页码自然排序（page-2 在 page-10 之前）
4. 无论成功与否删除中间 PDF

依赖：
- libreoffice (soffice)、poppler-utils (pdftoppm)：外部命令

测试要点：
- test_natural_page_order: 页码自然排序
- test_command_failure: 命令失败抛 RasterizeError
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from ..config import RasterizerConfig, get_config
from ..interfaces import IRasterizer, RasterizeError

logger = logging.getLogger(__name__)

_PAGE_NUMBER_RE = re.compile(r"(\d+)\.png$", re.IGNORECASE)


def page_number(path: Path) -> int:
    """文件名末尾页码（无页码视为 0）"""
    match = _PAGE_NUMBER_RE.search(path.name)
    return int(match.group(1)) if match else 0


class LibreOfficeRasterizer(IRasterizer):
    """LibreOffice + pdftoppm 栅格化器"""

    def __init__(self, config: RasterizerConfig | None = None):
        self.config = config or get_config().rasterizer

    def rasterize(self, document_path: Path, output_dir: Path) -> list[Path]:
        if not document_path.exists():
            raise RasterizeError(f"文档不存在: {document_path}")
        if not self.config.soffice_path or not self.config.pdftoppm_path:
            raise RasterizeError("未配置 soffice_path / pdftoppm_path")

        output_dir.mkdir(parents=True, exist_ok=True)
        stem = document_path.stem
        pdf_path = output_dir / f"{stem}.pdf"

        try:
            self._run(
                [
                    self.config.soffice_path,
                    "--headless",
                    "--convert-to", "pdf",
                    "--outdir", str(output_dir),
                    str(document_path),
                ],
                "LibreOffice导出PDF",
            )
            if not pdf_path.exists():
                raise RasterizeError(f"LibreOffice未生成PDF: {pdf_path.name}")

            dpi = str(self.config.dpi)
            self._run(
                [
                    self.config.pdftoppm_path,
                    "-png",
                    "-rx", dpi,
                    "-ry", dpi,
                    str(pdf_path),
                    str(output_dir / stem),
                ],
                "pdftoppm转PNG",
            )
        finally:
            pdf_path.unlink(missing_ok=True)

        pages = sorted(
            (p for p in output_dir.glob(f"{stem}*.png") if p.is_file()),
            key=page_number,
        )
        if not pages:
            raise RasterizeError(f"未生成任何页面图片: {document_path.name}")

        logger.info(f"栅格化完成: {document_path.name} → {len(pages)} 页")
        return pages

    def _run(self, cmd: list[str], action: str) -> None:
        logger.debug(f"{action}: {' '.join(cmd)}")
        try:
            subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.config.timeout_sec,
                check=True,
            )
        except subprocess.TimeoutExpired as e:
            raise RasterizeError(f"{action}超时") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            raise RasterizeError(f"{action}失败: {stderr}") from e
        except OSError as e:
            raise RasterizeError(f"{action}无法启动: {e}") from e
