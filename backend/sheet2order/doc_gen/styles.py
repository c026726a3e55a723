"""
文档生成公共部分 - 样式常量、图片嵌入、工作簿序列化
"""

from __future__ import annotations

import io
import logging

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..interfaces import GenerationError
from ..models import RenderedImage

logger = logging.getLogger(__name__)

# 带图片的行最小行高（磅）
IMAGE_ROW_MIN_HEIGHT = 80
# 图片最大高度（像素），约等于 80 磅行高
IMAGE_MAX_HEIGHT_PX = 100

THIN = Side(style="thin")
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)

TITLE_FONT = Font(size=16, bold=True)
LABEL_FONT = Font(bold=True)
HEADER_FONT = Font(bold=True)

CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEFT = Alignment(horizontal="left", vertical="center", wrap_text=True)
RIGHT = Alignment(horizontal="right", vertical="center")


def set_value(cell, value):
    """写入单元格值；以 = 开头的文本按字符串保存，不作为公式"""
    cell.value = value
    if isinstance(value, str) and value.startswith("="):
        cell.data_type = "s"
    return cell


def set_column_widths(ws: Worksheet, widths: list[float]) -> None:
    """按顺序设置 A.. 列宽"""
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width


def column_width_px(width_chars: float) -> int:
    """列宽（字符）→ 近似像素"""
    return int(width_chars * 7 + 5)


def embed_image(
    ws: Worksheet,
    image: RenderedImage,
    anchor: str,
    max_width_px: int,
    max_height_px: int = IMAGE_MAX_HEIGHT_PX,
) -> bool:
    """
    在 anchor 单元格嵌入图片（等比缩放到框内）

    Returns:
        是否嵌入成功；图片无法解码时记录告警并返回 False
    """
    try:
        xl_image = XLImage(io.BytesIO(image.data))
    except (OSError, ValueError) as e:
        logger.warning(f"图片无法解码，跳过: {image.source_name}: {e}")
        return False

    if xl_image.width and xl_image.height:
        scale = min(max_width_px / xl_image.width, max_height_px / xl_image.height, 1.0)
        xl_image.width = int(xl_image.width * scale)
        xl_image.height = int(xl_image.height * scale)

    ws.add_image(xl_image, anchor)
    return True


def workbook_bytes(wb: Workbook) -> bytes:
    """工作簿 → xlsx 二进制"""
    buffer = io.BytesIO()
    try:
        wb.save(buffer)
    except Exception as e:
        raise GenerationError(f"工作簿保存失败: {e}") from e
    return buffer.getvalue()
