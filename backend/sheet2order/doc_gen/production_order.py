"""
生产单生成器 - excelLayoutData → 生产单.xlsx

职责：
1. sheet「生产单」，9列，列宽均为 15
2. 按布局行顺序逐行写入，每个布局行占一行
   - title_row: 在当前行按 merge_cells 的列范围合并，文字写入合并区左上角
   - header_detail_row: 按 col_letter 写入，style_key 区分标签/值样式
   - main_table_header_row / main_table_data_row: 9 列依次写入
3. 数据行图片位命中图片表时，在 B 列嵌入图片，行高至少 80
4. 图片缺失不报错，按原行高输出

依赖：
- openpyxl: 工作簿生成与图片嵌入

测试要点：
- test_production_order_layout: 合并/列宽/行高
- test_production_order_image: 图片嵌入与行高
- test_production_order_deterministic: 相同输入内容一致
"""

from __future__ import annotations

import logging
import re

from openpyxl import Workbook

from ..interfaces import IProductionOrderEmitter
from ..models import (
    COLUMN_COUNT,
    HeaderDetailRow,
    LayoutDocument,
    RenderedImage,
    TableDataRow,
    TableHeaderRow,
    TitleRow,
)
from .styles import (
    BORDER,
    CENTER,
    HEADER_FONT,
    IMAGE_ROW_MIN_HEIGHT,
    LABEL_FONT,
    LEFT,
    TITLE_FONT,
    column_width_px,
    embed_image,
    set_column_widths,
    set_value,
    workbook_bytes,
)

logger = logging.getLogger(__name__)

SHEET_TITLE = "生产单"
COLUMN_WIDTH = 15

_COL_LETTERS_RE = re.compile(r"[A-Za-z]+")


class ProductionOrderEmitter(IProductionOrderEmitter):
    """生产单生成器"""

    def render(self, layout: LayoutDocument, images: dict[str, RenderedImage]) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE
        set_column_widths(ws, [COLUMN_WIDTH] * COLUMN_COUNT)

        embedded = 0
        for row_idx, row in enumerate(layout, start=1):
            height = row.height

            if isinstance(row, TitleRow):
                self._write_title(ws, row_idx, row)

            elif isinstance(row, HeaderDetailRow):
                for cell_spec in row.cells:
                    cell = set_value(ws[f"{cell_spec.col_letter.upper()}{row_idx}"], cell_spec.value)
                    if cell_spec.style_key == "header_label":
                        cell.font = LABEL_FONT
                    cell.alignment = LEFT

            elif isinstance(row, TableHeaderRow):
                for col_idx, header in enumerate(row.headers, start=1):
                    cell = set_value(ws.cell(row=row_idx, column=col_idx), header)
                    cell.font = HEADER_FONT
                    cell.alignment = CENTER
                    cell.border = BORDER

            elif isinstance(row, TableDataRow):
                for col_idx, value in enumerate(row.data, start=1):
                    cell = set_value(ws.cell(row=row_idx, column=col_idx), value)
                    cell.alignment = CENTER
                    cell.border = BORDER

                image = images.get(row.image_key.lower()) if row.image_key else None
                if image is not None and embed_image(
                    ws, image, f"B{row_idx}", column_width_px(COLUMN_WIDTH)
                ):
                    height = max(height, IMAGE_ROW_MIN_HEIGHT)
                    embedded += 1

            ws.row_dimensions[row_idx].height = height

        logger.info(f"生产单生成: {len(layout)} 行, 嵌入图片 {embedded} 张")
        return workbook_bytes(wb)

    def _write_title(self, ws, row_idx: int, row: TitleRow) -> None:
        """标题行：按 merge_cells 的列范围在当前行合并"""
        start, end = (
            _COL_LETTERS_RE.match(part).group(0).upper() for part in row.merge_cells.split(":")
        )
        if start != end:
            ws.merge_cells(f"{start}{row_idx}:{end}{row_idx}")
        cell = set_value(ws[f"{start}{row_idx}"], row.text)
        cell.font = TITLE_FONT
        cell.alignment = CENTER
