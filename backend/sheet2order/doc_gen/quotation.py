"""
报价单生成器 - quotationData → 报价单.xlsx

版式（自上而下）：
- 第1行：手板报价 编号: <quote_number>，合并 A1:I1，行高 28，16号粗体
- 6行甲乙方信息（甲方/乙方、联系人、TEL、FAX、E-mail、地址），A-D 与 E-I 分别合并，行高 18
- 产品表头（序号 零件图片 零件名 表面 材质 数量 单价 合计 备注），行高 22
- 每个产品一行；B 列有图片时行高至少 80，否则 18
- 合计行「计:」，A-F 与 G-H 合并，右对齐
- 6行说明（未税总价/加工周期/付款方式/交货日期/验收标准/声明），合并 A-I
- 签名行：乙方签名确认（F-G 合并）+ 签名日期（H-I 合并），行高 20
- 列宽 [6, 20, 20, 16, 14, 8, 12, 12, 18]

报价单字段为空时取固定文案兜底（付款方式、验收标准、声明、签名日期、甲乙方信息）。

测试要点：
- test_quotation_layout: 合并/列宽/行高
- test_quotation_image_rows: 图片行高
- test_quotation_boilerplate_fallback: 空字段兜底
"""

from __future__ import annotations

import logging
from datetime import date

from openpyxl import Workbook

from ..config import BoilerplateConfig, get_config
from ..interfaces import IQuotationEmitter
from ..models import QUOTATION_COLUMNS, QuotationDocument, RenderedImage
from .styles import (
    BORDER,
    CENTER,
    HEADER_FONT,
    IMAGE_ROW_MIN_HEIGHT,
    LEFT,
    RIGHT,
    TITLE_FONT,
    column_width_px,
    embed_image,
    set_column_widths,
    set_value,
    workbook_bytes,
)

logger = logging.getLogger(__name__)

SHEET_TITLE = "报价单"
COLUMN_WIDTHS: list[float] = [6, 20, 20, 16, 14, 8, 12, 12, 18]

TITLE_HEIGHT = 28
INFO_HEIGHT = 18
HEADER_HEIGHT = 22
PRODUCT_HEIGHT = 18
SIGNATURE_HEIGHT = 20

# (左侧标签, 右侧标签, 字段后缀)
_COMPANY_ROWS: list[tuple[str, str, str]] = [
    ("甲方", "乙方", "party"),
    ("联系人", "联系人", "contact"),
    ("TEL", "TEL", "tel"),
    ("FAX", "FAX", "fax"),
    ("E-mail", "E-mail", "email"),
    ("地址", "地址", "address"),
]


class QuotationEmitter(IQuotationEmitter):
    """报价单生成器"""

    def __init__(self, boilerplate: BoilerplateConfig | None = None, today: date | None = None):
        self.boilerplate = boilerplate or get_config().boilerplate
        self.today = today

    def render(self, quotation: QuotationDocument, images: dict[str, RenderedImage]) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE

        # 标题
        ws.merge_cells("A1:I1")
        title = ws["A1"]
        title.value = f"手板报价 编号: {quotation.quote_number}"
        title.font = TITLE_FONT
        title.alignment = CENTER
        ws.row_dimensions[1].height = TITLE_HEIGHT
        row_idx = 1

        # 甲乙方信息
        for left_label, right_label, suffix in _COMPANY_ROWS:
            row_idx += 1
            left = self._company(quotation, suffix, "a")
            right = self._company(quotation, suffix, "b")
            ws.cell(row=row_idx, column=1, value=f"{left_label}:{left}")
            ws.cell(row=row_idx, column=5, value=f"{right_label}:{right}")
            ws.merge_cells(f"A{row_idx}:D{row_idx}")
            ws.merge_cells(f"E{row_idx}:I{row_idx}")
            ws[f"A{row_idx}"].alignment = LEFT
            ws[f"E{row_idx}"].alignment = LEFT
            ws.row_dimensions[row_idx].height = INFO_HEIGHT

        # 产品表头
        row_idx += 1
        for col_idx, header in enumerate(QUOTATION_COLUMNS, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=header)
            cell.font = HEADER_FONT
            cell.alignment = CENTER
            cell.border = BORDER
        ws.row_dimensions[row_idx].height = HEADER_HEIGHT

        # 产品行
        embedded = 0
        for product in quotation.products:
            row_idx += 1
            for col_idx, value in enumerate(product.as_row(), start=1):
                cell = set_value(ws.cell(row=row_idx, column=col_idx), value)
                cell.alignment = CENTER
                cell.border = BORDER

            height = PRODUCT_HEIGHT
            image = self._find_image(product.image_key, product.part_name, images)
            if image is not None and embed_image(
                ws, image, f"B{row_idx}", column_width_px(COLUMN_WIDTHS[1])
            ):
                height = max(height, IMAGE_ROW_MIN_HEIGHT)
                embedded += 1
            ws.row_dimensions[row_idx].height = height

        # 合计行
        row_idx += 1
        ws.cell(row=row_idx, column=1, value="计:")
        if quotation.total_untaxed != "":
            set_value(ws.cell(row=row_idx, column=7), quotation.total_untaxed)
        ws.merge_cells(f"A{row_idx}:F{row_idx}")
        ws.merge_cells(f"G{row_idx}:H{row_idx}")
        ws[f"A{row_idx}"].alignment = RIGHT
        ws[f"G{row_idx}"].alignment = RIGHT
        ws.row_dimensions[row_idx].height = INFO_HEIGHT

        # 说明行
        for line in self._info_lines(quotation):
            row_idx += 1
            set_value(ws.cell(row=row_idx, column=1), line)
            ws.merge_cells(f"A{row_idx}:I{row_idx}")
            ws[f"A{row_idx}"].alignment = LEFT
            ws.row_dimensions[row_idx].height = INFO_HEIGHT

        # 签名行
        row_idx += 1
        ws.cell(row=row_idx, column=6, value="乙方签名确认")
        set_value(
            ws.cell(row=row_idx, column=8),
            quotation.signature_date or self.boilerplate.resolved_signature_date(self.today),
        )
        ws.merge_cells(f"F{row_idx}:G{row_idx}")
        ws.merge_cells(f"H{row_idx}:I{row_idx}")
        ws.row_dimensions[row_idx].height = SIGNATURE_HEIGHT

        set_column_widths(ws, COLUMN_WIDTHS)

        logger.info(
            f"报价单生成: {quotation.quote_number}, {len(quotation.products)} 个产品, "
            f"嵌入图片 {embedded} 张"
        )
        return workbook_bytes(wb)

    def _company(self, quotation: QuotationDocument, suffix: str, side: str) -> str:
        """甲乙方字段，空值取固定文案"""
        key = f"{suffix}_{side}"
        return getattr(quotation.company_info, key) or getattr(self.boilerplate, key)

    def _info_lines(self, quotation: QuotationDocument) -> list[str]:
        bp = self.boilerplate
        return [
            f"未税 总价：(人民币) {quotation.total_untaxed}".rstrip(),
            f"手板加工周期：{quotation.processing_cycle}",
            f"付款方式：{quotation.payment_terms or bp.payment_terms}",
            f"交货日期：{quotation.delivery_date}",
            f"验收标准：{quotation.acceptance_standard or bp.acceptance_standard}",
            quotation.notice or bp.notice,
        ]

    @staticmethod
    def _find_image(
        image_key: str,
        part_name: object,
        images: dict[str, RenderedImage],
    ) -> RenderedImage | None:
        """优先按图片位查找，其次按零件名"""
        for key in (image_key, part_name):
            if key:
                image = images.get(str(key).lower())
                if image is not None:
                    return image
        return None
