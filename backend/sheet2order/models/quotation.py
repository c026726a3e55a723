"""
报价单模型 - quotationData 的结构化表示

产品行使用提示词中的中文键作为别名（序号/零件图片/零件名/...），
Python 侧统一使用英文属性名。
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

CellValue = Union[str, int, float]

# 报价单产品表固定列
QUOTATION_COLUMNS: tuple[str, ...] = (
    "序号", "零件图片", "零件名", "表面", "材质", "数量", "单价", "合计", "备注",
)


def _none_to_empty(v):
    return "" if v is None else v


class CompanyInfo(BaseModel):
    """甲乙双方信息"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    party_a: str = ""
    contact_a: str = ""
    tel_a: str = ""
    fax_a: str = ""
    email_a: str = ""
    address_a: str = ""
    party_b: str = ""
    contact_b: str = ""
    tel_b: str = ""
    fax_b: str = ""
    email_b: str = ""
    address_b: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_empty(cls, v):
        return _none_to_empty(v)


class ProductLine(BaseModel):
    """报价单产品行"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    seq: CellValue = Field(..., alias="序号")
    image_key: str = Field("", alias="零件图片")
    part_name: CellValue = Field("", alias="零件名")
    surface_treatment: CellValue = Field("", alias="表面")
    material: CellValue = Field("", alias="材质")
    quantity: CellValue = Field("", alias="数量")
    unit_price: CellValue = Field("", alias="单价")
    line_total: CellValue = Field("", alias="合计")
    notes: CellValue = Field("", alias="备注")

    @field_validator(
        "image_key",
        "part_name",
        "surface_treatment",
        "material",
        "quantity",
        "unit_price",
        "line_total",
        "notes",
        mode="before",
    )
    @classmethod
    def _null_as_empty(cls, v):
        # 图片位永不为 null
        return _none_to_empty(v)

    def as_row(self) -> list[CellValue]:
        """按固定列顺序输出"""
        return [
            self.seq,
            self.image_key,
            self.part_name,
            self.surface_treatment,
            self.material,
            self.quantity,
            self.unit_price,
            self.line_total,
            self.notes,
        ]


class QuotationDocument(BaseModel):
    """报价单"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    quote_number: CellValue
    company_info: CompanyInfo
    products: list[ProductLine]

    # 条款（标量）
    total_untaxed: CellValue = ""
    processing_cycle: CellValue = ""
    payment_terms: str = ""
    delivery_date: CellValue = ""
    acceptance_standard: str = ""
    notice: str = ""
    signature_date: str = ""

    @field_validator(
        "total_untaxed",
        "processing_cycle",
        "payment_terms",
        "delivery_date",
        "acceptance_standard",
        "notice",
        "signature_date",
        mode="before",
    )
    @classmethod
    def _null_as_empty(cls, v):
        return _none_to_empty(v)
