"""
生产单布局模型 - excelLayoutData 的结构化表示

模型输出的 excelLayoutData 是一个有序的行数组，每行以 type 区分：
- title_row:             标题行（合并整列带）
- header_detail_row:     表头明细行（标签/值成对）
- main_table_header_row: 主表表头（固定9列）
- main_table_data_row:   主表数据行（固定9个位置值，第2列为图片占位）
"""

from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from openpyxl.utils import column_index_from_string
from pydantic import BaseModel, Field, TypeAdapter, field_validator

# 主表固定列（位置固定，不可增减）
PRODUCTION_COLUMNS: tuple[str, ...] = (
    "序号", "产品图片", "产品编号", "产品名称", "规格", "材料", "数量", "加工方式", "工艺要求",
)
COLUMN_COUNT = len(PRODUCTION_COLUMNS)

# 数据行位置索引
SEQ_INDEX = 0
IMAGE_INDEX = 1
PART_NUMBER_INDEX = 2

CellValue = Union[str, int, float]

# 工作表最大列（XFD）
MAX_COLUMN = 16384

_COL_LETTERS_RE = re.compile(r"[A-Za-z]+")


def _column_index(letters: str) -> int:
    """列字母 → 列号，超出 XFD 抛 ValueError"""
    index = column_index_from_string(letters.upper())
    if index > MAX_COLUMN:
        raise ValueError(f"列 {letters} 超出工作表范围")
    return index


class TitleRow(BaseModel):
    """标题行"""
    type: Literal["title_row"] = "title_row"
    text: str
    merge_cells: str = Field(..., pattern=r"^[A-Za-z]+\d*:[A-Za-z]+\d*$")
    height: float = 30

    @field_validator("merge_cells")
    @classmethod
    def _ordered_columns(cls, v: str) -> str:
        start, end = (_column_index(_COL_LETTERS_RE.match(part).group(0)) for part in v.split(":"))
        if start > end:
            raise ValueError(f"合并范围列顺序颠倒: {v}")
        return v


class HeaderCell(BaseModel):
    """表头明细单元格"""
    col_letter: str = Field(..., pattern=r"^[A-Za-z]{1,3}$")
    value: CellValue | None = ""
    style_key: str = "header_value"

    @field_validator("col_letter")
    @classmethod
    def _column_in_range(cls, v: str) -> str:
        _column_index(v)
        return v

    @field_validator("value", mode="after")
    @classmethod
    def _none_to_empty(cls, v: CellValue | None) -> CellValue:
        return "" if v is None else v


class HeaderDetailRow(BaseModel):
    """表头明细行（至少一个单元格）"""
    type: Literal["header_detail_row"] = "header_detail_row"
    cells: list[HeaderCell] = Field(..., min_length=1)
    height: float = 22


class TableHeaderRow(BaseModel):
    """主表表头行"""
    type: Literal["main_table_header_row"] = "main_table_header_row"
    headers: list[str] = Field(..., min_length=COLUMN_COUNT, max_length=COLUMN_COUNT)
    height: float = 25


class TableDataRow(BaseModel):
    """主表数据行（9个位置值）"""
    type: Literal["main_table_data_row"] = "main_table_data_row"
    data: list[CellValue | None] = Field(..., min_length=COLUMN_COUNT, max_length=COLUMN_COUNT)
    height: float = 22

    @field_validator("data", mode="after")
    @classmethod
    def _image_slot_not_null(cls, v: list[CellValue | None]) -> list[CellValue | None]:
        # 图片位不允许为 null，统一为空占位
        if v[IMAGE_INDEX] is None:
            v[IMAGE_INDEX] = ""
        return v

    @property
    def seq(self) -> CellValue | None:
        return self.data[SEQ_INDEX]

    @property
    def image_key(self) -> str:
        return str(self.data[IMAGE_INDEX])

    @image_key.setter
    def image_key(self, value: str) -> None:
        self.data[IMAGE_INDEX] = value

    @property
    def part_number(self) -> str:
        value = self.data[PART_NUMBER_INDEX]
        return "" if value is None else str(value)


LayoutRow = Annotated[
    Union[TitleRow, HeaderDetailRow, TableHeaderRow, TableDataRow],
    Field(discriminator="type"),
]

LayoutDocument = list[LayoutRow]

layout_adapter: TypeAdapter[list[LayoutRow]] = TypeAdapter(LayoutDocument)


def data_rows(layout: LayoutDocument) -> list[TableDataRow]:
    """取出所有主表数据行（保持顺序）"""
    return [row for row in layout if isinstance(row, TableDataRow)]
