"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- LayoutDocument: 生产单布局（行序列）
- QuotationDocument: 报价单
- RenderedImage / PageImage: CAD预览图 / 栅格化页面图
- ProcessingSession: 单次上传的处理会话
"""

from .images import PageImage, RenderedImage
from .layout import (
    COLUMN_COUNT,
    PRODUCTION_COLUMNS,
    HeaderCell,
    HeaderDetailRow,
    LayoutDocument,
    LayoutRow,
    TableDataRow,
    TableHeaderRow,
    TitleRow,
    data_rows,
    layout_adapter,
)
from .quotation import QUOTATION_COLUMNS, CompanyInfo, ProductLine, QuotationDocument
from .session import ProcessingSession, SessionProgress, SessionStatus

__all__ = [
    "COLUMN_COUNT",
    "PRODUCTION_COLUMNS",
    "QUOTATION_COLUMNS",
    "HeaderCell",
    "HeaderDetailRow",
    "LayoutDocument",
    "LayoutRow",
    "TableDataRow",
    "TableHeaderRow",
    "TitleRow",
    "data_rows",
    "layout_adapter",
    "CompanyInfo",
    "ProductLine",
    "QuotationDocument",
    "PageImage",
    "RenderedImage",
    "ProcessingSession",
    "SessionProgress",
    "SessionStatus",
]
