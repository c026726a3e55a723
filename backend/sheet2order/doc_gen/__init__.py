"""
文档生成模块 - 生产单/报价单 Excel

职责：
- ProductionOrderEmitter: excelLayoutData → 生产单.xlsx
- QuotationEmitter: quotationData → 报价单.xlsx
"""

from .production_order import ProductionOrderEmitter
from .quotation import QuotationEmitter

__all__ = [
    "ProductionOrderEmitter",
    "QuotationEmitter",
]
