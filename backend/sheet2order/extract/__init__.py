"""
抽取模块 - 表格归一化、提示词构建、模型输出解析、零件图片匹配
"""

from .normalizer import TabularNormalizer, format_value
from .parser import (
    ExtractedDocuments,
    extract_structures,
    locate_literal,
    locate_structures,
    parse_layout,
    parse_quotation,
    repair_literal,
    strip_fences,
)
from .prompt import LAYOUT_STRUCTURE_NAME, QUOTATION_STRUCTURE_NAME, PromptBuilder
from .reconciler import PrefixReconciler, find_prefix_match

__all__ = [
    "TabularNormalizer",
    "format_value",
    "PromptBuilder",
    "LAYOUT_STRUCTURE_NAME",
    "QUOTATION_STRUCTURE_NAME",
    "ExtractedDocuments",
    "extract_structures",
    "locate_literal",
    "locate_structures",
    "parse_layout",
    "parse_quotation",
    "repair_literal",
    "strip_fences",
    "PrefixReconciler",
    "find_prefix_match",
]
