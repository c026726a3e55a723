"""
零件-图片匹配 - 按文件名前缀把渲染图回填到两份文档

匹配规则（PrefixReconciler）：
- 生产单数据行：产品编号（第3列）小写后，取第一个以其开头的文件名，写入图片位（第2列）
- 报价单产品行：零件名小写后做同样匹配，写入 零件图片
- 零件名未命中时，回退到同序号生产单数据行的产品编号
- 空标识不参与匹配；未命中保持占位不变
- 多个文件同时命中时取枚举顺序中的第一个

测试要点：
- test_prefix_match: "P100" 对 ["p100-rev2.png", "p200.png"] 命中前者
- test_no_match_keeps_placeholder: 未命中不改动
- test_tie_break_first_wins: 多命中取第一个
"""

from __future__ import annotations

import logging

from ..interfaces import IPartImageReconciler
from ..models import LayoutDocument, QuotationDocument, data_rows

logger = logging.getLogger(__name__)


def find_prefix_match(identifier: object, filenames: list[str]) -> str | None:
    """返回第一个以 identifier（小写）开头的文件名"""
    if identifier is None:
        return None
    prefix = str(identifier).strip().lower()
    if not prefix:
        return None
    for name in filenames:
        if name.startswith(prefix):
            return name
    return None


class PrefixReconciler(IPartImageReconciler):
    """前缀匹配器"""

    def reconcile(
        self,
        filenames: list[str],
        layout: LayoutDocument,
        quotation: QuotationDocument,
    ) -> None:
        names = [name.lower() for name in filenames]
        if not names:
            return

        part_number_by_seq: dict[str, str] = {}
        matched_rows = 0
        for row in data_rows(layout):
            part_number_by_seq[str(row.seq)] = row.part_number
            match = find_prefix_match(row.part_number, names)
            if match:
                row.image_key = match
                matched_rows += 1

        matched_products = 0
        for product in quotation.products:
            match = find_prefix_match(product.part_name, names)
            if match is None:
                match = find_prefix_match(part_number_by_seq.get(str(product.seq)), names)
            if match:
                product.image_key = match
                matched_products += 1

        logger.info(
            f"图片匹配: 生产单 {matched_rows}/{len(part_number_by_seq)} 行, "
            f"报价单 {matched_products}/{len(quotation.products)} 行"
        )
