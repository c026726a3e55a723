"""
表格归一化 - 将任意工作簿展平为带单元格地址的文本

职责：
1. 按 sheet 扫描有界窗口（默认 200 行 × 50 列）
2. 每个非空行输出一行：Row <n>: [<地址>: "<值>"] ...
3. 公式/富文本展平为显示文本；无缓存结果的公式标记为 FORMULA: <表达式>
4. 出现过数据后，连续 10 个空行即停止扫描本 sheet
5. 空 sheet 输出“未找到数据”标记；合并单元格范围附在行转储之后

依赖：
- openpyxl: 读取工作簿（公式与缓存值各读一遍）

测试要点：
- test_transcript_deterministic: 同一文件多次输出逐字节一致
- test_bounded_window: 窗口外数据不出现
- test_stop_after_empty_rows: 连续空行提前终止
- test_formula_cells: 公式结果/公式标记
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.worksheet.formula import ArrayFormula, DataTableFormula

from ..config import get_config

logger = logging.getLogger(__name__)

TRANSCRIPT_HEADER = "=== EXCEL FILE CONTENT ==="
SHEET_SEPARATOR = "-" * 50


class TabularNormalizer:
    """表格归一化器"""

    def __init__(
        self,
        max_rows: int | None = None,
        max_cols: int | None = None,
        empty_row_stop: int | None = None,
    ):
        config = get_config().normalizer
        self.max_rows = max_rows or config.max_rows
        self.max_cols = max_cols or config.max_cols
        self.empty_row_stop = empty_row_stop or config.empty_row_stop

    def normalize(self, xlsx_path: Path) -> str:
        """工作簿 → 文本"""
        # 公式版用于识别公式，缓存值版用于取公式结果
        wb_formulas = load_workbook(xlsx_path, data_only=False)
        wb_values = load_workbook(xlsx_path, data_only=True)
        try:
            parts = [TRANSCRIPT_HEADER, ""]
            for ws in wb_formulas.worksheets:
                parts.extend(self._normalize_sheet(ws, wb_values[ws.title]))
            transcript = "\n".join(parts) + "\n"
        finally:
            wb_formulas.close()
            wb_values.close()

        logger.debug(f"归一化完成: {xlsx_path.name}, {len(transcript)} 字符")
        return transcript

    def _normalize_sheet(self, ws, ws_values) -> list[str]:
        """单个 sheet 的文本行"""
        lines = [f"SHEET: {ws.title}", "=" * (len(ws.title) + 7), ""]

        # 只扫描实际存在的区域与上限的交集，避免越界创建单元格
        last_row = min(self.max_rows, ws.max_row or 0)
        last_col = min(self.max_cols, ws.max_column or 0)

        has_any_data = False
        empty_run = 0
        for row_idx in range(1, last_row + 1):
            entries = []
            for col_idx in range(1, last_col + 1):
                cell = ws.cell(row=row_idx, column=col_idx)
                text = self._cell_text(cell, ws_values.cell(row=row_idx, column=col_idx))
                if text:
                    entries.append(f'[{cell.coordinate}: "{text}"]')

            if entries:
                lines.append(f"Row {row_idx}: " + " ".join(entries))
                has_any_data = True
                empty_run = 0
            elif has_any_data:
                empty_run += 1
                if empty_run >= self.empty_row_stop:
                    break

        if not has_any_data:
            lines.append(
                f"No data found in sheet (scanned up to row {self.max_rows}, col {self.max_cols})"
            )
            lines.append("")

        merges = [str(rng) for rng in ws.merged_cells.ranges]
        if merges:
            lines.append("")
            lines.append("Merged Cells:")
            lines.extend(f"  {rng}" for rng in merges)

        lines.append("")
        lines.append(SHEET_SEPARATOR)
        lines.append("")
        return lines

    def _cell_text(self, cell, value_cell) -> str:
        """单元格显示文本（已去首尾空白，空值返回空串）"""
        value = cell.value
        if value is None:
            return ""

        if isinstance(value, (ArrayFormula, DataTableFormula)) or cell.data_type == "f":
            cached = value_cell.value
            if cached is not None and str(cached).strip():
                return format_value(cached)
            expr = value.text if isinstance(value, ArrayFormula) else str(value)
            return f"FORMULA: {expr.lstrip('=')}".strip()

        return format_value(value)


def format_value(value: Any) -> str:
    """标量 → 稳定的显示文本"""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    # 富文本（CellRichText）的 str() 即纯文本拼接
    return str(value).strip()
