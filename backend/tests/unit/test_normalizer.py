"""
表格归一化单元测试
"""

from datetime import date
from pathlib import Path

from openpyxl import Workbook

from sheet2order.extract import TabularNormalizer, format_value
from sheet2order.extract.normalizer import SHEET_SEPARATOR, TRANSCRIPT_HEADER


def _normalizer(**kwargs) -> TabularNormalizer:
    params = {"max_rows": 200, "max_cols": 50, "empty_row_stop": 10}
    params.update(kwargs)
    return TabularNormalizer(**params)


class TestTranscript:
    """文本格式测试"""

    def test_rows_and_header(self, sample_workbook: Path):
        """测试表头与行格式"""
        text = _normalizer().normalize(sample_workbook)
        lines = text.splitlines()

        assert lines[0] == TRANSCRIPT_HEADER
        assert "SHEET: 规格" in lines
        assert "=" * 9 in lines
        assert 'Row 1: [A1: "件号"] [B1: "材质"] [C1: "数量"]' in lines
        assert 'Row 2: [A2: "BRK-01"] [B2: "6061铝"] [C2: "20"]' in lines

    def test_values_trimmed_and_integral_floats(self, sample_workbook: Path):
        """测试去空白与整数浮点"""
        text = _normalizer().normalize(sample_workbook)
        assert 'Row 3: [A3: "BRK-02"] [B3: "SUS304"] [C3: "5"]' in text

    def test_empty_rows_skipped(self, sample_workbook: Path):
        """测试空行不输出"""
        text = _normalizer().normalize(sample_workbook)
        assert "Row 4:" not in text

    def test_formula_without_cached_value(self, sample_workbook: Path):
        """测试无缓存结果的公式"""
        text = _normalizer().normalize(sample_workbook)
        assert '[F5: "FORMULA: C2+C3"]' in text

    def test_merged_cells_listed(self, sample_workbook: Path):
        """测试合并单元格列表"""
        lines = _normalizer().normalize(sample_workbook).splitlines()
        idx = lines.index("Merged Cells:")
        assert lines[idx + 1] == "  E6:G6"

    def test_empty_sheet_marker(self, sample_workbook: Path):
        """测试空 sheet 标记"""
        text = _normalizer().normalize(sample_workbook)
        assert "SHEET: 空白" in text
        assert "No data found in sheet (scanned up to row 200, col 50)" in text

    def test_sheet_separator(self, sample_workbook: Path):
        """测试 sheet 分隔线"""
        lines = _normalizer().normalize(sample_workbook).splitlines()
        assert lines.count(SHEET_SEPARATOR) == 2
        assert len(SHEET_SEPARATOR) == 50

    def test_transcript_deterministic(self, sample_workbook: Path):
        """测试同一文件多次输出一致"""
        normalizer = _normalizer()
        assert normalizer.normalize(sample_workbook) == normalizer.normalize(sample_workbook)


class TestBoundedScan:
    """扫描窗口测试"""

    def test_bounded_rows(self, sample_workbook: Path):
        """测试行上限"""
        text = _normalizer(max_rows=2).normalize(sample_workbook)
        assert "Row 2:" in text
        assert "Row 3:" not in text

    def test_bounded_cols(self, sample_workbook: Path):
        """测试列上限"""
        text = _normalizer(max_cols=2).normalize(sample_workbook)
        assert "[B1:" in text
        assert "[C1:" not in text

    def test_stop_after_empty_rows(self, temp_dir: Path):
        """测试连续空行提前终止"""
        wb = Workbook()
        ws = wb.active
        ws.title = "S"
        ws["A1"] = "head"
        ws["A5"] = "near"
        ws["A20"] = "far"
        path = temp_dir / "gap.xlsx"
        wb.save(path)

        text = _normalizer(empty_row_stop=5).normalize(path)
        assert 'Row 5: [A5: "near"]' in text
        assert "Row 20:" not in text

    def test_leading_empty_rows_do_not_stop(self, temp_dir: Path):
        """测试首个数据之前的空行不计入"""
        wb = Workbook()
        ws = wb.active
        ws["C30"] = "late start"
        path = temp_dir / "late.xlsx"
        wb.save(path)

        text = _normalizer(empty_row_stop=3).normalize(path)
        assert 'Row 30: [C30: "late start"]' in text


class TestFormatValue:
    """标量格式化测试"""

    def test_format_value(self):
        assert format_value(3.0) == "3"
        assert format_value(3.25) == "3.25"
        assert format_value(True) == "TRUE"
        assert format_value(date(2024, 5, 1)) == "2024-05-01"
        assert format_value("  a b  ") == "a b"
