"""
文档生成单元测试

每个模块完成后必须运行：pytest backend/tests/unit/test_emitters.py -v
"""

import io
from datetime import date

from openpyxl import load_workbook

from conftest import make_png
from sheet2order.config import BoilerplateConfig
from sheet2order.doc_gen import ProductionOrderEmitter, QuotationEmitter
from sheet2order.models import RenderedImage, data_rows


def _load(content: bytes):
    return load_workbook(io.BytesIO(content)).active


def _snapshot(ws) -> tuple:
    """可比较的工作表内容（单元格值/合并/行高/列宽）"""
    values = tuple(tuple(cell.value for cell in row) for row in ws.iter_rows())
    merges = tuple(sorted(str(rng) for rng in ws.merged_cells.ranges))
    heights = tuple(ws.row_dimensions[i].height for i in range(1, ws.max_row + 1))
    widths = tuple(ws.column_dimensions[c].width for c in "ABCDEFGHI")
    return values, merges, heights, widths


def _image(name: str = "brk-01-v3.png", data: bytes | None = None) -> RenderedImage:
    return RenderedImage(source_name=name, data=data if data is not None else make_png(300, 200))


class TestProductionOrderEmitter:
    """生产单测试"""

    def test_production_order_layout(self, sample_layout):
        """测试 sheet 名/合并/列宽/行高"""
        ws = _load(ProductionOrderEmitter().render(sample_layout, {}))

        assert ws.title == "生产单"
        assert ws["A1"].value == "越依生产单"
        assert ws["A1"].font.bold
        assert [str(rng) for rng in ws.merged_cells.ranges] == ["A1:I1"]
        assert ws.column_dimensions["A"].width == 15
        assert ws.column_dimensions["I"].width == 15
        assert ws.row_dimensions[1].height == 30
        assert ws.row_dimensions[3].height == 25
        assert ws.row_dimensions[4].height == 22

    def test_rows_written_in_order(self, sample_layout):
        """测试每个布局行占一行"""
        ws = _load(ProductionOrderEmitter().render(sample_layout, {}))

        assert ws["A2"].value == "销售单号"
        assert ws["A2"].font.bold
        assert ws["B2"].value == "SO-1"
        assert ws["C3"].value == "产品编号"
        assert ws["C4"].value == "BRK-01"
        assert ws["C5"].value == "PLT-02"
        assert ws.max_row == 5

    def test_production_order_image(self, sample_layout):
        """测试命中图片时嵌入并撑高行高"""
        data_rows(sample_layout)[0].image_key = "brk-01-v3.png"
        images = {"brk-01-v3.png": _image()}

        ws = _load(ProductionOrderEmitter().render(sample_layout, images))

        assert len(ws._images) == 1
        assert ws._images[0].anchor._from.row == 3
        assert ws._images[0].anchor._from.col == 1
        assert ws.row_dimensions[4].height == 80
        assert ws.row_dimensions[5].height == 22
        assert ws["B4"].value == "brk-01-v3.png"

    def test_missing_image_not_fatal(self, sample_layout):
        """测试图片缺失按原行高输出"""
        data_rows(sample_layout)[0].image_key = "gone.png"
        ws = _load(ProductionOrderEmitter().render(sample_layout, {}))
        assert len(ws._images) == 0
        assert ws.row_dimensions[4].height == 22

    def test_undecodable_image_skipped(self, sample_layout, caplog):
        """测试无法解码的图片记录告警并跳过"""
        data_rows(sample_layout)[0].image_key = "brk-01-v3.png"
        images = {"brk-01-v3.png": _image(data=b"not an image")}

        ws = _load(ProductionOrderEmitter().render(sample_layout, images))

        assert len(ws._images) == 0
        assert ws.row_dimensions[4].height == 22
        assert "图片无法解码" in caplog.text

    def test_production_order_deterministic(self, sample_layout):
        """测试相同输入内容一致"""
        emitter = ProductionOrderEmitter()
        first = _snapshot(_load(emitter.render(sample_layout, {})))
        second = _snapshot(_load(emitter.render(sample_layout, {})))
        assert first == second

    def test_formula_like_text_kept_as_string(self, sample_layout):
        """测试以 = 开头的文本按字符串写入"""
        data_rows(sample_layout)[0].data[2] = '=HYPERLINK("http://x")'

        ws = _load(ProductionOrderEmitter().render(sample_layout, {}))

        assert ws["C4"].data_type == "s"
        assert ws["C4"].value == '=HYPERLINK("http://x")'


class TestQuotationEmitter:
    """报价单测试"""

    def test_quotation_layout(self, sample_quotation, boilerplate):
        """测试标题/表头/列宽"""
        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, {}))

        assert ws.title == "报价单"
        assert ws["A1"].value == "手板报价 编号: Q-1"
        assert "A1:I1" in {str(rng) for rng in ws.merged_cells.ranges}
        assert [ws.cell(row=8, column=c).value for c in range(1, 10)] == [
            "序号", "零件图片", "零件名", "表面", "材质", "数量", "单价", "合计", "备注",
        ]
        assert ws.column_dimensions["A"].width == 6
        assert ws.column_dimensions["B"].width == 20
        assert ws.column_dimensions["I"].width == 18

    def test_company_block_with_fallback(self, sample_quotation, boilerplate):
        """测试甲乙方信息，空字段取固定文案"""
        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, {}))

        assert ws["A2"].value == "甲方:甲方公司"
        assert ws["E2"].value == "乙方:乙方公司"
        assert ws["E3"].value == "联系人:张三"
        assert ws["E4"].value == "TEL:13777479066"
        merges = {str(rng) for rng in ws.merged_cells.ranges}
        assert {"A2:D2", "E2:I2", "A7:D7", "E7:I7"} <= merges

    def test_product_rows_and_totals(self, sample_quotation, boilerplate):
        """测试产品行与合计行"""
        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, {}))

        assert ws["A9"].value == 1
        assert ws["C9"].value == "支架"
        assert ws["G9"].value == "12.5"
        assert ws["H9"].value == "250"
        assert ws["I10"].value == "加急"
        assert ws["A11"].value == "计:"
        assert ws["G11"].value == "250"
        merges = {str(rng) for rng in ws.merged_cells.ranges}
        assert {"A11:F11", "G11:H11"} <= merges

    def test_info_and_signature(self, sample_quotation, boilerplate):
        """测试说明行与签名行"""
        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, {}))

        assert ws["A12"].value == "未税 总价：(人民币) 250"
        assert ws["A14"].value == "付款方式：月结30天"
        assert ws["A16"].value == "验收标准：依据甲方2D、3D、说明文档等相关约定文件进行验收"
        assert ws["A17"].value == boilerplate.notice
        assert ws["F18"].value == "乙方签名确认"
        assert ws["H18"].value == "2024年5月1日"
        assert ws.max_row == 18

    def test_signature_date_defaults_to_today(self, sample_quotation):
        """测试未给签名日期时取当天"""
        emitter = QuotationEmitter(BoilerplateConfig(), today=date(2024, 3, 7))
        ws = _load(emitter.render(sample_quotation, {}))
        assert ws["H18"].value == "2024年3月7日"

    def test_empty_total_not_written(self, sample_quotation, boilerplate):
        """测试合计为空时不写值"""
        sample_quotation.total_untaxed = ""
        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, {}))
        assert ws["G11"].value is None
        assert ws["A12"].value == "未税 总价：(人民币)"

    def test_quotation_image(self, sample_quotation, boilerplate):
        """测试报价单图片嵌入"""
        sample_quotation.products[0].image_key = "brk-01-v3.png"
        images = {"brk-01-v3.png": _image()}

        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, images))

        assert len(ws._images) == 1
        assert ws._images[0].anchor._from.row == 8
        assert ws.row_dimensions[9].height == 80
        assert ws.row_dimensions[10].height == 18

    def test_quotation_deterministic(self, sample_quotation, boilerplate):
        """测试相同输入内容一致"""
        emitter = QuotationEmitter(boilerplate)
        first = _snapshot(_load(emitter.render(sample_quotation, {})))
        second = _snapshot(_load(emitter.render(sample_quotation, {})))
        assert first == second

    def test_formula_like_text_kept_as_string(self, sample_quotation, boilerplate):
        """测试产品行与合计中以 = 开头的文本不作为公式"""
        sample_quotation.products[0].part_name = "=1+1"
        sample_quotation.total_untaxed = "=SUM(H9:H10)"

        ws = _load(QuotationEmitter(boilerplate).render(sample_quotation, {}))

        assert ws["C9"].data_type == "s"
        assert ws["C9"].value == "=1+1"
        assert ws["G11"].data_type == "s"
        assert ws["G11"].value == "=SUM(H9:H10)"
