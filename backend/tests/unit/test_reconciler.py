"""
零件-图片匹配单元测试

每个模块完成后必须运行：pytest backend/tests/unit/test_reconciler.py -v
"""

from sheet2order.extract import PrefixReconciler, find_prefix_match
from sheet2order.models import QuotationDocument, data_rows, layout_adapter


def _layout(*part_numbers):
    return layout_adapter.validate_python([
        {
            "type": "main_table_data_row",
            "data": [i, "", pn, "名", "", "", "", "", ""],
        }
        for i, pn in enumerate(part_numbers, start=1)
    ])


def _quotation(*part_names):
    return QuotationDocument.model_validate({
        "quote_number": "Q",
        "company_info": {},
        "products": [
            {"序号": i, "零件图片": "[图片]", "零件名": name}
            for i, name in enumerate(part_names, start=1)
        ],
    })


class TestFindPrefixMatch:
    """前缀匹配测试"""

    def test_prefix_match(self):
        """测试前缀命中"""
        assert find_prefix_match("P100", ["p100-rev2.png", "p200.png"]) == "p100-rev2.png"

    def test_tie_break_first_wins(self):
        """测试多命中取第一个"""
        assert find_prefix_match("P1", ["p100.png", "p1.png"]) == "p100.png"

    def test_empty_identifier_never_matches(self):
        """测试空标识不参与匹配"""
        assert find_prefix_match("", ["a.png"]) is None
        assert find_prefix_match("   ", ["a.png"]) is None
        assert find_prefix_match(None, ["a.png"]) is None

    def test_numeric_identifier(self):
        """测试数字标识"""
        assert find_prefix_match(42, ["42-a.png"]) == "42-a.png"


class TestPrefixReconciler:
    """回填测试"""

    def test_both_documents_updated(self):
        """测试两份文档同时回填"""
        layout = _layout("P100", "P300")
        quotation = _quotation("P100 支架", "P300")

        PrefixReconciler().reconcile(["P100-rev2.png", "p200.png"], layout, quotation)

        rows = data_rows(layout)
        assert rows[0].image_key == "p100-rev2.png"
        assert rows[1].image_key == ""
        # 零件名 "P100 支架" 不是任何文件名的前缀，回退到同序号的产品编号
        assert quotation.products[0].image_key == "p100-rev2.png"
        assert quotation.products[1].image_key == "[图片]"

    def test_seq_fallback(self):
        """测试零件名未命中时按序号回退"""
        layout = _layout("BRK-01")
        quotation = _quotation("支架")

        PrefixReconciler().reconcile(["brk-01-v3.png"], layout, quotation)

        assert data_rows(layout)[0].image_key == "brk-01-v3.png"
        assert quotation.products[0].image_key == "brk-01-v3.png"

    def test_no_images_is_noop(self):
        """测试无图片时不改动"""
        layout = _layout("P1")
        quotation = _quotation("P1")

        PrefixReconciler().reconcile([], layout, quotation)

        assert data_rows(layout)[0].image_key == ""
        assert quotation.products[0].image_key == "[图片]"

    def test_empty_part_number_untouched(self):
        """测试空编号行保持占位"""
        layout = _layout("")
        quotation = _quotation("")

        PrefixReconciler().reconcile(["a.png"], layout, quotation)

        assert data_rows(layout)[0].image_key == ""
        assert quotation.products[0].image_key == "[图片]"
