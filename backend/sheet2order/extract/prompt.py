"""
提示词构建 - 固定模板 + 归一化文本 / 页面图片

职责：
1. 固定两个结构名（excelLayoutData / quotationData）及其列位置
2. 明确要求材质、数量、表面处理，禁止缩写或省略
3. 报价单固定文案（甲乙方、付款方式、验收标准、声明、签名日期）来自配置，
   作为兜底默认值嵌入模板，模型应原样保留

注意：解析器按结构名精确定位，模板中的两个名称与字段集合必须保持稳定。
"""

from __future__ import annotations

import json
from datetime import date
from string import Template

from ..config import BoilerplateConfig, InputMode, get_config
from ..models import PRODUCTION_COLUMNS

LAYOUT_STRUCTURE_NAME = "excelLayoutData"
QUOTATION_STRUCTURE_NAME = "quotationData"

_INTRO_TEXT = """
Analyze the Excel file content below and extract ALL specification data to populate these exact structures. DO NOT leave any fields blank if data exists in the specs.
"""

_INTRO_IMAGE = """
Extract ALL specification data from the image and populate these exact structures. DO NOT leave any fields blank if data exists in the specs.
"""

_INTRO_HYBRID = """
Analyze the attached sheet image together with the Excel file content below and extract ALL specification data to populate these exact structures. DO NOT leave any fields blank if data exists in the specs.
"""

_BODY = Template("""
CRITICAL: Extract these three fields completely:
1. Material (材质) - exact material specification
2. Quantity (数量) - exact quantity specified
3. Surface Treatment (表面/工艺/外观处理) - complete finishing process (e.g., "20#喷砂+黑色氧化")

Look for:
- Part numbers, product codes, item numbers
- Material specifications (steel, aluminum, plastic, etc.)
- Quantities (pieces, sets, units)
- Surface treatments, finishes, coatings
- Dimensions, specifications
- Processing requirements
- Any technical notes or requirements

Output exactly these two variables:

const excelLayoutData = [
    {'type': 'title_row', 'text': "越依生产单", 'merge_cells': 'A1:I1', 'height': 30},
    {'type': 'header_detail_row', 'cells': [
        {'col_letter': 'A', 'value': "销售单号", 'style_key': 'header_label'},
        {'col_letter': 'B', 'value': "[EXTRACT_OR_TBD]", 'style_key': 'header_value'},
        {'col_letter': 'D', 'value': "交期", 'style_key': 'header_label'},
        {'col_letter': 'E', 'value': "", 'style_key': 'header_value'},
        {'col_letter': 'G', 'value': "派单员", 'style_key': 'header_label'},
        {'col_letter': 'H', 'value': "", 'style_key': 'header_value'}
    ], 'height': 22},
    {'type': 'header_detail_row', 'cells': [
        {'col_letter': 'A', 'value': "创建时间", 'style_key': 'header_label'},
        {'col_letter': 'B', 'value': "[CURRENT_DATETIME]", 'style_key': 'header_value'},
        {'col_letter': 'D', 'value': "产品合计数量", 'style_key': 'header_label'},
        {'col_letter': 'E', 'value': "[TOTAL_QUANTITY]", 'style_key': 'header_value'},
        {'col_letter': 'G', 'value': "分析员", 'style_key': 'header_label'},
        {'col_letter': 'H', 'value': "", 'style_key': 'header_value'}
    ], 'height': 22},
    {'type': 'main_table_header_row', 'headers': $headers, 'height': 25},
    // Add one row for each part found
    {'type': 'main_table_data_row', 'data': [1, "", "[PART_NUMBER]", "[PART_NAME]", "[ALL_SPECS]", "[EXACT_MATERIAL]", "[EXACT_QUANTITY]", "", "[SURFACE_TREATMENT_AND_ALL_REQUIREMENTS]"], 'height': 22}
];

const quotationData = {
    "quote_number": "[EXTRACT_OR_GENERATE]",
    "company_info": {
        "party_a": $party_a,
        "contact_a": $contact_a, "tel_a": $tel_a, "fax_a": $fax_a, "email_a": $email_a, "address_a": $address_a,
        "party_b": $party_b,
        "contact_b": $contact_b, "tel_b": $tel_b, "fax_b": $fax_b, "email_b": $email_b,
        "address_b": $address_b
    },
    "products": [
        {
            "序号": 1,
            "零件图片": "[图片]",
            "零件名": "[EXACT_PART_NAME]",
            "表面": "[COMPLETE_SURFACE_TREATMENT]",
            "材质": "[EXACT_MATERIAL]",
            "数量": "[EXACT_QUANTITY]",
            "单价": "", "合计": "",
            "备注": "[ALL_ADDITIONAL_NOTES]"
        }
    ],
    "total_untaxed": "", "processing_cycle": "", "payment_terms": $payment_terms,
    "delivery_date": "", "acceptance_standard": $acceptance_standard,
    "notice": $notice,
    "signature_date": $signature_date
};

Use exactly the same order of parts in excelLayoutData and quotationData, numbering both from 1.
Keep the company information, payment terms, acceptance standard, notice and signature date exactly as given unless the data explicitly contradicts them.
Use double quotes for every string value.

$closing
""")

_CLOSING_TEXT = "Extract ALL data from the Excel content. Do not skip or abbreviate any information.\n\nExcel File Content:\n"
_CLOSING_IMAGE = "Extract ALL data from specs. Do not skip or abbreviate any information."


class PromptBuilder:
    """提示词构建器"""

    def __init__(self, boilerplate: BoilerplateConfig | None = None):
        self.boilerplate = boilerplate or get_config().boilerplate

    def build(
        self,
        mode: InputMode,
        transcript: str | None = None,
        today: date | None = None,
    ) -> str:
        """
        构建完整提示词

        Args:
            mode: 输入形式（text: 模板+文本；image: 仅模板，配合页面图；hybrid: 两者）
            transcript: 归一化文本（text/hybrid 必填）
            today: 签名日期兜底用（测试注入）
        """
        if mode in (InputMode.TEXT, InputMode.HYBRID) and transcript is None:
            raise ValueError(f"{mode.value} 模式需要归一化文本")

        intro = {
            InputMode.TEXT: _INTRO_TEXT,
            InputMode.IMAGE: _INTRO_IMAGE,
            InputMode.HYBRID: _INTRO_HYBRID,
        }[mode]
        closing = _CLOSING_IMAGE if mode == InputMode.IMAGE else _CLOSING_TEXT

        prompt = intro + self._render_body(closing, today)
        if mode != InputMode.IMAGE:
            prompt += transcript
        return prompt

    def _render_body(self, closing: str, today: date | None) -> str:
        bp = self.boilerplate
        values = {
            key: _js(getattr(bp, key))
            for key in (
                "party_a", "contact_a", "tel_a", "fax_a", "email_a", "address_a",
                "party_b", "contact_b", "tel_b", "fax_b", "email_b", "address_b",
                "payment_terms", "acceptance_standard", "notice",
            )
        }
        values["signature_date"] = _js(bp.resolved_signature_date(today))
        values["headers"] = json.dumps(list(PRODUCTION_COLUMNS), ensure_ascii=False)
        values["closing"] = closing
        return _BODY.substitute(values)


def _js(value: str) -> str:
    """字符串 → 双引号字面量"""
    return json.dumps(value, ensure_ascii=False)
