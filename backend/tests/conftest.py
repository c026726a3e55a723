"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(runtime_config, sample_workbook):
        assert runtime_config.llm.api_key == "test-key"
"""

from __future__ import annotations

import io
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from openpyxl import Workbook
from PIL import Image

from sheet2order.config import BoilerplateConfig, LLMConfig, RuntimeConfig
from sheet2order.interfaces import (
    ICADRenderer,
    ICompletionClient,
    IRasterizer,
    RasterizeError,
    RenderError,
)
from sheet2order.models import (
    LayoutDocument,
    PageImage,
    QuotationDocument,
    RenderedImage,
    layout_adapter,
)

# ============================================================================
# 模型输出样本
# ============================================================================

# 典型的模型输出：说明文字 + 代码围栏 + 单引号 + 注释 + 尾随逗号
SAMPLE_RAW_OUTPUT = """Here is the extracted data:

```javascript
const excelLayoutData = [
    {'type': 'title_row', 'text': "越依生产单", 'merge_cells': 'A1:I1', 'height': 30},
    {'type': 'header_detail_row', 'cells': [
        {'col_letter': 'A', 'value': "销售单号", 'style_key': 'header_label'},
        {'col_letter': 'B', 'value': "SO-2024-001", 'style_key': 'header_value'},
        {'col_letter': 'D', 'value': "产品合计数量", 'style_key': 'header_label'},
        {'col_letter': 'E', 'value': 20, 'style_key': 'header_value'},
    ], 'height': 22},
    {'type': 'main_table_header_row', 'headers': ["序号", "产品图片", "产品编号", "产品名称", "规格", "材料", "数量", "加工方式", "工艺要求"], 'height': 25},
    // Add one row for each part found
    {'type': 'main_table_data_row', 'data': [1, "", "BRK-01", "支架", "120x40x3", "6061铝", "20", "CNC", "20#喷砂+黑色氧化"], 'height': 22},
];

const quotationData = {
    "quote_number": "Q-2024-001",
    "company_info": {
        "party_a": "杭州微影软件有限公司",
        "contact_a": "", "tel_a": "", "fax_a": "", "email_a": "", "address_a": "",
        "party_b": "杭州越依模型科技有限公司",
        "contact_b": "傅士勤", "tel_b": "13777479066", "fax_b": "", "email_b": "",
        "address_b": "杭州市富阳区东洲工业功能区1号路11号"
    },
    "products": [
        {
            "序号": 1,
            "零件图片": "[图片]",
            "零件名": "支架",
            "表面": "20#喷砂+黑色氧化",
            "材质": "6061铝",
            "数量": "20",
            "单价": "", "合计": "",
            "备注": "CNC",
        },
    ],
    "total_untaxed": "", "processing_cycle": "", "payment_terms": "月结30天",
    "delivery_date": "", "acceptance_standard": "依据甲方2D、3D、说明文档等相关约定文件进行验收",
    "notice": "此报价单适用于所有杭州海康威视科技有限公司的子公司及关联公司。",
    "signature_date": "2024年5月1日"
};
```
"""


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def runtime_config(temp_dir: Path) -> RuntimeConfig:
    """运行期配置（存储落在临时目录，带测试密钥）"""
    return RuntimeConfig(
        storage_dir=temp_dir / "storage",
        llm=LLMConfig(api_key="test-key"),
    )


@pytest.fixture
def boilerplate() -> BoilerplateConfig:
    """报价单固定文案（签名日期固定）"""
    return BoilerplateConfig(signature_date="2024年5月1日")


# ============================================================================
# 文件 Fixtures
# ============================================================================

def make_png(width: int = 40, height: int = 30, color: str = "red") -> bytes:
    """生成PNG字节"""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """小尺寸PNG"""
    return make_png()


@pytest.fixture
def sample_workbook(temp_dir: Path) -> Path:
    """规格表：件号/材质/数量 + 一个合并标题 + 一个公式"""
    wb = Workbook()
    ws = wb.active
    ws.title = "规格"
    ws["A1"] = "件号"
    ws["B1"] = "材质"
    ws["C1"] = "数量"
    ws["A2"] = "BRK-01"
    ws["B2"] = "6061铝"
    ws["C2"] = 20
    ws["A3"] = "BRK-02"
    ws["B3"] = "  SUS304  "
    ws["C3"] = 5.0
    ws["E5"] = "备注"
    ws["F5"] = "=C2+C3"
    ws.merge_cells("E6:G6")

    empty = wb.create_sheet("空白")
    empty.sheet_properties.tabColor = "FF0000"

    path = temp_dir / "spec.xlsx"
    wb.save(path)
    return path


# ============================================================================
# 文档 Fixtures
# ============================================================================

@pytest.fixture
def sample_layout() -> LayoutDocument:
    """生产单布局（两个零件）"""
    return layout_adapter.validate_python([
        {"type": "title_row", "text": "越依生产单", "merge_cells": "A1:I1", "height": 30},
        {
            "type": "header_detail_row",
            "cells": [
                {"col_letter": "A", "value": "销售单号", "style_key": "header_label"},
                {"col_letter": "B", "value": "SO-1", "style_key": "header_value"},
            ],
            "height": 22,
        },
        {
            "type": "main_table_header_row",
            "headers": ["序号", "产品图片", "产品编号", "产品名称", "规格", "材料", "数量", "加工方式", "工艺要求"],
            "height": 25,
        },
        {
            "type": "main_table_data_row",
            "data": [1, "", "BRK-01", "支架", "120x40x3", "6061铝", "20", "CNC", "喷砂"],
            "height": 22,
        },
        {
            "type": "main_table_data_row",
            "data": [2, "", "PLT-02", "面板", "200x100x2", "SUS304", "5", "钣金", "拉丝"],
            "height": 22,
        },
    ])


@pytest.fixture
def sample_quotation() -> QuotationDocument:
    """报价单（两个产品）"""
    return QuotationDocument.model_validate({
        "quote_number": "Q-1",
        "company_info": {"party_a": "甲方公司", "party_b": "乙方公司", "contact_b": "张三"},
        "products": [
            {"序号": 1, "零件图片": "[图片]", "零件名": "支架", "表面": "喷砂", "材质": "6061铝",
             "数量": "20", "单价": "12.5", "合计": "250", "备注": ""},
            {"序号": 2, "零件图片": "[图片]", "零件名": "PLT-02 面板", "表面": "拉丝", "材质": "SUS304",
             "数量": "5", "单价": "", "合计": "", "备注": "加急"},
        ],
        "total_untaxed": "250",
    })


# ============================================================================
# 外部能力 Fakes
# ============================================================================

class FakeCompletionClient(ICompletionClient):
    """返回固定文本并记录调用"""

    def __init__(self, output: str = SAMPLE_RAW_OUTPUT):
        self.output = output
        self.calls: list[tuple[str, PageImage | None]] = []

    def complete(self, prompt: str, image: PageImage | None = None) -> str:
        self.calls.append((prompt, image))
        return self.output


class FakeRasterizer(IRasterizer):
    """写出指定数量的页面PNG"""

    def __init__(self, pages: int = 2, fail: bool = False):
        self.pages = pages
        self.fail = fail

    def rasterize(self, document_path: Path, output_dir: Path) -> list[Path]:
        if self.fail:
            raise RasterizeError("soffice not available")
        output_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for i in range(1, self.pages + 1):
            path = output_dir / f"{document_path.stem}-{i}.png"
            path.write_bytes(make_png(color="blue" if i == 1 else "green"))
            paths.append(path)
        return paths


class FakeCADRenderer(ICADRenderer):
    """按文件名返回PNG；fail 中的文件抛 RenderError"""

    def __init__(self, fail: set[str] | None = None):
        self.fail = fail or set()
        self.rendered: list[str] = []

    def render(self, model_bytes: bytes, filename: str) -> RenderedImage:
        if filename in self.fail:
            raise RenderError(f"renderer returned 500 for {filename}")
        self.rendered.append(filename)
        return RenderedImage(source_name=filename, data=make_png())


@pytest.fixture
def fake_completion() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def fake_rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture
def fake_renderer() -> FakeCADRenderer:
    return FakeCADRenderer()
