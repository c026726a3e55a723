"""
模型输出解析 - 定位两个命名结构、文本修复、严格校验

模型输出并非严格 JSON：可能带代码围栏、行注释、单引号键/值、尾随逗号、
语句结束符以及前后的说明文字。处理分两步，互不越界：

1. 宽松修复（repair_literal）：只做词法层面的规范化，不改变结构
   - 去掉行注释 // 与块注释 /* */
   - 单引号字符串 → 双引号字符串（内部双引号转义）
   - 中文排版引号 “…” 在字符串外出现时按字符串定界符处理
   - 删除 ] / } 前的尾随逗号
   - 删除游离的 ; 与反引号
   - 裸标识符键加引号，undefined → null
   以上操作均跳过字符串内部，因此字符串中的 "//"、逗号、分号和撇号都会原样保留。
2. 严格解析：json.loads + pydantic 校验；任何失败都抛 StructureMalformedError，
   不会把错误形状静默修成别的形状。

单引号字符串内的撇号判定：遇到 ' 时，若其后第一个非空白字符是 , : ] } ) 或文本结尾，
视为字符串结束；否则视为撇号原样保留（如 'O'Brien'）。

测试要点：
- test_wellformed_idempotent: 合法输入修复前后解析结果一致
- test_malformed_corpus: 单引号/尾随逗号/注释/围栏/说明文字均可解析
- test_not_found_vs_malformed: 两类错误可区分
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from ..interfaces import StructureMalformedError, StructureNotFoundError
from ..models import LayoutDocument, QuotationDocument, layout_adapter
from .prompt import LAYOUT_STRUCTURE_NAME, QUOTATION_STRUCTURE_NAME

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:javascript|typescript|python|json|jsx|tsx|js|ts|py)?")
_CLOSE_FOLLOWERS = set(",:]})")
# 字符串起始引号 → 结束引号（含中文排版双引号）
_QUOTE_PAIRS = {'"': '"', "'": "'", "\u201c": "\u201d"}
_PAIRS = {"[": "]", "{": "}"}


@dataclass
class ExtractedDocuments:
    """解析结果"""
    layout: LayoutDocument
    quotation: QuotationDocument


# ============================================================================
# 词法工具
# ============================================================================

def _next_significant(text: str, i: int) -> int:
    """跳过空白与注释，返回下一个有效字符位置（可能等于 len(text)）"""
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
        elif text.startswith("//", i):
            nl = text.find("\n", i)
            i = n if nl == -1 else nl
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            break
    return i


def _scan_string(text: str, start: int) -> tuple[str, int]:
    """
    扫描字符串字面量

    Args:
        text: 全文
        start: 起始引号位置

    Returns:
        (JSON 双引号形式的字面量, 结束引号之后的位置)

    Raises:
        ValueError: 字符串未闭合
    """
    quote = text[start]
    close = _QUOTE_PAIRS[quote]
    n = len(text)
    out: list[str] = []
    i = start + 1
    while i < n:
        ch = text[i]
        if ch == "\\" and i + 1 < n:
            nxt = text[i + 1]
            # \' 在 JSON 中不合法，还原为撇号
            out.append("'" if nxt == "'" else ch + nxt)
            i += 2
            continue
        if ch == close:
            if quote != "'":
                return '"' + "".join(out) + '"', i + 1
            j = _next_significant(text, i + 1)
            if j >= n or text[j] in _CLOSE_FOLLOWERS:
                return '"' + "".join(out) + '"', i + 1
            out.append("'")
            i += 1
            continue
        if ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        else:
            out.append(ch)
        i += 1
    raise ValueError(f"字符串未闭合（起始位置 {start}）")


def _match_bracket(text: str, start: int) -> int | None:
    """从开括号扫描到配对的闭括号，返回闭括号位置；不配对返回 None"""
    stack: list[str] = []
    n = len(text)
    i = start
    while i < n:
        ch = text[i]
        if ch in _QUOTE_PAIRS:
            try:
                _, i = _scan_string(text, i)
            except ValueError:
                return None
            continue
        if text.startswith("//", i) or text.startswith("/*", i):
            i = _next_significant(text, i)
            continue
        if ch in _PAIRS:
            stack.append(_PAIRS[ch])
        elif ch in ("]", "}"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i
        i += 1
    return None


# ============================================================================
# 定位
# ============================================================================

def strip_fences(text: str) -> str:
    """去掉任意位置的代码围栏标记"""
    return _FENCE_RE.sub("", text)


def locate_literal(text: str, name: str, opener: str) -> str:
    """
    定位赋值给 name 的第一个字面量

    Raises:
        StructureNotFoundError: 找不到 name 的赋值
        StructureMalformedError: 找到赋值但字面量括号不配对（如输出被截断）
    """
    pattern = re.compile(rf"(?:\b(?:const|let|var)\s+)?\b{re.escape(name)}\s*=\s*")
    found_assignment = False
    for match in pattern.finditer(text):
        pos = match.end()
        if pos >= len(text) or text[pos] != opener:
            continue
        found_assignment = True
        end = _match_bracket(text, pos)
        if end is None:
            continue
        return text[pos:end + 1]

    if found_assignment:
        raise StructureMalformedError(f"{name} 字面量括号不配对（输出可能被截断）", structure=name)
    raise StructureNotFoundError(f"模型输出中找不到结构 {name}", structure=name)


def locate_structures(raw: str) -> tuple[str, str]:
    """去围栏后定位两个结构的原始字面量"""
    text = strip_fences(raw)
    layout_js = locate_literal(text, LAYOUT_STRUCTURE_NAME, "[")
    quotation_js = locate_literal(text, QUOTATION_STRUCTURE_NAME, "{")
    return layout_js, quotation_js


# ============================================================================
# 修复
# ============================================================================

def repair_literal(literal: str) -> str:
    """词法修复，输出可被 json.loads 解析的文本（若结构本身合法）"""
    out: list[str] = []
    n = len(literal)
    i = 0
    while i < n:
        ch = literal[i]

        if ch in _QUOTE_PAIRS:
            token, i = _scan_string(literal, i)
            out.append(token)
            continue

        if literal.startswith("//", i) or literal.startswith("/*", i):
            i = _next_significant(literal, i)
            continue

        if ch in (";", "`"):
            i += 1
            continue

        if ch == ",":
            j = _next_significant(literal, i + 1)
            if j < n and literal[j] in ("]", "}"):
                i += 1
                continue
            out.append(ch)
            i += 1
            continue

        if ch.isalpha() or ch in ("_", "$"):
            j = i
            while j < n and (literal[j].isalnum() or literal[j] in ("_", "$")):
                j += 1
            ident = literal[i:j]
            k = _next_significant(literal, j)
            if k < n and literal[k] == ":":
                out.append(json.dumps(ident))
            elif ident == "undefined":
                out.append("null")
            else:
                out.append(ident)
            i = j
            continue

        out.append(ch)
        i += 1

    return "".join(out).strip()


def _parse_json(literal: str, name: str):
    try:
        repaired = repair_literal(literal)
    except ValueError as e:
        raise StructureMalformedError(f"{name} 修复失败: {e}", structure=name) from e
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        raise StructureMalformedError(f"{name} 不是合法的结构化数据: {e}", structure=name) from e


# ============================================================================
# 入口
# ============================================================================

def parse_layout(literal: str) -> LayoutDocument:
    """excelLayoutData 字面量 → 校验后的布局"""
    data = _parse_json(literal, LAYOUT_STRUCTURE_NAME)
    try:
        return layout_adapter.validate_python(data)
    except ValidationError as e:
        raise StructureMalformedError(
            f"{LAYOUT_STRUCTURE_NAME} 字段校验失败: {e}", structure=LAYOUT_STRUCTURE_NAME
        ) from e


def parse_quotation(literal: str) -> QuotationDocument:
    """quotationData 字面量 → 校验后的报价单"""
    data = _parse_json(literal, QUOTATION_STRUCTURE_NAME)
    try:
        return QuotationDocument.model_validate(data)
    except ValidationError as e:
        raise StructureMalformedError(
            f"{QUOTATION_STRUCTURE_NAME} 字段校验失败: {e}", structure=QUOTATION_STRUCTURE_NAME
        ) from e


def extract_structures(raw: str) -> ExtractedDocuments:
    """
    原始模型输出 → 两个校验后的文档

    Raises:
        StructureNotFoundError: 任一结构找不到
        StructureMalformedError: 任一结构无法解析或校验失败
    """
    layout_js, quotation_js = locate_structures(raw)
    logger.debug(f"定位到结构: layout {len(layout_js)} 字符, quotation {len(quotation_js)} 字符")
    return ExtractedDocuments(
        layout=parse_layout(layout_js),
        quotation=parse_quotation(quotation_js),
    )
