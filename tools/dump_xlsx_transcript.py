"""
输出工作簿的归一化文本（即模型看到的表格内容）。

用法：
  python tools/dump_xlsx_transcript.py --xlsx samples/规格书.xlsx
  python tools/dump_xlsx_transcript.py --xlsx samples/规格书.xlsx --max-rows 400 --out transcript.txt
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def main() -> int:
    parser = argparse.ArgumentParser(description="Dump the normalized transcript of an .xlsx file.")
    parser.add_argument("--xlsx", required=True, help="输入工作簿")
    parser.add_argument("--max-rows", type=int, default=0, help="扫描行上限（默认取配置）")
    parser.add_argument("--max-cols", type=int, default=0, help="扫描列上限（默认取配置）")
    parser.add_argument("--out", default="", help="可选：写入文件而不是打印")
    args = parser.parse_args()

    _add_backend_to_path()
    from sheet2order.extract import TabularNormalizer

    xlsx_path = Path(args.xlsx)
    if not xlsx_path.exists():
        raise SystemExit(f"--xlsx not found: {xlsx_path}")

    normalizer = TabularNormalizer(
        max_rows=args.max_rows or None,
        max_cols=args.max_cols or None,
    )
    transcript = normalizer.normalize(xlsx_path)

    if args.out:
        Path(args.out).write_text(transcript, encoding="utf-8")
        print(f"[OK] wrote: {args.out} ({len(transcript)} chars)")
    else:
        print(transcript)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
