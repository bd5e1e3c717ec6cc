"""CLI entry point and argument parsing."""
from __future__ import annotations

import argparse
import json
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

from gpu_layout.internals.version import print_banner


def layout_rows(table, layouter) -> List[Dict[str, Any]]:
    """One JSON-ready record per type handle, with member ranges for structs."""
    from gpu_layout.ir.typesys import Struct, variant_name

    rows: List[Dict[str, Any]] = []
    for (handle, ty), layout in zip(table.types.items(), layouter):
        row: Dict[str, Any] = {
            "handle": handle.index,
            "name": ty.name,
            "kind": variant_name(ty.inner),
            "type": str(ty.inner),
            "size": layout.size,
            "alignment": layout.alignment,
        }
        if isinstance(ty.inner, Struct):
            row["members"] = [
                {
                    "name": p.name,
                    "type": str(table.types[member.ty]),
                    "offset": p.offset,
                    "end": p.span.stop,
                    "alignment": p.alignment,
                }
                for p, member in zip(layouter.struct_placements(ty.inner.members), ty.inner.members)
            ]
        rows.append(row)
    return rows


def print_table(rows: List[Dict[str, Any]], show_members: bool, lowered: Optional[Dict[int, str]] = None) -> None:
    """Print the layout table as aligned text columns."""
    name_width = max([len(r["name"] or "-") for r in rows] + [4])
    kind_width = max([len(r["kind"]) for r in rows] + [4])
    print(f"{'#':>4}  {'name':<{name_width}}  {'kind':<{kind_width}}  {'size':>6}  {'align':>5}")
    for r in rows:
        print(f"{r['handle']:>4}  {(r['name'] or '-'):<{name_width}}  {r['kind']:<{kind_width}}  "
              f"{r['size']:>6}  {r['alignment']:>5}")
        if show_members and "members" in r:
            for m in r["members"]:
                print(f"{'':>4}    .{m['name']}: {m['type']} @ {m['offset']}..{m['end']} (align {m['alignment']})")
        if lowered is not None:
            print(f"{'':>4}    llvm: {lowered[r['handle']]}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        0 on success, 1 on success with warnings, 2 on errors.
    """
    ap = argparse.ArgumentParser(prog="gpu-layout", description="Compute GPU type layouts")

    ap.add_argument("source", nargs='?', help="Path to a type table description")
    ap.add_argument("--version", action="store_true", help="Show version and exit")
    ap.add_argument("--dump-parse", action="store_true", help="Print raw Lark tree")
    ap.add_argument("--members", action="store_true", help="Show struct member byte ranges")
    ap.add_argument("--json", action="store_true", help="Print the layout table as JSON")
    ap.add_argument("--llvm", action="store_true", help="Show the padded LLVM type of each entry")
    ap.add_argument(
        "--fatal",
        action="store_true",
        help="Treat internal layout errors as fatal instead of reporting them",
    )
    ap.add_argument(
        "--traceback",
        action="store_true",
        help="Print full traceback on fatal layout errors (for debugging)",
    )
    args = ap.parse_args(argv)

    if args.version:
        print_banner()
        return 0

    if not args.source:
        print("error: source file required", file=sys.stderr)
        return 2

    from gpu_layout.frontend.parser import parse_description
    from gpu_layout.internals.errors import LayoutError
    from gpu_layout.internals.report import Reporter
    from gpu_layout.proc.layouter import Layouter

    src_path = Path(args.source).resolve()
    try:
        src = src_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"error: cannot read {src_path}: {e}", file=sys.stderr)
        return 2

    reporter = Reporter(source=src, filename=str(args.source))

    table = parse_description(src, reporter, dump_parse=args.dump_parse)
    if table is None:
        reporter.print()
        return 2

    if args.fatal:
        try:
            layouter = Layouter.new(table.types, table.constants)
        except LayoutError as e:
            if args.traceback:
                traceback.print_exc()
            else:
                print(f"fatal: {e}", file=sys.stderr)
            return 2
    else:
        layouter = Layouter.try_new(table.types, table.constants, reporter)
        if layouter is None:
            reporter.print()
            return 2

    rows = layout_rows(table, layouter)

    lowered = None
    if args.llvm:
        from gpu_layout.backend.lowering import LLVMLowering
        lowering = LLVMLowering(table.types, layouter)
        lowered = {handle.index: lowering.describe(handle) for handle, _ in table.types.items()}

    if args.json:
        if lowered is not None:
            for r in rows:
                r["llvm"] = lowered[r["handle"]]
        print(json.dumps({"source": str(args.source), "types": rows}, indent=2))
    else:
        print_table(rows, show_members=args.members, lowered=lowered)

    reporter.print()
    return 1 if reporter.has_warnings else 0


if __name__ == "__main__":
    sys.exit(main())
