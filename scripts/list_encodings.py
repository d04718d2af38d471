from __future__ import annotations

import argparse
import json
import sys
from collections import defaultdict
from typing import Any, Dict, List

from thumbm0.decoding.table import TABLE


def _main() -> None:
    parser = argparse.ArgumentParser(
        description="List every encodable mnemonic/operand signature pair"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of a human-readable table",
    )
    parser.add_argument(
        "mnemonics",
        nargs="*",
        help="Only list these mnemonics (default: all)",
    )
    args = parser.parse_args()

    wanted = {m.upper() for m in args.mnemonics}
    rows = [
        row for row in TABLE.describe() if not wanted or row["mnemonic"] in wanted
    ]

    if args.json:
        json.dump(rows, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return

    grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for row in rows:
        grouped[row["mnemonic"]].append(row)

    for mnemonic, entries in grouped.items():
        print(f"{mnemonic}")
        for entry in entries:
            signature = entry["signature"] or "-"
            print(
                f"  {signature:<6} 0x{entry['opcode']:04X}  "
                f"{entry['template']:<16} {entry['form']}"
            )
    print(f"{len(rows)} encodings")


if __name__ == "__main__":
    _main()
