#!/usr/bin/env python3
"""Build ``rhyme-db/rhyme-db.v<version>.json`` from the CMU pronouncing dictionary."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rhyme_lines.core.cmudict_loader import CMUDictLoader
from rhyme_lines.core.database import CURRENT_VERSION
from rhyme_lines.core.db_builder import DEFAULT_MAX_CANDIDATES, build_rhyme_db, write_rhyme_db
from rhyme_lines.utils.logging_config import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate the versioned rhyme dictionary asset.")
    parser.add_argument(
        "--cmudict",
        type=Path,
        default=None,
        help="Path to a cmudict.7b file (defaults to the copy bundled with pronouncing).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("public"),
        help="Directory that will receive rhyme-db/rhyme-db.v<version>.json.",
    )
    parser.add_argument("--version", type=int, default=CURRENT_VERSION)
    parser.add_argument("--max-candidates", type=int, default=DEFAULT_MAX_CANDIDATES)
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)

    loader = CMUDictLoader(dict_path=args.cmudict)
    payload = build_rhyme_db(loader, version=args.version, max_candidates=args.max_candidates)
    if not payload["rhymes"]:
        print("No rhyme entries were produced; check the CMU dictionary path.", file=sys.stderr)
        return 1

    target = write_rhyme_db(payload, args.output_dir)
    print(f"Wrote {len(payload['rhymes'])} entries to {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
