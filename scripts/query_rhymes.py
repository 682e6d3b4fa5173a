#!/usr/bin/env python3
"""Load a rhyme dictionary asset and print suggestions for a few words."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rhyme_lines.core.database import CURRENT_VERSION, load_rhyme_db
from rhyme_lines.core.errors import DictionaryLoadFailure
from rhyme_lines.core.models import ALL_MODES, QueryRequest, RhymeType
from rhyme_lines.core.query import query_rhymes
from rhyme_lines.utils.logging_config import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query a rhyme dictionary asset.")
    parser.add_argument("words", nargs="+", help="Words to look up.")
    parser.add_argument(
        "--origin",
        default="public",
        help="Origin URL or directory that contains rhyme-db/ (default: ./public).",
    )
    parser.add_argument("--version", type=int, default=CURRENT_VERSION)
    parser.add_argument("--cap", type=int, default=20)
    parser.add_argument(
        "--type",
        dest="rhyme_types",
        action="append",
        choices=[kind.value for kind in RhymeType],
        help="Rhyme type to include; repeat for several (default: all).",
    )
    parser.add_argument("--debug", action="store_true", help="Print debug records as JSON.")
    parser.add_argument("--fallback", action="store_true", help="Skip the dictionary.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging("WARNING")

    database = None
    if not args.fallback:
        try:
            database = load_rhyme_db(args.origin, version=args.version)
        except DictionaryLoadFailure as exc:
            print(f"Dictionary unavailable ({exc}); using fallback generator.", file=sys.stderr)

    for word in args.words:
        result = query_rhymes(
            database,
            QueryRequest.for_target(word, ALL_MODES, cap=args.cap, rhyme_types=args.rhyme_types),
        )
        words = next(iter(result.results.values()), [])
        print(f"{word}: {', '.join(words) if words else '(none)'}")
        if args.debug:
            print(json.dumps(result.as_dict()["debug"], indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
