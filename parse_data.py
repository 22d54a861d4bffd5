# parse_data.py
"""
Parse an invoice or deposit export and print what would be loaded, without
touching the database.

Usage:
    python parse_data.py deposit data/bank_2024_01.csv
"""

import sys
from pathlib import Path

from receivables.errors import ParseFailure, UnsupportedFormat
from receivables.ingest.parser import DocumentKind, parse_file


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 2:
        print(__doc__)
        return 2

    kind, path = DocumentKind(argv[0]), Path(argv[1])
    try:
        records = parse_file(path.read_bytes(), path.name, kind)
    except (UnsupportedFormat, ParseFailure) as e:
        print(f"Error: {e}")
        return 1

    print(f"Rows parsed:   {len(records)}")
    for record in records[:5]:
        print(f"- {record.model_dump()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
