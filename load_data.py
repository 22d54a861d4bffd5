# load_data.py
"""
Load an invoice or deposit export into the database.

Usage:
    python load_data.py invoice data/tax_invoices.xlsx
"""

from scripts.ingest import main


if __name__ == "__main__":
    raise SystemExit(main())
