# scripts/ingest.py
"""
Ingest one tax invoice or bank export into the database.

Usage:
    python -m scripts.ingest invoice data/tax_invoices.xlsx
    python -m scripts.ingest deposit data/bank_2024_01.csv
"""

import argparse
import logging
from pathlib import Path

from receivables.db.store import get_store
from receivables.errors import ParseFailure, UnsupportedFormat
from receivables.ingest.parser import DocumentKind
from receivables.services.ingestion import ingest_deposit_file, ingest_invoice_file

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load an invoice or deposit export.")
    parser.add_argument("kind", choices=[k.value for k in DocumentKind])
    parser.add_argument("path", type=Path)
    return parser


def ingest(kind: DocumentKind, path: Path):
    store = get_store()
    store.create_schema()
    content = path.read_bytes()

    if kind is DocumentKind.INVOICE:
        return ingest_invoice_file(store, content, path.name)
    return ingest_deposit_file(store, content, path.name)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    kind = DocumentKind(args.kind)

    try:
        report = ingest(kind, args.path)
    except (UnsupportedFormat, ParseFailure) as e:
        logger.error("%s", e)
        return 1

    if kind is DocumentKind.INVOICE:
        logger.info("Invoices saved:        %s", report.invoices.saved)
        logger.info("Invoices skipped:      %s", report.invoices.skipped)
        logger.info("Invoice errors:        %s", report.invoices.errors)
        logger.info("Customers new/updated: %s/%s", report.customers.new, report.customers.updated)
        failed = report.invoices.errors
    else:
        logger.info("Deposits saved:        %s", report.saved)
        logger.info("Deposits skipped:      %s", report.skipped)
        logger.info("Deposit errors:        %s", report.errors)
        failed = report.errors

    if failed:
        logger.warning("%s rows could not be stored, see errors above", failed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
