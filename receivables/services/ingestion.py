# receivables/services/ingestion.py
"""
Upload pipeline: parse a file, store new documents, link them to customers.

The whole file is parsed before anything is written, so a ParseFailure never
leaves a partial upload behind. Rows already in the store are skipped and
counted. Each newly saved document gets a relation row; when its name does not
resolve to a customer the row is stored with no customer for later review.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from receivables.db.store import ReceivablesStore
from receivables.errors import DuplicateRecord
from receivables.ingest.parser import parse_deposit_file, parse_invoice_file
from receivables.models.invoices import InvoiceRecord
from receivables.models.reports import CustomerUpsertReport, IngestReport, InvoiceIngestReport
from receivables.services.resolver import resolve_customer, resolve_invoice_buyer

logger = logging.getLogger(__name__)


def _buyers_by_business_number(records: List[InvoiceRecord]) -> Dict[str, InvoiceRecord]:
    buyers: Dict[str, InvoiceRecord] = {}
    for rec in records:
        if rec.buyer_business_number and rec.buyer_company_name:
            buyers.setdefault(rec.buyer_business_number, rec)
    return buyers


def register_buyers(store: ReceivablesStore, records: List[InvoiceRecord]) -> CustomerUpsertReport:
    """
    Create or refresh customers from the buyer columns of an invoice file,
    keyed by business registration number.

    New customers start with the representative's name as an alias. For known
    customers a changed company name or address is overwritten, and a changed
    representative is stored and put at the front of the aliases.
    """
    buyers = _buyers_by_business_number(records)
    report = CustomerUpsertReport(total=len(buyers))
    if not buyers:
        return report

    existing = {c.business_number: c for c in store.list_customers() if c.business_number}

    for number, rec in buyers.items():
        customer = existing.get(number)

        if customer is None:
            store.insert_customer(
                {
                    "company_name": rec.buyer_company_name,
                    "business_number": number,
                    "representative_name": rec.buyer_representative,
                    "address": rec.buyer_address,
                    "email": rec.buyer_email,
                    "aliases": [rec.buyer_representative] if rec.buyer_representative else [],
                }
            )
            report.new += 1
            continue

        values = {}
        if customer.company_name != rec.buyer_company_name or customer.address != rec.buyer_address:
            values["company_name"] = rec.buyer_company_name
            values["address"] = rec.buyer_address

        rep = rec.buyer_representative
        if rep and customer.representative_name != rep:
            values["representative_name"] = rep
            if rep not in customer.aliases:
                values["aliases"] = [rep, *customer.aliases]

        if values:
            store.update_customer(customer.id, values)
            report.updated += 1
            logger.info("Updated customer %s (%s)", values.get("company_name", customer.company_name), number)

    return report


def ingest_invoice_file(
    store: ReceivablesStore,
    content: bytes,
    filename: str,
    today: Optional[date] = None,
) -> InvoiceIngestReport:
    records = parse_invoice_file(content, filename, today)

    customer_report = register_buyers(store, records)
    roster = store.list_customers()

    report = IngestReport(total=len(records))
    for rec in records:
        try:
            invoice_id = store.insert_invoice(rec)
        except DuplicateRecord:
            report.skipped += 1
            continue
        except SQLAlchemyError:
            logger.exception("Could not save invoice %s", rec.approval_number)
            report.errors += 1
            continue

        report.saved += 1
        customer_id = resolve_invoice_buyer(rec.buyer_business_number, rec.buyer_company_name, roster)
        try:
            store.upsert_invoice_relation(invoice_id, customer_id)
        except SQLAlchemyError:
            logger.exception("Could not link invoice %s", rec.approval_number)
            report.errors += 1

    logger.info(
        "Invoices from %s: %s saved, %s duplicate, %s errors (customers: %s new, %s updated)",
        filename, report.saved, report.skipped, report.errors,
        customer_report.new, customer_report.updated,
    )
    return InvoiceIngestReport(invoices=report, customers=customer_report)


def ingest_deposit_file(
    store: ReceivablesStore,
    content: bytes,
    filename: str,
    today: Optional[date] = None,
) -> IngestReport:
    records = parse_deposit_file(content, filename, today)
    roster = store.list_customers()

    report = IngestReport(total=len(records))
    for rec in records:
        try:
            deposit_id = store.insert_deposit(rec)
        except DuplicateRecord:
            report.skipped += 1
            continue
        except SQLAlchemyError:
            logger.exception("Could not save deposit %s", rec.dedup_key)
            report.errors += 1
            continue

        report.saved += 1
        customer_id = resolve_customer(rec.deposit_name, roster)
        try:
            store.upsert_deposit_relation(deposit_id, customer_id)
        except SQLAlchemyError:
            logger.exception("Could not link deposit %s", deposit_id)
            report.errors += 1

    logger.info(
        "Deposits from %s: %s saved, %s duplicate, %s errors",
        filename, report.saved, report.skipped, report.errors,
    )
    return report
