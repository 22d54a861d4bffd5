"""
Shared fixtures: a fresh SQLite store per test and small builders for the
documents the engine works on.
"""

from datetime import date
from decimal import Decimal

import pytest

from receivables.db.engine import get_engine
from receivables.db.store import ReceivablesStore
from receivables.models.customers import CustomerOut
from receivables.models.deposits import DepositOut, DepositRecord
from receivables.models.invoices import InvoiceOut, InvoiceRecord


@pytest.fixture
def store(tmp_path):
    """Store backed by a throwaway database file."""
    engine = get_engine(f"sqlite:///{tmp_path / 'receivables.db'}")
    s = ReceivablesStore(engine)
    s.create_schema()
    yield s
    engine.dispose()


def make_customer(id, company_name, aliases=(), business_number=None):
    return CustomerOut(
        id=id,
        company_name=company_name,
        aliases=list(aliases),
        business_number=business_number,
    )


def make_invoice(id, total, issue_date, approval_number=None):
    return InvoiceOut(
        id=id,
        approval_number=approval_number or f"APR-{id}",
        issue_date=issue_date,
        total_amount=Decimal(str(total)),
    )


def make_deposit(id, amount, transaction_date, name="", time=""):
    return DepositOut(
        id=id,
        transaction_date=transaction_date,
        transaction_time=time,
        deposit_amount=Decimal(str(amount)),
        deposit_name=name,
    )


def invoice_record(approval_number, total, issue_date=date(2024, 1, 5), buyer=None, business_number=None):
    return InvoiceRecord(
        approval_number=approval_number,
        issue_date=issue_date,
        buyer_company_name=buyer,
        buyer_business_number=business_number,
        total_amount=Decimal(str(total)),
    )


def deposit_record(amount, name, transaction_date=date(2024, 1, 10), time="10:00:00"):
    return DepositRecord(
        transaction_date=transaction_date,
        transaction_time=time,
        deposit_amount=Decimal(str(amount)),
        deposit_name=name,
    )
