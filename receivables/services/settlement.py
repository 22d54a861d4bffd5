# receivables/services/settlement.py
"""
Per-customer balance sheet with FIFO aging.

balance = deposit_total - invoice_total (negative: customer owes money).

For unpaid customers the deposits are assumed to pay off the oldest invoices
first. The first invoice the running deposit total cannot fully cover gives
oldest_unpaid_date and overdue_days. This is a fixed convention; it does not
claim that a particular deposit paid a particular invoice.

Everything here is a pure function over in-memory collections.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from receivables.core.config import local_today
from receivables.models.customers import CustomerOut
from receivables.models.deposits import DepositOut
from receivables.models.invoices import InvoiceOut
from receivables.models.relations import ClassificationOut, RelationOut
from receivables.models.reports import CustomerBalance, CustomerStatus
from receivables.services.aggregator import parse_month

ZERO = Decimal("0")


def _check_amounts(invoices: Iterable[InvoiceOut], deposits: Iterable[DepositOut]) -> None:
    for inv in invoices:
        if inv.total_amount < 0:
            raise ValueError(f"Invoice {inv.id} has a negative total: {inv.total_amount}")
    for dep in deposits:
        if dep.deposit_amount < 0:
            raise ValueError(f"Deposit {dep.id} has a negative amount: {dep.deposit_amount}")


def status_for(balance: Decimal) -> CustomerStatus:
    if balance == 0:
        return CustomerStatus.COMPLETE
    if balance < 0:
        return CustomerStatus.UNPAID
    return CustomerStatus.OVERPAID


def oldest_unpaid_invoice(invoices: Sequence[InvoiceOut], deposit_total: Decimal) -> Optional[InvoiceOut]:
    """
    Walk invoices oldest first (stable on equal dates), spending deposit_total;
    return the first one it cannot fully cover.
    """
    remaining = deposit_total
    for invoice in sorted(invoices, key=lambda inv: inv.issue_date):
        if remaining >= invoice.total_amount:
            remaining -= invoice.total_amount
        else:
            return invoice
    return None


def overdue_days(oldest_unpaid: date, as_of: date) -> int:
    # future-dated invoices are never negative
    return max(0, (as_of - oldest_unpaid).days)


def settle_customer(
    customer: CustomerOut,
    invoices: Sequence[InvoiceOut],
    deposits: Sequence[DepositOut],
    as_of: Optional[date] = None,
    has_other_deposits: bool = False,
) -> CustomerBalance:
    """Balance sheet for one customer given the documents linked to it."""
    _check_amounts(invoices, deposits)
    as_of = as_of or local_today()

    invoice_total = sum((inv.total_amount for inv in invoices), ZERO)
    deposit_total = sum((dep.deposit_amount for dep in deposits), ZERO)
    balance = deposit_total - invoice_total

    result = CustomerBalance(
        customer_id=customer.id,
        company_name=customer.company_name,
        invoice_total=invoice_total,
        deposit_total=deposit_total,
        balance=balance,
        status=status_for(balance),
        invoice_count=len(invoices),
        deposit_count=len(deposits),
        latest_invoice_date=max((inv.issue_date for inv in invoices), default=None),
        latest_deposit_date=max((dep.transaction_date for dep in deposits), default=None),
        has_other_deposits=has_other_deposits,
    )

    if result.status is CustomerStatus.UNPAID:
        oldest = oldest_unpaid_invoice(invoices, deposit_total)
        if oldest is not None:
            result.oldest_unpaid_date = oldest.issue_date
            result.overdue_days = overdue_days(oldest.issue_date, as_of)

    return result


def _latest_relations(relations: Iterable[RelationOut]) -> Dict[int, Optional[int]]:
    # one link per document; a later row for the same document replaces an earlier one
    return {rel.document_id: rel.customer_id for rel in relations}


def _group_linked(
    documents: Iterable,
    relations: Iterable[RelationOut],
    customer_ids: set,
) -> Dict[int, list]:
    by_id = {doc.id: doc for doc in documents}
    grouped: Dict[int, list] = defaultdict(list)
    for document_id, customer_id in _latest_relations(relations).items():
        if customer_id is None or customer_id not in customer_ids:
            continue
        doc = by_id.get(document_id)
        if doc is not None:
            grouped[customer_id].append(doc)
    return grouped


def settle(
    customers: Sequence[CustomerOut],
    invoices: Sequence[InvoiceOut],
    deposits: Sequence[DepositOut],
    invoice_relations: Sequence[RelationOut],
    deposit_relations: Sequence[RelationOut],
    classifications: Sequence[ClassificationOut] = (),
    as_of: Optional[date] = None,
    month: Optional[str] = None,
) -> List[CustomerBalance]:
    """
    Balance sheet for every customer in the roster, in roster order.

    Relations with a null customer, or pointing at unknown customers or
    documents, are ignored. When a document has several relation rows the
    last one wins.

    has_other_deposits is set for customers with a linked deposit that is
    also classified. With month ("YYYY-MM") only deposits dated in that month
    count; without it every classified deposit does.
    """
    _check_amounts(invoices, deposits)
    as_of = as_of or local_today()

    customer_ids = {c.id for c in customers}
    invoices_by_customer = _group_linked(invoices, invoice_relations, customer_ids)
    deposits_by_customer = _group_linked(deposits, deposit_relations, customer_ids)

    classified = {c.deposit_id for c in classifications}
    if month is not None:
        year, m = parse_month(month)
        in_month = {
            d.id for d in deposits
            if d.transaction_date.year == year and d.transaction_date.month == m
        }
        classified &= in_month

    with_other: set = {
        customer_id
        for document_id, customer_id in _latest_relations(deposit_relations).items()
        if customer_id is not None and document_id in classified
    }

    return [
        settle_customer(
            customer,
            invoices_by_customer.get(customer.id, []),
            deposits_by_customer.get(customer.id, []),
            as_of=as_of,
            has_other_deposits=customer.id in with_other,
        )
        for customer in customers
    ]


def settle_store(
    store,
    as_of: Optional[date] = None,
    month: Optional[str] = None,
) -> Tuple[List[CustomerBalance], dict]:
    """
    Read a full snapshot from the store and settle it. Returns the balances
    and the snapshot so callers can aggregate without a second read.
    """
    snapshot = {
        "customers": store.list_customers(),
        "invoices": store.list_invoices(),
        "deposits": store.list_deposits(),
        "invoice_relations": store.list_invoice_relations(),
        "deposit_relations": store.list_deposit_relations(),
        "classifications": store.list_classifications(),
    }
    balances = settle(as_of=as_of, month=month, **snapshot)
    return balances, snapshot
