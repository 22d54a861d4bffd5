# receivables/services/aggregator.py

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from receivables.core.config import settings
from receivables.models.deposits import DepositOut
from receivables.models.invoices import InvoiceOut
from receivables.models.relations import ClassificationOut, ClassificationType
from receivables.models.reports import (
    ClassificationTotal,
    CustomerBalance,
    CustomerStatus,
    OtherDeposits,
    OverdueBuckets,
    PortfolioSummary,
    TopCustomer,
)

ZERO = Decimal("0")


def parse_month(month: str) -> Tuple[int, int]:
    """'YYYY-MM' -> (year, month). Raises ValueError on anything else."""
    dt = datetime.strptime(month, "%Y-%m")
    return dt.year, dt.month


def _in_month(d: date, year: int, month: int) -> bool:
    return d.year == year and d.month == month


def top_customers(balances: Sequence[CustomerBalance], n: int) -> list:
    # sorted() is stable, so ties keep roster order
    ranked = sorted(balances, key=lambda b: b.invoice_total, reverse=True)
    return [
        TopCustomer(customer_id=b.customer_id, company_name=b.company_name, invoice_total=b.invoice_total)
        for b in ranked[:n]
    ]


def overdue_buckets(balances: Sequence[CustomerBalance]) -> OverdueBuckets:
    buckets = OverdueBuckets()
    for b in balances:
        if b.status is not CustomerStatus.UNPAID or not b.overdue_days:
            continue
        if b.overdue_days >= 30:
            buckets.over_30 += 1
        if b.overdue_days >= 60:
            buckets.over_60 += 1
        if b.overdue_days >= 90:
            buckets.over_90 += 1
    return buckets


def classification_rollup(
    classifications: Sequence[ClassificationOut],
    deposits: Sequence[DepositOut],
    year: int,
    month: int,
) -> OtherDeposits:
    deposits_by_id = {d.id: d for d in deposits}
    totals = {
        ClassificationType.INTERNAL: ClassificationTotal(),
        ClassificationType.EXTERNAL: ClassificationTotal(),
    }
    for c in classifications:
        deposit = deposits_by_id.get(c.deposit_id)
        if deposit is None or not _in_month(deposit.transaction_date, year, month):
            continue
        bucket = totals[ClassificationType(c.classification_type)]
        bucket.count += 1
        bucket.amount += deposit.deposit_amount

    return OtherDeposits(
        internal=totals[ClassificationType.INTERNAL],
        external=totals[ClassificationType.EXTERNAL],
    )


def summarize(
    balances: Sequence[CustomerBalance],
    invoices: Sequence[InvoiceOut],
    deposits: Sequence[DepositOut],
    classifications: Sequence[ClassificationOut],
    month: str,
    top_n: Optional[int] = None,
) -> PortfolioSummary:
    """
    Portfolio view for one reporting month.

    Monthly totals filter documents by their own date, whether or not they
    are linked to a customer. Status counts cover the whole roster.
    """
    year, m = parse_month(month)
    top_n = settings.TOP_CUSTOMERS if top_n is None else top_n

    monthly_invoices = [inv for inv in invoices if _in_month(inv.issue_date, year, m)]
    monthly_deposits = [dep for dep in deposits if _in_month(dep.transaction_date, year, m)]

    completed = [b for b in balances if b.status is CustomerStatus.COMPLETE]
    unpaid = [b for b in balances if b.status is CustomerStatus.UNPAID]
    overpaid = [b for b in balances if b.status is CustomerStatus.OVERPAID]

    return PortfolioSummary(
        month=f"{year:04d}-{m:02d}",
        total_customers=len(balances),
        active_customers=sum(1 for b in balances if b.is_active),
        monthly_invoice_total=sum((inv.total_amount for inv in monthly_invoices), ZERO),
        monthly_invoice_count=len(monthly_invoices),
        monthly_deposit_total=sum((dep.deposit_amount for dep in monthly_deposits), ZERO),
        monthly_deposit_count=len(monthly_deposits),
        completed_count=len(completed),
        completed_amount=sum((b.invoice_total for b in completed), ZERO),
        unpaid_count=len(unpaid),
        unpaid_amount=sum((abs(b.balance) for b in unpaid), ZERO),
        overpaid_count=len(overpaid),
        overpaid_amount=sum((b.balance for b in overpaid), ZERO),
        top_customers=top_customers(balances, top_n),
        other_deposits=classification_rollup(classifications, deposits, year, m),
        overdue_buckets=overdue_buckets(balances),
    )
