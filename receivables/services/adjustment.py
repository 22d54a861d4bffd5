# receivables/services/adjustment.py
"""
Write off outstanding balances by booking a synthetic deposit per customer.

The deposit is linked to the customer directly, so the next settlement run
sees the customer as settled by that amount.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from receivables.core.config import settings
from receivables.db.store import ReceivablesStore
from receivables.errors import CustomerNotFound, ReceivablesError
from receivables.models.deposits import DepositRecord
from receivables.models.reports import AdjustmentError, AdjustmentIn, AdjustmentReport, AdjustmentResult

logger = logging.getLogger(__name__)

ADJUSTMENT_TYPE = "balance adjustment"
ADJUSTMENT_NOTE = "automatic receivable write-off"


def adjust_balances(
    store: ReceivablesStore,
    adjustments: Iterable[AdjustmentIn],
    now: Optional[datetime] = None,
) -> AdjustmentReport:
    now = now or datetime.now(ZoneInfo(settings.TIMEZONE))
    report = AdjustmentReport()

    for adj in adjustments:
        try:
            customer = store.get_customer(adj.customer_id)
            if customer is None:
                raise CustomerNotFound(adj.customer_id)

            payer = customer.company_name or (customer.aliases[0] if customer.aliases else "unknown")
            deposit_id = store.insert_deposit(
                DepositRecord(
                    transaction_date=now.date(),
                    transaction_time=now.strftime("%H:%M:%S"),
                    transaction_type=ADJUSTMENT_TYPE,
                    deposit_amount=adj.amount,
                    deposit_name=payer,
                    notes=ADJUSTMENT_NOTE,
                )
            )
            store.upsert_deposit_relation(deposit_id, customer.id)
        except (ReceivablesError, SQLAlchemyError) as e:
            logger.warning("Balance adjustment for customer %s failed: %s", adj.customer_id, e)
            report.errors.append(AdjustmentError(customer_id=adj.customer_id, error=str(e)))
            continue

        report.results.append(
            AdjustmentResult(
                customer_id=customer.id,
                company_name=customer.company_name,
                deposit_id=deposit_id,
                amount=adj.amount,
            )
        )

    return report
