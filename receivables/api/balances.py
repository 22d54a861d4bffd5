# receivables/api/balances.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from receivables.core.config import local_today
from receivables.db.store import ReceivablesStore, get_store
from receivables.models.reports import (
    AdjustmentReport,
    AdjustmentRequest,
    CustomerBalance,
    CustomerStatus,
    PortfolioSummary,
)
from receivables.services.adjustment import adjust_balances
from receivables.services.aggregator import parse_month, summarize
from receivables.services.settlement import settle_store

router = APIRouter(prefix="/receivables", tags=["receivables"])


@router.get("/balances", response_model=List[CustomerBalance])
def list_balances(
    as_of: Optional[date] = Query(
        default=None,
        description="ISO date (YYYY-MM-DD); defaults to today in the configured timezone",
    ),
    status: Optional[CustomerStatus] = Query(default=None),
    month: Optional[str] = Query(
        default=None,
        description="YYYY-MM; limits has_other_deposits to deposits in that month",
    ),
    store: ReceivablesStore = Depends(get_store),
) -> List[CustomerBalance]:
    """
    Per-customer balance, status and FIFO aging, recomputed from the stored documents.
    """
    if month is not None:
        try:
            parse_month(month)
        except ValueError:
            raise HTTPException(status_code=400, detail="month must be in YYYY-MM format")

    balances, _ = settle_store(store, as_of=as_of or local_today(), month=month)
    if status is not None:
        balances = [b for b in balances if b.status is status]
    return balances


@router.get("/summary", response_model=PortfolioSummary)
def monthly_summary(
    month: str = Query(..., description="Target month in YYYY-MM format"),
    top: Optional[int] = Query(default=None, ge=1, le=50),
    as_of: Optional[date] = Query(default=None),
    store: ReceivablesStore = Depends(get_store),
) -> PortfolioSummary:
    try:
        parse_month(month)
    except ValueError:
        raise HTTPException(status_code=400, detail="month must be in YYYY-MM format")

    balances, snapshot = settle_store(store, as_of=as_of or local_today(), month=month)
    return summarize(
        balances,
        snapshot["invoices"],
        snapshot["deposits"],
        snapshot["classifications"],
        month,
        top_n=top,
    )


@router.post("/adjustments", response_model=AdjustmentReport)
def create_adjustments(
    body: AdjustmentRequest,
    store: ReceivablesStore = Depends(get_store),
) -> AdjustmentReport:
    """
    Settle the given amounts by booking an adjustment deposit per customer.
    """
    if not body.customers:
        raise HTTPException(status_code=400, detail="No customers to adjust")
    return adjust_balances(store, body.customers)
