# receivables/models/deposits.py

from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel


class DepositRecord(BaseModel):
    """One incoming bank transaction row as read from an upload."""

    transaction_date: date
    transaction_time: str = ""
    transaction_type: Optional[str] = None
    deposit_amount: Decimal
    withdrawal_amount: Decimal = Decimal("0")
    deposit_name: str = ""
    balance: Optional[Decimal] = None
    branch_name: Optional[str] = None
    notes: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[date, str, Decimal, str]:
        return (
            self.transaction_date,
            self.transaction_time,
            self.deposit_amount,
            self.deposit_name,
        )


class DepositOut(DepositRecord):
    id: int

    class Config:
        from_attributes = True
