# receivables/models/reports.py

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerStatus(str, Enum):
    COMPLETE = "complete"
    UNPAID = "unpaid"
    OVERPAID = "overpaid"


class CustomerBalance(BaseModel):
    customer_id: int
    company_name: str
    invoice_total: Decimal = Decimal("0")
    deposit_total: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    status: CustomerStatus = CustomerStatus.COMPLETE
    oldest_unpaid_date: Optional[date] = None
    overdue_days: Optional[int] = None
    invoice_count: int = 0
    deposit_count: int = 0
    latest_invoice_date: Optional[date] = None
    latest_deposit_date: Optional[date] = None
    has_other_deposits: bool = False

    @property
    def is_active(self) -> bool:
        return self.invoice_count > 0 or self.deposit_count > 0


class TopCustomer(BaseModel):
    customer_id: int
    company_name: str
    invoice_total: Decimal


class ClassificationTotal(BaseModel):
    count: int = 0
    amount: Decimal = Decimal("0")


class OtherDeposits(BaseModel):
    internal: ClassificationTotal = Field(default_factory=ClassificationTotal)
    external: ClassificationTotal = Field(default_factory=ClassificationTotal)


class OverdueBuckets(BaseModel):
    over_30: int = 0
    over_60: int = 0
    over_90: int = 0


class PortfolioSummary(BaseModel):
    month: str
    total_customers: int
    active_customers: int
    monthly_invoice_total: Decimal
    monthly_invoice_count: int
    monthly_deposit_total: Decimal
    monthly_deposit_count: int
    completed_count: int
    completed_amount: Decimal
    unpaid_count: int
    unpaid_amount: Decimal
    overpaid_count: int
    overpaid_amount: Decimal
    top_customers: List[TopCustomer]
    other_deposits: OtherDeposits
    overdue_buckets: OverdueBuckets


class IngestReport(BaseModel):
    saved: int = 0
    skipped: int = 0
    errors: int = 0
    total: int = 0


class CustomerUpsertReport(BaseModel):
    new: int = 0
    updated: int = 0
    total: int = 0


class InvoiceIngestReport(BaseModel):
    invoices: IngestReport
    customers: CustomerUpsertReport


class LinkageReport(BaseModel):
    deposit_id: int
    customer_id: int
    alias_added: bool
    propagated: int = 0
    failed: int = 0
    failed_deposit_ids: List[int] = Field(default_factory=list)


class AdjustmentIn(BaseModel):
    customer_id: int
    amount: Decimal = Field(..., gt=0)


class AdjustmentRequest(BaseModel):
    customers: List[AdjustmentIn]


class AdjustmentResult(BaseModel):
    customer_id: int
    company_name: str
    deposit_id: int
    amount: Decimal


class AdjustmentError(BaseModel):
    customer_id: int
    error: str


class AdjustmentReport(BaseModel):
    results: List[AdjustmentResult] = Field(default_factory=list)
    errors: List[AdjustmentError] = Field(default_factory=list)
