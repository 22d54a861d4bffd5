# receivables/models/invoices.py

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class InvoiceRecord(BaseModel):
    """One tax invoice row as read from an upload."""

    approval_number: str
    issue_date: date
    supplier_business_number: Optional[str] = None
    supplier_company_name: Optional[str] = None
    buyer_business_number: Optional[str] = None
    buyer_company_name: Optional[str] = None
    buyer_representative: Optional[str] = None
    buyer_address: Optional[str] = None
    buyer_email: Optional[str] = None
    total_amount: Decimal = Decimal("0")
    supply_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    transaction_type: Optional[str] = None
    item_name: Optional[str] = None


class InvoiceOut(InvoiceRecord):
    id: int

    class Config:
        from_attributes = True
