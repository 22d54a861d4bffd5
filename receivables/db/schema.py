# receivables/db/schema.py

from sqlalchemy import (
    JSON, MetaData, Table, Column, Integer, String,
    Numeric, Date, ForeignKey, CheckConstraint, Text, UniqueConstraint
)

metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_name", String, nullable=False),
    Column("business_number", String, nullable=True, unique=True),
    Column("representative_name", String, nullable=True),
    Column("address", Text, nullable=True),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("aliases", JSON, nullable=False, default=list),
    Column("notes", Text, nullable=True),
)

invoices = Table(
    "invoices",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("approval_number", Text, unique=True, nullable=False),
    Column("issue_date", Date, nullable=False),
    Column("supplier_business_number", Text),
    Column("supplier_company_name", Text),
    Column("buyer_business_number", Text),
    Column("buyer_company_name", Text),
    Column("buyer_representative", Text),
    Column("buyer_address", Text),
    Column("buyer_email", Text),
    Column("total_amount", Numeric(18, 2), nullable=False),
    Column("supply_amount", Numeric(18, 2), nullable=False),
    Column("tax_amount", Numeric(18, 2), nullable=False),
    Column("transaction_type", Text),
    Column("item_name", Text),
    CheckConstraint("total_amount >= 0", name="ck_invoices_total_amount_nonneg"),
)

# transaction_time and deposit_name are NOT NULL so the dedup key never
# contains NULLs (which would compare distinct in a unique index).
deposits = Table(
    "deposits",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("transaction_date", Date, nullable=False),
    Column("transaction_time", String, nullable=False, default=""),
    Column("transaction_type", Text),
    Column("deposit_amount", Numeric(18, 2), nullable=False),
    Column("withdrawal_amount", Numeric(18, 2), nullable=False, default=0),
    Column("deposit_name", Text, nullable=False, default=""),
    Column("balance", Numeric(18, 2)),
    Column("branch_name", Text),
    Column("notes", Text),
    CheckConstraint("deposit_amount > 0", name="ck_deposits_deposit_amount_pos"),
    UniqueConstraint(
        "transaction_date", "transaction_time", "deposit_amount", "deposit_name",
        name="uq_deposits_dedup_key",
    ),
)

invoice_relations = Table(
    "invoice_relations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("invoice_id", Integer, ForeignKey("invoices.id"), nullable=False, unique=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=True),
)

deposit_relations = Table(
    "deposit_relations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("deposit_id", Integer, ForeignKey("deposits.id"), nullable=False, unique=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=True),
)

deposit_classifications = Table(
    "deposit_classifications",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("deposit_id", Integer, ForeignKey("deposits.id"), nullable=False, unique=True),
    Column("classification_type", String, nullable=False),
    Column("classification_detail", Text),
    CheckConstraint(
        "classification_type IN ('internal', 'external')",
        name="ck_deposit_classifications_type",
    ),
)
