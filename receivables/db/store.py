# receivables/db/store.py
"""
Relationship store backed by SQLAlchemy Core.

The reconciliation engine itself is pure; everything it reads and writes goes
through this narrow interface: customers and their aliases, the two document
tables, the per-document customer relations and the deposit classifications.
"""

import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy import and_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from receivables.db.engine import get_engine
from receivables.db.schema import (
    customers,
    deposit_classifications,
    deposit_relations,
    deposits,
    invoice_relations,
    invoices,
    metadata,
)
from receivables.errors import (
    CustomerNotFound,
    DocumentNotFound,
    DuplicateApprovalNumber,
    DuplicateDeposit,
)
from receivables.models.customers import CustomerCreate, CustomerOut
from receivables.models.deposits import DepositOut, DepositRecord
from receivables.models.invoices import InvoiceOut, InvoiceRecord
from receivables.models.relations import (
    ClassificationOut,
    ClassificationType,
    DocumentLink,
    RelationOut,
)

logger = logging.getLogger(__name__)


def _dedupe(names: Iterable[str]) -> List[str]:
    seen = []
    for name in names:
        name = (name or "").strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def _row_to_customer(row) -> CustomerOut:
    return CustomerOut(
        id=row["id"],
        company_name=row["company_name"],
        aliases=list(row["aliases"] or []),
        business_number=row["business_number"],
        representative_name=row["representative_name"],
        address=row["address"],
        email=row["email"],
        phone=row["phone"],
        notes=row["notes"],
    )


def _upsert_relation(conn: Connection, table, key_column: str, document_id: int, customer_id: Optional[int]) -> None:
    stmt = sqlite_insert(table).values(**{key_column: document_id, "customer_id": customer_id})
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c[key_column]],
        set_={"customer_id": stmt.excluded.customer_id},
    )
    conn.execute(stmt)


class ReceivablesStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    # ---- Customers ----

    def list_customers(self) -> List[CustomerOut]:
        """Full roster in insertion order; resolver tie-breaks depend on it."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(customers).order_by(customers.c.id)).mappings().all()
        return [_row_to_customer(row) for row in rows]

    def get_customer(self, customer_id: int) -> Optional[CustomerOut]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(customers).where(customers.c.id == customer_id)
            ).mappings().first()
        return _row_to_customer(row) if row is not None else None

    def insert_customer(self, customer: Union[CustomerCreate, dict]) -> int:
        values = customer.model_dump() if isinstance(customer, CustomerCreate) else dict(customer)
        values["aliases"] = _dedupe(values.get("aliases") or [])
        if values.get("email") is not None:
            values["email"] = str(values["email"])
        with self.engine.begin() as conn:
            result = conn.execute(customers.insert().values(**values))
            return result.inserted_primary_key[0]

    def update_customer(self, customer_id: int, values: dict) -> bool:
        if "aliases" in values:
            values = {**values, "aliases": _dedupe(values["aliases"])}
        with self.engine.begin() as conn:
            result = conn.execute(
                customers.update().where(customers.c.id == customer_id).values(**values)
            )
        return result.rowcount > 0

    def append_alias(self, customer_id: int, alias: str, prepend: bool = False) -> bool:
        """
        Add alias to the customer's alias set. Returns False when it was
        already present (exact string) or blank.
        """
        alias = (alias or "").strip()
        if not alias:
            return False

        with self.engine.begin() as conn:
            row = conn.execute(
                select(customers.c.aliases).where(customers.c.id == customer_id)
            ).first()
            if row is None:
                raise CustomerNotFound(customer_id)

            current = list(row.aliases or [])
            if alias in current:
                return False

            updated = [alias, *current] if prepend else [*current, alias]
            conn.execute(
                customers.update().where(customers.c.id == customer_id).values(aliases=updated)
            )
        logger.info("Alias %r added to customer %s", alias, customer_id)
        return True

    def remove_alias(self, customer_id: int, alias: str) -> bool:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(customers.c.aliases).where(customers.c.id == customer_id)
            ).first()
            if row is None:
                raise CustomerNotFound(customer_id)

            current = list(row.aliases or [])
            if alias not in current:
                return False

            conn.execute(
                customers.update()
                .where(customers.c.id == customer_id)
                .values(aliases=[a for a in current if a != alias])
            )
        return True

    # ---- Invoices ----

    def list_invoices(self) -> List[InvoiceOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(invoices).order_by(invoices.c.id)).mappings().all()
        return [InvoiceOut(**row) for row in rows]

    def get_invoice_by_approval_number(self, approval_number: str) -> Optional[InvoiceOut]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(invoices).where(invoices.c.approval_number == approval_number)
            ).mappings().first()
        return InvoiceOut(**row) if row is not None else None

    def insert_invoice(self, record: InvoiceRecord) -> int:
        """Insert one invoice; raises DuplicateApprovalNumber if it is already stored."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(invoices.insert().values(**record.model_dump()))
                return result.inserted_primary_key[0]
        except IntegrityError:
            if self.get_invoice_by_approval_number(record.approval_number) is not None:
                raise DuplicateApprovalNumber(record.approval_number)
            raise

    # ---- Deposits ----

    def list_deposits(self) -> List[DepositOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(deposits).order_by(deposits.c.id)).mappings().all()
        return [DepositOut(**row) for row in rows]

    def get_deposit(self, deposit_id: int) -> Optional[DepositOut]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(deposits).where(deposits.c.id == deposit_id)
            ).mappings().first()
        return DepositOut(**row) if row is not None else None

    def find_deposits_by_name(self, deposit_name: str, exclude_id: Optional[int] = None) -> List[DepositOut]:
        """Deposits whose payer text equals deposit_name exactly."""
        conditions = [deposits.c.deposit_name == deposit_name]
        if exclude_id is not None:
            conditions.append(deposits.c.id != exclude_id)

        with self.engine.connect() as conn:
            rows = conn.execute(
                select(deposits).where(and_(*conditions)).order_by(deposits.c.id)
            ).mappings().all()
        return [DepositOut(**row) for row in rows]

    def _deposit_exists(self, conn: Connection, record: DepositRecord) -> bool:
        stmt = select(deposits.c.id).where(
            and_(
                deposits.c.transaction_date == record.transaction_date,
                deposits.c.transaction_time == record.transaction_time,
                deposits.c.deposit_amount == record.deposit_amount,
                deposits.c.deposit_name == record.deposit_name,
            )
        )
        return conn.execute(stmt).first() is not None

    def insert_deposit(self, record: DepositRecord) -> int:
        """Insert one deposit; raises DuplicateDeposit if its dedup key is already stored."""
        with self.engine.begin() as conn:
            if self._deposit_exists(conn, record):
                raise DuplicateDeposit(record.dedup_key)
            try:
                result = conn.execute(deposits.insert().values(**record.model_dump()))
            except IntegrityError as exc:
                raise DuplicateDeposit(record.dedup_key) from exc
            return result.inserted_primary_key[0]

    # ---- Relations ----

    def list_invoice_relations(self) -> List[RelationOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(invoice_relations.c.invoice_id, invoice_relations.c.customer_id)
                .order_by(invoice_relations.c.id)
            ).mappings().all()
        return [RelationOut(document_id=row["invoice_id"], customer_id=row["customer_id"]) for row in rows]

    def list_deposit_relations(self) -> List[RelationOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(deposit_relations.c.deposit_id, deposit_relations.c.customer_id)
                .order_by(deposit_relations.c.id)
            ).mappings().all()
        return [RelationOut(document_id=row["deposit_id"], customer_id=row["customer_id"]) for row in rows]

    def get_deposit_link(self, deposit_id: int) -> DocumentLink:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(deposit_relations.c.customer_id)
                .where(deposit_relations.c.deposit_id == deposit_id)
            ).first()
        relation = RelationOut(document_id=deposit_id, customer_id=row.customer_id) if row else None
        return DocumentLink.from_relation(deposit_id, relation)

    def upsert_invoice_relation(self, invoice_id: int, customer_id: Optional[int]) -> None:
        with self.engine.begin() as conn:
            _upsert_relation(conn, invoice_relations, "invoice_id", invoice_id, customer_id)

    def upsert_deposit_relation(self, deposit_id: int, customer_id: Optional[int]) -> None:
        with self.engine.begin() as conn:
            _upsert_relation(conn, deposit_relations, "deposit_id", deposit_id, customer_id)

    def link_deposits(self, deposit_ids: Iterable[int], customer_id: int) -> int:
        """Link every deposit to customer_id in one transaction (all or nothing)."""
        count = 0
        with self.engine.begin() as conn:
            for deposit_id in deposit_ids:
                _upsert_relation(conn, deposit_relations, "deposit_id", deposit_id, customer_id)
                count += 1
        return count

    # ---- Classifications ----

    def list_classifications(self) -> List[ClassificationOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(deposit_classifications).order_by(deposit_classifications.c.id)
            ).mappings().all()
        return [
            ClassificationOut(
                deposit_id=row["deposit_id"],
                classification_type=row["classification_type"],
                classification_detail=row["classification_detail"],
            )
            for row in rows
        ]

    def upsert_classification(
        self,
        deposit_id: int,
        classification_type: ClassificationType,
        detail: Optional[str] = None,
    ) -> None:
        if self.get_deposit(deposit_id) is None:
            raise DocumentNotFound("deposit", deposit_id)

        stmt = sqlite_insert(deposit_classifications).values(
            deposit_id=deposit_id,
            classification_type=ClassificationType(classification_type).value,
            classification_detail=detail,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[deposit_classifications.c.deposit_id],
            set_={
                "classification_type": stmt.excluded.classification_type,
                "classification_detail": stmt.excluded.classification_detail,
            },
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)


def get_store() -> ReceivablesStore:
    return ReceivablesStore(get_engine())
