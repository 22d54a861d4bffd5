# receivables/services/linkage.py
"""
Manual linking of deposits to customers.

When a person links a deposit to a customer, the deposit's payer text becomes
one of the customer's aliases and every other deposit carrying exactly the
same payer text that is not yet linked is linked to the same customer. The
siblings are first linked in a single transaction; if that fails each one is
retried on its own and the failures are counted in the report.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from receivables.db.store import ReceivablesStore
from receivables.errors import CustomerNotFound, DocumentNotFound, LinkageError
from receivables.models.relations import ClassificationType, LinkState
from receivables.models.reports import LinkageReport

logger = logging.getLogger(__name__)


def link_deposit_and_propagate(store: ReceivablesStore, deposit_id: int, customer_id: int) -> LinkageReport:
    deposit = store.get_deposit(deposit_id)
    if deposit is None:
        raise DocumentNotFound("deposit", deposit_id)
    if not deposit.deposit_name.strip():
        raise LinkageError(f"Deposit {deposit_id} has no payer name to link by")

    customer = store.get_customer(customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id)

    alias_added = store.append_alias(customer_id, deposit.deposit_name.strip())
    store.upsert_deposit_relation(deposit_id, customer_id)

    siblings = [
        d.id
        for d in store.find_deposits_by_name(deposit.deposit_name, exclude_id=deposit_id)
        if store.get_deposit_link(d.id).state is not LinkState.LINKED
    ]

    report = LinkageReport(deposit_id=deposit_id, customer_id=customer_id, alias_added=alias_added)
    if not siblings:
        return report

    try:
        report.propagated = store.link_deposits(siblings, customer_id)
    except SQLAlchemyError:
        logger.warning(
            "Bulk link of %s deposits named %r failed, retrying one by one",
            len(siblings), deposit.deposit_name, exc_info=True,
        )
        for sibling_id in siblings:
            try:
                store.upsert_deposit_relation(sibling_id, customer_id)
                report.propagated += 1
            except SQLAlchemyError:
                logger.exception("Could not link deposit %s to customer %s", sibling_id, customer_id)
                report.failed += 1
                report.failed_deposit_ids.append(sibling_id)

    logger.info(
        "Linked deposit %s to customer %s (%s siblings linked, %s failed)",
        deposit_id, customer_id, report.propagated, report.failed,
    )
    return report


def unlink_deposit(store: ReceivablesStore, deposit_id: int) -> None:
    """Keep the relation row but clear its customer (state becomes unresolved)."""
    if store.get_deposit(deposit_id) is None:
        raise DocumentNotFound("deposit", deposit_id)
    store.upsert_deposit_relation(deposit_id, None)


def classify_deposit(
    store: ReceivablesStore,
    deposit_id: int,
    classification_type: ClassificationType,
    detail: Optional[str] = None,
) -> None:
    store.upsert_classification(deposit_id, classification_type, detail)
    logger.info("Deposit %s classified as %s", deposit_id, ClassificationType(classification_type).value)
