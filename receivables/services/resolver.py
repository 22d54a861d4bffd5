# receivables/services/resolver.py
"""
Map free-text payer / buyer names onto customers.

resolve_customer is the authoritative resolver: strict equality on trimmed,
case-folded strings, company names first, then aliases in roster order. It is
pure and never touches the store.

suggest_customers is the loose substring search used to build pick lists for
a human; its results must never be linked automatically.
"""

import re
from typing import List, Optional, Sequence

from receivables.models.customers import CustomerOut, CustomerSuggestion


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().casefold()


def resolve_customer(name: Optional[str], customers: Sequence[CustomerOut]) -> Optional[int]:
    """Customer id whose company name or alias equals name, else None."""
    key = normalize_name(name)
    if not key:
        return None

    for customer in customers:
        if normalize_name(customer.company_name) == key:
            return customer.id

    for customer in customers:
        for alias in customer.aliases:
            if normalize_name(alias) == key:
                return customer.id

    return None


def resolve_invoice_buyer(
    business_number: Optional[str],
    name: Optional[str],
    customers: Sequence[CustomerOut],
) -> Optional[int]:
    """
    Registration number is checked before names: it is the only identifier
    on a tax invoice that cannot be spelled two ways.
    """
    number = (business_number or "").strip()
    if number:
        for customer in customers:
            if customer.business_number and customer.business_number.strip() == number:
                return customer.id
    return resolve_customer(name, customers)


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


def suggest_customers(query: Optional[str], customers: Sequence[CustomerOut], limit: int = 10) -> List[CustomerSuggestion]:
    """
    Advisory matches for a pick list: a customer name contains the query or
    the query contains it, case-insensitively, also with whitespace removed.
    Results are sorted by company name.
    """
    q = normalize_name(query)
    if not q:
        return []
    q_squashed = _squash(q)

    suggestions: List[CustomerSuggestion] = []
    for customer in sorted(customers, key=lambda c: c.company_name):
        for candidate in customer.names():
            c = normalize_name(candidate)
            if not c:
                continue
            c_squashed = _squash(c)
            if (
                q in c or c in q
                or (q_squashed and c_squashed and (q_squashed in c_squashed or c_squashed in q_squashed))
            ):
                suggestions.append(
                    CustomerSuggestion(
                        id=customer.id,
                        company_name=customer.company_name,
                        matched_name=candidate,
                    )
                )
                break
        if len(suggestions) >= limit:
            break

    return suggestions
