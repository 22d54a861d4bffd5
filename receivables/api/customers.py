# receivables/api/customers.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from receivables.db.store import ReceivablesStore, get_store
from receivables.errors import CustomerNotFound
from receivables.models.customers import (
    AliasIn,
    CustomerCreate,
    CustomerOut,
    CustomerSuggestion,
)
from receivables.services.resolver import suggest_customers

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/", response_model=List[CustomerOut])
def list_customers(store: ReceivablesStore = Depends(get_store)) -> List[CustomerOut]:
    """
    Return all customers with their aliases, in roster order.
    """
    return store.list_customers()


@router.get("/suggest", response_model=List[CustomerSuggestion])
def suggest(
    q: str = Query(..., min_length=1, description="Payer or buyer text to look up"),
    limit: int = Query(10, ge=1, le=50),
    store: ReceivablesStore = Depends(get_store),
) -> List[CustomerSuggestion]:
    """
    Loose (substring) matches for a pick list. Nothing is linked by this call.
    """
    return suggest_customers(q, store.list_customers(), limit=limit)


@router.post("/", response_model=CustomerOut, status_code=201)
def create_customer(
    customer: CustomerCreate,
    store: ReceivablesStore = Depends(get_store),
) -> CustomerOut:
    customer_id = store.insert_customer(customer)
    return store.get_customer(customer_id)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int, store: ReceivablesStore = Depends(get_store)) -> CustomerOut:
    """
    Return a single customer by ID.
    """
    customer = store.get_customer(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.post("/{customer_id}/aliases", response_model=CustomerOut)
def add_alias(
    customer_id: int,
    body: AliasIn,
    store: ReceivablesStore = Depends(get_store),
) -> CustomerOut:
    try:
        store.append_alias(customer_id, body.alias)
    except CustomerNotFound:
        raise HTTPException(status_code=404, detail="Customer not found")
    return store.get_customer(customer_id)


@router.delete("/{customer_id}/aliases", response_model=CustomerOut)
def remove_alias(
    customer_id: int,
    alias: str = Query(..., min_length=1),
    store: ReceivablesStore = Depends(get_store),
) -> CustomerOut:
    try:
        removed = store.remove_alias(customer_id, alias)
    except CustomerNotFound:
        raise HTTPException(status_code=404, detail="Customer not found")
    if not removed:
        raise HTTPException(status_code=404, detail="Alias not found")
    return store.get_customer(customer_id)
