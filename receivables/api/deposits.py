# receivables/api/deposits.py

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from receivables.api.uploads import read_upload, upload_error
from receivables.db.store import ReceivablesStore, get_store
from receivables.errors import (
    CustomerNotFound,
    DocumentNotFound,
    LinkageError,
    ParseFailure,
    UnsupportedFormat,
)
from receivables.models.relations import ClassificationIn, ClassificationOut, LinkIn
from receivables.models.reports import IngestReport, LinkageReport
from receivables.services.ingestion import ingest_deposit_file
from receivables.services.linkage import classify_deposit, link_deposit_and_propagate

router = APIRouter(prefix="/deposits", tags=["deposits"])


@router.post("/upload", response_model=IngestReport)
async def upload_deposits(
    file: UploadFile = File(..., description="Bank transaction export (CSV, XLS or XLSX)"),
    store: ReceivablesStore = Depends(get_store),
) -> IngestReport:
    """
    Store the incoming transactions of a bank export. Withdrawals are ignored;
    transactions already stored are skipped and counted.
    """
    content = await read_upload(file)
    try:
        return ingest_deposit_file(store, content, file.filename)
    except (UnsupportedFormat, ParseFailure) as e:
        raise upload_error(e)


@router.post("/{deposit_id}/link", response_model=LinkageReport)
def link_deposit(
    deposit_id: int,
    body: LinkIn,
    store: ReceivablesStore = Depends(get_store),
) -> LinkageReport:
    """
    Link a deposit to a customer. The payer name becomes an alias of the
    customer and other unlinked deposits with the same payer name follow.
    """
    try:
        return link_deposit_and_propagate(store, deposit_id, body.customer_id)
    except (DocumentNotFound, CustomerNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LinkageError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{deposit_id}/classification", response_model=ClassificationOut)
def set_classification(
    deposit_id: int,
    body: ClassificationIn,
    store: ReceivablesStore = Depends(get_store),
) -> ClassificationOut:
    """
    Mark a deposit as an internal or external (non-customer) receipt.
    """
    try:
        classify_deposit(store, deposit_id, body.classification_type, body.detail)
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ClassificationOut(
        deposit_id=deposit_id,
        classification_type=body.classification_type,
        classification_detail=body.detail,
    )
