# receivables/api/invoices.py

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from receivables.api.uploads import read_upload, upload_error
from receivables.db.store import ReceivablesStore, get_store
from receivables.errors import ParseFailure, UnsupportedFormat
from receivables.models.invoices import InvoiceOut
from receivables.models.reports import InvoiceIngestReport
from receivables.services.ingestion import ingest_invoice_file

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("/upload", response_model=InvoiceIngestReport)
async def upload_invoices(
    file: UploadFile = File(..., description="Tax invoice export (CSV, XLS or XLSX)"),
    store: ReceivablesStore = Depends(get_store),
) -> InvoiceIngestReport:
    """
    Store the invoices in a tax invoice export, registering buyers as customers.
    Invoices already stored (same approval number) are skipped and counted.
    """
    content = await read_upload(file)
    try:
        return ingest_invoice_file(store, content, file.filename)
    except (UnsupportedFormat, ParseFailure) as e:
        raise upload_error(e)


@router.get("/{approval_number}", response_model=InvoiceOut)
def get_invoice(approval_number: str, store: ReceivablesStore = Depends(get_store)) -> InvoiceOut:
    """
    Look up a single invoice by its approval number.
    """
    invoice = store.get_invoice_by_approval_number(approval_number)
    if invoice is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice
