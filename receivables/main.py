from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from receivables.api.balances import router as balances_router
from receivables.api.customers import router as customers_router
from receivables.api.deposits import router as deposits_router
from receivables.api.invoices import router as invoices_router
from receivables.errors import ReceivablesError

app = FastAPI(
    title="Receivables Reconciliation API",
    description="Tax invoice and bank deposit reconciliation with FIFO aging.",
    version="0.1.0",
)


@app.exception_handler(ReceivablesError)
async def receivables_error_handler(request: Request, exc: ReceivablesError):
    # domain errors a router did not translate itself
    status_code = 404 if isinstance(exc, LookupError) else 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(customers_router)
app.include_router(invoices_router)
app.include_router(deposits_router)
app.include_router(balances_router)
