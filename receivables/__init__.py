# receivables/__init__.py
"""
Receivables reconciliation: invoice and bank-deposit ingestion, customer
matching, FIFO settlement and portfolio summaries behind a FastAPI app.

Run the API with:
    uvicorn receivables:app --reload
"""

from .main import app

__version__ = "0.1.0"

__all__ = ["app", "__version__"]
