# receivables/db/engine.py

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from receivables.core.config import settings


def get_engine(db_url: Optional[str] = None) -> Engine:
    # echo=True if you want to see SQL printed in the terminal
    return create_engine(db_url or settings.DB_URL, future=True)
