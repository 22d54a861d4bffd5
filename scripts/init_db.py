# scripts/init_db.py
"""
Create the database schema.

Usage:
    python -m scripts.init_db            # create missing tables
    python -m scripts.init_db --reset    # drop everything first
"""

import argparse
import logging

from receivables.db.engine import get_engine
from receivables.db.schema import metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def init_db(reset: bool = False, db_url=None) -> None:
    engine = get_engine(db_url)
    if reset:
        metadata.drop_all(engine)
        logger.warning("Dropped all tables in %s", engine.url)
    metadata.create_all(engine)
    logger.info("Schema ready in %s (%s tables)", engine.url, len(metadata.tables))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the receivables schema.")
    parser.add_argument("--reset", action="store_true", help="drop existing tables first")
    args = parser.parse_args(argv)
    init_db(reset=args.reset)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
