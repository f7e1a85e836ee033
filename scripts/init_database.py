"""Create the dividend ledger tables for local development."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import func, select

from dividend_manager.core.config import get_settings
from dividend_manager.core.logging import configure_logging
from dividend_manager.db.session import get_session, init_db
from dividend_manager.models import Checkpoint, Dividend

logger = logging.getLogger("dividend_manager.scripts.init_database")


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    init_db()
    with get_session() as session:
        checkpoints = session.scalar(
            select(func.count()).select_from(Checkpoint).where(Checkpoint.token_symbol == settings.token_symbol)
        )
        dividends = session.scalar(
            select(func.count()).select_from(Dividend).where(Dividend.token_symbol == settings.token_symbol)
        )
    logger.info(
        "Database ready at %s: token=%s checkpoints=%s dividends=%s",
        settings.database_url,
        settings.token_symbol,
        checkpoints,
        dividends,
    )


if __name__ == "__main__":
    main()
