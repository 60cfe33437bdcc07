import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from services.vault.src.vault.config import settings

logger = logging.getLogger(__name__)


def get_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        # Route handlers run in FastAPI's threadpool
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Create the listing, position and operations tables if missing."""
    from services.vault.src.vault.db.models import metadata

    metadata.create_all(engine)
    logger.info(f"Vault tables ready: {', '.join(sorted(metadata.tables))}")
