"""Engine and session factory."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from templeadmin.core.config import get_settings
from templeadmin.db.base import Base

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


settings = get_settings()
engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create any missing tables."""
    # Register every model on the metadata before create_all
    import templeadmin.db.models  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("Database schema ready (%d tables)", len(Base.metadata.tables))
