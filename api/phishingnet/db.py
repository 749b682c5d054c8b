import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from .models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str]) -> Optional[Engine]:
    """Engine for DATABASE_URL, or None when persistence is not configured."""
    if not database_url:
        return None
    # pool_pre_ping avoids stale connections when the DB is restarted.
    return create_engine(database_url, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    # Creates scan_history if it does not exist yet; existing tables are left alone.
    Base.metadata.create_all(engine)
    logger.info("Database schema ready")


def db_health(engine: Optional[Engine]) -> bool:
    # Simple connectivity check for /health.
    if engine is None:
        return False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
