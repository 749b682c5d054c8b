"""
Process-wide collaborators, built once from Settings and injected with Depends.

Tests replace any of these through ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache
from typing import Optional, Tuple

from sqlalchemy.engine import Engine

from .ai_service.service import ContentAnalyzer, build_content_analyzer
from .config import get_settings
from .db import build_engine, init_db
from .pipeline.dns_client import DnsClient, TxtResolver
from .pipeline.lookalike import KNOWN_BRANDS, load_brand_list
from .pipeline.weights import WeightTable, load_weights
from .repository import ScanRepository

logger = logging.getLogger(__name__)


@lru_cache
def get_dns_client() -> TxtResolver:
    settings = get_settings()
    return DnsClient(timeout=settings.dns_timeout_seconds, nameservers=settings.nameservers)


@lru_cache
def get_content_analyzer() -> ContentAnalyzer:
    return build_content_analyzer(get_settings())


@lru_cache
def get_brands() -> Tuple[str, ...]:
    path = get_settings().brand_list_path
    return load_brand_list(path) if path else KNOWN_BRANDS


@lru_cache
def get_weights() -> WeightTable:
    return load_weights(get_settings().weights_path)


@lru_cache
def get_engine() -> Optional[Engine]:
    engine = build_engine(get_settings().database_url)
    if engine is None:
        logger.info("DATABASE_URL not set; scan history is not persisted")
        return None
    try:
        init_db(engine)
    except Exception:
        logger.exception("Could not initialize scan_history; saves will be retried per request")
    return engine


def get_repository() -> Optional[ScanRepository]:
    engine = get_engine()
    return ScanRepository(engine) if engine is not None else None
