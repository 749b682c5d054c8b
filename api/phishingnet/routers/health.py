from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from ..ai_service.service import ContentAnalyzer, NullContentAnalyzer
from ..db import db_health
from ..dependencies import get_content_analyzer, get_engine

router = APIRouter()


@router.get("")
def health(
    engine: Optional[Engine] = Depends(get_engine),
    analyzer: ContentAnalyzer = Depends(get_content_analyzer),
):
    """Return API status, DB connectivity flag and whether AI scoring is available."""
    return {
        "status": "ok",
        "db": db_health(engine),
        "ai": not isinstance(analyzer, NullContentAnalyzer),
    }
