"""Write-only scan history store. The engine never reads persisted results back."""

import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .models import ScanHistory
from .schemas import AnalysisResult

logger = logging.getLogger(__name__)


class ScanRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def save(self, result: AnalysisResult, subject: Optional[str] = None) -> None:
        row = ScanHistory(
            id=result.id,
            email=result.email,
            domain=result.domain,
            verdict=result.verdict.value,
            risk_score=result.risk_score.total,
            subject=subject,
            result=result.model_dump(mode="json", by_alias=True),
            created_at=result.created_at,
        )
        with Session(self._engine) as session, session.begin():
            session.add(row)
        logger.debug(f"Saved scan {result.id}")
