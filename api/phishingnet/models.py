from datetime import datetime

from sqlalchemy import DateTime, Integer, JSON, String, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ScanHistory(Base):
    """One finished AnalysisResult, keyed by its id. Written once, never updated."""

    __tablename__ = "scan_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    verdict: Mapped[str] = mapped_column(String(16), nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Full camelCase payload exactly as served to API consumers.
    result: Mapped[dict] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("risk_score BETWEEN 0 AND 100", name="scan_history_risk_score_check"),
        CheckConstraint(
            "verdict IN ('safe','suspicious','dangerous')",
            name="scan_history_verdict_check",
        ),
    )
