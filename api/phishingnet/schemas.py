from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


# ============================================================================
# Status sets
# ============================================================================

class SPFStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    SOFTFAIL = "softfail"
    NEUTRAL = "neutral"
    NONE = "none"
    PERMERROR = "permerror"
    TEMPERROR = "temperror"


class DKIMStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    MISSING = "missing"
    INVALID = "invalid"


class DMARCStatus(str, Enum):
    # FAIL is priced by the fusion table but never emitted by the DMARC evaluator.
    PASS = "pass"
    FAIL = "fail"
    NONE = "none"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SignalType(str, Enum):
    URGENCY = "urgency"
    FINANCIAL = "financial"
    AUTHORITY = "authority"
    LINK = "link"
    SOCIAL_ENGINEERING = "social_engineering"
    GRAMMAR = "grammar"


SAFE_MAX_SCORE = 25
SUSPICIOUS_MAX_SCORE = 60


class Verdict(str, Enum):
    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    DANGEROUS = "dangerous"

    @classmethod
    def from_score(cls, total: int) -> "Verdict":
        """Map a 0..100 risk total onto the three-level verdict."""
        if total <= SAFE_MAX_SCORE:
            return cls.SAFE
        if total <= SUSPICIOUS_MAX_SCORE:
            return cls.SUSPICIOUS
        return cls.DANGEROUS


# ============================================================================
# Result models (serialized with the camelCase field names consumers bind to)
# ============================================================================

class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class SPFResult(_Model):
    status: SPFStatus
    record: Optional[str] = None
    reason: Optional[str] = None


class DKIMResult(_Model):
    status: DKIMStatus
    selector: Optional[str] = None
    domain: Optional[str] = None
    reason: Optional[str] = None


class DMARCResult(_Model):
    status: DMARCStatus
    policy: Optional[str] = None
    record: Optional[str] = None
    reason: Optional[str] = None


class SecurityChecks(_Model):
    """One immutable snapshot of the three protocol outcomes for a request."""
    spf: SPFResult
    dkim: DKIMResult
    dmarc: DMARCResult


class DomainInfo(_Model):
    """
    Sender-domain facts. age_days and reputation_score are None when unknown;
    the scorer skips unknown values instead of guessing.
    """
    domain: str
    age_days: Optional[int] = None
    reputation_score: Optional[int] = None
    is_verified: bool = False
    is_lookalike: bool = False
    similar_to: Optional[str] = None


class EvaluationResult(_Model):
    """Joined output of the concurrent protocol/domain checks."""
    checks: SecurityChecks
    domain_info: DomainInfo


class AISignal(_Model):
    type: SignalType
    severity: Severity
    description: str
    evidence: Optional[str] = None


class AIAnalysisResult(_Model):
    enabled: bool
    score: int = Field(default=0, ge=0, le=100)
    signals: Tuple[AISignal, ...] = ()
    model: str = ""
    processing_time_ms: int = 0

    @classmethod
    def disabled(cls, model: str = "", processing_time_ms: int = 0) -> "AIAnalysisResult":
        return cls(enabled=False, score=0, signals=(), model=model, processing_time_ms=processing_time_ms)


class RiskBreakdown(_Model):
    traditional: int
    ai: int
    reputation: int


class RiskScore(_Model):
    """
    total is clamped to 0..100. Breakdown parts are rounded independently and
    may not add up exactly to total.
    """
    total: int = Field(ge=0, le=100)
    breakdown: RiskBreakdown


class AnalysisResult(_Model):
    id: str
    email: str
    domain: str
    risk_score: RiskScore
    checks: SecurityChecks
    domain_info: DomainInfo
    ai_analysis: Optional[AIAnalysisResult] = None
    explanation: str
    warnings: Tuple[str, ...] = ()
    created_at: datetime

    @computed_field  # type: ignore[misc]
    @property
    def verdict(self) -> Verdict:
        return Verdict.from_score(self.risk_score.total)


# ============================================================================
# HTTP payloads
# ============================================================================

class AnalyzeEmailIn(_Model):
    """Address-only analysis: DNS checks and lookalike detection, no content."""
    email: str = Field(min_length=1, max_length=320)
    sender_ip: Optional[str] = None


class AnalyzeHeadersIn(_Model):
    """
    Raw header block (as pasted from a mail client) plus optional body text.
    - headers: RFC 5322 header section; the From header selects the sender
    - body: plain-text content forwarded to the AI step when enabled
    - enable_ai: per-request opt-out of the AI step
    """
    headers: str = Field(min_length=1)
    body: Optional[str] = None
    sender_ip: Optional[str] = None
    enable_ai: bool = True


class ApiError(_Model):
    code: str
    message: str


class ApiResponse(_Model):
    status: Literal["success", "error"]
    data: Optional[AnalysisResult] = None
    error: Optional[ApiError] = None
