"""
Signal fusion: deterministic checks + optional AI signal -> score, verdict, explanation.

The arithmetic lives in the weight table; this module only walks the signals
in a fixed order so that the same inputs always produce the same score and the
same wording.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..schemas import (
    AIAnalysisResult,
    AnalysisResult,
    DKIMStatus,
    DMARCStatus,
    DomainInfo,
    RiskBreakdown,
    RiskScore,
    SecurityChecks,
    Severity,
    SPFStatus,
    Verdict,
)
from .weights import DEFAULT_WEIGHTS, MAX_TOTAL, WeightTable


@dataclass(frozen=True)
class Finding:
    """One non-passing check: a machine code for warnings and a sentence for the explanation."""
    code: str
    message: str


_SPF_ISSUES: Dict[SPFStatus, str] = {
    SPFStatus.FAIL: "SPF check failed - sender is not authorized by the domain",
    SPFStatus.SOFTFAIL: "SPF soft fail - sender may not be authorized by the domain",
    SPFStatus.NEUTRAL: "SPF does not confirm the sender",
    SPFStatus.NONE: "No SPF record published",
    SPFStatus.PERMERROR: "SPF record has configuration errors",
    SPFStatus.TEMPERROR: "SPF lookup failed temporarily",
}

_DKIM_ISSUES: Dict[DKIMStatus, str] = {
    DKIMStatus.FAIL: "DKIM signature verification failed",
    DKIMStatus.MISSING: "No DKIM key record found",
    DKIMStatus.INVALID: "DKIM key record is malformed",
}


def _require_all_but_pass(table: Dict, statuses) -> None:
    missing = [s.value for s in statuses if s.value != "pass" and s not in table]
    if missing:
        raise RuntimeError(f"no explanation wording for status(es): {missing}")


_require_all_but_pass(_SPF_ISSUES, SPFStatus)
_require_all_but_pass(_DKIM_ISSUES, DKIMStatus)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ============================================================================
# Scoring
# ============================================================================

def calculate_risk_score(
    checks: SecurityChecks,
    domain_info: DomainInfo,
    ai_analysis: Optional[AIAnalysisResult] = None,
    weights: WeightTable = DEFAULT_WEIGHTS,
) -> RiskScore:
    """
    Sum the weighted contributions and clamp to 0..100.

    Breakdown buckets are rounded on their own, so traditional + ai + reputation
    can differ from total by one.
    """
    traditional = (
        weights.spf * weights.spf_fraction(checks.spf)
        + weights.dkim * weights.dkim_fraction(checks.dkim)
        + weights.dmarc * weights.dmarc_fraction(checks.dmarc)
        + weights.domain_age * weights.domain_age_fraction(domain_info.age_days)
        + (weights.lookalike if domain_info.is_lookalike else 0.0)
    )
    reputation = weights.reputation * weights.reputation_fraction(domain_info.reputation_score)

    ai = 0.0
    # A disabled AI result contributes nothing, whatever score it carries.
    if ai_analysis is not None and ai_analysis.enabled:
        ai = ai_analysis.score / 100 * weights.ai

    total = min(max(_round_half_up(traditional + ai + reputation), 0), MAX_TOTAL)
    return RiskScore(
        total=total,
        breakdown=RiskBreakdown(
            traditional=_round_half_up(traditional),
            ai=_round_half_up(ai),
            reputation=_round_half_up(reputation),
        ),
    )


# ============================================================================
# Findings, explanation, warnings
# ============================================================================

def collect_findings(
    checks: SecurityChecks,
    domain_info: DomainInfo,
    ai_analysis: Optional[AIAnalysisResult] = None,
    weights: WeightTable = DEFAULT_WEIGHTS,
) -> List[Finding]:
    """Non-passing checks in fixed order: SPF, DKIM, DMARC, lookalike, domain age, AI."""
    findings: List[Finding] = []

    if checks.spf.status != SPFStatus.PASS:
        findings.append(Finding(f"spf:{checks.spf.status.value}", _SPF_ISSUES[checks.spf.status]))

    if checks.dkim.status != DKIMStatus.PASS:
        findings.append(Finding(f"dkim:{checks.dkim.status.value}", _DKIM_ISSUES[checks.dkim.status]))

    dmarc = checks.dmarc
    if dmarc.status == DMARCStatus.FAIL:
        findings.append(Finding("dmarc:fail", "DMARC check failed"))
    elif dmarc.policy == "none":
        findings.append(Finding("dmarc:none", "DMARC policy is monitoring only (p=none)"))
    elif dmarc.status == DMARCStatus.NONE:
        findings.append(Finding("dmarc:none", "No DMARC policy configured"))

    if domain_info.is_lookalike:
        if domain_info.similar_to:
            findings.append(Finding(
                f"lookalike:{domain_info.similar_to}",
                f'Domain "{domain_info.domain}" appears to mimic "{domain_info.similar_to}"',
            ))
        else:
            findings.append(Finding(
                "lookalike",
                f'Domain "{domain_info.domain}" resembles a well-known brand domain',
            ))

    if weights.domain_age_fraction(domain_info.age_days) > 0:
        findings.append(Finding(
            f"domain_age:{domain_info.age_days}",
            f"Domain was registered only {domain_info.age_days} days ago",
        ))

    if ai_analysis is not None and ai_analysis.enabled:
        for signal in ai_analysis.signals:
            if signal.severity == Severity.HIGH:
                findings.append(Finding(f"ai:{signal.type.value}", f"AI detected: {signal.description}"))

    return findings


def _positives(checks: SecurityChecks) -> List[str]:
    positives: List[str] = []
    if checks.spf.status == SPFStatus.PASS:
        positives.append("SPF authentication passed")
    if checks.dkim.status == DKIMStatus.PASS:
        positives.append("DKIM signing key published")
    if checks.dmarc.status == DMARCStatus.PASS and checks.dmarc.policy == "reject":
        positives.append("Strong DMARC policy in place")
    elif checks.dmarc.status == DMARCStatus.PASS and checks.dmarc.policy == "quarantine":
        positives.append("DMARC policy enforced (quarantine)")
    return positives


def generate_explanation(
    risk_score: RiskScore,
    checks: SecurityChecks,
    domain_info: DomainInfo,
    ai_analysis: Optional[AIAnalysisResult] = None,
    weights: WeightTable = DEFAULT_WEIGHTS,
) -> str:
    verdict = Verdict.from_score(risk_score.total)

    if verdict == Verdict.SAFE:
        positives = _positives(checks)
        explanation = "This email appears to be legitimate."
        if positives:
            explanation += " " + ". ".join(positives) + "."
        return explanation

    issues = [f.message for f in collect_findings(checks, domain_info, ai_analysis, weights)]
    if verdict == Verdict.SUSPICIOUS:
        explanation = "This email has some concerning indicators. Exercise caution."
        if issues:
            explanation += " Issues found: " + "; ".join(issues) + "."
        return explanation

    explanation = "HIGH RISK: This email is likely a phishing attempt."
    if issues:
        explanation += " Critical issues: " + "; ".join(issues) + "."
    return explanation + " DO NOT click any links or download attachments."


def build_warnings(
    checks: SecurityChecks,
    domain_info: DomainInfo,
    ai_analysis: Optional[AIAnalysisResult] = None,
    weights: WeightTable = DEFAULT_WEIGHTS,
) -> List[str]:
    return [f.code for f in collect_findings(checks, domain_info, ai_analysis, weights)]


# ============================================================================
# Public API
# ============================================================================

def build_analysis_result(
    email: str,
    domain: str,
    checks: SecurityChecks,
    domain_info: DomainInfo,
    ai_analysis: Optional[AIAnalysisResult] = None,
    *,
    weights: WeightTable = DEFAULT_WEIGHTS,
    analysis_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> AnalysisResult:
    """Fuse everything known about one sender into the immutable AnalysisResult."""
    risk_score = calculate_risk_score(checks, domain_info, ai_analysis, weights)
    return AnalysisResult(
        id=analysis_id or str(uuid.uuid4()),
        email=email,
        domain=domain,
        risk_score=risk_score,
        checks=checks,
        domain_info=domain_info,
        ai_analysis=ai_analysis,
        explanation=generate_explanation(risk_score, checks, domain_info, ai_analysis, weights),
        warnings=tuple(build_warnings(checks, domain_info, ai_analysis, weights)),
        created_at=created_at or datetime.now(timezone.utc),
    )
