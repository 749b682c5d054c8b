from datetime import datetime, timezone

import pytest

from phishingnet.pipeline.fusion import (
    build_analysis_result,
    build_warnings,
    calculate_risk_score,
    collect_findings,
    generate_explanation,
)
from phishingnet.schemas import (
    AIAnalysisResult,
    AISignal,
    DKIMResult,
    DKIMStatus,
    DMARCResult,
    DMARCStatus,
    DomainInfo,
    SecurityChecks,
    Severity,
    SignalType,
    SPFResult,
    SPFStatus,
    Verdict,
)


def _checks(spf=SPFStatus.PASS, dkim=DKIMStatus.PASS, dmarc=DMARCStatus.PASS, policy="reject"):
    return SecurityChecks(
        spf=SPFResult(status=spf),
        dkim=DKIMResult(status=dkim, selector="google" if dkim == DKIMStatus.PASS else None),
        dmarc=DMARCResult(status=dmarc, policy=policy),
    )


def _ai(score, *signals):
    return AIAnalysisResult(enabled=True, score=score, signals=signals, model="test-model")


PHISHY_CHECKS = _checks(SPFStatus.FAIL, DKIMStatus.MISSING, DMARCStatus.NONE, policy=None)
LOOKALIKE = DomainInfo(domain="paypa1.com", is_lookalike=True, similar_to="paypal.com")


@pytest.mark.parametrize(
    "total, verdict",
    [(0, Verdict.SAFE), (25, Verdict.SAFE), (26, Verdict.SUSPICIOUS), (60, Verdict.SUSPICIOUS),
     (61, Verdict.DANGEROUS), (100, Verdict.DANGEROUS)],
)
def test_verdict_boundaries(total, verdict):
    assert Verdict.from_score(total) == verdict


def test_all_checks_pass_is_safe():
    domain = DomainInfo(domain="example.org")
    result = build_analysis_result("ceo@example.org", "example.org", _checks(), domain)

    assert result.risk_score.total == 0
    assert result.verdict == Verdict.SAFE
    assert result.warnings == ()
    assert result.explanation == (
        "This email appears to be legitimate. SPF authentication passed. "
        "DKIM signing key published. Strong DMARC policy in place."
    )
    assert "issue" not in result.explanation.lower()


def test_every_signal_at_maximum_clamps_at_100():
    checks = _checks(SPFStatus.FAIL, DKIMStatus.FAIL, DMARCStatus.FAIL, policy=None)
    domain = DomainInfo(domain="paypa1.com", age_days=1, reputation_score=5, is_lookalike=True)
    score = calculate_risk_score(checks, domain, _ai(100))
    assert score.total == 100
    assert score.breakdown.traditional == 62
    assert score.breakdown.ai == 30
    assert score.breakdown.reputation == 8


def test_auth_failures_plus_lookalike_alone():
    # 15 + 0.7*15 + 0.6*12 + 12 = 44.7
    score = calculate_risk_score(PHISHY_CHECKS, LOOKALIKE)
    assert score.total == 45
    assert Verdict.from_score(score.total) == Verdict.SUSPICIOUS


def test_auth_failures_lookalike_and_ai_is_dangerous():
    ai = _ai(
        80,
        AISignal(type=SignalType.URGENCY, severity=Severity.HIGH, description="Account suspension threat"),
        AISignal(type=SignalType.GRAMMAR, severity=Severity.LOW, description="Awkward phrasing"),
    )
    result = build_analysis_result("service@paypa1.com", "paypa1.com", PHISHY_CHECKS, LOOKALIKE, ai)

    assert result.risk_score.total == 69
    assert result.verdict == Verdict.DANGEROUS
    assert result.explanation.startswith("HIGH RISK: This email is likely a phishing attempt.")
    assert result.explanation.endswith("DO NOT click any links or download attachments.")

    positions = [
        result.explanation.index(fragment)
        for fragment in ("SPF check failed", "No DKIM key record", "No DMARC policy", "appears to mimic", "AI detected")
    ]
    assert positions == sorted(positions)
    assert "Awkward phrasing" not in result.explanation
    assert result.warnings == ("spf:fail", "dkim:missing", "dmarc:none", "lookalike:paypal.com", "ai:urgency")


def test_young_domain_adds_age_finding():
    domain = LOOKALIKE.model_copy(update={"age_days": 3})
    score = calculate_risk_score(PHISHY_CHECKS, domain)
    assert score.total == 53
    assert build_warnings(PHISHY_CHECKS, domain)[-1] == "domain_age:3"


def test_disabled_ai_contributes_nothing():
    disabled = AIAnalysisResult(enabled=False, score=90)
    with_disabled = calculate_risk_score(PHISHY_CHECKS, LOOKALIKE, disabled)
    without = calculate_risk_score(PHISHY_CHECKS, LOOKALIKE)
    assert with_disabled == without
    assert with_disabled.breakdown.ai == 0


def test_breakdown_is_rounded_per_bucket():
    # traditional 0.7*15 = 10.5 -> 11, ai 0.05*30 = 1.5 -> 2, total 12.0 -> 12
    score = calculate_risk_score(_checks(dkim=DKIMStatus.MISSING), DomainInfo(domain="example.org"), _ai(5))
    assert score.total == 12
    assert score.breakdown.traditional + score.breakdown.ai == 13


def test_suspicious_explanation_lists_issues():
    checks = _checks(spf=SPFStatus.SOFTFAIL, dkim=DKIMStatus.MISSING, dmarc=DMARCStatus.NONE, policy="none")
    score = calculate_risk_score(checks, DomainInfo(domain="example.org"), _ai(50))
    assert Verdict.from_score(score.total) == Verdict.SUSPICIOUS
    explanation = generate_explanation(score, checks, DomainInfo(domain="example.org"))
    assert explanation.startswith("This email has some concerning indicators. Exercise caution. Issues found: ")
    assert "monitoring only (p=none)" in explanation


def test_findings_for_quarantine_policy_are_empty():
    checks = _checks(policy="quarantine")
    assert collect_findings(checks, DomainInfo(domain="example.org")) == []


def test_result_serializes_with_camel_case_names():
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    result = build_analysis_result(
        "ceo@example.org",
        "example.org",
        _checks(),
        DomainInfo(domain="example.org"),
        analysis_id="scan-1",
        created_at=created,
    )
    payload = result.model_dump(mode="json", by_alias=True)
    assert payload["id"] == "scan-1"
    assert payload["verdict"] == "safe"
    assert payload["riskScore"]["breakdown"] == {"traditional": 0, "ai": 0, "reputation": 0}
    assert payload["domainInfo"]["isLookalike"] is False
    assert payload["domainInfo"]["ageDays"] is None
    assert payload["createdAt"].startswith("2024-05-01T12:00:00")
    assert payload["aiAnalysis"] is None
