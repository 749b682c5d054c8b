"""
DMARC policy lookup.

Reports whether the domain publishes an enforcing policy. The evaluator has two
outcomes only: ``pass`` (quarantine/reject or any other non-``none`` policy)
and ``none`` (no record, ``p=none``, or lookup failure).
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..errors import DNSFailure, DNSLookupError
from ..schemas import DMARCResult, DMARCStatus
from .dns_client import TxtResolver

logger = logging.getLogger(__name__)

_POLICY_RE = re.compile(r"(?:^|;)\s*p=([^;]*)", re.IGNORECASE)


def _tag(record: str, name: str) -> Optional[str]:
    match = re.search(rf"(?:^|;)\s*{name}=([^;]*)", record, re.IGNORECASE)
    if not match:
        return None
    return match.group(1).strip() or None


@dataclass(frozen=True)
class DMARCRecord:
    policy: str
    subdomain_policy: Optional[str] = None
    percentage: Optional[int] = None
    report_email: Optional[str] = None


def extract_dmarc_policy(record: str) -> str:
    """Return the p= tag lower-cased; absent or empty defaults to "none"."""
    match = _POLICY_RE.search(record)
    if not match:
        return "none"
    return match.group(1).strip().lower() or "none"


def parse_dmarc_record(record: str) -> DMARCRecord:
    pct = _tag(record, "pct")
    rua = _tag(record, "rua")
    return DMARCRecord(
        policy=extract_dmarc_policy(record),
        subdomain_policy=(_tag(record, "sp") or "").lower() or None,
        percentage=int(pct) if pct and pct.isdigit() else None,
        report_email=rua.replace("mailto:", "") if rua else None,
    )


def dmarc_policy_description(policy: str) -> str:
    if policy == "reject":
        return "Strict policy: Reject unauthorized emails"
    if policy == "quarantine":
        return "Moderate policy: Quarantine suspicious emails"
    if policy == "none":
        return "Monitoring only: No enforcement"
    return f"Policy: {policy}"


async def check_dmarc(domain: str, dns: TxtResolver) -> DMARCResult:
    """Look up ``_dmarc.<domain>`` and classify the published policy. Never raises."""
    name = f"_dmarc.{domain}"
    try:
        records = await dns.txt(name)
    except DNSLookupError as exc:
        if exc.kind == DNSFailure.NXDOMAIN:
            return DMARCResult(status=DMARCStatus.NONE, reason="Domain does not exist")
        if exc.kind == DNSFailure.NODATA:
            return DMARCResult(status=DMARCStatus.NONE, reason="No DMARC record configured")
        return DMARCResult(status=DMARCStatus.NONE, reason=f"DNS lookup failed: {exc.message}")

    record = next((r for r in records if r.upper().startswith("V=DMARC1")), None)
    if record is None:
        return DMARCResult(status=DMARCStatus.NONE, reason="No DMARC record found")

    parsed = parse_dmarc_record(record)
    policy = parsed.policy
    logger.debug(f"DMARC {domain}: p={policy} sp={parsed.subdomain_policy} pct={parsed.percentage}")
    return DMARCResult(
        status=DMARCStatus.NONE if policy == "none" else DMARCStatus.PASS,
        policy=policy,
        record=record,
        reason=dmarc_policy_description(policy),
    )


def dmarc_status_description(result: DMARCResult) -> str:
    if result.status == DMARCStatus.NONE or not result.policy:
        return "No DMARC policy configured - domain is vulnerable"
    if result.policy == "reject":
        return "Strong protection - unauthorized emails are rejected"
    if result.policy == "quarantine":
        return "Moderate protection - suspicious emails are quarantined"
    return f"DMARC policy: {result.policy}"
