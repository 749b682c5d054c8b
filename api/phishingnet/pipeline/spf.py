"""
SPF evaluation.

Only the terminal ``all`` mechanism is matched. include/a/mx/ip4/ip6 are parsed
so the record structure is visible, but they are not resolved or matched
against the sender IP.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..errors import DNSFailure, DNSLookupError
from ..schemas import SPFResult, SPFStatus
from .dns_client import TxtResolver

logger = logging.getLogger(__name__)

QUALIFIERS = ("+", "-", "~", "?")

_QUALIFIER_OUTCOMES = {
    "+": (SPFStatus.PASS, "Matched +all"),
    "-": (SPFStatus.FAIL, "Matched -all (sender not authorized)"),
    "~": (SPFStatus.SOFTFAIL, "Matched ~all (soft fail)"),
    "?": (SPFStatus.NEUTRAL, "Matched ?all (neutral)"),
}


@dataclass(frozen=True)
class SPFMechanism:
    qualifier: str
    type: str
    value: Optional[str] = None


def find_spf_record(records: List[str]) -> Optional[str]:
    for txt in records:
        if txt.lower().startswith("v=spf1"):
            return txt
    return None


def parse_spf_mechanisms(record: str) -> List[SPFMechanism]:
    """Tokenize the directives after ``v=spf1`` in listed order."""
    mechanisms: List[SPFMechanism] = []
    for part in record.split()[1:]:
        qualifier = "+"
        mechanism = part
        if part[0] in QUALIFIERS:
            qualifier, mechanism = part[0], part[1:]
        colon = mechanism.find(":")
        if colon > 0:
            mechanisms.append(SPFMechanism(qualifier, mechanism[:colon].lower(), mechanism[colon + 1:]))
        else:
            mechanisms.append(SPFMechanism(qualifier, mechanism.lower()))
    return mechanisms


def _match_sender(mechanisms: List[SPFMechanism]) -> SPFResult:
    for mech in mechanisms:
        if mech.type == "all":
            status, reason = _QUALIFIER_OUTCOMES[mech.qualifier]
            return SPFResult(status=status, reason=reason)
    return SPFResult(status=SPFStatus.NEUTRAL, reason="No definitive match found")


async def check_spf(domain: str, dns: TxtResolver, sender_ip: Optional[str] = None) -> SPFResult:
    """
    Evaluate the SPF policy published for ``domain``.

    Args:
        domain: Normalized sender domain
        dns: TXT resolver
        sender_ip: Connecting IP, when known (e.g. from Received headers)

    Returns:
        SPFResult. Never raises; DNS failures map to none/temperror.
    """
    try:
        records = await dns.txt(domain)
    except DNSLookupError as exc:
        if exc.kind == DNSFailure.NXDOMAIN:
            return SPFResult(status=SPFStatus.NONE, reason="Domain does not exist")
        if exc.kind == DNSFailure.NODATA:
            return SPFResult(status=SPFStatus.NONE, reason="No SPF record found")
        return SPFResult(status=SPFStatus.TEMPERROR, reason=f"DNS lookup failed: {exc.message}")

    record = find_spf_record(records)
    if record is None:
        return SPFResult(status=SPFStatus.NONE, reason="No SPF record found for this domain")

    mechanisms = parse_spf_mechanisms(record)
    if sender_ip:
        matched = _match_sender(mechanisms)
        logger.debug(f"SPF {domain} for {sender_ip}: {matched.status.value}")
        return SPFResult(status=matched.status, record=record, reason=matched.reason)

    return SPFResult(
        status=SPFStatus.NEUTRAL,
        record=record,
        reason="SPF record exists, unvalidated (sender IP unknown)",
    )


def spf_status_description(result: SPFResult) -> str:
    """UI text for an SPF outcome."""
    return {
        SPFStatus.PASS: "Sender is authorized by the domain",
        SPFStatus.FAIL: "Sender is NOT authorized by the domain",
        SPFStatus.SOFTFAIL: "Sender may not be authorized (soft fail)",
        SPFStatus.NEUTRAL: "Domain does not assert sender authorization",
        SPFStatus.NONE: "No SPF record configured",
        SPFStatus.PERMERROR: "SPF record has configuration errors",
        SPFStatus.TEMPERROR: "Temporary DNS error during lookup",
    }[result.status]
