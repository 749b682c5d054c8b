"""
DKIM key-record discovery.

Checks that a DKIM public key is published for the sender domain. Signatures
are not verified cryptographically; a published ``v=DKIM1`` key is a pass.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional

from ..errors import DNSLookupError
from ..schemas import DKIMResult, DKIMStatus
from .dns_client import TxtResolver

logger = logging.getLogger(__name__)

FALLBACK_SELECTORS = ("default", "google", "selector1", "selector2", "k1", "dkim", "mail")

_SELECTOR_RE = re.compile(r"(?:^|;)\s*s=([^;]+)")


def extract_dkim_selector(headers: Optional[Dict[str, str]]) -> Optional[str]:
    """Read the s= tag from a DKIM-Signature header, if one was supplied."""
    if not headers:
        return None
    signature = next((v for k, v in headers.items() if k.lower() == "dkim-signature"), None)
    if not signature:
        return None
    match = _SELECTOR_RE.search(signature)
    if not match:
        return None
    return match.group(1).strip() or None


def candidate_selectors(explicit: Optional[str] = None) -> List[str]:
    """Selectors in priority order: the signed selector first, then the fallbacks."""
    ordered = [explicit] if explicit else []
    ordered.extend(s for s in FALLBACK_SELECTORS if s != explicit)
    return ordered


async def _lookup_key(dns: TxtResolver, selector: str, domain: str) -> Optional[str]:
    name = f"{selector}._domainkey.{domain}"
    try:
        records = await dns.txt(name)
    except DNSLookupError as exc:
        logger.debug(f"DKIM lookup {name}: {exc.kind.value}")
        return None
    joined = "".join(records)
    return joined if "v=DKIM1" in joined else None


async def check_dkim(domain: str, dns: TxtResolver, selector: Optional[str] = None) -> DKIMResult:
    """
    Query ``<selector>._domainkey.<domain>`` for each candidate selector.

    Lookups run concurrently, but the winner is the first hit in priority order,
    never the first response to arrive, so the reported selector is reproducible.
    """
    selectors = candidate_selectors(selector)
    hits = await asyncio.gather(*(_lookup_key(dns, sel, domain) for sel in selectors))

    for sel, record in zip(selectors, hits):
        if record is not None:
            return DKIMResult(
                status=DKIMStatus.PASS,
                selector=sel,
                domain=domain,
                reason=f"DKIM key configured (selector: {sel})",
            )

    return DKIMResult(
        status=DKIMStatus.MISSING,
        domain=domain,
        reason="No DKIM record found for common selectors",
    )


def dkim_status_description(result: DKIMResult) -> str:
    return {
        DKIMStatus.PASS: "DKIM public key is published",
        DKIMStatus.FAIL: "Email signature validation failed",
        DKIMStatus.MISSING: "No DKIM key found",
        DKIMStatus.INVALID: "DKIM signature is malformed",
    }[result.status]
