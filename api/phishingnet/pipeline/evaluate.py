"""
Deterministic evaluation entry point.

Fans the normalized sender domain out to SPF, DKIM, DMARC and lookalike
detection concurrently and joins on all four. Each branch settles into a
result even when its lookup fails, so callers always get a full SecurityChecks
triple back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Sequence, TypeVar

from ..schemas import (
    DKIMResult,
    DKIMStatus,
    DMARCResult,
    DMARCStatus,
    DomainInfo,
    EvaluationResult,
    SecurityChecks,
    SPFResult,
    SPFStatus,
)
from .address import validate_domain, validate_sender_ip
from .dkim import check_dkim, extract_dkim_selector
from .dmarc import check_dmarc
from .dns_client import TxtResolver
from .lookalike import KNOWN_BRANDS, inspect_domain
from .spf import check_spf

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _fail_closed(name: str, branch: Awaitable[T], fallback: Callable[[Exception], T]) -> T:
    try:
        return await branch
    except Exception as exc:
        logger.exception(f"{name} evaluation crashed; failing closed")
        return fallback(exc)


async def evaluate(
    domain: str,
    dns: TxtResolver,
    sender_ip: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    brands: Sequence[str] = KNOWN_BRANDS,
) -> EvaluationResult:
    """
    Run every deterministic check for one sender domain.

    Args:
        domain: Sender domain (validated here; raises ValidationError before any lookup)
        dns: TXT resolver shared by the protocol evaluators
        sender_ip: Connecting IP, enables SPF `all` matching
        headers: Lower-cased header map; a DKIM-Signature selector is tried first
        brands: Reference brand domains for lookalike detection

    Returns:
        EvaluationResult with the SecurityChecks triple and partial DomainInfo
    """
    domain = validate_domain(domain)
    sender_ip = validate_sender_ip(sender_ip)
    selector = extract_dkim_selector(headers)

    spf, dkim, dmarc, domain_info = await asyncio.gather(
        _fail_closed(
            "SPF",
            check_spf(domain, dns, sender_ip),
            lambda exc: SPFResult(status=SPFStatus.TEMPERROR, reason=f"SPF evaluation failed: {exc}"),
        ),
        _fail_closed(
            "DKIM",
            check_dkim(domain, dns, selector),
            lambda exc: DKIMResult(status=DKIMStatus.MISSING, domain=domain, reason=f"DKIM evaluation failed: {exc}"),
        ),
        _fail_closed(
            "DMARC",
            check_dmarc(domain, dns),
            lambda exc: DMARCResult(status=DMARCStatus.NONE, reason=f"DMARC evaluation failed: {exc}"),
        ),
        _fail_closed(
            "Lookalike",
            asyncio.to_thread(inspect_domain, domain, brands),
            lambda exc: DomainInfo(domain=domain),
        ),
    )

    logger.info(
        f"Evaluated {domain}: spf={spf.status.value} dkim={dkim.status.value} "
        f"dmarc={dmarc.status.value} lookalike={domain_info.is_lookalike}"
    )
    return EvaluationResult(
        checks=SecurityChecks(spf=spf, dkim=dkim, dmarc=dmarc),
        domain_info=domain_info,
    )
