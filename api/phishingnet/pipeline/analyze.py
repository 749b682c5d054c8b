"""
Request orchestration.

This module wires address/header normalization to the deterministic
evaluation, the optional AI step and signal fusion, then hands the finished
result to the persistence collaborator. The AI step runs alongside the DNS
fan-out and never gates it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..ai_service.service import ContentAnalyzer, analyze_content
from ..errors import ValidationError
from ..schemas import AIAnalysisResult, AnalysisResult
from .address import (
    ParsedEmail,
    extract_sender_from_headers,
    parse_email_address,
    parse_raw_headers,
    validate_domain,
    validate_sender_ip,
)
from .dns_client import TxtResolver
from .evaluate import evaluate
from .fusion import build_analysis_result
from .lookalike import KNOWN_BRANDS
from .weights import DEFAULT_WEIGHTS, WeightTable

logger = logging.getLogger(__name__)


async def _persist(repository, result: AnalysisResult, subject: Optional[str]) -> None:
    # Write-only; a storage outage must not fail the request.
    if repository is None:
        return
    try:
        await asyncio.to_thread(repository.save, result, subject)
    except Exception:
        logger.exception(f"Failed to persist scan {result.id} for {result.domain}")


def _require_valid(parsed: Optional[ParsedEmail], field: str, message: str) -> ParsedEmail:
    if parsed is None or not parsed.is_valid:
        raise ValidationError(field, message)
    return parsed


# ============================================================================
# Public API
# ============================================================================

async def analyze_address(
    email: str,
    dns: TxtResolver,
    *,
    sender_ip: Optional[str] = None,
    brands: Sequence[str] = KNOWN_BRANDS,
    weights: WeightTable = DEFAULT_WEIGHTS,
    repository=None,
) -> AnalysisResult:
    """
    Address-only analysis: normalize -> evaluate -> fuse -> persist.

    There is no content to hand to the AI step, so ai_analysis stays None.
    Raises ValidationError for a malformed address or sender IP.
    """
    parsed = _require_valid(parse_email_address(email), "email", "Invalid email address format")

    evaluation = await evaluate(parsed.domain, dns, sender_ip=sender_ip, brands=brands)
    result = build_analysis_result(
        parsed.email,
        parsed.domain,
        evaluation.checks,
        evaluation.domain_info,
        weights=weights,
    )
    logger.info(f"Scan {result.id}: {result.domain} -> {result.verdict.value} ({result.risk_score.total})")

    await _persist(repository, result, None)
    return result


async def analyze_headers(
    raw_headers: str,
    dns: TxtResolver,
    analyzer: ContentAnalyzer,
    *,
    body: Optional[str] = None,
    sender_ip: Optional[str] = None,
    enable_ai: bool = True,
    ai_time_budget: float = 10.0,
    brands: Sequence[str] = KNOWN_BRANDS,
    weights: WeightTable = DEFAULT_WEIGHTS,
    repository=None,
) -> AnalysisResult:
    """
    Analyze a pasted header block, optionally with its body text.

    Args:
        raw_headers: RFC 5322 header section; the From header selects the sender
        dns: TXT resolver for the protocol evaluators
        analyzer: AI collaborator; only consulted when enable_ai and body text exist
        body: Plain-text content for the AI step
        sender_ip: Connecting IP, enables SPF `all` matching
        enable_ai: Per-request switch for the AI step
        ai_time_budget: Seconds the AI step may take before it is reported disabled
        brands: Reference brand domains for lookalike detection
        weights: Fusion weight table
        repository: Optional persistence collaborator with save(result, subject)

    Returns:
        The immutable AnalysisResult

    Raises:
        ValidationError: no usable sender in the headers, or a malformed sender IP
    """
    headers = parse_raw_headers(raw_headers)
    sender = _require_valid(
        extract_sender_from_headers(headers), "headers", "Could not extract sender email from headers"
    )
    # Validate before starting either branch so nothing is left running on bad input.
    domain = validate_domain(sender.domain)
    sender_ip = validate_sender_ip(sender_ip)
    subject = headers.get("subject")

    ai_step = None
    if enable_ai and body and body.strip():
        ai_step = analyze_content(analyzer, body, subject, sender.email, ai_time_budget)

    ai_analysis: Optional[AIAnalysisResult] = None
    if ai_step is not None:
        evaluation, ai_analysis = await asyncio.gather(
            evaluate(domain, dns, sender_ip=sender_ip, headers=headers, brands=brands),
            ai_step,
        )
    else:
        evaluation = await evaluate(domain, dns, sender_ip=sender_ip, headers=headers, brands=brands)

    result = build_analysis_result(
        sender.email,
        domain,
        evaluation.checks,
        evaluation.domain_info,
        ai_analysis,
        weights=weights,
    )
    logger.info(f"Scan {result.id}: {result.domain} -> {result.verdict.value} ({result.risk_score.total})")

    await _persist(repository, result, subject)
    return result
