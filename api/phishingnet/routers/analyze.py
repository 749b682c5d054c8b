from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..ai_service.service import ContentAnalyzer
from ..config import Settings, get_settings
from ..dependencies import (
    get_brands,
    get_content_analyzer,
    get_dns_client,
    get_repository,
    get_weights,
)
from ..pipeline.analyze import analyze_address, analyze_headers
from ..pipeline.dkim import dkim_status_description
from ..pipeline.dmarc import dmarc_status_description
from ..pipeline.dns_client import TxtResolver
from ..pipeline.spf import spf_status_description
from ..pipeline.weights import WeightTable
from ..repository import ScanRepository
from ..schemas import AnalysisResult, AnalyzeEmailIn, AnalyzeHeadersIn, ApiResponse

router = APIRouter()


def describe_checks(result: AnalysisResult) -> Dict[str, str]:
    """UI text per protocol outcome, served next to the machine-readable statuses."""
    return {
        "spf": spf_status_description(result.checks.spf),
        "dkim": dkim_status_description(result.checks.dkim),
        "dmarc": dmarc_status_description(result.checks.dmarc),
    }


def success_response(result: AnalysisResult) -> JSONResponse:
    envelope = ApiResponse(status="success", data=result)
    content = envelope.model_dump(mode="json", by_alias=True, exclude={"error"})
    content["data"]["checkDescriptions"] = describe_checks(result)
    return JSONResponse(content=content)


@router.post("/email", response_model=ApiResponse)
async def analyze_email(
    payload: AnalyzeEmailIn,
    dns: TxtResolver = Depends(get_dns_client),
    brands: Tuple[str, ...] = Depends(get_brands),
    weights: WeightTable = Depends(get_weights),
    repository: Optional[ScanRepository] = Depends(get_repository),
) -> JSONResponse:
    """
    Address-only analysis.

    Runs SPF, DKIM and DMARC lookups for the sender domain concurrently with
    lookalike detection and fuses them into a 0-100 risk score.

    Returns the `{status, data}` envelope where `data` is the AnalysisResult:
    - `riskScore`: total plus traditional/ai/reputation breakdown
    - `verdict`: safe (<=25) | suspicious (<=60) | dangerous
    - `checks`: SPF/DKIM/DMARC results with reasons
    - `domainInfo`: lookalike flag and closest brand
    - `explanation` / `warnings`: prose and machine-readable findings

    Example request:
    ```json
    {"email": "security@paypa1.com", "senderIp": "203.0.113.7"}
    ```
    """
    result = await analyze_address(
        payload.email,
        dns,
        sender_ip=payload.sender_ip,
        brands=brands,
        weights=weights,
        repository=repository,
    )
    return success_response(result)


@router.get("/email")
def describe_email():
    return {
        "status": "ok",
        "endpoint": "/analyze/email",
        "method": "POST",
        "description": "Analyze an email address for phishing indicators",
    }


@router.post("/headers", response_model=ApiResponse)
async def analyze_email_headers(
    payload: AnalyzeHeadersIn,
    settings: Settings = Depends(get_settings),
    dns: TxtResolver = Depends(get_dns_client),
    analyzer: ContentAnalyzer = Depends(get_content_analyzer),
    brands: Tuple[str, ...] = Depends(get_brands),
    weights: WeightTable = Depends(get_weights),
    repository: Optional[ScanRepository] = Depends(get_repository),
) -> JSONResponse:
    """
    Header-block analysis with optional AI content scoring.

    The sender is taken from the From header and a DKIM-Signature selector,
    when present, is tried first. With `enableAi` and a non-empty `body` the
    AI step runs alongside the DNS checks; if it is unavailable or exceeds
    its budget the result carries `aiAnalysis.enabled = false` and the score
    is computed from the deterministic checks alone.
    """
    result = await analyze_headers(
        payload.headers,
        dns,
        analyzer,
        body=payload.body,
        sender_ip=payload.sender_ip,
        enable_ai=payload.enable_ai and settings.ai_enabled,
        ai_time_budget=settings.ai_timeout_seconds,
        brands=brands,
        weights=weights,
        repository=repository,
    )
    return success_response(result)


@router.get("/headers")
def describe_headers():
    return {
        "status": "ok",
        "endpoint": "/analyze/headers",
        "method": "POST",
        "description": "Analyze a raw email header block (and optional body) for phishing indicators",
    }
