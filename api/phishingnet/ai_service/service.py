"""
AI content analysis: an optional, opaque 0..100 risk signal for the email body.

The analyzer is injected into the request pipeline. Missing credentials build
a NullContentAnalyzer, and analyze_content turns every provider failure or
timeout into a disabled result, so the deterministic path never depends on
the model being reachable.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import List, Optional, Protocol, Tuple

from openai import AsyncOpenAI

from ..config import Settings
from ..errors import AIProviderError
from ..schemas import AIAnalysisResult, AISignal, Severity, SignalType

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

MODELS = {
    "groq": {"fast": "llama-3.1-8b-instant", "deep": "llama-3.3-70b-versatile"},
    "openai": {"fast": "gpt-4.1-mini", "deep": "gpt-4.1"},
}

MAX_CONTENT_CHARS = 4000

SYSTEM_PROMPT = """You are an email security analyst specializing in phishing detection.
Analyze the provided email content and identify phishing indicators.

Return a JSON object with:
{
  "score": <0-100 risk score>,
  "signals": [
    {
      "type": "<urgency|financial|authority|link|social_engineering|grammar>",
      "severity": "<low|medium|high>",
      "description": "<brief description>",
      "evidence": "<quoted text from email>"
    }
  ]
}

Scoring guidelines:
- 0-20: No phishing indicators
- 21-40: Minor concerns (grammar issues, generic greeting)
- 41-60: Moderate risk (urgency, suspicious requests)
- 61-80: High risk (financial requests, authority impersonation)
- 81-100: Critical (multiple severe indicators, known attack patterns)

Signal types:
- urgency: "Act now!", "Account suspended", time pressure
- financial: Money requests, prize claims, refund offers
- authority: Impersonating IT, CEO, bank, government
- link: Suspicious URLs, mismatched link text
- social_engineering: Manipulation, emotional appeals
- grammar: Poor spelling/grammar common in mass phishing"""


class ContentAnalyzer(Protocol):
    model: str

    async def analyze(
        self, content: str, subject: Optional[str] = None, sender: Optional[str] = None
    ) -> AIAnalysisResult:
        ...


class NullContentAnalyzer:
    """Used when no AI provider is configured; always reports enabled=False."""

    model = ""

    async def analyze(
        self, content: str, subject: Optional[str] = None, sender: Optional[str] = None
    ) -> AIAnalysisResult:
        return AIAnalysisResult.disabled()


# ---- Prompt + response helpers ----

def build_user_prompt(content: str, subject: Optional[str] = None, sender: Optional[str] = None) -> str:
    prompt = "Analyze this email for phishing indicators:\n\n"
    if sender:
        prompt += f"FROM: {sender}\n"
    if subject:
        prompt += f"SUBJECT: {subject}\n"
    # keep a reasonable cap to avoid oversized payloads
    return prompt + f"\nCONTENT:\n{content[:MAX_CONTENT_CHARS]}"


def parse_ai_response(text: str) -> Tuple[int, List[AISignal]]:
    """
    Parse the model's JSON answer into (score, signals).

    Score is clamped to 0..100; signals with an unknown type/severity or no
    description are dropped. Non-JSON output raises AIProviderError.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AIProviderError(f"AI response is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise AIProviderError("AI response is not a JSON object")

    try:
        score = int(round(float(payload.get("score") or 0)))
    except (TypeError, ValueError):
        score = 0
    score = max(0, min(100, score))

    signals: List[AISignal] = []
    raw_signals = payload.get("signals")
    for raw in raw_signals if isinstance(raw_signals, list) else []:
        if not isinstance(raw, dict) or not raw.get("description"):
            continue
        try:
            signal_type = SignalType(str(raw.get("type", "")).lower())
            severity = Severity(str(raw.get("severity", "")).lower())
        except ValueError:
            continue
        evidence = raw.get("evidence")
        signals.append(
            AISignal(
                type=signal_type,
                severity=severity,
                description=str(raw["description"]),
                evidence=str(evidence) if evidence else None,
            )
        )
    return score, signals


class LLMContentAnalyzer:
    """Chat-completions analyzer for any OpenAI-compatible endpoint (Groq, OpenAI)."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self._client = client
        self.model = model

    async def analyze(
        self, content: str, subject: Optional[str] = None, sender: Optional[str] = None
    ) -> AIAnalysisResult:
        started = time.monotonic()
        if not (content or "").strip():
            return AIAnalysisResult.disabled(model=self.model)

        completion = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(content, subject, sender)},
            ],
            temperature=0.1,
            max_tokens=1024,
            response_format={"type": "json_object"},
        )
        text = completion.choices[0].message.content if completion.choices else None
        if not text:
            raise AIProviderError("Empty response from AI")

        score, signals = parse_ai_response(text)
        return AIAnalysisResult(
            enabled=True,
            score=score,
            signals=tuple(signals),
            model=self.model,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )


# ---- Construction ----

def _resolve_ai_provider(settings: Settings) -> tuple[str, str, str | None]:
    groq_key = settings.groq_api_key.strip()
    openai_key = settings.openai_api_key.strip()
    openai_base = settings.openai_base_url.strip()

    if groq_key:
        return "groq", groq_key, GROQ_BASE_URL
    if openai_key:
        return "openai", openai_key, openai_base or None
    return "", "", None


def build_content_analyzer(settings: Settings) -> ContentAnalyzer:
    """Pick the analyzer for the configured provider; no credentials means no AI."""
    if not settings.ai_enabled:
        return NullContentAnalyzer()

    provider, api_key, base_url = _resolve_ai_provider(settings)
    if not api_key:
        logger.info("No GROQ_API_KEY or OPENAI_API_KEY set; AI content analysis disabled")
        return NullContentAnalyzer()

    if base_url:
        client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=settings.ai_timeout_seconds)
    else:
        client = AsyncOpenAI(api_key=api_key, timeout=settings.ai_timeout_seconds)
    model = MODELS[provider]["deep" if settings.ai_use_deep_model else "fast"]
    logger.info(f"AI content analysis enabled ({provider}, {model})")
    return LLMContentAnalyzer(client, model)


# ---- Public API ----

async def analyze_content(
    analyzer: ContentAnalyzer,
    content: str,
    subject: Optional[str] = None,
    sender: Optional[str] = None,
    time_budget: float = 10.0,
) -> AIAnalysisResult:
    """
    Run the analyzer within ``time_budget`` seconds.

    Never raises: timeouts, provider errors and unexpected failures all come
    back as enabled=False so the caller can fuse without the AI signal.
    """
    started = time.monotonic()
    model = getattr(analyzer, "model", "")
    try:
        return await asyncio.wait_for(analyzer.analyze(content, subject, sender), timeout=time_budget)
    except asyncio.TimeoutError:
        logger.warning(f"AI analysis exceeded its {time_budget}s budget")
    except AIProviderError as exc:
        logger.warning(f"AI analysis unavailable: {exc}")
    except Exception:
        logger.exception("AI analysis error")
    return AIAnalysisResult.disabled(model=model, processing_time_ms=int((time.monotonic() - started) * 1000))
