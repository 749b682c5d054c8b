import asyncio
import json
from types import SimpleNamespace

import pytest

from phishingnet.ai_service.service import (
    GROQ_BASE_URL,
    LLMContentAnalyzer,
    MAX_CONTENT_CHARS,
    NullContentAnalyzer,
    analyze_content,
    build_content_analyzer,
    build_user_prompt,
    parse_ai_response,
)
from phishingnet.config import Settings
from phishingnet.errors import AIProviderError
from phishingnet.pipeline.fusion import calculate_risk_score
from phishingnet.schemas import (
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
)


class FakeCompletions:
    def __init__(self, content=None, delay=0.0):
        self.content = content
        self.delay = delay
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


GOOD_ANSWER = json.dumps({
    "score": 87.6,
    "signals": [
        {"type": "urgency", "severity": "high", "description": "Threatens suspension", "evidence": "within 24 hours"},
        {"type": "telepathy", "severity": "high", "description": "not a real type"},
        {"type": "link", "severity": "extreme", "description": "bad severity"},
        {"type": "financial", "severity": "medium"},
        "not an object",
    ],
})


def test_parse_ai_response_clamps_and_drops_malformed_signals():
    score, signals = parse_ai_response(GOOD_ANSWER)
    assert score == 88
    assert len(signals) == 1
    assert signals[0].type == SignalType.URGENCY
    assert signals[0].severity == Severity.HIGH
    assert signals[0].evidence == "within 24 hours"

    assert parse_ai_response('{"score": 250}')[0] == 100
    assert parse_ai_response('{"score": -3}')[0] == 0
    assert parse_ai_response('{"score": "high"}') == (0, [])


def test_parse_ai_response_rejects_non_json():
    with pytest.raises(AIProviderError):
        parse_ai_response("I think this is phishing")
    with pytest.raises(AIProviderError):
        parse_ai_response("[1, 2]")


def test_user_prompt_truncates_content():
    prompt = build_user_prompt("x" * (MAX_CONTENT_CHARS + 500), subject="Hi", sender="a@b.com")
    assert "FROM: a@b.com" in prompt
    assert "SUBJECT: Hi" in prompt
    assert prompt.count("x") == MAX_CONTENT_CHARS


@pytest.mark.asyncio
async def test_llm_analyzer_returns_enabled_result():
    completions = FakeCompletions(GOOD_ANSWER)
    analyzer = LLMContentAnalyzer(_client(completions), "llama-3.1-8b-instant")

    result = await analyzer.analyze("Your account will be suspended", "Urgent", "x@paypa1.com")

    assert result.enabled is True
    assert result.score == 88
    assert result.model == "llama-3.1-8b-instant"
    assert completions.calls[0]["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_llm_analyzer_skips_empty_content():
    completions = FakeCompletions(GOOD_ANSWER)
    analyzer = LLMContentAnalyzer(_client(completions), "m")
    result = await analyzer.analyze("   ")
    assert result.enabled is False
    assert completions.calls == []


@pytest.mark.asyncio
async def test_timeout_degrades_to_disabled_and_scores_zero():
    analyzer = LLMContentAnalyzer(_client(FakeCompletions(GOOD_ANSWER, delay=1.0)), "slow-model")

    result = await analyze_content(analyzer, "Act now!", time_budget=0.05)

    assert result.enabled is False
    assert result.score == 0
    assert result.signals == ()
    assert result.model == "slow-model"

    checks = SecurityChecks(
        spf=SPFResult(status=SPFStatus.PASS),
        dkim=DKIMResult(status=DKIMStatus.PASS),
        dmarc=DMARCResult(status=DMARCStatus.PASS, policy="reject"),
    )
    assert calculate_risk_score(checks, DomainInfo(domain="example.org"), result).total == 0


@pytest.mark.asyncio
async def test_empty_provider_response_degrades():
    analyzer = LLMContentAnalyzer(_client(FakeCompletions(None)), "m")
    result = await analyze_content(analyzer, "hello")
    assert result.enabled is False


@pytest.mark.asyncio
async def test_unexpected_provider_exception_degrades():
    class Exploding:
        model = "boom"

        async def analyze(self, content, subject=None, sender=None):
            raise ConnectionError("provider down")

    result = await analyze_content(Exploding(), "hello")
    assert result.enabled is False
    assert result.model == "boom"


@pytest.mark.asyncio
async def test_null_analyzer_is_always_disabled():
    result = await analyze_content(NullContentAnalyzer(), "hello")
    assert result.enabled is False


def test_build_without_credentials_is_null():
    settings = Settings(_env_file=None, groq_api_key="", openai_api_key="")
    assert isinstance(build_content_analyzer(settings), NullContentAnalyzer)


def test_build_respects_master_switch():
    settings = Settings(_env_file=None, ai_enabled=False, groq_api_key="gsk_test")
    assert isinstance(build_content_analyzer(settings), NullContentAnalyzer)


def test_build_prefers_groq():
    settings = Settings(_env_file=None, groq_api_key="gsk_test", openai_api_key="sk-test")
    analyzer = build_content_analyzer(settings)
    assert isinstance(analyzer, LLMContentAnalyzer)
    assert analyzer.model == "llama-3.1-8b-instant"
    assert str(analyzer._client.base_url).rstrip("/") == GROQ_BASE_URL


def test_build_deep_model_with_openai():
    settings = Settings(_env_file=None, groq_api_key="", openai_api_key="sk-test", ai_use_deep_model=True)
    analyzer = build_content_analyzer(settings)
    assert analyzer.model == "gpt-4.1"
