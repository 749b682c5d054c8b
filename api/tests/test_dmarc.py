import pytest

from phishingnet.errors import DNSFailure
from phishingnet.pipeline.dmarc import (
    check_dmarc,
    dmarc_status_description,
    extract_dmarc_policy,
    parse_dmarc_record,
)
from phishingnet.schemas import DMARCStatus


def test_extract_policy_defaults_to_none():
    assert extract_dmarc_policy("v=DMARC1; p=Reject") == "reject"
    assert extract_dmarc_policy("v=DMARC1; rua=mailto:x@example.com") == "none"
    assert extract_dmarc_policy("v=DMARC1; p=") == "none"


def test_parse_dmarc_record_tags():
    record = parse_dmarc_record("v=DMARC1; p=quarantine; sp=reject; pct=50; rua=mailto:reports@example.com")
    assert record.policy == "quarantine"
    assert record.subdomain_policy == "reject"
    assert record.percentage == 50
    assert record.report_email == "reports@example.com"


@pytest.mark.asyncio
async def test_reject_policy_passes(fake_dns):
    dns = fake_dns({"_dmarc.example.com": ["v=DMARC1; p=reject"]})
    result = await check_dmarc("example.com", dns)
    assert result.status == DMARCStatus.PASS
    assert result.policy == "reject"
    assert result.record == "v=DMARC1; p=reject"
    assert dns.queries == ["_dmarc.example.com"]


@pytest.mark.asyncio
async def test_none_policy_is_status_none(fake_dns):
    dns = fake_dns({"_dmarc.example.com": ["v=DMARC1; p=none"]})
    result = await check_dmarc("example.com", dns)
    assert result.status == DMARCStatus.NONE
    assert result.policy == "none"


@pytest.mark.asyncio
async def test_first_dmarc_record_is_used(fake_dns):
    dns = fake_dns({"_dmarc.example.com": ["unrelated", "v=DMARC1; p=quarantine", "v=DMARC1; p=none"]})
    result = await check_dmarc("example.com", dns)
    assert result.policy == "quarantine"
    assert result.status == DMARCStatus.PASS


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", list(DNSFailure))
async def test_lookup_failures_never_produce_fail(fake_dns, failure):
    dns = fake_dns({"_dmarc.example.com": failure})
    result = await check_dmarc("example.com", dns)
    assert result.status == DMARCStatus.NONE
    assert result.policy is None


def test_status_description():
    from phishingnet.schemas import DMARCResult

    assert "rejected" in dmarc_status_description(DMARCResult(status=DMARCStatus.PASS, policy="reject"))
    assert "vulnerable" in dmarc_status_description(DMARCResult(status=DMARCStatus.NONE))
