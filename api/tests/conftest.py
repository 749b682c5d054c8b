import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest


# Ensure the `api/` directory is on sys.path so tests can import `phishingnet.*`
CURRENT_FILE = Path(__file__).resolve()
API_DIR = CURRENT_FILE.parents[1]  # .../api
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from phishingnet.errors import DNSFailure, DNSLookupError  # noqa: E402


class FakeDns:
    """
    Offline TXT resolver.

    - records: name -> list of TXT strings, or a DNSFailure to raise for that name
    - delays: name -> seconds to sleep before answering (to shuffle arrival order)
    Unknown names behave like NXDOMAIN.
    """

    def __init__(
        self,
        records: Optional[Dict[str, Union[List[str], DNSFailure]]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.records = records or {}
        self.delays = delays or {}
        self.queries: List[str] = []

    async def txt(self, name: str) -> List[str]:
        self.queries.append(name)
        if name in self.delays:
            await asyncio.sleep(self.delays[name])
        answer = self.records.get(name, DNSFailure.NXDOMAIN)
        if isinstance(answer, DNSFailure):
            message = "Domain does not exist" if answer == DNSFailure.NXDOMAIN else f"simulated {answer.value}"
            raise DNSLookupError(name, answer, message)
        return list(answer)


@pytest.fixture
def fake_dns():
    return FakeDns


@pytest.fixture
def well_configured_dns():
    """A domain with SPF -all, a google DKIM key and p=reject."""
    return FakeDns({
        "example.org": ["google-site-verification=abc", "v=spf1 include:_spf.google.com -all"],
        "google._domainkey.example.org": ["v=DKIM1; k=rsa; p=MIGfMA0"],
        "_dmarc.example.org": ["v=DMARC1; p=reject; rua=mailto:dmarc@example.org"],
    })
