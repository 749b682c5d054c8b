"""
TXT lookups for the protocol evaluators.

Every lookup is bounded by a timeout. Failures surface as DNSLookupError with a
coarse kind so each evaluator can map them onto its own fail-closed status.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

import dns.asyncresolver
import dns.exception
import dns.resolver

from ..errors import DNSFailure, DNSLookupError

logger = logging.getLogger(__name__)


class TxtResolver(Protocol):
    async def txt(self, name: str) -> List[str]:
        ...


class DnsClient:
    """Async TXT resolver backed by dnspython."""

    def __init__(self, timeout: float = 5.0, nameservers: Optional[Sequence[str]] = None):
        self.timeout = timeout
        self._nameservers = list(nameservers or [])
        self._resolver: Optional[dns.asyncresolver.Resolver] = None

    def _get_resolver(self) -> dns.asyncresolver.Resolver:
        # Built on first use so a missing resolv.conf only fails the lookup, not construction.
        if self._resolver is None:
            if self._nameservers:
                resolver = dns.asyncresolver.Resolver(configure=False)
                resolver.nameservers = self._nameservers
            else:
                resolver = dns.asyncresolver.Resolver()
            resolver.lifetime = self.timeout
            self._resolver = resolver
        return self._resolver

    async def txt(self, name: str) -> List[str]:
        """Return every TXT record under ``name`` with its character-strings joined."""
        try:
            resolver = self._get_resolver()
            answers = await asyncio.wait_for(
                resolver.resolve(name, "TXT", lifetime=self.timeout),
                timeout=self.timeout,
            )
        except dns.resolver.NXDOMAIN as exc:
            raise DNSLookupError(name, DNSFailure.NXDOMAIN, "Domain does not exist") from exc
        except dns.resolver.NoAnswer as exc:
            raise DNSLookupError(name, DNSFailure.NODATA, "No TXT records") from exc
        except (dns.exception.Timeout, asyncio.TimeoutError) as exc:
            logger.warning(f"TXT lookup for {name} timed out after {self.timeout}s")
            raise DNSLookupError(name, DNSFailure.TIMEOUT, f"Timed out after {self.timeout}s") from exc
        except dns.exception.DNSException as exc:
            logger.warning(f"TXT lookup for {name} failed: {exc}")
            raise DNSLookupError(name, DNSFailure.OTHER, str(exc) or exc.__class__.__name__) from exc

        records: List[str] = []
        for rdata in answers:
            if hasattr(rdata, "strings"):
                records.append(b"".join(rdata.strings).decode("utf-8", "ignore"))
            else:
                records.append(str(rdata))
        logger.debug(f"TXT {name}: {len(records)} record(s)")
        return records
