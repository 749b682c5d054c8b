"""
Error taxonomy for the verdict engine.

Only ``ValidationError`` ever reaches a caller: DNS and AI failures are
converted into result data (status enums, ``enabled=False``) inside the
component that observed them.
"""

from enum import Enum


class PhishingNetError(Exception):
    """Base class for all engine errors."""


class ValidationError(PhishingNetError):
    """Malformed email address, domain or sender IP, raised before any network call."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class DNSFailure(str, Enum):
    NXDOMAIN = "nxdomain"
    NODATA = "nodata"
    TIMEOUT = "timeout"
    OTHER = "other"


class DNSLookupError(PhishingNetError):
    """A TXT lookup that did not produce an answer."""

    def __init__(self, name: str, kind: DNSFailure, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.kind = kind
        self.message = message


class AIProviderError(PhishingNetError):
    """The content model could not produce a usable answer."""
