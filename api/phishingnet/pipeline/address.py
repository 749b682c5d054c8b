"""
Address and header normalization.

Turns raw user input (a bare address, a "Name <addr>" header value or a
pasted header block) into a lower-cased {local_part, domain} pair. Parsing
never raises; callers decide whether an invalid result is an error.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Dict, Optional

from email_validator import EmailNotValidError, validate_email

from ..errors import ValidationError

# ============================================================================
# Patterns
# ============================================================================

_ANGLE_ADDR_RE = re.compile(r"<([^>]+)>")
_BARE_ADDR_RE = re.compile(r"([^\s<>]+@[^\s<>]+)")
_DOMAIN_RE = re.compile(
    r"^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$"
)


@dataclass(frozen=True)
class ParsedEmail:
    email: str
    local_part: str
    domain: str
    is_valid: bool


# ============================================================================
# Public API
# ============================================================================

def parse_email_address(raw: str) -> ParsedEmail:
    """Lower-case, trim and syntax-check an address; invalid input yields empty parts."""
    trimmed = (raw or "").strip().lower()
    try:
        info = validate_email(trimmed, check_deliverability=False)
    except EmailNotValidError:
        return ParsedEmail(email=trimmed, local_part="", domain="", is_valid=False)
    return ParsedEmail(
        email=trimmed,
        local_part=info.local_part.lower(),
        domain=info.ascii_domain.lower(),
        is_valid=True,
    )


def extract_domain(raw: str) -> Optional[str]:
    parsed = parse_email_address(raw)
    return parsed.domain if parsed.is_valid else None


def parse_raw_headers(raw_headers: str) -> Dict[str, str]:
    """
    Parse a header block into a {lower-cased name: value} map.

    Folded continuation lines (leading whitespace) are joined onto the previous
    header with a single space. Repeated headers keep the last occurrence.
    """
    headers: Dict[str, str] = {}
    current_key = ""
    current_value = ""

    for line in re.split(r"\r?\n", raw_headers or ""):
        if line[:1].isspace() and current_key:
            current_value += " " + line.strip()
            continue
        if current_key:
            headers[current_key.lower()] = current_value
            current_key, current_value = "", ""
        colon = line.find(":")
        if colon > 0:
            current_key = line[:colon].strip()
            current_value = line[colon + 1:].strip()

    if current_key:
        headers[current_key.lower()] = current_value
    return headers


def extract_sender_from_headers(headers: Dict[str, str]) -> Optional[ParsedEmail]:
    """Pick the sender out of the From header, preferring the <addr> form."""
    from_header = headers.get("from")
    if not from_header:
        return None
    match = _ANGLE_ADDR_RE.search(from_header) or _BARE_ADDR_RE.search(from_header)
    if not match:
        return None
    return parse_email_address(match.group(1))


def validate_domain(domain: str) -> str:
    normalized = (domain or "").strip().lower().rstrip(".")
    if not _DOMAIN_RE.match(normalized):
        raise ValidationError("domain", f"Invalid domain format: {domain!r}")
    return normalized


def validate_sender_ip(sender_ip: Optional[str]) -> Optional[str]:
    if sender_ip is None or not sender_ip.strip():
        return None
    try:
        return str(ipaddress.ip_address(sender_ip.strip()))
    except ValueError as exc:
        raise ValidationError("sender_ip", f"Invalid sender IP: {sender_ip!r}") from exc
