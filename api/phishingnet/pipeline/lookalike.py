"""
Lookalike / typosquat detection against a reference list of brand domains.

Pure and bounded: one edit-distance computation per reference brand.
The "label" of a domain is the domain minus its public suffix
(paypa1.co.uk -> paypa1, secure.paypal.co -> secure.paypal).
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import tldextract

from ..schemas import DomainInfo

logger = logging.getLogger(__name__)

# Bundled public suffix snapshot only: no PSL network fetch.
_tldx = tldextract.TLDExtract(suffix_list_urls=())

LOOKALIKE_MAX_DISTANCE = 2
SIMILAR_MAX_DISTANCE = 3


# ============================================================================
# Reference brand list
# ============================================================================

def _parse_brand_lines(lines: Iterable[str]) -> Tuple[str, ...]:
    brands: List[str] = []
    for line in lines:
        entry = line.split("#", 1)[0].strip().lower()
        if entry and entry not in brands:
            brands.append(entry)
    return tuple(brands)


def load_brand_list(path: Optional[str] = None) -> Tuple[str, ...]:
    """Load brand domains from ``path`` or the bundled known_brands.txt."""
    if path:
        text = Path(path).read_text(encoding="utf-8")
        logger.info(f"Loaded brand list from {path}")
    else:
        text = resources.files("phishingnet").joinpath("data/known_brands.txt").read_text(encoding="utf-8")
    return _parse_brand_lines(text.splitlines())


KNOWN_BRANDS: Tuple[str, ...] = load_brand_list()


# ============================================================================
# Helpers
# ============================================================================

def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character inserts, deletes or substitutions."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _label(domain: str) -> str:
    ext = _tldx(domain)
    if not ext.suffix:
        # Unknown suffix: fall back to dropping the last label.
        return domain.rsplit(".", 1)[0]
    return f"{ext.subdomain}.{ext.domain}" if ext.subdomain else ext.domain


# ============================================================================
# Public API
# ============================================================================

def is_lookalike(domain: str, brands: Sequence[str] = KNOWN_BRANDS) -> bool:
    """
    True when the domain embeds a brand label or sits within two edits of one.
    Only the identical brand domain is skipped, so one brand can resemble another.
    """
    normalized = domain.lower()
    label = _label(normalized)
    for brand in brands:
        if brand == normalized:
            continue
        brand_label = _label(brand)
        if brand_label in label or levenshtein(label, brand_label) <= LOOKALIKE_MAX_DISTANCE:
            return True
    return False


def find_similar_domain(domain: str, brands: Sequence[str] = KNOWN_BRANDS) -> Optional[str]:
    """Closest brand within three edits; ties go to the earliest brand in the list."""
    label = _label(domain.lower())
    best: Optional[str] = None
    best_distance = SIMILAR_MAX_DISTANCE + 1
    for brand in brands:
        brand_label = _label(brand)
        if brand_label == label:
            continue
        distance = levenshtein(label, brand_label)
        if distance < best_distance:
            best, best_distance = brand, distance
    return best


def inspect_domain(domain: str, brands: Sequence[str] = KNOWN_BRANDS) -> DomainInfo:
    """Lookalike facts for the sender domain. Age and reputation stay unknown here."""
    lookalike = is_lookalike(domain, brands)
    similar = find_similar_domain(domain, brands)
    if lookalike:
        logger.info(f"Lookalike domain {domain} (closest brand: {similar})")
    return DomainInfo(domain=domain, is_lookalike=lookalike, similar_to=similar)
