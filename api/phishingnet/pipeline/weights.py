"""
Risk weight table.

This table is security policy: each signal has a maximum weight and a set of
partial-credit fractions. Every status of every protocol must be priced; a new
status without an entry is rejected when the table is built, so it can never
silently score zero.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from ..schemas import DKIMResult, DKIMStatus, DMARCResult, DMARCStatus, SPFResult, SPFStatus

logger = logging.getLogger(__name__)

MAX_TOTAL = 100


class WeightTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "1"

    # Maximum contribution per signal
    spf: float = 15
    dkim: float = 15
    dmarc: float = 12
    domain_age: float = 8
    lookalike: float = 12
    reputation: float = 8
    ai: float = 30

    # Fraction of the signal's maximum weight per outcome
    spf_fractions: Dict[SPFStatus, float] = {
        SPFStatus.FAIL: 1.0,
        SPFStatus.SOFTFAIL: 0.5,
        SPFStatus.NONE: 0.3,
        SPFStatus.PASS: 0.0,
        SPFStatus.NEUTRAL: 0.0,
        SPFStatus.PERMERROR: 0.0,
        SPFStatus.TEMPERROR: 0.0,
    }
    dkim_fractions: Dict[DKIMStatus, float] = {
        DKIMStatus.FAIL: 1.0,
        DKIMStatus.INVALID: 0.9,
        DKIMStatus.MISSING: 0.7,
        DKIMStatus.PASS: 0.0,
    }
    dmarc_fractions: Dict[DMARCStatus, float] = {
        DMARCStatus.FAIL: 1.0,
        DMARCStatus.NONE: 0.6,
        DMARCStatus.PASS: 0.0,
    }
    # Consulted only for status=pass; unlisted policies fall back to the pass fraction.
    dmarc_policy_fractions: Dict[str, float] = {
        "none": 0.6,
        "quarantine": 0.2,
        "reject": 0.0,
    }
    # (exclusive upper bound, fraction), ascending
    domain_age_tiers: List[Tuple[int, float]] = [(7, 1.0), (30, 0.7), (90, 0.3)]
    reputation_tiers: List[Tuple[int, float]] = [(30, 1.0), (50, 0.5)]

    @model_validator(mode="after")
    def _check_policy(self) -> "WeightTable":
        weights = {
            "spf": self.spf,
            "dkim": self.dkim,
            "dmarc": self.dmarc,
            "domain_age": self.domain_age,
            "lookalike": self.lookalike,
            "reputation": self.reputation,
            "ai": self.ai,
        }
        negative = [name for name, value in weights.items() if value < 0]
        if negative:
            raise ValueError(f"weights must be non-negative: {negative}")
        if sum(weights.values()) > MAX_TOTAL:
            raise ValueError(f"weights sum to {sum(weights.values())}, above {MAX_TOTAL}")

        for name, table, statuses in (
            ("spf_fractions", self.spf_fractions, SPFStatus),
            ("dkim_fractions", self.dkim_fractions, DKIMStatus),
            ("dmarc_fractions", self.dmarc_fractions, DMARCStatus),
        ):
            missing = [s.value for s in statuses if s not in table]
            if missing:
                raise ValueError(f"{name} does not price status(es): {missing}")
            _check_fractions(name, table.values())

        _check_fractions("dmarc_policy_fractions", self.dmarc_policy_fractions.values())
        for name, tiers in (("domain_age_tiers", self.domain_age_tiers), ("reputation_tiers", self.reputation_tiers)):
            _check_fractions(name, (fraction for _, fraction in tiers))
            bounds = [bound for bound, _ in tiers]
            if bounds != sorted(bounds):
                raise ValueError(f"{name} must be in ascending order")
        return self

    # ------------------------------------------------------------------
    # Lookups used by the scorer
    # ------------------------------------------------------------------
    def spf_fraction(self, result: SPFResult) -> float:
        return self.spf_fractions[result.status]

    def dkim_fraction(self, result: DKIMResult) -> float:
        return self.dkim_fractions[result.status]

    def dmarc_fraction(self, result: DMARCResult) -> float:
        if result.status != DMARCStatus.PASS:
            return self.dmarc_fractions[result.status]
        pass_fraction = self.dmarc_fractions[DMARCStatus.PASS]
        if result.policy is None:
            return pass_fraction
        return self.dmarc_policy_fractions.get(result.policy.lower(), pass_fraction)

    def domain_age_fraction(self, age_days: Optional[int]) -> float:
        return _tier_fraction(self.domain_age_tiers, age_days)

    def reputation_fraction(self, reputation_score: Optional[int]) -> float:
        return _tier_fraction(self.reputation_tiers, reputation_score)


def _check_fractions(name: str, fractions) -> None:
    bad = [f for f in fractions if not 0.0 <= f <= 1.0]
    if bad:
        raise ValueError(f"{name} fractions must be within [0, 1]: {bad}")


def _tier_fraction(tiers: List[Tuple[int, float]], value: Optional[int]) -> float:
    if value is None:
        return 0.0
    for bound, fraction in tiers:
        if value < bound:
            return fraction
    return 0.0


def load_weights(path: Optional[str] = None) -> WeightTable:
    """Load a JSON weight table override, or the built-in defaults."""
    if not path:
        return DEFAULT_WEIGHTS
    table = WeightTable.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info(f"Loaded weight table version {table.version} from {path}")
    return table


DEFAULT_WEIGHTS = WeightTable()
