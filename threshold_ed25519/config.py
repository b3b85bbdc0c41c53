"""
Signing-session configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AggregationStrategy(Enum):
    """How the coordinator treats shares before combining them."""

    FAIL_CLOSED = "fail-closed"   # combine, then verify; no attribution
    PRE_VERIFY = "pre-verify"     # verify each share, flag and exclude


@dataclass(frozen=True)
class SessionConfig:
    """
    Parameters
    ----------
    timeout : float
        Seconds allowed for each collection round (commitments, shares).
    strategy : AggregationStrategy
        Aggregation strategy; ``PRE_VERIFY`` is the adversarial default.
    verify_all : bool
        Pre-verify only: check every share for full accountability
        (``True``) or stop at the first invalid one (``False``).
    max_attempts : int
        Fresh sessions tried when signers get excluded for bad shares.
    """

    timeout: float = 5.0
    strategy: AggregationStrategy = AggregationStrategy.PRE_VERIFY
    verify_all: bool = True
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be ≥ 1")

    @property
    def pre_verify(self) -> bool:
        return self.strategy is AggregationStrategy.PRE_VERIFY
