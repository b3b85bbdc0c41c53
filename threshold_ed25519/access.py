"""
Flat (t, n) threshold access structure.

Participants carry indices  1 … n;  any set of at least *t* distinct
indices is authorised.  The index doubles as the Shamir evaluation point,
so index 0 is never valid (f(0) is the secret itself).

The upper bound on *n* comes from the wire format, which encodes a
signer index in a single byte.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .errors import Err, ErrorKind, Ok, Result

MAX_SIGNERS = 255


@dataclass(frozen=True)
class GroupParameters:
    """``{threshold t, total_signers n}``  with  1 ≤ t ≤ n ≤ 255."""

    threshold: int
    total_signers: int

    # ── factories ──────────────────────────────────────────────────────

    @classmethod
    def create(cls, n: int, t: int) -> Result[GroupParameters]:
        """Validate and build; ``INVALID_PARAMETERS`` on a bad (t, n)."""
        if n < 1:
            return Err(ErrorKind.INVALID_PARAMETERS,
                       f"need at least one signer, got n={n}")
        if n > MAX_SIGNERS:
            return Err(ErrorKind.INVALID_PARAMETERS,
                       f"at most {MAX_SIGNERS} signers supported, got n={n}")
        if t < 1:
            return Err(ErrorKind.INVALID_PARAMETERS,
                       f"threshold must be ≥ 1, got t={t}")
        if t > n:
            return Err(ErrorKind.INVALID_PARAMETERS,
                       f"threshold t={t} exceeds signer count n={n}")
        return Ok(cls(threshold=t, total_signers=n))

    # ── queries ────────────────────────────────────────────────────────

    @property
    def polynomial_degree(self) -> int:
        return self.threshold - 1

    def all_participant_ids(self) -> List[int]:
        return list(range(1, self.total_signers + 1))

    def is_member(self, index: int) -> bool:
        return 1 <= index <= self.total_signers

    def is_authorised(self, signer_ids: Iterable[int]) -> bool:
        ids = set(signer_ids)
        return len(ids) >= self.threshold and all(
            self.is_member(i) for i in ids
        )

    def __str__(self) -> str:
        return f"{self.threshold}-of-{self.total_signers}"
