"""
Feldman commitments to a secret-sharing polynomial.

For  f(x) = a_0 + a_1 x + … + a_d x^d  the dealer publishes

    C_j = a_j · B      for  j = 0, …, d

A share  s_i = f(i)  is then checkable by anyone:

    s_i · B  ==  Σ_j  C_j · i^j

and the public verification share  Y_i = s_i · B  can be derived from
the commitments alone.  C_0 is the group public key.

Security: computationally hiding under discrete log (unlike Pedersen,
the constant term's public key C_0 is revealed — intended here, since
it is the signing key).

References
----------
- Feldman (1987). "A Practical Scheme for Non-Interactive Verifiable
  Secret Sharing."  FOCS 1987.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .curve import Scalar, Point, G, POINT_BYTES


@dataclass(frozen=True)
class FeldmanCommitment:
    """Public commitment  [C_0, …, C_d]  to a polynomial."""

    points: List[Point]

    @staticmethod
    def commit(coeffs: List[Scalar]) -> FeldmanCommitment:
        """C_j = a_j · B  for each coefficient."""
        return FeldmanCommitment(points=[c * G for c in coeffs])

    def evaluate(self, index: int) -> Point:
        """Σ_j C_j · index^j  — the committed value of  f(index) · B."""
        x = Scalar(index)
        total = Point.identity()
        x_pow = Scalar.one()
        for c in self.points:
            total = total + (x_pow * c)
            x_pow = x_pow * x
        return total

    def verification_share(self, index: int) -> Point:
        """Public share  Y_i = f(i) · B  derived from the commitments."""
        return self.evaluate(index)

    def verify_share(self, index: int, share: Scalar) -> bool:
        """Check  share · B  ==  Σ_j C_j · index^j."""
        return share * G == self.evaluate(index)

    def __add__(self, o: FeldmanCommitment) -> FeldmanCommitment:
        """Coefficient-wise sum — commitment to  f + g  (used by DKG)."""
        if not isinstance(o, FeldmanCommitment):
            return NotImplemented
        if len(self.points) != len(o.points):
            raise ValueError("commitments have different degrees")
        return FeldmanCommitment(
            points=[a + b for a, b in zip(self.points, o.points)],
        )

    @property
    def degree(self) -> int:
        return len(self.points) - 1

    @property
    def constant(self) -> Point:
        """Commitment to a_0 (the shared secret's public key)."""
        return self.points[0]

    def to_bytes(self) -> bytes:
        parts = [len(self.points).to_bytes(4, "big")]
        for c in self.points:
            parts.append(c.to_bytes())
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> FeldmanCommitment:
        if len(data) < 4:
            raise ValueError("truncated commitment")
        count = int.from_bytes(data[:4], "big")
        if len(data) != 4 + count * POINT_BYTES:
            raise ValueError("commitment length mismatch")
        points = [
            Point.from_bytes(data[4 + k * POINT_BYTES:4 + (k + 1) * POINT_BYTES])
            for k in range(count)
        ]
        return cls(points=points)
