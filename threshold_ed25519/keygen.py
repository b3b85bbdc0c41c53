"""
Trusted-dealer key generation.

The dealer samples a random degree-(t−1) polynomial over Z_L, publishes
Feldman commitments to its coefficients and hands participant *i* the
evaluation  f(i).  The constant term is the group secret; its public
key  C_0 = a_0 · B  is the group public key.

Trust assumption: the dealer sees the group secret transiently while
building the polynomial.  ``KeyGenerator`` is the seam for removing it —
:pymod:`dkg` provides a dealerless implementation behind the same
``generate(n, t)`` interface.

References
----------
- RFC 9591 Appendix C  Trusted Dealer Key Generation
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Dict

from .access import GroupParameters
from .commitment import FeldmanCommitment
from .curve import Scalar, Point, G
from .errors import Err, ErrorKind, Ok, Result
from .polynomial import sample_polynomial, evaluate

logger = logging.getLogger(__name__)


# ── data structures ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class KeyShare:
    """A participant's long-lived share — never leaves its owner."""

    signer_index: int
    secret_scalar: Scalar
    verification_share: Point      # Y_i = s_i · B

    def __repr__(self) -> str:
        return f"KeyShare(signer_index={self.signer_index}, secret=<hidden>)"


@dataclass
class KeyGenerationResult:
    """Output of key generation: shares, group key and public data."""

    params: GroupParameters
    shares: Dict[int, KeyShare]             # index → share
    group_public_key: Point
    commitment: FeldmanCommitment

    @property
    def verification_shares(self) -> Dict[int, Point]:
        return {i: s.verification_share for i, s in self.shares.items()}

    def __iter__(self):
        # allows  ``shares, group_pk = result``
        yield self.shares
        yield self.group_public_key


# ── interface ───────────────────────────────────────────────────────────

class KeyGenerator(abc.ABC):
    """Produces verifiable secret shares of a fresh group key."""

    @abc.abstractmethod
    def generate(self, n: int, t: int) -> Result[KeyGenerationResult]:
        ...


def verify_key_share(share: KeyShare, commitment: FeldmanCommitment) -> bool:
    """Feldman check of a share and its published verification share."""
    if not commitment.verify_share(share.signer_index, share.secret_scalar):
        return False
    return commitment.verification_share(share.signer_index) \
        == share.verification_share


# ── trusted dealer ──────────────────────────────────────────────────────

class TrustedDealerKeyGenerator(KeyGenerator):
    """Single dealer Shamir sharing with Feldman commitments."""

    def generate(self, n: int, t: int) -> Result[KeyGenerationResult]:
        params = GroupParameters.create(n, t)
        if params.is_err():
            logger.warning("rejected key generation parameters: %s", params)
            return params
        p = params.unwrap()

        coeffs = sample_polynomial(p.polynomial_degree)
        commitment = FeldmanCommitment.commit(coeffs)

        shares: Dict[int, KeyShare] = {}
        for i in p.all_participant_ids():
            s_i = evaluate(coeffs, Scalar(i))
            shares[i] = KeyShare(
                signer_index=i,
                secret_scalar=s_i,
                verification_share=s_i * G,
            )

        # drop the dealer's view of the polynomial
        del coeffs

        for share in shares.values():
            if not verify_key_share(share, commitment):
                return Err(ErrorKind.INVALID_PARAMETERS,
                           "dealer produced an inconsistent share",
                           (share.signer_index,))

        logger.info("generated %s key shares (trusted dealer)", p)
        return Ok(KeyGenerationResult(
            params=p,
            shares=shares,
            group_public_key=commitment.constant,
            commitment=commitment,
        ))


def generate(n: int, t: int) -> Result[KeyGenerationResult]:
    """Module-level shortcut for the trusted dealer."""
    return TrustedDealerKeyGenerator().generate(n, t)
