"""
Combines signature shares into one standard Ed25519 signature.

The aggregator is **not** trusted for unforgeability — it only needs to
be trusted for liveness (it could refuse to combine).

Two strategies:

* ``aggregate`` — **fail-closed**.  Sum the shares, then verify the
  result against the group key.  A bad share surfaces only as a failed
  final check, with no attribution.
* ``aggregate_verified`` — **pre-verify / fail-open**.  Run the
  ``ShareVerifier`` on every share first and flag each signer whose
  share does not verify.  Only a fully verified set is combined, so the
  final check then cannot fail short of an implementation bug.

Correctness hazard: shares computed for one participant set and
combined under another still sum to a well-formed scalar — only the
final verification notices.  That check is therefore mandatory, and its
failure is reported as ``AGGREGATION_MISMATCH`` rather than
``INVALID_SHARE``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from .codec import CombinedSignature
from .curve import Scalar, Point
from .errors import Err, ErrorKind, Ok, Result
from .polynomial import lagrange_coefficient
from .signing import (
    SignatureShare,
    SigningPackage,
    compute_binding_factors,
    compute_group_commitment,
)
from .verification import ShareVerifier, verify_signature

logger = logging.getLogger(__name__)


class Aggregator:
    """
    Lagrange-weighted combination of shares for one group key.

    Parameters
    ----------
    group_public_key : Point
        The group key *Y* from key generation.
    threshold : int
        Number of shares a signature is made of.
    verification_shares : mapping
        signer index → public share  Y_i  (needed for pre-verification).
    """

    def __init__(
        self,
        group_public_key: Point,
        threshold: int,
        verification_shares: Mapping[int, Point],
    ) -> None:
        self.group_public_key = group_public_key
        self.threshold = threshold
        self.verification_shares = dict(verification_shares)
        self.verifier = ShareVerifier(group_public_key)

    # ── Lagrange coefficients ──────────────────────────────────────────

    @staticmethod
    def lagrange_coefficient(index: int,
                             participants: Sequence[int]) -> Result[Scalar]:
        """λ_i = Π_{j∈S, j≠i} j / (j − i)  over the scalar field."""
        if index not in participants:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"signer {index} not in participant set "
                       f"{sorted(participants)}", (index,))
        try:
            return Ok(lagrange_coefficient(index, participants))
        except ValueError as exc:
            return Err(ErrorKind.INVALID_PARAMETERS, str(exc))

    # ── fail-closed ────────────────────────────────────────────────────

    def _check_share_set(
        self,
        package: SigningPackage,
        shares: Mapping[int, SignatureShare],
    ) -> Result[None]:
        if len(shares) != self.threshold:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"need exactly {self.threshold} shares, "
                       f"got {len(shares)}")
        outsiders = sorted(set(shares) - set(package.participants))
        if outsiders:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "shares from signers outside the signing package",
                       tuple(outsiders))
        mislabelled = sorted(i for i, s in shares.items()
                             if s.signer_index != i)
        if mislabelled:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "share keyed under another signer's index",
                       tuple(mislabelled))
        return Ok(None)

    def aggregate(
        self,
        package: SigningPackage,
        shares: Mapping[int, SignatureShare],
    ) -> Result[CombinedSignature]:
        """
        Combine shares into  (R, s)  and verify against the group key.

        R = Σ (D_i + ρ_i · E_i)  over the package;  s = Σ z_i  where each
        z_i already carries its λ_i.
        """
        checked = self._check_share_set(package, shares)
        if checked.is_err():
            return checked

        rhos = compute_binding_factors(self.group_public_key, package)
        R = compute_group_commitment(package, rhos)

        s = Scalar.zero()
        for index in sorted(shares):
            s = s + shares[index].scalar

        combined = CombinedSignature(
            signature=R.to_bytes() + s.to_bytes(),
            public_key=self.group_public_key.to_bytes(),
        )
        if not verify_signature(combined.public_key, package.message,
                                combined.signature):
            logger.error(
                "aggregate over signers %s failed final verification",
                sorted(shares),
            )
            return Err(ErrorKind.AGGREGATION_MISMATCH,
                       "combined signature does not verify under the "
                       "group public key; a share is invalid or was "
                       "computed for another signer set")
        logger.debug("aggregated signature over signers %s", sorted(shares))
        return Ok(combined)

    # ── pre-verify ─────────────────────────────────────────────────────

    def find_invalid_shares(
        self,
        package: SigningPackage,
        shares: Mapping[int, SignatureShare],
        *,
        verify_all: bool = True,
    ) -> List[int]:
        """
        Indices whose share fails individual verification.

        With ``verify_all=False`` the scan stops at the first bad share.
        """
        bad: List[int] = []
        for index in sorted(shares):
            ok = self.verifier.verify(
                index, shares[index], package,
                self.verification_shares.get(index),
            )
            if not ok:
                bad.append(index)
                if not verify_all:
                    break
        return bad

    def aggregate_verified(
        self,
        package: SigningPackage,
        shares: Mapping[int, SignatureShare],
        *,
        verify_all: bool = True,
    ) -> Result[CombinedSignature]:
        """Verify every share, attribute failures, then aggregate."""
        checked = self._check_share_set(package, shares)
        if checked.is_err():
            return checked
        # each share verifies under the package's λ, so a partial set
        # would only surface at the final check
        missing = tuple(i for i in package.participants if i not in shares)
        if missing:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "shares do not cover the signing package", missing)

        bad = self.find_invalid_shares(package, shares, verify_all=verify_all)
        if bad:
            logger.warning("invalid signature shares from signers %s", bad)
            return Err(ErrorKind.INVALID_SHARE,
                       "signature share(s) failed verification", tuple(bad))

        combined = self.aggregate(package, shares)
        if combined.is_err():
            # every share verified: this is an arithmetic defect, not malice
            logger.error("signature failed to verify although every share "
                         "verified; aggregation defect")
        return combined


def shares_by_index(shares: Sequence[SignatureShare]) -> Dict[int, SignatureShare]:
    return {s.signer_index: s for s in shares}
