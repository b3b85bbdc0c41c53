"""
Share-level and signature-level verification.

A signature share is checked against its signer's public verification
share  Y_i = s_i · B:

    z_i · B  ==  (D_i + ρ_i · E_i)  +  c · λ_i · Y_i

which holds iff  z_i  was computed with the committed nonces and the
real secret share — without the verifier ever seeing  s_i.  This is
what gives the aggregator Byzantine accountability: an invalid
aggregate can be traced to the exact signer(s) responsible.

Final signatures are checked with libsodium's standard Ed25519
verification (``crypto_sign_verify_detached``), the same routine any
third party would use.
"""

from __future__ import annotations

import logging
from typing import Optional

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey

from .curve import Point, G
from .polynomial import lagrange_coefficient
from .signing import (
    SignatureShare,
    SigningPackage,
    commitment_share,
    compute_binding_factors,
    compute_challenge,
    compute_group_commitment,
)

logger = logging.getLogger(__name__)


class ShareVerifier:
    """Verifies individual signature shares for one group key."""

    def __init__(self, group_public_key: Point) -> None:
        self.group_public_key = group_public_key

    def verify(
        self,
        signer_index: int,
        share: SignatureShare,
        package: SigningPackage,
        verification_share: Optional[Point],
    ) -> bool:
        if verification_share is None:
            return False
        if share.signer_index != signer_index:
            return False
        comm = package.commitment_for(signer_index)
        if comm is None:
            return False

        rhos = compute_binding_factors(self.group_public_key, package)
        R = compute_group_commitment(package, rhos)
        c = compute_challenge(R, self.group_public_key, package.message)
        lambda_i = lagrange_coefficient(signer_index, package.participants)

        lhs = share.scalar * G
        rhs = commitment_share(comm, rhos[signer_index]) \
            + (c * lambda_i * verification_share)
        if lhs != rhs:
            logger.debug("share from signer %d failed verification",
                         signer_index)
            return False
        return True


def verify_signature(public_key: bytes, message: bytes,
                     signature: bytes) -> bool:
    """
    Standard Ed25519 verification of a 64-byte  R ‖ s  signature.

    The threshold signature is indistinguishable from a single-signer
    one; nothing about the signer set is needed here.
    """
    if len(public_key) != 32 or len(signature) != 64:
        return False
    try:
        VerifyKey(public_key).verify(message, signature)
    except (BadSignatureError, CryptoError, ValueError):
        return False
    return True
