"""
Schnorr proof of knowledge of a discrete logarithm.

Proves knowledge of  x  such that  Y = x·B  without revealing x.  Used
in the DKG so that every dealer proves it knows the constant term of
its polynomial, which rules out rogue-key contributions.

Made non-interactive via Fiat-Shamir in the Random Oracle Model.

References
----------
- Schnorr (1989). "Efficient Identification and Signatures for Smart
  Cards."  CRYPTO 1989.
- RFC 9591 Appendix C / Komlo-Goldberg §5.1 (DKG round 1, step 2).
"""

from __future__ import annotations

from dataclasses import dataclass

from .curve import Scalar, Point, G
from .hash import hash_dkg_proof


@dataclass(frozen=True)
class SchnorrProof:
    """
    Non-interactive proof of knowledge of  x  such that  Y = x·B.

    Transcript: (R, z)  where  R = k·B,  z = k + c·x,  c = H(i, Y, R, ctx).
    Verification:  z·B  ==  R + c·Y.
    """

    R: Point
    z: Scalar

    @staticmethod
    def prove(
        prover_id: int,
        secret: Scalar,
        public: Point,
        context: bytes = b"",
    ) -> SchnorrProof:
        k = Scalar.random()
        R = k * G
        c = hash_dkg_proof(prover_id, public, R, context)
        z = k + c * secret
        return SchnorrProof(R=R, z=z)

    def verify(self, prover_id: int, public: Point,
               context: bytes = b"") -> bool:
        c = hash_dkg_proof(prover_id, public, self.R, context)
        return self.z * G == self.R + (c * public)

