"""
Hand-off to a proving system.

Downstream of signing sits a prover that attests "``verify(pk, m, sig)``
held" — typically a zkVM guest whose journal is checked on chain.  This
module only fixes the contract: the prover receives the message and the
``CombinedSignature`` and returns an ``Attestation`` echoing all three
public values.

``LocalAttestor`` runs the check directly with libsodium; it produces
no succinct proof and exists for demos and tests.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass

from .codec import CombinedSignature
from .errors import Ok, Result
from .verification import verify_signature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attestation:
    """Public output of a proving run."""

    is_valid: bool
    public_key: bytes
    message: bytes
    signature: bytes
    proof: bytes = b""            # backend-specific receipt; empty locally

    def summary(self) -> str:
        return (f"valid={self.is_valid} "
                f"public_key={self.public_key.hex()} "
                f"message={self.message!r} "
                f"signature={self.signature.hex()}")


class ProvingBackend(abc.ABC):
    """Consumes a signed message, produces an attestation."""

    @abc.abstractmethod
    def prove(self, message: bytes, combined: CombinedSignature) -> Attestation:
        ...

    def prove_encoded(self, message: bytes, frame: bytes) -> Result[Attestation]:
        """Decode a ``CombinedSignature`` frame, then prove."""
        decoded = CombinedSignature.decode(frame)
        if decoded.is_err():
            return decoded
        return Ok(self.prove(message, decoded.unwrap()))


class LocalAttestor(ProvingBackend):
    """Verifies in process and echoes the inputs."""

    def prove(self, message: bytes, combined: CombinedSignature) -> Attestation:
        valid = verify_signature(combined.public_key, message,
                                 combined.signature)
        logger.debug("local attestation: valid=%s", valid)
        return Attestation(
            is_valid=valid,
            public_key=combined.public_key,
            message=bytes(message),
            signature=combined.signature,
        )
