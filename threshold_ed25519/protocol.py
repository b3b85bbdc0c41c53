"""
High-level threshold Ed25519 orchestration.

Provides a single ``ThresholdProtocol`` class that ties together key
generation, signer endpoints, the session coordinator and verification
into one API suitable for demos and integration tests.

Usage
-----
::

    from threshold_ed25519.protocol import ThresholdProtocol

    # Setup
    proto = ThresholdProtocol.setup(n=5, t=3).unwrap()

    # Sign
    outcome = proto.sign(b"hello world", signer_ids=[1, 3, 5]).unwrap()

    # Verify (plain RFC 8032 verification)
    assert proto.verify(b"hello world", outcome.signature)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from .access import GroupParameters
from .codec import CombinedSignature
from .config import SessionConfig
from .coordinator import SigningCoordinator, SigningOutcome
from .curve import Point
from .errors import Ok, Result
from .keygen import KeyGenerationResult, KeyGenerator, TrustedDealerKeyGenerator
from .signing import SignerParticipant
from .transport import FaultPlan, LocalTransport, SignerEndpoint
from .verification import verify_signature

logger = logging.getLogger(__name__)


class ThresholdProtocol:
    """
    End-to-end t-of-n Ed25519 threshold signing, in process.

    Encapsulates the full lifecycle:
    1. Setup — key generation (trusted dealer or DKG).
    2. Sign — two-round FROST signing through the coordinator.
    3. Verify — standard Ed25519 verification against the group key.
    """

    def __init__(
        self,
        keys: KeyGenerationResult,
        config: SessionConfig = SessionConfig(),
    ) -> None:
        self._keys = keys
        self._params = keys.params
        self._pk = keys.group_public_key
        self.config = config

        # one long-lived participant per key share
        self._endpoints: Dict[int, SignerEndpoint] = {
            i: SignerEndpoint(SignerParticipant(share, self._pk))
            for i, share in keys.shares.items()
        }
        self._coordinator = SigningCoordinator(
            self._params, self._pk, keys.verification_shares, config,
        )

    # ── factories ──────────────────────────────────────────────────────

    @classmethod
    def setup(
        cls,
        n: int,
        t: int,
        *,
        generator: Optional[KeyGenerator] = None,
        config: Optional[SessionConfig] = None,
    ) -> Result[ThresholdProtocol]:
        """
        Generate a fresh group key and wire up its signers.

        Parameters
        ----------
        n : int
            Number of key shares.
        t : int
            Shares needed to sign.
        generator : KeyGenerator or None
            Key generation scheme; trusted dealer when None.
        config : SessionConfig or None
            Session timeouts and aggregation strategy.
        """
        generator = generator or TrustedDealerKeyGenerator()
        keys = generator.generate(n, t)
        if keys.is_err():
            return keys
        return Ok(cls(keys.unwrap(), config or SessionConfig()))

    # ── signing ────────────────────────────────────────────────────────

    def transport(self, faults: Optional[FaultPlan] = None) -> LocalTransport:
        return LocalTransport(self._endpoints, faults or FaultPlan())

    async def sign_async(
        self,
        message: bytes,
        signer_ids: Optional[Sequence[int]] = None,
        faults: Optional[FaultPlan] = None,
    ) -> Result[SigningOutcome]:
        if signer_ids is None:
            signer_ids = self.select_default_signers()
        return await self._coordinator.sign(
            message, signer_ids, self.transport(faults),
        )

    def sign(
        self,
        message: bytes,
        signer_ids: Optional[Sequence[int]] = None,
        faults: Optional[FaultPlan] = None,
    ) -> Result[SigningOutcome]:
        """
        Execute the full two-round signing protocol.

        Parameters
        ----------
        message : bytes
            The message to sign.
        signer_ids : list[int] or None
            Candidate signers.  If None, every key holder is asked and
            the lowest *t* indices that commit sign.
        faults : FaultPlan or None
            Simulated signer misbehaviour.
        """
        return asyncio.run(self.sign_async(message, signer_ids, faults))

    # ── verification ───────────────────────────────────────────────────

    def verify(self, message: bytes, combined: CombinedSignature) -> bool:
        """
        Verify a combined signature.

        This is standard Ed25519 verification — no threshold
        information is needed — and also checks the signature was made
        under this group's key.
        """
        if combined.public_key != self._pk.to_bytes():
            return False
        return verify_signature(combined.public_key, message,
                                combined.signature)

    # ── signer set selection ───────────────────────────────────────────

    def select_default_signers(self) -> List[int]:
        return self._params.all_participant_ids()

    # ── accessors ──────────────────────────────────────────────────────

    @property
    def group_public_key(self) -> Point:
        return self._pk

    @property
    def params(self) -> GroupParameters:
        return self._params

    @property
    def threshold(self) -> int:
        return self._params.threshold

    @property
    def num_participants(self) -> int:
        return self._params.total_signers

    @property
    def verification_shares(self) -> Dict[int, Point]:
        return self._keys.verification_shares

    def __repr__(self) -> str:
        return (
            f"ThresholdProtocol({self._params}, "
            f"strategy={self.config.strategy.value})"
        )
