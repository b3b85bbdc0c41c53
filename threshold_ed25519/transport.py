"""
Send/receive contract between coordinator and signers.

``Transport`` is the seam where a real network (HTTP, gRPC, …) plugs
in.  ``LocalTransport`` simulates it in-process: round-2 traffic crosses
as encoded ``SignerMessage`` / ``SignerResponse`` frames exactly as it
would on the wire, and a ``FaultPlan`` can make individual signers slow,
silent, malicious or garbled.

Signers sit behind a ``SignerEndpoint``, which checks that a round-2
request matches the package it comes with (same message digest, same
group commitment) before letting the participant spend its nonce.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping

from .codec import SignerMessage, SignerResponse
from .curve import Scalar
from .errors import Err, ErrorKind, Ok, Result
from .hash import message_digest
from .signing import (
    NonceCommitment,
    SignerParticipant,
    SigningPackage,
    commitment_share,
    compute_binding_factors,
    compute_group_commitment,
)

logger = logging.getLogger(__name__)


# ── signer side ─────────────────────────────────────────────────────────

class SignerEndpoint:
    """Wire-facing wrapper around one ``SignerParticipant``."""

    def __init__(self, participant: SignerParticipant) -> None:
        self.participant = participant

    @property
    def index(self) -> int:
        return self.participant.index

    def handle_commit(self, session_id: bytes) -> Result[NonceCommitment]:
        return self.participant.commit(session_id)

    def handle_sign(
        self,
        session_id: bytes,
        package: SigningPackage,
        request: bytes,
    ) -> Result[bytes]:
        decoded = SignerMessage.decode(request)
        if decoded.is_err():
            return decoded
        msg = decoded.unwrap()

        if msg.signer_index != self.index:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"request addressed to signer {msg.signer_index}",
                       (self.index,))
        if msg.message_hash != message_digest(package.message):
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "request message hash does not match package",
                       (self.index,))

        pk = self.participant.group_public_key
        rhos = compute_binding_factors(pk, package)
        if compute_group_commitment(package, rhos).to_bytes() \
                != msg.nonce_commitment:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "request group commitment does not match package",
                       (self.index,))

        share = self.participant.sign_session(session_id, package)
        if share.is_err():
            return share
        own = package.commitments[self.index]
        return Ok(SignerResponse(
            signer_index=self.index,
            signature_share=share.unwrap().scalar.to_bytes(),
            nonce_share=commitment_share(own, rhos[self.index]).to_bytes(),
        ).encode())

    def handle_release(self, session_id: bytes) -> None:
        self.participant.discard(session_id)


# ── transport contract ──────────────────────────────────────────────────

class Transport(abc.ABC):
    """What the coordinator needs from the network."""

    @abc.abstractmethod
    async def request_commitment(
        self, index: int, session_id: bytes,
    ) -> Result[NonceCommitment]:
        ...

    @abc.abstractmethod
    async def request_share(
        self,
        index: int,
        session_id: bytes,
        package: SigningPackage,
        request: bytes,
    ) -> Result[bytes]:
        ...

    @abc.abstractmethod
    def release(self, index: int, session_id: bytes) -> None:
        """Tell a signer to invalidate its nonce for ``session_id``."""


# ── in-process simulation ───────────────────────────────────────────────

@dataclass(frozen=True)
class FaultPlan:
    """
    Per-signer misbehaviour for ``LocalTransport``.

    offline  never answers (exercises timeouts)
    delays   seconds of latency before answering
    corrupt  tampers with the signature share (fails verification)
    garble   truncates the response frame (fails decoding)
    """

    offline: FrozenSet[int] = frozenset()
    delays: Mapping[int, float] = field(default_factory=dict)
    corrupt: FrozenSet[int] = frozenset()
    garble: FrozenSet[int] = frozenset()


class LocalTransport(Transport):
    """Routes requests to in-process ``SignerEndpoint`` objects."""

    def __init__(
        self,
        endpoints: Mapping[int, SignerEndpoint],
        faults: FaultPlan = FaultPlan(),
    ) -> None:
        self.endpoints: Dict[int, SignerEndpoint] = dict(endpoints)
        self.faults = faults

    async def _reach(self, index: int) -> SignerEndpoint:
        if index not in self.endpoints:
            raise ConnectionError(f"no route to signer {index}")
        if index in self.faults.offline:
            # never returns; the coordinator's deadline cancels us
            await asyncio.Event().wait()
        delay = self.faults.delays.get(index, 0.0)
        await asyncio.sleep(delay)
        return self.endpoints[index]

    async def request_commitment(
        self, index: int, session_id: bytes,
    ) -> Result[NonceCommitment]:
        endpoint = await self._reach(index)
        return endpoint.handle_commit(session_id)

    async def request_share(
        self,
        index: int,
        session_id: bytes,
        package: SigningPackage,
        request: bytes,
    ) -> Result[bytes]:
        endpoint = await self._reach(index)
        frame = endpoint.handle_sign(session_id, package, request)
        if frame.is_err():
            return frame
        data = frame.unwrap()
        if index in self.faults.corrupt:
            data = _tamper(data)
            logger.debug("corrupted share of signer %d in transit", index)
        if index in self.faults.garble:
            data = data[:-1]
        return Ok(data)

    def release(self, index: int, session_id: bytes) -> None:
        endpoint = self.endpoints.get(index)
        if endpoint is not None:
            endpoint.handle_release(session_id)


def _tamper(frame: bytes) -> bytes:
    """Add one to the share scalar, keeping the frame well-formed."""
    response = SignerResponse.decode(frame).unwrap()
    z = Scalar.from_bytes(response.signature_share) + Scalar.one()
    return SignerResponse(
        signer_index=response.signer_index,
        signature_share=z.to_bytes(),
        nonce_share=response.nonce_share,
    ).encode()
