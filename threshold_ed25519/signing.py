"""
Two-round FROST signing for Ed25519 — participant side.

This is FROST [Komlo-Goldberg, SAC 2020] instantiated with the
FROST(Ed25519, SHA-512) ciphersuite of RFC 9591.  Each signer computes
a partial response; the aggregator sums them into an ordinary RFC 8032
signature verifiable with the group public key.

**Round 1 (commit):**  signer *i* samples a nonce pair (d_i, e_i) and
publishes  (D_i = d_i·B,  E_i = e_i·B).

**Round 2 (sign):**  given message *m* and the frozen commitment set:

    ρ_i = H1(Y ‖ H4(m) ‖ H5(commitments) ‖ i)     (binding factor)
    R   = Σ (D_j + ρ_j · E_j)                      (group commitment)
    c   = SHA-512(R ‖ Y ‖ m)                       (Ed25519 challenge)
    z_i = d_i + ρ_i · e_i + c · λ_i · s_i          (signature share)

where  λ_i  is the Lagrange coefficient of *i* for the exact signer set
of the package.  The binding factor ties each nonce to every other
commitment, which defeats Drijvers/Wagner-style concurrent forgeries.

A nonce secret is used at most once.  Reusing one across two challenges
reveals the secret share:  s_i = (z - z') / (λ_i (c - c')).

References
----------
- Komlo, Goldberg (2020). "FROST: Flexible Round-Optimized Schnorr
  Threshold Signatures."  SAC 2020.
- RFC 9591 (2024). "The Flexible Round-Optimized Schnorr Threshold
  (FROST) Protocol for Two-Round Schnorr Signatures."
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Optional, Tuple

from .curve import Scalar, Point, G
from .errors import Err, ErrorKind, Ok, Result
from .hash import (
    hash_binding,
    hash_challenge,
    hash_commitment_list,
    hash_message,
    nonce_generate,
)
from .keygen import KeyShare
from .polynomial import lagrange_coefficient

logger = logging.getLogger(__name__)


# ── data structures ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class NonceCommitment:
    """Public nonce commitment  (D, E)  broadcast in Round 1."""

    signer_index: int
    hiding: Point       # D = d · B
    binding: Point      # E = e · B

    def to_bytes(self) -> bytes:
        """Entry of RFC 9591 ``encode_group_commitment_list``."""
        return (
            Scalar(self.signer_index).to_bytes()
            + self.hiding.to_bytes()
            + self.binding.to_bytes()
        )


class NonceState(Enum):
    FRESH = auto()
    CONSUMED = auto()
    INVALIDATED = auto()


class NonceSecret:
    """
    Secret nonce pair (d, e) — usable by exactly one ``sign`` call.

    Once consumed or invalidated the scalars are overwritten and the
    object can never produce a share again.
    """

    __slots__ = ("_hiding", "_binding", "commitment", "_state")

    def __init__(self, hiding: Scalar, binding: Scalar,
                 commitment: NonceCommitment) -> None:
        self._hiding = hiding
        self._binding = binding
        self.commitment = commitment
        self._state = NonceState.FRESH

    @property
    def state(self) -> NonceState:
        return self._state

    @property
    def usable(self) -> bool:
        return self._state is NonceState.FRESH

    def consume(self) -> Result[Tuple[Scalar, Scalar]]:
        """Hand out (d, e) once and erase them."""
        if self._state is not NonceState.FRESH:
            return Err(ErrorKind.NONCE_ALREADY_CONSUMED,
                       f"nonce secret is {self._state.name.lower()}",
                       (self.commitment.signer_index,))
        pair = (self._hiding, self._binding)
        self._state = NonceState.CONSUMED
        self._clear()
        return Ok(pair)

    def invalidate(self) -> None:
        """Mark unusable without signing (abort, timeout, release)."""
        if self._state is NonceState.FRESH:
            self._state = NonceState.INVALIDATED
            self._clear()

    def _clear(self) -> None:
        """Overwrite secrets (best-effort in Python)."""
        self._hiding = Scalar.zero()
        self._binding = Scalar.zero()

    def __repr__(self) -> str:
        return (f"NonceSecret(signer_index={self.commitment.signer_index}, "
                f"state={self._state.name})")


@dataclass(frozen=True)
class SigningPackage:
    """Message plus the frozen commitment set of one session."""

    message: bytes
    commitments: Dict[int, NonceCommitment] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        message: bytes,
        commitments: Iterable[NonceCommitment],
    ) -> Result[SigningPackage]:
        """Build a package; rejects duplicate or out-of-range indices."""
        table: Dict[int, NonceCommitment] = {}
        for comm in commitments:
            if comm.signer_index < 1:
                return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                           f"invalid signer index {comm.signer_index}",
                           (comm.signer_index,))
            if comm.signer_index in table:
                return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                           f"duplicate commitment from signer "
                           f"{comm.signer_index}", (comm.signer_index,))
            table[comm.signer_index] = comm
        if not table:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "signing package needs at least one commitment")
        return Ok(cls(message=bytes(message),
                      commitments=dict(sorted(table.items()))))

    @property
    def participants(self) -> Tuple[int, ...]:
        return tuple(sorted(self.commitments))

    def commitment_for(self, signer_index: int) -> Optional[NonceCommitment]:
        return self.commitments.get(signer_index)

    def encode_commitment_list(self) -> bytes:
        return b"".join(self.commitments[i].to_bytes()
                        for i in self.participants)


@dataclass(frozen=True)
class SignatureShare:
    """A signer's Round 2 output."""

    signer_index: int
    scalar: Scalar       # z_i


# ── shared protocol computations ────────────────────────────────────────

def compute_binding_factors(
    group_public_key: Point,
    package: SigningPackage,
) -> Dict[int, Scalar]:
    """ρ_i for every signer in the package (RFC 9591 §4.4)."""
    prefix = (
        group_public_key.to_bytes()
        + hash_message(package.message)
        + hash_commitment_list(package.encode_commitment_list())
    )
    return {
        i: hash_binding(prefix + Scalar(i).to_bytes())
        for i in package.participants
    }


def commitment_share(comm: NonceCommitment, rho: Scalar) -> Point:
    """Per-signer nonce point  R_i = D_i + ρ_i · E_i."""
    return comm.hiding + (rho * comm.binding)


def compute_group_commitment(
    package: SigningPackage,
    binding_factors: Dict[int, Scalar],
) -> Point:
    """R = Σ (D_j + ρ_j · E_j)  over the whole package."""
    return Point.sum_points([
        commitment_share(package.commitments[i], binding_factors[i])
        for i in package.participants
    ])


def compute_challenge(R: Point, group_public_key: Point,
                      message: bytes) -> Scalar:
    return hash_challenge(R, group_public_key, message)


# ── signer ──────────────────────────────────────────────────────────────

class SignerParticipant:
    """
    Holds one ``KeyShare`` and the nonces of its in-flight sessions.

    Lifecycle per signing attempt:
    1. ``generate_nonces()`` / ``commit(session_id)``  → ``NonceCommitment``
    2. ``sign(…)`` / ``sign_session(…)``              → ``SignatureShare``

    Session-scoped nonces are keyed by session id, so concurrent sessions
    over the same key never share a nonce.  The ids of the last
    ``closed_history`` finished sessions are remembered so a late replay
    is refused as ``NONCE_ALREADY_CONSUMED``; older ids are forgotten.
    """

    CLOSED_HISTORY = 1024

    def __init__(
        self,
        key_share: KeyShare,
        group_public_key: Point,
        closed_history: int = CLOSED_HISTORY,
    ) -> None:
        if closed_history < 1:
            raise ValueError("closed_history must be positive")
        self._share = key_share
        self.group_public_key = group_public_key
        self._pending: Dict[bytes, NonceSecret] = {}
        self._closed: OrderedDict[bytes, None] = OrderedDict()
        self._closed_history = closed_history

    @property
    def index(self) -> int:
        return self._share.signer_index

    @property
    def verification_share(self) -> Point:
        return self._share.verification_share

    # ── round 1 ────────────────────────────────────────────────────────

    def generate_nonces(self) -> Tuple[NonceCommitment, NonceSecret]:
        """
        Round 1: fresh nonce pair and its public commitment.

        **Must** be called once per signing attempt.
        """
        d = nonce_generate(self._share.secret_scalar)
        e = nonce_generate(self._share.secret_scalar)
        commitment = NonceCommitment(
            signer_index=self.index,
            hiding=d * G,
            binding=e * G,
        )
        return commitment, NonceSecret(d, e, commitment)

    def commit(self, session_id: bytes) -> Result[NonceCommitment]:
        """Round 1 for a coordinator session; the secret stays here."""
        if session_id in self._pending or session_id in self._closed:
            return Err(ErrorKind.INVALID_STATE,
                       f"signer {self.index} already committed to session "
                       f"{session_id.hex()}", (self.index,))
        commitment, secret = self.generate_nonces()
        self._pending[session_id] = secret
        logger.debug("signer %d committed to session %s",
                     self.index, session_id.hex())
        return Ok(commitment)

    def discard(self, session_id: bytes) -> bool:
        """Invalidate the session's nonce (abort, timeout, release)."""
        secret = self._pending.pop(session_id, None)
        self._close(session_id)
        if secret is None:
            return False
        secret.invalidate()
        logger.debug("signer %d discarded nonce for session %s",
                     self.index, session_id.hex())
        return True

    # ── round 2 ────────────────────────────────────────────────────────

    def sign(
        self,
        package: SigningPackage,
        nonce_secret: NonceSecret,
    ) -> Result[SignatureShare]:
        """
        Round 2: compute this signer's share for ``package``.

        Consumes ``nonce_secret`` irreversibly.
        """
        own = package.commitment_for(self.index)
        if own is None:
            return Err(ErrorKind.COMMITMENT_NOT_FOUND,
                       f"signer {self.index} absent from signing package",
                       (self.index,))
        if nonce_secret.commitment != own:
            return Err(ErrorKind.COMMITMENT_NOT_FOUND,
                       f"package commitment of signer {self.index} does not "
                       "match the supplied nonce secret", (self.index,))

        nonces = nonce_secret.consume()
        if nonces.is_err():
            logger.warning("signer %d refused to reuse a nonce", self.index)
            return nonces
        d, e = nonces.unwrap()

        rhos = compute_binding_factors(self.group_public_key, package)
        R = compute_group_commitment(package, rhos)
        c = compute_challenge(R, self.group_public_key, package.message)
        lambda_i = lagrange_coefficient(self.index, package.participants)

        z_i = d + rhos[self.index] * e + c * lambda_i * self._share.secret_scalar
        return Ok(SignatureShare(signer_index=self.index, scalar=z_i))

    def sign_session(
        self,
        session_id: bytes,
        package: SigningPackage,
    ) -> Result[SignatureShare]:
        """Round 2 using the nonce committed for ``session_id``."""
        secret = self._pending.get(session_id)
        if secret is None:
            if session_id in self._closed:
                return Err(ErrorKind.NONCE_ALREADY_CONSUMED,
                           f"nonce for session {session_id.hex()} already "
                           "used or invalidated", (self.index,))
            return Err(ErrorKind.COMMITMENT_NOT_FOUND,
                       f"signer {self.index} never committed to session "
                       f"{session_id.hex()}", (self.index,))

        result = self.sign(package, secret)
        if result.is_ok() or not secret.usable:
            del self._pending[session_id]
            self._close(session_id)
        return result

    def _close(self, session_id: bytes) -> None:
        self._closed[session_id] = None
        self._closed.move_to_end(session_id)
        while len(self._closed) > self._closed_history:
            self._closed.popitem(last=False)

    @property
    def closed_sessions(self) -> int:
        """Number of finished session ids currently remembered."""
        return len(self._closed)

    def __repr__(self) -> str:
        return f"SignerParticipant(index={self.index})"
