"""
Signing session as an explicit finite-state machine.

    IDLE ──start──▶ COLLECTING_COMMITMENTS ──freeze──▶ COLLECTING_SHARES
                                                            │
                            COMPLETE ◀── AGGREGATING ◀──────┘
                                          │
                       FAILED ◀───────────┘   (any state: abort / timeout)

Every transition is driven from outside — by the asyncio driver in
:pymod:`coordinator` or directly by tests — so suspension points and
timeouts can be exercised in isolation.  The session owns no network
and never sleeps; ``check_deadline`` compares against an injectable
clock.

The frozen signer set chosen when leaving COLLECTING_COMMITMENTS is
authoritative for every later Lagrange computation.  Terminal sessions
are never reused: a retry is a new session with fresh nonces.
"""

from __future__ import annotations

import logging
import time
from enum import Enum, auto
from typing import Callable, Dict, Optional, Sequence, Tuple

from .access import GroupParameters
from .aggregation import Aggregator
from .codec import CombinedSignature, SignerMessage, SignerResponse
from .config import SessionConfig
from .curve import Scalar
from .errors import Err, ErrorKind, Ok, Result
from .hash import message_digest
from .signing import (
    NonceCommitment,
    SignatureShare,
    SigningPackage,
    commitment_share,
    compute_binding_factors,
    compute_group_commitment,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = auto()
    COLLECTING_COMMITMENTS = auto()
    COLLECTING_SHARES = auto()
    AGGREGATING = auto()
    COMPLETE = auto()
    FAILED = auto()


TERMINAL_STATES = (SessionState.COMPLETE, SessionState.FAILED)


class SigningSession:
    """One signing attempt over a fixed message and candidate set."""

    def __init__(
        self,
        session_id: bytes,
        params: GroupParameters,
        aggregator: Aggregator,
        config: SessionConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session_id = session_id
        self.params = params
        self.aggregator = aggregator
        self.config = config
        self._clock = clock

        self.state = SessionState.IDLE
        self.message = b""
        self.candidates: Tuple[int, ...] = ()
        self.package: Optional[SigningPackage] = None
        self.result: Optional[Result[CombinedSignature]] = None

        self._deadline = 0.0
        self._commitments: Dict[int, NonceCommitment] = {}
        self._shares: Dict[int, SignatureShare] = {}
        self._faults: Dict[int, Err] = {}

    # ── queries ────────────────────────────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def signers(self) -> Tuple[int, ...]:
        """The frozen signer set (empty before freezing)."""
        return self.package.participants if self.package else ()

    @property
    def released(self) -> Tuple[int, ...]:
        """Candidates that will not sign and must drop their nonces."""
        return tuple(i for i in self.candidates if i not in self.signers)

    @property
    def nonce_holders(self) -> Tuple[int, ...]:
        """Candidates that may still hold a live nonce for this session."""
        return self.candidates

    @property
    def faults(self) -> Dict[int, Err]:
        return dict(self._faults)

    def remaining(self) -> float:
        return max(0.0, self._deadline - self._clock())

    def __repr__(self) -> str:
        return (f"SigningSession({self.session_id.hex()[:8]}, "
                f"{self.state.name})")

    # ── IDLE → COLLECTING_COMMITMENTS ──────────────────────────────────

    def start(self, message: bytes,
              candidates: Sequence[int]) -> Result[SessionState]:
        if self.state is not SessionState.IDLE:
            return self._wrong_state("start")
        unique = tuple(sorted(set(candidates)))
        outsiders = tuple(i for i in unique if not self.params.is_member(i))
        if outsiders:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       "candidates outside the key group", outsiders)
        if len(unique) < self.params.threshold:
            return Err(ErrorKind.INSUFFICIENT_SHARES,
                       f"{len(unique)} candidates for threshold "
                       f"{self.params.threshold}")
        self.message = bytes(message)
        self.candidates = unique
        self._deadline = self._clock() + self.config.timeout
        self.state = SessionState.COLLECTING_COMMITMENTS
        logger.debug("session %s collecting commitments from %s",
                     self.session_id.hex(), list(unique))
        return Ok(self.state)

    # ── round 1 ────────────────────────────────────────────────────────

    def receive_commitment(
        self, commitment: NonceCommitment,
    ) -> Result[SessionState]:
        if self.state is not SessionState.COLLECTING_COMMITMENTS:
            return self._wrong_state("receive_commitment")
        index = commitment.signer_index
        if index not in self.candidates:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"commitment from non-candidate {index}", (index,))
        if index in self._commitments:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"duplicate commitment from signer {index}", (index,))
        self._commitments[index] = commitment
        if len(self._commitments) == len(self.candidates):
            return self.close_commitment_round()
        return Ok(self.state)

    def close_commitment_round(self) -> Result[SessionState]:
        """
        Freeze the signer set: the lowest *t* indices that committed.

        Fails the session when fewer than *t* commitments arrived.
        """
        if self.state is not SessionState.COLLECTING_COMMITMENTS:
            return self._wrong_state("close_commitment_round")
        t = self.params.threshold
        if len(self._commitments) < t:
            missing = tuple(i for i in self.candidates
                            if i not in self._commitments)
            return self._fail(Err(
                ErrorKind.INSUFFICIENT_SHARES,
                f"{len(self._commitments)} of {t} commitments before deadline",
                missing,
            ))
        chosen = sorted(self._commitments)[:t]
        package = SigningPackage.create(
            self.message, [self._commitments[i] for i in chosen],
        )
        if package.is_err():
            return self._fail(package)
        self.package = package.unwrap()
        self._deadline = self._clock() + self.config.timeout
        self.state = SessionState.COLLECTING_SHARES
        logger.info("session %s froze signer set %s",
                    self.session_id.hex(), list(chosen))
        return Ok(self.state)

    def signing_request(self, signer_index: int) -> Result[bytes]:
        """Encoded ``SignerMessage`` for one frozen signer."""
        if self.state is not SessionState.COLLECTING_SHARES:
            return self._wrong_state("signing_request")
        if signer_index not in self.signers:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"signer {signer_index} not in frozen set",
                       (signer_index,))
        rhos = compute_binding_factors(self.aggregator.group_public_key,
                                       self.package)
        R = compute_group_commitment(self.package, rhos)
        return Ok(SignerMessage(
            signer_index=signer_index,
            message_hash=message_digest(self.message),
            nonce_commitment=R.to_bytes(),
        ).encode())

    # ── round 2 ────────────────────────────────────────────────────────

    def receive_response(self, frame: bytes,
                         expected_index: Optional[int] = None,
                         ) -> Result[SessionState]:
        """Decode a ``SignerResponse`` frame and feed its share."""
        if self.state is not SessionState.COLLECTING_SHARES:
            return self._wrong_state("receive_response")
        decoded = SignerResponse.decode(frame)
        if decoded.is_err():
            return self.record_fault(expected_index, decoded)
        response = decoded.unwrap()
        if expected_index is not None \
                and response.signer_index != expected_index:
            return self.record_fault(expected_index, Err(
                ErrorKind.PARTICIPANT_SET_MISMATCH,
                f"response claims signer {response.signer_index}",
            ))
        try:
            z = Scalar.from_bytes(response.signature_share)
        except ValueError as exc:
            return self.record_fault(response.signer_index, Err(
                ErrorKind.DECODE_ERROR, f"signature share: {exc}",
            ))
        self._check_nonce_share(response)
        return self.receive_share(
            SignatureShare(signer_index=response.signer_index, scalar=z),
        )

    def _check_nonce_share(self, response: SignerResponse) -> None:
        comm = self.package.commitment_for(response.signer_index)
        if comm is None:
            return
        rhos = compute_binding_factors(self.aggregator.group_public_key,
                                       self.package)
        expected = commitment_share(comm, rhos[response.signer_index])
        if expected.to_bytes() != response.nonce_share:
            logger.warning("signer %d reported an unexpected nonce share",
                           response.signer_index)

    def receive_share(self, share: SignatureShare) -> Result[SessionState]:
        if self.state is not SessionState.COLLECTING_SHARES:
            return self._wrong_state("receive_share")
        index = share.signer_index
        if index not in self.signers:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"share from signer {index} outside frozen set "
                       f"{list(self.signers)}", (index,))
        if index in self._shares:
            return Err(ErrorKind.PARTICIPANT_SET_MISMATCH,
                       f"duplicate share from signer {index}", (index,))
        self._shares[index] = share
        if len(self._shares) == len(self.signers):
            return self._aggregate()
        return Ok(self.state)

    def close_share_round(self) -> Result[SessionState]:
        """No more shares will come: fail unless aggregation already ran."""
        if self.state is not SessionState.COLLECTING_SHARES:
            return self._wrong_state("close_share_round")
        missing = tuple(i for i in self.signers if i not in self._shares)
        return self._fail(Err(
            ErrorKind.INSUFFICIENT_SHARES,
            f"{len(self._shares)} of {len(self.signers)} shares before "
            "deadline",
            missing,
        ))

    def record_fault(self, index: Optional[int],
                     err: Err) -> Result[SessionState]:
        """Isolate one signer's failure; the session carries on."""
        if index is not None:
            self._faults[index] = err
            err = Err(err.kind, err.message, (index,))
        logger.warning("session %s: fault from signer %s: %s",
                       self.session_id.hex(), index, err)
        return err

    # ── AGGREGATING → COMPLETE | FAILED ────────────────────────────────

    def _aggregate(self) -> Result[SessionState]:
        self.state = SessionState.AGGREGATING
        if self.config.pre_verify:
            combined = self.aggregator.aggregate_verified(
                self.package, self._shares,
                verify_all=self.config.verify_all,
            )
        else:
            combined = self.aggregator.aggregate(self.package, self._shares)
        if combined.is_err():
            return self._fail(combined)
        self.result = combined
        self.state = SessionState.COMPLETE
        logger.info("session %s complete", self.session_id.hex())
        return Ok(self.state)

    # ── timeouts and aborts ────────────────────────────────────────────

    def on_timeout(self) -> Result[SessionState]:
        """Deadline hit in the current collection round."""
        if self.state is SessionState.COLLECTING_COMMITMENTS:
            return self.close_commitment_round()
        if self.state is SessionState.COLLECTING_SHARES:
            return self.close_share_round()
        return Ok(self.state)

    def check_deadline(self) -> Result[SessionState]:
        if not self.is_terminal and self._clock() >= self._deadline \
                and self.state is not SessionState.IDLE:
            return self.on_timeout()
        return Ok(self.state)

    def abort(self, reason: str = "aborted") -> Result[SessionState]:
        if self.is_terminal:
            return Ok(self.state)
        return self._fail(Err(ErrorKind.SESSION_ABORTED, reason))

    # ── helpers ────────────────────────────────────────────────────────

    def _fail(self, err: Err) -> Err:
        self.state = SessionState.FAILED
        self.result = err
        logger.info("session %s failed: %s", self.session_id.hex(), err)
        return err

    def _wrong_state(self, operation: str) -> Err:
        return Err(ErrorKind.INVALID_STATE,
                   f"{operation} not allowed in state {self.state.name}")
