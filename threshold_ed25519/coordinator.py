"""
Asyncio driver for signing sessions.

The coordinator fans every round out to the signers concurrently and
feeds whatever comes back into the session state machine until the
round's deadline.  It holds no secrets; a misbehaving coordinator can
stall signing but cannot forge.

Failure handling
----------------
* A signer that raises, errs or never answers is recorded as a fault
  on the session; the other signers are unaffected.
* Whenever a session ends without a signature — timeout, bad share,
  cancellation — every candidate is told to drop its nonce.
* Under ``PRE_VERIFY`` an ``INVALID_SHARE`` result triggers a new
  session with fresh nonces, excluding the flagged signers, until a
  signature is produced, too few candidates remain, or
  ``max_attempts`` is reached.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .access import GroupParameters
from .aggregation import Aggregator
from .codec import CombinedSignature
from .config import SessionConfig
from .curve import Point
from .errors import Err, ErrorKind, Ok, Result
from .session import SessionState, SigningSession
from .transport import Transport

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 16


@dataclass(frozen=True)
class SigningOutcome:
    """A finished signature together with how it was obtained."""

    signature: CombinedSignature
    signers: Tuple[int, ...]          # frozen set of the successful session
    flagged: Tuple[int, ...] = ()     # excluded for invalid shares
    attempts: int = 1


class SigningCoordinator:
    """
    Runs signing sessions for one group key.

    Parameters
    ----------
    params : GroupParameters
        The (t, n) configuration of the key.
    group_public_key : Point
        Group key  Y.
    verification_shares : mapping
        signer index → Y_i, used for per-share verification.
    config : SessionConfig
        Timeouts and aggregation strategy.
    clock : callable
        Monotonic clock for session deadlines.
    """

    def __init__(
        self,
        params: GroupParameters,
        group_public_key: Point,
        verification_shares: Mapping[int, Point],
        config: SessionConfig = SessionConfig(),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.params = params
        self.config = config
        self.aggregator = Aggregator(
            group_public_key, params.threshold, verification_shares,
        )
        self._clock = clock

    # ── sessions ───────────────────────────────────────────────────────

    def start_session(
        self,
        message: bytes,
        candidates: Sequence[int],
    ) -> Result[SigningSession]:
        session = SigningSession(
            session_id=secrets.token_bytes(SESSION_ID_BYTES),
            params=self.params,
            aggregator=self.aggregator,
            config=self.config,
            clock=self._clock,
        )
        started = session.start(message, candidates)
        if started.is_err():
            return started
        return Ok(session)

    async def run_session(
        self,
        session: SigningSession,
        transport: Transport,
    ) -> Result[CombinedSignature]:
        """Drive ``session`` from its commitment round to a result."""
        try:
            await self._collect_commitments(session, transport)
            if session.state is SessionState.COLLECTING_SHARES:
                for index in session.released:
                    transport.release(index, session.session_id)
                await self._collect_shares(session, transport)
        except asyncio.CancelledError:
            session.abort("signing cancelled")
            raise
        finally:
            if session.state is SessionState.FAILED:
                for index in session.nonce_holders:
                    transport.release(index, session.session_id)
        return session.result

    async def _collect_commitments(self, session: SigningSession,
                                   transport: Transport) -> None:
        sid = session.session_id
        tasks = {
            asyncio.ensure_future(transport.request_commitment(i, sid)): i
            for i in session.candidates
        }
        pending = await self._gather_round(
            session, SessionState.COLLECTING_COMMITMENTS, tasks,
            self._feed_commitment,
        )
        await _cancel_all(pending)
        if session.state is SessionState.COLLECTING_COMMITMENTS:
            session.close_commitment_round()

    async def _collect_shares(self, session: SigningSession,
                              transport: Transport) -> None:
        sid = session.session_id
        tasks: Dict[asyncio.Future, int] = {}
        for index in session.signers:
            request = session.signing_request(index).unwrap()
            future = asyncio.ensure_future(transport.request_share(
                index, sid, session.package, request,
            ))
            tasks[future] = index
        pending = await self._gather_round(
            session, SessionState.COLLECTING_SHARES, tasks,
            self._feed_response,
        )
        await _cancel_all(pending)
        if session.state is SessionState.COLLECTING_SHARES:
            session.close_share_round()

    async def _gather_round(self, session, state, tasks, feed) -> Set:
        """
        Feed completed tasks to the session until the round leaves
        ``state``, the deadline passes, or a frozen signer faults.

        Returns the tasks still pending.
        """
        pending: Set = set(tasks)
        try:
            while pending and session.state is state:
                done, pending = await asyncio.wait(
                    pending, timeout=session.remaining(),
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if not done:
                    logger.info("session %s: round deadline passed",
                                session.session_id.hex())
                    break
                stop = False
                for task in done:
                    if not feed(session, tasks[task], task):
                        stop = True
                if stop:
                    break
        except asyncio.CancelledError:
            await _cancel_all(pending)
            raise
        return pending

    @staticmethod
    def _feed_commitment(session: SigningSession, index: int,
                         task: asyncio.Future) -> bool:
        exc = task.exception()
        if exc is not None:
            session.record_fault(index, Err(ErrorKind.SIGNER_UNREACHABLE,
                                            repr(exc)))
            return True
        reply = task.result()
        if reply.is_err():
            session.record_fault(index, reply)
            return True
        commitment = reply.unwrap()
        if commitment.signer_index != index:
            session.record_fault(index, Err(
                ErrorKind.PARTICIPANT_SET_MISMATCH,
                f"commitment claims signer {commitment.signer_index}",
            ))
            return True
        fed = session.receive_commitment(commitment)
        if fed.is_err() and not session.is_terminal:
            session.record_fault(index, fed)
        # a missing commitment only matters once the round closes
        return True

    @staticmethod
    def _feed_response(session: SigningSession, index: int,
                       task: asyncio.Future) -> bool:
        exc = task.exception()
        if exc is not None:
            session.record_fault(index, Err(ErrorKind.SIGNER_UNREACHABLE,
                                            repr(exc)))
            return False
        reply = task.result()
        if reply.is_err():
            session.record_fault(index, reply)
            return False
        fed = session.receive_response(reply.unwrap(), expected_index=index)
        # every frozen signer is required: a fault ends the round early
        return fed.is_ok() or session.is_terminal

    # ── retries ────────────────────────────────────────────────────────

    async def sign(
        self,
        message: bytes,
        candidates: Sequence[int],
        transport: Transport,
    ) -> Result[SigningOutcome]:
        """
        Sign ``message`` with the given candidates, excluding signers
        flagged for invalid shares and retrying in fresh sessions.
        """
        remaining: List[int] = sorted(set(candidates))
        flagged: List[int] = []
        result: Optional[Result] = None
        for attempt in range(1, self.config.max_attempts + 1):
            if flagged and len(remaining) < self.params.threshold:
                return Err(ErrorKind.INSUFFICIENT_SHARES,
                           f"{len(remaining)} honest candidates left for "
                           f"threshold {self.params.threshold}",
                           tuple(flagged))
            started = self.start_session(message, remaining)
            if started.is_err():
                return started
            session = started.unwrap()
            result = await self.run_session(session, transport)
            if result.is_ok():
                return Ok(SigningOutcome(
                    signature=result.unwrap(),
                    signers=session.signers,
                    flagged=tuple(flagged),
                    attempts=attempt,
                ))
            if not (self.config.pre_verify
                    and result.kind is ErrorKind.INVALID_SHARE):
                return result
            flagged.extend(result.signers)
            remaining = [i for i in remaining if i not in result.signers]
            logger.warning("attempt %d: excluding signers %s and retrying",
                           attempt, list(result.signers))
        return result


async def _cancel_all(tasks) -> None:
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
