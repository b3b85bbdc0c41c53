"""Asyncio coordinator over the in-process transport."""

from __future__ import annotations

import asyncio

from threshold_ed25519.config import AggregationStrategy, SessionConfig
from threshold_ed25519.coordinator import SigningCoordinator
from threshold_ed25519.errors import ErrorKind
from threshold_ed25519.session import SessionState
from threshold_ed25519.transport import FaultPlan, LocalTransport, SignerEndpoint
from threshold_ed25519.verification import verify_signature

MESSAGE = b"Hello, threshold signatures"


def _setup(keys, participants, config=None, faults=FaultPlan()):
    coordinator = SigningCoordinator(
        keys.params, keys.group_public_key, keys.verification_shares,
        config or SessionConfig(timeout=1.0),
    )
    endpoints = {i: SignerEndpoint(p) for i, p in participants.items()}
    return coordinator, LocalTransport(endpoints, faults)


def test_two_subsets_sign_independently(keys, participants):
    coordinator, transport = _setup(keys, participants)
    pk = keys.group_public_key.to_bytes()

    first = asyncio.run(coordinator.sign(MESSAGE, [1, 2, 3], transport)).unwrap()
    second = asyncio.run(coordinator.sign(MESSAGE, [2, 4, 5], transport)).unwrap()

    assert first.signers == (1, 2, 3)
    assert second.signers == (2, 4, 5)
    for outcome in (first, second):
        assert outcome.attempts == 1
        assert outcome.flagged == ()
        assert verify_signature(pk, MESSAGE, outcome.signature.signature)
    assert first.signature.signature != second.signature.signature


def test_corrupted_signer_is_flagged_and_excluded(keys, participants):
    coordinator, transport = _setup(
        keys, participants, faults=FaultPlan(corrupt=frozenset({2})))
    outcome = asyncio.run(
        coordinator.sign(MESSAGE, [1, 2, 3, 4], transport)).unwrap()
    assert outcome.flagged == (2,)
    assert outcome.signers == (1, 3, 4)
    assert outcome.attempts == 2
    assert verify_signature(keys.group_public_key.to_bytes(), MESSAGE,
                            outcome.signature.signature)


def test_exclusion_below_threshold_fails(keys, participants):
    coordinator, transport = _setup(
        keys, participants, faults=FaultPlan(corrupt=frozenset({2})))
    result = asyncio.run(coordinator.sign(MESSAGE, [1, 2, 3], transport))
    assert result.kind is ErrorKind.INSUFFICIENT_SHARES
    assert result.signers == (2,)


def test_fail_closed_does_not_retry(keys, participants):
    config = SessionConfig(timeout=1.0,
                           strategy=AggregationStrategy.FAIL_CLOSED)
    coordinator, transport = _setup(
        keys, participants, config, FaultPlan(corrupt=frozenset({1})))
    result = asyncio.run(coordinator.sign(MESSAGE, [1, 2, 3, 4], transport))
    assert result.kind is ErrorKind.AGGREGATION_MISMATCH


def test_offline_signer_is_replaced_after_timeout(keys, participants):
    coordinator, transport = _setup(
        keys, participants, SessionConfig(timeout=0.2),
        FaultPlan(offline=frozenset({1})))
    outcome = asyncio.run(
        coordinator.sign(MESSAGE, [1, 2, 3, 4], transport)).unwrap()
    assert outcome.signers == (2, 3, 4)


def test_too_many_offline_signers(keys, participants):
    coordinator, transport = _setup(
        keys, participants, SessionConfig(timeout=0.1),
        FaultPlan(offline=frozenset({1, 2})))
    result = asyncio.run(coordinator.sign(MESSAGE, [1, 2, 3, 4], transport))
    assert result.kind is ErrorKind.INSUFFICIENT_SHARES
    assert set(result.signers) == {1, 2}


def test_garbled_response_fails_session_and_releases_nonces(keys, participants):
    coordinator, transport = _setup(
        keys, participants, faults=FaultPlan(garble=frozenset({3})))
    session = coordinator.start_session(MESSAGE, [1, 2, 3]).unwrap()
    result = asyncio.run(coordinator.run_session(session, transport))
    assert result.kind is ErrorKind.INSUFFICIENT_SHARES
    assert 3 in result.signers
    assert session.faults[3].kind is ErrorKind.DECODE_ERROR
    # nonces of the failed session can never be used again
    for i in (1, 2, 3):
        assert participants[i].commit(session.session_id).kind \
            is ErrorKind.INVALID_STATE


def test_released_candidates_drop_their_nonces(keys, participants):
    coordinator, transport = _setup(keys, participants)
    session = coordinator.start_session(MESSAGE, [1, 2, 3, 4, 5]).unwrap()
    assert asyncio.run(coordinator.run_session(session, transport)).is_ok()
    assert session.released == (4, 5)
    for i in (4, 5):
        assert participants[i].sign_session(session.session_id,
                                            session.package).kind \
            is ErrorKind.NONCE_ALREADY_CONSUMED


def test_cancellation_invalidates_nonces(keys, participants):
    coordinator, transport = _setup(
        keys, participants, SessionConfig(timeout=30.0),
        FaultPlan(offline=frozenset({5})))
    session = coordinator.start_session(MESSAGE, [1, 2, 3, 4, 5]).unwrap()

    async def scenario():
        task = asyncio.ensure_future(coordinator.run_session(session, transport))
        await asyncio.sleep(0.05)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            return True
        return False

    assert asyncio.run(scenario())
    assert session.state is SessionState.FAILED
    assert session.result.kind is ErrorKind.SESSION_ABORTED
    for i in range(1, 6):
        assert participants[i].commit(session.session_id).kind \
            is ErrorKind.INVALID_STATE


def test_unknown_signer_route_is_a_fault(keys, participants):
    coordinator = SigningCoordinator(
        keys.params, keys.group_public_key, keys.verification_shares,
        SessionConfig(timeout=0.5),
    )
    endpoints = {i: SignerEndpoint(participants[i]) for i in (1, 2, 3)}
    transport = LocalTransport(endpoints)
    session = coordinator.start_session(MESSAGE, [1, 2, 3, 4]).unwrap()
    result = asyncio.run(coordinator.run_session(session, transport))
    assert result.is_ok()
    assert session.faults[4].kind is ErrorKind.SIGNER_UNREACHABLE


def test_concurrent_sessions_over_same_keys(keys, participants):
    coordinator, transport = _setup(keys, participants)

    async def both():
        return await asyncio.gather(
            coordinator.sign(b"first", [1, 2, 3], transport),
            coordinator.sign(b"second", [1, 2, 3], transport),
        )

    first, second = asyncio.run(both())
    pk = keys.group_public_key.to_bytes()
    assert verify_signature(pk, b"first", first.unwrap().signature.signature)
    assert verify_signature(pk, b"second", second.unwrap().signature.signature)


def test_start_session_rejects_small_candidate_set(keys, participants):
    coordinator, _ = _setup(keys, participants)
    assert coordinator.start_session(MESSAGE, [1, 2]).kind \
        is ErrorKind.INSUFFICIENT_SHARES
