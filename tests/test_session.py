"""Session state machine driven by hand with a fake clock."""

from __future__ import annotations

import pytest

from threshold_ed25519.aggregation import Aggregator
from threshold_ed25519.codec import SignerResponse
from threshold_ed25519.config import AggregationStrategy, SessionConfig
from threshold_ed25519.curve import Scalar
from threshold_ed25519.errors import ErrorKind
from threshold_ed25519.session import SessionState, SigningSession
from threshold_ed25519.signing import SignatureShare
from threshold_ed25519.verification import verify_signature

MESSAGE = b"session test"
SID = b"\x42" * 16


def _session(keys, clock, **config):
    agg = Aggregator(keys.group_public_key, keys.params.threshold,
                     keys.verification_shares)
    return SigningSession(SID, keys.params, agg,
                          SessionConfig(timeout=2.0, **config), clock)


def _commit(session, participants, ids):
    for i in ids:
        session.receive_commitment(participants[i].commit(SID).unwrap())


def _sign(session, participants, ids):
    for i in ids:
        share = participants[i].sign_session(SID, session.package).unwrap()
        session.receive_share(share)


def test_happy_path(keys, participants, clock):
    s = _session(keys, clock)
    assert s.state is SessionState.IDLE
    assert s.start(MESSAGE, [1, 2, 3, 4]).is_ok()
    assert s.state is SessionState.COLLECTING_COMMITMENTS

    _commit(s, participants, [4, 2, 3, 1])
    # all candidates answered: narrowed to the lowest t
    assert s.state is SessionState.COLLECTING_SHARES
    assert s.signers == (1, 2, 3)
    assert s.released == (4,)

    _sign(s, participants, [3, 1, 2])
    assert s.state is SessionState.COMPLETE
    combined = s.result.unwrap()
    assert verify_signature(combined.public_key, MESSAGE, combined.signature)


def test_start_validation(keys, clock):
    s = _session(keys, clock)
    assert s.start(MESSAGE, [1, 2]).kind is ErrorKind.INSUFFICIENT_SHARES
    outsider = s.start(MESSAGE, [1, 2, 9])
    assert outsider.kind is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert outsider.signers == (9,)
    assert s.state is SessionState.IDLE

    assert s.start(MESSAGE, [1, 2, 3]).is_ok()
    assert s.start(MESSAGE, [1, 2, 3]).kind is ErrorKind.INVALID_STATE


def test_commitment_timeout_with_enough_signers(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3, 4, 5])
    _commit(s, participants, [5, 2, 4])
    clock.advance(1.0)
    assert s.check_deadline().is_ok()
    assert s.state is SessionState.COLLECTING_COMMITMENTS

    clock.advance(1.5)
    s.check_deadline()
    assert s.state is SessionState.COLLECTING_SHARES
    assert s.signers == (2, 4, 5)


def test_commitment_timeout_below_threshold(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3, 4])
    _commit(s, participants, [1, 3])
    clock.advance(2.0)
    result = s.check_deadline()
    assert result.kind is ErrorKind.INSUFFICIENT_SHARES
    assert result.signers == (2, 4)
    assert s.state is SessionState.FAILED
    assert s.result is result


def test_share_timeout_fails_session(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3])
    _commit(s, participants, [1, 2, 3])
    _sign(s, participants, [1, 3])
    assert s.remaining() == pytest.approx(2.0)
    clock.advance(3.0)
    assert s.remaining() == 0.0
    result = s.on_timeout()
    assert result.kind is ErrorKind.INSUFFICIENT_SHARES
    assert result.signers == (2,)
    assert s.is_terminal


def test_rejected_inputs(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3, 4])
    stray = participants[5].commit(SID).unwrap()
    assert s.receive_commitment(stray).kind is ErrorKind.PARTICIPANT_SET_MISMATCH

    first = participants[1].commit(SID).unwrap()
    s.receive_commitment(first)
    assert s.receive_commitment(first).kind is ErrorKind.PARTICIPANT_SET_MISMATCH

    share = SignatureShare(1, Scalar.one())
    assert s.receive_share(share).kind is ErrorKind.INVALID_STATE

    _commit(s, participants, [2, 3, 4])
    outside = s.receive_share(SignatureShare(4, Scalar.one()))
    assert outside.kind is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert outside.signers == (4,)


def test_receive_response_frames(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3])
    _commit(s, participants, [1, 2, 3])

    garbled = s.receive_response(b"\x01" * 10, expected_index=2)
    assert garbled.kind is ErrorKind.DECODE_ERROR
    assert garbled.signers == (2,)

    out_of_range = SignerResponse(1, b"\xff" * 32, b"\x00" * 32).encode()
    assert s.receive_response(out_of_range).kind is ErrorKind.DECODE_ERROR
    assert set(s.faults) == {1, 2}

    impostor = SignerResponse(3, b"\x00" * 32, b"\x00" * 32).encode()
    assert s.receive_response(impostor, expected_index=1).kind \
        is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert s.state is SessionState.COLLECTING_SHARES


def test_pre_verify_flags_corrupted_share(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3])
    _commit(s, participants, [1, 2, 3])
    for i in (1, 2, 3):
        share = participants[i].sign_session(SID, s.package).unwrap()
        if i == 2:
            share = SignatureShare(2, share.scalar + Scalar.one())
        s.receive_share(share)
    assert s.state is SessionState.FAILED
    assert s.result.kind is ErrorKind.INVALID_SHARE
    assert s.result.signers == (2,)


def test_fail_closed_strategy(keys, participants, clock):
    s = _session(keys, clock, strategy=AggregationStrategy.FAIL_CLOSED)
    s.start(MESSAGE, [1, 2, 3])
    _commit(s, participants, [1, 2, 3])
    for i in (1, 2, 3):
        share = participants[i].sign_session(SID, s.package).unwrap()
        if i == 3:
            share = SignatureShare(3, share.scalar + Scalar.one())
        s.receive_share(share)
    assert s.result.kind is ErrorKind.AGGREGATION_MISMATCH


def test_abort_is_terminal(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3])
    result = s.abort("operator cancelled")
    assert result.kind is ErrorKind.SESSION_ABORTED
    assert s.state is SessionState.FAILED
    assert s.abort().is_ok()
    assert s.signing_request(1).kind is ErrorKind.INVALID_STATE


def test_signing_request_frame(keys, participants, clock):
    s = _session(keys, clock)
    s.start(MESSAGE, [1, 2, 3])
    _commit(s, participants, [1, 2, 3])
    frame = s.signing_request(2).unwrap()
    assert len(frame) == 65 and frame[0] == 2
    assert s.signing_request(4).kind is ErrorKind.PARTICIPANT_SET_MISMATCH


def test_config_validation():
    with pytest.raises(ValueError):
        SessionConfig(timeout=0)
    with pytest.raises(ValueError):
        SessionConfig(max_attempts=0)
    assert SessionConfig().pre_verify
    assert not SessionConfig(strategy=AggregationStrategy.FAIL_CLOSED).pre_verify
