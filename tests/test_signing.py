"""Participant-side FROST signing, share verification and aggregation."""

from __future__ import annotations

import itertools
import logging

import pytest

from threshold_ed25519.aggregation import Aggregator, shares_by_index
from threshold_ed25519.curve import Scalar
from threshold_ed25519.errors import ErrorKind, ThresholdError
from threshold_ed25519.signing import (
    NonceState,
    SignatureShare,
    SignerParticipant,
    SigningPackage,
)
from threshold_ed25519.verification import ShareVerifier, verify_signature

MESSAGE = b"Hello, threshold signatures"


def _round_one(participants, ids):
    nonces = {i: participants[i].generate_nonces() for i in ids}
    package = SigningPackage.create(
        MESSAGE, [comm for comm, _ in nonces.values()]).unwrap()
    return package, {i: secret for i, (_, secret) in nonces.items()}


def _round_two(participants, package, secrets_):
    return {i: participants[i].sign(package, secrets_[i]).unwrap()
            for i in package.participants}


def _aggregator(keys):
    return Aggregator(keys.group_public_key, keys.params.threshold,
                      keys.verification_shares)


def test_every_threshold_subset_signs_validly(keys, participants):
    agg = _aggregator(keys)
    pk = keys.group_public_key.to_bytes()
    for ids in itertools.combinations(range(1, 6), 3):
        package, secrets_ = _round_one(participants, ids)
        combined = agg.aggregate(package, _round_two(participants, package,
                                                     secrets_)).unwrap()
        assert combined.public_key == pk
        assert verify_signature(pk, MESSAGE, combined.signature)
        assert not verify_signature(pk, MESSAGE + b"!", combined.signature)


def test_nonce_reuse_is_refused(keys, participants):
    package, secrets_ = _round_one(participants, [1, 2, 3])
    assert participants[1].sign(package, secrets_[1]).is_ok()
    assert secrets_[1].state is NonceState.CONSUMED

    again = participants[1].sign(package, secrets_[1])
    assert again.is_err()
    assert again.kind is ErrorKind.NONCE_ALREADY_CONSUMED
    assert again.signers == (1,)


def test_invalidated_nonce_cannot_sign(participants):
    package, secrets_ = _round_one(participants, [1, 2, 3])
    secrets_[2].invalidate()
    assert participants[2].sign(package, secrets_[2]).kind \
        is ErrorKind.NONCE_ALREADY_CONSUMED


def test_signer_absent_from_package(participants):
    package, secrets_ = _round_one(participants, [1, 2, 3])
    _, stray = participants[4].generate_nonces()
    result = participants[4].sign(package, stray)
    assert result.kind is ErrorKind.COMMITMENT_NOT_FOUND


def test_nonce_secret_must_match_package_commitment(participants):
    package, _ = _round_one(participants, [1, 2, 3])
    _, other = participants[1].generate_nonces()
    result = participants[1].sign(package, other)
    assert result.kind is ErrorKind.COMMITMENT_NOT_FOUND
    assert other.usable


def test_session_nonces(keys, participants):
    p = participants[1]
    sid = b"\x01" * 16
    comm = p.commit(sid).unwrap()
    assert p.commit(sid).kind is ErrorKind.INVALID_STATE

    others = [participants[i].generate_nonces()[0] for i in (2, 3)]
    package = SigningPackage.create(MESSAGE, [comm] + others).unwrap()
    assert p.sign_session(sid, package).is_ok()
    assert p.sign_session(sid, package).kind is ErrorKind.NONCE_ALREADY_CONSUMED
    assert p.sign_session(b"\x02" * 16, package).kind \
        is ErrorKind.COMMITMENT_NOT_FOUND


def test_discarded_session_nonce(participants):
    p = participants[2]
    sid = b"\x03" * 16
    comm = p.commit(sid).unwrap()
    assert p.discard(sid)
    assert not p.discard(sid)
    package = SigningPackage.create(MESSAGE, [comm]).unwrap()
    assert p.sign_session(sid, package).kind is ErrorKind.NONCE_ALREADY_CONSUMED


def test_closed_session_history_is_bounded(keys):
    p = SignerParticipant(keys.shares[1], keys.group_public_key,
                          closed_history=4)
    sids = [bytes([k]) * 16 for k in range(10)]
    for sid in sids:
        p.commit(sid).unwrap()
        assert p.discard(sid)
        assert p.closed_sessions <= 4
    assert p.closed_sessions == 4

    # recent ids are still refused, forgotten ones may commit again
    assert p.commit(sids[-1]).kind is ErrorKind.INVALID_STATE
    assert p.commit(sids[0]).is_ok()

    with pytest.raises(ValueError):
        SignerParticipant(keys.shares[1], keys.group_public_key,
                          closed_history=0)


def test_package_rejects_duplicates(participants):
    comm, _ = participants[1].generate_nonces()
    dup = SigningPackage.create(MESSAGE, [comm, comm])
    assert dup.kind is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert SigningPackage.create(MESSAGE, []).is_err()


def test_share_verifier(keys, participants):
    package, secrets_ = _round_one(participants, [2, 4, 5])
    shares = _round_two(participants, package, secrets_)
    verifier = ShareVerifier(keys.group_public_key)
    vs = keys.verification_shares
    for i, share in shares.items():
        assert verifier.verify(i, share, package, vs[i])

    bad = SignatureShare(4, shares[4].scalar + Scalar.one())
    assert not verifier.verify(4, bad, package, vs[4])
    # right share, wrong verification key
    assert not verifier.verify(4, shares[4], package, vs[5])
    assert not verifier.verify(4, shares[4], package, None)


def test_fail_closed_reports_mismatch_without_attribution(keys, participants):
    package, secrets_ = _round_one(participants, [1, 2, 3])
    shares = _round_two(participants, package, secrets_)
    shares[2] = SignatureShare(2, shares[2].scalar + Scalar.one())
    result = _aggregator(keys).aggregate(package, shares)
    assert result.kind is ErrorKind.AGGREGATION_MISMATCH
    assert result.signers == ()


@pytest.mark.parametrize("verify_all, expected", [(True, (1, 3)), (False, (1,))])
def test_pre_verify_attributes_bad_shares(keys, participants, verify_all,
                                          expected):
    package, secrets_ = _round_one(participants, [1, 2, 3])
    shares = _round_two(participants, package, secrets_)
    for i in (1, 3):
        shares[i] = SignatureShare(i, shares[i].scalar + Scalar.one())
    result = _aggregator(keys).aggregate_verified(package, shares,
                                                  verify_all=verify_all)
    assert result.kind is ErrorKind.INVALID_SHARE
    assert result.signers == expected


def test_shares_for_another_participant_set_never_verify(keys, participants):
    # shares were computed with λ over {1,2,3,4}
    agg = Aggregator(keys.group_public_key, 4, keys.verification_shares)
    package, secrets_ = _round_one(participants, [1, 2, 3, 4])
    shares = _round_two(participants, package, secrets_)
    assert agg.aggregate(package, shares).is_ok()

    three = Aggregator(keys.group_public_key, 3, keys.verification_shares)
    subset = {i: shares[i] for i in (1, 2, 3)}
    result = three.aggregate(package, subset)
    assert result.kind is ErrorKind.AGGREGATION_MISMATCH


def test_pre_verify_rejects_partial_share_set(keys, participants, caplog):
    package, secrets_ = _round_one(participants, [1, 2, 3, 4])
    shares = _round_two(participants, package, secrets_)
    three = Aggregator(keys.group_public_key, 3, keys.verification_shares)
    subset = {i: shares[i] for i in (1, 2, 3)}
    with caplog.at_level(logging.ERROR):
        result = three.aggregate_verified(package, subset)
    assert result.kind is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert result.signers == (4,)
    assert "aggregation defect" not in caplog.text


def test_share_set_must_match_threshold_and_package(keys, participants):
    agg = _aggregator(keys)
    package, secrets_ = _round_one(participants, [1, 2, 3])
    shares = _round_two(participants, package, secrets_)

    too_few = {i: shares[i] for i in (1, 2)}
    assert agg.aggregate(package, too_few).kind \
        is ErrorKind.PARTICIPANT_SET_MISMATCH

    outsider = dict(too_few)
    outsider[5] = SignatureShare(5, shares[3].scalar)
    result = agg.aggregate(package, outsider)
    assert result.kind is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert result.signers == (5,)


def test_lagrange_coefficient_result(keys):
    assert Aggregator.lagrange_coefficient(1, [1, 2, 3]).is_ok()
    missing = Aggregator.lagrange_coefficient(4, [1, 2, 3])
    assert missing.kind is ErrorKind.PARTICIPANT_SET_MISMATCH
    assert Aggregator.lagrange_coefficient(1, [1, 1, 2]).kind \
        is ErrorKind.INVALID_PARAMETERS


def test_unwrap_raises_threshold_error(keys, participants):
    package, secrets_ = _round_one(participants, [1, 2, 3])
    shares = shares_by_index(
        list(_round_two(participants, package, secrets_).values())[:2])
    with pytest.raises(ThresholdError) as info:
        _aggregator(keys).aggregate(package, shares).unwrap()
    assert info.value.kind is ErrorKind.PARTICIPANT_SET_MISMATCH


def test_signatures_over_different_subsets_differ(keys, participants):
    agg = _aggregator(keys)
    sigs = []
    for ids in ([1, 2, 3], [2, 4, 5]):
        package, secrets_ = _round_one(participants, ids)
        sigs.append(agg.aggregate(
            package, _round_two(participants, package, secrets_),
        ).unwrap().signature)
    assert sigs[0] != sigs[1]
