from __future__ import annotations

import pytest

from threshold_ed25519.keygen import generate
from threshold_ed25519.signing import SignerParticipant


class FakeClock:
    """Manually advanced monotonic clock for session deadlines."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def keys():
    """Fresh 3-of-5 trusted-dealer key set."""
    return generate(5, 3).unwrap()


@pytest.fixture
def participants(keys):
    return {
        i: SignerParticipant(share, keys.group_public_key)
        for i, share in keys.shares.items()
    }


@pytest.fixture
def clock():
    return FakeClock()
