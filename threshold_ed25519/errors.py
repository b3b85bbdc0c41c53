"""
Tagged results for every fallible protocol operation.

Protocol failures are values, not exceptions: each operation returns
either ``Ok(value)`` or ``Err(kind, message, signers)``.  The caller
inspects ``is_ok()`` or calls ``unwrap()`` to turn an ``Err`` into a
``ThresholdError`` at the edge of the library.

Error kinds
-----------
INVALID_PARAMETERS        bad (t, n) at key generation — fix the config
INSUFFICIENT_SHARES       fewer than t contributions before the deadline
INVALID_SHARE             a share failed verification (carries indices)
NONCE_ALREADY_CONSUMED    a nonce secret was used or invalidated before
COMMITMENT_NOT_FOUND      signer's commitment missing from the package
PARTICIPANT_SET_MISMATCH  share set diverges from the frozen signer set
DECODE_ERROR              malformed or truncated wire bytes
AGGREGATION_MISMATCH      combined signature fails final verification
INVALID_STATE             session operation called in the wrong state
SESSION_ABORTED           session cancelled by the caller
SIGNER_UNREACHABLE        transport to one signer failed or timed out
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Tuple, TypeVar, Union

T = TypeVar("T")


class ErrorKind(Enum):
    INVALID_PARAMETERS = "invalid_parameters"
    INSUFFICIENT_SHARES = "insufficient_shares"
    INVALID_SHARE = "invalid_share"
    NONCE_ALREADY_CONSUMED = "nonce_already_consumed"
    COMMITMENT_NOT_FOUND = "commitment_not_found"
    PARTICIPANT_SET_MISMATCH = "participant_set_mismatch"
    DECODE_ERROR = "decode_error"
    AGGREGATION_MISMATCH = "aggregation_mismatch"
    INVALID_STATE = "invalid_state"
    SESSION_ABORTED = "session_aborted"
    SIGNER_UNREACHABLE = "signer_unreachable"


class ThresholdError(Exception):
    """Raised by ``Err.unwrap()``; wraps the originating ``Err``."""

    def __init__(self, err: Err) -> None:
        super().__init__(str(err))
        self.err = err

    @property
    def kind(self) -> ErrorKind:
        return self.err.kind

    @property
    def signers(self) -> Tuple[int, ...]:
        return self.err.signers


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""
    signers: Tuple[int, ...] = ()   # attributed signer indices, if any

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self):
        raise ThresholdError(self)

    def __str__(self) -> str:
        text = f"{self.kind.value}: {self.message}" if self.message \
            else self.kind.value
        if self.signers:
            text += f" (signers {list(self.signers)})"
        return text


Result = Union[Ok[T], Err]
