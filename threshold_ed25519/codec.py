"""
Canonical binary encoding of the protocol's wire messages.

Three message kinds cross the trust boundary between coordinator,
signers and the proving backend.  Each has a fixed layout — fixed field
order, fixed-width integers and byte arrays, no length prefixes — so
equal values always encode to identical bytes and distinct values never
collide:

    SignerMessage      signer_index u8 ‖ message_hash[32] ‖ nonce_commitment[32]   (65 B)
    SignerResponse     signer_index u8 ‖ signature_share[32] ‖ nonce_share[32]     (65 B)
    CombinedSignature  signature[64] ‖ public_key[32]                              (96 B)

Decoding never raises: malformed input yields ``Err(DECODE_ERROR)``,
so one bad frame cannot take the coordinator down.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Type, TypeVar, Union

from .errors import Err, ErrorKind, Ok, Result

_INDEX = struct.Struct(">B")

INDEX_BYTES = _INDEX.size
DIGEST_BYTES = 32
SIGNATURE_BYTES = 64
PUBLIC_KEY_BYTES = 32


def _check_index(value: int) -> None:
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"signer index must fit in one byte, got {value!r}")


def _check_bytes(name: str, value: bytes, size: int) -> None:
    if not isinstance(value, bytes) or len(value) != size:
        raise ValueError(f"{name} must be {size} bytes")


@dataclass(frozen=True)
class SignerMessage:
    """Coordinator → signer: round-2 request header."""

    signer_index: int
    message_hash: bytes          # SHA-256 of the message being signed
    nonce_commitment: bytes      # group commitment R the signer must reproduce

    SIZE = INDEX_BYTES + 2 * DIGEST_BYTES

    def __post_init__(self) -> None:
        _check_index(self.signer_index)
        _check_bytes("message_hash", self.message_hash, DIGEST_BYTES)
        _check_bytes("nonce_commitment", self.nonce_commitment, DIGEST_BYTES)

    def encode(self) -> bytes:
        return (_INDEX.pack(self.signer_index)
                + self.message_hash + self.nonce_commitment)

    @classmethod
    def decode(cls, data: bytes) -> Result[SignerMessage]:
        if len(data) != cls.SIZE:
            return Err(ErrorKind.DECODE_ERROR,
                       f"SignerMessage needs {cls.SIZE} bytes, got {len(data)}")
        (index,) = _INDEX.unpack_from(data, 0)
        body = data[INDEX_BYTES:]
        return Ok(cls(
            signer_index=index,
            message_hash=bytes(body[:DIGEST_BYTES]),
            nonce_commitment=bytes(body[DIGEST_BYTES:]),
        ))


@dataclass(frozen=True)
class SignerResponse:
    """Signer → coordinator: round-2 share plus the signer's nonce point."""

    signer_index: int
    signature_share: bytes       # z_i, little-endian scalar
    nonce_share: bytes           # R_i = D_i + ρ_i · E_i

    SIZE = INDEX_BYTES + 2 * DIGEST_BYTES

    def __post_init__(self) -> None:
        _check_index(self.signer_index)
        _check_bytes("signature_share", self.signature_share, DIGEST_BYTES)
        _check_bytes("nonce_share", self.nonce_share, DIGEST_BYTES)

    def encode(self) -> bytes:
        return (_INDEX.pack(self.signer_index)
                + self.signature_share + self.nonce_share)

    @classmethod
    def decode(cls, data: bytes) -> Result[SignerResponse]:
        if len(data) != cls.SIZE:
            return Err(ErrorKind.DECODE_ERROR,
                       f"SignerResponse needs {cls.SIZE} bytes, got {len(data)}")
        (index,) = _INDEX.unpack_from(data, 0)
        body = data[INDEX_BYTES:]
        return Ok(cls(
            signer_index=index,
            signature_share=bytes(body[:DIGEST_BYTES]),
            nonce_share=bytes(body[DIGEST_BYTES:]),
        ))


@dataclass(frozen=True)
class CombinedSignature:
    """Final artifact: standard Ed25519 signature plus the group key."""

    signature: bytes             # R ‖ s
    public_key: bytes

    SIZE = SIGNATURE_BYTES + PUBLIC_KEY_BYTES

    def __post_init__(self) -> None:
        _check_bytes("signature", self.signature, SIGNATURE_BYTES)
        _check_bytes("public_key", self.public_key, PUBLIC_KEY_BYTES)

    def encode(self) -> bytes:
        return self.signature + self.public_key

    @classmethod
    def decode(cls, data: bytes) -> Result[CombinedSignature]:
        if len(data) != cls.SIZE:
            return Err(ErrorKind.DECODE_ERROR,
                       f"CombinedSignature needs {cls.SIZE} bytes, "
                       f"got {len(data)}")
        return Ok(cls(
            signature=bytes(data[:SIGNATURE_BYTES]),
            public_key=bytes(data[SIGNATURE_BYTES:]),
        ))


WireMessage = Union[SignerMessage, SignerResponse, CombinedSignature]
M = TypeVar("M", SignerMessage, SignerResponse, CombinedSignature)


def encode(message: WireMessage) -> bytes:
    return message.encode()


def decode(kind: Type[M], data: bytes) -> Result[M]:
    """``decode(SignerResponse, frame)`` — dispatch on the expected kind."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return Err(ErrorKind.DECODE_ERROR,
                   f"expected bytes, got {type(data).__name__}")
    return kind.decode(bytes(data))
