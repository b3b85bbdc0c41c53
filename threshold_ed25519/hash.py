"""
Domain-separated hash functions for FROST(Ed25519, SHA-512).

Follows the ciphersuite of RFC 9591 §6.5.  Every protocol hash except
the signature challenge is prefixed with the context string and a
per-role label, so outputs for different roles (binding, nonce,
message, commitment list, DKG proof) are independent even when fed
identical data:

    H_label(x) = SHA-512( "FROST-ED25519-SHA512-v1" ‖ label ‖ x )

The challenge H2 is the plain Ed25519 challenge  SHA-512(R ‖ A ‖ m),
which is what makes the aggregate a standard RFC 8032 signature.

Scalars are derived by little-endian reduction of the 64-byte digest.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Any

from .curve import Scalar, Point, SCALAR_BYTES


CONTEXT_STRING = b"FROST-ED25519-SHA512-v1"

# ── domain labels ───────────────────────────────────────────────────────
_LABEL_RHO   = b"rho"
_LABEL_NONCE = b"nonce"
_LABEL_MSG   = b"msg"
_LABEL_COM   = b"com"
_LABEL_DKG   = b"dkg"


# ── internal helpers ────────────────────────────────────────────────────
def _encode_item(item: Any) -> bytes:
    """
    Canonical encoding of a protocol element for hashing.

    Every element used here is fixed width (scalars, points, indices),
    except raw ``bytes`` which are appended verbatim; callers only pass
    a variable-length value in last position.
    """
    if isinstance(item, bytes):
        return item
    if isinstance(item, int):
        return Scalar(item).to_bytes()
    if isinstance(item, Scalar):
        return item.to_bytes()
    if isinstance(item, Point):
        return item.to_bytes()
    raise TypeError(f"cannot hash {type(item).__name__}")


def _labelled_hash(label: bytes, *args: Any) -> bytes:
    h = hashlib.sha512()
    h.update(CONTEXT_STRING)
    h.update(label)
    for a in args:
        h.update(_encode_item(a))
    return h.digest()


def _labelled_scalar(label: bytes, *args: Any) -> Scalar:
    return Scalar.from_bytes_reduce(_labelled_hash(label, *args))


# ── ciphersuite hash functions ──────────────────────────────────────────

def hash_binding(rho_input: bytes) -> Scalar:
    """H1: binding factor  ρ_i  from the per-signer binding input."""
    return _labelled_scalar(_LABEL_RHO, rho_input)


def hash_challenge(R: Point, pk: Point, message: bytes) -> Scalar:
    r"""
    H2: Ed25519 challenge  c = SHA-512(R ‖ A ‖ m)  mod L.

    No context prefix — identical to single-signer Ed25519.
    """
    h = hashlib.sha512()
    h.update(R.to_bytes())
    h.update(pk.to_bytes())
    h.update(message)
    return Scalar.from_bytes_reduce(h.digest())


def hash_message(message: bytes) -> bytes:
    """H4: message digest fed into the binding input."""
    return _labelled_hash(_LABEL_MSG, message)


def hash_commitment_list(encoded: bytes) -> bytes:
    """H5: digest of the encoded group commitment list."""
    return _labelled_hash(_LABEL_COM, encoded)


def nonce_generate(secret: Scalar) -> Scalar:
    """
    H3: hedged nonce derivation (RFC 9591 §4.1).

    Fresh randomness is mixed with the signer's secret share, so a
    broken RNG alone does not yield predictable nonces.
    """
    random_bytes = secrets.token_bytes(SCALAR_BYTES)
    return _labelled_scalar(_LABEL_NONCE, random_bytes, secret)


def hash_dkg_proof(participant_id: int, Y: Point, R: Point,
                   context: bytes = b"") -> Scalar:
    """Fiat-Shamir challenge for the DKG proof of knowledge."""
    return _labelled_scalar(_LABEL_DKG, participant_id, Y, R, context)


def message_digest(message: bytes) -> bytes:
    """SHA-256 digest carried in the ``SignerMessage`` wire frame."""
    return hashlib.sha256(message).digest()
