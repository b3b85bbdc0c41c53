"""
Ed25519 group arithmetic via libsodium.

Point addition and scalar multiplication are delegated to libsodium's
``crypto_core_ed25519_*`` / ``crypto_scalarmult_ed25519_*`` primitives
through PyNaCl's low-level bindings.  Scalars are plain Python integers
modulo the prime subgroup order *L*; field operations on them are cheap
enough that C offers nothing here.

Encodings follow RFC 8032: scalars are 32-byte little-endian, points are
the 32-byte compressed Edwards encoding.

Install
-------
    pip install pynacl>=1.5.0

References
----------
- RFC 8032  Edwards-Curve Digital Signature Algorithm (EdDSA)
- RFC 9591  FROST, §6.5  FROST(Ed25519, SHA-512)
"""

from __future__ import annotations

import secrets
from typing import List

import nacl.bindings as _sodium

# ── Ed25519 constants ───────────────────────────────────────────────────
ORDER = 2**252 + 27742317777372353535851937790883648493
SCALAR_BYTES = 32
POINT_BYTES = 32

# neutral element (0, 1) in compressed form
_IDENTITY_BYTES = b"\x01" + b"\x00" * 31


# ── Scalar  (Z_L arithmetic, pure Python) ───────────────────────────────
class Scalar:
    """Element of the scalar field  Z_L  where *L* = ``ORDER``."""

    __slots__ = ("_v",)

    def __init__(self, value: int) -> None:
        self._v = value % ORDER

    # constructors -----------------------------------------------------------
    @classmethod
    def zero(cls) -> Scalar:
        return cls(0)

    @classmethod
    def one(cls) -> Scalar:
        return cls(1)

    @classmethod
    def random(cls) -> Scalar:
        """Uniform in [1, L-1] via rejection sampling."""
        while True:
            c = int.from_bytes(secrets.token_bytes(SCALAR_BYTES), "little")
            c &= (1 << 253) - 1
            if 0 < c < ORDER:
                return cls(c)

    @classmethod
    def from_bytes(cls, data: bytes) -> Scalar:
        """Strict decoding: exactly 32 bytes, canonical (< L)."""
        if len(data) != SCALAR_BYTES:
            raise ValueError(f"need {SCALAR_BYTES} bytes, got {len(data)}")
        v = int.from_bytes(data, "little")
        if v >= ORDER:
            raise ValueError("scalar out of range")
        return cls(v)

    @classmethod
    def from_bytes_reduce(cls, data: bytes) -> Scalar:
        """Hash-output safe: reduce arbitrary length modulo *L*."""
        return cls(int.from_bytes(data, "little"))

    # serialisation ----------------------------------------------------------
    def to_bytes(self) -> bytes:
        return self._v.to_bytes(SCALAR_BYTES, "little")

    @property
    def value(self) -> int:
        return self._v

    def is_zero(self) -> bool:
        return self._v == 0

    # arithmetic -------------------------------------------------------------
    def __add__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return Scalar(self._v + o._v)

    def __radd__(self, o):
        if isinstance(o, int) and o == 0:
            return self                       # for sum()
        return NotImplemented

    def __sub__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return Scalar(self._v - o._v)

    def __mul__(self, o):
        if isinstance(o, Scalar):
            return Scalar(self._v * o._v)
        if isinstance(o, Point):
            return o._smul(self)
        return NotImplemented

    def __rmul__(self, o):
        if isinstance(o, int):
            return Scalar(o * self._v)
        return NotImplemented

    def __neg__(self) -> Scalar:
        return Scalar(-self._v)

    def __truediv__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return self * o.inv()

    def inv(self) -> Scalar:
        """Multiplicative inverse via Fermat's little theorem."""
        if self._v == 0:
            raise ZeroDivisionError("cannot invert zero scalar")
        return Scalar(pow(self._v, ORDER - 2, ORDER))

    # comparison / hashing ---------------------------------------------------
    def __eq__(self, o: object) -> bool:
        if isinstance(o, Scalar):
            return self._v == o._v
        if isinstance(o, int):
            return self._v == o % ORDER
        return False

    def __hash__(self) -> int:
        return hash(self._v)

    def __bool__(self) -> bool:
        return self._v != 0

    def __repr__(self) -> str:
        h = hex(self._v)
        return f"Scalar(0x{h[2:10]}…)" if len(h) > 14 else f"Scalar({h})"


# ── Point  (Ed25519 group element via libsodium) ────────────────────────
class Point:
    """
    Point in the prime-order subgroup of edwards25519.

    Stored as its canonical 32-byte encoding.  libsodium refuses the
    neutral element as a scalar-multiplication input and output, so the
    identity is special-cased here rather than passed through.
    """

    __slots__ = ("_enc",)

    def __init__(self, encoding: bytes) -> None:
        self._enc = encoding

    # constructors -----------------------------------------------------------
    @classmethod
    def generator(cls) -> Point:
        """Standard base point *B*."""
        return cls(_sodium.crypto_scalarmult_ed25519_base_noclamp(
            Scalar.one().to_bytes()))

    @classmethod
    def identity(cls) -> Point:
        return cls(_IDENTITY_BYTES)

    @classmethod
    def from_bytes(cls, data: bytes) -> Point:
        """
        Decode a compressed point.

        Rejects non-canonical encodings, small-order points and points
        outside the prime-order subgroup (the identity is accepted).
        """
        if len(data) != POINT_BYTES:
            raise ValueError(f"need {POINT_BYTES} bytes, got {len(data)}")
        if data == _IDENTITY_BYTES:
            return cls.identity()
        if not _sodium.crypto_core_ed25519_is_valid_point(data):
            raise ValueError("invalid Ed25519 point encoding")
        return cls(bytes(data))

    # serialisation ----------------------------------------------------------
    def to_bytes(self) -> bytes:
        return self._enc

    def is_identity(self) -> bool:
        return self._enc == _IDENTITY_BYTES

    # group operations -------------------------------------------------------
    def _smul(self, s: Scalar) -> Point:
        """Scalar multiplication  s · self  (C speed)."""
        if self.is_identity() or s.is_zero():
            return Point.identity()
        return Point(_sodium.crypto_scalarmult_ed25519_noclamp(
            s.to_bytes(), self._enc))

    def __neg__(self) -> Point:
        if self.is_identity():
            return self
        return Point(_sodium.crypto_core_ed25519_sub(_IDENTITY_BYTES, self._enc))

    def __add__(self, o: Point) -> Point:
        if not isinstance(o, Point):
            return NotImplemented
        if self.is_identity():
            return o
        if o.is_identity():
            return self
        return Point(_sodium.crypto_core_ed25519_add(self._enc, o._enc))

    def __sub__(self, o: Point) -> Point:
        if not isinstance(o, Point):
            return NotImplemented
        if o.is_identity():
            return self
        if self.is_identity():
            return -o
        return Point(_sodium.crypto_core_ed25519_sub(self._enc, o._enc))

    def __rmul__(self, s) -> Point:
        if isinstance(s, Scalar):
            return self._smul(s)
        if isinstance(s, int):
            return self._smul(Scalar(s))
        return NotImplemented

    def __eq__(self, o: object) -> bool:
        if not isinstance(o, Point):
            return False
        return self._enc == o._enc

    def __hash__(self) -> int:
        return hash(self._enc)

    def __repr__(self) -> str:
        if self.is_identity():
            return "Point(O)"
        return f"Point({self._enc.hex()[:16]}…)"

    # utility ----------------------------------------------------------------
    @staticmethod
    def sum_points(points: List[Point]) -> Point:
        total = Point.identity()
        for p in points:
            total = total + p
        return total


# ── module-level generator ──────────────────────────────────────────────
G = Point.generator()
