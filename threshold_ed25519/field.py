"""
Batch helpers over Z_L for Lagrange interpolation.

Computing all λ_i of a signer set needs one inverse per signer; with
Montgomery's trick those collapse into a single Fermat inversion.
Per-element arithmetic lives on ``Scalar`` in :pymod:`curve`.
"""

from __future__ import annotations

import operator
from itertools import accumulate
from typing import List, Sequence

from .curve import Scalar


def product(scalars: Sequence[Scalar]) -> Scalar:
    """Π scalars  (one for the empty sequence)."""
    total = Scalar.one()
    for s in scalars:
        total = total * s
    return total


def batch_inverse(scalars: Sequence[Scalar]) -> List[Scalar]:
    """
    Inverses of ``scalars`` with one field inversion.

    Raises ``ZeroDivisionError`` when any element is zero.
    """
    if not scalars:
        return []
    # running[k] = s_0 · … · s_k
    running = list(accumulate(scalars, operator.mul))
    acc = running[-1].inv()
    out: List[Scalar] = []
    for k in range(len(scalars) - 1, 0, -1):
        out.append(running[k - 1] * acc)
        acc = acc * scalars[k]
    out.append(acc)
    out.reverse()
    return out
