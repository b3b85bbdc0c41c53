"""
Polynomial arithmetic and Lagrange interpolation over Z_L.

Shamir sharing of a secret  a_0:  sample  f(x) = a_0 + a_1 x + … + a_{t-1} x^{t-1}
and hand participant *i* the evaluation  f(i).  Any *t* evaluations
determine  f(0)  through Lagrange interpolation at zero:

    f(0) = Σ_{i ∈ S}  λ_i · f(i),     λ_i = Π_{j ∈ S, j ≠ i}  j / (j − i)

All arithmetic is exact in the scalar field — never floating point.

References
----------
- Shamir (1979). "How to Share a Secret."  CACM 22(11).
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .curve import Scalar
from .field import batch_inverse, product


# ── polynomial representation ───────────────────────────────────────────
#  coefficients[i] = a_i   so  f(x) = a_0 + a_1 x + a_2 x^2 + …


def sample_polynomial(
    degree: int,
    constant: Optional[Scalar] = None,
) -> List[Scalar]:
    """
    Sample a uniformly random polynomial of the given degree.

    Parameters
    ----------
    degree : int  (≥ 0)
        Polynomial degree  d;  result has  d+1  coefficients.
    constant : Scalar or None
        If given, force a_0 = constant (used to share a known secret).
    """
    if degree < 0:
        raise ValueError("degree must be ≥ 0")
    a0 = constant if constant is not None else Scalar.random()
    return [a0] + [Scalar.random() for _ in range(degree)]


def evaluate(coeffs: List[Scalar], x: Scalar) -> Scalar:
    """Evaluate f(x) via Horner's method — O(d) mults."""
    if not coeffs:
        return Scalar.zero()
    result = coeffs[-1]
    for c in reversed(coeffs[:-1]):
        result = result * x + c
    return result


# ── Lagrange coefficients ───────────────────────────────────────────────

def _check_signer_set(signer_ids: Sequence[int]) -> None:
    if len(set(signer_ids)) != len(signer_ids):
        raise ValueError("duplicate signer index in participant set")
    if any(sid <= 0 for sid in signer_ids):
        raise ValueError("signer indices must be positive")


def lagrange_coefficient(
    target_id: int,
    signer_ids: Sequence[int],
) -> Scalar:
    r"""
    Lagrange coefficient for participant *target_id* in set *S*,
    evaluated at zero:

    .. math::
        \lambda_i = \prod_{j \in S,\; j \ne i} \frac{j}{j - i}
    """
    _check_signer_set(signer_ids)
    if target_id not in signer_ids:
        raise ValueError(f"target_id {target_id} not in signer_ids")
    xi = Scalar(target_id)
    num = Scalar.one()
    den = Scalar.one()
    for sid in signer_ids:
        if sid == target_id:
            continue
        xj = Scalar(sid)
        num = num * xj
        den = den * (xj - xi)
    return num / den


def all_lagrange_coefficients(signer_ids: Sequence[int]) -> Dict[int, Scalar]:
    """
    λ_i for every member of *S* with one field inversion.

    Numerators share the full product  Π j, so  num_i = Π j / i.
    """
    _check_signer_set(signer_ids)
    ids = list(signer_ids)
    if not ids:
        return {}
    total = product([Scalar(j) for j in ids])
    dens: List[Scalar] = []
    for i in ids:
        xi = Scalar(i)
        # den_i = i · Π_{j≠i} (j − i)
        dens.append(xi * product([Scalar(j) - xi for j in ids if j != i]))
    inv = batch_inverse(dens)
    return {i: total * inv_i for i, inv_i in zip(ids, inv)}


def interpolate_at_zero(points: Dict[int, Scalar]) -> Scalar:
    """Recover f(0) from  {i: f(i)}  (used in tests and key recovery)."""
    lambdas = all_lagrange_coefficients(list(points))
    total = Scalar.zero()
    for i, y in points.items():
        total = total + lambdas[i] * y
    return total
