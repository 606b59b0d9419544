from __future__ import annotations

from typing import Any

import numpy as np

from vdim.basis import PolynomialBasis
from vdim.operators import IntegralOperator, as_operator
from vdim.quadrature import Quadrature, target_coords

__all__ = ["vdim_auxiliary_quantities"]


def _check_shape(name: str, op: IntegralOperator, m: int, n: int) -> None:
    if tuple(op.shape) != (m, n):
        raise ValueError(f"operator {name} has shape {tuple(op.shape)}, expected {(m, n)}")


def vdim_auxiliary_quantities(
    basis: PolynomialBasis,
    X: Any,
    Y: Quadrature,
    boundary: Quadrature,
    sigma: Any,
    Sop: Any,
    Dop: Any,
    Vop: Any,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute the basis-at-source matrix ``b`` and the residual matrix ``Θ``.

    ``b[j, n] = p_n(y_j)`` and, column by column,
    ``Θ[:, n] = S γ₁P_n - D γ₀P_n - V p_n + σ P_n(X)``.
    ``Θ`` vanishes when ``S``, ``D`` and ``V`` are exact.
    """
    if boundary.normals is None:
        raise ValueError("boundary quadrature must carry normals")
    S, D, V = as_operator(Sop), as_operator(Dop), as_operator(Vop)
    xs = target_coords(X)
    m = xs.shape[0]
    _check_shape("S", S, m, len(boundary))
    _check_shape("D", D, m, len(boundary))
    _check_shape("V", V, m, len(Y))

    b = basis.evaluate_monomials(Y.coords)
    gamma0 = basis.evaluate_solutions(boundary.coords)
    gamma1 = basis.evaluate_traces(boundary.coords, boundary.normals)
    Px = basis.evaluate_solutions(xs)

    dtype = np.result_type(V.dtype, np.asarray(sigma).dtype, float)
    theta = np.zeros((m, len(basis)), dtype=dtype)
    for n in range(len(basis)):
        col = theta[:, n]
        S.mul_add(gamma1[:, n], col)
        D.mul_add(gamma0[:, n], col, -1)
        V.mul_add(b[:, n], col, -1)
        col += sigma * Px[:, n]
    return b, theta
