from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from scipy.sparse import spmatrix

from vdim.basis import PolynomialBasis
from vdim.pde import AbstractPDE, Helmholtz, Laplace

__all__ = ["basis_consistency_error", "reproduction_residual", "summary_stats"]


def _apply_operator_jax(pde: AbstractPDE, P, points: np.ndarray) -> np.ndarray:
    import jax
    import jax.numpy as jnp

    f = P.to_jax()

    def lap(x):
        return jnp.trace(jax.hessian(f)(x))

    X = jnp.asarray(points, dtype=jnp.float64)
    out = jax.vmap(lap)(X)
    if isinstance(pde, Helmholtz):
        out = out + pde.k**2 * jax.vmap(f)(X)
    elif not isinstance(pde, Laplace):
        raise NotImplementedError(f"No differential operator available for {type(pde).__name__}")
    return np.asarray(out)


def basis_consistency_error(pde: AbstractPDE, basis: PolynomialBasis, points: Any) -> np.ndarray:
    """Max over ``points`` of ``|L[P_n] - p_n|`` for every basis function.

    ``L`` is applied by automatic differentiation (``jax.hessian``).
    """
    import jax

    if not jax.config.jax_enable_x64:
        raise RuntimeError(
            "basis_consistency_error requires JAX 64-bit mode. Set `JAX_ENABLE_X64=1` "
            "or call `jax.config.update('jax_enable_x64', True)`."
        )
    X = np.atleast_2d(np.asarray(points, dtype=float))
    err = np.empty(len(basis))
    for n, (p, P) in enumerate(zip(basis.monomials, basis.solutions)):
        LP = _apply_operator_jax(pde, P, X)
        err[n] = float(np.max(np.abs(LP - p(X))))
    return err


def reproduction_residual(
    b: np.ndarray,
    theta: np.ndarray,
    correction: spmatrix,
    rows: Sequence[int] | None = None,
) -> np.ndarray:
    """``Θ - δV b``, optionally restricted to ``rows``.

    Rows whose targets are near a single element with a square, nonsingular
    local system vanish up to round-off.
    """
    res = theta - correction @ b
    if rows is not None:
        res = res[np.asarray(rows, dtype=np.int64)]
    return np.asarray(res)


def summary_stats(values: np.ndarray) -> dict[str, float]:
    """Compute summary statistics for a scalar field."""
    vals = np.abs(np.asarray(values)).ravel()
    return {
        "min": float(np.min(vals)),
        "median": float(np.median(vals)),
        "mean": float(np.mean(vals)),
        "p95": float(np.percentile(vals, 95.0)),
        "max": float(np.max(vals)),
        "rms": float(np.sqrt(np.mean(vals**2))),
    }
