from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
from scipy.special import hankel1

from vdim.errors import UnsupportedPDE
from vdim.polynomials import Polynomial

Array = Any

__all__ = [
    "AbstractPDE",
    "Laplace",
    "Helmholtz",
    "NeumannTrace",
    "register_polynomial_solver",
    "polynomial_solution",
    "neumann_trace",
]


class AbstractPDE:
    """Linear PDE ``L[u] = f`` with fundamental solution ``-L G = δ``."""

    dim: int

    @property
    def ambient_dimension(self) -> int:
        return int(self.dim)

    @property
    def block_size(self) -> int:
        """Number of unknowns per point (1 for scalar PDEs)."""
        return 1

    def green(self, r: Array) -> Array:
        raise NotImplementedError(f"green is not implemented for {type(self).__name__}")

    def green_derivative(self, r: Array) -> Array:
        raise NotImplementedError(f"green_derivative is not implemented for {type(self).__name__}")


def _check_dim(dim: int) -> None:
    if int(dim) not in (1, 2, 3):
        raise ValueError(f"dim must be 1, 2 or 3; got {dim!r}")


@dataclass(frozen=True)
class Laplace(AbstractPDE):
    """Laplace operator ``L = Δ`` in ``dim`` dimensions."""

    dim: int = 3

    def __post_init__(self) -> None:
        _check_dim(self.dim)

    def green(self, r: Array) -> Array:
        r = np.asarray(r, dtype=float)
        if self.dim == 1:
            return -0.5 * r
        if self.dim == 2:
            return -np.log(np.maximum(r, 1e-300)) / (2.0 * np.pi)
        return 1.0 / (4.0 * np.pi * np.maximum(r, 1e-300))

    def green_derivative(self, r: Array) -> Array:
        r = np.asarray(r, dtype=float)
        if self.dim == 1:
            return np.full_like(r, -0.5)
        if self.dim == 2:
            return -1.0 / (2.0 * np.pi * np.maximum(r, 1e-300))
        return -1.0 / (4.0 * np.pi * np.maximum(r, 1e-300) ** 2)


@dataclass(frozen=True)
class Helmholtz(AbstractPDE):
    """Helmholtz operator ``L = Δ + k²`` in ``dim`` dimensions."""

    dim: int = 3
    k: float = 1.0

    def __post_init__(self) -> None:
        _check_dim(self.dim)
        if not np.isfinite(self.k) or self.k == 0:
            raise ValueError(f"Helmholtz wavenumber must be finite and nonzero; got {self.k!r}")

    def green(self, r: Array) -> Array:
        r = np.asarray(r, dtype=float)
        k = self.k
        if self.dim == 1:
            return 1j / (2.0 * k) * np.exp(1j * k * r)
        if self.dim == 2:
            return 0.25j * hankel1(0, k * np.maximum(r, 1e-300))
        rs = np.maximum(r, 1e-300)
        return np.exp(1j * k * rs) / (4.0 * np.pi * rs)

    def green_derivative(self, r: Array) -> Array:
        r = np.asarray(r, dtype=float)
        k = self.k
        if self.dim == 1:
            return -0.5 * np.exp(1j * k * r)
        if self.dim == 2:
            return -0.25j * k * hankel1(1, k * np.maximum(r, 1e-300))
        rs = np.maximum(r, 1e-300)
        return np.exp(1j * k * rs) * (1j * k * rs - 1.0) / (4.0 * np.pi * rs**2)


@dataclass(frozen=True)
class NeumannTrace:
    """Generalized Neumann trace ``γ₁P(q) = n(q)·∇P(q)``."""

    gradient: tuple[Polynomial, ...]

    def __call__(self, coords: Array, normals: Array) -> Array:
        X = np.atleast_2d(np.asarray(coords, dtype=float))
        Nrm = np.atleast_2d(np.asarray(normals, dtype=float))
        if Nrm.shape != X.shape:
            raise ValueError(f"normals shape {Nrm.shape} does not match coords shape {X.shape}")
        out = Nrm[:, 0] * self.gradient[0](X)
        for d in range(1, len(self.gradient)):
            out = out + Nrm[:, d] * self.gradient[d](X)
        return out


# ----------------------------------------------------------------------------
# Polynomial solvers. Each PDE class registers a `solve(pde, p) -> P` with
# L[P] = p and a `trace(pde, P) -> NeumannTrace`.
# ----------------------------------------------------------------------------
_REGISTRY: dict[type, tuple[Callable, Callable]] = {}


def register_polynomial_solver(pde_type: type, solve: Callable, trace: Callable) -> None:
    """Register the polynomial solver and Neumann trace of a PDE class."""
    if not isinstance(pde_type, type):
        raise TypeError(f"pde_type must be a class; got {pde_type!r}")
    _REGISTRY[pde_type] = (solve, trace)


def _lookup(pde: AbstractPDE) -> tuple[Callable, Callable]:
    try:
        return _REGISTRY[type(pde)]
    except KeyError:
        raise UnsupportedPDE(f"No polynomial solver registered for {type(pde).__name__}") from None


def polynomial_solution(pde: AbstractPDE, p: Polynomial) -> Polynomial:
    """Return ``P`` with ``L[P] = p`` for the differential operator ``L`` of ``pde``."""
    solve, _ = _lookup(pde)
    if p.dim != pde.ambient_dimension:
        raise ValueError(f"Polynomial in {p.dim} variables for a {pde.ambient_dimension}D PDE")
    return solve(pde, p)


def neumann_trace(pde: AbstractPDE, P: Polynomial) -> NeumannTrace:
    _, trace = _lookup(pde)
    return trace(pde, P)


def _solve_laplace(pde: Laplace, p: Polynomial) -> Polynomial:
    # P = Σ_k (-1)^k (J Δ')^k J p, J = double antiderivative in x_0 and Δ' the
    # Laplacian in the remaining variables. Δ' lowers the degree in x_1..x_N,
    # so the series is finite.
    others = tuple(range(1, p.dim))

    def J(q: Polynomial) -> Polynomial:
        return q.antiderivative(0).antiderivative(0)

    term = J(p)
    P = term
    sign = 1.0
    while True:
        term = J(term.laplacian(others))
        if term.is_zero():
            break
        sign = -sign
        P = P + sign * term
    return P


def _solve_helmholtz(pde: Helmholtz, p: Polynomial) -> Polynomial:
    # P = Σ_j (-1)^j Δ^j p / k^(2j+2)
    k2 = float(pde.k) ** 2
    term = p / k2
    P = term
    sign = 1.0
    while True:
        term = term.laplacian() / k2
        if term.is_zero():
            break
        sign = -sign
        P = P + sign * term
    return P


def _normal_derivative(pde: AbstractPDE, P: Polynomial) -> NeumannTrace:
    return NeumannTrace(gradient=P.gradient())


register_polynomial_solver(Laplace, _solve_laplace, _normal_derivative)
register_polynomial_solver(Helmholtz, _solve_helmholtz, _normal_derivative)
