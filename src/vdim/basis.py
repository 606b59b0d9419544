from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from numbers import Integral
from typing import Any

import numpy as np

from vdim.errors import InvalidOrder
from vdim.pde import AbstractPDE, NeumannTrace, neumann_trace, polynomial_solution
from vdim.polynomials import Polynomial

Array = Any

__all__ = ["PolynomialBasis", "multi_indices", "polynomial_solutions_vdim"]


def multi_indices(dim: int, order: int) -> list[tuple[int, ...]]:
    """All ``dim``-tuples of non-negative integers with total degree ``<= order``.

    Tuples are returned in lexicographic order.
    """
    return [I for I in product(range(order + 1), repeat=dim) if sum(I) <= order]


@dataclass(frozen=True)
class PolynomialBasis:
    """Monomials ``p_n``, particular solutions ``P_n`` and traces ``γ₁P_n``."""

    multi_indices: tuple[tuple[int, ...], ...]
    monomials: tuple[Polynomial, ...]
    solutions: tuple[Polynomial, ...]
    traces: tuple[NeumannTrace, ...]

    def __len__(self) -> int:
        return len(self.monomials)

    def evaluate_monomials(self, coords: Array) -> np.ndarray:
        X = np.atleast_2d(np.asarray(coords, dtype=float))
        return np.stack([p(X) for p in self.monomials], axis=1)

    def evaluate_solutions(self, coords: Array) -> np.ndarray:
        X = np.atleast_2d(np.asarray(coords, dtype=float))
        return np.stack([P(X) for P in self.solutions], axis=1)

    def evaluate_traces(self, coords: Array, normals: Array) -> np.ndarray:
        return np.stack([t(coords, normals) for t in self.traces], axis=1)


def polynomial_solutions_vdim(pde: AbstractPDE, order: int) -> PolynomialBasis:
    """Build the VDIM interpolation basis of ``pde`` up to total degree ``order``.

    For every monomial ``p_n`` of degree at most ``order`` compute ``P_n`` with
    ``L[P_n] = p_n`` and its generalized Neumann trace ``γ₁P_n``.

    Raises
    ------
    InvalidOrder
        If ``order`` is negative or not an integer.
    UnsupportedPDE
        If no polynomial solver is registered for ``type(pde)``.
    """
    if isinstance(order, bool) or not isinstance(order, Integral):
        raise InvalidOrder(f"interpolation order must be an integer; got {order!r}")
    if order < 0:
        raise InvalidOrder(f"interpolation order must be non-negative; got {order}")
    N = pde.ambient_dimension
    idxs = multi_indices(N, int(order))
    monomials, solutions, traces = [], [], []
    for I in idxs:
        p = Polynomial.monomial(I, 1.0)
        P = polynomial_solution(pde, p)
        monomials.append(p)
        solutions.append(P)
        traces.append(neumann_trace(pde, P))
    return PolynomialBasis(
        multi_indices=tuple(idxs),
        monomials=tuple(monomials),
        solutions=tuple(solutions),
        traces=tuple(traces),
    )
