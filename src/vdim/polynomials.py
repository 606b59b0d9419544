from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np

Array = Any

__all__ = ["Polynomial"]


def _clean(coefs: Mapping[tuple[int, ...], Any]) -> dict[tuple[int, ...], Any]:
    return {tuple(int(e) for e in k): v for k, v in coefs.items() if v != 0}


@dataclass(frozen=True)
class Polynomial:
    """Sparse multivariate polynomial ``Σ c_I x^I``.

    Parameters
    ----------
    dim:
        Number of variables.
    coefs:
        Mapping ``exponent tuple -> coefficient``. Zero coefficients are dropped.
    """

    dim: int
    coefs: dict[tuple[int, ...], Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        coefs = _clean(self.coefs)
        for I in coefs:
            if len(I) != self.dim or min(I, default=0) < 0:
                raise ValueError(f"Invalid exponent {I} for a polynomial in {self.dim} variables")
        object.__setattr__(self, "coefs", coefs)

    @classmethod
    def monomial(cls, exponent: tuple[int, ...], coef: Any = 1.0) -> "Polynomial":
        return cls(dim=len(exponent), coefs={tuple(exponent): coef})

    @classmethod
    def zero(cls, dim: int) -> "Polynomial":
        return cls(dim=dim)

    @property
    def degree(self) -> int:
        """Total degree; ``-1`` for the zero polynomial."""
        return max((sum(I) for I in self.coefs), default=-1)

    def is_zero(self) -> bool:
        return len(self.coefs) == 0

    # ------------------------------------------------------------------ algebra
    def __add__(self, other: "Polynomial") -> "Polynomial":
        if not isinstance(other, Polynomial):
            return NotImplemented
        if other.dim != self.dim:
            raise ValueError("Polynomials live in different dimensions")
        out = dict(self.coefs)
        for I, c in other.coefs.items():
            out[I] = out.get(I, 0) + c
        return Polynomial(self.dim, out)

    def __neg__(self) -> "Polynomial":
        return Polynomial(self.dim, {I: -c for I, c in self.coefs.items()})

    def __sub__(self, other: "Polynomial") -> "Polynomial":
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self + (-other)

    def __mul__(self, scalar: Any) -> "Polynomial":
        if isinstance(scalar, Polynomial):
            return NotImplemented
        return Polynomial(self.dim, {I: c * scalar for I, c in self.coefs.items()})

    __rmul__ = __mul__

    def __truediv__(self, scalar: Any) -> "Polynomial":
        return Polynomial(self.dim, {I: c / scalar for I, c in self.coefs.items()})

    # ---------------------------------------------------------------- calculus
    def derivative(self, axis: int) -> "Polynomial":
        out: dict[tuple[int, ...], Any] = {}
        for I, c in self.coefs.items():
            if I[axis] == 0:
                continue
            J = I[:axis] + (I[axis] - 1,) + I[axis + 1 :]
            out[J] = out.get(J, 0) + c * I[axis]
        return Polynomial(self.dim, out)

    def antiderivative(self, axis: int) -> "Polynomial":
        """Antiderivative in ``axis`` with zero integration constant."""
        out: dict[tuple[int, ...], Any] = {}
        for I, c in self.coefs.items():
            J = I[:axis] + (I[axis] + 1,) + I[axis + 1 :]
            out[J] = out.get(J, 0) + c / (I[axis] + 1)
        return Polynomial(self.dim, out)

    def gradient(self) -> tuple["Polynomial", ...]:
        return tuple(self.derivative(d) for d in range(self.dim))

    def laplacian(self, axes: tuple[int, ...] | None = None) -> "Polynomial":
        """Sum of second derivatives over ``axes`` (all axes by default)."""
        if axes is None:
            axes = tuple(range(self.dim))
        out = Polynomial.zero(self.dim)
        for d in axes:
            out = out + self.derivative(d).derivative(d)
        return out

    # -------------------------------------------------------------- evaluation
    def __call__(self, x: Array) -> Array:
        """Evaluate at a point ``(N,)`` or at a batch of points ``(n, N)``."""
        X = np.asarray(x, dtype=float)
        single = X.ndim == 1
        X = np.atleast_2d(X)
        if X.shape[1] != self.dim:
            raise ValueError(f"Expected points with {self.dim} coordinates, got shape {X.shape}")
        dtype = np.result_type(float, *self.coefs.values()) if self.coefs else float
        out = np.zeros(X.shape[0], dtype=dtype)
        for I, c in self.coefs.items():
            out += c * np.prod(X ** np.asarray(I, dtype=int)[None, :], axis=1)
        return out[0] if single else out

    def to_jax(self):
        """Return a jax-traceable evaluator ``f(x) -> scalar`` for a single point."""
        import jax.numpy as jnp

        terms = [(I, c) for I, c in self.coefs.items()]

        def f(x):
            acc = jnp.zeros((), dtype=x.dtype)
            for I, c in terms:
                mono = c
                for d, e in enumerate(I):
                    if e:
                        mono = mono * x[d] ** e
                acc = acc + mono
            return acc

        return f

    def __repr__(self) -> str:
        if not self.coefs:
            return f"Polynomial(dim={self.dim}, 0)"
        terms = " + ".join(f"{c:g}*x^{I}" for I, c in sorted(self.coefs.items()))
        return f"Polynomial(dim={self.dim}, {terms})"
