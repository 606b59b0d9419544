from __future__ import annotations

from numbers import Complex, Number, Real
from typing import Any

import numpy as np

from vdim.errors import InvalidMultiplier
from vdim.quadrature import Quadrature, target_coords

__all__ = [
    "GENERIC_MULTIPLIERS",
    "estimate_green_multiplier",
    "snap_green_multiplier",
    "resolve_green_multiplier",
]

GENERIC_MULTIPLIERS = (-1.0, -0.5, 0.0, 0.5, 1.0)

_SPHERE_AREA = {1: 2.0, 2: 2.0 * np.pi, 3: 4.0 * np.pi}


def estimate_green_multiplier(x: Any, boundary: Quadrature) -> float:
    """Solid-angle estimate of the Green multiplier at ``x``.

    Applies the Laplace double-layer operator to the constant density 1:
    ``-1`` inside a closed boundary, ``0`` outside and ``-1/2`` on it.
    """
    if boundary.normals is None:
        raise ValueError("boundary quadrature must carry normals")
    x = np.asarray(x, dtype=float).reshape(-1)
    N = boundary.ambient_dimension
    if x.shape[0] != N:
        raise ValueError(f"point has {x.shape[0]} coordinates, boundary lives in {N}D")
    diff = x[None, :] - boundary.coords
    r = np.linalg.norm(diff, axis=1)
    mask = r > 0.0  # a coincident node contributes nothing on a smooth boundary
    ndot = np.sum(boundary.normals[mask] * diff[mask], axis=1)
    kernel = ndot / (_SPHERE_AREA[N] * r[mask] ** N)
    return float(np.sum(boundary.weights[mask] * kernel))


def snap_green_multiplier(value: Any) -> float:
    """Nearest value of :data:`GENERIC_MULTIPLIERS` to ``value``."""
    dist = [abs(value - s) for s in GENERIC_MULTIPLIERS]
    return GENERIC_MULTIPLIERS[int(np.argmin(dist))]


def resolve_green_multiplier(
    green_multiplier: Any,
    X: Any,
    boundary: Quadrature,
    *,
    verbose: bool = False,
) -> Any:
    """Return the caller's scalar multiplier, or estimate and snap one at ``X[0]``."""
    if green_multiplier is None:
        pts = target_coords(X)
        if pts.shape[0] == 0:
            raise ValueError("cannot estimate the Green multiplier without target points")
        raw = estimate_green_multiplier(pts[0], boundary)
        sigma = snap_green_multiplier(raw)
        if verbose:
            print(f"[SIGMA] estimated multiplier {raw:.6g} snapped to {sigma:g}")
        return sigma
    if np.ndim(green_multiplier) != 0:
        raise InvalidMultiplier(
            f"green_multiplier must be a scalar; got shape {np.shape(green_multiplier)}"
        )
    value = np.asarray(green_multiplier).item()
    if not isinstance(value, Number):
        raise InvalidMultiplier(f"green_multiplier must be a number; got {green_multiplier!r}")
    if isinstance(value, Complex) and not isinstance(value, Real):
        return complex(value)
    return float(value)
