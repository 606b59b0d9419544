from decimal import Decimal
from fractions import Fraction

import numpy as np
import pytest

from vdim import InvalidMultiplier
from vdim.multiplier import (
    GENERIC_MULTIPLIERS,
    estimate_green_multiplier,
    resolve_green_multiplier,
    snap_green_multiplier,
)
from vdim.quadrature import Quadrature


def _circle_quadrature(nel: int, nq: int, R: float = 1.0, dim: int = 2) -> Quadrature:
    n = nel * nq
    t = 2.0 * np.pi * np.arange(n) / n
    coords = R * np.stack([np.cos(t), np.sin(t)], axis=1)
    normals = np.stack([np.cos(t), np.sin(t)], axis=1)
    weights = np.full(n, 2.0 * np.pi * R / n)
    return Quadrature(
        coords=coords,
        weights=weights,
        normals=normals,
        etype2qtags={"segment": np.arange(n).reshape(nel, nq)},
        etype2qorder={"segment": nq - 1},
    )


def _sphere_quadrature(n_theta: int = 40, n_phi: int = 80) -> Quadrature:
    x, w = np.polynomial.legendre.leggauss(n_theta)
    phi = 2.0 * np.pi * np.arange(n_phi) / n_phi
    ct, P = np.meshgrid(x, phi, indexing="ij")
    st = np.sqrt(1.0 - ct**2)
    coords = np.stack([st * np.cos(P), st * np.sin(P), ct], axis=-1).reshape(-1, 3)
    weights = (w[:, None] * np.full(n_phi, 2.0 * np.pi / n_phi)[None, :]).reshape(-1)
    n = coords.shape[0]
    return Quadrature(
        coords=coords,
        weights=weights,
        normals=coords.copy(),
        etype2qtags={"patch": np.arange(n).reshape(n_theta, n_phi)},
        etype2qorder={"patch": 2 * n_theta - 1},
    )


def test_snap_to_generic_values():
    assert snap_green_multiplier(-0.93) == -1.0
    assert snap_green_multiplier(-0.48) == -0.5
    assert snap_green_multiplier(0.02) == 0.0
    assert snap_green_multiplier(0.26) == 0.5
    assert snap_green_multiplier(7.0) == 1.0
    # ties resolve towards the earlier generic value
    assert snap_green_multiplier(0.25) == 0.0
    for s in GENERIC_MULTIPLIERS:
        assert snap_green_multiplier(s) == s


def test_estimate_circle_interior_exterior_boundary():
    Gamma = _circle_quadrature(20, 3)
    assert estimate_green_multiplier([0.1, -0.2], Gamma) == pytest.approx(-1.0, abs=1e-8)
    assert estimate_green_multiplier([2.5, 0.3], Gamma) == pytest.approx(0.0, abs=1e-8)
    on = estimate_green_multiplier(Gamma.coords[7], Gamma)
    assert snap_green_multiplier(on) == -0.5


def test_estimate_sphere_interior():
    Gamma = _sphere_quadrature()
    assert estimate_green_multiplier([0.1, 0.2, -0.3], Gamma) == pytest.approx(-1.0, abs=1e-6)
    assert estimate_green_multiplier([0.0, 0.0, 3.0], Gamma) == pytest.approx(0.0, abs=1e-6)


def test_resolve_multiplier():
    Gamma = _circle_quadrature(10, 3)
    X = np.array([[0.0, 0.0], [5.0, 5.0]])
    # estimated at the first target only
    assert resolve_green_multiplier(None, X, Gamma) == -1.0
    assert resolve_green_multiplier(0.5, X, Gamma) == 0.5
    assert resolve_green_multiplier(np.float64(-0.5), X, Gamma) == -0.5
    assert resolve_green_multiplier(np.array(1.0), X, Gamma) == 1.0


def test_resolve_accepts_any_scalar_number():
    Gamma = _circle_quadrature(10, 3)
    X = np.array([[0.5, 0.0]])
    sigma = resolve_green_multiplier(Fraction(1, 2), X, Gamma)
    assert isinstance(sigma, float) and sigma == 0.5
    sigma = resolve_green_multiplier(Decimal("-0.5"), X, Gamma)
    assert isinstance(sigma, float) and sigma == -0.5
    assert resolve_green_multiplier(-1, X, Gamma) == -1.0
    sigma = resolve_green_multiplier(np.complex128(-1.0 + 0.0j), X, Gamma)
    assert isinstance(sigma, complex) and sigma == -1.0


def test_non_scalar_multiplier_rejected():
    Gamma = _circle_quadrature(10, 3)
    X = np.zeros((1, 2))
    with pytest.raises(InvalidMultiplier):
        resolve_green_multiplier(np.eye(2), X, Gamma)
    with pytest.raises(InvalidMultiplier):
        resolve_green_multiplier([1.0, 0.0], X, Gamma)
    with pytest.raises(InvalidMultiplier):
        resolve_green_multiplier("half", X, Gamma)


def test_estimate_requires_normals():
    Q = Quadrature(
        coords=np.zeros((1, 2)),
        weights=np.ones(1),
        etype2qtags={"point": np.array([[0]])},
        etype2qorder={"point": 0},
    )
    with pytest.raises(ValueError):
        estimate_green_multiplier([1.0, 1.0], Q)
