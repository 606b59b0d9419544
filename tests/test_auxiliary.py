import numpy as np
import pytest

from vdim.auxiliary import vdim_auxiliary_quantities
from vdim.basis import polynomial_solutions_vdim
from vdim.kernels import double_layer_matrix, single_layer_matrix, volume_potential_matrix
from vdim.pde import Helmholtz, Laplace
from vdim.quadrature import Quadrature


def _interval_quadrature(breaks, q: int) -> Quadrature:
    x, w = np.polynomial.legendre.leggauss(q)
    breaks = np.asarray(breaks, dtype=float)
    a, b = breaks[:-1], breaks[1:]
    coords = (0.5 * (b - a)[:, None] * x[None, :] + 0.5 * (a + b)[:, None]).reshape(-1, 1)
    weights = (0.5 * (b - a)[:, None] * w[None, :]).reshape(-1)
    ne = len(a)
    return Quadrature(
        coords=coords,
        weights=weights,
        etype2qtags={"segment": np.arange(ne * q).reshape(ne, q)},
        etype2qorder={"segment": 2 * q - 1},
    )


def _interval_boundary(a: float, b: float) -> Quadrature:
    return Quadrature(
        coords=np.array([[a], [b]]),
        weights=np.ones(2),
        normals=np.array([[-1.0], [1.0]]),
        etype2qtags={"point": np.array([[0], [1]])},
        etype2qorder={"point": 0},
    )


def _exact_setup(pde, order, q):
    # Splitting the source mesh at every target makes the volume quadrature
    # exact (Laplace) or spectrally accurate (Helmholtz); in 1D the boundary
    # "integrals" are point evaluations, hence exact as well.
    a, b = -1.0, 2.0
    X = np.array([[-0.55], [0.1], [0.8], [1.45]])
    breaks = np.unique(np.concatenate([[a, b], X[:, 0], np.linspace(a, b, 7)]))
    Y = _interval_quadrature(breaks, q)
    Gamma = _interval_boundary(a, b)
    S = single_layer_matrix(pde, X, Gamma)
    D = double_layer_matrix(pde, X, Gamma)
    V = volume_potential_matrix(pde, X, Y)
    basis = polynomial_solutions_vdim(pde, order)
    return basis, X, Y, Gamma, S, D, V


@pytest.mark.parametrize("order", [0, 2, 4])
def test_theta_vanishes_for_exact_laplace_operators(order):
    pde = Laplace(dim=1)
    basis, X, Y, Gamma, S, D, V = _exact_setup(pde, order, q=order + 2)
    b, theta = vdim_auxiliary_quantities(basis, X, Y, Gamma, -1.0, S, D, V)
    assert b.shape == (len(Y), order + 1)
    assert theta.shape == (len(X), order + 1)
    assert np.max(np.abs(theta)) < 1e-12


def test_theta_vanishes_for_exact_helmholtz_operators():
    pde = Helmholtz(dim=1, k=1.3)
    basis, X, Y, Gamma, S, D, V = _exact_setup(pde, 3, q=16)
    b, theta = vdim_auxiliary_quantities(basis, X, Y, Gamma, -1.0, S, D, V)
    assert np.iscomplexobj(theta)
    assert np.max(np.abs(theta)) < 1e-11


def test_theta_matches_explicit_formula():
    rng = np.random.default_rng(0)
    pde = Laplace(dim=2)
    basis = polynomial_solutions_vdim(pde, 2)
    n_src, n_bdry = 9, 6
    Y = Quadrature(
        coords=rng.normal(size=(n_src, 2)),
        weights=np.ones(n_src),
        etype2qtags={"triangle": np.arange(n_src).reshape(3, 3)},
        etype2qorder={"triangle": 2},
    )
    t = 2.0 * np.pi * np.arange(n_bdry) / n_bdry
    Gamma = Quadrature(
        coords=np.stack([np.cos(t), np.sin(t)], axis=1),
        weights=np.full(n_bdry, 2.0 * np.pi / n_bdry),
        normals=np.stack([np.cos(t), np.sin(t)], axis=1),
        etype2qtags={"segment": np.arange(n_bdry).reshape(2, 3)},
        etype2qorder={"segment": 2},
    )
    X = rng.normal(size=(4, 2))
    S, D, V = rng.normal(size=(4, n_bdry)), rng.normal(size=(4, n_bdry)), rng.normal(size=(4, n_src))
    sigma = 0.5
    b, theta = vdim_auxiliary_quantities(basis, X, Y, Gamma, sigma, S, D, V)
    g0 = basis.evaluate_solutions(Gamma.coords)
    g1 = basis.evaluate_traces(Gamma.coords, Gamma.normals)
    ref = S @ g1 - D @ g0 - V @ b + sigma * basis.evaluate_solutions(X)
    np.testing.assert_allclose(theta, ref, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(b, basis.evaluate_monomials(Y.coords))


def test_operator_shape_mismatch():
    pde = Laplace(dim=1)
    basis, X, Y, Gamma, S, D, V = _exact_setup(pde, 1, q=2)
    with pytest.raises(ValueError):
        vdim_auxiliary_quantities(basis, X, Y, Gamma, -1.0, S, D, V[:, :-1])
    with pytest.raises(ValueError):
        vdim_auxiliary_quantities(basis, X, Y, Gamma, -1.0, S.T, D, V)
