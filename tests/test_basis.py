import os

os.environ.setdefault("JAX_ENABLE_X64", "1")

from math import comb

import numpy as np
import pytest

from vdim import InvalidOrder, UnsupportedPDE
from vdim.basis import multi_indices, polynomial_solutions_vdim
from vdim.pde import AbstractPDE, Helmholtz, Laplace
from vdim.validation import basis_consistency_error


def _require_x64() -> None:
    import jax

    try:
        jax.config.update("jax_enable_x64", True)
    except Exception:
        pass
    if not jax.config.jax_enable_x64:
        pytest.skip("JAX 64-bit mode is required for the consistency checks.")


@pytest.mark.parametrize("dim", [1, 2, 3])
@pytest.mark.parametrize("order", [0, 1, 2, 3, 4])
def test_basis_completeness(dim, order):
    basis = polynomial_solutions_vdim(Laplace(dim=dim), order)
    assert len(basis) == comb(order + dim, dim)
    assert len(basis.solutions) == len(basis.traces) == len(basis)
    expected = {I for I in np.ndindex(*(order + 1,) * dim) if sum(I) <= order}
    assert set(basis.multi_indices) == expected
    for I, p in zip(basis.multi_indices, basis.monomials):
        assert p.coefs == {I: 1.0}


def test_multi_indices_lexicographic():
    idxs = multi_indices(2, 2)
    assert idxs == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (2, 0)]
    assert idxs == sorted(idxs)


def test_invalid_order():
    with pytest.raises(InvalidOrder):
        polynomial_solutions_vdim(Laplace(dim=2), -1)
    with pytest.raises(InvalidOrder):
        polynomial_solutions_vdim(Laplace(dim=2), 1.5)
    # InvalidOrder is a ValueError
    with pytest.raises(ValueError):
        polynomial_solutions_vdim(Laplace(dim=2), -3)


def test_unsupported_pde():
    class _Stokes(AbstractPDE):
        dim = 2

    with pytest.raises(UnsupportedPDE):
        polynomial_solutions_vdim(_Stokes(), 2)


def test_evaluation_shapes():
    basis = polynomial_solutions_vdim(Helmholtz(dim=2, k=2.0), 2)
    rng = np.random.default_rng(0)
    X = rng.normal(size=(7, 2))
    Nrm = X / np.linalg.norm(X, axis=1, keepdims=True)
    assert basis.evaluate_monomials(X).shape == (7, 6)
    assert basis.evaluate_solutions(X).shape == (7, 6)
    assert basis.evaluate_traces(X, Nrm).shape == (7, 6)
    # constant monomial column
    np.testing.assert_allclose(basis.evaluate_monomials(X)[:, 0], 1.0)


@pytest.mark.parametrize(
    "pde, order",
    [(Laplace(dim=2), 4), (Laplace(dim=3), 3), (Helmholtz(dim=2, k=1.5), 3), (Helmholtz(dim=3, k=0.7), 2)],
)
def test_solution_consistency_autodiff(pde, order):
    _require_x64()
    basis = polynomial_solutions_vdim(pde, order)
    rng = np.random.default_rng(1)
    X = rng.uniform(-1.0, 1.0, size=(12, pde.ambient_dimension))
    err = basis_consistency_error(pde, basis, X)
    assert err.shape == (len(basis),)
    assert np.max(err) < 1e-9
