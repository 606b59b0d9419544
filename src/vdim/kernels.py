from __future__ import annotations

from typing import Any

import numpy as np

from vdim.pde import AbstractPDE
from vdim.quadrature import Quadrature, target_coords

__all__ = ["single_layer_matrix", "double_layer_matrix", "volume_potential_matrix"]


def _pairwise(X: Any, Y: Quadrature) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    xs = target_coords(X)
    diff = xs[:, None, :] - Y.coords[None, :, :]
    r = np.sqrt(np.sum(diff * diff, axis=-1))
    mask = r > 0.0
    return diff, r, mask


def single_layer_matrix(pde: AbstractPDE, X: Any, boundary: Quadrature) -> np.ndarray:
    """Naive single-layer matrix ``G(x_i, y_j) w_j``; coincident pairs are zeroed."""
    _diff, r, mask = _pairwise(X, boundary)
    G = np.where(mask, pde.green(np.where(mask, r, 1.0)), 0.0)
    return G * boundary.weights[None, :]


def double_layer_matrix(pde: AbstractPDE, X: Any, boundary: Quadrature) -> np.ndarray:
    """Naive double-layer matrix ``∂G/∂n_y(x_i, y_j) w_j``; coincident pairs are zeroed."""
    if boundary.normals is None:
        raise ValueError("boundary quadrature must carry normals")
    diff, r, mask = _pairwise(X, boundary)
    r_safe = np.where(mask, r, 1.0)
    # ∇_y G(|x - y|) = G'(r) (y - x) / r
    ndot = -np.sum(diff * boundary.normals[None, :, :], axis=-1) / r_safe
    dG = np.where(mask, pde.green_derivative(r_safe) * ndot, 0.0)
    return dG * boundary.weights[None, :]


def volume_potential_matrix(pde: AbstractPDE, X: Any, source: Quadrature) -> np.ndarray:
    """Naive volume-potential matrix ``G(x_i, y_j) w_j``; coincident pairs are zeroed."""
    return single_layer_matrix(pde, X, source)
