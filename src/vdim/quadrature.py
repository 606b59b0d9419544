from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np

Array = Any

__all__ = ["Quadrature", "target_coords"]


@dataclass(frozen=True)
class Quadrature:
    """Quadrature nodes grouped by element type.

    Parameters
    ----------
    coords:
        Node coordinates ``(n, N)``.
    weights:
        Quadrature weights ``(n,)``.
    etype2qtags:
        For each element type, an integer table ``(ne, nq)`` mapping
        ``(element, local node slot)`` to a global node index.
    etype2qorder:
        Quadrature order of each element type.
    normals:
        Outward unit normals ``(n, N)`` for boundary quadratures.
    """

    coords: np.ndarray
    weights: np.ndarray
    etype2qtags: Mapping[str, np.ndarray]
    etype2qorder: Mapping[str, int] = field(default_factory=dict)
    normals: np.ndarray | None = None

    def __post_init__(self) -> None:
        coords = np.atleast_2d(np.asarray(self.coords, dtype=float))
        weights = np.asarray(self.weights, dtype=float).reshape(-1)
        n = coords.shape[0]
        if weights.shape[0] != n:
            raise ValueError(f"weights has length {weights.shape[0]}, expected {n}")
        normals = None
        if self.normals is not None:
            normals = np.atleast_2d(np.asarray(self.normals, dtype=float))
            if normals.shape != coords.shape:
                raise ValueError(f"normals shape {normals.shape} does not match coords shape {coords.shape}")
        qtags = {str(E): np.atleast_2d(np.asarray(t, dtype=np.int64)) for E, t in self.etype2qtags.items()}
        seen = np.zeros(n, dtype=np.int64)
        for E, tags in qtags.items():
            if tags.size and (tags.min() < 0 or tags.max() >= n):
                raise ValueError(f"element type {E!r} references nodes outside [0, {n})")
            np.add.at(seen, tags.ravel(), 1)
        if np.any(seen != 1):
            raise ValueError("every quadrature node must belong to exactly one element slot")
        qorder = {str(E): int(q) for E, q in self.etype2qorder.items()}
        missing = set(qtags) - set(qorder)
        if missing:
            raise ValueError(f"missing quadrature order for element types {sorted(missing)}")
        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "weights", weights)
        object.__setattr__(self, "normals", normals)
        object.__setattr__(self, "etype2qtags", qtags)
        object.__setattr__(self, "etype2qorder", qorder)

    def __len__(self) -> int:
        return self.coords.shape[0]

    @property
    def ambient_dimension(self) -> int:
        return self.coords.shape[1]

    @property
    def qorder(self) -> int:
        """Largest quadrature order over all element types."""
        return max(self.etype2qorder.values())

    def element_nodes(self, etype: str, element: int) -> np.ndarray:
        """Global node indices of ``element`` of type ``etype``."""
        return self.etype2qtags[etype][element]


def target_coords(X: Any) -> np.ndarray:
    """Coordinates ``(m, N)`` of a target set (quadrature or point array)."""
    if isinstance(X, Quadrature):
        return X.coords
    return np.atleast_2d(np.asarray(X, dtype=float))
