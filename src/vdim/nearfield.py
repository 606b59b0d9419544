from __future__ import annotations

from typing import Any

import numpy as np
from scipy.spatial import cKDTree

from vdim.quadrature import Quadrature, target_coords

__all__ = ["etype_to_nearest_points"]


def etype_to_nearest_points(
    X: Any,
    Y: Quadrature,
    *,
    maxdist: float = np.inf,
    verbose: bool = False,
) -> dict[str, list[np.ndarray]]:
    """For each element of ``Y``, the sorted indices of targets in ``X`` near it.

    A target is near the element owning the source node closest to it, provided
    that distance does not exceed ``maxdist``. When ``X is Y`` the near set of an
    element is simply its own nodes.
    """
    if X is Y:
        return {E: [np.sort(row) for row in tags] for E, tags in Y.etype2qtags.items()}

    pts = target_coords(X)
    if pts.shape[1] != Y.ambient_dimension:
        raise ValueError(f"targets live in {pts.shape[1]}D, sources in {Y.ambient_dimension}D")
    tree = cKDTree(Y.coords)
    dist, qtag = tree.query(pts, k=1)
    keep = dist <= maxdist
    targets = np.nonzero(keep)[0]
    owners = qtag[keep]

    # node -> targets whose nearest source node it is
    order = np.argsort(owners, kind="stable")
    owners = owners[order]
    targets = targets[order]
    starts = np.searchsorted(owners, np.arange(len(Y) + 1))

    out: dict[str, list[np.ndarray]] = {}
    for E, tags in Y.etype2qtags.items():
        near = []
        for nodes in tags:
            chunks = [targets[starts[j] : starts[j + 1]] for j in nodes]
            near.append(np.unique(np.concatenate(chunks)) if chunks else np.empty(0, dtype=np.int64))
        out[E] = near
    if verbose:
        print(f"[NEAR] {int(keep.sum())}/{pts.shape[0]} targets within maxdist={maxdist:g} of the source mesh")
    return out
