from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Sequence

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

from vdim.auxiliary import vdim_auxiliary_quantities
from vdim.basis import polynomial_solutions_vdim
from vdim.errors import ElementTypeMismatch
from vdim.multiplier import resolve_green_multiplier
from vdim.nearfield import etype_to_nearest_points
from vdim.operators import as_operator, check_operators
from vdim.pde import AbstractPDE
from vdim.quadrature import Quadrature, target_coords

__all__ = ["CorrectionDiagnostics", "assemble_local_corrections", "vdim_correction"]


@dataclass(frozen=True)
class CorrectionDiagnostics:
    """Observability data of a correction run.

    ``max_condition`` is the largest 2-norm condition number of the local
    Vandermonde matrices (``-inf`` if no element needed a correction). It is
    reported only and never changes the computation.
    """

    max_condition: float
    green_multiplier: Any
    interpolation_order: int
    nbasis: int
    elements_corrected: int
    local_solves: int
    nnz: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _near_targets(entry: Any) -> np.ndarray:
    if isinstance(entry, (set, frozenset)):
        return np.fromiter(sorted(entry), dtype=np.int64, count=len(entry))
    return np.asarray(entry, dtype=np.int64).reshape(-1)


def assemble_local_corrections(
    b: np.ndarray,
    theta: np.ndarray,
    source: Quadrature,
    near: Mapping[str, Sequence[np.ndarray]],
) -> tuple[csr_matrix, dict[str, Any]]:
    """Solve the per-element interpolation systems and assemble the sparse correction.

    For every element ``e`` with near targets, ``L = b[qtags[e], :]`` and the
    weights ``w`` of each near target ``i`` solve ``w L = Θ[i, :]`` in the
    least-squares sense. Weights are stored at ``(i, qtags[e][k])``; duplicate
    entries are summed.

    Each entry of ``near[E]`` is an integer array or a set of target indices.
    Sets are visited in ascending order; an array listing a target twice
    contributes its weights twice.
    """
    m, nbasis = theta.shape
    if b.shape != (len(source), nbasis):
        raise ValueError(f"b has shape {b.shape}, expected {(len(source), nbasis)}")
    Is: list[np.ndarray] = []
    Js: list[np.ndarray] = []
    Vs: list[np.ndarray] = []
    max_cond = -np.inf
    n_elements = 0
    n_solves = 0
    for E, qtags in source.etype2qtags.items():
        near_list = near[E]
        ne, nq = qtags.shape
        if len(near_list) != ne:
            raise ValueError(f"near-point map has {len(near_list)} entries for {ne} elements of type {E!r}")
        for n in range(ne):
            targets = _near_targets(near_list[n])
            if targets.size == 0:
                continue
            jglob = qtags[n]
            L = b[jglob, :]  # (nq, nbasis) local Vandermonde matrix
            max_cond = max(max_cond, float(np.linalg.cond(L)))
            # w L = Θ[i, :]  <=>  L^T w^T = Θ[i, :]^T, all near targets at once
            W, *_ = np.linalg.lstsq(L.T, theta[targets, :].T, rcond=None)
            Is.append(np.repeat(targets, nq))
            Js.append(np.tile(jglob, targets.size))
            Vs.append(W.T.reshape(-1))
            n_elements += 1
            n_solves += targets.size

    if Is:
        rows, cols, vals = np.concatenate(Is), np.concatenate(Js), np.concatenate(Vs)
    else:
        rows = cols = np.empty(0, dtype=np.int64)
        vals = np.empty(0, dtype=theta.dtype)
    dV = coo_matrix((vals, (rows, cols)), shape=(m, len(source)), dtype=theta.dtype).tocsr()
    stats = {"max_condition": max_cond, "elements_corrected": n_elements, "local_solves": n_solves}
    return dV, stats


def vdim_correction(
    pde: AbstractPDE,
    target: Any,
    source: Quadrature,
    boundary: Quadrature,
    Sop: Any,
    Dop: Any,
    Vop: Any,
    *,
    interpolation_order: int | None = None,
    green_multiplier: Any = None,
    maxdist: float = np.inf,
    block_size: int = 1,
    verbose: bool = False,
    return_diagnostics: bool = False,
) -> csr_matrix | tuple[csr_matrix, CorrectionDiagnostics]:
    """Density interpolation correction of a discretized volume potential.

    Parameters
    ----------
    pde:
        PDE descriptor (e.g. :class:`vdim.pde.Laplace`).
    target:
        Evaluation points, a :class:`Quadrature` or an ``(m, N)`` array.
    source, boundary:
        Volume and boundary quadratures.
    Sop, Dop, Vop:
        Single-layer (boundary -> target), double-layer (boundary -> target) and
        volume-potential (source -> target) operators. Arrays, scipy sparse
        matrices, LinearOperators or :class:`vdim.operators.IntegralOperator`.
    interpolation_order:
        Total degree of the polynomial basis; defaults to ``source.qorder``.
    green_multiplier:
        Scalar ``σ``. Estimated at the first target and snapped to
        ``{-1, -0.5, 0, 0.5, 1}`` when omitted.
    maxdist:
        Targets farther than this from every source node are not corrected.
    block_size:
        Number of unknowns per node expected in the operator element type.
    return_diagnostics:
        Also return a :class:`CorrectionDiagnostics`.

    Returns
    -------
    scipy.sparse.csr_matrix
        Additive correction ``δV`` of shape ``(#targets, #sources)``.
    """
    S, D, V = as_operator(Sop), as_operator(Dop), as_operator(Vop)
    check_operators(S, D, V, block_size=block_size)
    if int(block_size) != pde.block_size:
        raise ElementTypeMismatch(
            f"operators have block size {block_size} but {type(pde).__name__} has block size {pde.block_size}"
        )
    N = pde.ambient_dimension
    if source.ambient_dimension != N:
        raise ValueError("vdim only works for volume potentials: source and PDE dimensions differ")
    if boundary.ambient_dimension != N or target_coords(target).shape[1] != N:
        raise ValueError(f"target, source and boundary must all live in {N}D")

    if interpolation_order is None:
        interpolation_order = source.qorder
    basis = polynomial_solutions_vdim(pde, interpolation_order)
    sigma = resolve_green_multiplier(green_multiplier, target, boundary, verbose=verbose)

    near = etype_to_nearest_points(target, source, maxdist=maxdist, verbose=verbose)
    b, theta = vdim_auxiliary_quantities(basis, target, source, boundary, sigma, S, D, V)
    dV, stats = assemble_local_corrections(b, theta, source, near)

    if verbose:
        print(
            f"[VDIM] order={interpolation_order}, nbasis={len(basis)}, "
            f"elements corrected={stats['elements_corrected']}, nnz={dV.nnz}"
        )
        print(f"[VDIM] maximum condition encountered: {stats['max_condition']:.3e}")
    if not return_diagnostics:
        return dV
    diagnostics = CorrectionDiagnostics(
        max_condition=float(stats["max_condition"]),
        green_multiplier=sigma,
        interpolation_order=int(interpolation_order),
        nbasis=len(basis),
        elements_corrected=int(stats["elements_corrected"]),
        local_solves=int(stats["local_solves"]),
        nnz=int(dV.nnz),
    )
    return dV, diagnostics
