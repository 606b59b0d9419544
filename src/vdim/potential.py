from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from scipy.sparse import csr_matrix

from vdim.config import CorrectionOptions
from vdim.correction import CorrectionDiagnostics, vdim_correction
from vdim.operators import IntegralOperator, as_operator
from vdim.pde import AbstractPDE
from vdim.quadrature import Quadrature

Array = Any

__all__ = ["CorrectedVolumePotential", "correct_volume_potential"]


@dataclass(frozen=True)
class CorrectedVolumePotential:
    """Volume potential ``V`` together with its VDIM correction ``δV``.

    Parameters
    ----------
    V:
        Uncorrected operator handle.
    correction:
        Sparse additive correction.
    diagnostics:
        Condition number and counts collected while assembling ``correction``.
    metadata:
        Lightweight, JSON-serializable metadata about the run.
    """

    V: IntegralOperator
    correction: csr_matrix
    diagnostics: CorrectionDiagnostics
    metadata: Mapping[str, Any]

    @property
    def shape(self) -> tuple[int, int]:
        return tuple(self.V.shape)

    def apply(self, density: Array) -> np.ndarray:
        """Return ``(V + δV) @ density``."""
        density = np.asarray(density)
        out = np.zeros(self.V.shape[0], dtype=np.result_type(self.V.dtype, density.dtype, self.correction.dtype))
        self.V.mul_add(density, out)
        out += self.correction @ density
        return out

    def __call__(self, density: Array) -> np.ndarray:
        """Alias for :meth:`apply`."""
        return self.apply(density)


def correct_volume_potential(
    pde: AbstractPDE,
    target: Any,
    source: Quadrature,
    boundary: Quadrature,
    Sop: Any,
    Dop: Any,
    Vop: Any,
    *,
    options: CorrectionOptions | None = None,
) -> CorrectedVolumePotential:
    """Compute the VDIM correction of ``Vop`` and bundle it with the operator."""
    if options is None:
        options = CorrectionOptions()
    V = as_operator(Vop)
    dV, diagnostics = vdim_correction(
        pde,
        target,
        source,
        boundary,
        Sop,
        Dop,
        V,
        interpolation_order=options.interpolation_order,
        green_multiplier=options.green_multiplier,
        maxdist=options.maxdist,
        block_size=options.block_size,
        verbose=options.verbose,
        return_diagnostics=True,
    )
    metadata = {
        "pde": type(pde).__name__,
        "ambient_dimension": pde.ambient_dimension,
        "num_targets": int(dV.shape[0]),
        "num_sources": int(dV.shape[1]),
        "num_boundary": len(boundary),
        "options": options.to_dict(),
    }
    return CorrectedVolumePotential(V=V, correction=dV, diagnostics=diagnostics, metadata=metadata)
