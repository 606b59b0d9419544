"""vdim: density interpolation corrections for volume potentials.

Primary user-facing API: :func:`vdim.vdim_correction` and
:func:`vdim.correct_volume_potential`.
"""

from __future__ import annotations

from ._version import __version__
from .errors import ElementTypeMismatch, InvalidMultiplier, InvalidOrder, UnsupportedPDE, VDIMError
from .pde import Helmholtz, Laplace, neumann_trace, polynomial_solution, register_polynomial_solver
from .polynomials import Polynomial
from .basis import PolynomialBasis, multi_indices, polynomial_solutions_vdim
from .quadrature import Quadrature
from .nearfield import etype_to_nearest_points
from .operators import DenseOperator, LinearOperatorAdapter, as_operator
from .multiplier import GENERIC_MULTIPLIERS, estimate_green_multiplier, snap_green_multiplier
from .auxiliary import vdim_auxiliary_quantities
from .correction import CorrectionDiagnostics, assemble_local_corrections, vdim_correction
from .config import CorrectionOptions, load_options
from .potential import CorrectedVolumePotential, correct_volume_potential

__all__ = [
    "__version__",
    "VDIMError",
    "UnsupportedPDE",
    "InvalidOrder",
    "InvalidMultiplier",
    "ElementTypeMismatch",
    "Laplace",
    "Helmholtz",
    "Polynomial",
    "polynomial_solution",
    "neumann_trace",
    "register_polynomial_solver",
    "PolynomialBasis",
    "multi_indices",
    "polynomial_solutions_vdim",
    "Quadrature",
    "etype_to_nearest_points",
    "DenseOperator",
    "LinearOperatorAdapter",
    "as_operator",
    "GENERIC_MULTIPLIERS",
    "estimate_green_multiplier",
    "snap_green_multiplier",
    "vdim_auxiliary_quantities",
    "CorrectionDiagnostics",
    "assemble_local_corrections",
    "vdim_correction",
    "CorrectionOptions",
    "load_options",
    "CorrectedVolumePotential",
    "correct_volume_potential",
]
