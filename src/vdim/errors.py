from __future__ import annotations

__all__ = [
    "VDIMError",
    "UnsupportedPDE",
    "InvalidOrder",
    "InvalidMultiplier",
    "ElementTypeMismatch",
]


class VDIMError(Exception):
    """Base class for errors raised while building a VDIM correction."""


class UnsupportedPDE(VDIMError, TypeError):
    """No polynomial solver / trace is registered for the PDE type."""


class InvalidOrder(VDIMError, ValueError):
    """Interpolation order is negative or not an integer."""


class InvalidMultiplier(VDIMError, ValueError):
    """Green multiplier supplied by the caller is not a scalar."""


class ElementTypeMismatch(VDIMError, TypeError):
    """Operators disagree on their scalar or block element type."""
