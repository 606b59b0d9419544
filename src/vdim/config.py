from __future__ import annotations

import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import numpy as np

__all__ = ["CorrectionOptions", "load_options"]


@dataclass(frozen=True)
class CorrectionOptions:
    interpolation_order: int | None = None  # None: maximum quadrature order of the source
    green_multiplier: float | None = None  # None: estimate and snap
    maxdist: float = np.inf
    block_size: int = 1
    verbose: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _load_config(path: str | Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_options(path: str | Path) -> CorrectionOptions:
    """Read :class:`CorrectionOptions` from the ``[correction]`` table of a TOML file."""
    cfg = _load_config(path).get("correction", {})
    known = {f.name for f in fields(CorrectionOptions)}
    unknown = set(cfg) - known
    if unknown:
        raise ValueError(f"Unknown correction options: {sorted(unknown)}")
    order = cfg.get("interpolation_order")
    sigma = cfg.get("green_multiplier")
    return CorrectionOptions(
        interpolation_order=None if order is None else int(order),
        green_multiplier=None if sigma is None else float(sigma),
        maxdist=float(cfg.get("maxdist", np.inf)),
        block_size=int(cfg.get("block_size", 1)),
        verbose=bool(cfg.get("verbose", False)),
    )
