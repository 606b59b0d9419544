from __future__ import annotations

import argparse

import numpy as np

from vdim import Laplace, Quadrature, correct_volume_potential, load_options
from vdim.config import CorrectionOptions
from vdim.kernels import double_layer_matrix, single_layer_matrix, volume_potential_matrix
from vdim.validation import summary_stats


def interval_quadrature(ne: int, q: int) -> Quadrature:
    x, w = np.polynomial.legendre.leggauss(q)
    breaks = np.linspace(0.0, 1.0, ne + 1)
    a, b = breaks[:-1], breaks[1:]
    return Quadrature(
        coords=(0.5 * (b - a)[:, None] * x[None, :] + 0.5 * (a + b)[:, None]).reshape(-1, 1),
        weights=(0.5 * (b - a)[:, None] * w[None, :]).reshape(-1),
        etype2qtags={"segment": np.arange(ne * q).reshape(ne, q)},
        etype2qorder={"segment": q - 1},
    )


def main() -> None:
    p = argparse.ArgumentParser(description="Naive vs VDIM-corrected volume potential on [0, 1].")
    p.add_argument("--config", default=None, help="TOML file with a [correction] table.")
    p.add_argument("--q", type=int, default=4, help="Gauss nodes per element.")
    args = p.parse_args()

    options = load_options(args.config) if args.config else CorrectionOptions()
    pde = Laplace(dim=1)
    Gamma = Quadrature(
        coords=np.array([[0.0], [1.0]]),
        weights=np.ones(2),
        normals=np.array([[-1.0], [1.0]]),
        etype2qtags={"point": np.array([[0], [1]])},
        etype2qorder={"point": 0},
    )
    for ne in (4, 8, 16, 32):
        Y = interval_quadrature(ne, args.q)
        x = Y.coords[:, 0]
        f = np.sin(2.0 * x)
        # V f solves -u'' = f; the constants follow from the integral at x = 0 and x = 1
        A = -(1.0 + np.cos(2.0)) / 4.0
        B = np.cos(2.0) / 4.0 - np.sin(2.0) / 8.0
        exact = np.sin(2.0 * x) / 4.0 + A * x + B
        S = single_layer_matrix(pde, Y, Gamma)
        D = double_layer_matrix(pde, Y, Gamma)
        V = volume_potential_matrix(pde, Y, Y)
        Vc = correct_volume_potential(pde, Y, Y, Gamma, S, D, V, options=options)
        naive = np.max(np.abs(V @ f - exact))
        stats = summary_stats(Vc(f) - exact)
        print(
            f"[DEMO] elements={ne:3d}  naive={naive:.3e}  corrected={stats['max']:.3e}  "
            f"rms={stats['rms']:.3e}  p95={stats['p95']:.3e}  "
            f"max cond={Vc.diagnostics.max_condition:.2e}"
        )


if __name__ == "__main__":
    main()
