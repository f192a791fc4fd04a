#!/usr/bin/env python3
"""
Example: P-wave pulse in a 2D bar with a reflecting or an absorbing end.

This example demonstrates:
1. Building a plane strain case in Python with SimulationConfig.from_dict
2. Loading one end of the bar with a traction pulse read from a curve file
3. Stepping the solver manually to record a displacement history
4. Comparing a free right end (the pulse reflects) with a paraxial
   absorbing right end (the pulse leaves the domain)

The problem:
    Bar [0, 50] x [0, 1], rollers on the top and bottom faces (Uy = 0),
    traction pulse t_x(t) on x = 0, right end free or absorbing.

With rollers the bar carries a one-dimensional wave at
cp = sqrt((lambda + 2 mu) / rho). After the pulse has reached the right
end, the free bar keeps its motion while the absorbing bar comes to rest.

Usage:
    python bar_wave_2d.py [--save]

Created: 2026-10-19
Author: elastoDyn developers
"""

import sys
import argparse
import os
from pathlib import Path

# Use Agg backend if --save is specified (non-interactive)
if '--save' in sys.argv:
    import matplotlib
    matplotlib.use('Agg')

# Add project root to path (two levels up from examples/src/)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import numpy as np

from elastoDyn.io.config import SimulationConfig
from elastoDyn.material.elastic import ElasticType, convert
from elastoDyn.postprocess.vtk import export_solver_state
from elastoDyn.solver.base import StepContext
from elastoDyn.solver.elastodynamics import ElastodynamicSolver

CASES_DIR = Path(__file__).parent.parent / "cases"

RHO = 2000.0
YOUNG = 1.0e8
NU = 0.25


def make_config(length: float, n_elements: int, final: float, dt: float,
                absorbing: bool) -> SimulationConfig:
    """Case dictionary of the bar, free or absorbing at x = length."""
    data = {
        "mesh": {"type": "quad", "n": [n_elements, 1], "size": [length, 1.0]},
        "analysis-type": "2D",
        "gauss-nint": [2, 2],
        "enforce-dirichlet-method": "RowColumnElimination",
        "linop-nstep": 10000,
        "time": {"start": 0.0, "final": final, "dt": dt},
        "elastic-type": "young",
        "material": {"rho": RHO, "young": YOUNG, "nu": NU},
        "dirichlet-surface-conditions": [
            {"surface": "ymin", "Uy": 0.0},
            {"surface": "ymax", "Uy": 0.0},
        ],
        "neumann-conditions": [{"surface": "xmin", "curve": "pulse.txt"}],
    }
    if absorbing:
        data["paraxial-conditions"] = [
            {"surface": "xmax", "rho": RHO, "E": YOUNG, "nu": NU},
        ]
    return SimulationConfig.from_dict(data, base_dir=CASES_DIR)


def simulate(config: SimulationConfig, station_x: float):
    """
    Run a case and record the x displacement at x = station_x.

    Returns:
        (solver, times, history) where history[k] is the mean x
        displacement of the station nodes after step k
    """
    solver = ElastodynamicSolver(config)
    solver.initialize()
    coords = solver.mesh.coordinates
    station = np.nonzero(np.isclose(coords[:, 0], station_x))[0]

    times = []
    history = []
    context = StepContext(time=solver.start, dt=solver.dt, step=0)
    while not solver.finished(context):
        context = solver.next_context(context)
        solver.compute(context)
        times.append(context.time)
        history.append(solver.nodes.displacement[station, 0].mean())

    return solver, np.array(times), np.array(history)


def run(length: float = 50.0,
        n_elements: int = 50,
        final: float = 0.35,
        dt: float = 0.002,
        export_vtk: bool = False,
        save_plot: bool = False,
        verbose: bool = True):
    """
    Run the bar with a free end and with an absorbing end.

    Parameters:
        length: Bar length
        n_elements: Number of elements along the bar
        final: Final time
        dt: Time step
        export_vtk: Whether to export the final states to VTK
        save_plot: Whether to save the displacement histories as a PNG figure
        verbose: Print progress information

    Returns:
        Dictionary with displacement histories and residual velocities
    """
    props = convert(ElasticType.YOUNG, RHO, YOUNG, NU)
    transit = length / props.vp

    if verbose:
        print("=" * 60)
        print("elastoDyn 2D Bar Wave Example")
        print("=" * 60)
        print(f"Bar: {length} x 1.0, {n_elements} elements")
        print(f"cp = {props.vp:.2f} m/s, transit time = {transit:.4f} s")
        print(f"Time: 0 -> {final}, dt = {dt}")
        print()

    # ==========================================================================
    # 1. Free right end
    # ==========================================================================
    if verbose:
        print("Running bar with a free right end...")

    free_solver, times, free_history = simulate(
        make_config(length, n_elements, final, dt, absorbing=False), station_x=length)

    if verbose:
        print(f"  Steps: {len(times)}")
        print(f"  Max end displacement: {np.abs(free_history).max():.6e}")
        print()

    # ==========================================================================
    # 2. Absorbing right end
    # ==========================================================================
    if verbose:
        print("Running bar with a paraxial right end...")

    absorbing_solver, _, absorbing_history = simulate(
        make_config(length, n_elements, final, dt, absorbing=True), station_x=length)

    if verbose:
        print(f"  Absorbing faces: {len(absorbing_solver.boundary.paraxial_faces)}")
        print(f"  Max end displacement: {np.abs(absorbing_history).max():.6e}")
        print()

    # ==========================================================================
    # 3. Compare residual motion
    # ==========================================================================
    free_residual = np.abs(free_solver.nodes.velocity[:, 0]).max()
    absorbing_residual = np.abs(absorbing_solver.nodes.velocity[:, 0]).max()

    if verbose:
        print("Residual motion at the final time...")
        print(f"  Free end:      max |vx| = {free_residual:.6e}")
        print(f"  Absorbing end: max |vx| = {absorbing_residual:.6e}")
        if free_residual > 0.0:
            print(f"  Ratio: {absorbing_residual / free_residual:.3f}")
        print()

    # ==========================================================================
    # 4. Export
    # ==========================================================================
    if export_vtk:
        out_dir = Path(__file__).parent
        export_solver_state(out_dir / "bar_free.vtk", free_solver)
        export_solver_state(out_dir / "bar_absorbing.vtk", absorbing_solver)
        if verbose:
            print("Exported bar_free.vtk and bar_absorbing.vtk")
            print()

    if save_plot:
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(8, 4))
        ax.plot(times, free_history, label="free end")
        ax.plot(times, absorbing_history, label="absorbing end")
        ax.axvline(transit, color="gray", linestyle="--", label="transit time")
        ax.set_xlabel("t (s)")
        ax.set_ylabel("u_x at x = L (m)")
        ax.legend()
        plt.tight_layout()
        fig.savefig(Path(__file__).parent / "bar_wave_2d.png", dpi=150, bbox_inches='tight')
        plt.close(fig)

    if verbose:
        print("=" * 60)

    return {
        'times': times,
        'free_history': free_history,
        'absorbing_history': absorbing_history,
        'free_residual': free_residual,
        'absorbing_residual': absorbing_residual,
        'transit_time': transit,
    }


def main():
    parser = argparse.ArgumentParser(description="P-wave pulse in a 2D bar")
    parser.add_argument("--n-elements", type=int, default=50,
                        help="Elements along the bar")
    parser.add_argument("--vtk", action="store_true",
                        help="Export final states to VTK")
    parser.add_argument("--save", action="store_true",
                        help="Save the displacement histories to bar_wave_2d.png")
    args = parser.parse_args()

    run(n_elements=args.n_elements, export_vtk=args.vtk, save_plot=args.save)


if __name__ == "__main__":
    main()
