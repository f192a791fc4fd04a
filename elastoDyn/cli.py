"""
Command-line entry point.

Usage::

    elastodyn -c case.yaml [--vtk out.vtk] [--log-level DEBUG]

Runs the case described by the YAML file until its final time and, when
an output path is given (on the command line or in the case file),
exports the final nodal fields to VTK.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .io.config import load_config, ConfigurationError
from .postprocess.vtk import export_solver_state
from .solver.elastodynamics import ElastodynamicSolver
from .solver.kernels import DegenerateElementError

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run the case and return the exit code."""
    ap = argparse.ArgumentParser(prog="elastodyn",
                                 description="Implicit finite-element elastodynamics")
    ap.add_argument("-c", "--config", required=True, help="YAML case file")
    ap.add_argument("--vtk", default=None, help="VTK output file for the final state")
    ap.add_argument("--log-level", default="INFO",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                    help="Logging level")
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    try:
        config = load_config(args.config)
        solver = ElastodynamicSolver(config)
        times = solver.run()
    except (ConfigurationError, DegenerateElementError, NotImplementedError, OSError) as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Completed %d steps, final time %g", len(times), times[-1] if times else solver.start)

    vtk_path = args.vtk or config.output.vtk
    if vtk_path:
        export_solver_state(vtk_path, solver)
    return 0


if __name__ == "__main__":
    sys.exit(main())
