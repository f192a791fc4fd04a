"""
elastoDyn - Implicit Finite-Element Elastodynamics

Linear elastic wave propagation in 2D (plane strain) and 3D solids, with
Newmark-beta implicit time integration on unstructured meshes of linear
Lagrange elements (triangles, quadrilaterals, tetrahedra, hexahedra).

Key modules:
- material: Conversions between (E, nu), (lambda, mu) and (vp, vs)
- discretization: Elements, meshes, shape functions, DOF numbering
- quadrature: Gauss-Legendre and simplex rules
- solver: Element kernels, assembly, Dirichlet strategies, Newmark update,
  boundary conditions and the time-stepping orchestrator
- io: YAML case files and time curves
- postprocess: VTK export

Quick start (YAML case):
    from elastoDyn.io.config import load_config
    from elastoDyn.solver.elastodynamics import ElastodynamicSolver

    solver = ElastodynamicSolver(load_config("case.yaml"))
    times = solver.run()

Quick start (Python):
    from elastoDyn.io.config import SimulationConfig
    from elastoDyn.solver.elastodynamics import ElastodynamicSolver

    config = SimulationConfig.from_dict({
        "mesh": {"type": "quad", "n": [10, 2], "size": [5.0, 1.0]},
        "analysis-type": "2D",
        "time": {"start": 0.0, "final": 0.1, "dt": 0.001},
        "elastic-type": "young",
        "material": {"rho": 2000.0, "young": 1.0e8, "nu": 0.25},
        "dirichlet-surface-conditions": [{"surface": "xmin", "Ux": 0.0, "Uy": 0.0}],
        "neumann-conditions": [{"surface": "xmax", "x-val": 1.0e3}],
    })
    solver = ElastodynamicSolver(config)
    solver.run()
    u = solver.nodes.displacement
"""

__version__ = "0.1.0"

# Core imports for convenience
from .material.elastic import ElasticType, ElasticProperties, convert
from .discretization.mesh import Mesh, build_mesh
from .io.config import SimulationConfig, ConfigurationError, load_config
from .solver.elastodynamics import ElastodynamicSolver
from .solver.kernels import DegenerateElementError
from .postprocess.vtk import export_vtk_unstructured
