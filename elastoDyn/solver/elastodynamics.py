"""
Implicit linear elastodynamics solver.

Solves rho u'' - div sigma(u) = rho g with isotropic linear elasticity,
Newmark-beta time integration and Dirichlet, Neumann and paraxial
(absorbing) boundary conditions.

Initialization (once):
    1. Cell properties from the default material, then cell-group overrides
       (later groups win where groups overlap)
    2. Initial nodal conditions (U, V, A, F) on the previous-step fields
    3. Initial cell strain/stress
    4. Boundary condition flags, curves and paraxial faces

Each step (StepContext with time, dt, step index):
    1. Clear the matrix values, or rebuild the system structure every
       linop_nstep steps
    2. Impose Dirichlet values and tractions at the step time
    3. Assemble LHS and RHS, solve for the displacement
    4. Re-impose Dirichlet values on the solved field
    5. Newmark update of velocities and accelerations
    6. Synchronize nodal fields across partitions

Example:
    >>> from elastoDyn.io.config import load_config
    >>> from elastoDyn.solver.elastodynamics import ElastodynamicSolver
    >>> solver = ElastodynamicSolver(load_config("case.yaml"))
    >>> times = solver.run()
    >>> u = solver.nodes.displacement
"""

import logging
from typing import Optional

import numpy as np

from ..discretization.mesh import Mesh, build_mesh
from ..discretization.dof import NodeDofMap
from ..io.config import SimulationConfig, ConfigurationError
from ..io.curves import CurveCache
from ..material.elastic import ElasticType, convert_mapping
from .assembly import GlobalAssembler
from .base import TimeSteppingSolver, StepContext
from .boundary import NodalFields, CellFields, BoundaryConditionManager
from .dirichlet import make_enforcement
from .kernels import ElementKernel
from .linear_system import LinearSystem
from .newmark import NewmarkParameters, NewmarkIntegrator
from .parallel import ParallelManager, SerialParallelManager

logger = logging.getLogger(__name__)


class ElastodynamicSolver(TimeSteppingSolver):
    """
    Step orchestrator of an elastodynamic run.

    Attributes:
        config: Validated simulation configuration
        mesh: Analysis mesh (built from config.mesh when not given)
        dofs: DOF numbering
        nodes: Nodal fields
        cells: Cell properties
        system: Linear system, reused across steps
        linop_nstep_counter: Steps since the last structure rebuild
        keep_constop: True when the structure is never rebuilt
    """

    def __init__(self, config: SimulationConfig, mesh: Optional[Mesh] = None,
                 parallel: Optional[ParallelManager] = None,
                 curves: Optional[CurveCache] = None):
        config.validate()
        super().__init__(config.time.start, config.time.final, config.time.dt)
        self.config = config
        self.n_dim = config.n_dim
        self.parallel = parallel if parallel is not None else SerialParallelManager()

        if mesh is None:
            mesh = build_mesh(config.mesh.type, config.mesh.n, config.mesh.size)
        if mesh.dimension != self.n_dim:
            raise ConfigurationError(
                f"Mesh of dimension {mesh.dimension} used for a {self.n_dim}D analysis"
            )
        if mesh.rank != self.parallel.rank:
            raise ConfigurationError(
                f"Mesh partition of rank {mesh.rank} given to rank "
                f"{self.parallel.rank} of {self.parallel.size}"
            )
        self.mesh = mesh

        self.elastic_type = ElasticType.from_string(config.elastic_type)
        self.newmark = NewmarkParameters.from_config(config.newmark, config.alpha_method)
        self.integrator = NewmarkIntegrator(self.newmark, self.n_dim)
        self.enforcement = make_enforcement(config.dirichlet_method, config.penalty)

        order = config.gauss_nint if self.n_dim == 3 else config.gauss_nint[:2]
        self.kernel = ElementKernel(self.n_dim, order)
        self.dofs = NodeDofMap(mesh, self.n_dim)
        self.nodes = NodalFields.zeros(mesh.n_nodes)
        self.cells = CellFields.zeros(mesh.n_cells)
        self.boundary = BoundaryConditionManager(
            mesh, self.n_dim,
            dirichlet=config.dirichlet, neumann=config.neumann, paraxial=config.paraxial,
            curves=curves,
        )
        self.assembler = GlobalAssembler(
            mesh, self.dofs, self.kernel, self.nodes, self.cells, self.boundary,
            self.enforcement, self.newmark, gravity=config.gravity,
        )

        self.system = LinearSystem()
        self.linop_nstep = config.linop_nstep
        self.linop_nstep_counter = 0
        self.keep_constop = self.linop_nstep > self.n_planned_steps
        self.n_rebuilds = 0

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self) -> None:
        logger.info("Initializing %dD elastodynamic run: %d nodes, %d cells",
                    self.n_dim, self.mesh.n_nodes, self.mesh.n_cells)
        self._init_cells()
        self._apply_initial_node_conditions()
        self._apply_initial_cell_conditions()
        self.boundary.initialize(self.nodes, self.cells)

        self.system.reset()
        self.system.initialize(self.dofs.n_dof)
        self.linop_nstep_counter = 0

    def _init_cells(self) -> None:
        if self.config.material:
            props = convert_mapping(self.elastic_type, self.config.material)
            self.cells.assign(range(self.mesh.n_cells), props)
        elif not self.config.material_groups:
            raise ConfigurationError("No material defined: give 'material' or 'init-elast-properties'")

        for group in self.config.material_groups:
            props = convert_mapping(self.elastic_type, group.values)
            cell_ids = [cell.id for cell in self.mesh.cell_group(group.cell_group)]
            self.cells.assign(cell_ids, props)

        if np.any(self.cells.rho <= 0.0):
            missing = np.nonzero(self.cells.rho <= 0.0)[0]
            raise ConfigurationError(
                f"{len(missing)} cells have no elastic properties (first: cell {missing[0]})"
            )

    def _apply_initial_node_conditions(self) -> None:
        for condition in self.config.initial_nodes:
            node_ids = [node.id for node in self.mesh.node_group(condition.node_group)]
            if condition.acceleration is not None:
                self.nodes.prev_acceleration[node_ids] = condition.acceleration
            if condition.velocity is not None:
                self.nodes.prev_velocity[node_ids] = condition.velocity
            if condition.displacement is not None:
                self.nodes.prev_displacement[node_ids] = condition.displacement
            if condition.force is not None:
                self.nodes.force[node_ids] = condition.force
                self.nodes.imposed_force[node_ids, :self.n_dim] = True

        self.nodes.displacement[...] = self.nodes.prev_displacement
        self.nodes.velocity[...] = self.nodes.prev_velocity
        self.nodes.acceleration[...] = self.nodes.prev_acceleration

    def _apply_initial_cell_conditions(self) -> None:
        for condition in self.config.initial_cells:
            cell_ids = [cell.id for cell in self.mesh.cell_group(condition.cell_group)]
            if condition.dev_strain is not None:
                self.cells.strain_dev[cell_ids] = condition.dev_strain
            if condition.vol_strain is not None:
                self.cells.strain_vol[cell_ids] = condition.vol_strain
            if condition.dev_stress is not None:
                self.cells.stress_dev[cell_ids] = condition.dev_stress
            if condition.vol_stress is not None:
                self.cells.stress_vol[cell_ids] = condition.vol_stress

    # =========================================================================
    # Time step
    # =========================================================================

    def _prepare_system(self) -> None:
        """Keep the matrix structure, or rebuild it every linop_nstep steps."""
        if self.system.is_initialized and (
                self.linop_nstep_counter < self.linop_nstep or self.keep_constop):
            self.system.clear_values()
        else:
            self.system.reset()
            self.system.initialize(self.dofs.n_dof)
            self.linop_nstep_counter = 0
            self.n_rebuilds += 1

    def compute(self, context: StepContext) -> None:
        logger.info("Time (s) = %g", context.time)
        self.linop_nstep_counter += 1
        self._prepare_system()

        self.boundary.apply_dirichlet(self.nodes, context, self.newmark)
        self.boundary.apply_neumann(context)

        self.assembler.assemble_lhs(self.system, context)
        self.assembler.assemble_rhs(self.system, context)
        self._solve(context)

        self.integrator.update(self.nodes, context.dt)

        self.parallel.synchronize(self.nodes.displacement)
        self.parallel.synchronize(self.nodes.velocity)
        self.parallel.synchronize(self.nodes.acceleration)

    def _solve(self, context: StepContext) -> None:
        logger.info("Solving linear system")
        solution = self.system.solve()
        nd = self.n_dim

        for node in self.mesh.own_nodes():
            u = solution[self.dofs.node_dofs(node.id)]
            self.nodes.displacement[node.id, :nd] = u
            logger.debug("Node: %d U=%s", node.id, np.array2string(u))

        # The solve also moves constrained DOFs (penalty methods)
        self.boundary.apply_dirichlet(self.nodes, context, self.newmark)
