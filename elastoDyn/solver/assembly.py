"""
Global assembly of the step system.

For a Newmark step the unknown is the displacement d_{n+1} and the system

    (c_m M + c_k K + c1 Z) d_{n+1} = b

is assembled element by element, with Z the paraxial impedance of the
absorbing faces. For every owned DOF i without an imposed displacement,
the RHS collects

    b_i = sum_j M_ij (c_m u_pred_j - alpha_m a_n_j)      mass/predictor
        + int rho N_i g                                  gravity
        + F_i                                            imposed nodal force
        + t . (face measure / face nodes)                traction
        + [Z (c1 d_n + c2 a_n + c3 v_n)]_i               paraxial

and rows of imposed displacements are rewritten by the Dirichlet strategy
once everything else is in place.

Assembly loops over every cell and face of the partition (ghosts
included, so that rows of owned nodes are complete) and writes a row only
when the owned-DOF mask of the DOF map allows it. That mask is the single
ownership gate of all scatter paths.
"""

import logging

import numpy as np

from ..discretization.mesh import Mesh
from ..discretization.dof import NodeDofMap
from .base import StepContext
from .boundary import NodalFields, CellFields, BoundaryConditionManager
from .dirichlet import DirichletEnforcement
from .kernels import ElementKernel, compute_paraxial_load
from .linear_system import LinearSystem
from .newmark import NewmarkParameters

logger = logging.getLogger(__name__)


class GlobalAssembler:
    """
    Assembles the LHS matrix and RHS vector of a time step.

    Attributes:
        mesh: Analysis mesh
        dofs: DOF numbering and ownership
        kernel: Elemental operators
        nodes: Nodal fields
        cells: Cell properties
        boundary: Boundary conditions of the run
        enforcement: Dirichlet strategy
        newmark: Time integration parameters
        gravity: Body acceleration, shape (3,)
    """

    def __init__(self, mesh: Mesh, dofs: NodeDofMap, kernel: ElementKernel,
                 nodes: NodalFields, cells: CellFields,
                 boundary: BoundaryConditionManager,
                 enforcement: DirichletEnforcement,
                 newmark: NewmarkParameters,
                 gravity=(0.0, 0.0, 0.0)):
        self.mesh = mesh
        self.dofs = dofs
        self.kernel = kernel
        self.nodes = nodes
        self.cells = cells
        self.boundary = boundary
        self.enforcement = enforcement
        self.newmark = newmark
        self.gravity = np.asarray(gravity, dtype=np.float64)
        self.n_dim = dofs.n_dim

    def _free_dof_mask(self) -> np.ndarray:
        """Owned DOFs without an imposed displacement."""
        imposed = self.nodes.imposed_displacement[:, :self.n_dim].ravel()
        return self.dofs.owned_dof_mask & ~imposed

    def _scatter_matrix(self, system: LinearSystem, element_dofs: np.ndarray,
                        block: np.ndarray, owned: np.ndarray) -> None:
        keep = owned[element_dofs]
        if keep.any():
            system.matrix_add_block(element_dofs[keep], element_dofs, block[keep])

    def assemble_lhs(self, system: LinearSystem, context: StepContext) -> None:
        """Add c_m M + c_k K of every cell, then the paraxial LHS."""
        logger.info("Assembly of the FEM %dD bilinear operator (LHS - matrix A)", self.n_dim)
        coeffs = self.newmark.coefficients(context.dt)
        owned = self.dofs.owned_dof_mask

        for cell in self.mesh.cells:
            coords = self.mesh.item_coordinates(cell)
            Me = self.kernel.compute_element_mass(cell, coords, self.cells.rho[cell.id])
            Ke = self.kernel.compute_element_stiffness(
                cell, coords, self.cells.lame_lambda[cell.id], self.cells.lame_mu[cell.id])
            self._scatter_matrix(system, self.dofs.element_dofs(cell.node_ids),
                                 coeffs.cm * Me + coeffs.ck * Ke, owned)

        self.assemble_paraxial_lhs(system, context)

    def assemble_paraxial_lhs(self, system: LinearSystem, context: StepContext) -> None:
        coeffs = self.newmark.coefficients(context.dt)
        owned = self.dofs.owned_dof_mask
        for parax in self.boundary.paraxial_faces:
            face = self.mesh.faces[parax.face_id]
            Z = self.kernel.compute_paraxial_impedance(
                face, self.mesh.item_coordinates(face), parax.rho, parax.cp, parax.cs,
                parax.normal(self.n_dim))
            self._scatter_matrix(system, self.dofs.element_dofs(face.node_ids),
                                 coeffs.c1 * Z, owned)

    def assemble_rhs(self, system: LinearSystem, context: StepContext) -> None:
        """Fill the RHS, then rewrite Dirichlet rows."""
        logger.info("Assembly of the FEM %dD linear operator (RHS - vector B)", self.n_dim)
        nd = self.n_dim
        dt = context.dt
        coeffs = self.newmark.coefficients(dt)
        rhs = system.rhs
        rhs[:] = 0.0
        free = self._free_dof_mask()

        u_pred = self.newmark.predict_displacement(
            self.nodes.prev_displacement[:, :nd], self.nodes.prev_velocity[:, :nd],
            self.nodes.prev_acceleration[:, :nd], dt)
        inertia = (coeffs.cm * u_pred - self.newmark.alpha_m * self.nodes.prev_acceleration[:, :nd]).ravel()

        for cell in self.mesh.cells:
            coords = self.mesh.item_coordinates(cell)
            rho = self.cells.rho[cell.id]
            element_dofs = self.dofs.element_dofs(cell.node_ids)
            Me = self.kernel.compute_element_mass(cell, coords, rho)
            fe = Me @ inertia[element_dofs]
            if np.any(self.gravity[:nd] != 0.0):
                fe += self.kernel.compute_body_force(cell, coords, rho, self.gravity)
            keep = free[element_dofs]
            np.add.at(rhs, element_dofs[keep], fe[keep])

        # Imposed nodal forces, once per DOF
        force = np.where(self.nodes.imposed_force[:, :nd], self.nodes.force[:, :nd], 0.0).ravel()
        rhs[free] += force[free]

        self.add_traction(rhs, free)
        self.add_paraxial_rhs(rhs, free, context)
        self.apply_dirichlet(system)

    def add_traction(self, rhs: np.ndarray, free: np.ndarray) -> None:
        for face_id, traction in self.boundary.tractions.items():
            face = self.mesh.faces[face_id]
            element_dofs = self.dofs.element_dofs(face.node_ids)
            fe = self.kernel.compute_traction_load(face, self.mesh.item_coordinates(face), traction)
            keep = free[element_dofs]
            np.add.at(rhs, element_dofs[keep], fe[keep])

    def add_paraxial_rhs(self, rhs: np.ndarray, free: np.ndarray, context: StepContext) -> None:
        nd = self.n_dim
        coeffs = self.newmark.coefficients(context.dt)
        for parax in self.boundary.paraxial_faces:
            face = self.mesh.faces[parax.face_id]
            node_ids = list(face.node_ids)
            Z = self.kernel.compute_paraxial_impedance(
                face, self.mesh.item_coordinates(face), parax.rho, parax.cp, parax.cs,
                parax.normal(nd))
            fe = compute_paraxial_load(
                Z,
                self.nodes.prev_displacement[node_ids, :nd].ravel(),
                self.nodes.prev_velocity[node_ids, :nd].ravel(),
                self.nodes.prev_acceleration[node_ids, :nd].ravel(),
                coeffs.c1, coeffs.c2, coeffs.c3)
            element_dofs = self.dofs.element_dofs(face.node_ids)
            keep = free[element_dofs]
            np.add.at(rhs, element_dofs[keep], fe[keep])

    def apply_dirichlet(self, system: LinearSystem) -> None:
        """Rewrite the rows of owned DOFs with an imposed displacement."""
        logger.info("Applying Dirichlet boundary condition via %s method",
                    self.enforcement.method.value)
        for node_id, axis in self.boundary.dirichlet_dofs(self.nodes):
            self.enforcement.apply(system, self.dofs.dof_id(node_id, axis),
                                   self.nodes.displacement[node_id, axis])
