"""
Nodal and cell fields, and boundary condition management.

Fields:
- NodalFields: current and previous-step kinematics, nodal forces and
  the per-axis imposed masks, as (n_nodes, 3) arrays
- CellFields: elastic properties and initial strain/stress per cell
- ParaxialFace: absorbing boundary face with its medium and local frame

BoundaryConditionManager works in two phases:

1. initialize(): decide once, per node and axis, which quantities are
   imposed, load the curves and set up the paraxial faces.
   Surface conditions flag an axis when a constant is given for it or a
   curve is given and the axis is selected. Point conditions do the same
   and, in addition, flag the displacement of every axis whose
   acceleration, velocity or force is imposed, so that those nodes become
   Dirichlet DOFs. Surface conditions do not have this coupling.

2. apply_dirichlet() / apply_neumann(), every step: evaluate values at the
   step time (a curve, when present, replaces the constants) and write
   them on the flagged axes. For flagged displacements driven by an
   imposed acceleration or velocity, the value written is the displacement
   consistent with the Newmark relations.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, Iterator

import numpy as np

from ..discretization.mesh import Mesh
from ..discretization.geometry import face_frame, outward_normal
from ..io.config import DirichletConfig, NeumannConfig, ParaxialConfig
from ..io.curves import CurveCache, TimeCurve
from ..material.elastic import ElasticType, convert
from .base import StepContext
from .newmark import NewmarkParameters

logger = logging.getLogger(__name__)


@dataclass
class NodalFields:
    """
    Nodal variables, each of shape (n_nodes, 3).

    The third component is unused in 2D analyses.
    """
    displacement: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray
    prev_displacement: np.ndarray
    prev_velocity: np.ndarray
    prev_acceleration: np.ndarray
    force: np.ndarray
    imposed_displacement: np.ndarray
    imposed_velocity: np.ndarray
    imposed_acceleration: np.ndarray
    imposed_force: np.ndarray

    @classmethod
    def zeros(cls, n_nodes: int) -> 'NodalFields':
        def real():
            return np.zeros((n_nodes, 3))

        def flag():
            return np.zeros((n_nodes, 3), dtype=bool)

        return cls(
            displacement=real(), velocity=real(), acceleration=real(),
            prev_displacement=real(), prev_velocity=real(), prev_acceleration=real(),
            force=real(),
            imposed_displacement=flag(), imposed_velocity=flag(),
            imposed_acceleration=flag(), imposed_force=flag(),
        )

    @property
    def n_nodes(self) -> int:
        return self.displacement.shape[0]

    def carry_forward(self) -> None:
        """Make the current fields the previous-step fields."""
        self.prev_displacement[...] = self.displacement
        self.prev_velocity[...] = self.velocity
        self.prev_acceleration[...] = self.acceleration


@dataclass
class CellFields:
    """Per-cell material properties and initial strain/stress state."""
    rho: np.ndarray
    young: np.ndarray
    nu: np.ndarray
    lame_lambda: np.ndarray
    lame_mu: np.ndarray
    vp: np.ndarray
    vs: np.ndarray
    strain_dev: np.ndarray
    strain_vol: np.ndarray
    stress_dev: np.ndarray
    stress_vol: np.ndarray

    @classmethod
    def zeros(cls, n_cells: int) -> 'CellFields':
        return cls(*(np.zeros(n_cells) for _ in range(11)))

    def assign(self, cell_ids, props) -> None:
        """Set the elastic properties (ElasticProperties) of some cells."""
        cell_ids = np.asarray(cell_ids, dtype=int)
        self.rho[cell_ids] = props.rho
        self.young[cell_ids] = props.young
        self.nu[cell_ids] = props.nu
        self.lame_lambda[cell_ids] = props.lame_lambda
        self.lame_mu[cell_ids] = props.lame_mu
        self.vp[cell_ids] = props.vp
        self.vs[cell_ids] = props.vs


@dataclass
class ParaxialFace:
    """
    Boundary face carrying an absorbing condition.

    Attributes:
        face_id: Mesh face ID
        rho: Density of the outer medium
        cp, cs: Wave speeds of the outer medium
        frame: Local orthonormal frame (e1, e2, e3)
    """
    face_id: int
    rho: float
    cp: float
    cs: float
    frame: Tuple[np.ndarray, np.ndarray, np.ndarray]

    def normal(self, n_dim: int) -> np.ndarray:
        """Outward unit normal."""
        return outward_normal(self.frame, n_dim)


@dataclass
class _Quantity:
    """One imposed quantity (U, V, A or F) of a Dirichlet condition."""
    constants: Tuple[Optional[float], Optional[float], Optional[float]]
    curve: Optional[TimeCurve]
    axes: Tuple[bool, bool, bool]

    @property
    def is_imposed(self) -> bool:
        return self.curve is not None or any(c is not None for c in self.constants)

    def flags(self) -> np.ndarray:
        return np.array([
            self.constants[k] is not None or (self.curve is not None and self.axes[k])
            for k in range(3)
        ])

    def value(self, time: float) -> np.ndarray:
        if self.curve is not None:
            return self.curve.value(time)
        return np.array([0.0 if c is None else c for c in self.constants])


@dataclass
class _DirichletCondition:
    config: DirichletConfig
    node_ids: np.ndarray
    quantities: Dict[str, _Quantity] = field(default_factory=dict)


class BoundaryConditionManager:
    """
    Imposed kinematics, forces, tractions and absorbing faces.

    Attributes:
        mesh: Analysis mesh
        n_dim: Analysis dimension
        tractions: Face ID -> imposed traction of the current step
        paraxial_faces: Absorbing faces, set up by initialize()
    """

    def __init__(self, mesh: Mesh, n_dim: int,
                 dirichlet: List[DirichletConfig] = (),
                 neumann: List[NeumannConfig] = (),
                 paraxial: List[ParaxialConfig] = (),
                 curves: Optional[CurveCache] = None):
        self.mesh = mesh
        self.n_dim = n_dim
        self.dirichlet_configs = list(dirichlet)
        self.neumann_configs = list(neumann)
        self.paraxial_configs = list(paraxial)
        self.curves = curves if curves is not None else CurveCache(n_components=3)

        self.tractions: Dict[int, np.ndarray] = {}
        self.paraxial_faces: List[ParaxialFace] = []
        self._conditions: List[_DirichletCondition] = []
        self._neumann: List[Tuple[NeumannConfig, Optional[TimeCurve]]] = []

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self, fields: NodalFields, cells: 'CellFields') -> None:
        """
        Set imposed flags, load curves and build the paraxial faces.

        Parameters:
            fields: Nodal fields whose imposed masks are set
            cells: Cell properties, used by paraxial faces without their
                own medium description
        """
        self._conditions = []
        for config in self.dirichlet_configs:
            condition = self._make_condition(config)
            self._conditions.append(condition)
            self._set_flags(condition, fields)

        self._neumann = [
            (config, self.curves.get(config.curve) if config.curve is not None else None)
            for config in self.neumann_configs
        ]

        self.paraxial_faces = []
        for config in self.paraxial_configs:
            self.paraxial_faces.extend(self._make_paraxial_faces(config, cells))

    def _make_condition(self, config: DirichletConfig) -> _DirichletCondition:
        if config.on_points:
            node_ids = np.array([node.id for node in self.mesh.node_group(config.target)], dtype=int)
        else:
            node_ids = np.array(self.mesh.face_group_nodes(config.target), dtype=int)

        condition = _DirichletCondition(config=config, node_ids=node_ids)
        for name, constants, curve_path in (
                ("displacement", config.displacement, config.displacement_curve),
                ("velocity", config.velocity, config.velocity_curve),
                ("acceleration", config.acceleration, config.acceleration_curve),
                ("force", config.force, config.force_curve)):
            curve = self.curves.get(curve_path) if curve_path is not None else None
            condition.quantities[name] = _Quantity(constants, curve, config.axes)
        return condition

    def _set_flags(self, condition: _DirichletCondition, fields: NodalFields) -> None:
        nodes = condition.node_ids
        q = condition.quantities
        displ = q["displacement"].flags()
        acc = q["acceleration"].flags()
        vel = q["velocity"].flags()
        force = q["force"].flags()

        fields.imposed_acceleration[nodes] |= acc
        fields.imposed_velocity[nodes] |= vel
        fields.imposed_force[nodes] |= force

        if condition.config.on_points:
            fields.imposed_displacement[nodes] |= acc | vel | force | displ
        else:
            fields.imposed_displacement[nodes] |= displ

    def _make_paraxial_faces(self, config: ParaxialConfig,
                             cells: 'CellFields') -> List[ParaxialFace]:
        medium = self._paraxial_medium(config)
        if medium is None:
            logger.warning(
                "Elastic properties expected for paraxial condition on %s: "
                "(E, nu), (lambda, mu) or (cp, cs) with rho; "
                "taking elastic properties from the inner domain", config.surface)

        faces = []
        for face in self.mesh.face_group(config.surface):
            if not face.is_boundary:
                continue
            cell = self.mesh.cells[face.boundary_cell]
            centroid = self.mesh.item_coordinates(cell).mean(axis=0)
            frame = face_frame(self.mesh.item_coordinates(face), centroid, self.n_dim)

            if medium is None:
                rho, cp, cs = cells.rho[cell.id], cells.vp[cell.id], cells.vs[cell.id]
            else:
                rho, cp, cs = medium
            faces.append(ParaxialFace(face_id=face.id, rho=float(rho),
                                      cp=float(cp), cs=float(cs), frame=frame))
        return faces

    @staticmethod
    def _paraxial_medium(config: ParaxialConfig) -> Optional[Tuple[float, float, float]]:
        """(rho, cp, cs) of the outer medium, or None if not fully given."""
        if config.rho is None:
            return None
        if config.young is not None and config.nu is not None:
            props = convert(ElasticType.YOUNG, config.rho, young=config.young, nu=config.nu)
        elif config.cp is not None and config.cs is not None:
            return config.rho, config.cp, config.cs
        elif config.lame_lambda is not None and config.lame_mu is not None:
            props = convert(ElasticType.LAME, config.rho,
                            lame_lambda=config.lame_lambda, lame_mu=config.lame_mu)
        else:
            return None
        return props.rho, props.vp, props.vs

    # =========================================================================
    # Per-step evaluation
    # =========================================================================

    def apply_dirichlet(self, fields: NodalFields, context: StepContext,
                        newmark: NewmarkParameters) -> None:
        """
        Write imposed values at the step time on the flagged axes.

        Acceleration, velocity and force are written first. Flagged
        displacements of axes with an imposed acceleration (else velocity)
        then receive the Newmark-consistent displacement, and explicit
        displacement values are written last.
        """
        for condition in self._conditions:
            nodes = condition.node_ids
            q = condition.quantities

            for name, target in (("acceleration", fields.acceleration),
                                 ("velocity", fields.velocity),
                                 ("force", fields.force)):
                if q[name].is_imposed:
                    value = q[name].value(context.time)
                    target[nodes] = np.where(q[name].flags(), value, target[nodes])

            if q["acceleration"].is_imposed or q["velocity"].is_imposed:
                self._consistent_displacement(fields, nodes, context.dt, newmark)

            if q["displacement"].is_imposed:
                value = q["displacement"].value(context.time)
                mask = fields.imposed_displacement[nodes]
                explicit = q["displacement"].flags()
                fields.displacement[nodes] = np.where(mask & explicit, value, fields.displacement[nodes])

    @staticmethod
    def _consistent_displacement(fields: NodalFields, nodes: np.ndarray, dt: float,
                                 newmark: NewmarkParameters) -> None:
        dn = fields.prev_displacement[nodes]
        vn = fields.prev_velocity[nodes]
        an = fields.prev_acceleration[nodes]
        u_pred = newmark.predict_displacement(dn, vn, an, dt)
        v_pred = newmark.predict_velocity(vn, an, dt)

        ba = fields.imposed_acceleration[nodes]
        bv = fields.imposed_velocity[nodes] & ~ba
        acc = np.where(ba, fields.acceleration[nodes],
                       (fields.velocity[nodes] - v_pred) / (newmark.gamma * dt))
        target = fields.imposed_displacement[nodes] & (ba | bv)
        fields.displacement[nodes] = np.where(
            target, u_pred + newmark.beta * dt * dt * acc, fields.displacement[nodes])

    def apply_neumann(self, context: StepContext) -> None:
        """Evaluate the traction of every Neumann face at the step time."""
        self.tractions = {}
        for config, curve in self._neumann:
            if curve is not None:
                traction = curve.value(context.time)
            else:
                traction = np.array([0.0 if v is None else v for v in config.value])
            for face in self.mesh.face_group(config.surface):
                self.tractions[face.id] = traction

    def dirichlet_dofs(self, fields: NodalFields) -> Iterator[Tuple[int, int]]:
        """(node_id, axis) pairs of owned nodes with an imposed displacement."""
        for node in self.mesh.own_nodes():
            for axis in range(self.n_dim):
                if fields.imposed_displacement[node.id, axis]:
                    yield node.id, axis
