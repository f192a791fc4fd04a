"""
Simulation configuration.

A case is described by a YAML file loaded with yaml.safe_load into a tree
of dataclasses. Keys use the hyphenated spelling of the case files:

    mesh:
      type: quad
      n: [20, 10]
      size: [2.0, 1.0]
    analysis-type: 2D
    gauss-nint: [2, 2, 2]
    enforce-dirichlet-method: Penalty
    penalty: 1.0e30
    newmark: {gamma: 0.5, beta: 0.25}
    time: {start: 0.0, final: 1.0, dt: 0.01}
    elastic-type: young
    material: {rho: 2500.0, young: 1.0e9, nu: 0.25}
    dirichlet-surface-conditions:
      - {surface: xmin, Ux: 0.0, Uy: 0.0}
    neumann-conditions:
      - {surface: xmax, curve: traction.txt}
    paraxial-conditions:
      - {surface: ymin}

Curve file names are resolved relative to the directory of the YAML file.
All checks that can fail a run are made here, before any time step.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

DIRICHLET_METHODS = ("Penalty", "WeakPenalty", "RowElimination", "RowColumnElimination")

AXES = ("x", "y", "z")

Vector3 = Tuple[Optional[float], Optional[float], Optional[float]]


class ConfigurationError(ValueError):
    """Invalid or incomplete simulation configuration."""
    pass


def _float_or_none(value) -> Optional[float]:
    return None if value is None else float(value)


def _vector(data: Dict[str, Any], key: str) -> Optional[Tuple[float, float, float]]:
    """Read an optional 3-vector, padding short lists with zeros."""
    if data.get(key) is None:
        return None
    values = [float(v) for v in data[key]]
    if not 1 <= len(values) <= 3:
        raise ConfigurationError(f"{key!r} must have 1 to 3 components, got {values}")
    return tuple(values + [0.0] * (3 - len(values)))


def _components(data: Dict[str, Any], prefix: str) -> Vector3:
    """Read per-axis entries <prefix>x, <prefix>y, <prefix>z."""
    return tuple(_float_or_none(data.get(f"{prefix}{axis}")) for axis in AXES)


def _curve_path(data: Dict[str, Any], key: str, base_dir: Optional[Path]) -> Optional[Path]:
    name = data.get(key)
    if not name:
        return None
    path = Path(name)
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path


def _require(data: Dict[str, Any], key: str, context: str):
    if key not in data:
        raise ConfigurationError(f"{context}: missing required key {key!r}")
    return data[key]


@dataclass
class MeshConfig:
    """Structured box mesh description."""
    type: str = "quad"
    n: List[int] = field(default_factory=lambda: [1, 1, 1])
    size: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0])


@dataclass
class TimeConfig:
    start: float = 0.0
    final: float = 1.0
    dt: float = 0.01


@dataclass
class NewmarkConfig:
    beta: float = 0.25
    gamma: float = 0.5


@dataclass
class AlphaMethodConfig:
    """Generalized-alpha parameters; enabling it is refused by the integrator."""
    enabled: bool = False
    alpha_m: float = 0.0
    alpha_f: float = 0.0


@dataclass
class MaterialGroupConfig:
    """Elastic properties assigned to one cell group (last group wins)."""
    cell_group: str
    values: Dict[str, float]


@dataclass
class InitialNodeConfig:
    node_group: str
    displacement: Optional[Tuple[float, float, float]] = None
    velocity: Optional[Tuple[float, float, float]] = None
    acceleration: Optional[Tuple[float, float, float]] = None
    force: Optional[Tuple[float, float, float]] = None


@dataclass
class InitialCellConfig:
    cell_group: str
    dev_strain: Optional[float] = None
    vol_strain: Optional[float] = None
    dev_stress: Optional[float] = None
    vol_stress: Optional[float] = None


@dataclass
class DirichletConfig:
    """
    Imposed kinematics or nodal force on a surface or a node group.

    Each quantity (U, V, A, F) has constant per-axis values and an optional
    curve. A curve applies to the axes selected by x_axis/y_axis/z_axis and,
    when present, takes precedence over the constants.

    Attributes:
        target: Face group (surface conditions) or node group (point conditions)
        on_points: True for point conditions
    """
    target: str
    on_points: bool = False
    displacement: Vector3 = (None, None, None)
    velocity: Vector3 = (None, None, None)
    acceleration: Vector3 = (None, None, None)
    force: Vector3 = (None, None, None)
    displacement_curve: Optional[Path] = None
    velocity_curve: Optional[Path] = None
    acceleration_curve: Optional[Path] = None
    force_curve: Optional[Path] = None
    axes: Tuple[bool, bool, bool] = (False, False, False)


@dataclass
class NeumannConfig:
    """Uniform traction on a face group, constant or from a curve."""
    surface: str
    value: Vector3 = (None, None, None)
    curve: Optional[Path] = None


@dataclass
class ParaxialConfig:
    """
    Absorbing boundary on a face group.

    The medium outside the boundary is described by (young, nu),
    (lame_lambda, lame_mu) or (cp, cs) with a density. When no complete
    pair is given, the properties of the adjoining cells are used.
    """
    surface: str
    rho: Optional[float] = None
    young: Optional[float] = None
    nu: Optional[float] = None
    lame_lambda: Optional[float] = None
    lame_mu: Optional[float] = None
    cp: Optional[float] = None
    cs: Optional[float] = None


@dataclass
class OutputConfig:
    vtk: Optional[Path] = None


@dataclass
class SimulationConfig:
    """
    Complete description of an elastodynamic case.

    Attributes:
        n_dim: Analysis dimension (2 or 3)
        gauss_nint: Integration points per reference axis
        gravity: Body acceleration
        dirichlet_method: One of DIRICHLET_METHODS
        penalty: Penalty coefficient of the penalty methods
        linop_nstep: Steps between rebuilds of the matrix structure
        elastic_type: Parameterization name of material properties
        material: Default material values for all cells
    """
    mesh: MeshConfig = field(default_factory=MeshConfig)
    n_dim: int = 2
    gauss_nint: Tuple[int, int, int] = (2, 2, 2)
    gravity: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    dirichlet_method: str = "Penalty"
    penalty: float = 1.0e30
    newmark: NewmarkConfig = field(default_factory=NewmarkConfig)
    alpha_method: AlphaMethodConfig = field(default_factory=AlphaMethodConfig)
    time: TimeConfig = field(default_factory=TimeConfig)
    linop_nstep: int = 100
    elastic_type: str = "young"
    material: Dict[str, float] = field(default_factory=dict)
    material_groups: List[MaterialGroupConfig] = field(default_factory=list)
    initial_nodes: List[InitialNodeConfig] = field(default_factory=list)
    initial_cells: List[InitialCellConfig] = field(default_factory=list)
    dirichlet: List[DirichletConfig] = field(default_factory=list)
    neumann: List[NeumannConfig] = field(default_factory=list)
    paraxial: List[ParaxialConfig] = field(default_factory=list)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Union[str, Path, None] = None) -> 'SimulationConfig':
        """
        Build and validate a configuration from a parsed YAML mapping.

        Parameters:
            data: Mapping with the case-file keys
            base_dir: Directory against which curve paths are resolved

        Raises:
            ConfigurationError: on unknown or inconsistent settings
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")
        base = Path(base_dir) if base_dir is not None else None

        mesh_data = data.get("mesh", {})
        mesh = MeshConfig(
            type=str(mesh_data.get("type", "quad")),
            n=[int(v) for v in mesh_data.get("n", [1, 1, 1])],
            size=[float(v) for v in mesh_data.get("size", [1.0, 1.0, 1.0])],
        )

        analysis = str(data.get("analysis-type", "2D")).upper()
        if analysis not in ("2D", "3D"):
            raise ConfigurationError(f"analysis-type must be 2D or 3D, got {analysis!r}")

        nint = [int(v) for v in data.get("gauss-nint", [2, 2, 2])]
        nint = (nint + [nint[-1]] * 3)[:3]

        newmark_data = data.get("newmark", {})
        alpha_data = data.get("alpha-method", {})
        time_data = data.get("time", {})

        config = cls(
            mesh=mesh,
            n_dim=int(analysis[0]),
            gauss_nint=tuple(nint),
            gravity=_vector(data, "gravity") or (0.0, 0.0, 0.0),
            dirichlet_method=str(data.get("enforce-dirichlet-method", "Penalty")),
            penalty=float(data.get("penalty", 1.0e30)),
            newmark=NewmarkConfig(
                beta=float(newmark_data.get("beta", 0.25)),
                gamma=float(newmark_data.get("gamma", 0.5)),
            ),
            alpha_method=AlphaMethodConfig(
                enabled=bool(alpha_data.get("enabled", False)),
                alpha_m=float(alpha_data.get("alpha-m", 0.0)),
                alpha_f=float(alpha_data.get("alpha-f", 0.0)),
            ),
            time=TimeConfig(
                start=float(time_data.get("start", 0.0)),
                final=float(time_data.get("final", 1.0)),
                dt=float(time_data.get("dt", 0.01)),
            ),
            linop_nstep=int(data.get("linop-nstep", 100)),
            elastic_type=str(data.get("elastic-type", "young")),
            material=dict(data.get("material", {})),
        )

        for entry in data.get("init-elast-properties", []):
            values = {k: v for k, v in entry.items() if k != "cell-group"}
            config.material_groups.append(MaterialGroupConfig(
                cell_group=_require(entry, "cell-group", "init-elast-properties"),
                values=values,
            ))

        for entry in data.get("initial-node-conditions", []):
            config.initial_nodes.append(InitialNodeConfig(
                node_group=_require(entry, "node-group", "initial-node-conditions"),
                displacement=_vector(entry, "U"),
                velocity=_vector(entry, "V"),
                acceleration=_vector(entry, "A"),
                force=_vector(entry, "F"),
            ))

        for entry in data.get("initial-cell-conditions", []):
            config.initial_cells.append(InitialCellConfig(
                cell_group=_require(entry, "cell-group", "initial-cell-conditions"),
                dev_strain=_float_or_none(entry.get("dev-strain")),
                vol_strain=_float_or_none(entry.get("vol-strain")),
                dev_stress=_float_or_none(entry.get("dev-stress")),
                vol_stress=_float_or_none(entry.get("vol-stress")),
            ))

        for key, target_key, on_points in (("dirichlet-surface-conditions", "surface", False),
                                           ("dirichlet-point-conditions", "node-group", True)):
            for entry in data.get(key, []):
                config.dirichlet.append(DirichletConfig(
                    target=_require(entry, target_key, key),
                    on_points=on_points,
                    displacement=_components(entry, "U"),
                    velocity=_components(entry, "V"),
                    acceleration=_components(entry, "A"),
                    force=_components(entry, "F"),
                    displacement_curve=_curve_path(entry, "U-curve", base),
                    velocity_curve=_curve_path(entry, "V-curve", base),
                    acceleration_curve=_curve_path(entry, "A-curve", base),
                    force_curve=_curve_path(entry, "F-curve", base),
                    axes=tuple(bool(entry.get(f"{axis}-axis", False)) for axis in AXES),
                ))

        for entry in data.get("neumann-conditions", []):
            config.neumann.append(NeumannConfig(
                surface=_require(entry, "surface", "neumann-conditions"),
                value=tuple(_float_or_none(entry.get(f"{axis}-val")) for axis in AXES),
                curve=_curve_path(entry, "curve", base),
            ))

        for entry in data.get("paraxial-conditions", []):
            config.paraxial.append(ParaxialConfig(
                surface=_require(entry, "surface", "paraxial-conditions"),
                rho=_float_or_none(entry.get("rho")),
                young=_float_or_none(entry.get("E", entry.get("young"))),
                nu=_float_or_none(entry.get("nu")),
                lame_lambda=_float_or_none(entry.get("lambda")),
                lame_mu=_float_or_none(entry.get("mu")),
                cp=_float_or_none(entry.get("cp")),
                cs=_float_or_none(entry.get("cs")),
            ))

        output_data = data.get("output", {}) or {}
        if output_data.get("vtk"):
            vtk_path = Path(output_data["vtk"])
            if base is not None and not vtk_path.is_absolute():
                vtk_path = base / vtk_path
            config.output = OutputConfig(vtk=vtk_path)

        config.validate()
        return config

    def validate(self) -> None:
        """
        Check settings that would make the run fail.

        Raises:
            ConfigurationError: describing the first violated condition
        """
        # Local import: the material module reports its own errors with
        # ConfigurationError defined above
        from ..material.elastic import ElasticType

        if self.dirichlet_method not in DIRICHLET_METHODS:
            raise ConfigurationError(
                f"Method for enforcing Dirichlet boundary condition not supported: "
                f"{self.dirichlet_method!r} (expected one of {', '.join(DIRICHLET_METHODS)})"
            )
        ElasticType.from_string(self.elastic_type)

        if self.n_dim not in (2, 3):
            raise ConfigurationError(f"Analysis dimension must be 2 or 3, got {self.n_dim}")
        if self.time.dt <= 0.0:
            raise ConfigurationError(f"Time step must be positive, got dt={self.time.dt}")
        if self.time.final < self.time.start:
            raise ConfigurationError(
                f"Final time {self.time.final} is before start time {self.time.start}"
            )
        if not 0.0 < self.newmark.beta <= 0.5:
            raise ConfigurationError(f"Newmark beta must lie in (0, 0.5], got {self.newmark.beta}")
        if self.newmark.gamma <= 0.0:
            raise ConfigurationError(f"Newmark gamma must be positive, got {self.newmark.gamma}")
        if self.linop_nstep < 1:
            raise ConfigurationError(f"linop-nstep must be at least 1, got {self.linop_nstep}")
        if self.penalty <= 0.0:
            raise ConfigurationError(f"Penalty coefficient must be positive, got {self.penalty}")
        if any(n < 1 for n in self.gauss_nint):
            raise ConfigurationError(f"gauss-nint entries must be positive, got {self.gauss_nint}")


def load_config(filename: Union[str, Path]) -> SimulationConfig:
    """
    Load a simulation configuration from a YAML file.

    Parameters:
        filename: Path to the case file

    Returns:
        Validated SimulationConfig; relative curve and output paths are
        resolved against the directory of the file
    """
    path = Path(filename)
    logger.info("Loading configuration from %s", path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return SimulationConfig.from_dict(data, base_dir=path.parent)
