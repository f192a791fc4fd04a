"""
VTK export for visualization.

Nodal fields of a run are written as a VTK Legacy (.vtk) ASCII
UnstructuredGrid, readable by ParaView, VisIt and other VTK viewers.
Vector fields are always written with 3 components (z = 0 in 2D).
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Union

import numpy as np

from ..discretization.element import ElementType
from ..discretization.mesh import Mesh

logger = logging.getLogger(__name__)

# VTK cell type codes
VTK_CELL_TYPES = {
    ElementType.LINE2: 3,
    ElementType.TRI3: 5,
    ElementType.QUAD4: 9,
    ElementType.TET4: 10,
    ElementType.HEX8: 12,
}


def export_vtk_unstructured(filename: Union[str, Path],
                            mesh: Mesh,
                            point_vectors: Optional[Dict[str, np.ndarray]] = None,
                            cell_scalars: Optional[Dict[str, np.ndarray]] = None,
                            title: str = "elastoDyn solution") -> Path:
    """
    Export a mesh with nodal vector and cell scalar fields.

    Parameters:
        filename: Output filename (will add .vtk extension if missing)
        mesh: Mesh whose nodes and cells are written
        point_vectors: Name -> array of shape (n_nodes, 3)
        cell_scalars: Name -> array of shape (n_cells,)
        title: Header line of the file

    Returns:
        Path of the written file
    """
    path = Path(filename)
    if path.suffix != '.vtk':
        path = path.with_suffix('.vtk')
    path.parent.mkdir(parents=True, exist_ok=True)

    coords = mesh.coordinates
    cells = mesh.cells
    list_size = sum(1 + cell.n_nodes for cell in cells)

    with open(path, 'w') as f:
        f.write("# vtk DataFile Version 3.0\n")
        f.write(f"{title}\n")
        f.write("ASCII\n")
        f.write("DATASET UNSTRUCTURED_GRID\n")

        f.write(f"POINTS {mesh.n_nodes} double\n")
        for x, y, z in coords:
            f.write(f"{x} {y} {z}\n")

        f.write(f"\nCELLS {len(cells)} {list_size}\n")
        for cell in cells:
            f.write(f"{cell.n_nodes} " + " ".join(str(n) for n in cell.node_ids) + "\n")

        f.write(f"\nCELL_TYPES {len(cells)}\n")
        for cell in cells:
            f.write(f"{VTK_CELL_TYPES[cell.type]}\n")

        if point_vectors:
            f.write(f"\nPOINT_DATA {mesh.n_nodes}\n")
            for name, values in point_vectors.items():
                values = np.asarray(values, dtype=np.float64)
                f.write(f"VECTORS {name} double\n")
                for vx, vy, vz in values[:, :3]:
                    f.write(f"{vx} {vy} {vz}\n")

        if cell_scalars:
            f.write(f"\nCELL_DATA {len(cells)}\n")
            for name, values in cell_scalars.items():
                f.write(f"SCALARS {name} double 1\n")
                f.write("LOOKUP_TABLE default\n")
                for value in np.asarray(values, dtype=np.float64):
                    f.write(f"{value}\n")

    logger.info("Exported VTK file: %s", path)
    return path


def export_solver_state(filename: Union[str, Path], solver) -> Path:
    """
    Export the displacement, velocity and acceleration of a solver, with
    the cell density and wave speeds.
    """
    return export_vtk_unstructured(
        filename, solver.mesh,
        point_vectors={
            "displacement": solver.nodes.displacement,
            "velocity": solver.nodes.velocity,
            "acceleration": solver.nodes.acceleration,
        },
        cell_scalars={
            "rho": solver.cells.rho,
            "vp": solver.cells.vp,
            "vs": solver.cells.vs,
        },
    )
