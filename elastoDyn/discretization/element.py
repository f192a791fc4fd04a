"""
Element catalogue and mesh item records.

Every mesh item (node, cell, face) is a small record:
- Nodes carry their physical coordinates
- Cells and faces carry an ElementType and an ordered tuple of node IDs
- Every item has an owner rank; an item is "own" on the rank that owns it

Supported element types (linear Lagrange):

    LINE2   1D, 2 nodes        reference [-1, 1]
    TRI3    2D, 3 nodes        reference unit triangle
    QUAD4   2D, 4 nodes        reference [-1, 1]^2
    TET4    3D, 4 nodes        reference unit tetrahedron
    HEX8    3D, 8 nodes        reference [-1, 1]^3

Local face numbering (used to extract boundary faces from cells) follows
the reference node ordering given in REFERENCE_COORDINATES.
"""

import numpy as np
from typing import Tuple, List, Optional
from dataclasses import dataclass, field
from enum import Enum


class ElementType(Enum):
    """Geometric type of a cell or face."""
    LINE2 = "line2"
    TRI3 = "tri3"
    QUAD4 = "quad4"
    TET4 = "tet4"
    HEX8 = "hex8"

    @property
    def dimension(self) -> int:
        """Topological dimension of the reference element."""
        return _DIMENSION[self]

    @property
    def n_nodes(self) -> int:
        """Number of nodes."""
        return len(REFERENCE_COORDINATES[self])

    @property
    def is_simplex(self) -> bool:
        """True for triangles and tetrahedra."""
        return self in (ElementType.TRI3, ElementType.TET4)

    @property
    def face_type(self) -> Optional['ElementType']:
        """Type of the boundary faces of this element (None for lines)."""
        return _FACE_TYPE[self]

    @property
    def local_faces(self) -> Tuple[Tuple[int, ...], ...]:
        """Local node indices of each face."""
        return _LOCAL_FACES[self]


_DIMENSION = {
    ElementType.LINE2: 1,
    ElementType.TRI3: 2,
    ElementType.QUAD4: 2,
    ElementType.TET4: 3,
    ElementType.HEX8: 3,
}

REFERENCE_COORDINATES = {
    ElementType.LINE2: np.array([[-1.0], [1.0]]),
    ElementType.TRI3: np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
    ElementType.QUAD4: np.array([[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]]),
    ElementType.TET4: np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                                [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]),
    ElementType.HEX8: np.array([
        [-1.0, -1.0, -1.0], [1.0, -1.0, -1.0], [1.0, 1.0, -1.0], [-1.0, 1.0, -1.0],
        [-1.0, -1.0, 1.0], [1.0, -1.0, 1.0], [1.0, 1.0, 1.0], [-1.0, 1.0, 1.0],
    ]),
}

_FACE_TYPE = {
    ElementType.LINE2: None,
    ElementType.TRI3: ElementType.LINE2,
    ElementType.QUAD4: ElementType.LINE2,
    ElementType.TET4: ElementType.TRI3,
    ElementType.HEX8: ElementType.QUAD4,
}

_LOCAL_FACES = {
    ElementType.LINE2: ((0,), (1,)),
    ElementType.TRI3: ((0, 1), (1, 2), (2, 0)),
    ElementType.QUAD4: ((0, 1), (1, 2), (2, 3), (3, 0)),
    ElementType.TET4: ((0, 2, 1), (0, 1, 3), (1, 2, 3), (0, 3, 2)),
    ElementType.HEX8: ((0, 3, 2, 1), (4, 5, 6, 7), (0, 1, 5, 4),
                       (1, 2, 6, 5), (2, 3, 7, 6), (3, 0, 4, 7)),
}


@dataclass
class Node:
    """
    Mesh node.

    Attributes:
        id: Unique identifier (index into nodal field arrays)
        coordinates: Physical coordinates, padded to 3 components
        owner: Rank owning this node
    """
    id: int
    coordinates: np.ndarray
    owner: int = 0

    def __post_init__(self):
        coords = np.zeros(3)
        given = np.asarray(self.coordinates, dtype=np.float64).ravel()
        coords[:len(given)] = given
        self.coordinates = coords


@dataclass
class Cell:
    """
    Volume element (a surface element in 2D analyses).

    Attributes:
        id: Unique identifier (index into cell field arrays)
        type: Geometric element type
        node_ids: Ordered node IDs, following the reference node ordering
        owner: Rank owning this cell
    """
    id: int
    type: ElementType
    node_ids: Tuple[int, ...]
    owner: int = 0

    def __post_init__(self):
        self.node_ids = tuple(int(n) for n in self.node_ids)
        if len(self.node_ids) != self.type.n_nodes:
            raise ValueError(
                f"Cell {self.id}: {self.type.name} needs {self.type.n_nodes} nodes, "
                f"got {len(self.node_ids)}"
            )

    @property
    def n_nodes(self) -> int:
        return len(self.node_ids)

    @property
    def kind(self) -> str:
        return "cell"


@dataclass
class Face:
    """
    Boundary (or interior) face of the mesh; an edge in 2D analyses.

    Attributes:
        id: Unique identifier
        type: Geometric element type of the face
        node_ids: Ordered node IDs
        owner: Rank owning this face
        cell_ids: IDs of the cells sharing this face (one for boundary faces)
    """
    id: int
    type: ElementType
    node_ids: Tuple[int, ...]
    owner: int = 0
    cell_ids: List[int] = field(default_factory=list)

    def __post_init__(self):
        self.node_ids = tuple(int(n) for n in self.node_ids)

    @property
    def n_nodes(self) -> int:
        return len(self.node_ids)

    @property
    def kind(self) -> str:
        return "face"

    @property
    def is_boundary(self) -> bool:
        """True when exactly one cell is attached to this face."""
        return len(self.cell_ids) == 1

    @property
    def boundary_cell(self) -> int:
        """ID of the single cell attached to a boundary face."""
        if not self.is_boundary:
            raise ValueError(f"Face {self.id} is not a boundary face")
        return self.cell_ids[0]
