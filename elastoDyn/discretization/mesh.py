"""
Analysis-ready unstructured mesh.

The Mesh class is the central data structure that:
1. Owns all nodes, cells and faces
2. Derives faces (edges in 2D) from cell connectivity, tracking the
   cells attached to each face so boundary faces are known
3. Stores named node, face and cell groups used by boundary and initial
   conditions
4. Knows the local rank and answers the "is own" question for every item

Key design principles:
- Items are stored in lists indexed by ID (IDs are contiguous from 0)
- Groups are plain name -> ID list mappings; later definitions replace
  earlier ones with the same name
- The analysis dimension is the topological dimension of the cells
- Ownership is a property of the item (owner rank), never recomputed
  inside assembly loops

Structured builders (make_quad_mesh, make_tri_mesh, make_hex_mesh,
make_tet_mesh) create box meshes with groups named after the box sides:
xmin, xmax, ymin, ymax (and zmin, zmax in 3D), for both faces and nodes,
plus an "all" group for nodes and cells.
"""
from __future__ import annotations

import numpy as np
from typing import List, Dict, Tuple, Optional, Iterator, Sequence, Union

from .element import ElementType, Node, Cell, Face

Item = Union[Node, Cell, Face]


class Mesh:
    """
    Unstructured finite-element mesh with groups and ownership.

    Attributes:
        nodes: List of nodes (index = node ID)
        cells: List of cells (index = cell ID)
        faces: List of faces (index = face ID)
        rank: Rank of the local partition
        dimension: Analysis dimension (2 or 3)
    """

    def __init__(self,
                 nodes: List[Node],
                 cells: List[Cell],
                 rank: int = 0):
        """
        Initialize mesh from nodes and cells. Faces are derived.

        Parameters:
            nodes: Nodes, with node.id == position in the list
            cells: Cells, with cell.id == position in the list
            rank: Local partition rank
        """
        for i, node in enumerate(nodes):
            if node.id != i:
                raise ValueError(f"Node IDs must be contiguous: position {i} holds node {node.id}")
        for i, cell in enumerate(cells):
            if cell.id != i:
                raise ValueError(f"Cell IDs must be contiguous: position {i} holds cell {cell.id}")
            for nid in cell.node_ids:
                if nid < 0 or nid >= len(nodes):
                    raise ValueError(f"Cell {cell.id} references non-existent node {nid}")

        self.nodes = nodes
        self.cells = cells
        self.rank = rank

        dims = {cell.type.dimension for cell in cells}
        if len(dims) > 1:
            raise ValueError(f"Mixed-dimension cells are not supported: {sorted(dims)}")
        self.dimension = dims.pop() if dims else 0

        self.faces: List[Face] = []
        self._face_index: Dict[Tuple[int, ...], int] = {}
        self._build_faces()

        self._node_groups: Dict[str, List[int]] = {}
        self._face_groups: Dict[str, List[int]] = {}
        self._cell_groups: Dict[str, List[int]] = {}
        self._coordinates = np.array([node.coordinates for node in nodes]).reshape(-1, 3)

    @classmethod
    def from_arrays(cls, coordinates: np.ndarray, connectivity: Sequence[Sequence[int]],
                    cell_type: ElementType, rank: int = 0) -> 'Mesh':
        """
        Build a mesh from a coordinate array and a connectivity table.

        Parameters:
            coordinates: Array of shape (n_nodes, 2) or (n_nodes, 3)
            connectivity: Node IDs per cell
            cell_type: Element type shared by all cells
            rank: Local partition rank
        """
        coordinates = np.asarray(coordinates, dtype=np.float64)
        nodes = [Node(i, xyz) for i, xyz in enumerate(coordinates)]
        cells = [Cell(i, cell_type, tuple(conn)) for i, conn in enumerate(connectivity)]
        return cls(nodes, cells, rank=rank)

    def _build_faces(self) -> None:
        """Derive unique faces from cell connectivity."""
        for cell in self.cells:
            face_type = cell.type.face_type
            if face_type is None:
                continue
            for local in cell.type.local_faces:
                node_ids = tuple(cell.node_ids[k] for k in local)
                key = tuple(sorted(node_ids))
                fid = self._face_index.get(key)
                if fid is None:
                    fid = len(self.faces)
                    self._face_index[key] = fid
                    self.faces.append(Face(fid, face_type, node_ids, owner=cell.owner))
                self.faces[fid].cell_ids.append(cell.id)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def n_cells(self) -> int:
        return len(self.cells)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def coordinates(self) -> np.ndarray:
        """Node coordinates, shape (n_nodes, 3)."""
        return self._coordinates

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------

    def is_own(self, item: Item) -> bool:
        """True if the item is owned by the local rank."""
        return item.owner == self.rank

    def own_nodes(self) -> Iterator[Node]:
        """Iterate over nodes owned by the local rank."""
        for node in self.nodes:
            if node.owner == self.rank:
                yield node

    def set_owners(self, node_owners: Sequence[int],
                   cell_owners: Optional[Sequence[int]] = None) -> None:
        """
        Assign owner ranks (domain decomposition).

        Cells default to the owner of their first node; faces follow the
        owner of their first attached cell.
        """
        node_owners = np.asarray(node_owners, dtype=int)
        if len(node_owners) != self.n_nodes:
            raise ValueError("One owner rank per node is required")
        for node, owner in zip(self.nodes, node_owners):
            node.owner = int(owner)
        for cell in self.cells:
            cell.owner = int(cell_owners[cell.id]) if cell_owners is not None \
                else int(node_owners[cell.node_ids[0]])
        for face in self.faces:
            face.owner = self.cells[face.cell_ids[0]].owner

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def find_face(self, node_ids: Sequence[int]) -> Optional[Face]:
        """Return the face with exactly these nodes (any order), if any."""
        fid = self._face_index.get(tuple(sorted(int(n) for n in node_ids)))
        return None if fid is None else self.faces[fid]

    def boundary_faces(self) -> List[Face]:
        """Faces attached to exactly one cell."""
        return [face for face in self.faces if face.is_boundary]

    def item_coordinates(self, item: Union[Cell, Face]) -> np.ndarray:
        """Coordinates of the item's nodes, shape (n_item_nodes, 3)."""
        return self._coordinates[list(item.node_ids)]

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    def add_node_group(self, name: str, node_ids: Sequence[int]) -> None:
        self._node_groups[name] = sorted(set(int(i) for i in node_ids))

    def add_face_group(self, name: str, face_ids: Sequence[int]) -> None:
        self._face_groups[name] = sorted(set(int(i) for i in face_ids))

    def add_cell_group(self, name: str, cell_ids: Sequence[int]) -> None:
        self._cell_groups[name] = sorted(set(int(i) for i in cell_ids))

    def node_group(self, name: str) -> List[Node]:
        return [self.nodes[i] for i in self._lookup(self._node_groups, name, "node")]

    def face_group(self, name: str) -> List[Face]:
        return [self.faces[i] for i in self._lookup(self._face_groups, name, "face")]

    def cell_group(self, name: str) -> List[Cell]:
        return [self.cells[i] for i in self._lookup(self._cell_groups, name, "cell")]

    def face_group_nodes(self, name: str) -> List[int]:
        """Sorted IDs of all nodes belonging to the faces of a group."""
        ids = set()
        for face in self.face_group(name):
            ids.update(face.node_ids)
        return sorted(ids)

    @property
    def group_names(self) -> Dict[str, List[str]]:
        return {
            "node": sorted(self._node_groups),
            "face": sorted(self._face_groups),
            "cell": sorted(self._cell_groups),
        }

    @staticmethod
    def _lookup(groups: Dict[str, List[int]], name: str, kind: str) -> List[int]:
        if name not in groups:
            raise KeyError(f"Unknown {kind} group {name!r}; available: {sorted(groups)}")
        return groups[name]

    def add_box_groups(self, tol: float = 1e-12) -> None:
        """
        Create side groups of the bounding box.

        For each axis d in the analysis dimension, nodes with coordinate equal
        to the min/max of that axis form node groups "<x|y|z><min|max>", and
        boundary faces whose nodes all lie on the side form the face group of
        the same name. Also defines the "all" node and cell groups.
        """
        coords = self._coordinates
        self.add_node_group("all", range(self.n_nodes))
        self.add_cell_group("all", range(self.n_cells))
        boundary = self.boundary_faces()

        for axis, label in enumerate("xyz"[:self.dimension]):
            for side, value in (("min", coords[:, axis].min()), ("max", coords[:, axis].max())):
                on_side = np.abs(coords[:, axis] - value) <= tol * max(1.0, abs(value))
                name = f"{label}{side}"
                self.add_node_group(name, np.nonzero(on_side)[0])
                self.add_face_group(name, [
                    face.id for face in boundary if all(on_side[n] for n in face.node_ids)
                ])


# =============================================================================
# Structured box builders
# =============================================================================

def _grid_coordinates(n: Sequence[int], size: Sequence[float],
                      origin: Optional[Sequence[float]] = None) -> np.ndarray:
    """Lexicographic grid points (x fastest), shape (prod(n+1), len(n))."""
    origin = np.zeros(len(n)) if origin is None else np.asarray(origin, dtype=float)
    axes = [np.linspace(origin[d], origin[d] + size[d], n[d] + 1) for d in range(len(n))]
    mesh = np.meshgrid(*axes, indexing="ij")
    # x varies fastest in the node numbering
    return np.stack([m.transpose().ravel() for m in mesh], axis=1)


def make_quad_mesh(nx: int, ny: int, lx: float = 1.0, ly: float = 1.0,
                   origin: Optional[Sequence[float]] = None) -> Mesh:
    """
    Rectangle [0,lx] x [0,ly] meshed with nx x ny QUAD4 cells.

    Node (i, j) has ID j*(nx+1) + i.
    """
    coords = _grid_coordinates((nx, ny), (lx, ly), origin)

    def nid(i, j):
        return j * (nx + 1) + i

    conn = [(nid(i, j), nid(i + 1, j), nid(i + 1, j + 1), nid(i, j + 1))
            for j in range(ny) for i in range(nx)]
    mesh = Mesh.from_arrays(coords, conn, ElementType.QUAD4)
    mesh.add_box_groups()
    return mesh


def make_tri_mesh(nx: int, ny: int, lx: float = 1.0, ly: float = 1.0,
                  origin: Optional[Sequence[float]] = None) -> Mesh:
    """Rectangle meshed with 2*nx*ny TRI3 cells (each quad split on its diagonal)."""
    coords = _grid_coordinates((nx, ny), (lx, ly), origin)

    def nid(i, j):
        return j * (nx + 1) + i

    conn = []
    for j in range(ny):
        for i in range(nx):
            n0, n1, n2, n3 = nid(i, j), nid(i + 1, j), nid(i + 1, j + 1), nid(i, j + 1)
            conn.append((n0, n1, n2))
            conn.append((n0, n2, n3))
    mesh = Mesh.from_arrays(coords, conn, ElementType.TRI3)
    mesh.add_box_groups()
    return mesh


def _hex_connectivity(nx: int, ny: int, nz: int) -> List[Tuple[int, ...]]:
    def nid(i, j, k):
        return (k * (ny + 1) + j) * (nx + 1) + i

    conn = []
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                conn.append((
                    nid(i, j, k), nid(i + 1, j, k), nid(i + 1, j + 1, k), nid(i, j + 1, k),
                    nid(i, j, k + 1), nid(i + 1, j, k + 1), nid(i + 1, j + 1, k + 1), nid(i, j + 1, k + 1),
                ))
    return conn


def make_hex_mesh(nx: int, ny: int, nz: int,
                  lx: float = 1.0, ly: float = 1.0, lz: float = 1.0,
                  origin: Optional[Sequence[float]] = None) -> Mesh:
    """Box [0,lx] x [0,ly] x [0,lz] meshed with nx x ny x nz HEX8 cells."""
    coords = _grid_coordinates((nx, ny, nz), (lx, ly, lz), origin)
    mesh = Mesh.from_arrays(coords, _hex_connectivity(nx, ny, nz), ElementType.HEX8)
    mesh.add_box_groups()
    return mesh


# Six tetrahedra sharing the 0-6 diagonal of a hexahedron. Using the same
# split in every hexahedron keeps neighbouring faces conforming.
_HEX_TO_TETS = ((0, 1, 2, 6), (0, 2, 3, 6), (0, 3, 7, 6),
                (0, 7, 4, 6), (0, 4, 5, 6), (0, 5, 1, 6))


def make_tet_mesh(nx: int, ny: int, nz: int,
                  lx: float = 1.0, ly: float = 1.0, lz: float = 1.0,
                  origin: Optional[Sequence[float]] = None) -> Mesh:
    """Box meshed with 6*nx*ny*nz TET4 cells."""
    coords = _grid_coordinates((nx, ny, nz), (lx, ly, lz), origin)
    conn = [tuple(hexa[k] for k in tet)
            for hexa in _hex_connectivity(nx, ny, nz) for tet in _HEX_TO_TETS]
    mesh = Mesh.from_arrays(coords, conn, ElementType.TET4)
    mesh.add_box_groups()
    return mesh


def build_mesh(mesh_type: str, n: Sequence[int], size: Optional[Sequence[float]] = None) -> Mesh:
    """
    Build a structured box mesh by name.

    Parameters:
        mesh_type: "quad", "tri", "hex" or "tet"
        n: Cells per direction
        size: Box lengths per direction (defaults to 1)
    """
    builders = {
        "quad": (make_quad_mesh, 2),
        "tri": (make_tri_mesh, 2),
        "hex": (make_hex_mesh, 3),
        "tet": (make_tet_mesh, 3),
    }
    key = mesh_type.lower()
    if key not in builders:
        raise ValueError(f"Unknown mesh type {mesh_type!r}; expected one of {sorted(builders)}")
    builder, dim = builders[key]
    n = list(n)[:dim]
    size = list(size)[:dim] if size is not None else [1.0] * dim
    if len(n) != dim or len(size) != dim:
        raise ValueError(f"{mesh_type} mesh needs {dim} cell counts and sizes")
    return builder(*n, *size)
