"""
Degree-of-freedom numbering.

One scalar unknown per (node, spatial axis) pair:

    dof = n_dim * node_id + axis,   axis in {0, .., n_dim - 1}

The map also owns the single "owned DOF" predicate. Every scatter site
(LHS, RHS, traction, paraxial) asks this map whether it may write a row,
so a DOF shared between partitions is written by exactly one rank.
"""

import numpy as np
from typing import Sequence, List

from .mesh import Mesh


class NodeDofMap:
    """
    Maps (node, axis) pairs to global DOF indices.

    Attributes:
        mesh: The mesh whose nodes carry the DOFs
        n_dim: DOFs per node (2 or 3)
    """

    def __init__(self, mesh: Mesh, n_dim: int):
        if n_dim not in (2, 3):
            raise ValueError(f"DOFs per node must be 2 or 3, got {n_dim}")
        self.mesh = mesh
        self.n_dim = n_dim
        self._owned = np.array([mesh.is_own(node) for node in mesh.nodes], dtype=bool)

    @property
    def n_dof(self) -> int:
        """Total number of DOFs (owned and ghost)."""
        return self.n_dim * self.mesh.n_nodes

    def dof_id(self, node_id: int, axis: int) -> int:
        """Global DOF index of one node axis."""
        return self.n_dim * node_id + axis

    def node_dofs(self, node_id: int) -> List[int]:
        """All DOF indices of a node, in axis order."""
        base = self.n_dim * node_id
        return list(range(base, base + self.n_dim))

    def element_dofs(self, node_ids: Sequence[int]) -> np.ndarray:
        """
        DOF map of an element: node-major, axis-minor.

        Matches the layout of elemental matrices, where local row
        n_dim * a + l belongs to local node a and axis l.
        """
        node_ids = np.asarray(node_ids, dtype=int)
        return (self.n_dim * node_ids[:, None] + np.arange(self.n_dim)[None, :]).ravel()

    def is_owned(self, node_id: int) -> bool:
        """True if the node's rows are written by the local rank."""
        return bool(self._owned[node_id])

    def is_owned_dof(self, dof: int) -> bool:
        return bool(self._owned[dof // self.n_dim])

    @property
    def owned_mask(self) -> np.ndarray:
        """Boolean array over nodes, True where the local rank owns the node."""
        return self._owned

    @property
    def owned_dof_mask(self) -> np.ndarray:
        """Boolean array over DOFs, derived from the node ownership."""
        return np.repeat(self._owned, self.n_dim)
