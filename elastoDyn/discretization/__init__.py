"""
Discretization module.

Provides:
- ElementType, Node, Cell, Face: mesh item records
- Mesh: unstructured mesh with groups and ownership
- ShapeFunctionProvider: Gauss data tables per element type
- NodeDofMap: (node, axis) -> DOF numbering and the owned-DOF predicate
- Face geometry: measures and local orthonormal frames
"""

from .element import ElementType, Node, Cell, Face
from .shape import ShapeFunctionProvider, shape_functions
from .geometry import face_measure, face_frame

# Import mesh components separately to avoid circular imports
# Users should import these directly: from elastoDyn.discretization.mesh import ...
