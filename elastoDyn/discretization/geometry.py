"""
Geometric helpers for boundary faces.

- face_measure: length of an edge, area of a triangle or quadrilateral
- nodal_share: per-node share of a face measure (measure / n_nodes),
  used to lump a uniform traction onto the face nodes
- face_frame: local orthonormal frame of a boundary face

Frame conventions:
    2D (edge):  e1 = unit tangent (first to second node),
                e2 = outward unit normal, e3 = z axis
    3D (face):  e1, e2 = orthonormal tangent pair, e3 = outward unit normal

"Outward" is resolved against the centroid of the cell attached to the
face: the normal points away from it.
"""

import numpy as np
from typing import Tuple

from .element import ElementType


def face_measure(face_type: ElementType, coords: np.ndarray) -> float:
    """
    Length or area of a face.

    Parameters:
        face_type: LINE2, TRI3 or QUAD4
        coords: Node coordinates, shape (n_nodes, 3)
    """
    if face_type is ElementType.LINE2:
        return float(np.linalg.norm(coords[1] - coords[0]))
    if face_type is ElementType.TRI3:
        return 0.5 * float(np.linalg.norm(np.cross(coords[1] - coords[0], coords[2] - coords[0])))
    if face_type is ElementType.QUAD4:
        # Split on the 0-2 diagonal
        a1 = np.cross(coords[1] - coords[0], coords[2] - coords[0])
        a2 = np.cross(coords[2] - coords[0], coords[3] - coords[0])
        return 0.5 * float(np.linalg.norm(a1) + np.linalg.norm(a2))
    raise ValueError(f"No face measure for element type {face_type}")


def nodal_share(face_type: ElementType, coords: np.ndarray) -> float:
    """Face measure apportioned equally to each face node."""
    return face_measure(face_type, coords) / face_type.n_nodes


def face_frame(face_coords: np.ndarray, cell_centroid: np.ndarray,
               n_dim: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Local orthonormal frame (e1, e2, e3) of a boundary face.

    Parameters:
        face_coords: Face node coordinates, shape (n_nodes, 3)
        cell_centroid: Centroid of the cell attached to the face
        n_dim: Analysis dimension (2 or 3)

    Returns:
        (e1, e2, e3), each of shape (3,). The outward normal is e2 in 2D
        and e3 in 3D.
    """
    center = face_coords.mean(axis=0)
    outward = center - cell_centroid

    e1 = face_coords[1] - face_coords[0]
    e1 = e1 / np.linalg.norm(e1)

    if n_dim == 2:
        e3 = np.array([0.0, 0.0, 1.0])
        e2 = np.array([e1[1], -e1[0], 0.0])
        if np.dot(e2, outward) < 0.0:
            e2 = -e2
        return e1, e2, e3

    e3 = np.cross(face_coords[1] - face_coords[0], face_coords[2] - face_coords[0])
    e3 = e3 / np.linalg.norm(e3)
    if np.dot(e3, outward) < 0.0:
        e3 = -e3
    e2 = np.cross(e3, e1)
    return e1, e2, e3


def outward_normal(frame: Tuple[np.ndarray, np.ndarray, np.ndarray], n_dim: int) -> np.ndarray:
    """Pick the outward normal from a face frame."""
    return frame[1] if n_dim == 2 else frame[2]
