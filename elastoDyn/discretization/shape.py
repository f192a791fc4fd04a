"""
Lagrange shape functions and Gauss data tables.

For every element type this module evaluates the shape functions N_a and
their reference derivatives dN_a/dxi at the points of a quadrature rule
and packs them in a flat table, one block per Gauss point:

    [w, xi, eta, zeta,  N_0, dN_0/dxi, dN_0/deta, dN_0/dzeta,  N_1, ...]

so each block has 4 * (1 + n_nodes) entries: a weight slot followed by
the reference coordinates, then a fixed stride of 4 per node. Unused
derivative slots (lower-dimensional elements) are zero.

The kernels read this table through block_size()/unpack_block(); the
layout is fixed so that tables can be cached and shared by all elements
of the same type and integration order.
"""

import numpy as np
from typing import Tuple, Union
from functools import lru_cache

from .element import ElementType, Cell, Face
from ..quadrature.gauss import GaussQuadrature

GAUSS_STRIDE = 4


def shape_functions(element_type: ElementType, xi: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Evaluate shape functions and reference derivatives at one point.

    Parameters:
        element_type: Element type
        xi: Reference coordinates, length element_type.dimension

    Returns:
        (N, dN) where:
        - N: Shape function values, shape (n_nodes,)
        - dN: Reference derivatives, shape (n_nodes, 3), unused columns zero
    """
    xi = np.asarray(xi, dtype=np.float64)
    n_nodes = element_type.n_nodes
    N = np.zeros(n_nodes)
    dN = np.zeros((n_nodes, 3))

    if element_type is ElementType.LINE2:
        s = xi[0]
        N[:] = [0.5 * (1.0 - s), 0.5 * (1.0 + s)]
        dN[:, 0] = [-0.5, 0.5]

    elif element_type is ElementType.TRI3:
        s, t = xi[0], xi[1]
        N[:] = [1.0 - s - t, s, t]
        dN[:, 0] = [-1.0, 1.0, 0.0]
        dN[:, 1] = [-1.0, 0.0, 1.0]

    elif element_type is ElementType.QUAD4:
        s, t = xi[0], xi[1]
        sa = np.array([-1.0, 1.0, 1.0, -1.0])
        ta = np.array([-1.0, -1.0, 1.0, 1.0])
        N[:] = 0.25 * (1.0 + sa * s) * (1.0 + ta * t)
        dN[:, 0] = 0.25 * sa * (1.0 + ta * t)
        dN[:, 1] = 0.25 * ta * (1.0 + sa * s)

    elif element_type is ElementType.TET4:
        s, t, u = xi[0], xi[1], xi[2]
        N[:] = [1.0 - s - t - u, s, t, u]
        dN[:, 0] = [-1.0, 1.0, 0.0, 0.0]
        dN[:, 1] = [-1.0, 0.0, 1.0, 0.0]
        dN[:, 2] = [-1.0, 0.0, 0.0, 1.0]

    elif element_type is ElementType.HEX8:
        s, t, u = xi[0], xi[1], xi[2]
        sa = np.array([-1.0, 1.0, 1.0, -1.0, -1.0, 1.0, 1.0, -1.0])
        ta = np.array([-1.0, -1.0, 1.0, 1.0, -1.0, -1.0, 1.0, 1.0])
        ua = np.array([-1.0, -1.0, -1.0, -1.0, 1.0, 1.0, 1.0, 1.0])
        N[:] = 0.125 * (1.0 + sa * s) * (1.0 + ta * t) * (1.0 + ua * u)
        dN[:, 0] = 0.125 * sa * (1.0 + ta * t) * (1.0 + ua * u)
        dN[:, 1] = 0.125 * ta * (1.0 + sa * s) * (1.0 + ua * u)
        dN[:, 2] = 0.125 * ua * (1.0 + sa * s) * (1.0 + ta * t)

    else:
        raise ValueError(f"Unsupported element type: {element_type}")

    return N, dN


def quadrature_for(element_type: ElementType, order: Tuple[int, ...]) -> GaussQuadrature:
    """
    Quadrature rule for an element type and a per-axis integration order.

    Tensor elements use order[d] points along reference axis d; simplices
    use the largest order among their axes to select the rule.
    """
    dim = element_type.dimension
    per_dir = tuple(max(int(n), 1) for n in tuple(order)[:dim])
    if len(per_dir) < dim:
        per_dir = per_dir + (per_dir[-1] if per_dir else 1,) * (dim - len(per_dir))
    return GaussQuadrature(per_dir, simplex=element_type.is_simplex)


@lru_cache(maxsize=64)
def _gauss_table(element_type: ElementType, order: Tuple[int, ...]) -> Tuple[int, np.ndarray]:
    quad = quadrature_for(element_type, order)
    n_nodes = element_type.n_nodes
    block = GAUSS_STRIDE * (1 + n_nodes)
    vec = np.zeros(quad.n_points * block)

    for q in range(quad.n_points):
        ig = q * block
        xi = quad.points[q]
        vec[ig] = quad.weights[q]
        vec[ig + 1:ig + 1 + len(xi)] = xi

        N, dN = shape_functions(element_type, xi)
        for a in range(n_nodes):
            k = ig + GAUSS_STRIDE * (1 + a)
            vec[k] = N[a]
            vec[k + 1:k + 4] = dN[a]

    vec.setflags(write=False)
    return quad.n_points, vec


class ShapeFunctionProvider:
    """
    Supplies Gauss data tables for mesh items.

    Tables depend only on the element type and the integration order, so
    they are computed once and cached.
    """

    def gauss_data(self, item: Union[Cell, Face, ElementType],
                   order: Tuple[int, ...]) -> Tuple[int, np.ndarray]:
        """
        Gauss data for a cell or face.

        Parameters:
            item: Cell, Face, or directly an ElementType
            order: Integration order per reference axis, e.g. (2, 2, 2)

        Returns:
            (n_gauss, vec) with the flat layout described in the module docstring
        """
        element_type = item if isinstance(item, ElementType) else item.type
        return _gauss_table(element_type, tuple(int(n) for n in order))


def block_size(n_nodes: int) -> int:
    """Length of one Gauss point block."""
    return GAUSS_STRIDE * (1 + n_nodes)


def unpack_block(vec: np.ndarray, ig: int, n_nodes: int) -> Tuple[float, np.ndarray, np.ndarray]:
    """
    Split the Gauss point block starting at offset ig.

    Returns:
        (weight, N, dN) where N has shape (n_nodes,) and dN (n_nodes, 3)
    """
    nodal = vec[ig + GAUSS_STRIDE:ig + block_size(n_nodes)].reshape(n_nodes, GAUSS_STRIDE)
    return vec[ig], nodal[:, 0], nodal[:, 1:4]
