"""
Elemental operators for linear elastodynamics.

For a cell with n nodes in an n_dim analysis, elemental matrices have
size (n_dim * n) x (n_dim * n) with local row n_dim * a + l for node a and
axis l. All operators are integrated by Gauss quadrature:

    Mass:        M = sum_g w_g |J_g| rho N N^T          (x) I_ndim
    Stiffness:   K = sum_g w_g |J_g| B^T D B
    Body force:  f = sum_g w_g |J_g| rho N             (x) g

B is the strain-displacement matrix built from the physical derivatives
dN/dx = J^-1 dN/dxi, with engineering shear strains:

    2D (plane strain): [e_xx, e_yy, g_xy]
    3D:                [e_xx, e_yy, e_zz, g_xy, g_xz, g_yz]

D is the isotropic elasticity matrix: lambda + 2mu on the normal diagonal,
lambda between normal components, mu on the shear diagonal.

Boundary faces carry the zeroth-order paraxial (absorbing) operator

    A0(u) = rho (cp - cs) (n . u) n + rho cs u

integrated into an impedance matrix Z = sum_g w_g |J_g| N N^T (x) A0.
The time integrator decides how Z enters the LHS and RHS.

The Jacobian convention is J[i, j] = sum_a dN_a/dxi_i x_a[j]. A cell or
face whose Jacobian is degenerate aborts the computation with
DegenerateElementError.
"""

import numpy as np
from typing import Tuple, Union, Sequence

from ..discretization.element import Cell, Face
from ..discretization.shape import ShapeFunctionProvider, block_size, unpack_block
from ..discretization.geometry import nodal_share

# Relative precision below which a Jacobian is considered singular
REL_PREC = 1.0e-10


class DegenerateElementError(RuntimeError):
    """Raised when an element has a null (or nearly null) Jacobian."""
    pass


def compute_jacobian(coords: np.ndarray, dN: np.ndarray, dimension: int,
                     n_dim: int, label: str = "element") -> Tuple[np.ndarray, float]:
    """
    Jacobian matrix and determinant at one Gauss point.

    Parameters:
        coords: Node coordinates, shape (n_nodes, 3)
        dN: Reference derivatives, shape (n_nodes, 3)
        dimension: Topological dimension of the element
        n_dim: Analysis dimension (physical coordinates used)
        label: Element description used in the error message

    Returns:
        (jac, det) where jac has shape (dimension, n_dim). For full-dimensional
        cells det is the signed determinant; for faces it is the length
        (lines) or area scaling (surfaces), always non-negative.

    Raises:
        DegenerateElementError: if |det| is below REL_PREC relative to the
            product of the Jacobian row norms
    """
    jac = dN[:, :dimension].T @ coords[:, :n_dim]

    if dimension == n_dim:
        det = float(np.linalg.det(jac)) if n_dim == 3 else \
            float(jac[0, 0] * jac[1, 1] - jac[0, 1] * jac[1, 0])
    elif dimension == 1:
        det = float(np.linalg.norm(jac[0]))
    elif dimension == 2:
        t1 = np.zeros(3)
        t2 = np.zeros(3)
        t1[:n_dim] = jac[0]
        t2[:n_dim] = jac[1]
        det = float(np.linalg.norm(np.cross(t1, t2)))
    else:
        raise ValueError(f"{label}: dimension {dimension} exceeds analysis dimension {n_dim}")

    scale = float(np.prod(np.linalg.norm(jac, axis=1)))
    if scale == 0.0 or abs(det) < REL_PREC * scale:
        raise DegenerateElementError(f"Jacobian is null for {label} (det={det:.3e})")

    return jac, det


def strain_displacement_matrix(dN_dx: np.ndarray, n_dim: int) -> np.ndarray:
    """
    Strain-displacement matrix B.

    Parameters:
        dN_dx: Physical derivatives, shape (n_nodes, n_dim)
        n_dim: 2 or 3

    Returns:
        B of shape (3, 2n) in 2D or (6, 3n) in 3D
    """
    n_nodes = dN_dx.shape[0]
    if n_dim == 2:
        B = np.zeros((3, 2 * n_nodes))
        B[0, 0::2] = dN_dx[:, 0]
        B[1, 1::2] = dN_dx[:, 1]
        B[2, 0::2] = dN_dx[:, 1]
        B[2, 1::2] = dN_dx[:, 0]
        return B

    B = np.zeros((6, 3 * n_nodes))
    B[0, 0::3] = dN_dx[:, 0]
    B[1, 1::3] = dN_dx[:, 1]
    B[2, 2::3] = dN_dx[:, 2]
    # g_xy
    B[3, 0::3] = dN_dx[:, 1]
    B[3, 1::3] = dN_dx[:, 0]
    # g_xz
    B[4, 0::3] = dN_dx[:, 2]
    B[4, 2::3] = dN_dx[:, 0]
    # g_yz
    B[5, 1::3] = dN_dx[:, 2]
    B[5, 2::3] = dN_dx[:, 1]
    return B


def elasticity_matrix(lame_lambda: float, lame_mu: float, n_dim: int) -> np.ndarray:
    """Isotropic elasticity matrix D (plane strain in 2D)."""
    a = lame_lambda + 2.0 * lame_mu
    if n_dim == 2:
        return np.array([
            [a, lame_lambda, 0.0],
            [lame_lambda, a, 0.0],
            [0.0, 0.0, lame_mu],
        ])
    D = np.zeros((6, 6))
    D[:3, :3] = lame_lambda
    D[0, 0] = D[1, 1] = D[2, 2] = a
    D[3, 3] = D[4, 4] = D[5, 5] = lame_mu
    return D


def paraxial_operator(rho: float, cp: float, cs: float, normal: np.ndarray,
                      n_dim: int) -> np.ndarray:
    """Matrix of A0: rho (cp - cs) n (x) n + rho cs I, shape (n_dim, n_dim)."""
    n = np.asarray(normal, dtype=np.float64)[:n_dim]
    return rho * (cp - cs) * np.outer(n, n) + rho * cs * np.eye(n_dim)


class ElementKernel:
    """
    Gauss-point integration of elemental operators.

    Attributes:
        n_dim: Analysis dimension
        order: Integration order per reference axis
        provider: Source of Gauss data tables
    """

    def __init__(self, n_dim: int, order: Sequence[int],
                 provider: ShapeFunctionProvider = None):
        self.n_dim = n_dim
        self.order = tuple(int(n) for n in order)
        self.provider = provider if provider is not None else ShapeFunctionProvider()

    def _gauss_points(self, item: Union[Cell, Face], coords: np.ndarray):
        """
        Yield (wt, N, dN, jac) per Gauss point, wt = weight * |det J|.
        """
        element_type = item.type
        n_nodes = element_type.n_nodes
        n_gauss, vec = self.provider.gauss_data(item, self.order)
        label = f"{item.kind} {item.id} ({element_type.name})"
        stride = block_size(n_nodes)

        for ig in range(0, n_gauss * stride, stride):
            weight, N, dN = unpack_block(vec, ig, n_nodes)
            jac, det = compute_jacobian(coords, dN, element_type.dimension, self.n_dim, label)
            yield weight * abs(det), N, dN, jac

    def jacobian(self, item: Union[Cell, Face], coords: np.ndarray,
                 gauss_point: int = 0) -> Tuple[np.ndarray, float]:
        """Jacobian matrix and determinant at one Gauss point of an item."""
        n_nodes = item.type.n_nodes
        n_gauss, vec = self.provider.gauss_data(item, self.order)
        if not 0 <= gauss_point < n_gauss:
            raise IndexError(f"Gauss point {gauss_point} out of range (n_gauss={n_gauss})")
        _, _, dN = unpack_block(vec, gauss_point * block_size(n_nodes), n_nodes)
        label = f"{item.kind} {item.id} ({item.type.name})"
        return compute_jacobian(coords, dN, item.type.dimension, self.n_dim, label)

    def compute_element_mass(self, cell: Cell, coords: np.ndarray, rho: float) -> np.ndarray:
        """Consistent elemental mass matrix, block-diagonal over axes."""
        n_nodes = cell.type.n_nodes
        m = np.zeros((n_nodes, n_nodes))
        for wt, N, _, _ in self._gauss_points(cell, coords):
            m += wt * rho * np.outer(N, N)
        return np.kron(m, np.eye(self.n_dim))

    def compute_element_stiffness(self, cell: Cell, coords: np.ndarray,
                                  lame_lambda: float, lame_mu: float) -> np.ndarray:
        """Elemental stiffness matrix for isotropic elasticity."""
        size = self.n_dim * cell.type.n_nodes
        D = elasticity_matrix(lame_lambda, lame_mu, self.n_dim)
        K = np.zeros((size, size))
        for wt, _, dN, jac in self._gauss_points(cell, coords):
            dN_dx = dN[:, :self.n_dim] @ np.linalg.inv(jac).T
            B = strain_displacement_matrix(dN_dx, self.n_dim)
            K += wt * (B.T @ D @ B)
        # Round-off in B^T D B is not symmetric to the last bit
        return 0.5 * (K + K.T)

    def compute_body_force(self, cell: Cell, coords: np.ndarray, rho: float,
                           gravity: np.ndarray) -> np.ndarray:
        """Elemental load vector of a uniform body acceleration."""
        n_nodes = cell.type.n_nodes
        shape_integral = np.zeros(n_nodes)
        for wt, N, _, _ in self._gauss_points(cell, coords):
            shape_integral += wt * rho * N
        g = np.asarray(gravity, dtype=np.float64)[:self.n_dim]
        return np.outer(shape_integral, g).ravel()

    def compute_paraxial_impedance(self, face: Face, coords: np.ndarray, rho: float,
                                   cp: float, cs: float, normal: np.ndarray) -> np.ndarray:
        """
        Elemental paraxial impedance matrix Z = int N N^T (x) A0 over the face.
        """
        n_nodes = face.type.n_nodes
        A0 = paraxial_operator(rho, cp, cs, normal, self.n_dim)
        m = np.zeros((n_nodes, n_nodes))
        for wt, N, _, _ in self._gauss_points(face, coords):
            m += wt * np.outer(N, N)
        return np.kron(m, A0)

    def compute_traction_load(self, face: Face, coords: np.ndarray,
                              traction: np.ndarray) -> np.ndarray:
        """
        Elemental load of a uniform traction, lumped equally on face nodes.
        """
        share = nodal_share(face.type, coords)
        t = np.asarray(traction, dtype=np.float64)[:self.n_dim]
        return np.tile(t * share, face.type.n_nodes)


def compute_paraxial_load(impedance: np.ndarray, displacement: np.ndarray,
                          velocity: np.ndarray, acceleration: np.ndarray,
                          c1: float, c2: float, c3: float) -> np.ndarray:
    """
    RHS correction of a paraxial face from previous-step kinematics.

    Returns Z (c1 d_n + c2 a_n + c3 v_n), where d_n, v_n, a_n are the
    face-local previous-step fields flattened node-major.
    """
    return impedance @ (c1 * displacement + c2 * acceleration + c3 * velocity)

