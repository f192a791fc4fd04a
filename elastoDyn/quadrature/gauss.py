"""
Gauss quadrature rules for finite elements.

Gauss-Legendre quadrature provides optimal polynomial integration:
n points integrate exactly polynomials up to degree 2n-1.

Reference domains:
- Lines, quadrilaterals and hexahedra use [-1, 1]^d (tensor-product rules)
- Triangles use the unit simplex {xi, eta >= 0, xi + eta <= 1}
- Tetrahedra use the unit simplex {xi, eta, zeta >= 0, xi + eta + zeta <= 1}

Tensor weights sum to 2^d, simplex weights sum to the reference measure
(1/2 for the triangle, 1/6 for the tetrahedron).

Usage:
    points, weights = gauss_legendre_1d(n)          # 1D rule on [-1,1]
    points, weights = gauss_legendre_2d(n_xi, n_eta)
    points, weights = triangle_rule(order)
"""

import numpy as np
from typing import Tuple
from functools import lru_cache


@lru_cache(maxsize=16)
def gauss_legendre_1d(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Gauss-Legendre quadrature points and weights on [-1, 1].

    Parameters:
        n: Number of quadrature points

    Returns:
        (points, weights) where:
        - points: Array of n quadrature points in [-1, 1]
        - weights: Array of n quadrature weights (sum to 2)
    """
    if n < 1:
        raise ValueError("Need at least 1 quadrature point")

    points, weights = np.polynomial.legendre.leggauss(n)
    return points.copy(), weights.copy()


def gauss_legendre_2d(n_xi: int, n_eta: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Tensor-product Gauss-Legendre quadrature on [-1,1]^2.

    Returns:
        (points, weights) where:
        - points: Array of shape (n_xi * n_eta, 2) with (xi, eta) coordinates
        - weights: Array of shape (n_xi * n_eta,) with weights
    """
    xi_pts, xi_wts = gauss_legendre_1d(n_xi)
    eta_pts, eta_wts = gauss_legendre_1d(n_eta)

    n_total = n_xi * n_eta
    points = np.zeros((n_total, 2))
    weights = np.zeros(n_total)

    idx = 0
    for i in range(n_xi):
        for j in range(n_eta):
            points[idx, 0] = xi_pts[i]
            points[idx, 1] = eta_pts[j]
            weights[idx] = xi_wts[i] * eta_wts[j]
            idx += 1

    return points, weights


def gauss_legendre_3d(n_xi: int, n_eta: int, n_zeta: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Tensor-product Gauss-Legendre quadrature on [-1,1]^3.

    Returns:
        (points, weights) where:
        - points: Array of shape (n_total, 3) with (xi, eta, zeta) coordinates
        - weights: Array of shape (n_total,) with weights
    """
    xi_pts, xi_wts = gauss_legendre_1d(n_xi)
    eta_pts, eta_wts = gauss_legendre_1d(n_eta)
    zeta_pts, zeta_wts = gauss_legendre_1d(n_zeta)

    n_total = n_xi * n_eta * n_zeta
    points = np.zeros((n_total, 3))
    weights = np.zeros(n_total)

    idx = 0
    for i in range(n_xi):
        for j in range(n_eta):
            for k in range(n_zeta):
                points[idx, 0] = xi_pts[i]
                points[idx, 1] = eta_pts[j]
                points[idx, 2] = zeta_pts[k]
                weights[idx] = xi_wts[i] * eta_wts[j] * zeta_wts[k]
                idx += 1

    return points, weights


def triangle_rule(order: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Symmetric quadrature on the unit triangle.

    Parameters:
        order: 1 for the centroid rule (exact for degree 1),
               >= 2 for the 3-point rule (exact for degree 2)

    Returns:
        (points, weights) with points of shape (n, 2), weights summing to 1/2
    """
    if order < 1:
        raise ValueError("Need at least 1 quadrature point")
    if order == 1:
        return np.array([[1.0 / 3.0, 1.0 / 3.0]]), np.array([0.5])

    a, b = 1.0 / 6.0, 2.0 / 3.0
    points = np.array([[a, a], [b, a], [a, b]])
    weights = np.full(3, 1.0 / 6.0)
    return points, weights


def tetrahedron_rule(order: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Symmetric quadrature on the unit tetrahedron.

    Parameters:
        order: 1 for the centroid rule (exact for degree 1),
               >= 2 for the 4-point rule (exact for degree 2)

    Returns:
        (points, weights) with points of shape (n, 3), weights summing to 1/6
    """
    if order < 1:
        raise ValueError("Need at least 1 quadrature point")
    if order == 1:
        return np.array([[0.25, 0.25, 0.25]]), np.array([1.0 / 6.0])

    a = (5.0 - np.sqrt(5.0)) / 20.0
    b = (5.0 + 3.0 * np.sqrt(5.0)) / 20.0
    points = np.array([
        [a, a, a],
        [b, a, a],
        [a, b, a],
        [a, a, b],
    ])
    weights = np.full(4, 1.0 / 24.0)
    return points, weights


class GaussQuadrature:
    """
    Encapsulates a quadrature rule for element integration.

    Attributes:
        n_points_per_dir: Number of quadrature points per reference direction
                          (tensor rules) or the rule order (simplex rules)
        simplex: True for triangle/tetrahedron rules
    """

    def __init__(self, n_points_per_dir: Tuple[int, ...], simplex: bool = False):
        """
        Initialize quadrature.

        Parameters:
            n_points_per_dir: Number of points in each direction
            simplex: Use the simplex rules of the same dimension instead of
                     the tensor-product Gauss-Legendre rules
        """
        self.n_points_per_dir = tuple(n_points_per_dir)
        self.n_dim = len(self.n_points_per_dir)
        self.simplex = simplex

        if simplex:
            order = max(self.n_points_per_dir)
            if self.n_dim == 2:
                self._points, self._weights = triangle_rule(order)
            elif self.n_dim == 3:
                self._points, self._weights = tetrahedron_rule(order)
            else:
                raise ValueError(f"Unsupported simplex dimension: {self.n_dim}")
        elif self.n_dim == 1:
            self._points, self._weights = gauss_legendre_1d(self.n_points_per_dir[0])
            self._points = self._points.reshape(-1, 1)
        elif self.n_dim == 2:
            self._points, self._weights = gauss_legendre_2d(*self.n_points_per_dir)
        elif self.n_dim == 3:
            self._points, self._weights = gauss_legendre_3d(*self.n_points_per_dir)
        else:
            raise ValueError(f"Unsupported dimension: {self.n_dim}")

    @property
    def n_points(self) -> int:
        """Total number of quadrature points."""
        return len(self._weights)

    @property
    def points(self) -> np.ndarray:
        """Quadrature points, shape (n_points, n_dim)."""
        return self._points

    @property
    def weights(self) -> np.ndarray:
        """Quadrature weights, shape (n_points,)."""
        return self._weights
