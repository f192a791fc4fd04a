"""
Unit tests for Gauss-Legendre and simplex quadrature.
"""

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal

from elastoDyn.quadrature.gauss import (
    gauss_legendre_1d, gauss_legendre_2d, gauss_legendre_3d,
    triangle_rule, tetrahedron_rule, GaussQuadrature
)


class TestGaussLegendre1D:
    """Tests for 1D Gauss-Legendre quadrature."""

    def test_weights_sum_to_two(self):
        """Test that weights sum to 2 (domain is [-1,1])."""
        for n in [1, 2, 3, 4, 5]:
            pts, wts = gauss_legendre_1d(n)
            assert_almost_equal(np.sum(wts), 2.0, decimal=14)

    def test_points_in_domain(self):
        """Test that all points are in (-1, 1)."""
        for n in [1, 2, 3, 4, 5]:
            pts, wts = gauss_legendre_1d(n)
            assert np.all(pts > -1.0)
            assert np.all(pts < 1.0)

    def test_integrate_polynomial(self):
        """Test exact integration of polynomials up to degree 2n-1."""
        # n=2 is exact up to degree 3: int_-1^1 x^2 dx = 2/3
        pts, wts = gauss_legendre_1d(2)
        assert_almost_equal(np.sum(pts**2 * wts), 2.0 / 3.0, decimal=14)
        assert_almost_equal(np.sum(pts**3 * wts), 0.0, decimal=14)

        # n=3 is exact up to degree 5: int_-1^1 x^4 dx = 2/5
        pts, wts = gauss_legendre_1d(3)
        assert_almost_equal(np.sum(pts**4 * wts), 0.4, decimal=14)

    def test_rejects_zero_points(self):
        """Test that a rule without points is refused."""
        with pytest.raises(ValueError):
            gauss_legendre_1d(0)

    def test_cached_arrays_not_shared(self):
        """Test that modifying returned arrays does not corrupt the cache."""
        pts, wts = gauss_legendre_2d(2, 2)
        wts[:] = 0.0
        assert_almost_equal(np.sum(gauss_legendre_2d(2, 2)[1]), 4.0)


class TestGaussLegendreTensor:
    """Tests for 2D and 3D tensor-product rules."""

    def test_weights_sum(self):
        """Test that weights sum to the reference measure 2^d."""
        for n in [1, 2, 3]:
            pts, wts = gauss_legendre_2d(n, n)
            assert_almost_equal(np.sum(wts), 4.0, decimal=14)
            pts, wts = gauss_legendre_3d(n, n, n)
            assert_almost_equal(np.sum(wts), 8.0, decimal=14)

    def test_points_shape(self):
        """Test shape of tensor quadrature points."""
        pts, wts = gauss_legendre_2d(3, 4)
        assert pts.shape == (12, 2)
        assert wts.shape == (12,)

        pts, wts = gauss_legendre_3d(2, 3, 4)
        assert pts.shape == (24, 3)
        assert wts.shape == (24,)

    def test_integrate_polynomial_2d(self):
        """Test 2D integration of x^2 y^2 on [-1,1]^2."""
        pts, wts = gauss_legendre_2d(2, 2)
        result = np.sum(pts[:, 0]**2 * pts[:, 1]**2 * wts)
        assert_almost_equal(result, 4.0 / 9.0, decimal=14)


class TestSimplexRules:
    """Tests for triangle and tetrahedron rules."""

    def test_triangle_weights(self):
        """Test that triangle weights sum to 1/2."""
        for order in [1, 2]:
            pts, wts = triangle_rule(order)
            assert_almost_equal(np.sum(wts), 0.5, decimal=14)

    def test_triangle_degree_two(self):
        """Test that the 3-point rule integrates x^2 exactly."""
        # int_T x^2 dA = 1/12 on the unit triangle
        pts, wts = triangle_rule(2)
        assert_almost_equal(np.sum(pts[:, 0]**2 * wts), 1.0 / 12.0, decimal=14)
        assert_almost_equal(np.sum(pts[:, 0] * pts[:, 1] * wts), 1.0 / 24.0, decimal=14)

    def test_tetrahedron_weights(self):
        """Test that tetrahedron weights sum to 1/6."""
        for order in [1, 2]:
            pts, wts = tetrahedron_rule(order)
            assert_almost_equal(np.sum(wts), 1.0 / 6.0, decimal=14)

    def test_tetrahedron_degree_two(self):
        """Test that the 4-point rule integrates x^2 exactly."""
        # int_T x^2 dV = 1/60 on the unit tetrahedron
        pts, wts = tetrahedron_rule(2)
        assert_almost_equal(np.sum(pts[:, 0]**2 * wts), 1.0 / 60.0, decimal=14)

    def test_points_inside(self):
        """Test that simplex points lie inside the reference simplex."""
        pts, _ = tetrahedron_rule(2)
        assert np.all(pts > 0.0)
        assert np.all(pts.sum(axis=1) < 1.0)


class TestGaussQuadratureClass:
    """Tests for GaussQuadrature class."""

    def test_1d_quadrature(self):
        """Test 1D quadrature via class."""
        quad = GaussQuadrature((3,))
        assert quad.n_dim == 1
        assert quad.n_points == 3
        assert quad.points.shape == (3, 1)

    def test_2d_quadrature(self):
        """Test 2D quadrature via class."""
        quad = GaussQuadrature((3, 4))
        assert quad.n_dim == 2
        assert quad.n_points == 12
        assert quad.points.shape == (12, 2)

    def test_simplex_quadrature(self):
        """Test that the simplex flag selects the simplex rules."""
        quad = GaussQuadrature((2, 2), simplex=True)
        assert quad.n_points == 3
        assert_almost_equal(np.sum(quad.weights), 0.5)

        quad = GaussQuadrature((1, 1, 1), simplex=True)
        assert quad.n_points == 1
        assert_array_almost_equal(quad.points, [[0.25, 0.25, 0.25]])

    def test_properties(self):
        """Test quadrature properties."""
        quad = GaussQuadrature((3, 3))

        assert quad.n_dim == 2
        assert quad.n_points == 9
        assert quad.points.shape == (9, 2)
        assert quad.weights.shape == (9,)
        assert_almost_equal(np.sum(quad.weights), 4.0)

    def test_unsupported_dimension(self):
        """Test that 4D rules are refused."""
        with pytest.raises(ValueError):
            GaussQuadrature((2, 2, 2, 2))
