"""
Unit tests for elemental operators: Jacobians, mass, stiffness, loads
and paraxial impedances.
"""

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal

from elastoDyn.discretization.element import ElementType, Cell, Face
from elastoDyn.solver.kernels import (
    ElementKernel, DegenerateElementError, compute_jacobian,
    strain_displacement_matrix, elasticity_matrix, paraxial_operator,
    compute_paraxial_load
)

# Reference-shaped elements of unit edge length
UNIT_CELLS = {
    ElementType.TRI3: np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
    ElementType.QUAD4: np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]),
    ElementType.TET4: np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                                [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]),
    ElementType.HEX8: np.array([
        [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0], [1.0, 0.0, 1.0], [1.0, 1.0, 1.0], [0.0, 1.0, 1.0],
    ]),
}

VOLUMES = {
    ElementType.TRI3: 0.5,
    ElementType.QUAD4: 1.0,
    ElementType.TET4: 1.0 / 6.0,
    ElementType.HEX8: 1.0,
}


def make_cell(element_type, coords=None):
    """Cell record and padded coordinates of a test element."""
    if coords is None:
        coords = UNIT_CELLS[element_type]
    padded = np.zeros((len(coords), 3))
    padded[:, :coords.shape[1]] = coords
    cell = Cell(0, element_type, tuple(range(len(coords))))
    return cell, padded


def rigid_modes(coords, n_dim):
    """Translations and infinitesimal rotations, flattened node-major."""
    modes = []
    for d in range(n_dim):
        u = np.zeros((len(coords), n_dim))
        u[:, d] = 1.0
        modes.append(u.ravel())
    if n_dim == 2:
        u = np.stack([-coords[:, 1], coords[:, 0]], axis=1)
        modes.append(u.ravel())
    else:
        for axis in np.eye(3):
            modes.append(np.cross(axis, coords).ravel())
    return modes


class TestJacobian:
    """Tests for the Jacobian at Gauss points."""

    def test_unit_square(self):
        """Test that [0,1]^2 maps from [-1,1]^2 with J = I/2."""
        cell, coords = make_cell(ElementType.QUAD4)
        kernel = ElementKernel(2, (2, 2))
        jac, det = kernel.jacobian(cell, coords)
        assert_array_almost_equal(jac, 0.5 * np.eye(2))
        assert_almost_equal(det, 0.25)

    def test_line_face_length(self):
        """Test that an edge's Jacobian determinant is half its length."""
        face = Face(0, ElementType.LINE2, (0, 1))
        coords = np.array([[0.0, 0.0, 0.0], [3.0, 4.0, 0.0]])
        jac, det = ElementKernel(2, (2, 2)).jacobian(face, coords)
        assert jac.shape == (1, 2)
        assert_almost_equal(det, 2.5)

    def test_triangle_face_in_3d(self):
        """Test the area scaling of a triangular face."""
        face = Face(0, ElementType.TRI3, (0, 1, 2))
        coords = np.array([[0.0, 0.0, 1.0], [2.0, 0.0, 1.0], [0.0, 2.0, 1.0]])
        _, det = ElementKernel(3, (2, 2, 2)).jacobian(face, coords)
        # Area 2 over the reference area 1/2
        assert_almost_equal(det, 4.0)

    def test_degenerate_quad(self):
        """Test that a flattened quadrilateral aborts."""
        coords = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]])
        cell, coords = make_cell(ElementType.QUAD4, coords)
        kernel = ElementKernel(2, (2, 2))
        with pytest.raises(DegenerateElementError, match="cell 0"):
            kernel.compute_element_mass(cell, coords, 1.0)

    def test_nearly_degenerate_is_scale_independent(self):
        """Test that tiny but well-shaped elements are accepted."""
        coords = 1e-6 * UNIT_CELLS[ElementType.TRI3]
        cell, coords = make_cell(ElementType.TRI3, coords)
        _, det = ElementKernel(2, (1, 1)).jacobian(cell, coords)
        assert_almost_equal(det / 1e-12, 1.0)

    def test_sliver_tetrahedron(self):
        """Test that a tetrahedron with coplanar nodes aborts."""
        dN = np.zeros((4, 3))
        dN[:, 0] = [-1.0, 1.0, 0.0, 0.0]
        dN[:, 1] = [-1.0, 0.0, 1.0, 0.0]
        dN[:, 2] = [-1.0, 0.0, 0.0, 1.0]
        coords = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                           [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]])
        with pytest.raises(DegenerateElementError):
            compute_jacobian(coords, dN, 3, 3, "tet")

    def test_gauss_point_range(self):
        """Test that an out-of-range Gauss point index is refused."""
        cell, coords = make_cell(ElementType.QUAD4)
        with pytest.raises(IndexError):
            ElementKernel(2, (2, 2)).jacobian(cell, coords, gauss_point=4)


class TestMaterialMatrices:
    """Tests for B and D."""

    def test_elasticity_2d(self):
        """Test plane-strain D."""
        D = elasticity_matrix(2.0, 1.0, 2)
        assert_array_almost_equal(D, [[4.0, 2.0, 0.0], [2.0, 4.0, 0.0], [0.0, 0.0, 1.0]])

    def test_elasticity_3d(self):
        """Test 3D D: lambda + 2mu on normal diagonal, mu on shear diagonal."""
        D = elasticity_matrix(2.0, 1.0, 3)
        assert_array_almost_equal(np.diag(D), [4.0, 4.0, 4.0, 1.0, 1.0, 1.0])
        assert_almost_equal(D[0, 1], 2.0)
        assert_almost_equal(D[3, 0], 0.0)

    def test_strain_rows_3d(self):
        """Test the strain ordering [exx, eyy, ezz, gxy, gxz, gyz]."""
        dN_dx = np.array([[1.0, 2.0, 3.0]])
        B = strain_displacement_matrix(dN_dx, 3)
        # Unit displacement along y of the single node
        strain = B @ np.array([0.0, 1.0, 0.0])
        assert_array_almost_equal(strain, [0.0, 2.0, 0.0, 1.0, 0.0, 3.0])


class TestElementMatrices:
    """Tests for elemental mass and stiffness."""

    @pytest.mark.parametrize("element_type", list(UNIT_CELLS))
    def test_stiffness_symmetric_and_rigid(self, element_type, rock):
        """Test symmetry and that rigid-body modes carry no force."""
        n_dim = element_type.dimension
        cell, coords = make_cell(element_type)
        K = ElementKernel(n_dim, (2, 2, 2)).compute_element_stiffness(
            cell, coords, rock.lame_lambda, rock.lame_mu)

        assert np.array_equal(K, K.T)
        scale = np.abs(K).max()
        for mode in rigid_modes(coords[:, :n_dim], n_dim):
            assert np.abs(K @ mode).max() < 1e-10 * scale

    @pytest.mark.parametrize("element_type", list(UNIT_CELLS))
    def test_stiffness_rank(self, element_type):
        """Test that only rigid-body modes are in the null space."""
        n_dim = element_type.dimension
        cell, coords = make_cell(element_type)
        K = ElementKernel(n_dim, (2, 2, 2)).compute_element_stiffness(cell, coords, 1.0, 1.0)
        eig = np.linalg.eigvalsh(K)
        n_rigid = 3 if n_dim == 2 else 6
        assert np.all(eig > -1e-10 * eig.max())
        assert np.sum(eig < 1e-10 * eig.max()) == n_rigid

    @pytest.mark.parametrize("element_type", list(UNIT_CELLS))
    def test_uniaxial_strain_energy(self, element_type):
        """Test that u_x = eps x stores 0.5 (lambda + 2mu) eps^2 V."""
        n_dim = element_type.dimension
        lam, mu, eps = 2.0, 1.5, 1e-3
        cell, coords = make_cell(element_type)
        K = ElementKernel(n_dim, (2, 2, 2)).compute_element_stiffness(cell, coords, lam, mu)

        u = np.zeros((len(coords), n_dim))
        u[:, 0] = eps * coords[:, 0]
        energy = 0.5 * u.ravel() @ K @ u.ravel()
        expected = 0.5 * (lam + 2 * mu) * eps**2 * VOLUMES[element_type]
        assert_almost_equal(energy / expected, 1.0, decimal=10)

    def test_shear_energy_quad(self):
        """Test that u_x = g y stores 0.5 mu g^2 V."""
        cell, coords = make_cell(ElementType.QUAD4)
        K = ElementKernel(2, (2, 2)).compute_element_stiffness(cell, coords, 3.0, 2.0)
        u = np.zeros((4, 2))
        u[:, 0] = 0.01 * coords[:, 1]
        energy = 0.5 * u.ravel() @ K @ u.ravel()
        assert_almost_equal(energy / (0.5 * 2.0 * 1e-4), 1.0, decimal=10)

    @pytest.mark.parametrize("element_type", list(UNIT_CELLS))
    def test_mass_total(self, element_type):
        """Test that the mass matrix sums to n_dim * rho * V."""
        n_dim = element_type.dimension
        rho = 2500.0
        cell, coords = make_cell(element_type)
        M = ElementKernel(n_dim, (2, 2, 2)).compute_element_mass(cell, coords, rho)

        assert M.shape == (n_dim * element_type.n_nodes,) * 2
        assert np.array_equal(M, M.T)
        assert_almost_equal(M.sum() / (n_dim * rho * VOLUMES[element_type]), 1.0)

    def test_mass_axis_decoupled(self):
        """Test that mass does not couple different axes."""
        cell, coords = make_cell(ElementType.QUAD4)
        M = ElementKernel(2, (2, 2)).compute_element_mass(cell, coords, 1.0)
        assert_array_almost_equal(M[0::2, 1::2], np.zeros((4, 4)))
        # Consistent mass of the unit square: 4/36 on the diagonal
        assert_almost_equal(M[0, 0], 1.0 / 9.0)

    def test_clockwise_ordering(self):
        """Test that reversed node ordering gives the same operators."""
        cell, coords = make_cell(ElementType.QUAD4)
        reversed_coords = coords[[0, 3, 2, 1]]
        kernel = ElementKernel(2, (2, 2))
        M1 = kernel.compute_element_mass(cell, coords, 1.0)
        M2 = kernel.compute_element_mass(cell, reversed_coords, 1.0)
        assert_almost_equal(M1.sum(), M2.sum())
        K2 = kernel.compute_element_stiffness(cell, reversed_coords, 1.0, 1.0)
        assert np.all(np.diag(K2) > 0.0)

    def test_body_force(self):
        """Test that gravity loads total rho g V."""
        cell, coords = make_cell(ElementType.HEX8)
        coords = coords * 2.0
        f = ElementKernel(3, (2, 2, 2)).compute_body_force(cell, coords, 1000.0, [0.0, 0.0, -9.81])
        assert f.shape == (24,)
        assert_almost_equal(f[2::3].sum(), -9.81 * 1000.0 * 8.0)
        assert_almost_equal(np.abs(f[0::3]).sum(), 0.0)
        # Uniform box: equal nodal shares
        assert_array_almost_equal(f[2::3], np.full(8, -9.81 * 1000.0))


class TestBoundaryOperators:
    """Tests for traction and paraxial face operators."""

    def test_paraxial_operator(self):
        """Test A0 = rho (cp - cs) n n + rho cs I."""
        A0 = paraxial_operator(2.0, 3.0, 1.0, np.array([1.0, 0.0, 0.0]), 2)
        assert_array_almost_equal(A0, [[6.0, 0.0], [0.0, 2.0]])

        n = np.array([0.6, 0.8, 0.0])
        A0 = paraxial_operator(1.0, 5.0, 2.0, n, 3)
        assert_array_almost_equal(A0 @ n, 5.0 * n)
        tangent = np.array([-0.8, 0.6, 0.0])
        assert_array_almost_equal(A0 @ tangent, 2.0 * tangent)

    def test_impedance_line(self):
        """Test a 2D edge: uniform normal velocity meets rho cp L."""
        face = Face(0, ElementType.LINE2, (0, 1))
        coords = np.array([[1.0, 0.0, 0.0], [1.0, 2.0, 0.0]])
        Z = ElementKernel(2, (2, 2)).compute_paraxial_impedance(
            face, coords, 2000.0, 500.0, 300.0, np.array([1.0, 0.0, 0.0]))

        assert np.array_equal(Z, Z.T)
        force = Z @ np.array([1.0, 0.0, 1.0, 0.0])
        assert_almost_equal(force[0::2].sum(), 2000.0 * 500.0 * 2.0)
        assert_almost_equal(np.abs(force[1::2]).sum(), 0.0)

        force = Z @ np.array([0.0, 1.0, 0.0, 1.0])
        assert_almost_equal(force[1::2].sum(), 2000.0 * 300.0 * 2.0)

    def test_impedance_oblique_line(self):
        """Test that an inclined edge gives an exactly symmetric Z with A0 blocks."""
        face = Face(0, ElementType.LINE2, (0, 1))
        coords = np.array([[0.0, 0.0, 0.0], [0.8, -0.6, 0.0]])
        normal = np.array([0.6, 0.8, 0.0])
        Z = ElementKernel(2, (2, 2)).compute_paraxial_impedance(
            face, coords, 1700.0, 350.0, 180.0, normal)

        assert Z.shape == (4, 4)
        assert np.array_equal(Z, Z.T)
        A0 = paraxial_operator(1700.0, 350.0, 180.0, normal, 2)
        # Consistent LINE2 face mass: L/3 on the diagonal, L/6 off it
        assert_array_almost_equal(Z[:2, :2], A0 / 3.0)
        assert_array_almost_equal(Z[:2, 2:], A0 / 6.0)

    def test_impedance_mesh_faces(self, unit_quad_mesh):
        """Test that every boundary edge of a quad mesh has a symmetric Z."""
        kernel = ElementKernel(2, (2, 2))
        normals = {"xmin": [-1.0, 0.0, 0.0], "xmax": [1.0, 0.0, 0.0],
                   "ymin": [0.0, -1.0, 0.0], "ymax": [0.0, 1.0, 0.0]}
        for group, normal in normals.items():
            for face in unit_quad_mesh.face_group(group):
                assert face.type is ElementType.LINE2
                coords = unit_quad_mesh.item_coordinates(face)
                Z = kernel.compute_paraxial_impedance(
                    face, coords, 2000.0, 500.0, 300.0, np.array(normal))
                assert np.array_equal(Z, Z.T)
                # Edge of length 1/2, axis-aligned normal: A0 = diag(rho cp, rho cs)
                assert_almost_equal(Z.sum() / (2000.0 * (500.0 + 300.0) * 0.5), 1.0)

    @pytest.mark.parametrize("face_type", [ElementType.TRI3, ElementType.QUAD4])
    def test_impedance_surface(self, face_type):
        """Test 3D faces: symmetric, and shear resistance rho cs A."""
        coords = {
            ElementType.TRI3: np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]),
            ElementType.QUAD4: np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                                         [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]),
        }[face_type]
        area = 0.5 if face_type is ElementType.TRI3 else 1.0
        face = Face(0, face_type, tuple(range(face_type.n_nodes)))
        Z = ElementKernel(3, (2, 2, 2)).compute_paraxial_impedance(
            face, coords, 1.0, 4.0, 2.0, np.array([0.0, 0.0, -1.0]))

        assert np.array_equal(Z, Z.T)
        v = np.tile([1.0, 0.0, 0.0], face_type.n_nodes)
        assert_almost_equal((Z @ v)[0::3].sum(), 2.0 * area)
        v = np.tile([0.0, 0.0, 1.0], face_type.n_nodes)
        assert_almost_equal((Z @ v)[2::3].sum(), 4.0 * area)

    def test_traction_lumped(self):
        """Test that a traction is shared equally by the face nodes."""
        face = Face(0, ElementType.LINE2, (0, 1))
        coords = np.array([[0.0, 0.0, 0.0], [0.0, 2.0, 0.0]])
        f = ElementKernel(2, (2, 2)).compute_traction_load(face, coords, [3.0, -1.0, 7.0])
        assert_array_almost_equal(f, [3.0, -1.0, 3.0, -1.0])

    def test_paraxial_load(self):
        """Test Z (c1 d + c2 a + c3 v)."""
        Z = np.array([[2.0, 1.0], [1.0, 2.0]])
        d = np.array([1.0, 0.0])
        v = np.array([0.0, 1.0])
        a = np.array([1.0, 1.0])
        f = compute_paraxial_load(Z, d, v, a, c1=10.0, c2=0.5, c3=2.0)
        assert_array_almost_equal(f, Z @ np.array([10.5, 2.5]))
