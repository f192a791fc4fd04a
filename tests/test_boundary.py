"""
Unit tests for boundary condition flags, per-step values and absorbing faces.
"""

import logging

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal

from elastoDyn.discretization.mesh import make_quad_mesh, make_hex_mesh
from elastoDyn.io.config import DirichletConfig, NeumannConfig, ParaxialConfig
from elastoDyn.io.curves import CurveCache
from elastoDyn.solver.base import StepContext
from elastoDyn.solver.boundary import (
    NodalFields, CellFields, BoundaryConditionManager
)
from elastoDyn.solver.newmark import NewmarkParameters

XMIN = [0, 3, 6]
XMAX = [2, 5, 8]


def setup(mesh, dirichlet=(), neumann=(), paraxial=(), cells=None):
    boundary = BoundaryConditionManager(mesh, mesh.dimension, dirichlet=dirichlet,
                                        neumann=neumann, paraxial=paraxial)
    fields = NodalFields.zeros(mesh.n_nodes)
    if cells is None:
        cells = CellFields.zeros(mesh.n_cells)
    boundary.initialize(fields, cells)
    return boundary, fields


class TestFlags:
    """Tests for imposed masks set at initialization."""

    def test_surface_displacement(self, unit_quad_mesh):
        """Test that only the given axes of the surface nodes are flagged."""
        condition = DirichletConfig(target="xmin", displacement=(0.0, None, None))
        _, fields = setup(unit_quad_mesh, dirichlet=[condition])
        assert np.all(fields.imposed_displacement[XMIN, 0])
        assert not fields.imposed_displacement[XMIN, 1].any()
        assert not fields.imposed_displacement[XMAX].any()

    def test_surface_velocity_not_coupled(self, unit_quad_mesh):
        """Test that a surface velocity does not flag the displacement."""
        condition = DirichletConfig(target="xmin", velocity=(1.0, None, None))
        _, fields = setup(unit_quad_mesh, dirichlet=[condition])
        assert np.all(fields.imposed_velocity[XMIN, 0])
        assert not fields.imposed_displacement.any()

    def test_point_velocity_coupled(self, unit_quad_mesh):
        """Test that a point velocity also flags the displacement."""
        condition = DirichletConfig(target="xmin", on_points=True, velocity=(1.0, None, None))
        _, fields = setup(unit_quad_mesh, dirichlet=[condition])
        assert np.all(fields.imposed_velocity[XMIN, 0])
        assert np.all(fields.imposed_displacement[XMIN, 0])
        assert not fields.imposed_displacement[XMIN, 1].any()

    def test_point_force_pins_node(self, unit_quad_mesh):
        """Test that a point force flags force and displacement."""
        condition = DirichletConfig(target="xmax", on_points=True, force=(None, 5.0, None))
        _, fields = setup(unit_quad_mesh, dirichlet=[condition])
        assert np.all(fields.imposed_force[XMAX, 1])
        assert np.all(fields.imposed_displacement[XMAX, 1])

    def test_overlapping_surfaces_accumulate(self, unit_quad_mesh):
        """Test that a corner node keeps the flags of both of its sides."""
        conditions = [
            DirichletConfig(target="xmin", displacement=(0.0, None, None)),
            DirichletConfig(target="ymin", displacement=(None, 0.5, None)),
        ]
        boundary, fields = setup(unit_quad_mesh, dirichlet=conditions)
        assert list(fields.imposed_displacement[0, :2]) == [True, True]
        assert list(fields.imposed_displacement[1, :2]) == [False, True]

        fields.displacement[0, 0] = 9.0
        boundary.apply_dirichlet(fields, StepContext(0.1, 0.1, 1), NewmarkParameters())
        assert_array_almost_equal(fields.displacement[0, :2], [0.0, 0.5])
        assert_array_almost_equal(fields.displacement[3, :2], [0.0, 0.0])

    def test_curve_uses_selected_axes(self, unit_quad_mesh, tmp_path):
        """Test that a curve flags only the axes selected for it."""
        path = tmp_path / "u.txt"
        path.write_text("0.0 0.0 0.0\n1.0 1.0 1.0\n")
        condition = DirichletConfig(target="xmin", displacement_curve=path,
                                    axes=(False, True, False))
        _, fields = setup(unit_quad_mesh, dirichlet=[condition])
        assert not fields.imposed_displacement[XMIN, 0].any()
        assert np.all(fields.imposed_displacement[XMIN, 1])


class TestDirichletValues:
    """Tests for values written at the step time."""

    def test_constant_displacement(self, unit_quad_mesh):
        """Test that constants are written on flagged axes only."""
        condition = DirichletConfig(target="xmin", displacement=(0.2, None, None))
        boundary, fields = setup(unit_quad_mesh, dirichlet=[condition])
        fields.displacement[:, 1] = 7.0
        boundary.apply_dirichlet(fields, StepContext(0.1, 0.1, 1), NewmarkParameters())
        assert_array_almost_equal(fields.displacement[XMIN, 0], 0.2)
        assert_array_almost_equal(fields.displacement[XMIN, 1], 7.0)
        assert_array_almost_equal(fields.displacement[XMAX, 0], 0.0)

    def test_curve_displacement(self, unit_quad_mesh, tmp_path):
        """Test that the curve value at the step time is imposed."""
        path = tmp_path / "u.txt"
        path.write_text("0.0 0.0 0.0\n1.0 2.0 4.0\n")
        condition = DirichletConfig(target="xmin", displacement_curve=path,
                                    axes=(True, True, False))
        boundary, fields = setup(unit_quad_mesh, dirichlet=[condition])
        boundary.apply_dirichlet(fields, StepContext(0.25, 0.25, 1), NewmarkParameters())
        assert_array_almost_equal(fields.displacement[XMIN, 0], 0.5)
        assert_array_almost_equal(fields.displacement[XMIN, 1], 1.0)

    def test_consistent_displacement_from_velocity(self, unit_quad_mesh):
        """Test d = u_pred + beta dt^2 a with a from the imposed velocity."""
        condition = DirichletConfig(target="xmin", on_points=True, velocity=(2.0, None, None))
        boundary, fields = setup(unit_quad_mesh, dirichlet=[condition])
        boundary.apply_dirichlet(fields, StepContext(0.1, 0.1, 1), NewmarkParameters())
        assert_array_almost_equal(fields.velocity[XMIN, 0], 2.0)
        # Average velocity 1 over the step
        assert_array_almost_equal(fields.displacement[XMIN, 0], 0.1)
        assert_array_almost_equal(fields.displacement[XMIN, 1], 0.0)

    def test_consistent_displacement_from_acceleration(self, unit_quad_mesh):
        """Test d = u_pred + beta dt^2 a for an imposed acceleration."""
        condition = DirichletConfig(target="xmin", on_points=True,
                                    acceleration=(10.0, None, None))
        boundary, fields = setup(unit_quad_mesh, dirichlet=[condition])
        fields.prev_velocity[XMIN, 0] = 1.0
        boundary.apply_dirichlet(fields, StepContext(0.1, 0.1, 1), NewmarkParameters())
        assert_array_almost_equal(fields.acceleration[XMIN, 0], 10.0)
        assert_array_almost_equal(fields.displacement[XMIN, 0], 0.1 + 0.25 * 0.01 * 10.0)

    def test_explicit_displacement_wins(self, unit_quad_mesh):
        """Test that an explicit displacement is written after derived ones."""
        condition = DirichletConfig(target="xmin", on_points=True,
                                    displacement=(0.3, None, None),
                                    velocity=(1.0, None, None))
        boundary, fields = setup(unit_quad_mesh, dirichlet=[condition])
        boundary.apply_dirichlet(fields, StepContext(0.1, 0.1, 1), NewmarkParameters())
        assert_array_almost_equal(fields.displacement[XMIN, 0], 0.3)

    def test_point_force_value(self, unit_quad_mesh):
        """Test that the force is written and the node stays in place."""
        condition = DirichletConfig(target="xmax", on_points=True, force=(None, 5.0, None))
        boundary, fields = setup(unit_quad_mesh, dirichlet=[condition])
        fields.displacement[XMAX, 1] = 0.01
        boundary.apply_dirichlet(fields, StepContext(0.1, 0.1, 1), NewmarkParameters())
        assert_array_almost_equal(fields.force[XMAX, 1], 5.0)
        assert_array_almost_equal(fields.force[XMAX, 0], 0.0)
        assert_array_almost_equal(fields.displacement[XMAX, 1], 0.01)

    def test_dirichlet_dofs_owned_only(self):
        """Test that DOFs of nodes owned elsewhere are not enforced."""
        mesh = make_quad_mesh(2, 2)
        mesh.set_owners([0, 0, 0, 0, 0, 0, 1, 1, 1])
        condition = DirichletConfig(target="xmin", displacement=(0.0, 0.0, None))
        boundary, fields = setup(mesh, dirichlet=[condition])
        assert sorted(boundary.dirichlet_dofs(fields)) == [(0, 0), (0, 1), (3, 0), (3, 1)]


class TestNeumann:
    """Tests for tractions."""

    def test_constant_traction(self, unit_quad_mesh):
        """Test that every face of the surface gets the traction."""
        boundary, _ = setup(unit_quad_mesh,
                            neumann=[NeumannConfig(surface="xmax", value=(1.0, None, None))])
        boundary.apply_neumann(StepContext(0.1, 0.1, 1))
        assert len(boundary.tractions) == 2
        for traction in boundary.tractions.values():
            assert_array_almost_equal(traction, [1.0, 0.0, 0.0])

    def test_curve_traction(self, unit_quad_mesh, tmp_path):
        """Test that a curve traction follows time."""
        path = tmp_path / "t.txt"
        path.write_text("0.0 0.0 0.0\n1.0 0.0 -10.0\n")
        boundary, _ = setup(unit_quad_mesh,
                            neumann=[NeumannConfig(surface="ymax", curve=path)])
        boundary.apply_neumann(StepContext(0.5, 0.5, 1))
        for traction in boundary.tractions.values():
            assert_array_almost_equal(traction, [0.0, -5.0, 0.0])


class TestParaxialFaces:
    """Tests for absorbing face set-up."""

    def test_given_medium(self, unit_quad_mesh):
        """Test faces, medium and outward normals."""
        config = ParaxialConfig(surface="xmin", rho=2000.0, cp=500.0, cs=300.0)
        boundary, _ = setup(unit_quad_mesh, paraxial=[config])
        assert len(boundary.paraxial_faces) == 2
        for face in boundary.paraxial_faces:
            assert face.rho == 2000.0
            assert face.cp == 500.0
            assert face.cs == 300.0
            assert_array_almost_equal(face.normal(2), [-1.0, 0.0, 0.0])

    def test_young_medium(self, unit_quad_mesh, rock):
        """Test a medium given by (E, nu)."""
        config = ParaxialConfig(surface="ymin", rho=2500.0, young=1.0e9, nu=0.25)
        boundary, _ = setup(unit_quad_mesh, paraxial=[config])
        face = boundary.paraxial_faces[0]
        assert_almost_equal(face.cp, rock.vp)
        assert_almost_equal(face.cs, rock.vs)
        assert face.cp > face.cs

    def test_inner_medium_fallback(self, unit_quad_mesh, rock, caplog):
        """Test that missing medium data falls back to the attached cell."""
        cells = CellFields.zeros(unit_quad_mesh.n_cells)
        cells.assign(range(unit_quad_mesh.n_cells), rock)
        config = ParaxialConfig(surface="ymax", rho=2500.0)
        with caplog.at_level(logging.WARNING):
            boundary, _ = setup(unit_quad_mesh, paraxial=[config], cells=cells)
        assert "inner domain" in caplog.text
        for face in boundary.paraxial_faces:
            assert_almost_equal(face.cp, rock.vp)
            assert_array_almost_equal(face.normal(2), [0.0, 1.0, 0.0])

    def test_normals_3d(self, unit_hex_mesh):
        """Test outward normals of hexahedron faces."""
        config = ParaxialConfig(surface="zmin", rho=1.0, cp=2.0, cs=1.0)
        boundary, _ = setup(unit_hex_mesh, paraxial=[config])
        assert len(boundary.paraxial_faces) == 1
        assert_array_almost_equal(boundary.paraxial_faces[0].normal(3), [0.0, 0.0, -1.0])

    def test_ghost_faces_kept(self):
        """Test that faces of cells owned by another rank are set up too."""
        mesh = make_quad_mesh(2, 2)
        # Cells 0 and 2 (left column) on rank 1
        mesh.set_owners([0] * 9, cell_owners=[1, 0, 1, 0])
        config = ParaxialConfig(surface="ymin", rho=1.0, cp=2.0, cs=1.0)
        boundary, _ = setup(mesh, paraxial=[config])
        assert len(boundary.paraxial_faces) == 2
