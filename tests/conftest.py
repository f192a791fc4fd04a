"""
Pytest configuration and shared fixtures for elastodynamics tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from elastoDyn.discretization.mesh import make_quad_mesh, make_hex_mesh
from elastoDyn.material.elastic import ElasticType, convert


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def loose_tolerance():
    """Looser tolerance for numerical integration tests."""
    return 1e-8


@pytest.fixture
def rock():
    """Elastic properties of a stiff rock (E = 1e9, nu = 0.25)."""
    return convert(ElasticType.YOUNG, 2500.0, young=1.0e9, nu=0.25)


@pytest.fixture
def unit_quad_mesh():
    """2 x 2 QUAD4 mesh of the unit square."""
    return make_quad_mesh(2, 2)


@pytest.fixture
def unit_hex_mesh():
    """Single HEX8 cell of the unit cube."""
    return make_hex_mesh(1, 1, 1)


@pytest.fixture
def base_case():
    """
    Case mapping of a 2D bar clamped on xmin, 4 x 1 cells of 4 x 1.
    """
    return {
        "mesh": {"type": "quad", "n": [4, 1], "size": [4.0, 1.0]},
        "analysis-type": "2D",
        "gauss-nint": [2, 2],
        "enforce-dirichlet-method": "RowElimination",
        "time": {"start": 0.0, "final": 0.01, "dt": 0.001},
        "elastic-type": "young",
        "material": {"rho": 2000.0, "young": 1.0e7, "nu": 0.25},
        "dirichlet-surface-conditions": [{"surface": "xmin", "Ux": 0.0, "Uy": 0.0}],
    }
