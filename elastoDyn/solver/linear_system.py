"""
Sparse linear system A x = b with reusable structure.

Matrix entries accumulate in a (row, col) -> value map. The set of keys is
the sparsity structure: clear_values() zeroes every stored value but keeps
the keys, so a system rebuilt with the same scatter pattern reuses its
structure, while reset() drops everything and requires initialize() again.

Row eliminations are recorded and applied when the system is solved (or
inspected through assembled()), after every matrix and RHS write of the
step:

    eliminate_row(i, v):         row i of A set to e_i (A[i, i] = 1 whatever
                                 was assembled there), b[i] = v
    eliminate_row_column(i, v):  A[:, i] * v moved to the RHS of every other
                                 row, then row and column i of A cleared
                                 and A[i, i] = 1, b[i] = v; A stays symmetric
"""

import logging
from typing import Dict, Tuple, Sequence

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import spsolve

logger = logging.getLogger(__name__)


class LinearSystem:
    """
    Linear system facade over scipy.sparse.

    Attributes:
        n_dof: Size of the system (0 before initialize)
        rhs: Right-hand side vector, written directly by the assembler
        solution: Result of the last solve
    """

    def __init__(self):
        self.n_dof = 0
        self.rhs = np.zeros(0)
        self.solution = np.zeros(0)
        self._values: Dict[Tuple[int, int], float] = {}
        self._eliminated: Dict[int, Tuple[float, bool]] = {}
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def n_entries(self) -> int:
        """Number of stored (row, col) entries."""
        return len(self._values)

    def reset(self) -> None:
        """Drop the matrix structure, RHS and solution."""
        self.n_dof = 0
        self.rhs = np.zeros(0)
        self.solution = np.zeros(0)
        self._values = {}
        self._eliminated = {}
        self._initialized = False

    def initialize(self, n_dof: int) -> None:
        """Size the system; the matrix starts with an empty structure."""
        self.reset()
        self.n_dof = int(n_dof)
        self.rhs = np.zeros(self.n_dof)
        self.solution = np.zeros(self.n_dof)
        self._initialized = True

    def clear_values(self) -> None:
        """Zero matrix values and RHS, keeping the structure."""
        self._check_initialized()
        for key in self._values:
            self._values[key] = 0.0
        self.rhs[:] = 0.0
        self._eliminated = {}

    def matrix_add_value(self, row: int, col: int, value: float) -> None:
        key = (int(row), int(col))
        self._values[key] = self._values.get(key, 0.0) + float(value)

    def matrix_set_value(self, row: int, col: int, value: float) -> None:
        self._values[(int(row), int(col))] = float(value)

    def matrix_value(self, row: int, col: int) -> float:
        """Current value of an entry (0 if not in the structure)."""
        return self._values.get((int(row), int(col)), 0.0)

    def matrix_add_block(self, rows: Sequence[int], cols: Sequence[int],
                         block: np.ndarray) -> None:
        """Add a dense block: A[rows[i], cols[j]] += block[i, j]."""
        for i, row in enumerate(rows):
            for j, col in enumerate(cols):
                self.matrix_add_value(row, col, block[i, j])

    def eliminate_row(self, dof: int, value: float) -> None:
        """Impose x[dof] = value by replacing the row with the identity row."""
        self._eliminated[int(dof)] = (float(value), False)

    def eliminate_row_column(self, dof: int, value: float) -> None:
        """Impose x[dof] = value by removing both the row and the column."""
        self._eliminated[int(dof)] = (float(value), True)

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Linear system is not initialized. Call initialize() first.")

    def _matrix(self) -> sparse.csr_matrix:
        if self._values:
            keys = np.fromiter((k for key in self._values for k in key), dtype=int,
                               count=2 * len(self._values)).reshape(-1, 2)
            values = np.fromiter(self._values.values(), dtype=np.float64, count=len(self._values))
        else:
            keys = np.zeros((0, 2), dtype=int)
            values = np.zeros(0)
        return sparse.csr_matrix(
            (values, (keys[:, 0], keys[:, 1])),
            shape=(self.n_dof, self.n_dof)
        )

    def assembled(self) -> Tuple[sparse.csr_matrix, np.ndarray]:
        """
        Matrix and RHS with the recorded eliminations applied.

        Returns:
            (A, b) as a CSR matrix and a copy of the RHS
        """
        self._check_initialized()
        A = self._matrix()
        b = self.rhs.copy()
        if not self._eliminated:
            return A, b

        dofs = np.fromiter(self._eliminated.keys(), dtype=int)
        values = np.array([v for v, _ in self._eliminated.values()])
        with_column = np.array([c for _, c in self._eliminated.values()], dtype=bool)

        keep_rows = np.ones(self.n_dof)
        keep_rows[dofs] = 0.0
        keep_cols = np.ones(self.n_dof)

        if with_column.any():
            imposed = np.zeros(self.n_dof)
            imposed[dofs[with_column]] = values[with_column]
            b -= A @ imposed
            keep_cols[dofs[with_column]] = 0.0

        unit = np.zeros(self.n_dof)
        unit[dofs] = 1.0
        A = (sparse.diags(keep_rows) @ A @ sparse.diags(keep_cols) + sparse.diags(unit)).tocsr()
        b[dofs] = values
        return A, b

    def solve(self) -> np.ndarray:
        """
        Solve the system with a direct sparse solver.

        Returns:
            Solution vector (also stored in self.solution)
        """
        self._check_initialized()
        A, b = self.assembled()
        logger.debug("Solving linear system: %d dofs, %d entries", self.n_dof, A.nnz)
        self.solution = np.atleast_1d(spsolve(A, b))
        return self.solution
