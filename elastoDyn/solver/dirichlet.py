"""
Dirichlet enforcement strategies.

A Dirichlet DOF is an unknown whose value is known: an imposed
displacement, or the displacement consistent with an imposed velocity or
acceleration. Four ways of writing it into the linear system are
supported:

    Penalty               A[i, i] = P,    b[i] = P * u
    WeakPenalty           A[i, i] += P,   b[i] = P * u
    RowElimination        row i -> e_i,   b[i] = u
    RowColumnElimination  row and column i removed, b[j] -= A[j, i] * u

The penalty methods leave an O(1/P) error on the imposed value; the
elimination methods impose it exactly. The strategy is selected once
from the configuration name.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from .linear_system import LinearSystem
from ..io.config import ConfigurationError

logger = logging.getLogger(__name__)


class DirichletMethod(Enum):
    PENALTY = "Penalty"
    WEAK_PENALTY = "WeakPenalty"
    ROW_ELIMINATION = "RowElimination"
    ROW_COLUMN_ELIMINATION = "RowColumnElimination"

    @classmethod
    def from_string(cls, name: str) -> 'DirichletMethod':
        for method in cls:
            if method.value == name:
                return method
        raise ConfigurationError(
            f"Method for enforcing Dirichlet boundary condition not supported: {name!r}"
        )


class DirichletEnforcement(ABC):
    """Writes one imposed DOF value into a linear system."""

    method: DirichletMethod

    @abstractmethod
    def apply(self, system: LinearSystem, dof: int, value: float) -> None:
        pass


class PenaltyEnforcement(DirichletEnforcement):
    """Overwrite the diagonal with a large coefficient."""

    method = DirichletMethod.PENALTY

    def __init__(self, penalty: float):
        self.penalty = penalty

    def apply(self, system: LinearSystem, dof: int, value: float) -> None:
        system.matrix_set_value(dof, dof, self.penalty)
        system.rhs[dof] = value * self.penalty


class WeakPenaltyEnforcement(PenaltyEnforcement):
    """Add a large coefficient to the assembled diagonal."""

    method = DirichletMethod.WEAK_PENALTY

    def apply(self, system: LinearSystem, dof: int, value: float) -> None:
        system.matrix_add_value(dof, dof, self.penalty)
        system.rhs[dof] = value * self.penalty


class RowEliminationEnforcement(DirichletEnforcement):
    method = DirichletMethod.ROW_ELIMINATION

    def apply(self, system: LinearSystem, dof: int, value: float) -> None:
        system.eliminate_row(dof, value)


class RowColumnEliminationEnforcement(DirichletEnforcement):
    method = DirichletMethod.ROW_COLUMN_ELIMINATION

    def apply(self, system: LinearSystem, dof: int, value: float) -> None:
        system.eliminate_row_column(dof, value)


_STRATEGIES = {
    DirichletMethod.PENALTY: PenaltyEnforcement,
    DirichletMethod.WEAK_PENALTY: WeakPenaltyEnforcement,
    DirichletMethod.ROW_ELIMINATION: RowEliminationEnforcement,
    DirichletMethod.ROW_COLUMN_ELIMINATION: RowColumnEliminationEnforcement,
}


def make_enforcement(method, penalty: float = 1.0e30) -> DirichletEnforcement:
    """
    Build the enforcement strategy for a method name or DirichletMethod.

    Raises:
        ConfigurationError: for an unknown method name
    """
    if not isinstance(method, DirichletMethod):
        method = DirichletMethod.from_string(str(method))

    cls = _STRATEGIES[method]
    logger.info("Dirichlet conditions enforced by %s", method.value)
    if issubclass(cls, PenaltyEnforcement):
        return cls(penalty)
    return cls()
