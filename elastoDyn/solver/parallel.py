"""
Domain-decomposition services used by the solver.

The mesh is partitioned statically; every item has an owner rank. Rows of
the global system are written only by the owner of the row node, and
after each solve the nodal fields are synchronized so that ghost copies
hold the owner's values. Only the serial manager is provided: one rank
owning everything, synchronization being the identity.
"""

from abc import ABC, abstractmethod

import numpy as np


class ParallelManager(ABC):
    """Rank information and ghost synchronization."""

    @property
    @abstractmethod
    def rank(self) -> int:
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        pass

    @abstractmethod
    def synchronize(self, array: np.ndarray) -> None:
        """Overwrite ghost entries of a nodal array with owner values, in place."""
        pass


class SerialParallelManager(ParallelManager):

    @property
    def rank(self) -> int:
        return 0

    @property
    def size(self) -> int:
        return 1

    def synchronize(self, array: np.ndarray) -> None:
        return None
