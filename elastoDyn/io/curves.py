"""
Time curves: piecewise-linear tables of vector values against time.

A curve file holds one row per sample, the time followed by the
components, separated by whitespace or commas. Lines starting with '#'
are comments:

    # t     x       y      z
    0.0     0.0     0.0    0.0
    0.1     1.0e3   0.0    0.0
    0.2     0.0     0.0    0.0

Values between samples are interpolated linearly; before the first and
after the last sample the end values are held.
"""

import logging
from pathlib import Path
from typing import Dict, Union

import numpy as np

from .config import ConfigurationError

logger = logging.getLogger(__name__)


class TimeCurve:
    """
    Vector-valued function of time sampled on a table.

    Attributes:
        times: Sample times, shape (n_samples,), strictly increasing
        values: Sample values, shape (n_samples, n_components)
    """

    def __init__(self, times, values):
        times = np.asarray(times, dtype=np.float64).ravel()
        values = np.asarray(values, dtype=np.float64)
        if values.ndim == 1:
            values = values[:, None]

        if len(times) == 0:
            raise ConfigurationError("Time curve has no samples")
        if values.shape[0] != len(times):
            raise ConfigurationError(
                f"Time curve has {len(times)} times but {values.shape[0]} value rows"
            )
        if np.any(np.diff(times) <= 0.0):
            raise ConfigurationError("Time curve times must be strictly increasing")

        self.times = times
        self.values = values

    @classmethod
    def from_file(cls, path: Union[str, Path], n_components: int = 3) -> 'TimeCurve':
        """
        Read a curve table.

        Parameters:
            path: Text file with rows "t v1 .. vn"
            n_components: Number of value columns to keep; missing columns
                are zero-filled

        Raises:
            ConfigurationError: if the file is missing or malformed
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(f"Curve file not found: {path}")

        text = path.read_text(encoding="utf-8").replace(",", " ")
        try:
            table = np.loadtxt(text.splitlines(), comments="#", ndmin=2)
        except ValueError as exc:
            raise ConfigurationError(f"Cannot parse curve file {path}: {exc}") from exc

        if table.shape[1] < 2:
            raise ConfigurationError(f"Curve file {path} needs a time column and values")

        values = np.zeros((table.shape[0], n_components))
        n_given = min(n_components, table.shape[1] - 1)
        values[:, :n_given] = table[:, 1:1 + n_given]
        logger.info("Loaded curve %s (%d samples)", path, table.shape[0])
        return cls(table[:, 0], values)

    @property
    def n_components(self) -> int:
        return self.values.shape[1]

    def value(self, t: float) -> np.ndarray:
        """Interpolated value at time t, shape (n_components,)."""
        return np.array([
            np.interp(t, self.times, self.values[:, k],
                      left=self.values[0, k], right=self.values[-1, k])
            for k in range(self.n_components)
        ])

    def __call__(self, t: float) -> np.ndarray:
        return self.value(t)


class CurveCache:
    """Loads each curve file once and hands out the same TimeCurve."""

    def __init__(self, n_components: int = 3):
        self.n_components = n_components
        self._curves: Dict[Path, TimeCurve] = {}

    def get(self, path: Union[str, Path]) -> TimeCurve:
        key = Path(path).resolve()
        if key not in self._curves:
            self._curves[key] = TimeCurve.from_file(key, self.n_components)
        return self._curves[key]

    def __len__(self) -> int:
        return len(self._curves)
