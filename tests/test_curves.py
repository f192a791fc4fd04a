"""
Unit tests for time curves.
"""

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal

from elastoDyn.io.config import ConfigurationError
from elastoDyn.io.curves import TimeCurve, CurveCache


class TestTimeCurve:
    """Tests for interpolation of tabulated values."""

    def test_linear_interpolation(self):
        """Test values between samples."""
        curve = TimeCurve([0.0, 1.0, 2.0], [[0.0, 1.0], [10.0, 1.0], [0.0, 3.0]])
        assert curve.n_components == 2
        assert_array_almost_equal(curve.value(0.5), [5.0, 1.0])
        assert_array_almost_equal(curve(1.5), [5.0, 2.0])

    def test_held_outside_range(self):
        """Test that end values are held before and after the table."""
        curve = TimeCurve([1.0, 2.0], [3.0, 4.0])
        assert_array_almost_equal(curve.value(0.0), [3.0])
        assert_array_almost_equal(curve.value(10.0), [4.0])

    def test_times_must_increase(self):
        """Test that repeated or decreasing times are refused."""
        with pytest.raises(ConfigurationError):
            TimeCurve([0.0, 1.0, 1.0], [0.0, 1.0, 2.0])
        with pytest.raises(ConfigurationError):
            TimeCurve([1.0, 0.0], [0.0, 1.0])

    def test_shape_mismatch(self):
        """Test that times and values must have the same length."""
        with pytest.raises(ConfigurationError):
            TimeCurve([0.0, 1.0], [0.0, 1.0, 2.0])
        with pytest.raises(ConfigurationError):
            TimeCurve([], [])


class TestCurveFiles:
    """Tests for reading curve tables."""

    def test_whitespace_and_comments(self, tmp_path):
        """Test a commented whitespace-separated table."""
        path = tmp_path / "pulse.txt"
        path.write_text("# t x y z\n0.0 0.0 0.0 0.0\n0.1 1.0e3 2.0 0.0\n0.2 0.0 0.0 0.0\n")
        curve = TimeCurve.from_file(path)
        assert_array_almost_equal(curve.value(0.05), [500.0, 1.0, 0.0])

    def test_commas_and_missing_columns(self, tmp_path):
        """Test comma separators and zero-filled missing components."""
        path = tmp_path / "ramp.csv"
        path.write_text("0.0, 0.0\n1.0, 2.0\n")
        curve = TimeCurve.from_file(path, n_components=3)
        assert curve.values.shape == (2, 3)
        assert_array_almost_equal(curve.value(0.25), [0.5, 0.0, 0.0])

    def test_single_sample(self, tmp_path):
        """Test a one-row table: constant in time."""
        path = tmp_path / "const.txt"
        path.write_text("0.0 7.0 8.0 9.0\n")
        curve = TimeCurve.from_file(path)
        assert_array_almost_equal(curve.value(3.0), [7.0, 8.0, 9.0])

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a configuration error."""
        with pytest.raises(ConfigurationError, match="not found"):
            TimeCurve.from_file(tmp_path / "nothing.txt")

    def test_malformed_file(self, tmp_path):
        """Test that non-numeric content is a configuration error."""
        path = tmp_path / "bad.txt"
        path.write_text("0.0 abc\n")
        with pytest.raises(ConfigurationError):
            TimeCurve.from_file(path)

        path.write_text("0.0\n1.0\n")
        with pytest.raises(ConfigurationError):
            TimeCurve.from_file(path)


class TestCurveCache:
    """Tests for the curve cache."""

    def test_loaded_once(self, tmp_path):
        """Test that the same file gives the same curve object."""
        path = tmp_path / "c.txt"
        path.write_text("0.0 1.0\n1.0 2.0\n")
        cache = CurveCache()
        first = cache.get(path)
        second = cache.get(str(tmp_path / "." / "c.txt"))
        assert first is second
        assert len(cache) == 1
        assert first.n_components == 3
