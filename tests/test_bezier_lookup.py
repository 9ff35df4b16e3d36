"""Test module for lookup tables and length approximation in bezq.bezier

The tests are run using pytest.
"""

import math

import numpy as np
import pytest

from bezq.bezier import BezierCurve
from bezq.common import DomainError, Parametric, TValueType, f64_compare
from bezq.consts import MAX_ABSOLUTE_DIFFERENCE

###############################################################################
# Lookup table
###############################################################################


class TestLookupTable:
    """Test compute_lookup_table."""

    def test_quadratic_parametric(self):
        """Two steps give start, middle and end."""
        curve = BezierCurve.from_quadratic_coordinates(10.0, 10.0, 30.0, 30.0, 50.0, 10.0)
        lookup_table = curve.compute_lookup_table(2, TValueType.PARAMETRIC)

        assert lookup_table.shape == (3, 2)
        assert np.array_equal(lookup_table[0], curve.start)
        assert np.allclose(lookup_table[1], curve.evaluate(Parametric(0.5)))
        assert np.array_equal(lookup_table[2], curve.end)

    def test_cubic_parametric(self):
        """Samples are uniform in t."""
        curve = BezierCurve.from_cubic_coordinates(10.0, 10.0, 30.0, 30.0, 70.0, 70.0, 90.0, 10.0)
        lookup_table = curve.compute_lookup_table(4, TValueType.PARAMETRIC)

        expected = np.array([curve.evaluate(Parametric(t)) for t in (0.0, 0.25, 0.5, 0.75, 1.0)])
        assert np.allclose(lookup_table, expected)

    def test_default_steps(self):
        """The default table has 11 points."""
        curve = BezierCurve.from_cubic_coordinates(10.0, 10.0, 30.0, 30.0, 70.0, 70.0, 90.0, 10.0)
        assert curve.compute_lookup_table().shape == (11, 2)

    @pytest.mark.parametrize("steps", [1, 3, 7, 50])
    @pytest.mark.parametrize("tvalue_type", [TValueType.PARAMETRIC, TValueType.EUCLIDEAN])
    def test_length_and_endpoints(self, steps, tvalue_type):
        """A table always has steps+1 points from start to end."""
        curve = BezierCurve.from_cubic_coordinates(0.0, 0.0, 30.0, 60.0, 70.0, 60.0, 100.0, 0.0)
        lookup_table = curve.compute_lookup_table(steps, tvalue_type)

        assert lookup_table.shape == (steps + 1, 2)
        assert tuple(lookup_table[0]) == curve.start
        assert tuple(lookup_table[-1]) == curve.end

    def test_euclidean_on_line_is_evenly_spaced(self):
        """Euclidean samples on a line are evenly spaced."""
        curve = BezierCurve.from_linear_coordinates(0.0, 0.0, 8.0, 0.0)
        lookup_table = curve.compute_lookup_table(4, TValueType.EUCLIDEAN)
        assert np.allclose(lookup_table[:, 0], [0.0, 2.0, 4.0, 6.0, 8.0], atol=1e-2)
        assert np.all(lookup_table[:, 1] == 0.0)

    def test_euclidean_samples_have_similar_spacing(self):
        """Euclidean samples divide a curved cubic into arcs of similar length."""
        curve = BezierCurve.from_cubic_coordinates(0.0, 0.0, 10.0, 90.0, 20.0, 90.0, 100.0, 0.0)
        total_length = curve.length()
        steps = 4
        lookup_table = curve.compute_lookup_table(steps, TValueType.EUCLIDEAN)

        for i, row in enumerate(lookup_table[1:-1], start=1):
            t = curve.project(row)
            fraction = curve.trim(Parametric(0.0), Parametric(t)).length() / total_length
            assert abs(fraction - i / steps) < 2e-3, f"sample {i} at fraction {fraction}"

    def test_euclidean_middle_of_symmetric_arch(self):
        """The middle euclidean sample of a symmetric arch is its apex."""
        curve = BezierCurve.from_cubic_coordinates(0.0, 0.0, 30.0, 60.0, 70.0, 60.0, 100.0, 0.0)
        lookup_table = curve.compute_lookup_table(2, TValueType.EUCLIDEAN)
        assert np.allclose(lookup_table[1], [50.0, 45.0], atol=0.5)

    def test_zero_steps_rejected(self):
        """At least one step is required."""
        curve = BezierCurve.from_linear_coordinates(0.0, 0.0, 1.0, 1.0)
        with pytest.raises(ValueError, match="at least one step"):
            curve.compute_lookup_table(0)

    def test_euclidean_on_degenerate_curve_rejected(self):
        """Euclidean samples on a zero-length curve are a domain error."""
        curve = BezierCurve.from_quadratic_coordinates(1.0, 1.0, 1.0, 1.0, 1.0, 1.0)
        with pytest.raises(DomainError, match="length"):
            curve.compute_lookup_table(4, TValueType.EUCLIDEAN)


###############################################################################
# Length
###############################################################################


class TestLength:
    """Test length approximation."""

    P1 = (30.0, 50.0)
    P2 = (140.0, 30.0)
    P3 = (160.0, 170.0)
    P4 = (77.0, 129.0)

    def test_linear_is_exact(self):
        """A line's length equals the endpoint distance."""
        curve = BezierCurve.from_linear_points(self.P1, self.P2)
        assert f64_compare(curve.length(), math.dist(self.P1, self.P2), MAX_ABSOLUTE_DIFFERENCE)
        assert curve.length(1) == math.hypot(110.0, -20.0)

    def test_quadratic(self):
        """Reference length of a quadratic curve."""
        curve = BezierCurve.from_quadratic_points(self.P1, self.P2, self.P3)
        assert f64_compare(curve.length(), 204.0, 1e-2)

    def test_cubic(self):
        """Reference length of a cubic curve."""
        curve = BezierCurve.from_cubic_points(self.P1, self.P2, self.P3, self.P4)
        assert f64_compare(curve.length(), 199.0, 1e-2)

    def test_straight_cubic_matches_chord(self):
        """A cubic with collinear, evenly spaced points has the chord length."""
        curve = BezierCurve.from_cubic_coordinates(0.0, 0.0, 1.0, 0.0, 2.0, 0.0, 3.0, 0.0)
        assert math.isclose(curve.length(), 3.0, rel_tol=1e-12)

    def test_converges_from_below(self):
        """More subdivisions never shorten the polyline."""
        curve = BezierCurve.from_cubic_points(self.P1, self.P2, self.P3, self.P4)
        lengths = [curve.length(n) for n in (1, 4, 16, 64, 256, 1024)]
        assert all(a <= b + 1e-9 for a, b in zip(lengths, lengths[1:]))
        assert lengths[0] == pytest.approx(math.dist(self.P1, self.P4))

    def test_degenerate_curve_has_zero_length(self):
        """A curve collapsed onto one point has length 0."""
        curve = BezierCurve.from_cubic_coordinates(2.0, 2.0, 2.0, 2.0, 2.0, 2.0, 2.0, 2.0)
        assert curve.length() == 0.0

    def test_zero_subdivisions_rejected(self):
        """At least one chord is required."""
        curve = BezierCurve.from_quadratic_points(self.P1, self.P2, self.P3)
        with pytest.raises(ValueError, match="at least one subdivision"):
            curve.length(0)
