"""Bezier curve representation, evaluation and lookup operations."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import cached_property
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from bezq.common import (
    BezierHandles,
    CubicHandles,
    DomainError,
    Euclidean,
    EuclideanWithinError,
    LinearHandles,
    Parametric,
    Point2D,
    PointLike,
    QuadraticHandles,
    TValue,
    TValueType,
    as_point,
    check_unit_interval,
    f64_compare,
)
from bezq.consts import (
    DEFAULT_EUCLIDEAN_ERROR_BOUND,
    DEFAULT_LENGTH_SUBDIVISIONS,
    DEFAULT_LUT_STEP_SIZE,
    EUCLIDEAN_MAX_ITERATIONS,
)
from bezq.roots import DEFAULT_PROJECTION_OPTIONS, BezierRootFinder, ProjectionOptions

logger = logging.getLogger(__name__)


###############################################################################
# BezierCurve
###############################################################################
@dataclass(frozen=True)
class BezierCurve:
    """
    Immutable linear, quadratic or cubic Bezier curve.

    The handle variant fixes the degree of the curve for its whole lifetime.
    Operations that produce another curve (trim, split, reverse, derivative)
    return new instances.

    Attributes:
        start (Point2D): The start point (t = 0).
        end (Point2D): The end point (t = 1).
        handles (BezierHandles): Linear, quadratic or cubic control points.
    """

    start: Point2D
    end: Point2D
    handles: BezierHandles

    def __post_init__(self):
        # Store plain float tuples whatever point-like values were passed in
        object.__setattr__(self, "start", as_point(self.start))
        object.__setattr__(self, "end", as_point(self.end))
        if isinstance(self.handles, LinearHandles):
            handles = self.handles
        elif isinstance(self.handles, QuadraticHandles):
            handles = QuadraticHandles(as_point(self.handles.handle))
        elif isinstance(self.handles, CubicHandles):
            handles = CubicHandles(as_point(self.handles.handle_start), as_point(self.handles.handle_end))
        else:
            raise TypeError(f"Unsupported handles type: {type(self.handles).__name__}")
        object.__setattr__(self, "handles", handles)

    ###########################################################################
    # Construction
    ###########################################################################

    @classmethod
    def from_linear_points(cls, p1: PointLike, p2: PointLike) -> BezierCurve:
        """Create a linear curve from its two endpoints."""
        return cls(as_point(p1), as_point(p2), LinearHandles())

    @classmethod
    def from_quadratic_points(cls, p1: PointLike, p2: PointLike, p3: PointLike) -> BezierCurve:
        """Create a quadratic curve from start, control point and end."""
        return cls(as_point(p1), as_point(p3), QuadraticHandles(as_point(p2)))

    @classmethod
    def from_cubic_points(cls, p1: PointLike, p2: PointLike, p3: PointLike, p4: PointLike) -> BezierCurve:
        """Create a cubic curve from start, two control points and end."""
        return cls(as_point(p1), as_point(p4), CubicHandles(as_point(p2), as_point(p3)))

    @classmethod
    def from_linear_coordinates(cls, x1: float, y1: float, x2: float, y2: float) -> BezierCurve:
        """Create a linear curve from raw coordinates."""
        return cls.from_linear_points((x1, y1), (x2, y2))

    @classmethod
    def from_quadratic_coordinates(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        x3: float,
        y3: float,
    ) -> BezierCurve:
        """Create a quadratic curve from raw coordinates."""
        return cls.from_quadratic_points((x1, y1), (x2, y2), (x3, y3))

    @classmethod
    def from_cubic_coordinates(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        x3: float,
        y3: float,
        x4: float,
        y4: float,
    ) -> BezierCurve:
        """Create a cubic curve from raw coordinates."""
        return cls.from_cubic_points((x1, y1), (x2, y2), (x3, y3), (x4, y4))

    @classmethod
    def from_points(cls, points: Sequence[PointLike]) -> BezierCurve:
        """
        Create a curve from 2, 3 or 4 control points (start, handles..., end).

        Args:
            points: Sequence or array of (x, y) points; extra columns are ignored.

        Returns:
            BezierCurve: Linear, quadratic or cubic curve depending on the number of points.

        Raises:
            ValueError: If the number of points is not 2, 3 or 4.
        """
        xy_points = [(point[0], point[1]) for point in points]
        if len(xy_points) == 2:
            return cls.from_linear_points(*xy_points)
        if len(xy_points) == 3:
            return cls.from_quadratic_points(*xy_points)
        if len(xy_points) == 4:
            return cls.from_cubic_points(*xy_points)
        raise ValueError(f"A Bezier curve needs 2, 3 or 4 points, got {len(xy_points)}")

    ###########################################################################
    # Properties
    ###########################################################################

    @property
    def degree(self) -> int:
        """int: Polynomial degree (1, 2 or 3)."""
        return self.handles.degree

    @property
    def is_linear(self) -> bool:
        """bool: True if the curve has no control points."""
        return isinstance(self.handles, LinearHandles)

    @cached_property
    def control_points(self) -> NDArray[np.float64]:
        """Read-only array of shape (degree+1, 2) with start, handles and end."""
        points = np.array([self.start, *self.handles.points, self.end], dtype=np.float64)
        points.flags.writeable = False
        return points

    def reverse(self) -> BezierCurve:
        """Return the same curve traversed from end to start."""
        return BezierCurve.from_points(self.control_points[::-1])

    def derivative(self) -> Optional[BezierCurve]:
        """
        Return the hodograph (derivative curve) of degree-1, or None for a linear curve.

        The derivative of a degree n curve has the control points n * (P[i+1] - P[i]).
        """
        if self.is_linear:
            return None
        points = self.control_points
        return BezierCurve.from_points(self.degree * np.diff(points, axis=0))

    ###########################################################################
    # Evaluation
    ###########################################################################

    def unrestricted_parametric_evaluate(self, t: float) -> NDArray[np.float64]:
        """
        Calculate the point on the curve for the parametric value t.

        No range check is applied; callers are expected to pass t in [0, 1].
        """
        # B(t) = (1-t)^3*P0 + 3*(1-t)^2*t*P1 + 3*(1-t)*t^2*P2 + t^3*P3 (cubic)
        t_squared = t * t
        one_minus_t = 1.0 - t
        squared_one_minus_t = one_minus_t * one_minus_t
        (sx, sy), (ex, ey) = self.start, self.end

        handles = self.handles
        if isinstance(handles, LinearHandles):
            x = one_minus_t * sx + t * ex
            y = one_minus_t * sy + t * ey
        elif isinstance(handles, QuadraticHandles):
            hx, hy = handles.handle
            w1 = 2.0 * one_minus_t * t
            x = squared_one_minus_t * sx + w1 * hx + t_squared * ex
            y = squared_one_minus_t * sy + w1 * hy + t_squared * ey
        else:
            (h1x, h1y), (h2x, h2y) = handles.handle_start, handles.handle_end
            t_cubed = t_squared * t
            cubed_one_minus_t = squared_one_minus_t * one_minus_t
            w1 = 3.0 * squared_one_minus_t * t
            w2 = 3.0 * one_minus_t * t_squared
            x = cubed_one_minus_t * sx + w1 * h1x + w2 * h2x + t_cubed * ex
            y = cubed_one_minus_t * sy + w1 * h1y + w2 * h2y + t_cubed * ey
        return np.array([x, y], dtype=np.float64)

    def _parametric_evaluate_many(self, t_values: NDArray[np.float64]) -> NDArray[np.float64]:
        """Vectorized form of unrestricted_parametric_evaluate; returns shape (len(t_values), 2)."""
        t_squared = t_values * t_values
        one_minus_t = 1.0 - t_values
        squared_one_minus_t = one_minus_t * one_minus_t
        points = self.control_points

        if self.degree == 1:
            weights = [one_minus_t, t_values]
        elif self.degree == 2:
            weights = [squared_one_minus_t, 2.0 * one_minus_t * t_values, t_squared]
        else:
            weights = [
                squared_one_minus_t * one_minus_t,
                3.0 * squared_one_minus_t * t_values,
                3.0 * one_minus_t * t_squared,
                t_squared * t_values,
            ]

        result = np.zeros((len(t_values), 2), dtype=np.float64)
        for weight, point in zip(weights, points):
            result[:, 0] += weight * point[0]
            result[:, 1] += weight * point[1]
        return result

    def t_value_to_parametric(self, t: TValue) -> float:
        """
        Resolve a TValue descriptor to a parametric t-value.

        Raises:
            DomainError: If the payload is outside [0, 1].
            TypeError: If t is not a TValue descriptor.
        """
        if isinstance(t, Parametric):
            check_unit_interval(t.t)
            return t.t
        if isinstance(t, (Euclidean, EuclideanWithinError)):
            check_unit_interval(t.t)
            return self.euclidean_to_parametric(t.t, t.error)
        raise TypeError(f"Expected a TValue descriptor, got {type(t).__name__}")

    def evaluate(self, t: TValue) -> NDArray[np.float64]:
        """
        Calculate the coordinates of the point at t along the curve.

        Args:
            t: Parametric or euclidean descriptor with a payload in [0, 1].

        Returns:
            NDArray[np.float64] of shape (2,) with the point (x, y).
        """
        return self.unrestricted_parametric_evaluate(self.t_value_to_parametric(t))

    ###########################################################################
    # Lookup table and length
    ###########################################################################

    def compute_lookup_table(
        self, steps: int = DEFAULT_LUT_STEP_SIZE, tvalue_type: TValueType = TValueType.PARAMETRIC
    ) -> NDArray[np.float64]:
        """
        Sample steps+1 points distributed along the curve.

        Args:
            steps: Number of intervals; the table contains steps+1 points.
            tvalue_type: PARAMETRIC for uniform t, EUCLIDEAN for uniform arc length.

        Returns:
            NDArray[np.float64] of shape (steps+1, 2), starting at start and ending at end.
        """
        if steps < 1:
            raise ValueError(f"Lookup table needs at least one step, got {steps}")

        ratios = np.arange(steps + 1, dtype=np.float64) / steps
        if tvalue_type == TValueType.PARAMETRIC:
            result = self._parametric_evaluate_many(ratios)
        else:
            total_length = self.length()
            t_values = np.array(
                [
                    self.euclidean_to_parametric_with_total_length(
                        float(ratio), DEFAULT_EUCLIDEAN_ERROR_BOUND, total_length
                    )
                    for ratio in ratios
                ],
                dtype=np.float64,
            )
            result = self._parametric_evaluate_many(t_values)

        # Pin the endpoints so the table reproduces them bit for bit
        result[0] = self.start
        result[-1] = self.end
        return result

    def length(self, num_subdivisions: int = DEFAULT_LENGTH_SUBDIVISIONS) -> float:
        """
        Approximate the arc length of the curve.

        Linear curves return the exact endpoint distance. Other curves are
        approximated by the length of a polyline through num_subdivisions+1
        parametrically uniform samples, which never exceeds the true length.

        Args:
            num_subdivisions: Number of chords of the approximating polyline.

        Returns:
            float: The (approximate) length, >= 0.

        Raises:
            ValueError: If num_subdivisions is less than 1.
        """
        if num_subdivisions < 1:
            raise ValueError(f"Length approximation needs at least one subdivision, got {num_subdivisions}")
        if self.is_linear:
            return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])
        points = self.control_points
        if np.all(points == points[0]):
            # Collapsed onto a single point; sampling would only add rounding noise
            return 0.0
        lookup_table = self.compute_lookup_table(num_subdivisions, TValueType.PARAMETRIC)
        deltas = np.diff(lookup_table, axis=0)
        return float(np.sum(np.hypot(deltas[:, 0], deltas[:, 1])))

    ###########################################################################
    # Euclidean -> parametric conversion
    ###########################################################################

    @staticmethod
    def likely_length_subdivisions(ratio: float) -> int:
        """
        Number of chords used to measure a sub-curve while searching for ratio.

        The search measures from the nearer end, so the measured piece is likely
        min(ratio, 1 - ratio) of the whole curve. It gets the same share of
        DEFAULT_LENGTH_SUBDIVISIONS, rounded half away from zero, and at least
        one chord. A ratio of 0.5 therefore uses half of the subdivisions.
        """
        share = min(ratio, 1.0 - ratio)
        return max(int(math.floor(share * DEFAULT_LENGTH_SUBDIVISIONS + 0.5)), 1)

    def euclidean_to_parametric(self, ratio: float, error: float = DEFAULT_EUCLIDEAN_ERROR_BOUND) -> float:
        """Convert a euclidean distance ratio along the curve to a parametric t-value."""
        return self.euclidean_to_parametric_with_total_length(ratio, error, self.length())

    def euclidean_to_parametric_with_total_length(self, ratio: float, error: float, total_length: float) -> float:
        """
        Convert a euclidean distance ratio along the curve to a parametric t-value.

        Same as euclidean_to_parametric, but the caller supplies the total length so
        repeated conversions on one curve measure it only once.

        The search is a bisection on t. The sub-curve length is measured from
        the end closer to the expected result: from the start for ratio < 0.5,
        otherwise from the end and subtracted from total_length. The number of
        subdivisions used for that measurement follows the share of the curve
        that is likely measured, min(ratio, 1 - ratio) * DEFAULT_LENGTH_SUBDIVISIONS
        (at least 1), so a result near the middle gets the most chords.

        Args:
            ratio: Fraction of the total length, in [0, 1].
            error: Accepted absolute difference of the ratio, > 0.
            total_length: Length of the whole curve, > 0.

        Returns:
            float: Parametric t-value in [0, 1].

        Raises:
            DomainError: If ratio is outside [0, 1], error is not positive or
                total_length is not positive and finite.
        """
        check_unit_interval(ratio)
        if not (math.isfinite(error) and error > 0.0):
            raise DomainError(f"Euclidean error bound must be a positive finite number, got {error}")

        if ratio < error:
            return 0.0
        if 1.0 - ratio < error:
            return 1.0

        if not (math.isfinite(total_length) and total_length > 0.0):
            raise DomainError(f"Cannot convert a euclidean ratio on a curve of length {total_length}")

        low = 0.0
        mid = 0.5
        high = 1.0

        closer_to_start = ratio < 0.5
        subdivisions = self.likely_length_subdivisions(ratio)

        for iteration in range(EUCLIDEAN_MAX_ITERATIONS):
            mid = (low + high) / 2.0
            if mid in (low, high):
                logger.debug("euclidean_to_parametric: bracket collapsed at t=%r after %d steps", mid, iteration)
                break

            if closer_to_start:
                current_length = self.trim(Parametric(0.0), Parametric(mid)).length(subdivisions)
            else:
                current_length = total_length - self.trim(Parametric(mid), Parametric(1.0)).length(subdivisions)
            current_ratio = current_length / total_length

            if f64_compare(current_ratio, ratio, error):
                break
            if current_ratio < ratio:
                low = mid
            else:
                high = mid
        else:
            logger.debug(
                "euclidean_to_parametric: no convergence within %d steps, returning t=%r",
                EUCLIDEAN_MAX_ITERATIONS,
                mid,
            )

        return mid

    ###########################################################################
    # Splitting and trimming
    ###########################################################################

    def _split_points(self, t: float) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        # de Casteljau: the first/last point of every level forms the left/right part
        level = self.control_points.copy()
        left = [level[0].copy()]
        right = [level[-1].copy()]
        while len(level) > 1:
            level = (1.0 - t) * level[:-1] + t * level[1:]
            left.append(level[0].copy())
            right.append(level[-1].copy())
        return np.array(left), np.array(right[::-1])

    def split(self, t: TValue) -> Tuple[BezierCurve, BezierCurve]:
        """
        Split the curve at t into two curves of the same degree.

        Returns:
            Tuple[BezierCurve, BezierCurve]: The parts over [0, t] and [t, 1].
        """
        t_parametric = self.t_value_to_parametric(t)
        left, right = self._split_points(t_parametric)
        return BezierCurve.from_points(left), BezierCurve.from_points(right)

    def trim(self, t1: TValue, t2: TValue) -> BezierCurve:
        """
        Return the sub-curve between t1 and t2, keeping the degree.

        If t1 > t2 the sub-curve runs backwards from t1 to t2. If both are equal
        the result collapses onto the single point at t1.
        """
        t_start = self.t_value_to_parametric(t1)
        t_end = self.t_value_to_parametric(t2)
        if t_start == t_end:
            point = self.unrestricted_parametric_evaluate(t_start)
            return BezierCurve.from_points([point] * (self.degree + 1))

        reversed_order = t_start > t_end
        if reversed_order:
            t_start, t_end = t_end, t_start

        points = self.control_points
        if t_start > 0.0:
            points = self._split_points(t_start)[1]
        if t_end < 1.0:
            # t_end is rescaled to the remaining [t_start, 1] part
            relative_t = (t_end - t_start) / (1.0 - t_start)
            points = BezierCurve.from_points(points)._split_points(relative_t)[0]

        if reversed_order:
            points = points[::-1]
        return BezierCurve.from_points(points)

    ###########################################################################
    # Projection
    ###########################################################################

    def normals_to_point(
        self, point: PointLike, options: ProjectionOptions = DEFAULT_PROJECTION_OPTIONS
    ) -> List[float]:
        """Return the t-values in [0, 1] where the line to point is normal to the curve."""
        derivative = self.derivative()
        derivative_points = None if derivative is None else derivative.control_points
        return BezierRootFinder.normals_to_point(self.control_points, derivative_points, point, options)

    def project(self, point: PointLike, options: Optional[ProjectionOptions] = None) -> float:
        """
        Return the parametric t-value of the closest point on the curve to point.

        The closest point is either an endpoint or a point where the line to
        point is perpendicular to the curve. Candidates are checked in the order
        t=0, roots of the perpendicularity condition, Newton-refined samples of
        an options.lut_size lookup table, t=1; only a strictly smaller distance
        replaces the current best.

        Args:
            point: The query point (x, y).
            options: Search parameters, defaults to ProjectionOptions().

        Returns:
            float: t-value in [0, 1].
        """
        options = options or DEFAULT_PROJECTION_OPTIONS
        target = np.array(as_point(point), dtype=np.float64)

        def distance_squared(t: float) -> float:
            delta = self.unrestricted_parametric_evaluate(t) - target
            return float(np.dot(delta, delta))

        candidates = self.normals_to_point(target, options)
        if options.lut_size > 0 and not self.is_linear:
            derivative = self.derivative()
            poly = BezierRootFinder.perpendicularity_polynomial(
                self.control_points, derivative.control_points, target
            )
            if len(poly) >= 2:
                samples = np.arange(options.lut_size + 1, dtype=np.float64) / options.lut_size
                candidates.extend(BezierRootFinder.newton_polish(poly, float(t), options) for t in samples)

        closest = 0.0
        min_dist_squared = distance_squared(0.0)
        for t in candidates:
            dist_squared = distance_squared(t)
            if dist_squared < min_dist_squared:
                closest = t
                min_dist_squared = dist_squared

        if distance_squared(1.0) < min_dist_squared:
            closest = 1.0
        return closest


def main():
    """Main"""
    quadratic = BezierCurve.from_quadratic_coordinates(3.0, 5.0, 14.0, 3.0, 19.0, 14.0)
    cubic = BezierCurve.from_cubic_coordinates(3.0, 5.0, 14.0, 3.0, 19.0, 14.0, 30.0, 21.0)

    print("quadratic(0.5):", quadratic.evaluate(Parametric(0.5)))
    print("cubic(0.5):    ", cubic.evaluate(Parametric(0.5)))
    print("cubic length:  ", cubic.length())
    print("cubic euclidean 0.25 -> t:", cubic.euclidean_to_parametric(0.25))
    print("cubic project (20, 10) -> t:", cubic.project((20.0, 10.0)))


if __name__ == "__main__":
    main()
