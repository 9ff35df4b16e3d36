"""Central module containing shared types, t-value descriptors and comparison helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from bezq.consts import DEFAULT_EUCLIDEAN_ERROR_BOUND, MAX_ABSOLUTE_DIFFERENCE

###############################################################################
# Types
###############################################################################

Point2D = Tuple[float, float]  # (x, y) as stored inside a curve

PointLike = Union[Sequence[float], NDArray[np.float64]]  # anything with x at [0] and y at [1]


class DomainError(ValueError):
    """Raised when an argument violates the precondition of a curve operation."""


def as_point(point: PointLike) -> Point2D:
    """Convert a point-like value into a validated (x, y) tuple of floats.

    Raises:
        ValueError: If the point does not have exactly two finite coordinates.
    """
    if len(point) != 2:
        raise ValueError(f"Point must have exactly two coordinates, got {len(point)}")
    x, y = float(point[0]), float(point[1])
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"Point contains invalid coordinates (NaN or infinity): ({x}, {y})")
    return (x, y)


###############################################################################
# Bezier handles
###############################################################################


@dataclass(frozen=True)
class LinearHandles:
    """Handle set of a straight line segment (no control points)."""

    @property
    def degree(self) -> int:
        """int: Polynomial degree of the curve."""
        return 1

    @property
    def points(self) -> Tuple[Point2D, ...]:
        """The control points between start and end."""
        return ()


@dataclass(frozen=True)
class QuadraticHandles:
    """Handle set of a quadratic curve.

    Attributes:
        handle (Point2D): The single control point.
    """

    handle: Point2D

    @property
    def degree(self) -> int:
        """int: Polynomial degree of the curve."""
        return 2

    @property
    def points(self) -> Tuple[Point2D, ...]:
        """The control points between start and end."""
        return (self.handle,)


@dataclass(frozen=True)
class CubicHandles:
    """Handle set of a cubic curve.

    Attributes:
        handle_start (Point2D): Control point attached to the start point.
        handle_end (Point2D): Control point attached to the end point.
    """

    handle_start: Point2D
    handle_end: Point2D

    @property
    def degree(self) -> int:
        """int: Polynomial degree of the curve."""
        return 3

    @property
    def points(self) -> Tuple[Point2D, ...]:
        """The control points between start and end."""
        return (self.handle_start, self.handle_end)


BezierHandles = Union[LinearHandles, QuadraticHandles, CubicHandles]


###############################################################################
# TValue descriptors
###############################################################################


class TValueType(Enum):
    """Enum to define how the samples of a lookup table are distributed."""

    PARAMETRIC = auto()
    EUCLIDEAN = auto()


def check_unit_interval(t: float) -> None:
    """Raise DomainError unless t lies within [0, 1]."""
    # NaN fails both comparisons and is rejected as well
    if not 0.0 <= t <= 1.0:
        raise DomainError(f"t-value must be within [0, 1], got {t}")


@dataclass(frozen=True)
class Parametric:
    """A t-value that is already the polynomial parameter of the curve."""

    t: float

    def __post_init__(self):
        check_unit_interval(self.t)


@dataclass(frozen=True)
class Euclidean:
    """A t-value that is a fraction of the total arc length of the curve.

    Resolved with DEFAULT_EUCLIDEAN_ERROR_BOUND as tolerance.
    """

    t: float

    def __post_init__(self):
        check_unit_interval(self.t)

    @property
    def error(self) -> float:
        """float: Tolerance used when converting to a parametric value."""
        return DEFAULT_EUCLIDEAN_ERROR_BOUND


@dataclass(frozen=True)
class EuclideanWithinError:
    """A t-value that is a fraction of the total arc length, with a custom tolerance."""

    t: float
    error: float

    def __post_init__(self):
        check_unit_interval(self.t)
        if not (math.isfinite(self.error) and self.error > 0.0):
            raise DomainError(f"Euclidean error bound must be a positive finite number, got {self.error}")


TValue = Union[Parametric, Euclidean, EuclideanWithinError]


###############################################################################
# Functions
###############################################################################


def f64_compare(a: float, b: float, max_abs_diff: float = MAX_ABSOLUTE_DIFFERENCE) -> bool:
    """Return True if the absolute difference of a and b is strictly below max_abs_diff."""
    return abs(a - b) < max_abs_diff


def point_compare(p: PointLike, q: PointLike, max_abs_diff: float = MAX_ABSOLUTE_DIFFERENCE) -> bool:
    """Return True if both coordinates of p and q differ by less than max_abs_diff."""
    return f64_compare(float(p[0]), float(q[0]), max_abs_diff) and f64_compare(
        float(p[1]), float(q[1]), max_abs_diff
    )
