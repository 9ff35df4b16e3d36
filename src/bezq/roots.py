"""Root finding of the perpendicularity condition used for point projection."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import NDArray

from bezq.common import PointLike, as_point
from bezq.consts import (
    DEFAULT_PROJECTION_CONVERGENCE_EPSILON,
    DEFAULT_PROJECTION_ITERATION_LIMIT,
    DEFAULT_PROJECTION_LUT_SIZE,
    ROOT_DOMAIN_TOLERANCE,
    ROOT_IMAGINARY_TOLERANCE,
)

###############################################################################
# ProjectionOptions
###############################################################################


@dataclass(frozen=True)
class ProjectionOptions:
    """Options controlling the search for the closest point on a curve.

    Attributes:
        lut_size: Number of parametric samples used as extra Newton seeds
            next to the polynomial roots. 0 disables seeding.
        convergence_epsilon: Newton iteration stops once a step is smaller than this.
        iteration_limit: Maximum number of Newton steps per candidate.
    """

    lut_size: int = DEFAULT_PROJECTION_LUT_SIZE
    convergence_epsilon: float = DEFAULT_PROJECTION_CONVERGENCE_EPSILON
    iteration_limit: int = DEFAULT_PROJECTION_ITERATION_LIMIT

    def __post_init__(self):
        if self.lut_size < 0:
            raise ValueError(f"lut_size must not be negative, got {self.lut_size}")
        if not (math.isfinite(self.convergence_epsilon) and self.convergence_epsilon > 0.0):
            raise ValueError(f"convergence_epsilon must be positive, got {self.convergence_epsilon}")
        if self.iteration_limit < 0:
            raise ValueError(f"iteration_limit must not be negative, got {self.iteration_limit}")

    def to_dict(self) -> dict:
        """Convert options to a dictionary for serialization."""
        return {
            "lut_size": self.lut_size,
            "convergence_epsilon": self.convergence_epsilon,
            "iteration_limit": self.iteration_limit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectionOptions":
        """Create ProjectionOptions from a dictionary."""
        return cls(
            lut_size=data.get("lut_size", DEFAULT_PROJECTION_LUT_SIZE),
            convergence_epsilon=data.get("convergence_epsilon", DEFAULT_PROJECTION_CONVERGENCE_EPSILON),
            iteration_limit=data.get("iteration_limit", DEFAULT_PROJECTION_ITERATION_LIMIT),
        )


DEFAULT_PROJECTION_OPTIONS = ProjectionOptions()


###############################################################################
# BezierRootFinder
###############################################################################
class BezierRootFinder:
    """Static helpers to find the parameters where a curve is perpendicular to a point.

    The squared distance |B(t) - p|^2 has its interior extrema where
    f(t) = (B(t) - p) . B'(t) vanishes. f is a polynomial of degree 2n-1
    for a curve of degree n, so its roots are found with numpy's companion
    matrix solver and then polished with Newton iterations.
    """

    @staticmethod
    def power_coefficients(control_points: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Convert Bernstein control points into power basis coefficients.

        Args:
            control_points: Array of shape (n+1, 2) with the control points of a degree n curve.

        Returns:
            Array of shape (n+1, 2); row k holds the coefficient of t^k for x and y.
        """
        n = control_points.shape[0] - 1
        coefficients = np.zeros_like(control_points, dtype=np.float64)
        for k in range(n + 1):
            acc = np.zeros(2, dtype=np.float64)
            for i in range(k + 1):
                sign = -1.0 if (k - i) % 2 else 1.0
                acc += sign * math.comb(k, i) * control_points[i]
            coefficients[k] = math.comb(n, k) * acc
        return coefficients

    @classmethod
    def perpendicularity_polynomial(
        cls,
        control_points: NDArray[np.float64],
        derivative_points: NDArray[np.float64],
        point: PointLike,
    ) -> NDArray[np.float64]:
        """
        Build the coefficients (ascending powers) of f(t) = (B(t) - p) . B'(t).

        Args:
            control_points: Control points of the curve B, shape (n+1, 2).
            derivative_points: Control points of the hodograph B', shape (n, 2).
            point: The point p.

        Returns:
            1D array of power basis coefficients, trailing zeros removed.
        """
        px, py = as_point(point)
        curve = cls.power_coefficients(control_points)
        tangent = cls.power_coefficients(derivative_points)

        offset_x = curve[:, 0].copy()
        offset_x[0] -= px
        offset_y = curve[:, 1].copy()
        offset_y[0] -= py

        poly = P.polyadd(P.polymul(offset_x, tangent[:, 0]), P.polymul(offset_y, tangent[:, 1]))
        return P.polytrim(poly, tol=0.0)

    @staticmethod
    def newton_polish(
        poly: NDArray[np.float64], t: float, options: ProjectionOptions = DEFAULT_PROJECTION_OPTIONS
    ) -> float:
        """
        Refine a root estimate of poly with Newton steps, keeping t inside [0, 1].

        Stops when a step is below options.convergence_epsilon, when the slope vanishes
        or after options.iteration_limit steps.
        """
        slope_poly = P.polyder(poly)
        for _ in range(options.iteration_limit):
            slope = float(P.polyval(t, slope_poly))
            if slope == 0.0 or not math.isfinite(slope):
                break
            step = float(P.polyval(t, poly)) / slope
            t_next = min(max(t - step, 0.0), 1.0)
            if abs(t_next - t) < options.convergence_epsilon:
                t = t_next
                break
            t = t_next
        return t

    @classmethod
    def normals_to_point(
        cls,
        control_points: NDArray[np.float64],
        derivative_points: Optional[NDArray[np.float64]],
        point: PointLike,
        options: ProjectionOptions = DEFAULT_PROJECTION_OPTIONS,
    ) -> List[float]:
        """
        Find the parametric values in [0, 1] where B(t) - p is perpendicular to the tangent.

        Args:
            control_points: Control points of the curve, shape (n+1, 2).
            derivative_points: Control points of the derivative curve, shape (n, 2),
                or None for a linear curve whose tangent is constant.
            point: The point p.
            options: Newton polishing parameters.

        Returns:
            Sorted list of distinct roots (may be empty).
        """
        if derivative_points is None:
            # The tangent of a line is constant: end - start
            derivative_points = (control_points[1] - control_points[0]).reshape(1, 2)

        poly = cls.perpendicularity_polynomial(control_points, derivative_points, point)
        if len(poly) < 2:
            # Constant polynomial: either no roots or every t is a root (degenerate curve)
            return []

        roots: List[float] = []
        for root in P.polyroots(poly):
            if abs(root.imag) > ROOT_IMAGINARY_TOLERANCE:
                continue
            t = float(root.real)
            if t < -ROOT_DOMAIN_TOLERANCE or t > 1.0 + ROOT_DOMAIN_TOLERANCE:
                continue
            t = cls.newton_polish(poly, min(max(t, 0.0), 1.0), options)
            if not any(abs(t - known) <= options.convergence_epsilon for known in roots):
                roots.append(t)
        roots.sort()
        return roots
