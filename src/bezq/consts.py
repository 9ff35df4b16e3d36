"""Central module containing constants and defaults for Bezier curve queries."""

from __future__ import annotations

###############################################################################
# Lookup and length
###############################################################################

# Number of steps used by compute_lookup_table when none is given
DEFAULT_LUT_STEP_SIZE: int = 10

# Number of chord subdivisions used to approximate a curve's length
DEFAULT_LENGTH_SUBDIVISIONS: int = 1000

###############################################################################
# Euclidean <-> parametric conversion
###############################################################################

# Tolerance of the euclidean ratio used by TValue Euclidean descriptors
DEFAULT_EUCLIDEAN_ERROR_BOUND: float = 0.001

# Upper bound of bisection steps in euclidean_to_parametric
EUCLIDEAN_MAX_ITERATIONS: int = 100

###############################################################################
# Comparison
###############################################################################

MAX_ABSOLUTE_DIFFERENCE: float = 1e-3

###############################################################################
# Projection / root finding
###############################################################################

DEFAULT_PROJECTION_LUT_SIZE: int = 20

DEFAULT_PROJECTION_CONVERGENCE_EPSILON: float = 1e-12

DEFAULT_PROJECTION_ITERATION_LIMIT: int = 25

# Roots with a larger imaginary part are not treated as real
ROOT_IMAGINARY_TOLERANCE: float = 1e-6

# Roots slightly outside [0, 1] are still kept and clipped
ROOT_DOMAIN_TOLERANCE: float = 1e-9
