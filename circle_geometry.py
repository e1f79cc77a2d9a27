"""
circle_geometry.py

Geometry primitives shared by the packing engine and the enclosure solver.

Everything here is pure: a :class:`Circle` is an immutable ``(x, y, r)`` value and
every function returns new values rather than mutating its inputs.

The tolerance constants below decide the boundary between "touching" and
"overlapping", so they live in one place instead of being sprinkled as literals.
"""

from __future__ import annotations
import math
import sys
from typing import NamedTuple, Optional, Tuple

# =========================
# Tolerances
# =========================
# Centers closer than this have no well-defined intersection points.
COINCIDENT_EPSILON = 1e-12

# Slack used by weak containment (circle B counts as inside A up to this much).
ENCLOSE_EPSILON = 1e-6

# Placement candidates are searched on circles inflated by radius * this factor,
# so a freshly placed circle never reads as overlapping its two parents.
PLACEMENT_MARGIN_FACTOR = sys.float_info.epsilon * 10.0

# Below this the 3-circle enclosure quadratic degenerates to a linear equation.
QUADRATIC_EPSILON = sys.float_info.epsilon

# Gap below -OVERLAP_TOLERANCE counts as an overlap when validating a layout.
OVERLAP_TOLERANCE = 1e-6


# =========================
# Types
# =========================
class Circle(NamedTuple):
    x: float
    y: float
    r: float


Point = Tuple[float, float]

UNIT_CIRCLE = Circle(0.0, 0.0, 1.0)

# Stand-in for configurations with no finite solution; fails every containment test.
DEGENERATE_CIRCLE = Circle(math.nan, math.nan, math.nan)


# =========================
# Errors
# =========================
class PackingError(RuntimeError):
    """Base class for every error raised by the packing engine."""


class PackingPreconditionError(PackingError, ValueError):
    """The caller passed weights the engine cannot pack (unsorted, <= 0, NaN, ...)."""


class PackingInvariantError(PackingError):
    """An algorithmic invariant broke; unreachable for well-formed input."""


def ensure_bool(cond: bool, msg: str, exc: type = PackingInvariantError):
    if not cond:
        raise exc(msg)


# =========================
# Primitives
# =========================
def gap_distance(c1: Circle, c2: Circle) -> float:
    """Center distance minus both radii: 0 touching, < 0 overlap, > 0 gap."""
    dx = c2.x - c1.x
    dy = c2.y - c1.y
    return math.sqrt(dx * dx + dy * dy) - c1.r - c2.r


def circle_intersections(c1: Circle, c2: Circle) -> Tuple[Optional[Point], Optional[Point]]:
    """
    Points where the boundaries of ``c1`` and ``c2`` cross.

    Returns ``(p1, p2)``, ``(p, None)`` when the circles are tangent, or
    ``(None, None)`` when the centers coincide or the boundaries never meet.
    """
    dx = c2.x - c1.x
    dy = c2.y - c1.y
    d = math.sqrt(dx * dx + dy * dy)
    if d <= COINCIDENT_EPSILON:
        return None, None

    # distance from c1's center to the chord through both intersection points
    a = (c1.r * c1.r - c2.r * c2.r + d * d) / (2 * d)
    rr = c1.r * c1.r - a * a
    if rr < 0:
        return None, None

    h = math.sqrt(rr)
    xm = c1.x + a * dx / d
    ym = c1.y + a * dy / d
    rx = -dy * (h / d)
    ry = dx * (h / d)

    p1 = (xm + rx, ym + ry)
    p2 = (xm - rx, ym - ry)
    if p1 == p2:
        return p1, None
    return p1, p2
