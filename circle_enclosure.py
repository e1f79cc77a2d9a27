"""
circle_enclosure.py

Smallest circle enclosing a set of circles.

Incremental construction over a support basis of at most three circles: scan the
input, and whenever a circle falls outside the current enclosure, extend the basis
with it, rebuild the enclosure and restart the scan from the first circle.
"""

from __future__ import annotations
import math
from typing import List, Optional, Sequence

from circle_geometry import (
    Circle,
    DEGENERATE_CIRCLE,
    ENCLOSE_EPSILON,
    QUADRATIC_EPSILON,
    PackingInvariantError,
)


# =========================
# Containment tests
# =========================
def encloses_weak(a: Circle, b: Circle) -> bool:
    """True if ``b`` lies inside ``a``, allowing ENCLOSE_EPSILON of slack."""
    dr = a.r - b.r + ENCLOSE_EPSILON
    dx = b.x - a.x
    dy = b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def encloses_not(a: Circle, b: Circle) -> bool:
    """True if ``b`` is not inside ``a`` (no tolerance)."""
    dr = a.r - b.r
    dx = b.x - a.x
    dy = b.y - a.y
    return dr < 0 or dr * dr < dx * dx + dy * dy


def encloses_weak_all(a: Circle, circles: Sequence[Circle]) -> bool:
    return all(encloses_weak(a, c) for c in circles)


# =========================
# Enclosures of 1, 2 and 3 circles
# =========================
def enclose_basis2(a: Circle, b: Circle) -> Circle:
    dx = b.x - a.x
    dy = b.y - a.y
    dr = b.r - a.r
    d = math.sqrt(dx * dx + dy * dy)
    if d == 0:
        # concentric: the larger one already holds the other
        return a if a.r >= b.r else b
    cx = (a.x + b.x + dx / d * dr) * 0.5
    cy = (a.y + b.y + dy / d * dr) * 0.5
    cr = (d + a.r + b.r) * 0.5
    return Circle(cx, cy, cr)


def enclose_basis3(a: Circle, b: Circle, c: Circle) -> Circle:
    """
    Circle internally tangent to ``a``, ``b`` and ``c``.

    Subtracting the tangency equations pairwise leaves a linear system for the
    center in terms of the radius; substituting back gives a quadratic in the
    radius. Collinear centers and negative discriminants have no solution and
    produce DEGENERATE_CIRCLE.
    """
    x1, y1, r1 = a
    x2, y2, r2 = b
    x3, y3, r3 = c
    a2 = x1 - x2
    a3 = x1 - x3
    b2 = y1 - y2
    b3 = y1 - y3
    c2 = r2 - r1
    c3 = r3 - r1
    d1 = x1 * x1 + y1 * y1 - r1 * r1
    d2 = d1 - (x2 * x2 + y2 * y2 - r2 * r2)
    d3 = d1 - (x3 * x3 + y3 * y3 - r3 * r3)
    ab = a3 * b2 - a2 * b3
    if ab == 0:
        return DEGENERATE_CIRCLE
    xa = (b2 * d3 - b3 * d2) / (ab * 2) - x1
    xb = (b3 * c2 - b2 * c3) / ab
    ya = (a3 * d2 - a2 * d3) / (ab * 2) - y1
    yb = (a2 * c3 - a3 * c2) / ab
    qa = xb * xb + yb * yb - 1
    qb = 2 * (r1 + xa * xb + ya * yb)
    qc = xa * xa + ya * ya - r1 * r1
    if abs(qa) > QUADRATIC_EPSILON:
        disc = qb * qb - 4 * qa * qc
        if disc < 0:
            return DEGENERATE_CIRCLE
        r = -(qb + math.sqrt(disc)) / (2 * qa)
    elif qb != 0:
        r = -qc / qb
    else:
        return DEGENERATE_CIRCLE
    return Circle(x1 + xa + xb * r, y1 + ya + yb * r, r)


def enclose_basis(basis: Sequence[Circle]) -> Circle:
    if len(basis) == 1:
        return basis[0]
    if len(basis) == 2:
        return enclose_basis2(basis[0], basis[1])
    return enclose_basis3(basis[0], basis[1], basis[2])


# =========================
# Basis maintenance
# =========================
def extend_basis(basis: Sequence[Circle], p: Circle) -> List[Circle]:
    """Smallest support basis that covers ``basis`` and the new circle ``p``."""
    if encloses_weak_all(p, basis):
        return [p]

    for b in basis:
        if encloses_not(p, b) and encloses_weak_all(enclose_basis2(b, p), basis):
            return [b, p]

    n = len(basis)
    for i in range(n - 1):
        for j in range(i + 1, n):
            b1, b2 = basis[i], basis[j]
            if (encloses_not(enclose_basis2(b1, b2), p)
                    and encloses_not(enclose_basis2(b1, p), b2)
                    and encloses_not(enclose_basis2(b2, p), b1)
                    and encloses_weak_all(enclose_basis3(b1, b2, p), basis)):
                return [b1, b2, p]

    raise PackingInvariantError(f"extend_basis: no basis covers {p} and {list(basis)}")


def enclose(circles: Sequence[Circle]) -> Optional[Circle]:
    """
    Minimal circle weakly enclosing every circle in ``circles``.

    Returns None for an empty sequence.
    """
    if not circles:
        return None

    n = len(circles)
    # each basis change grows the enclosure, so no basis repeats
    max_changes = n + n * n + n ** 3
    changes = 0

    basis: List[Circle] = []
    e: Optional[Circle] = None
    i = 0
    while i < n:
        p = circles[i]
        if e is not None and encloses_weak(e, p):
            i += 1
            continue
        basis = extend_basis(basis, p)
        e = enclose_basis(basis)
        changes += 1
        if changes > max_changes:
            raise PackingInvariantError(f"enclose: no convergence after {changes} basis changes")
        i = 0
    return e
