"""
circle_packing.py

Weighted circle packing: one circle per weight, area proportional to the weight,
packed without overlaps and rescaled into a target circle.

Usage (example):
    circles = circlify([4.0, 1.0, 1.0])                          # inside the unit circle
    circles = circlify(weights, target_enclosure=Circle(0, 0, 150), show_enclosure=True)

Pipeline:
  1) Sort weights (largest first) and take radius = sqrt(weight).
  2) Greedy placement: each new circle goes where it touches two placed circles,
     overlaps none, and leaves the smallest radius-weighted "hole degree".
  3) Minimal enclosing circle of the packed set (see circle_enclosure).
  4) Similarity transform (scale + translate) of everything into the target.
"""

from __future__ import annotations
import math
from typing import List, Sequence, Tuple

import numpy as np

from circle_enclosure import enclose
from circle_geometry import (
    Circle,
    OVERLAP_TOLERANCE,
    PLACEMENT_MARGIN_FACTOR,
    UNIT_CIRCLE,
    PackingInvariantError,
    PackingPreconditionError,
    circle_intersections,
    ensure_bool,
)


# =========================
# Input validation
# =========================
def validate_weights(weights: Sequence[float]) -> List[float]:
    """Coerce to floats; every weight must be finite and strictly positive."""
    out = []
    for idx, w in enumerate(weights):
        try:
            v = float(w)
        except (TypeError, ValueError):
            raise PackingPreconditionError(f"Weight #{idx} is not a number: {w!r}") from None
        ensure_bool(math.isfinite(v) and v > 0,
                    f"Weight #{idx} must be a positive finite number, got {w!r}.",
                    PackingPreconditionError)
        out.append(v)
    return out


# =========================
# Placement
# =========================
def placement_candidates(radius: float, c1: Circle, c2: Circle) -> List[Circle]:
    """Circles of ``radius`` externally tangent to both ``c1`` and ``c2``."""
    margin = radius * PLACEMENT_MARGIN_FACTOR
    ic1 = Circle(c1.x, c1.y, c1.r + radius + margin)
    ic2 = Circle(c2.x, c2.y, c2.r + radius + margin)
    return [Circle(p[0], p[1], radius) for p in circle_intersections(ic1, ic2) if p is not None]


def hole_degree(gaps: Sequence[float], radii: Sequence[float]) -> float:
    """
    Radius-weighted sum of a candidate's gaps to its neighbours; lower is tighter.

    ``gaps[k]`` is the gap distance from the candidate to a circle of radius ``radii[k]``.
    """
    return float(np.dot(np.asarray(gaps, dtype=float), np.asarray(radii, dtype=float)))


def place_next(radius: float, placed: Sequence[Circle], verbose: bool = False) -> Circle:
    """
    Position for a new circle of ``radius`` next to the already ``placed`` ones.

    The first circle sits at (radius, 0) and the second opposite it at (-radius, 0).
    After that every pair of placed circles proposes up to two tangent positions;
    positions overlapping any third circle are dropped and the one with the lowest
    hole degree wins (first found on ties).
    """
    if len(placed) == 0:
        return Circle(radius, 0.0, radius)
    if len(placed) == 1:
        return Circle(-radius, 0.0, radius)

    n = len(placed)
    xs = np.array([c.x for c in placed], dtype=float)
    ys = np.array([c.y for c in placed], dtype=float)
    rs = np.array([c.r for c in placed], dtype=float)

    best_hd = None
    best = None
    tried = 0
    for i in range(n - 1):
        for j in range(i + 1, n):
            for cand in placement_candidates(radius, placed[i], placed[j]):
                tried += 1
                dx = xs - cand.x
                dy = ys - cand.y
                gaps = np.sqrt(dx * dx + dy * dy) - rs - cand.r
                # the generating pair is tangent by construction
                gaps[i] = 0.0
                gaps[j] = 0.0
                if np.any(gaps < 0.0):
                    continue
                hd = hole_degree(gaps, rs)
                if best_hd is None or hd < best_hd:
                    best_hd = hd
                    best = cand

    if best is None:
        raise PackingInvariantError(f"Cannot place circle for radius {radius}")
    if verbose:
        print(f"[PACK] radius={radius:.6g} placed={n} candidates={tried} hole_degree={best_hd:.6g}")
    return best


def pack(weights: Sequence[float], verbose: bool = False) -> List[Circle]:
    """
    Pack one circle per weight (radius = sqrt(weight)) without overlaps.

    ``weights`` must already be sorted descending; anything else raises
    PackingPreconditionError. Use :func:`circlify` for unsorted input.
    """
    values = validate_weights(weights)
    ensure_bool(all(values[k] >= values[k + 1] for k in range(len(values) - 1)),
                "Data must be sorted descending.", PackingPreconditionError)

    placed: List[Circle] = []
    for v in values:
        placed.append(place_next(math.sqrt(v), placed, verbose=verbose))
    return placed


# =========================
# Rescaling
# =========================
def scale_into(circle: Circle, target: Circle, enclosure: Circle) -> Circle:
    """Map ``circle`` by the similarity transform taking ``enclosure`` onto ``target``."""
    s = target.r / enclosure.r
    x = (circle.x - enclosure.x) * s + target.x
    y = (circle.y - enclosure.y) * s + target.y
    return Circle(x, y, circle.r * s)


def circlify(weights: Sequence[float],
             target_enclosure: Circle = UNIT_CIRCLE,
             show_enclosure: bool = False,
             verbose: bool = False) -> List[Circle]:
    """
    Pack ``weights`` and fit the arrangement into ``target_enclosure``.

    Output is index-aligned with the weights sorted descending. With
    ``show_enclosure`` the target circle itself is appended last.
    """
    target = Circle(*(float(v) for v in target_enclosure))
    ensure_bool(math.isfinite(target.x) and math.isfinite(target.y)
                and math.isfinite(target.r) and target.r > 0,
                f"Target enclosure needs a finite center and positive radius, got {tuple(target_enclosure)}.",
                PackingPreconditionError)

    packed = pack(sorted(validate_weights(weights), reverse=True), verbose=verbose)
    encl = enclose(packed)
    if encl is None:
        return []
    if verbose:
        print(f"[PACK] enclosure=({encl.x:.6g}, {encl.y:.6g}, r={encl.r:.6g}) circles={len(packed)}")

    scaled = [scale_into(c, target, encl) for c in packed]
    if show_enclosure:
        scaled.append(target)
    return scaled


# =========================
# Validation
# =========================
def find_overlaps(circles: Sequence[Circle],
                  tolerance: float = OVERLAP_TOLERANCE) -> List[Tuple[int, int, float]]:
    """Every pair ``(i, j, gap)`` with i < j whose gap distance is below ``-tolerance``."""
    if len(circles) < 2:
        return []
    arr = np.array([tuple(c) for c in circles], dtype=float)  # (n, 3)
    diff = arr[:, None, :2] - arr[None, :, :2]
    dist = np.sqrt((diff ** 2).sum(axis=2))
    gaps = dist - arr[:, 2][:, None] - arr[:, 2][None, :]
    ii, jj = np.nonzero(np.triu(gaps < -tolerance, k=1))
    return [(int(i), int(j), float(gaps[i, j])) for i, j in zip(ii, jj)]
