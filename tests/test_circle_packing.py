"""Tests for greedy placement, packing and circlify."""

import math

import numpy as np
import pytest

from circle_enclosure import enclose, encloses_weak_all
from circle_geometry import (
    Circle,
    PackingError,
    PackingInvariantError,
    PackingPreconditionError,
    gap_distance,
)
from circle_packing import (
    circlify,
    find_overlaps,
    hole_degree,
    pack,
    place_next,
    placement_candidates,
    scale_into,
    validate_weights,
)


def _random_weights(n, seed):
    return sorted(np.random.default_rng(seed).uniform(0.3, 1.0, size=n).tolist(), reverse=True)


def _assert_no_overlap(circles, eps=1e-6):
    for i in range(len(circles)):
        for j in range(i + 1, len(circles)):
            assert gap_distance(circles[i], circles[j]) >= -eps, (i, j)


# -------------------------------
# placement
def test_first_two_circles_are_seeded_on_the_x_axis():
    first = place_next(2.0, [])
    second = place_next(1.0, [first])

    assert first == Circle(2.0, 0.0, 2.0)
    assert second == Circle(-1.0, 0.0, 1.0)


def test_placement_candidates_touch_both_parents():
    c1, c2 = Circle(2.0, 0.0, 2.0), Circle(-1.0, 0.0, 1.0)
    cands = placement_candidates(1.0, c1, c2)

    assert len(cands) == 2
    for cand in cands:
        assert cand.r == 1.0
        assert gap_distance(cand, c1) == pytest.approx(0.0, abs=1e-9)
        assert gap_distance(cand, c2) == pytest.approx(0.0, abs=1e-9)


def test_placement_candidates_empty_for_far_apart_pair():
    assert placement_candidates(0.1, Circle(0.0, 0.0, 1.0), Circle(10.0, 0.0, 1.0)) == []


def test_place_next_prefers_lowest_hole_degree():
    placed = pack([9.0, 4.0, 4.0, 1.0])
    r = 0.5
    chosen = place_next(r, placed)

    # brute force over every pair with a plain-Python score
    best = None
    for i in range(len(placed) - 1):
        for j in range(i + 1, len(placed)):
            others = [c for k, c in enumerate(placed) if k not in (i, j)]
            for cand in placement_candidates(r, placed[i], placed[j]):
                if any(gap_distance(cand, o) < 0 for o in others):
                    continue
                hd = sum(gap_distance(cand, o) * o.r for o in others)
                if best is None or hd < best[0]:
                    best = (hd, cand)

    # the two parents contribute ~0 to the score
    chosen_hd = sum(gap_distance(chosen, c) * c.r for c in placed)
    assert chosen_hd == pytest.approx(best[0], abs=1e-9)
    _assert_no_overlap(placed + [chosen])


def test_hole_degree_weights_gaps_by_radius():
    assert hole_degree([0.5, 2.0, 0.0], [3.0, 1.0, 4.0]) == pytest.approx(3.5)
    assert hole_degree([], []) == 0.0


def test_place_next_without_candidates_raises():
    concentric = [Circle(0.0, 0.0, 1.0), Circle(0.0, 0.0, 1.0)]
    with pytest.raises(PackingInvariantError):
        place_next(0.5, concentric)


# -------------------------------
# pack
def test_pack_radius_is_sqrt_of_weight():
    weights = [9.0, 4.0, 2.0, 1.0, 0.25]
    circles = pack(weights)

    assert len(circles) == len(weights)
    for c, w in zip(circles, weights):
        assert c.r == pytest.approx(math.sqrt(w))


def test_pack_random_weights_never_overlap():
    circles = pack(_random_weights(30, seed=3))
    _assert_no_overlap(circles)
    assert find_overlaps(circles) == []


def test_pack_rejects_ascending_input():
    with pytest.raises(PackingPreconditionError):
        pack([1.0, 2.0])


@pytest.mark.parametrize("bad", [[1.0, 0.0], [1.0, -2.0], [math.nan], [math.inf], ["x"]])
def test_pack_rejects_non_positive_or_non_finite(bad):
    with pytest.raises(PackingPreconditionError):
        pack(bad)


def test_precondition_error_is_a_value_error():
    assert issubclass(PackingPreconditionError, ValueError)
    assert issubclass(PackingPreconditionError, PackingError)
    assert issubclass(PackingInvariantError, RuntimeError)


def test_validate_weights_coerces_numbers():
    assert validate_weights([3, "2.5", 1.0]) == [3.0, 2.5, 1.0]


# -------------------------------
# scale_into
def test_scale_into_own_enclosure_is_identity():
    c = Circle(0.37, -1.25, 0.4)
    e = Circle(0.1, 0.3, 3.0)
    out = scale_into(c, e, e)
    assert out == pytest.approx(c)


def test_scale_into_maps_enclosure_onto_target():
    e = Circle(2.0, 1.0, 4.0)
    t = Circle(-1.0, 0.0, 2.0)
    assert scale_into(e, t, e) == pytest.approx(t)
    assert scale_into(Circle(6.0, 1.0, 1.0), t, e) == pytest.approx(Circle(1.0, 0.0, 0.5))


# -------------------------------
# circlify
def test_circlify_single_weight_fills_unit_circle():
    (c,) = circlify([1.0])
    assert c == pytest.approx(Circle(0.0, 0.0, 1.0))


def test_circlify_two_equal_weights():
    a, b = circlify([1.0, 1.0])

    assert a.r == pytest.approx(0.5)
    assert b.r == pytest.approx(0.5)
    assert a.y == pytest.approx(0.0)
    assert b.y == pytest.approx(0.0)
    assert a.x == pytest.approx(-b.x)
    assert abs(a.x) == pytest.approx(0.5)
    assert gap_distance(a, b) == pytest.approx(0.0, abs=1e-9)


def test_circlify_one_large_two_small():
    circles = circlify([4.0, 1.0, 1.0])

    assert len(circles) == 3
    assert circles[0].r == pytest.approx(2 * circles[1].r)
    assert circles[1].r == pytest.approx(circles[2].r)
    _assert_no_overlap(circles)
    assert encloses_weak_all(Circle(0.0, 0.0, 1.0), circles)


def test_circlify_empty():
    assert circlify([]) == []
    assert circlify([], show_enclosure=True) == []


def test_circlify_sorts_defensively():
    assert circlify([1.0, 2.0]) == circlify([2.0, 1.0])
    assert circlify([1, 3, 2]) == circlify([3.0, 2.0, 1.0])


def test_circlify_area_proportional_to_weight():
    weights = [5.0, 3.0, 2.0, 2.0, 1.0, 0.5]
    circles = circlify(weights)

    ratios = [c.r ** 2 / w for c, w in zip(circles, weights)]
    assert ratios == pytest.approx([ratios[0]] * len(ratios))


def test_circlify_result_fits_tightly_in_target():
    circles = circlify(_random_weights(20, seed=11))

    e = enclose(circles)
    assert e.r == pytest.approx(1.0, abs=1e-5)
    assert math.hypot(e.x, e.y) == pytest.approx(0.0, abs=1e-5)
    _assert_no_overlap(circles)


def test_circlify_is_similar_across_targets():
    weights = _random_weights(12, seed=5)
    unit = circlify(weights)
    target = Circle(3.0, -2.0, 5.0)
    moved = circlify(weights, target_enclosure=target)

    for u, m in zip(unit, moved):
        assert m.x == pytest.approx(u.x * 5.0 + 3.0)
        assert m.y == pytest.approx(u.y * 5.0 - 2.0)
        assert m.r == pytest.approx(u.r * 5.0)


def test_circlify_is_deterministic():
    weights = _random_weights(15, seed=2)
    assert circlify(weights) == circlify(weights)


def test_circlify_show_enclosure_appends_target():
    target = Circle(1.0, 1.0, 2.0)
    circles = circlify([3.0, 2.0, 1.0], target_enclosure=target, show_enclosure=True)

    assert len(circles) == 4
    assert circles[-1] == target


def test_circlify_rejects_bad_target():
    with pytest.raises(PackingPreconditionError):
        circlify([1.0], target_enclosure=Circle(0.0, 0.0, 0.0))


def test_circlify_verbose_prints_progress(capsys):
    circlify([3.0, 2.0, 1.0], verbose=True)
    out = capsys.readouterr().out
    assert "[PACK]" in out


# -------------------------------
# find_overlaps
def test_find_overlaps_reports_pairs():
    circles = [Circle(0.0, 0.0, 1.0), Circle(1.0, 0.0, 1.0), Circle(5.0, 0.0, 1.0)]
    overlaps = find_overlaps(circles)

    assert [(i, j) for i, j, _ in overlaps] == [(0, 1)]
    assert overlaps[0][2] == pytest.approx(-1.0)


def test_find_overlaps_ignores_touching():
    assert find_overlaps([Circle(0.0, 0.0, 1.0), Circle(2.0, 0.0, 1.0)]) == []
    assert find_overlaps([Circle(0.0, 0.0, 1.0)]) == []
