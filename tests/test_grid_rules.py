import pytest

from citymayor.domain.grid_rules import (
    Footprint,
    check_placement,
    covers,
    find_occupant,
    first_free_anchor,
    occupancy_mask,
    overlaps,
    within_land,
)
from citymayor.errors import Occupied, OutOfBounds


def test_covers_whole_footprint_only():
    footprint = Footprint(0, 0, 2, 2)
    assert covers(footprint, 0, 0)
    assert covers(footprint, 1, 1)
    assert not covers(footprint, 2, 2)
    assert not covers(footprint, 2, 0)


def test_overlaps_is_symmetric_and_edges_do_not_touch():
    a = Footprint(0, 0, 2, 2)
    assert overlaps(a, Footprint(1, 1, 2, 2))
    assert overlaps(Footprint(1, 1, 2, 2), a)
    assert not overlaps(a, Footprint(2, 0, 1, 1))
    assert not overlaps(a, Footprint(0, 2, 3, 1))


def test_within_land():
    assert within_land(Footprint(8, 8, 2, 2), 10, 10)
    assert not within_land(Footprint(9, 9, 2, 2), 10, 10)
    assert not within_land(Footprint(-1, 0, 1, 1), 10, 10)


def test_check_placement_raises_out_of_bounds_before_occupied():
    existing = [Footprint(8, 8, 2, 2)]
    with pytest.raises(OutOfBounds):
        check_placement(Footprint(9, 9, 2, 2), existing, 10, 10)
    with pytest.raises(Occupied):
        check_placement(Footprint(7, 7, 2, 2), existing, 10, 10)
    check_placement(Footprint(6, 6, 2, 2), existing, 10, 10)


def test_find_occupant_returns_matching_placement():
    placements = ["shop", "hut"]
    footprints = [Footprint(0, 0, 2, 2), Footprint(5, 5, 1, 1)]
    assert find_occupant(placements, footprints, 1, 0) == "shop"
    assert find_occupant(placements, footprints, 5, 5) == "hut"
    assert find_occupant(placements, footprints, 3, 3) is None


def test_occupancy_mask_marks_rows_and_columns():
    mask = occupancy_mask([Footprint(1, 0, 3, 2)], land_size_x=5, land_size_y=4)
    assert mask.shape == (4, 5)
    assert mask.sum() == 6
    assert mask[0, 1] and mask[1, 3]
    assert not mask[2, 1]


def test_first_free_anchor_scans_row_major():
    assert first_free_anchor([], 2, 2, 10, 10) == (0, 0)
    assert first_free_anchor([Footprint(0, 0, 2, 2)], 2, 2, 10, 10) == (2, 0)
    # top row blocked except a 1-wide gap
    blocked = [Footprint(0, 0, 4, 1), Footprint(5, 0, 5, 1)]
    assert first_free_anchor(blocked, 2, 1, 10, 10) == (0, 1)
    assert first_free_anchor(blocked, 1, 1, 10, 10) == (4, 0)


def test_first_free_anchor_none_when_nothing_fits():
    assert first_free_anchor([], 11, 1, 10, 10) is None
    assert first_free_anchor([Footprint(0, 0, 3, 3)], 1, 1, 3, 3) is None
    checkerboard = [Footprint(x, y, 1, 1) for x in range(4) for y in range(4) if (x + y) % 2 == 0]
    assert first_free_anchor(checkerboard, 2, 1, 4, 4) is None
    assert first_free_anchor(checkerboard, 1, 1, 4, 4) == (1, 0)
