"""Placement grid rules that are independent from HTTP and DB.

A footprint is the rectangle of cells a building covers, anchored at its
top-left cell. x grows to the right (land_size_x columns) and y grows
downwards (land_size_y rows).
"""

from typing import Iterable, NamedTuple, Optional, Sequence, TypeVar

import numpy as np

from citymayor.errors import Occupied, OutOfBounds


class Footprint(NamedTuple):
    x: int
    y: int
    size_x: int
    size_y: int


PlacementT = TypeVar("PlacementT")


def covers(footprint: Footprint, x: int, y: int) -> bool:
    """Return True if the cell (x, y) lies inside the footprint."""
    return (
        footprint.x <= x < footprint.x + footprint.size_x
        and footprint.y <= y < footprint.y + footprint.size_y
    )


def overlaps(a: Footprint, b: Footprint) -> bool:
    """Return True if the two footprints share at least one cell."""
    return (
        a.x < b.x + b.size_x
        and b.x < a.x + a.size_x
        and a.y < b.y + b.size_y
        and b.y < a.y + a.size_y
    )


def within_land(footprint: Footprint, land_size_x: int, land_size_y: int) -> bool:
    """Return True if every cell of the footprint is on the land."""
    return (
        footprint.x >= 0
        and footprint.y >= 0
        and footprint.x + footprint.size_x <= land_size_x
        and footprint.y + footprint.size_y <= land_size_y
    )


def find_occupant(
    placements: Sequence[PlacementT], footprints: Sequence[Footprint], x: int, y: int
) -> Optional[PlacementT]:
    """Find the placement whose footprint covers the cell (x, y)

    Args:
        placements (Sequence): Placed buildings of one player
        footprints (Sequence[Footprint]): Footprint of each placement, same order
        x (int): Column of the cell
        y (int): Row of the cell

    Returns:
        Optional: The placement covering the cell, None if the cell is free
    """
    for placement, footprint in zip(placements, footprints):
        if covers(footprint, x, y):
            return placement
    return None


def check_placement(
    candidate: Footprint,
    existing: Iterable[Footprint],
    land_size_x: int,
    land_size_y: int,
) -> None:
    """Validate a candidate footprint against the land and the existing buildings

    Args:
        candidate (Footprint): Footprint the player wants to build
        existing (Iterable[Footprint]): Footprints already placed by the same player
        land_size_x (int): Width of the player's land
        land_size_y (int): Height of the player's land

    Raises:
        OutOfBounds: The footprint leaves the land
        Occupied: The footprint overlaps an existing building
    """
    if not within_land(candidate, land_size_x, land_size_y):
        raise OutOfBounds(
            f"A {candidate.size_x}x{candidate.size_y} building at ({candidate.x}, {candidate.y}) "
            f"does not fit on {land_size_x}x{land_size_y} land."
        )
    for footprint in existing:
        if overlaps(candidate, footprint):
            raise Occupied(
                f"The cells at ({candidate.x}, {candidate.y}) are already occupied."
            )


def occupancy_mask(
    footprints: Iterable[Footprint], land_size_x: int, land_size_y: int
) -> np.ndarray:
    """Build a boolean (land_size_y, land_size_x) array, True where a cell is occupied."""
    mask = np.zeros((land_size_y, land_size_x), dtype=bool)
    for footprint in footprints:
        mask[
            footprint.y : footprint.y + footprint.size_y,
            footprint.x : footprint.x + footprint.size_x,
        ] = True
    return mask


def first_free_anchor(
    footprints: Iterable[Footprint],
    size_x: int,
    size_y: int,
    land_size_x: int,
    land_size_y: int,
) -> Optional[tuple[int, int]]:
    """Find the first top-left cell, in row-major order, where a building fits

    Args:
        footprints (Iterable[Footprint]): Footprints already placed by the player
        size_x (int): Width of the building to place
        size_y (int): Height of the building to place
        land_size_x (int): Width of the player's land
        land_size_y (int): Height of the player's land

    Returns:
        Optional[tuple[int, int]]: (x, y) of the anchor, None if the building fits nowhere
    """
    if size_x > land_size_x or size_y > land_size_y:
        return None

    mask = occupancy_mask(footprints, land_size_x, land_size_y)
    # summed-area table: occupied cell count of any rectangle in O(1)
    table = np.zeros((land_size_y + 1, land_size_x + 1), dtype=np.int64)
    table[1:, 1:] = mask.astype(np.int64).cumsum(axis=0).cumsum(axis=1)

    for y in range(land_size_y - size_y + 1):
        for x in range(land_size_x - size_x + 1):
            occupied = (
                table[y + size_y, x + size_x]
                - table[y, x + size_x]
                - table[y + size_y, x]
                + table[y, x]
            )
            if occupied == 0:
                return x, y
    return None
