"""DB service layer for the placement grid of a player."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from uuid6 import uuid7

from citymayor.crud import CreateData, DeleteData, ReadData
from citymayor.db import Session, transaction
from citymayor.domain.grid_rules import (
    Footprint,
    check_placement,
    find_occupant,
    first_free_anchor,
)
from citymayor.errors import NotFound, Occupied
from citymayor.models.schema_models import BuildingSchema, PlacedBuildingSchema, PlayerSchema
from citymayor.services.ledger_db import settle_income_in_session


def resolve_footprint(
    player: PlayerSchema,
    building: BuildingSchema,
    existing: List[PlacedBuildingSchema],
    x: Optional[int],
    y: Optional[int],
) -> Footprint:
    """Pick and validate the footprint of a new building

    Args:
        player (PlayerSchema): Owner of the land
        building (BuildingSchema): Building to place
        existing (List[PlacedBuildingSchema]): Buildings already on the land
        x (Optional[int]): Requested column, None to use the first free cell
        y (Optional[int]): Requested row, None to use the first free cell

    Raises:
        ValueError: Only one of x and y is given
        OutOfBounds: The footprint leaves the land
        Occupied: The footprint overlaps a building, or no free cell fits it

    Returns:
        Footprint: Validated footprint
    """
    if (x is None) != (y is None):
        raise ValueError("x and y must be given together")
    footprints = [p.footprint for p in existing]
    if x is None:
        anchor = first_free_anchor(
            footprints,
            building.size_x,
            building.size_y,
            player.land_size_x,
            player.land_size_y,
        )
        if anchor is None:
            raise Occupied(f"No free space for a {building.size_x}x{building.size_y} building.")
        x, y = anchor

    candidate = Footprint(x, y, building.size_x, building.size_y)
    check_placement(candidate, footprints, player.land_size_x, player.land_size_y)
    return candidate


async def add_placement_in_session(
    player: PlayerSchema,
    building: BuildingSchema,
    footprint: Footprint,
    now: datetime,
    session: AsyncSession,
) -> PlacedBuildingSchema:
    placement = PlacedBuildingSchema(
        placement_id=uuid7(),
        player_id=player.player_id,
        building_id=building.building_id,
        position_x=footprint.x,
        position_y=footprint.y,
        created_at=now,
        building=building,
    )
    await CreateData.add_player_building_data(placement, session)
    return placement


async def lock_player_and_placements(
    player_id: UUID, session: AsyncSession
) -> tuple[PlayerSchema, List[PlacedBuildingSchema]]:
    """Lock the player row and read its buildings; the lock serializes grid changes of one player."""
    player = await ReadData.read_player_data(player_id, session, for_update=True)
    if player is None:
        raise NotFound("Player not found.")
    placements = await ReadData.read_player_buildings(player_id, session)
    return player, placements


async def list_placements(player_id: UUID) -> List[PlacedBuildingSchema]:
    async with Session() as session:
        return await ReadData.read_player_buildings(player_id, session)


async def occupied_by(player_id: UUID, x: int, y: int) -> PlacedBuildingSchema | None:
    """Find the building of the player covering the cell (x, y)

    Returns:
        PlacedBuildingSchema | None: The building, None if the cell is free or off the land
    """
    placements = await list_placements(player_id)
    return find_occupant(placements, [p.footprint for p in placements], x, y)


async def place(
    player_id: UUID,
    building_id: UUID,
    x: Optional[int] = None,
    y: Optional[int] = None,
    now: datetime | None = None,
) -> PlacedBuildingSchema:
    """Place a building on the player's land without paying for it

    Args:
        player_id (UUID): Owner of the land
        building_id (UUID): Catalog entry to place
        x (Optional[int], optional): Column of the top-left cell. Defaults to the first free cell.
        y (Optional[int], optional): Row of the top-left cell. Defaults to the first free cell.

    Raises:
        ValueError: Only one of x and y is given
        NotFound: Unknown player or building
        OutOfBounds: The footprint leaves the land
        Occupied: The footprint overlaps another building

    Returns:
        PlacedBuildingSchema: The new placed building
    """
    now = now or datetime.now()
    async with transaction() as session:
        player, existing = await lock_player_and_placements(player_id, session)
        building = await ReadData.read_building_data(building_id, session)
        if building is None:
            raise NotFound("Building not found.")
        footprint = resolve_footprint(player, building, existing, x, y)
        await settle_income_in_session(player, existing, now, session)
        placement = await add_placement_in_session(player, building, footprint, now, session)
    logging.info(f"Placed {building.name} for player {player_id} at ({footprint.x}, {footprint.y})")
    return placement


async def remove(player_id: UUID, placement_id: UUID, now: datetime | None = None) -> None:
    """Remove a building from the player's land. No gold is refunded

    Args:
        player_id (UUID): Owner of the land
        placement_id (UUID): Placed building to remove

    Raises:
        NotFound: The placed building does not exist or belongs to another player
    """
    now = now or datetime.now()
    async with transaction() as session:
        player, existing = await lock_player_and_placements(player_id, session)
        if not any(p.placement_id == placement_id for p in existing):
            raise NotFound("Placed building not found.")
        await settle_income_in_session(player, existing, now, session)
        await DeleteData.delete_player_building(placement_id, player_id, session)
    logging.info(f"Removed placement {placement_id} of player {player_id}")
