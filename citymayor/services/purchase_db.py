"""Purchase use case: pay for a building and place it, in one transaction.

NOTE: Do not call helpers that commit() inside this transaction.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from citymayor.crud import ReadData
from citymayor.db import transaction
from citymayor.domain.economy_rules import debit_balance
from citymayor.errors import NotFound
from citymayor.models.schema_models import PlacedBuildingSchema
from citymayor.services.grid_db import (
    add_placement_in_session,
    lock_player_and_placements,
    resolve_footprint,
)
from citymayor.services.ledger_db import debit_in_session, settle_income_in_session


async def purchase(
    player_id: UUID,
    building_id: UUID,
    x: Optional[int] = None,
    y: Optional[int] = None,
    now: datetime | None = None,
) -> tuple[PlacedBuildingSchema, int]:
    """Buy a building from the catalog and place it on the player's land

    Every check runs before any write, and all writes share one transaction:
    either the gold is taken and the building is placed, or nothing changes.
    Funds are checked against the stored balance; pending income is credited
    only once the purchase is known to succeed.

    Args:
        player_id (UUID): Buyer
        building_id (UUID): Catalog entry to buy
        x (Optional[int], optional): Column of the top-left cell. Defaults to the first free cell.
        y (Optional[int], optional): Row of the top-left cell. Defaults to the first free cell.
        now (datetime | None, optional): Purchase time. Defaults to datetime.now().

    Raises:
        ValueError: Only one of x and y is given
        NotFound: Unknown player or building
        InsufficientFunds: The player cannot pay the price
        OutOfBounds: The footprint leaves the land
        Occupied: The footprint overlaps another building

    Returns:
        tuple[PlacedBuildingSchema, int]: The new placed building and the gold left
    """
    now = now or datetime.now()
    async with transaction() as session:
        player, existing = await lock_player_and_placements(player_id, session)
        building = await ReadData.read_building_data(building_id, session)
        if building is None:
            raise NotFound("Building not found.")

        debit_balance(player.gold, building.price)
        footprint = resolve_footprint(player, building, existing, x, y)

        # Income earned so far is paid at the rate before this purchase
        await settle_income_in_session(player, existing, now, session)

        gold = await debit_in_session(player_id, building.price, session)
        placement = await add_placement_in_session(player, building, footprint, now, session)

    logging.info(
        f"Player {player_id} bought {building.name} for {building.price} "
        f"at ({footprint.x}, {footprint.y}), {gold} gold left"
    )
    return placement, gold
