"""DB service layer for the gold balance of a player.

The *_in_session helpers never open a transaction themselves, so the purchase
flow can combine them with grid changes in a single ``transaction()``.
"""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from citymayor.crud import ReadData, UpdateData
from citymayor.db import Session, transaction
from citymayor.domain.economy_rules import accrued_income, debit_balance, total_income_per_hour
from citymayor.errors import InsufficientFunds, NotFound
from citymayor.models.schema_models import PlacedBuildingSchema, PlayerSchema


async def debit_in_session(player_id: UUID, amount: int, session: AsyncSession) -> int:
    """Take gold from the player inside the caller's transaction

    Raises:
        InsufficientFunds: The balance does not cover the amount

    Returns:
        int: New balance
    """
    if amount < 0:
        raise ValueError("amount must be >= 0")
    new_gold = await UpdateData.debit_gold(player_id, amount, session)
    if new_gold is None:
        raise InsufficientFunds(f"Not enough gold to pay {amount}.")
    return new_gold


async def settle_income_in_session(
    player: PlayerSchema,
    placements: List[PlacedBuildingSchema],
    now: datetime,
    session: AsyncSession,
) -> tuple[int, int]:
    """Credit the income earned by the current buildings up to now

    Called before the set of buildings changes, so income is always paid at
    the rate that was in effect while it accrued.

    Args:
        player (PlayerSchema): Player read (and locked) in this transaction
        placements (List[PlacedBuildingSchema]): Buildings currently owned by the player
        now (datetime): Time of the settlement

    Returns:
        tuple[int, int]: Collected gold and new balance
    """
    income = total_income_per_hour(p.building.income_per_hour for p in placements)
    amount, collected_until = accrued_income(income, player.last_collected_at, now)
    gold = player.gold
    if amount > 0:
        gold = await UpdateData.credit_gold(player.player_id, amount, session)
    if collected_until != player.last_collected_at:
        await UpdateData.update_last_collected_at(player.player_id, collected_until, session)
    return amount, gold


async def get_balance(player_id: UUID) -> int:
    async with Session() as session:
        player = await ReadData.read_player_data(player_id, session)
    if player is None:
        raise NotFound("Player not found.")
    return player.gold


async def debit(player_id: UUID, amount: int) -> int:
    """Take gold from the player in its own transaction

    Args:
        player_id (UUID): To identify the player
        amount (int): Gold to take

    Raises:
        NotFound: The player does not exist
        InsufficientFunds: amount is greater than the balance

    Returns:
        int: New balance
    """
    async with transaction() as session:
        player = await ReadData.read_player_data(player_id, session, for_update=True)
        if player is None:
            raise NotFound("Player not found.")
        debit_balance(player.gold, amount)
        return await debit_in_session(player_id, amount, session)


async def credit(player_id: UUID, amount: int) -> int:
    if amount < 0:
        raise ValueError("amount must be >= 0")
    async with transaction() as session:
        new_gold = await UpdateData.credit_gold(player_id, amount, session)
    if new_gold is None:
        raise NotFound("Player not found.")
    return new_gold


async def collect_income(player_id: UUID, now: datetime | None = None) -> tuple[int, int]:
    """Credit the gold the player's buildings earned since the last collection

    Args:
        player_id (UUID): To identify the player
        now (datetime | None, optional): Collection time. Defaults to datetime.now().

    Returns:
        tuple[int, int]: Collected gold and new balance
    """
    now = now or datetime.now()
    async with transaction() as session:
        player = await ReadData.read_player_data(player_id, session, for_update=True)
        if player is None:
            raise NotFound("Player not found.")
        placements = await ReadData.read_player_buildings(player_id, session)
        collected, gold = await settle_income_in_session(player, placements, now, session)
    logging.info(f"Player {player_id} collected {collected} gold")
    return collected, gold
