"""DB service layer for players and read-only projections of their state."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from citymayor.converter import DataConverter
from citymayor.crud import CreateData, ReadData
from citymayor.db import Session, transaction
from citymayor.domain.economy_rules import default_username
from citymayor.errors import BackendUnavailable, NotFound
from citymayor.load_settings import default_gold, default_land_size_x, default_land_size_y
from citymayor.models.dc_models import GridModel, PlayerStatsModel
from citymayor.models.schema_models import AccountSchema, PlayerSchema

data_converter = DataConverter()


async def ensure_player(account: AccountSchema) -> PlayerSchema:
    """Read the player of the account, creating it on the first visit

    Args:
        account (AccountSchema): Authenticated account

    Returns:
        PlayerSchema: The existing or newly created player
    """
    async with Session() as session:
        player = await ReadData.read_player_data(account.account_id, session)
    if player is not None:
        return player

    now = datetime.now()
    player = PlayerSchema(
        player_id=account.account_id,
        username=default_username(account.email),
        gold=default_gold,
        land_size_x=default_land_size_x,
        land_size_y=default_land_size_y,
        last_collected_at=now,
        created_at=now,
    )
    try:
        async with transaction() as session:
            await CreateData.add_player_data(player, session)
    except BackendUnavailable as e:
        # Another request of the same account created the player first
        if not isinstance(e.__cause__, IntegrityError):
            raise
        async with Session() as session:
            return await ReadData.read_player_data(account.account_id, session)
    logging.info(f"Created player {player.username} ({player.player_id})")
    return player


async def read_player(player_id: UUID) -> PlayerSchema:
    async with Session() as session:
        player = await ReadData.read_player_data(player_id, session)
    if player is None:
        raise NotFound("Player not found.")
    return player


async def read_player_stats(player_id: UUID, now: datetime | None = None) -> PlayerStatsModel:
    async with Session() as session:
        player = await ReadData.read_player_data(player_id, session)
        if player is None:
            raise NotFound("Player not found.")
        placements = await ReadData.read_player_buildings(player_id, session)
    return data_converter.convert_to_player_stats(player, placements, now or datetime.now())


async def read_grid(player_id: UUID) -> GridModel:
    async with Session() as session:
        player = await ReadData.read_player_data(player_id, session)
        if player is None:
            raise NotFound("Player not found.")
        placements = await ReadData.read_player_buildings(player_id, session)
    return data_converter.convert_to_grid_model(player, placements)
