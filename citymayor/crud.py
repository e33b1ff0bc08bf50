# import database
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from typing import List
from uuid import UUID
from datetime import datetime
import logging

from citymayor.errors import BackendUnavailable
from citymayor.models.schema_models import (
    BuildingSchema,
    PlacedBuildingSchema,
    PlayerSchema,
)
from citymayor.models.schemas import Building, Player, PlayerBuilding

# NOTE: helpers here never commit. The service layer owns the transaction
# (``async with session.begin()``) so several helpers can run atomically.


class ReadData:
    @staticmethod
    async def read_player_data(
        player_id: UUID, session: AsyncSession, for_update: bool = False
    ) -> PlayerSchema | None:
        """Read player data from database

        Args:
            player_id (UUID): To identify the player
            session (AsyncSession): Session of the running transaction
            for_update (bool, optional): Lock the player row until the transaction ends. Defaults to False.

        Returns:
            PlayerSchema | None: Player data with gold and land size, None if the player does not exist
        """
        try:
            stmt = select(Player).where(Player.player_id == player_id)
            if for_update:
                stmt = stmt.with_for_update()
            result = await session.execute(stmt)
            result = result.scalars().first()

            if result is None:
                return None

            return PlayerSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read player data: {e}")
            raise BackendUnavailable("Failed to read player data.") from e

    @staticmethod
    async def read_buildings(session: AsyncSession) -> List[BuildingSchema]:
        """Read the catalog ordered by ascending price

        Returns:
            List[BuildingSchema]: Every building which can be purchased
        """
        try:
            stmt = select(Building).order_by(Building.price, Building.name)
            result = await session.execute(stmt)
            return [BuildingSchema.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read buildings: {e}")
            raise BackendUnavailable("Failed to read the building catalog.") from e

    @staticmethod
    async def read_buildings_newest_first(session: AsyncSession) -> List[BuildingSchema]:
        try:
            stmt = select(Building).order_by(desc(Building.created_at))
            result = await session.execute(stmt)
            return [BuildingSchema.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read buildings: {e}")
            raise BackendUnavailable("Failed to read the building catalog.") from e

    @staticmethod
    async def read_building_data(building_id: UUID, session: AsyncSession) -> BuildingSchema | None:
        try:
            stmt = select(Building).where(Building.building_id == building_id)
            result = await session.execute(stmt)
            result = result.scalars().first()

            if result is None:
                return None

            return BuildingSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read building data: {e}")
            raise BackendUnavailable("Failed to read building data.") from e

    @staticmethod
    async def count_buildings(session: AsyncSession) -> int:
        try:
            result = await session.execute(select(func.count()).select_from(Building))
            return result.scalar_one()
        except SQLAlchemyError as e:
            logging.error(f"Failed to count buildings: {e}")
            raise BackendUnavailable("Failed to read the building catalog.") from e

    @staticmethod
    async def read_player_buildings(
        player_id: UUID, session: AsyncSession
    ) -> List[PlacedBuildingSchema]:
        """Read every building placed by the player together with its catalog data

        Args:
            player_id (UUID): Owner of the buildings

        Returns:
            List[PlacedBuildingSchema]: Placed buildings, oldest first
        """
        try:
            stmt = (
                select(PlayerBuilding)
                .options(joinedload(PlayerBuilding.building))
                .where(PlayerBuilding.player_id == player_id)
                .order_by(PlayerBuilding.created_at, PlayerBuilding.placement_id)
            )
            result = await session.execute(stmt)
            return [
                PlacedBuildingSchema.model_validate(row) for row in result.scalars().all()
            ]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read player buildings: {e}")
            raise BackendUnavailable("Failed to read placed buildings.") from e

    @staticmethod
    async def read_player_building(
        placement_id: UUID, session: AsyncSession
    ) -> PlacedBuildingSchema | None:
        try:
            stmt = (
                select(PlayerBuilding)
                .options(joinedload(PlayerBuilding.building))
                .where(PlayerBuilding.placement_id == placement_id)
            )
            result = await session.execute(stmt)
            result = result.scalars().first()

            if result is None:
                return None

            return PlacedBuildingSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read placed building: {e}")
            raise BackendUnavailable("Failed to read placed building.") from e

    @staticmethod
    async def count_placements_of_building(building_id: UUID, session: AsyncSession) -> int:
        try:
            stmt = (
                select(func.count())
                .select_from(PlayerBuilding)
                .where(PlayerBuilding.building_id == building_id)
            )
            result = await session.execute(stmt)
            return result.scalar_one()
        except SQLAlchemyError as e:
            logging.error(f"Failed to count placements: {e}")
            raise BackendUnavailable("Failed to read placed buildings.") from e


class CreateData:
    @staticmethod
    async def add_player_data(player: PlayerSchema, session: AsyncSession) -> None:
        """Add a new player with the default gold and land size

        Args:
            player (PlayerSchema): Player data created on the first visit
        """
        try:
            new_player = Player(
                player_id=player.player_id,
                username=player.username,
                gold=player.gold,
                land_size_x=player.land_size_x,
                land_size_y=player.land_size_y,
                last_collected_at=player.last_collected_at,
                created_at=player.created_at,
            )
            session.add(new_player)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create player data: {e}")
            raise BackendUnavailable("Failed to create player data.") from e

    @staticmethod
    async def add_building_data(building: BuildingSchema, session: AsyncSession) -> None:
        """Add a building definition to the catalog

        Args:
            building (BuildingSchema): Building definition created by an admin
        """
        try:
            new_building = Building(
                building_id=building.building_id,
                name=building.name,
                type=building.type,
                price=building.price,
                income_per_hour=building.income_per_hour,
                size_x=building.size_x,
                size_y=building.size_y,
                image_url=building.image_url,
                description=building.description,
                created_at=building.created_at,
            )
            session.add(new_building)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create building data: {e}")
            raise BackendUnavailable("Failed to create building data.") from e

    @staticmethod
    async def add_player_building_data(
        placement: PlacedBuildingSchema, session: AsyncSession
    ) -> None:
        try:
            new_placement = PlayerBuilding(
                placement_id=placement.placement_id,
                player_id=placement.player_id,
                building_id=placement.building_id,
                position_x=placement.position_x,
                position_y=placement.position_y,
                created_at=placement.created_at,
            )
            session.add(new_placement)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create placed building: {e}")
            raise BackendUnavailable("Failed to create placed building.") from e


class UpdateData:
    @staticmethod
    async def debit_gold(player_id: UUID, amount: int, session: AsyncSession) -> int | None:
        """Take gold from the player only if the balance covers the amount

        The check and the write are one UPDATE statement, so two concurrent
        purchases can never spend the same gold.

        Args:
            player_id (UUID): To identify the player
            amount (int): Gold to take

        Returns:
            int | None: New balance, None if the balance was too small or the player does not exist
        """
        try:
            stmt = (
                update(Player)
                .where(Player.player_id == player_id, Player.gold >= amount)
                .values(gold=Player.gold - amount)
                .returning(Player.gold)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Failed to debit gold: {e}")
            raise BackendUnavailable("Failed to update gold.") from e

    @staticmethod
    async def credit_gold(player_id: UUID, amount: int, session: AsyncSession) -> int | None:
        try:
            stmt = (
                update(Player)
                .where(Player.player_id == player_id)
                .values(gold=Player.gold + amount)
                .returning(Player.gold)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Failed to credit gold: {e}")
            raise BackendUnavailable("Failed to update gold.") from e

    @staticmethod
    async def update_last_collected_at(
        player_id: UUID, last_collected_at: datetime, session: AsyncSession
    ) -> None:
        try:
            stmt = (
                update(Player)
                .where(Player.player_id == player_id)
                .values(last_collected_at=last_collected_at)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to update last collected time: {e}")
            raise BackendUnavailable("Failed to update income collection time.") from e


class DeleteData:
    @staticmethod
    async def delete_player_building(
        placement_id: UUID, player_id: UUID, session: AsyncSession
    ) -> bool:
        """Delete a placed building owned by the player

        Args:
            placement_id (UUID): To identify the placed building
            player_id (UUID): Owner of the placed building

        Returns:
            bool: True if a row was deleted
        """
        try:
            stmt = delete(PlayerBuilding).where(
                PlayerBuilding.placement_id == placement_id,
                PlayerBuilding.player_id == player_id,
            )
            result = await session.execute(stmt)
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logging.error(f"Failed to delete placed building: {e}")
            raise BackendUnavailable("Failed to delete placed building.") from e

    @staticmethod
    async def delete_building(building_id: UUID, session: AsyncSession) -> bool:
        try:
            stmt = delete(Building).where(Building.building_id == building_id)
            result = await session.execute(stmt)
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logging.error(f"Failed to delete building: {e}")
            raise BackendUnavailable("Failed to delete building.") from e
