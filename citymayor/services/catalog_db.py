"""DB service layer for the building catalog.

- Routers should not touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries.
"""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from uuid6 import uuid7

from citymayor.crud import CreateData, DeleteData, ReadData
from citymayor.db import Session, transaction
from citymayor.domain.economy_rules import DEFAULT_CATALOG
from citymayor.errors import BuildingInUse, NotFound
from citymayor.models.dc_models import BuildingCreateModel
from citymayor.models.schema_models import BuildingSchema


async def list_buildings() -> List[BuildingSchema]:
    async with Session() as session:
        return await ReadData.read_buildings(session)


async def list_buildings_for_admin() -> List[BuildingSchema]:
    async with Session() as session:
        return await ReadData.read_buildings_newest_first(session)


async def add_building(request: BuildingCreateModel) -> BuildingSchema:
    building = BuildingSchema(
        building_id=uuid7(),
        name=request.name,
        type=request.type.value,
        price=request.price,
        income_per_hour=request.income_per_hour,
        size_x=request.size_x,
        size_y=request.size_y,
        image_url=request.image_url or None,
        description=request.description or None,
        created_at=datetime.now(),
    )
    async with transaction() as session:
        await CreateData.add_building_data(building, session)
    logging.info(f"Added building {building.name} ({building.building_id})")
    return building


async def delete_building(building_id: UUID) -> None:
    """Remove a building definition from the catalog

    Args:
        building_id (UUID): To identify the building definition

    Raises:
        NotFound: The building is not in the catalog
        BuildingInUse: A player still has this building placed on their land
    """
    async with transaction() as session:
        if await ReadData.read_building_data(building_id, session) is None:
            raise NotFound("Building not found.")
        if await ReadData.count_placements_of_building(building_id, session) > 0:
            raise BuildingInUse("This building is placed on a player's land.")
        await DeleteData.delete_building(building_id, session)
    logging.info(f"Deleted building {building_id}")


async def seed_default_catalog() -> int:
    """Fill an empty catalog with the default buildings

    Returns:
        int: Number of buildings added
    """
    async with transaction() as session:
        if await ReadData.count_buildings(session) > 0:
            return 0
        for entry in DEFAULT_CATALOG:
            building = BuildingSchema(
                building_id=uuid7(), created_at=datetime.now(), **entry
            )
            await CreateData.add_building_data(building, session)
    logging.info(f"Seeded {len(DEFAULT_CATALOG)} default buildings")
    return len(DEFAULT_CATALOG)
