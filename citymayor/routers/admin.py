from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from citymayor.authentication.session_authentication import SessionAuthentication
from citymayor.converter import DataConverter
from citymayor.errors import GameError, to_http_exception
from citymayor.models.dc_models import BuildingCreateModel, BuildingModel
from citymayor.models.schema_models import AccountSchema
from citymayor.services import catalog_db

admin_router = APIRouter(prefix="/admin")
session_auth = SessionAuthentication()
data_converter = DataConverter()


class BuildingManagerServer:
    @staticmethod
    @admin_router.get("/buildings", response_model=List[BuildingModel])
    async def list_buildings(admin: AccountSchema = Depends(session_auth.current_admin)):
        """Catalog for the admin panel, newest first"""
        try:
            buildings = await catalog_db.list_buildings_for_admin()
        except GameError as e:
            raise to_http_exception(e)
        return [data_converter.convert_building_to_model(b) for b in buildings]

    @staticmethod
    @admin_router.post(
        "/buildings", response_model=BuildingModel, status_code=status.HTTP_201_CREATED
    )
    async def add_building(
        request: BuildingCreateModel,
        admin: AccountSchema = Depends(session_auth.current_admin),
    ):
        try:
            building = await catalog_db.add_building(request)
        except GameError as e:
            raise to_http_exception(e)
        return data_converter.convert_building_to_model(building)

    @staticmethod
    @admin_router.delete("/buildings/{building_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_building(
        building_id: UUID,
        admin: AccountSchema = Depends(session_auth.current_admin),
    ) -> None:
        try:
            await catalog_db.delete_building(building_id)
        except GameError as e:
            raise to_http_exception(e)
