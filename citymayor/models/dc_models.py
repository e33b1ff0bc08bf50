from pydantic import BaseModel, Field, model_validator
from enum import Enum
from uuid import UUID
from typing import Optional, Dict, List
from datetime import datetime


class BuildingTypeModel(str, Enum):
    residential = "residential"
    commercial = "commercial"
    public = "public"
    decoration = "decoration"
    entertainment = "entertainment"


class RegisterModel(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)


class SessionTokenModel(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class BuildingModel(BaseModel):
    """Catalog entry as sent to the client."""
    building_id: UUID
    name: str
    type: BuildingTypeModel
    price: int
    income_per_hour: int
    size_x: int
    size_y: int
    image_url: str | None = None
    description: str | None = None

    class Config:
        from_attributes = True


class BuildingCreateModel(BaseModel):
    """Admin form to add a building to the catalog."""
    name: str = Field(min_length=1)
    type: BuildingTypeModel = BuildingTypeModel.residential
    price: int = Field(ge=0)
    income_per_hour: int = Field(default=0, ge=0)
    size_x: int = Field(default=1, ge=1)
    size_y: int = Field(default=1, ge=1)
    image_url: str | None = None
    description: str | None = None


class PurchaseModel(BaseModel):
    """Both coordinates or neither: without them the first free cell is used."""
    building_id: UUID
    position_x: Optional[int] = None
    position_y: Optional[int] = None

    @model_validator(mode="after")
    def check_position(self):
        if (self.position_x is None) != (self.position_y is None):
            raise ValueError("position_x and position_y must be given together")
        return self


class PlacedBuildingModel(BaseModel):
    placement_id: UUID
    building_id: UUID
    name: str
    type: BuildingTypeModel
    position_x: int
    position_y: int
    size_x: int
    size_y: int
    income_per_hour: int
    image_url: str | None = None


class PurchaseResultModel(BaseModel):
    gold: int
    placement: PlacedBuildingModel


class CellModel(BaseModel):
    x: int
    y: int
    placement: Optional[PlacedBuildingModel] = None


class GridModel(BaseModel):
    land_size_x: int
    land_size_y: int
    placements: List[PlacedBuildingModel]


class PlayerStatsModel(BaseModel):
    player_id: UUID
    username: str
    gold: int
    land_size_x: int
    land_size_y: int
    building_count: int
    income_per_hour: int
    pending_income: int
    buildings_by_type: Dict[BuildingTypeModel, int]


class MarketplaceModel(BaseModel):
    gold: int
    buildings: List[BuildingModel]
    # False when the catalog could not be read; the client should offer a retry
    catalog_available: bool = True


class IncomeCollectionModel(BaseModel):
    collected: int
    gold: int
