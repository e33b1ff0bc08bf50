from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

from citymayor.domain.grid_rules import Footprint


class AccountSchema(BaseModel):
    account_id: UUID
    email: str
    hash_password: str
    salt: str
    is_admin: bool

    class Config:
        from_attributes = True


class AuthSessionSchema(BaseModel):
    token: str
    account_id: UUID
    created_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True


class PlayerSchema(BaseModel):
    player_id: UUID
    username: str
    gold: int
    land_size_x: int
    land_size_y: int
    last_collected_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class BuildingSchema(BaseModel):
    building_id: UUID
    name: str
    type: str
    price: int
    income_per_hour: int
    size_x: int
    size_y: int
    image_url: str | None = None
    description: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class PlacedBuildingSchema(BaseModel):
    placement_id: UUID
    player_id: UUID
    building_id: UUID
    position_x: int
    position_y: int
    created_at: datetime
    building: Optional[BuildingSchema] = None

    class Config:
        from_attributes = True

    @property
    def footprint(self) -> Footprint:
        return Footprint(
            self.position_x, self.position_y, self.building.size_x, self.building.size_y
        )
