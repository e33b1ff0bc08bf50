from collections import Counter
from datetime import datetime
from typing import List

from citymayor.domain.economy_rules import accrued_income, total_income_per_hour
from citymayor.models.dc_models import (
    BuildingModel,
    BuildingTypeModel,
    GridModel,
    PlacedBuildingModel,
    PlayerStatsModel,
)
from citymayor.models.schema_models import (
    BuildingSchema,
    PlacedBuildingSchema,
    PlayerSchema,
)


class DataConverter:
    """This class is used to convert data between database schemas and client models."""

    def convert_building_to_model(self, building: BuildingSchema) -> BuildingModel:
        return BuildingModel.model_validate(building.model_dump())

    def convert_placement_to_model(self, placement: PlacedBuildingSchema) -> PlacedBuildingModel:
        """Flatten a placed building and its catalog entry for the client

        Args:
            placement (PlacedBuildingSchema): Placed building loaded with its building data

        Returns:
            PlacedBuildingModel: Position, footprint size and income of the placed building
        """
        return PlacedBuildingModel(
            placement_id=placement.placement_id,
            building_id=placement.building_id,
            name=placement.building.name,
            type=placement.building.type,
            position_x=placement.position_x,
            position_y=placement.position_y,
            size_x=placement.building.size_x,
            size_y=placement.building.size_y,
            income_per_hour=placement.building.income_per_hour,
            image_url=placement.building.image_url,
        )

    def convert_to_grid_model(
        self, player: PlayerSchema, placements: List[PlacedBuildingSchema]
    ) -> GridModel:
        return GridModel(
            land_size_x=player.land_size_x,
            land_size_y=player.land_size_y,
            placements=[self.convert_placement_to_model(p) for p in placements],
        )

    def convert_to_player_stats(
        self,
        player: PlayerSchema,
        placements: List[PlacedBuildingSchema],
        now: datetime,
    ) -> PlayerStatsModel:
        """Project the player and its buildings to the stats panel of the client

        Args:
            player (PlayerSchema): The player
            placements (List[PlacedBuildingSchema]): Every building owned by the player
            now (datetime): Time used to compute the income not collected yet

        Returns:
            PlayerStatsModel: Gold, land size and totals derived from the buildings
        """
        income = total_income_per_hour(p.building.income_per_hour for p in placements)
        pending_income, _ = accrued_income(income, player.last_collected_at, now)
        counts = Counter(p.building.type for p in placements)
        return PlayerStatsModel(
            player_id=player.player_id,
            username=player.username,
            gold=player.gold,
            land_size_x=player.land_size_x,
            land_size_y=player.land_size_y,
            building_count=len(placements),
            income_per_hour=income,
            pending_income=pending_income,
            buildings_by_type={
                building_type: counts.get(building_type.value, 0)
                for building_type in BuildingTypeModel
            },
        )
