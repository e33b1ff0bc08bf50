import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from citymayor.authentication.session_authentication import SessionAuthentication
from citymayor.converter import DataConverter
from citymayor.errors import BackendUnavailable, GameError, to_http_exception
from citymayor.models.dc_models import (
    BuildingModel,
    CellModel,
    GridModel,
    IncomeCollectionModel,
    MarketplaceModel,
    PlayerStatsModel,
    PurchaseModel,
    PurchaseResultModel,
)
from citymayor.models.schema_models import AccountSchema, PlayerSchema
from citymayor.notifier import grid_channel, notifier, player_channel
from citymayor.redis_subscriber import RedisSubscriber
from citymayor.services import catalog_db, grid_db, ledger_db, player_db, purchase_db

game_router = APIRouter()
session_auth = SessionAuthentication()
data_converter = DataConverter()


async def active_player(
    account: AccountSchema = Depends(session_auth.current_account),
) -> PlayerSchema:
    """Resolve the caller's player, creating it on the first authenticated visit."""
    try:
        return await player_db.ensure_player(account)
    except GameError as e:
        raise to_http_exception(e)


class PlayerServer:
    @staticmethod
    @game_router.get("/me", response_model=PlayerStatsModel)
    async def get_player_stats(player: PlayerSchema = Depends(active_player)):
        try:
            return await player_db.read_player_stats(player.player_id)
        except GameError as e:
            raise to_http_exception(e)

    @staticmethod
    @game_router.post("/collect-income", response_model=IncomeCollectionModel)
    async def collect_income(player: PlayerSchema = Depends(active_player)):
        """Credit the income of the player's buildings since the last collection"""
        try:
            collected, gold = await ledger_db.collect_income(player.player_id)
        except GameError as e:
            raise to_http_exception(e)
        if collected > 0:
            await notifier.player_changed(player.player_id)
        return IncomeCollectionModel(collected=collected, gold=gold)

    @staticmethod
    @game_router.get("/stream/player")
    async def stream_player(player: PlayerSchema = Depends(active_player)):
        redis_subscriber = RedisSubscriber(
            lambda: player_db.read_player_stats(player.player_id), "player_update"
        )
        return StreamingResponse(
            redis_subscriber.event_generator(player_channel(player.player_id), notifier.redis),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )


class MarketplaceServer:
    @staticmethod
    @game_router.get("/buildings", response_model=List[BuildingModel])
    async def list_buildings(player: PlayerSchema = Depends(active_player)):
        try:
            buildings = await catalog_db.list_buildings()
        except GameError as e:
            raise to_http_exception(e)
        return [data_converter.convert_building_to_model(b) for b in buildings]

    @staticmethod
    @game_router.get("/marketplace", response_model=MarketplaceModel)
    async def get_marketplace(player: PlayerSchema = Depends(active_player)):
        """Gold of the player and the catalog. An unreadable catalog degrades to an empty list"""
        catalog_available = True
        buildings = []
        try:
            buildings = await catalog_db.list_buildings()
        except BackendUnavailable:
            logging.warning("Catalog unavailable, sending an empty marketplace")
            catalog_available = False
        try:
            gold = await ledger_db.get_balance(player.player_id)
        except GameError as e:
            raise to_http_exception(e)
        return MarketplaceModel(
            gold=gold,
            buildings=[data_converter.convert_building_to_model(b) for b in buildings],
            catalog_available=catalog_available,
        )

    @staticmethod
    @game_router.post("/purchase", response_model=PurchaseResultModel)
    async def purchase(request: PurchaseModel, player: PlayerSchema = Depends(active_player)):
        """Buy a building and place it on the player's land

        Args:
            request (PurchaseModel): Building to buy and optional top-left cell
            player (PlayerSchema): Buyer

        Returns:
            PurchaseResultModel: Gold left and the new placed building
        """
        try:
            placement, gold = await purchase_db.purchase(
                player.player_id,
                request.building_id,
                request.position_x,
                request.position_y,
            )
        except GameError as e:
            raise to_http_exception(e)

        await notifier.player_changed(player.player_id)
        await notifier.grid_changed(player.player_id)
        return PurchaseResultModel(
            gold=gold, placement=data_converter.convert_placement_to_model(placement)
        )


class GridServer:
    @staticmethod
    @game_router.get("/grid", response_model=GridModel)
    async def get_grid(player: PlayerSchema = Depends(active_player)):
        try:
            return await player_db.read_grid(player.player_id)
        except GameError as e:
            raise to_http_exception(e)

    @staticmethod
    @game_router.get("/grid/cells/{x}/{y}", response_model=CellModel)
    async def get_cell(x: int, y: int, player: PlayerSchema = Depends(active_player)):
        try:
            placement = await grid_db.occupied_by(player.player_id, x, y)
        except GameError as e:
            raise to_http_exception(e)
        return CellModel(
            x=x,
            y=y,
            placement=data_converter.convert_placement_to_model(placement) if placement else None,
        )

    @staticmethod
    @game_router.delete("/placements/{placement_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_placement(placement_id: UUID, player: PlayerSchema = Depends(active_player)) -> None:
        try:
            await grid_db.remove(player.player_id, placement_id)
        except GameError as e:
            raise to_http_exception(e)
        await notifier.player_changed(player.player_id)
        await notifier.grid_changed(player.player_id)

    @staticmethod
    @game_router.get("/stream/grid")
    async def stream_grid(player: PlayerSchema = Depends(active_player)):
        redis_subscriber = RedisSubscriber(
            lambda: player_db.read_grid(player.player_id), "grid_update"
        )
        return StreamingResponse(
            redis_subscriber.event_generator(grid_channel(player.player_id), notifier.redis),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )
