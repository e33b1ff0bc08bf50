import asyncio
import random
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from citymayor.domain.grid_rules import overlaps, within_land
from citymayor.errors import (
    BuildingInUse,
    GameError,
    InsufficientFunds,
    NotFound,
    Occupied,
    OutOfBounds,
)
from citymayor.models.schema_models import AccountSchema
from citymayor.services import catalog_db, grid_db, ledger_db, player_db, purchase_db


def make_account(email="mayor@example.com"):
    return AccountSchema(
        account_id=uuid4(), email=email, hash_password="hash", salt="salt", is_admin=False
    )


@pytest.fixture
async def player():
    return await player_db.ensure_player(make_account())


async def test_ensure_player_creates_defaults_once(player):
    assert player.username == "mayor"
    assert player.gold == 1000
    assert (player.land_size_x, player.land_size_y) == (10, 10)

    account = make_account()
    account.account_id = player.player_id
    again = await player_db.ensure_player(account)
    assert again.player_id == player.player_id
    assert again.created_at == player.created_at


async def test_purchase_example(player, catalog):
    shop = catalog["Shop"]
    placement, gold = await purchase_db.purchase(player.player_id, shop.building_id, 0, 0)

    assert gold == 700
    assert await ledger_db.get_balance(player.player_id) == 700
    assert (await grid_db.occupied_by(player.player_id, 0, 0)).placement_id == placement.placement_id
    assert (await grid_db.occupied_by(player.player_id, 1, 1)).placement_id == placement.placement_id
    assert await grid_db.occupied_by(player.player_id, 2, 2) is None


async def test_purchase_with_exact_balance(player, catalog):
    await ledger_db.debit(player.player_id, 700)
    _, gold = await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 4, 4)

    assert gold == 0
    assert len(await grid_db.list_placements(player.player_id)) == 1


async def test_purchase_insufficient_funds_changes_nothing(player, catalog):
    with pytest.raises(InsufficientFunds):
        await purchase_db.purchase(player.player_id, catalog["Castle"].building_id, 0, 0)

    assert await ledger_db.get_balance(player.player_id) == 1000
    assert await grid_db.list_placements(player.player_id) == []


async def test_purchase_overlap_changes_nothing(player, catalog):
    await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0)

    with pytest.raises(Occupied):
        await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, 1, 1)

    assert await ledger_db.get_balance(player.player_id) == 700
    assert len(await grid_db.list_placements(player.player_id)) == 1


async def test_purchase_out_of_bounds_changes_nothing(player, catalog):
    with pytest.raises(OutOfBounds):
        await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 9, 9)
    with pytest.raises(OutOfBounds):
        await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, -1, 0)

    assert await ledger_db.get_balance(player.player_id) == 1000
    assert await grid_db.list_placements(player.player_id) == []


async def test_purchase_unknown_building_or_player(player):
    with pytest.raises(NotFound):
        await purchase_db.purchase(player.player_id, uuid4(), 0, 0)
    with pytest.raises(NotFound):
        await purchase_db.purchase(uuid4(), uuid4(), 0, 0)


async def test_purchase_without_position_uses_first_free_cell(player, catalog):
    first, _ = await purchase_db.purchase(player.player_id, catalog["Shop"].building_id)
    second, gold = await purchase_db.purchase(player.player_id, catalog["Shop"].building_id)

    assert (first.position_x, first.position_y) == (0, 0)
    assert (second.position_x, second.position_y) == (2, 0)
    assert gold == 400


async def test_place_without_free_space_raises_occupied(player, catalog):
    for x in (0, 3, 6):
        for y in (0, 3, 6):
            await grid_db.place(player.player_id, catalog["Palace"].building_id, x, y)

    with pytest.raises(Occupied):
        await grid_db.place(player.player_id, catalog["Shop"].building_id)
    # a 1x1 still fits in the last column
    hut = await grid_db.place(player.player_id, catalog["Hut"].building_id)
    assert (hut.position_x, hut.position_y) == (9, 0)
    assert await ledger_db.get_balance(player.player_id) == 1000


async def test_remove_frees_cells(player, catalog):
    placement, _ = await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0)
    await grid_db.remove(player.player_id, placement.placement_id)

    assert await grid_db.occupied_by(player.player_id, 1, 1) is None
    hut, _ = await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, 1, 1)
    assert (await grid_db.occupied_by(player.player_id, 1, 1)).placement_id == hut.placement_id
    # removal does not refund
    assert await ledger_db.get_balance(player.player_id) == 600


async def test_remove_other_players_building_raises_not_found(player, catalog):
    other = await player_db.ensure_player(make_account("other@example.com"))
    placement, _ = await purchase_db.purchase(other.player_id, catalog["Hut"].building_id, 0, 0)

    with pytest.raises(NotFound):
        await grid_db.remove(player.player_id, placement.placement_id)
    with pytest.raises(NotFound):
        await grid_db.remove(player.player_id, uuid4())
    assert len(await grid_db.list_placements(other.player_id)) == 1


async def test_players_do_not_share_land(player, catalog):
    other = await player_db.ensure_player(make_account("other@example.com"))
    await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0)
    await purchase_db.purchase(other.player_id, catalog["Shop"].building_id, 0, 0)

    assert await grid_db.occupied_by(other.player_id, 0, 0) is not None


async def test_ledger_debit_and_credit(player):
    assert await ledger_db.debit(player.player_id, 200) == 800
    with pytest.raises(InsufficientFunds):
        await ledger_db.debit(player.player_id, 801)
    assert await ledger_db.credit(player.player_id, 50) == 850
    assert await ledger_db.get_balance(player.player_id) == 850
    with pytest.raises(NotFound):
        await ledger_db.get_balance(uuid4())


async def test_collect_income(player, catalog):
    start = datetime.now()
    await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0, now=start)

    collected, gold = await ledger_db.collect_income(player.player_id, now=start + timedelta(minutes=90))
    assert (collected, gold) == (15, 715)

    collected, gold = await ledger_db.collect_income(player.player_id, now=start + timedelta(minutes=95))
    assert (collected, gold) == (0, 715)

    stats = await player_db.read_player_stats(player.player_id, now=start + timedelta(minutes=150))
    assert stats.income_per_hour == 10
    assert stats.pending_income == 10


async def test_new_building_does_not_earn_for_the_past(player, catalog):
    start = datetime.now()
    await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, 0, 0, now=start)
    # the shop is bought two hours later; the hut's income is settled at its own rate
    await purchase_db.purchase(
        player.player_id, catalog["Shop"].building_id, 2, 2, now=start + timedelta(hours=2)
    )
    assert await ledger_db.get_balance(player.player_id) == 1000 - 100 + 6 - 300

    collected, _ = await ledger_db.collect_income(player.player_id, now=start + timedelta(hours=3))
    assert collected == 13


async def test_player_stats(player, catalog):
    await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0)
    await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, 5, 5)

    stats = await player_db.read_player_stats(player.player_id)
    assert stats.gold == 600
    assert stats.building_count == 2
    assert stats.income_per_hour == 13
    assert stats.buildings_by_type["commercial"] == 1
    assert stats.buildings_by_type["residential"] == 1
    assert stats.buildings_by_type["public"] == 0


async def test_random_purchases_keep_invariants(player, catalog):
    rng = random.Random(7)
    buildings = list(catalog.values())
    await ledger_db.credit(player.player_id, 5000)
    # No time passes, so no income is settled between purchases
    now = player.last_collected_at

    for _ in range(60):
        building = rng.choice(buildings)
        try:
            await purchase_db.purchase(
                player.player_id,
                building.building_id,
                rng.randint(-1, 10),
                rng.randint(-1, 10),
                now=now,
            )
        except GameError:
            pass

    gold = await ledger_db.get_balance(player.player_id)
    placements = await grid_db.list_placements(player.player_id)
    spent = sum(p.building.price for p in placements)
    assert gold >= 0
    assert gold == 6000 - spent
    for i, a in enumerate(placements):
        assert within_land(a.footprint, 10, 10)
        for b in placements[i + 1:]:
            assert not overlaps(a.footprint, b.footprint)


async def test_concurrent_purchases_cannot_spend_twice(player, catalog):
    await ledger_db.debit(player.player_id, 400)
    results = await asyncio.gather(
        purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0),
        purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 5, 5),
        purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 5),
        return_exceptions=True,
    )
    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 2
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientFunds)

    gold = await ledger_db.get_balance(player.player_id)
    assert gold == 0
    assert len(await grid_db.list_placements(player.player_id)) == 2


async def test_concurrent_purchases_cannot_overlap(player, catalog):
    results = await asyncio.gather(
        purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0),
        purchase_db.purchase(player.player_id, catalog["Hut"].building_id, 1, 1),
        return_exceptions=True,
    )
    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], Occupied)

    placements = await grid_db.list_placements(player.player_id)
    assert len(placements) == 1
    assert (await grid_db.occupied_by(player.player_id, 1, 1)).placement_id == placements[0].placement_id
    placement, gold = successes[0]
    assert gold == 1000 - placement.building.price
    assert await ledger_db.get_balance(player.player_id) == gold


async def test_purchase_checks_stored_balance_before_income(player, catalog):
    start = datetime.now()
    await purchase_db.purchase(player.player_id, catalog["Shop"].building_id, 0, 0, now=start)
    await ledger_db.debit(player.player_id, 610)

    # 40 gold of pending income would cover the Hut, the stored 90 does not
    with pytest.raises(InsufficientFunds):
        await purchase_db.purchase(
            player.player_id, catalog["Hut"].building_id, 5, 5, now=start + timedelta(hours=4)
        )
    assert await ledger_db.get_balance(player.player_id) == 90
    assert len(await grid_db.list_placements(player.player_id)) == 1


async def test_place_with_half_position_is_rejected(player, catalog):
    with pytest.raises(ValueError):
        await grid_db.place(player.player_id, catalog["Hut"].building_id, 3, None)
    with pytest.raises(ValueError):
        await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, None, 3)
    assert await grid_db.list_placements(player.player_id) == []
    assert await ledger_db.get_balance(player.player_id) == 1000


async def test_catalog_is_ordered_by_price(catalog):
    buildings = await catalog_db.list_buildings()
    assert [b.name for b in buildings] == ["Hut", "Shop", "Palace", "Castle"]


async def test_delete_building(player, catalog):
    await purchase_db.purchase(player.player_id, catalog["Hut"].building_id, 0, 0)

    with pytest.raises(BuildingInUse):
        await catalog_db.delete_building(catalog["Hut"].building_id)
    with pytest.raises(NotFound):
        await catalog_db.delete_building(uuid4())

    await catalog_db.delete_building(catalog["Castle"].building_id)
    names = [b.name for b in await catalog_db.list_buildings()]
    assert "Castle" not in names


async def test_seed_default_catalog_only_when_empty():
    assert await catalog_db.seed_default_catalog() == 6
    assert await catalog_db.seed_default_catalog() == 0
    assert len(await catalog_db.list_buildings()) == 6
