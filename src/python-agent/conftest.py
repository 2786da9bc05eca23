"""Shared fakes for farm tests: an in-memory bridge client and land builders."""

import asyncio
from typing import Any, Dict, List, Optional, Set

import pytest

from constants import PlantPhase
from farm_client import (
    FarmApiError,
    GoodsCondition,
    ItemCount,
    Occupant,
    Phase,
    Plot,
    PlotSnapshot,
    PurchaseReceipt,
    SessionState,
    ShopGoods,
)

NOW = 1_700_000_000


def _make_land(
    land_id: int,
    phase: Optional[PlantPhase] = None,
    name: str = "Carrot",
    unlocked: bool = True,
    could_unlock: bool = False,
    could_upgrade: bool = False,
    level: int = 1,
    dry_num: int = 0,
    dry_time: int = 0,
    weeds_time: int = 0,
    insect_time: int = 0,
    weed_owners: Optional[List[int]] = None,
    insect_owners: Optional[List[int]] = None,
    exp: int = 0,
) -> Plot:
    """A land whose current phase began an hour before NOW (no plant if phase is None)."""
    plant = None
    if phase is not None:
        plant = Occupant(
            id=1020002,
            name=name,
            phases=[
                Phase(phase=PlantPhase.SEED, begin_time=NOW - 7200),
                Phase(
                    phase=phase,
                    begin_time=NOW - 3600,
                    dry_time=dry_time,
                    weeds_time=weeds_time,
                    insect_time=insect_time,
                ),
            ],
            dry_num=dry_num,
            weed_owners=weed_owners or [],
            insect_owners=insect_owners or [],
            exp=exp,
        )
    return Plot(
        id=land_id,
        unlocked=unlocked,
        could_unlock=could_unlock,
        could_upgrade=could_upgrade,
        level=level,
        plant=plant,
    )


def _make_goods(goods_id: int, seed_id: int, price: int, required_level: int = 0, **kwargs) -> ShopGoods:
    conds = [GoodsCondition(type=1, param=required_level)] if required_level else []
    return ShopGoods(id=goods_id, item_id=seed_id, price=price, unlocked=True, conds=conds, **kwargs)


class FakeFarmClient:
    """Records every bridge call; fail / fail_ids make chosen calls raise FarmApiError."""

    def __init__(self, lands: Optional[List[Plot]] = None, gold: int = 10_000, level: int = 10):
        self.state = SessionState(gid=42, name="tester", level=level, gold=gold)
        self.snapshot = PlotSnapshot(lands=lands or [])
        self.goods = [_make_goods(1, 20002, 100)]
        self.recommended: List[int] = []
        self.calls: List[tuple] = []
        self.fail: Set[str] = set()
        self.fail_ids: Dict[str, Set[int]] = {}
        self.receipt: Optional[PurchaseReceipt] = None
        self.session: Optional[Dict[str, Any]] = None
        self.events: List[List[Dict[str, Any]]] = []
        self.closed = False
        self.on_server_time = None
        self.on_operation_limits = None

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]

    def _record(self, method: str, *args):
        self.calls.append((method, *args))
        if method in self.fail:
            raise FarmApiError(method, "rejected")

    def _record_item(self, method: str, land_id: int, *args):
        self._record(method, land_id, *args)
        if land_id in self.fail_ids.get(method, set()):
            raise FarmApiError(method, f"land {land_id} rejected")

    async def refresh_session(self) -> SessionState:
        """Applies `session` (what the bridge would report now) when set."""
        self._record("refresh_session")
        if self.session:
            self.state.level = self.session.get("level", self.state.level)
            self.state.gold = self.session.get("gold", self.state.gold)
        return self.state

    async def poll_events(self, wait=25.0):
        if "poll_events" in self.fail:
            raise RuntimeError("bad event payload")
        if self.events:
            return self.events.pop(0)
        await asyncio.sleep(0.01)
        return []

    async def aclose(self):
        self.closed = True

    async def get_all_lands(self) -> PlotSnapshot:
        self._record("get_all_lands")
        return self.snapshot

    async def harvest(self, land_ids):
        self._record("harvest", list(land_ids))

    async def water_land(self, land_ids):
        self._record("water_land", list(land_ids))

    async def weed_out(self, land_ids):
        self._record("weed_out", list(land_ids))

    async def insecticide(self, land_ids):
        self._record("insecticide", list(land_ids))

    async def remove_plant(self, land_ids):
        self._record("remove_plant", list(land_ids))

    async def unlock_land(self, land_id):
        self._record_item("unlock_land", land_id)

    async def upgrade_land(self, land_id):
        self._record_item("upgrade_land", land_id)

    async def plant(self, seed_id, land_id):
        self._record_item("plant", land_id, seed_id)

    async def fertilize(self, land_id, fertilizer_id):
        self._record_item("fertilize", land_id, fertilizer_id)

    async def get_shop_info(self, shop_id):
        self._record("get_shop_info", shop_id)
        return self.goods

    async def buy_goods(self, goods_id, num, price):
        self._record("buy_goods", goods_id, num, price)
        if self.receipt is not None:
            return self.receipt
        return PurchaseReceipt(
            get_items=[ItemCount(id=0, count=num)],
            cost_items=[ItemCount(id=1001, count=num * price)],
        )

    async def recommend_seeds(self, level, lands_count, top=50):
        self._record("recommend_seeds", level, lands_count)
        if "recommend_seeds_error" in self.fail:
            raise RuntimeError("recommender offline")
        return self.recommended


@pytest.fixture
def make_land():
    return _make_land


@pytest.fixture
def make_goods():
    return _make_goods


@pytest.fixture
def fake_client():
    return FakeFarmClient


@pytest.fixture
def now_sec():
    return NOW
