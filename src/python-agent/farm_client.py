"""
Farm Bridge Client - async access to the game session through the local bridge.

The bridge process owns the real connection (login, heartbeat, framing) and
exposes every game RPC as a JSON endpoint. This client is the only place the
engine talks to it.

Usage:
    from farm_client import FarmClient

    async with FarmClient("http://localhost:8790") as client:
        await client.refresh_session()
        snapshot = await client.get_all_lands()
        await client.harvest([1, 2, 3])
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx

from constants import COND_TYPE_LEVEL

logger = logging.getLogger(__name__)

PLANT_SERVICE = "gamepb.plantpb.PlantService"
SHOP_SERVICE = "gamepb.shoppb.ShopService"

TOPIC_LANDS_CHANGED = "landsChanged"


class FarmApiError(Exception):
    """A bridge call failed (transport error, HTTP error or game-side rejection)."""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.message = message


# ============================================
# DATA CLASSES - Mirror bridge models
# ============================================

@dataclass
class Phase:
    phase: int
    begin_time: int = 0
    dry_time: int = 0
    weeds_time: int = 0
    insect_time: int = 0


@dataclass
class Occupant:
    id: int
    name: str
    phases: List[Phase] = field(default_factory=list)
    dry_num: int = 0
    weed_owners: List[int] = field(default_factory=list)
    insect_owners: List[int] = field(default_factory=list)
    exp: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.phases


@dataclass
class Plot:
    id: int
    unlocked: bool = False
    could_unlock: bool = False
    could_upgrade: bool = False
    level: int = 1
    plant: Optional[Occupant] = None

    @property
    def is_empty(self) -> bool:
        return self.plant is None or self.plant.is_empty


@dataclass
class PlotSnapshot:
    lands: List[Plot] = field(default_factory=list)
    operation_limits: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class SessionState:
    """Account state for the logged-in session. Gold is decremented locally on purchase."""
    gid: int = 0
    name: str = ""
    level: int = 0
    gold: int = 0


@dataclass
class GoodsCondition:
    type: int
    param: int


@dataclass
class ShopGoods:
    id: int
    item_id: int
    price: int
    unlocked: bool = True
    conds: List[GoodsCondition] = field(default_factory=list)
    limit_count: int = 0
    bought_num: int = 0

    @property
    def required_level(self) -> int:
        for cond in self.conds:
            if cond.type == COND_TYPE_LEVEL:
                return cond.param
        return 0


@dataclass
class ItemCount:
    id: int
    count: int


@dataclass
class PurchaseReceipt:
    get_items: List[ItemCount] = field(default_factory=list)
    cost_items: List[ItemCount] = field(default_factory=list)


# ============================================
# PARSING
# ============================================

def to_num(value: Any) -> int:
    """Coerce a bridge number (int, numeric string or None) to int."""
    if value is None or value == "":
        return 0
    return int(value)


def _parse_phase(data: Dict[str, Any]) -> Phase:
    return Phase(
        phase=to_num(data.get("phase")),
        begin_time=to_num(data.get("begin_time")),
        dry_time=to_num(data.get("dry_time")),
        weeds_time=to_num(data.get("weeds_time")),
        insect_time=to_num(data.get("insect_time")),
    )


def _parse_plant(data: Optional[Dict[str, Any]]) -> Optional[Occupant]:
    if not data:
        return None
    return Occupant(
        id=to_num(data.get("id")),
        name=data.get("name", ""),
        phases=[_parse_phase(p) for p in data.get("phases") or []],
        dry_num=to_num(data.get("dry_num")),
        weed_owners=[to_num(o) for o in data.get("weed_owners") or []],
        insect_owners=[to_num(o) for o in data.get("insect_owners") or []],
        exp=to_num(data.get("exp")),
    )


def parse_plot(data: Dict[str, Any]) -> Plot:
    return Plot(
        id=to_num(data.get("id")),
        unlocked=bool(data.get("unlocked", False)),
        could_unlock=bool(data.get("could_unlock", False)),
        could_upgrade=bool(data.get("could_upgrade", False)),
        level=to_num(data.get("level")) or 1,
        plant=_parse_plant(data.get("plant")),
    )


def parse_goods(data: Dict[str, Any]) -> ShopGoods:
    return ShopGoods(
        id=to_num(data.get("id")),
        item_id=to_num(data.get("item_id")),
        price=to_num(data.get("price")),
        unlocked=bool(data.get("unlocked", False)),
        conds=[
            GoodsCondition(type=to_num(c.get("type")), param=to_num(c.get("param")))
            for c in data.get("conds") or []
        ],
        limit_count=to_num(data.get("limit_count")),
        bought_num=to_num(data.get("bought_num")),
    )


def _parse_items(items: Optional[List[Dict[str, Any]]]) -> List[ItemCount]:
    return [ItemCount(id=to_num(i.get("id")), count=to_num(i.get("count"))) for i in items or []]


# ============================================
# PUSH CHANNEL
# ============================================

class PushChannel:
    """Topic -> subscriber list. Delivery is synchronous on the publishing task."""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[List[int]], None]]] = {}

    def subscribe(self, topic: str, callback: Callable[[List[int]], None]) -> None:
        self._subscribers.setdefault(topic, []).append(callback)

    def unsubscribe(self, topic: str, callback: Callable[[List[int]], None]) -> None:
        callbacks = self._subscribers.get(topic, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def publish(self, topic: str, land_ids: List[int]) -> None:
        for callback in list(self._subscribers.get(topic, [])):
            try:
                callback(land_ids)
            except Exception as e:
                logger.warning(f"[push] {topic} subscriber failed: {e}")


# ============================================
# FARM CLIENT
# ============================================

class FarmClient:
    """
    Async client for the game bridge.

    Every RPC is POST /rpc/<service>/<method> with a JSON body; the bridge
    answers {"success": bool, "data": ..., "error": str, "server_time": ms}.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8790",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_server_time: Optional[Callable[[int], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)
        self.state = SessionState()
        self.on_server_time = on_server_time
        self.on_operation_limits: Optional[Callable[[List[Dict[str, Any]]], None]] = None

    async def __aenter__(self) -> "FarmClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        extra = {} if timeout is None else {"timeout": timeout}
        try:
            if payload is None:
                resp = await self.client.get(path, **extra)
            else:
                resp = await self.client.post(path, json=payload, **extra)
        except httpx.HTTPError as e:
            raise FarmApiError(method, f"transport error: {e}") from e

        if resp.status_code != 200:
            raise FarmApiError(method, f"HTTP {resp.status_code}")

        try:
            result = resp.json()
        except ValueError as e:
            raise FarmApiError(method, f"invalid JSON response: {e}") from e
        if not isinstance(result, dict):
            raise FarmApiError(method, f"unexpected response: {type(result).__name__}")

        server_time = result.get("server_time")
        if server_time and self.on_server_time:
            self.on_server_time(to_num(server_time))

        if not result.get("success"):
            raise FarmApiError(method, result.get("error") or "unknown error")
        return result.get("data") or {}

    async def _call(self, service: str, method: str, payload: Dict[str, Any]) -> Any:
        return await self._request(method, f"/rpc/{service}/{method}", payload)

    # ============================================
    # SESSION
    # ============================================

    async def refresh_session(self) -> SessionState:
        """Reload identity, level and gold from the bridge."""
        data = await self._request("Session", "/session")
        self.state.gid = to_num(data.get("gid"))
        self.state.name = data.get("name", "")
        self.state.level = to_num(data.get("level"))
        self.state.gold = to_num(data.get("gold"))
        return self.state

    async def poll_events(self, wait: float = 25.0) -> List[Dict[str, Any]]:
        """Long-poll pushed notifications: [{"topic": ..., "land_ids": [...]}, ...]."""
        # The bridge holds the request up to `wait` seconds
        resp_data = await self._request("Events", f"/events?wait={wait}", timeout=wait + self.timeout)
        return resp_data.get("events", []) if isinstance(resp_data, dict) else []

    # ============================================
    # PLANT SERVICE
    # ============================================

    async def get_all_lands(self) -> PlotSnapshot:
        data = await self._call(PLANT_SERVICE, "AllLands", {})
        snapshot = PlotSnapshot(
            lands=[parse_plot(d) for d in data.get("lands") or []],
            operation_limits=data.get("operation_limits") or [],
        )
        if snapshot.operation_limits and self.on_operation_limits:
            self.on_operation_limits(snapshot.operation_limits)
        return snapshot

    async def harvest(self, land_ids: List[int]) -> Any:
        return await self._call(PLANT_SERVICE, "Harvest", {
            "land_ids": land_ids, "host_gid": self.state.gid, "is_all": True,
        })

    async def water_land(self, land_ids: List[int]) -> Any:
        return await self._call(PLANT_SERVICE, "WaterLand", {"land_ids": land_ids, "host_gid": self.state.gid})

    async def weed_out(self, land_ids: List[int]) -> Any:
        return await self._call(PLANT_SERVICE, "WeedOut", {"land_ids": land_ids, "host_gid": self.state.gid})

    async def insecticide(self, land_ids: List[int]) -> Any:
        return await self._call(PLANT_SERVICE, "Insecticide", {"land_ids": land_ids, "host_gid": self.state.gid})

    async def remove_plant(self, land_ids: List[int]) -> Any:
        return await self._call(PLANT_SERVICE, "RemovePlant", {"land_ids": land_ids})

    async def unlock_land(self, land_id: int) -> Any:
        # Server rejects multi-land unlock requests
        return await self._call(PLANT_SERVICE, "UnlockLand", {"land_ids": [land_id]})

    async def upgrade_land(self, land_id: int) -> Any:
        return await self._call(PLANT_SERVICE, "UpgradeLand", {"land_ids": [land_id]})

    async def plant(self, seed_id: int, land_id: int) -> Any:
        return await self._call(PLANT_SERVICE, "Plant", {
            "items": [{"seed_id": seed_id, "land_ids": [land_id]}],
        })

    async def fertilize(self, land_id: int, fertilizer_id: int) -> Any:
        return await self._call(PLANT_SERVICE, "Fertilize", {
            "land_ids": [land_id], "fertilizer_id": fertilizer_id,
        })

    # ============================================
    # SHOP SERVICE
    # ============================================

    async def get_shop_info(self, shop_id: int) -> List[ShopGoods]:
        data = await self._call(SHOP_SERVICE, "ShopInfo", {"shop_id": shop_id})
        return [parse_goods(g) for g in data.get("goods_list") or []]

    async def buy_goods(self, goods_id: int, num: int, price: int) -> PurchaseReceipt:
        data = await self._call(SHOP_SERVICE, "BuyGoods", {"goods_id": goods_id, "num": num, "price": price})
        return PurchaseReceipt(
            get_items=_parse_items(data.get("get_items")),
            cost_items=_parse_items(data.get("cost_items")),
        )

    # ============================================
    # RECOMMENDATION
    # ============================================

    async def recommend_seeds(self, level: int, lands_count: int, top: int = 50) -> List[int]:
        """Seed ids ranked by exp efficiency (best first)."""
        data = await self._request("Recommend", "/recommend", {
            "level": level, "lands_count": lands_count, "top": top,
        })
        return [to_num(c.get("seed_id")) for c in data.get("candidates") or []]

