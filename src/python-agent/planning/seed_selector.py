"""
Seed Selector - picks which seed to buy before planting.

Answers: "What should I plant right now?"
- Filters the seed shop to what this account can actually buy
- Honors a pinned seed id from settings
- Optionally forces the cheapest/lowest-level seed
- Otherwise asks the exp-efficiency recommender, then falls back to a
  level-based heuristic

Never gives up while at least one seed is buyable.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from constants import DEFAULT_PLOT_COUNT, FALLBACK_LEVEL_THRESHOLD, RECOMMEND_TOP, SEED_SHOP_ID
from farm_client import ShopGoods

logger = logging.getLogger(__name__)

CatalogFetcher = Callable[[int], Awaitable[List[ShopGoods]]]
Recommender = Callable[[int, int, int], Awaitable[List[int]]]


@dataclass
class SeedChoice:
    """A buyable seed."""
    goods_id: int
    seed_id: int
    price: int
    required_level: int = 0


def filter_available(goods_list: List[ShopGoods], level: int) -> List[SeedChoice]:
    """Keep goods that are unlocked, level-satisfied and not sold out for this account."""
    available = []
    for goods in goods_list:
        if not goods.unlocked:
            continue

        required_level = goods.required_level
        if level < required_level:
            continue

        if goods.limit_count > 0 and goods.bought_num >= goods.limit_count:
            continue

        available.append(SeedChoice(
            goods_id=goods.id,
            seed_id=goods.item_id,
            price=goods.price,
            required_level=required_level,
        ))
    return available


def fallback_choice(available: List[SeedChoice], level: int) -> SeedChoice:
    """Low levels plant the lowest-level (then cheapest) seed; past the threshold, the highest-level one."""
    if level <= FALLBACK_LEVEL_THRESHOLD:
        return sorted(available, key=lambda s: (s.required_level, s.price))[0]
    return sorted(available, key=lambda s: s.required_level, reverse=True)[0]


class SeedSelector:
    """Chooses a seed from the shop for the current account."""

    def __init__(
        self,
        fetch_catalog: CatalogFetcher,
        recommend: Optional[Recommender] = None,
        shop_id: int = SEED_SHOP_ID,
        preferred_seed_id: int = 0,
        force_lowest_level: bool = False,
    ):
        self.fetch_catalog = fetch_catalog
        self.recommend = recommend
        self.shop_id = shop_id
        self.preferred_seed_id = preferred_seed_id
        self.force_lowest_level = force_lowest_level

    async def find_best_seed(self, level: int, lands_count: Optional[int]) -> Optional[SeedChoice]:
        """
        Pick a seed for this cycle.

        Args:
            level: Current account level
            lands_count: Unlocked land count (None = unknown)

        Returns:
            SeedChoice, or None when nothing in the shop is buyable.
            Catalog fetch errors propagate; recommender errors do not.
        """
        goods_list = await self.fetch_catalog(self.shop_id)
        if not goods_list:
            logger.warning("[shop] seed shop has no goods")
            return None

        available = filter_available(goods_list, level)
        if not available:
            logger.warning("[shop] no seeds available to buy")
            return None

        if self.preferred_seed_id:
            preferred = next((s for s in available if s.seed_id == self.preferred_seed_id), None)
            if preferred:
                return preferred
            logger.warning(f"[shop] preferred seed {self.preferred_seed_id} unavailable, choosing automatically")

        if self.force_lowest_level:
            return sorted(available, key=lambda s: (s.required_level, s.price))[0]

        if self.recommend is not None:
            count = DEFAULT_PLOT_COUNT if lands_count is None else lands_count
            try:
                logger.info(f"[shop] level: {level}, lands: {count}")
                ranked = await self.recommend(level, count, RECOMMEND_TOP)
                by_seed = {}
                for s in available:
                    by_seed.setdefault(s.seed_id, s)
                for seed_id in ranked:
                    if seed_id in by_seed:
                        return by_seed[seed_id]
            except Exception as e:
                logger.warning(f"[shop] exp recommendation failed, using fallback: {e}")

        return fallback_choice(available, level)
