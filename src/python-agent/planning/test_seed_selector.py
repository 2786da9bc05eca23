import asyncio

import pytest

from planning.seed_selector import SeedSelector, filter_available


def _selector(client, **kwargs):
    return SeedSelector(client.get_shop_info, client.recommend_seeds, **kwargs)


def test_filter_drops_locked_level_gated_and_sold_out(make_goods):
    goods = [
        make_goods(1, 20001, 10),
        make_goods(2, 20002, 20, required_level=15),
        make_goods(3, 20003, 30, limit_count=5, bought_num=5),
        make_goods(4, 20004, 40, limit_count=5, bought_num=4),
        make_goods(5, 20005, 50),
    ]
    goods[4].unlocked = False

    available = filter_available(goods, level=10)
    assert [s.seed_id for s in available] == [20001, 20004]


def test_empty_shop_returns_none(fake_client):
    client = fake_client()
    client.goods = []
    assert asyncio.run(_selector(client).find_best_seed(10, 6)) is None


def test_nothing_buyable_returns_none(fake_client, make_goods):
    client = fake_client(level=1)
    client.goods = [make_goods(1, 20010, 10, required_level=20)]
    assert asyncio.run(_selector(client).find_best_seed(1, 6)) is None


def test_preferred_seed_wins(fake_client, make_goods):
    client = fake_client()
    client.goods = [make_goods(1, 20001, 10), make_goods(2, 20003, 30)]
    client.recommended = [20001]

    choice = asyncio.run(_selector(client, preferred_seed_id=20003).find_best_seed(10, 6))
    assert choice.seed_id == 20003
    assert client.count("recommend_seeds") == 0


def test_missing_preferred_seed_falls_through_to_recommender(fake_client, make_goods):
    client = fake_client()
    client.goods = [make_goods(1, 20001, 10), make_goods(2, 20003, 30)]
    client.recommended = [20099, 20003]

    choice = asyncio.run(_selector(client, preferred_seed_id=20050).find_best_seed(10, 6))
    assert choice.seed_id == 20003


def test_force_lowest_level_breaks_ties_by_price(fake_client, make_goods):
    client = fake_client(level=30)
    client.goods = [
        make_goods(1, 20005, 80, required_level=5),
        make_goods(2, 20002, 40, required_level=1),
        make_goods(3, 20001, 20, required_level=1),
    ]
    choice = asyncio.run(_selector(client, force_lowest_level=True).find_best_seed(30, 6))
    assert choice.seed_id == 20001
    assert client.count("recommend_seeds") == 0


def test_recommender_receives_default_land_count(fake_client):
    client = fake_client()
    client.recommended = [20002]
    asyncio.run(_selector(client).find_best_seed(10, None))
    assert ("recommend_seeds", 10, 18) in client.calls


@pytest.mark.parametrize("level,expected", [(10, 20001), (28, 20001), (29, 20009)])
def test_fallback_by_level(fake_client, make_goods, level, expected):
    client = fake_client(level=level)
    client.goods = [
        make_goods(1, 20005, 50, required_level=5),
        make_goods(2, 20001, 10, required_level=1),
        make_goods(3, 20009, 90, required_level=9),
    ]
    client.recommended = [30000]  # no match in shop

    choice = asyncio.run(_selector(client).find_best_seed(level, 6))
    assert choice.seed_id == expected


def test_recommender_failure_uses_fallback(fake_client, make_goods):
    client = fake_client(level=40)
    client.goods = [make_goods(1, 20001, 10, required_level=1), make_goods(2, 20009, 90, required_level=9)]
    client.fail.add("recommend_seeds_error")

    choice = asyncio.run(_selector(client).find_best_seed(40, 6))
    assert choice.seed_id == 20009


def test_catalog_failure_propagates(fake_client):
    client = fake_client()
    client.fail.add("get_shop_info")
    with pytest.raises(Exception):
        asyncio.run(_selector(client).find_best_seed(10, 6))


def test_low_level_fallback_prefers_cheaper_seed_at_same_level(fake_client, make_goods):
    client = fake_client(level=5)
    client.goods = [
        make_goods(1, 20002, 50, required_level=1),
        make_goods(2, 20001, 30, required_level=1),
        make_goods(3, 20005, 10, required_level=5),
    ]

    choice = asyncio.run(_selector(client).find_best_seed(5, 6))
    assert choice.seed_id == 20001
