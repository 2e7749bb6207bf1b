from datetime import datetime

import pytest

from app.utils.api_features import APIFeatures, coerce_value
from app.utils.errors import BadRequestError


@pytest.fixture
async def listings(mongo):
    collection = mongo["listings"]
    await collection.insert_many([
        {"title": "Villa Plateau", "type": "Villa", "price": 250000, "status": "Vente", "rank": 1},
        {"title": "Studio Moungali", "type": "Studio", "price": 80000, "status": "Location", "rank": 2},
        {"title": "Appartement Poto-Poto", "type": "Appartement", "price": 150000, "status": "Location", "rank": 3},
        {"title": "Terrain Plateau", "type": "Terrain", "price": 500000, "status": "Vente", "rank": 4},
    ])
    return collection


def test_coerce_value():
    assert coerce_value("true") is True
    assert coerce_value("42") == 42
    assert coerce_value("2.5") == 2.5
    assert coerce_value("Vente") == "Vente"
    assert coerce_value("5M-10M") == "5M-10M"
    assert coerce_value("2025-01-01") == datetime(2025, 1, 1)
    assert coerce_value("2025-01-01T12:00:00+01:00") == datetime(2025, 1, 1, 11, 0)


async def test_filter_by_date_range(mongo):
    collection = mongo["agenda"]
    await collection.insert_many([
        {"name": "Gala", "date": datetime(2025, 6, 1, 20, 0)},
        {"name": "Forum", "date": datetime(2024, 11, 15, 9, 0)},
    ])
    features = APIFeatures(collection, {"date[gte]": "2025-01-01"}).filter()
    assert [doc["name"] for doc in await features.to_list()] == ["Gala"]


async def test_filter_with_operators(listings):
    features = APIFeatures(listings, {"price[gte]": "100000", "price[lt]": "400000"}).filter().sort("price")
    titles = [doc["title"] for doc in await features.to_list()]
    assert titles == ["Appartement Poto-Poto", "Villa Plateau"]


async def test_filter_in_operator(listings):
    features = APIFeatures(listings, {"type[in]": "Villa,Studio"}).filter()
    assert await features.count() == 2


async def test_base_filter_wins_over_query(listings):
    features = APIFeatures(listings, {"status": "Location"}, base_filter={"status": "Vente"}).filter()
    assert {doc["status"] for doc in await features.to_list()} == {"Vente"}


async def test_allowed_filters_ignore_unknown_keys(listings):
    features = APIFeatures(listings, {"status": "Vente", "rank": "1"}, allowed_filters={"status"}).filter()
    assert await features.count() == 2


async def test_search_is_case_insensitive(listings):
    features = APIFeatures(listings, {"search": "plateau"}).filter().search(("title",))
    assert await features.count() == 2


async def test_sort_descending_and_pagination(listings):
    features = APIFeatures(listings, {"sort": "-rank", "page": "2", "limit": "3"}).filter().sort().paginate()
    docs = await features.to_list()
    assert [doc["rank"] for doc in docs] == [1]
    assert features.page == 2
    assert features.total_pages(await features.count()) == 2


async def test_sort_rejects_unknown_field(listings):
    with pytest.raises(BadRequestError):
        APIFeatures(listings, {"sort": "secret"}).sort(allowed=("price",))


async def test_limit_fields(listings):
    features = APIFeatures(listings, {"fields": "title"}).limit_fields()
    doc = (await features.to_list())[0]
    assert set(doc) == {"_id", "title"}
    assert isinstance(doc["_id"], str)


async def test_invalid_pagination_falls_back_to_defaults(listings):
    features = APIFeatures(listings, {"page": "-3", "limit": "abc"}).paginate(default_limit=2)
    assert features.page == 1
    assert features.limit == 2
