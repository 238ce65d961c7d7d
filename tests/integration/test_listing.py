"""List operation tests: search, filters, sorting, pagination and tenancy."""

import pytest
import pytest_asyncio

from crudgen.models import ANONYMOUS, Actor, ListParams

SEED = [
    {"name": "Red Shoe", "description": "Running shoe", "rating": 5, "price": 10,
     "tags": ["red", "sport"], "status": "published"},
    {"name": "Blue Boot", "description": "Winter boot", "rating": 7, "price": 30,
     "active": False, "tags": ["blue"]},
    {"name": "Green Hat", "description": "Shoelace not included", "rating": 9, "price": 20,
     "tags": ["green"]},
    {"name": "Yellow Bag", "description": "Tote 100%", "rating": 3, "price": 5},
]


@pytest_asyncio.fixture
async def seeded(products, actor):
    """Insert the sample products and return them keyed by name."""
    records = {}
    for payload in SEED:
        result = await products.insert(dict(payload), {}, actor)
        records[payload["name"]] = result.record
    return records


def names(page) -> list[str]:
    return [record.data["name"] for record in page.records]


async def list_all(products, actor, **params):
    params.setdefault("limit", 3)
    params.setdefault("sort_by", "name")
    params.setdefault("sort_order", "asc")
    return await products.list(ListParams(**params), actor)


# ─── Search ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_search_is_case_insensitive_across_fields(products, actor, seeded):
    page = await list_all(products, actor, search="SHOE")

    assert names(page) == ["Green Hat", "Red Shoe"]
    assert page.filters.search == "SHOE"


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(products, actor, seeded):
    page = await list_all(products, actor, search="100%")
    assert names(page) == ["Yellow Bag"]

    page = await list_all(products, actor, search="_")
    assert names(page) == []


@pytest.mark.asyncio
async def test_search_respects_soft_delete_visibility(products, actor, seeded):
    """Test that search only sees the records of the requested visibility."""
    await products.delete(str(seeded["Red Shoe"].id), actor)

    active = await list_all(products, actor, search="shoe")
    deleted = await list_all(products, actor, search="shoe", deleted=True)

    assert names(active) == ["Green Hat"]
    assert names(deleted) == ["Red Shoe"]
    assert deleted.show_deleted is True
    assert active.deleted_count == 1


# ─── Filters ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        ({"active": "true"}, ["Green Hat", "Red Shoe", "Yellow Bag"]),
        ({"active": "false"}, ["Blue Boot"]),
        ({"active": "true,false"}, ["Blue Boot", "Green Hat", "Red Shoe"]),
        ({"active": "off,no"}, ["Blue Boot"]),
        ({"active": "on,maybe"}, ["Green Hat", "Red Shoe", "Yellow Bag"]),
        ({"rating": "5,7,9"}, ["Blue Boot", "Green Hat", "Red Shoe"]),
        ({"rating": "7"}, ["Blue Boot"]),
        ({"price": "20"}, ["Green Hat"]),
        ({"status": "published"}, ["Red Shoe"]),
        ({"status": "draft,published", "active": "true"}, ["Green Hat", "Red Shoe", "Yellow Bag"]),
        ({"tags": "red"}, ["Red Shoe"]),
        ({"tags": "red,blue"}, ["Blue Boot", "Red Shoe"]),
        ({"tags": "re"}, []),
        ({"status": ""}, ["Blue Boot", "Green Hat", "Red Shoe"]),
        ({"name": "Red Shoe"}, ["Blue Boot", "Green Hat", "Red Shoe"]),
        ({"bogus": "x"}, ["Blue Boot", "Green Hat", "Red Shoe"]),
    ],
)
async def test_filters(products, actor, seeded, filters, expected):
    page = await list_all(products, actor, filters=filters)

    assert names(page) == expected


@pytest.mark.asyncio
async def test_reference_filter(products, categories, actor):
    shoes = (await categories.insert({"name": "Shoes"}, {}, actor)).record
    await products.insert({"name": "Sneaker", "category_id": str(shoes.id)}, {}, actor)
    await products.insert({"name": "Scarf"}, {}, actor)

    page = await list_all(products, actor, filters={"category_id": str(shoes.id)})

    assert names(page) == ["Sneaker"]


@pytest.mark.asyncio
async def test_applied_filters_are_echoed(products, actor, seeded):
    page = await list_all(products, actor, filters={"active": "true", "status": ""})

    assert page.filters.applied == ["active"]
    assert page.filters.searchable == ["name", "description"]
    assert "created_at" in page.filters.sortable


# ─── Sorting and pagination ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sort_by_number(products, actor, seeded):
    ascending = await list_all(products, actor, sort_by="price", sort_order="asc")
    descending = await list_all(products, actor, sort_by="price", sort_order="desc")

    assert names(ascending) == ["Yellow Bag", "Red Shoe", "Green Hat"]
    assert names(descending) == ["Blue Boot", "Green Hat", "Red Shoe"]


@pytest.mark.asyncio
async def test_unknown_sort_falls_back_to_newest_first(products, actor, seeded):
    page = await list_all(products, actor, sort_by="rating", sort_order="asc")

    assert names(page) == ["Yellow Bag", "Green Hat", "Blue Boot"]


@pytest.mark.asyncio
async def test_pagination(products, actor, seeded):
    """Test default page size, page walking and clamping."""
    first = await products.list(ListParams(sort_by="name", sort_order="asc"), actor)
    second = await products.list(ListParams(page=2, sort_by="name", sort_order="asc"), actor)

    assert names(first) == ["Blue Boot", "Green Hat"]
    assert names(second) == ["Red Shoe", "Yellow Bag"]
    assert first.pagination.model_dump() == {
        "current_page": 1,
        "total_pages": 2,
        "total_items": 4,
        "items_per_page": 2,
        "has_next_page": True,
        "has_prev_page": False,
    }
    assert second.pagination.has_next_page is False
    assert second.pagination.has_prev_page is True


@pytest.mark.asyncio
async def test_pagination_is_clamped(products, actor, seeded):
    page = await products.list(ListParams(page=0, limit=99), actor)

    assert page.pagination.current_page == 1
    assert page.pagination.items_per_page == 3
    assert page.pagination.total_pages == 2
    assert len(page.records) == 3


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty(products, actor, seeded):
    page = await products.list(ListParams(page=5), actor)

    assert page.records == []
    assert page.pagination.total_items == 4
    assert page.pagination.has_prev_page is True


@pytest.mark.asyncio
async def test_empty_list(products, actor):
    page = await products.list(ListParams(), actor)

    assert page.records == []
    assert page.pagination.total_pages == 0
    assert page.pagination.has_next_page is False
    assert page.deleted_count == 0
    assert page.title == "Product"
    assert "name" in page.field_config


@pytest.mark.asyncio
async def test_deleted_flag_ignored_without_soft_delete(categories, actor):
    await categories.insert({"name": "Shoes"}, {}, actor)

    page = await categories.list(ListParams(deleted=True), actor)

    assert [r.data["name"] for r in page.records] == ["Shoes"]
    assert page.show_deleted is False
    assert page.deleted_count is None


# ─── Tenancy ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_is_scoped_to_actor_tenant(products, actor, seeded):
    """Test that the actor's tenant wins over any tenant filter."""
    other = Actor(user_id="user-2", tenant_id="tenant-b")
    await products.insert({"name": "Other Tenant Shoe"}, {}, other)

    own = await list_all(products, actor, limit=None)
    foreign = await list_all(products, other, filters={"tenant_id": "tenant-a"})
    everyone = await list_all(products, ANONYMOUS, limit=None)
    requested = await list_all(products, ANONYMOUS, filters={"tenant_id": "tenant-b"})

    assert own.pagination.total_items == 4
    assert names(foreign) == ["Other Tenant Shoe"]
    assert everyone.pagination.total_items == 5
    assert names(requested) == ["Other Tenant Shoe"]
