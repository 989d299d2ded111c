import pytest
from fastapi import HTTPException

from backoffice.features.inventory.models import Product, StockStatus, calculate_stock_status
from backoffice.features.inventory.schemas import ProductCreate, ProductUpdate
from backoffice.features.inventory.service import (
    create_product,
    delete_product,
    get_product,
    list_products,
    update_product,
)


@pytest.mark.parametrize(
    "quantity,min_quantity,expected",
    [
        (10, 5, StockStatus.OK),
        (5, 5, StockStatus.LOW),
        (2, 5, StockStatus.LOW),
        (1, 5, StockStatus.CRITICAL),
        (3, 10, StockStatus.CRITICAL),
        (0, 0, StockStatus.CRITICAL),
        (1, 0, StockStatus.OK),
    ],
)
def test_calculate_stock_status(quantity, min_quantity, expected):
    assert calculate_stock_status(quantity, min_quantity) == expected


@pytest.mark.asyncio
async def test_create_product(session):
    product_in = ProductCreate(
        name="Flour", price=5.5, quantity=20, min_quantity=10, category="Baking", unit="kg"
    )
    created = await create_product(session, product_in)
    assert created.name == "Flour"
    assert created.status == StockStatus.OK
    db_product = await Product.get(public_id=created.public_id)
    assert db_product.owner_id == session.owner_id


@pytest.mark.asyncio
async def test_get_product_not_found(session):
    with pytest.raises(HTTPException) as exc_info:
        await get_product(session, "non-existent-id")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_list_products_filters(session, product_factory, other_owner):
    await product_factory("Flour", quantity=20, min_quantity=10, category="Baking")
    await product_factory("Sugar", quantity=8, min_quantity=10, category="Baking")
    await product_factory("Cheese", quantity=1, min_quantity=10, category="Dairy")
    await product_factory("Hidden", category="Baking", owner_user=other_owner)

    everything = await list_products(session, page=1, size=10)
    assert everything.total == 3
    assert [p.name for p in everything.items] == ["Cheese", "Flour", "Sugar"]

    baking = await list_products(session, 1, 10, category="Baking")
    assert [p.name for p in baking.items] == ["Flour", "Sugar"]

    search = await list_products(session, 1, 10, search="che")
    assert [p.name for p in search.items] == ["Cheese"]

    low = await list_products(session, 1, 10, stock_status=StockStatus.LOW)
    assert [p.name for p in low.items] == ["Sugar"]

    paged = await list_products(session, page=2, size=2)
    assert (paged.total, [p.name for p in paged.items]) == (3, ["Sugar"])


@pytest.mark.asyncio
async def test_update_product_quantity_changes_status(session, product_factory):
    product = await product_factory("Flour", quantity=20, min_quantity=10)
    updated = await update_product(session, product.public_id, ProductUpdate(quantity=2))
    assert (updated.quantity, updated.status) == (2, StockStatus.CRITICAL)

    with pytest.raises(HTTPException) as exc_info:
        await update_product(session, product.public_id, ProductUpdate())
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        await update_product(session, product.public_id, ProductUpdate(name=None, price=None))
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_delete_product(session, product_factory):
    product = await product_factory("Flour")
    await delete_product(session, product.public_id)
    assert await Product.filter(id=product.id).count() == 0


@pytest.mark.asyncio
async def test_delete_product_in_combo_conflicts(session, product_factory, combo_factory):
    product = await product_factory("Bread")
    await combo_factory("Breakfast", [(product, 2)])
    with pytest.raises(HTTPException) as exc_info:
        await delete_product(session, product.public_id)
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_product_endpoints(auth_client):
    response = await auth_client.post(
        "/api/v1/inventory/products/",
        json={"name": "Eggs", "price": 0.5, "quantity": 3, "min_quantity": 12, "category": "Dairy"},
    )
    assert response.status_code == 201
    product = response.json()
    assert (product["unit"], product["status"]) == ("un", "critical")

    response = await auth_client.get("/api/v1/inventory/products/", params={"status": "critical"})
    assert response.status_code == 200
    assert [p["name"] for p in response.json()["items"]] == ["Eggs"]

    response = await auth_client.post(
        "/api/v1/inventory/products/",
        json={"name": "Bad", "price": -1, "category": "Dairy"},
    )
    assert response.status_code == 422
