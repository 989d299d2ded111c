import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backoffice.common.models import today
from backoffice.features.customers.models import Customer
from backoffice.features.customers.schemas import (
    CustomerCreate,
    CustomerUpdate,
    format_phone_number,
)
from backoffice.features.customers.service import (
    create_customer,
    delete_customer,
    get_customer,
    list_customers,
    update_customer,
)
from backoffice.features.orders.models import Order


@pytest.mark.parametrize(
    "raw,formatted",
    [
        ("11987654321", "(11) 98765-4321"),
        ("(11) 98765-4321", "(11) 98765-4321"),
        ("1134567890", "(11) 3456-7890"),
        ("11", "11"),
        ("1198765", "(11) 98765"),
    ],
)
def test_format_phone_number(raw, formatted):
    assert format_phone_number(raw) == formatted


def test_phone_must_have_area_code():
    with pytest.raises(ValidationError):
        CustomerCreate(name="Ana", phone="98765-4321")


@pytest.mark.asyncio
async def test_create_customer(session):
    created = await create_customer(
        session, CustomerCreate(name="Ana Lima", phone="11 98765 4321", address="Rua A, 1")
    )
    assert created.phone == "(11) 98765-4321"
    db_customer = await Customer.get(public_id=created.public_id)
    assert db_customer.owner_id == session.owner_id


@pytest.mark.asyncio
async def test_list_customers_search(session, other_session, customer_factory, other_owner):
    await customer_factory(name="Ana Lima", phone="(11) 98765-4321")
    await customer_factory(name="Bruno Costa", phone="(21) 91234-5678")
    await customer_factory(name="Ana Other", owner_user=other_owner)

    assert [c.name for c in await list_customers(session, None)] == ["Ana Lima", "Bruno Costa"]
    assert [c.name for c in await list_customers(session, "ana")] == ["Ana Lima"]
    assert [c.name for c in await list_customers(session, "91234")] == ["Bruno Costa"]
    assert [c.name for c in await list_customers(other_session, None)] == ["Ana Other"]


@pytest.mark.asyncio
async def test_update_customer(session, customer_factory):
    customer = await customer_factory()
    updated = await update_customer(
        session, customer.public_id, CustomerUpdate(phone="21912345678", notes="Prefers mornings")
    )
    assert updated.phone == "(21) 91234-5678"
    assert updated.notes == "Prefers mornings"
    assert updated.name == customer.name

    with pytest.raises(HTTPException) as exc_info:
        await update_customer(session, customer.public_id, CustomerUpdate())
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_customer_of_other_owner_not_found(other_session, customer_factory):
    customer = await customer_factory()
    with pytest.raises(HTTPException) as exc_info:
        await get_customer(other_session, customer.public_id)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_delete_customer_with_orders_conflicts(session, owner, customer_factory):
    customer = await customer_factory()
    await Order.create(
        order_number="20260001",
        customer=customer,
        delivery_date=today(),
        owner=owner,
    )
    with pytest.raises(HTTPException) as exc_info:
        await delete_customer(session, customer.public_id)
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_customer_endpoints(auth_client):
    response = await auth_client.post(
        "/api/v1/customers/", json={"name": "Carla", "phone": "(31) 99999-0000"}
    )
    assert response.status_code == 201
    public_id = response.json()["public_id"]

    response = await auth_client.get("/api/v1/customers/", params={"search": "carla"})
    assert [c["public_id"] for c in response.json()] == [public_id]

    response = await auth_client.post("/api/v1/customers/", json={"name": "Bad", "phone": "123"})
    assert response.status_code == 422

    response = await auth_client.delete(f"/api/v1/customers/{public_id}")
    assert response.status_code == 204
    response = await auth_client.get(f"/api/v1/customers/{public_id}")
    assert response.status_code == 404
