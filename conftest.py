"""
Root conftest for the pytest test suite.

This file contains the main fixtures that are used across the entire test suite.

This setup uses a manual, async-native approach to database initialization
to ensure that each test runs against a fresh, isolated in-memory database,
which is the most reliable method for an async pytest environment.

Key Fixtures:
- `initialize_test_db`: (autouse) Creates a fresh DB schema and two users for each test.
- `owner` / `other_owner`: The two fixture users; records of one are invisible to the other.
- `session` / `other_session`: SessionContext objects for calling services directly.
- `app_for_testing`: The FastAPI application with its production lifespan disabled.
- `client`: A non-authenticated httpx AsyncClient over the ASGI app.
- `auth_client`: An AsyncClient authenticated as `owner`.
- `product_factory`, `combo_factory`, `customer_factory`: Create owned records.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Generator, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from tortoise import Tortoise

from backoffice.core.config import MODEL_MODULES
from backoffice.features.auth.models import User
from backoffice.features.auth.security import get_password_hash
from backoffice.features.auth.session import SessionContext
from backoffice.features.combos.models import Combo, ComboItem
from backoffice.features.customers.models import Customer
from backoffice.features.inventory.models import Product

# Import the app
from backoffice.main import app as actual_app

OWNER_USERNAME = "ownerfixture"
OWNER_PASSWORD = "ownerpassword123"
OTHER_USERNAME = "otherfixture"
OTHER_PASSWORD = "otherpassword123"


async def add_user(username: str, password: str) -> User:
    return await User.create(
        username=username,
        email=f"{username}@example.com",
        hashed_password=get_password_hash(password),
    )


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """
    Specifies the asyncio backend for pytest-asyncio.
    """
    return "asyncio"


@pytest_asyncio.fixture(scope="function", autouse=True)
async def initialize_test_db() -> AsyncGenerator[None, None]:
    """
    Initializes the database for each test function.

    This async, autouse fixture creates a fresh in-memory database and schema
    for each test and tears it down afterwards.
    """
    test_db_config = {
        "connections": {"default": "sqlite://:memory:"},
        "apps": {
            "models": {
                "models": MODEL_MODULES,
                "default_connection": "default",
            }
        },
    }
    await Tortoise.init(config=test_db_config)
    await Tortoise.generate_schemas()
    await add_user(OWNER_USERNAME, OWNER_PASSWORD)
    await add_user(OTHER_USERNAME, OTHER_PASSWORD)

    yield

    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def owner() -> User:
    return await User.get(username=OWNER_USERNAME)


@pytest_asyncio.fixture
async def other_owner() -> User:
    return await User.get(username=OTHER_USERNAME)


@pytest.fixture
def session(owner: User) -> SessionContext:
    return SessionContext(user=owner)


@pytest.fixture
def other_session(other_owner: User) -> SessionContext:
    return SessionContext(user=other_owner)


@pytest.fixture(scope="function")
def app_for_testing() -> Generator[FastAPI, Any, None]:
    """
    Provides a FastAPI application instance for testing, with its
    production lifespan manager disabled to allow the test DB fixture
    to manage the database connection.
    """
    original_lifespan = actual_app.router.lifespan_context

    @asynccontextmanager
    async def dummy_lifespan(app: FastAPI):
        yield

    actual_app.router.lifespan_context = dummy_lifespan

    yield actual_app

    # Restore the original lifespan context after the test
    actual_app.router.lifespan_context = original_lifespan


@pytest_asyncio.fixture(scope="function")
async def client(app_for_testing: FastAPI) -> AsyncGenerator[httpx.AsyncClient, Any]:
    """
    Provides a non-authenticated httpx client that calls the ASGI app in the
    test's event loop.
    """
    transport = httpx.ASGITransport(app=app_for_testing)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _login(client: httpx.AsyncClient, username: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/token", data={"username": username, "password": password}
    )
    if response.status_code != 200:
        raise Exception(f"Authentication failed for {username}")
    return response.json()["access_token"]


@pytest_asyncio.fixture(scope="function")
async def auth_client(client: httpx.AsyncClient) -> httpx.AsyncClient:
    """
    Provides the client authenticated as the `owner` fixture user.
    """
    token = await _login(client, OWNER_USERNAME, OWNER_PASSWORD)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest_asyncio.fixture
async def other_token(client: httpx.AsyncClient) -> str:
    """A bearer token for the `other_owner` fixture user."""
    return await _login(client, OTHER_USERNAME, OTHER_PASSWORD)


@pytest_asyncio.fixture
async def product_factory(owner: User):
    """A factory to create stock products owned by `owner` (or another user)."""

    async def _factory(
        name: str,
        quantity: int = 10,
        price: float = 10.0,
        min_quantity: int = 0,
        category: str = "General",
        unit: str = "un",
        owner_user: Optional[User] = None,
    ) -> Product:
        return await Product.create(
            name=name,
            quantity=quantity,
            price=price,
            min_quantity=min_quantity,
            category=category,
            unit=unit,
            owner=owner_user or owner,
        )

    return _factory


@pytest_asyncio.fixture
async def combo_factory(owner: User):
    """A factory to create combos from [(product, quantity), ...]."""

    async def _factory(name: str, components, price: float = 50.0) -> Combo:
        combo = await Combo.create(name=name, price=price, owner=owner)
        for position, (product, quantity) in enumerate(components):
            await ComboItem.create(
                combo=combo, product=product, quantity=quantity, position=position
            )
        return combo

    return _factory


@pytest_asyncio.fixture
async def customer_factory(owner: User):
    """A factory to create customers."""

    async def _factory(
        name: str = "Maria Silva",
        phone: str = "(11) 98765-4321",
        address: Optional[str] = "Rua das Flores, 100",
        owner_user: Optional[User] = None,
    ) -> Customer:
        return await Customer.create(
            name=name, phone=phone, address=address, owner=owner_user or owner
        )

    return _factory
