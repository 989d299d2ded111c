import pytest

from backoffice.common.models import today
from backoffice.features.finance.models import TransactionCategory, TransactionType
from backoffice.features.finance.schemas import TransactionCreate
from backoffice.features.finance.service import create_transaction
from backoffice.features.orders.models import OrderStatus
from backoffice.features.orders.schemas import OrderCreateSchema, OrderItemCreateSchema
from backoffice.features.orders.service import change_order_status, get_todays_orders, place_order
from backoffice.features.reports.service import (
    generate_dashboard,
    generate_finance_summary,
    generate_low_stock_items_report,
)

TODAY = today()


async def _place(session, customer, product, quantity, status=OrderStatus.UNDER_REVIEW):
    return await place_order(
        session,
        OrderCreateSchema(
            customer_public_id=customer.public_id,
            delivery_date=TODAY,
            status=status,
            items=[OrderItemCreateSchema(item_public_id=product.public_id, quantity=quantity)],
        ),
    )


@pytest.mark.asyncio
async def test_dashboard(session, other_session, product_factory, customer_factory):
    bread = await product_factory("Bread", quantity=50, price=10.0, min_quantity=5)
    await product_factory("Cheese", quantity=2, min_quantity=5)
    customer = await customer_factory()

    await _place(session, customer, bread, 1)  # under review: not counted
    in_production = await _place(session, customer, bread, 2)
    await change_order_status(session, in_production.public_id, OrderStatus.IN_PRODUCTION)
    await _place(session, customer, bread, 3, status=OrderStatus.READY)

    dashboard = await generate_dashboard(session)
    assert dashboard.orders_today == 2
    assert dashboard.revenue_today == 30.0
    assert dashboard.low_stock_count == 1
    assert dashboard.month_revenue == 30.0

    empty = await generate_dashboard(other_session)
    assert (empty.orders_today, empty.revenue_today, empty.low_stock_count) == (0, 0.0, 0)


@pytest.mark.asyncio
async def test_finance_summary_nets_cancellations(session, product_factory, customer_factory):
    bread = await product_factory("Bread", quantity=50, price=10.0)
    customer = await customer_factory()

    await _place(session, customer, bread, 2, status=OrderStatus.READY)  # 20
    await _place(session, customer, bread, 4, status=OrderStatus.READY)  # 40
    canceled = await _place(session, customer, bread, 5, status=OrderStatus.READY)  # 50
    await change_order_status(session, canceled.public_id, OrderStatus.CANCELED)

    await create_transaction(
        session,
        TransactionCreate(
            description="Flour", amount=25.0,
            type=TransactionType.EXPENSE, category=TransactionCategory.PURCHASE,
        ),
    )

    summary = await generate_finance_summary(session)
    assert (summary.year, summary.month) == (TODAY.year, TODAY.month)
    assert summary.total_revenue == 60.0
    assert summary.total_expenses == 25.0
    assert summary.net_profit == 35.0
    assert summary.sales_count == 2
    assert summary.average_ticket == 30.0


@pytest.mark.asyncio
async def test_finance_summary_counts_only_standing_sales(
    session, product_factory, customer_factory
):
    bread = await product_factory("Bread", quantity=50, price=10.0)
    customer = await customer_factory()

    await _place(session, customer, bread, 2, status=OrderStatus.READY)  # 20
    never_ready = await _place(session, customer, bread, 3)  # 30, canceled before ready
    await change_order_status(session, never_ready.public_id, OrderStatus.CANCELED)

    summary = await generate_finance_summary(session)
    assert summary.total_revenue == -10.0
    assert summary.sales_count == 1
    assert summary.average_ticket == 20.0


@pytest.mark.asyncio
async def test_dashboard_and_todays_orders_share_one_day(
    session, product_factory, customer_factory
):
    bread = await product_factory("Bread", quantity=50)
    customer = await customer_factory()
    order = await _place(session, customer, bread, 1)

    dashboard = await generate_dashboard(session)
    todays = await get_todays_orders(session)
    assert dashboard.date == TODAY
    assert [o.public_id for o in todays] == [order.public_id]


@pytest.mark.asyncio
async def test_finance_summary_for_empty_month(session):
    summary = await generate_finance_summary(session, year=2001, month=2)
    assert (summary.total_revenue, summary.sales_count, summary.average_ticket) == (0, 0, 0.0)


@pytest.mark.asyncio
async def test_low_stock_report(session, product_factory):
    await product_factory("Plenty", quantity=50, min_quantity=5)
    await product_factory("Low", quantity=4, min_quantity=5)
    await product_factory("Critical", quantity=1, min_quantity=5)

    report = await generate_low_stock_items_report(session)
    assert [(i.name, i.status) for i in report.items] == [("Critical", "critical"), ("Low", "low")]


@pytest.mark.asyncio
async def test_report_endpoints(auth_client):
    for path in ("/api/v1/reports/dashboard", "/api/v1/reports/finance/summary", "/api/v1/reports/stock/low"):
        response = await auth_client.get(path)
        assert response.status_code == 200, path

    response = await auth_client.get("/api/v1/reports/finance/summary", params={"month": 13})
    assert response.status_code == 422
