"""
Reports Service Module

This module computes the back-office summaries: the dashboard statistics, the
monthly finance summary and the low-stock listing. Every report is scoped to
the session user's records.
"""

import calendar
import datetime
import logging
from typing import Optional

from tortoise import timezone

from ...common.models import today
from ..auth.session import SessionContext
from ..finance.models import FinancialTransaction, TransactionCategory, TransactionType
from ..inventory.models import Product, StockStatus
from ..orders.models import Order, OrderStatus
from .schemas import (
    DashboardResponse,
    FinanceSummaryResponse,
    LowStockItem,
    LowStockItemsResponse,
)

logger = logging.getLogger(__name__)


def _month_bounds(year: int, month: int) -> tuple[datetime.date, datetime.date]:
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, 1), datetime.date(year, month, last_day)


async def generate_dashboard(session: SessionContext) -> DashboardResponse:
    """
    Generates the dashboard statistics for today.

    Returns:
        DashboardResponse with:
            - orders_today: orders created today that are in production or ready
            - revenue_today: sum of the totals of today's ready orders
            - low_stock_count: products whose quantity is at or below the minimum
            - month_revenue: net revenue entries dated in the current month
    """
    now = timezone.now()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    orders = await Order.filter(
        owner_id=session.owner_id,
        created_at__gte=start_of_day,
        status__in=[OrderStatus.IN_PRODUCTION.value, OrderStatus.READY.value],
    ).values("status", "total_amount")
    revenue_today = sum(
        o["total_amount"] for o in orders if o["status"] == OrderStatus.READY
    )

    stock = await Product.filter(owner_id=session.owner_id).values("quantity", "min_quantity")
    low_stock_count = sum(1 for p in stock if p["quantity"] <= p["min_quantity"])

    first_day, last_day = _month_bounds(now.year, now.month)
    month_amounts = await FinancialTransaction.filter(
        owner_id=session.owner_id,
        type=TransactionType.REVENUE,
        transaction_date__gte=first_day,
        transaction_date__lte=last_day,
    ).values_list("amount", flat=True)

    return DashboardResponse(
        date=now.date(),
        orders_today=len(orders),
        revenue_today=round(revenue_today, 2),
        low_stock_count=low_stock_count,
        month_revenue=round(sum(month_amounts), 2),
    )


async def generate_finance_summary(
    session: SessionContext, year: Optional[int] = None, month: Optional[int] = None
) -> FinanceSummaryResponse:
    """
    Summarises one month of the ledger (the current month by default).

    Cancellation offsets are negative sale entries. They reduce revenue, and a
    sale whose order was canceled leaves the sales count, so the average ticket
    only reflects sales that still stand.
    """
    current = today()
    year = year or current.year
    month = month or current.month
    first_day, last_day = _month_bounds(year, month)

    rows = await FinancialTransaction.filter(
        owner_id=session.owner_id,
        transaction_date__gte=first_day,
        transaction_date__lte=last_day,
    ).values("type", "category", "amount", "order_id")

    total_revenue = sum(r["amount"] for r in rows if r["type"] == TransactionType.REVENUE)
    total_expenses = sum(r["amount"] for r in rows if r["type"] == TransactionType.EXPENSE)

    sales = [
        r for r in rows
        if r["type"] == TransactionType.REVENUE and r["category"] == TransactionCategory.SALE
    ]
    canceled_orders = {r["order_id"] for r in sales if r["amount"] < 0 and r["order_id"]}
    standing = [
        r["amount"] for r in sales
        if r["amount"] > 0 and r["order_id"] not in canceled_orders
    ]
    sales_count = len(standing)
    average_ticket = round(sum(standing) / sales_count, 2) if sales_count else 0.0

    logger.debug(f"Finance summary {year}-{month:02d}: {len(rows)} entries, {sales_count} sale(s)")
    return FinanceSummaryResponse(
        year=year,
        month=month,
        total_revenue=round(total_revenue, 2),
        total_expenses=round(total_expenses, 2),
        net_profit=round(total_revenue - total_expenses, 2),
        sales_count=sales_count,
        average_ticket=average_ticket,
    )


async def generate_low_stock_items_report(session: SessionContext) -> LowStockItemsResponse:
    """Products in low or critical status, most urgent first."""
    products = await Product.filter(owner_id=session.owner_id).order_by("name")
    low = [p for p in products if p.status != StockStatus.OK]
    low.sort(key=lambda p: (p.status != StockStatus.CRITICAL, p.quantity - p.min_quantity))

    items = [
        LowStockItem(
            public_id=p.public_id,
            name=p.name,
            category=p.category,
            unit=p.unit,
            quantity=p.quantity,
            min_quantity=p.min_quantity,
            status=p.status.value,
        )
        for p in low
    ]
    return LowStockItemsResponse(items=items)
