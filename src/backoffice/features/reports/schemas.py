"""Dashboard, Finance and Stock Report Schemas

This module defines the Pydantic models returned by the reporting endpoints:

1. Dashboard statistics (today's orders and revenue, low stock, month revenue)
2. Monthly finance summary
3. Low stock listing

Amounts are plain floats in the shop's currency."""
from pydantic import BaseModel, Field
from typing import List
import datetime


# 1. Dashboard
class DashboardResponse(BaseModel):
    date: datetime.date
    orders_today: int = Field(..., description="Orders created today that are in production or ready")
    revenue_today: float = Field(..., description="Total of ready orders created today")
    low_stock_count: int = Field(..., description="Products at or below their minimum quantity")
    month_revenue: float = Field(..., description="Revenue entries dated in the current month")

# 2. Finance summary
class FinanceSummaryResponse(BaseModel):
    year: int
    month: int
    total_revenue: float
    total_expenses: float
    net_profit: float
    sales_count: int
    average_ticket: float

# 3. Low stock
class LowStockItem(BaseModel):
    public_id: str
    name: str
    category: str
    unit: str
    quantity: int
    min_quantity: int
    status: str

class LowStockItemsResponse(BaseModel):
    items: List[LowStockItem]
