"""Reporting API endpoints for the back office

Dashboard statistics, a monthly finance summary and the low-stock listing.
All report handlers delegate to service functions that contain the actual
business logic, and every report only covers the session user's records."""
import logging
from fastapi import APIRouter, Query
from typing import Optional

from ..auth.session import Session

# Schemas for responses
from .schemas import DashboardResponse, FinanceSummaryResponse, LowStockItemsResponse
# Service functions that contain the business logic
from . import service as report_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    responses={404: {"description": "Not found"}}, # General 404 for this router
)

@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(session: Session):
    return await report_service.generate_dashboard(session)

@router.get("/finance/summary", response_model=FinanceSummaryResponse)
async def get_finance_summary(
    session: Session,
    year: Optional[int] = Query(None, ge=2000, le=9999, description="Defaults to the current year"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Defaults to the current month"),
):
    return await report_service.generate_finance_summary(session, year, month)

@router.get("/stock/low", response_model=LowStockItemsResponse)
async def get_low_stock_items_report(session: Session):
    return await report_service.generate_low_stock_items_report(session)
