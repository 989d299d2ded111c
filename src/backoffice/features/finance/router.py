"""API routes for the financial ledger and receipt attachments."""
import datetime
from fastapi import APIRouter, File, Query, Response, UploadFile, status
from typing import List, Optional

from ..auth.session import Session
from .models import TransactionCategory, TransactionType
from .schemas import TransactionCreate, TransactionResponse
from . import service

router = APIRouter(
    prefix="/finance",
    tags=["Finance"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/transactions/",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a revenue or expense",
)
async def create_transaction(txn_in: TransactionCreate, session: Session):
    return await service.create_transaction(session, txn_in)


@router.get("/transactions/", response_model=List[TransactionResponse], summary="List transactions")
async def list_transactions(
    session: Session,
    txn_type: Optional[TransactionType] = Query(None, alias="type"),
    category: Optional[TransactionCategory] = Query(None),
    start_date: Optional[datetime.date] = Query(None, description="Inclusive (YYYY-MM-DD)"),
    end_date: Optional[datetime.date] = Query(None, description="Inclusive (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Filter by description"),
):
    return await service.list_transactions(session, txn_type, category, start_date, end_date, search)


@router.get("/transactions/{txn_public_id}", response_model=TransactionResponse)
async def get_transaction(txn_public_id: str, session: Session):
    return await service.get_transaction(session, txn_public_id)


@router.delete("/transactions/{txn_public_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(txn_public_id: str, session: Session):
    await service.delete_transaction(session, txn_public_id)
    return None


@router.put(
    "/transactions/{txn_public_id}/receipt",
    response_model=TransactionResponse,
    summary="Attach or replace the receipt of a transaction",
)
async def attach_receipt(txn_public_id: str, session: Session, file: UploadFile = File(...)):
    return await service.attach_receipt(session, txn_public_id, file)


@router.get("/transactions/{txn_public_id}/receipt", summary="Download a receipt")
async def download_receipt(txn_public_id: str, session: Session):
    receipt = await service.get_receipt(session, txn_public_id)
    return Response(
        content=receipt.content,
        media_type=receipt.content_type,
        headers={"Content-Disposition": f'attachment; filename="{receipt.file_name}"'},
    )
