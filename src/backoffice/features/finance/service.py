import datetime
import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, UploadFile, status
from tortoise.expressions import Q

from ...core.config import RECEIPT_MAX_BYTES
from ..auth.session import SessionContext
from ..changes.feed import FINANCIAL_TRANSACTIONS, change_feed
from ..orders.models import Order
from .models import (
    FinancialTransaction,
    Receipt,
    TransactionCategory,
    TransactionType,
)
from .schemas import ReceiptInfo, TransactionCreate, TransactionResponse

logger = logging.getLogger(__name__)

RECEIPT_CONTENT_TYPES = ("application/pdf", "image/")


async def _to_transaction_responses(
    transactions: List[FinancialTransaction],
) -> List[TransactionResponse]:
    """Builds responses with the linked order number and receipt metadata in two extra queries."""
    order_ids = {t.order_id for t in transactions if t.order_id}
    orders = {o.id: o for o in await Order.filter(id__in=order_ids)} if order_ids else {}
    receipts = {}
    if transactions:
        rows = await Receipt.filter(
            transaction_id__in=[t.id for t in transactions]
        ).values("transaction_id", "file_name", "content_type", "size")
        receipts = {row.pop("transaction_id"): ReceiptInfo(**row) for row in rows}

    responses = []
    for txn in transactions:
        order = orders.get(txn.order_id)
        responses.append(
            TransactionResponse(
                public_id=txn.public_id,
                transaction_date=txn.transaction_date,
                description=txn.description,
                category=txn.category,
                type=txn.type,
                amount=txn.amount,
                order_public_id=order.public_id if order else None,
                order_number=order.order_number if order else None,
                receipt=receipts.get(txn.id),
                created_at=txn.created_at,
                updated_at=txn.updated_at,
            )
        )
    return responses


async def _fetch_transaction(session: SessionContext, txn_public_id: str) -> FinancialTransaction:
    txn = await FinancialTransaction.get_or_none(
        public_id=txn_public_id, owner_id=session.owner_id
    )
    if not txn:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Transaction {txn_public_id} not found",
        )
    return txn


async def create_transaction(
    session: SessionContext, txn_in: TransactionCreate
) -> TransactionResponse:
    """Records a manual revenue or expense entry."""
    txn = await FinancialTransaction.create(**txn_in.model_dump(), owner_id=session.owner_id)
    logger.info(
        f"{txn.type.value.capitalize()} of {txn.amount:.2f} recorded by {session.username} ({txn.category.value})"
    )
    change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, "INSERT", txn.public_id)
    return await get_transaction(session, txn.public_id)


async def list_transactions(
    session: SessionContext,
    txn_type: Optional[TransactionType] = None,
    category: Optional[TransactionCategory] = None,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
    search: Optional[str] = None,
) -> List[TransactionResponse]:
    """
    Lists the session user's ledger, newest first.

    Args:
        session: The request session.
        txn_type: Only revenue or only expense entries.
        category: Only entries of this category.
        start_date: Inclusive lower bound on the transaction date.
        end_date: Inclusive upper bound on the transaction date.
        search: Case-insensitive substring of the description.
    """
    query = FinancialTransaction.filter(owner_id=session.owner_id)
    if txn_type:
        query = query.filter(type=txn_type)
    if category:
        query = query.filter(category=category)
    if start_date:
        query = query.filter(transaction_date__gte=start_date)
    if end_date:
        query = query.filter(transaction_date__lte=end_date)
    if search and search.strip():
        query = query.filter(Q(description__icontains=search.strip()))

    transactions = await query.order_by("-transaction_date", "-id")
    return await _to_transaction_responses(transactions)


async def get_transaction(session: SessionContext, txn_public_id: str) -> TransactionResponse:
    txn = await _fetch_transaction(session, txn_public_id)
    return (await _to_transaction_responses([txn]))[0]


async def delete_transaction(session: SessionContext, txn_public_id: str):
    """Deletes a manual entry. Entries generated by order workflows are only removed with their order."""
    txn = await _fetch_transaction(session, txn_public_id)
    if txn.idempotency_key:
        order = await Order.get_or_none(id=txn.order_id) if txn.order_id else None
        order_ref = order.order_number if order else txn.idempotency_key
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Transaction is managed by order {order_ref} and cannot be deleted",
        )
    await txn.delete()
    change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, "DELETE", txn_public_id)
    return None


async def attach_receipt(
    session: SessionContext, txn_public_id: str, upload: UploadFile
) -> TransactionResponse:
    """Stores (or replaces) the receipt file of a transaction."""
    txn = await _fetch_transaction(session, txn_public_id)
    content_type = upload.content_type or "application/octet-stream"
    if not content_type.startswith(RECEIPT_CONTENT_TYPES):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported receipt type {content_type}; upload a PDF or an image",
        )
    content = await upload.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Receipt file is empty")
    if len(content) > RECEIPT_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Receipt exceeds {RECEIPT_MAX_BYTES} bytes",
        )

    file_name = (upload.filename or "receipt")[:255]
    await Receipt.update_or_create(
        transaction_id=txn.id,
        defaults={
            "file_name": file_name,
            "content_type": content_type,
            "size": len(content),
            "content": content,
        },
    )
    logger.info(f"Receipt {file_name} ({len(content)} bytes) attached to transaction {txn.public_id}")
    change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, "UPDATE", txn.public_id)
    return await get_transaction(session, txn_public_id)


async def get_receipt(session: SessionContext, txn_public_id: str) -> Receipt:
    txn = await _fetch_transaction(session, txn_public_id)
    receipt = await Receipt.get_or_none(transaction_id=txn.id)
    if not receipt:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Transaction {txn_public_id} has no receipt",
        )
    return receipt


async def ensure_order_entry(
    order: Order,
    idempotency_key: str,
    amount: float,
    description: str,
    using_db=None,
) -> Tuple[FinancialTransaction, bool]:
    """Creates the ledger entry for `idempotency_key` unless it already exists.

    Used by the order workflow inside its transaction; returns the entry and
    whether it was created.
    """
    existing = await FinancialTransaction.get_or_none(
        idempotency_key=idempotency_key, using_db=using_db
    )
    if existing:
        logger.debug(f"Ledger entry {idempotency_key} already exists; not duplicating")
        return existing, False
    txn = await FinancialTransaction.create(
        transaction_date=order.delivery_date,
        description=description,
        category=TransactionCategory.SALE,
        amount=amount,
        type=TransactionType.REVENUE,
        idempotency_key=idempotency_key,
        order_id=order.id,
        owner_id=order.owner_id,
        using_db=using_db,
    )
    logger.debug(f"Ledger entry {idempotency_key} created for {amount:.2f}")
    return txn, True
