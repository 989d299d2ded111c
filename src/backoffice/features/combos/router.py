"""API routes for managing product combos."""
from fastapi import APIRouter, status, Query
from typing import Optional, List

from ..auth.session import Session
from .schemas import ComboCreate, ComboUpdate, ComboResponse
from . import service

router = APIRouter(
    prefix="/inventory/combos",
    tags=["Combos"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/",
    response_model=ComboResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new combo",
)
async def create_combo(combo_in: ComboCreate, session: Session):
    return await service.create_combo(session, combo_in)


@router.get("/", response_model=List[ComboResponse], summary="List combos")
async def list_combos(
    session: Session,
    search: Optional[str] = Query(None, description="Filter by combo name"),
):
    return await service.list_combos(session, search)


@router.get("/{combo_public_id}", response_model=ComboResponse, summary="Get a combo")
async def get_combo(combo_public_id: str, session: Session):
    return await service.get_combo(session, combo_public_id)


@router.put("/{combo_public_id}", response_model=ComboResponse, summary="Update a combo")
async def update_combo(combo_public_id: str, combo_in: ComboUpdate, session: Session):
    return await service.update_combo(session, combo_public_id, combo_in)


@router.delete(
    "/{combo_public_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an unreferenced combo",
)
async def delete_combo(combo_public_id: str, session: Session):
    await service.delete_combo(session, combo_public_id)
    return None
