"""API routes for owner accounts: token login, registration and the current owner's profile."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from typing import Annotated

from . import schemas
from . import security as auth_security
from . import service as auth_service
from .session import Session

logger = logging.getLogger(__name__)
router = APIRouter(
    tags=["Authentication"],
    prefix="/auth"
)

@router.post("/token", response_model=schemas.Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()]
):
    user = await auth_service.get_user_by_username(username=form_data.username)
    if not user or not auth_security.verify_password(form_data.password, user.hashed_password):
        logger.info(f"Rejected login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )
    access_token = auth_security.create_access_token(data={"sub": user.public_id})
    return {"access_token": access_token, "token_type": "bearer"}

@router.post("/register", response_model=schemas.OwnerResponse, status_code=status.HTTP_201_CREATED)
async def register_owner(owner_in: schemas.OwnerCreate):
    user = await auth_service.register_owner(
        owner_in, auth_security.get_password_hash(owner_in.password)
    )
    return schemas.OwnerResponse.model_validate(user)

@router.get("/me", response_model=schemas.OwnerProfileResponse, summary="Current owner and record counts")
async def read_current_owner(session: Session):
    records = await auth_service.count_owned_records(session.user)
    return schemas.OwnerProfileResponse(
        **schemas.OwnerResponse.model_validate(session.user).model_dump(),
        records=records,
    )
