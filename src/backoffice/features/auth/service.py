"""Owner accounts: lookup, registration, activation and the profile summary."""
import logging
from typing import Optional

from fastapi import HTTPException, status

from . import models, schemas

logger = logging.getLogger(__name__)


async def get_user_by_username(username: str) -> Optional[models.User]:
    return await models.User.get_or_none(username=username)


async def get_user_by_email(email: str) -> Optional[models.User]:
    return await models.User.get_or_none(email=email)


async def get_user_by_public_id(public_id: str) -> Optional[models.User]:
    """Resolves the subject of an access token to its owner."""
    return await models.User.get_or_none(public_id=public_id)


async def create_user(user_in: dict, hashed_password_val: str) -> models.User:
    """Creates an owner account from `user_in` (username, email, optionally is_active)."""
    return await models.User.create(**user_in, hashed_password=hashed_password_val)


async def register_owner(owner_in: schemas.OwnerCreate, hashed_password: str) -> models.User:
    """
    Registers a new owner.

    Raises:
        HTTPException: 400 when the username or the email is already taken.
    """
    if await get_user_by_username(owner_in.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Username already registered"
        )
    if await get_user_by_email(owner_in.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered"
        )
    user = await create_user(owner_in.model_dump(exclude={"password"}), hashed_password)
    logger.info(f"Owner {user.username} registered ({user.public_id})")
    return user


async def set_user_active(username: str, is_active: bool) -> Optional[models.User]:
    """Enables or disables a user account. Returns None when the user does not exist."""
    user = await models.User.get_or_none(username=username)
    if user is None:
        return None
    if user.is_active != is_active:
        user.is_active = is_active
        await user.save(update_fields=["is_active"])
    return user


async def count_owned_records(user: models.User) -> schemas.OwnedRecordCounts:
    return schemas.OwnedRecordCounts(
        customers=await user.customers.all().count(),
        products=await user.products.all().count(),
        combos=await user.combos.all().count(),
        orders=await user.orders.all().count(),
        transactions=await user.transactions.all().count(),
    )
