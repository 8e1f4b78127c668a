from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import Identity, get_current_identity, issue_token
from app.core.database import get_db
from app.core.exceptions import Forbidden, NotFound, Unauthorized
from app.core.permissions import CAN_CHANGE_PASSWORD, CAN_EDIT_PERSONAL_PROFILE
from app.core.security import verify_password
from app.crud import tenant as tenant_crud
from app.crud import user as user_crud
from app.db.models import User as UserModel
from app.schemas.auth import (
    PasswordChange, ProfileUpdate, RegisterRequest, TokenWithUser, UserLogin,
)
from app.schemas.user import User, UserCreate, UserWithPermissions
from app.services.access_control import require_permission

logger = logging.getLogger(__name__)
router = APIRouter()

async def token_response(db: AsyncSession, user: UserModel) -> TokenWithUser:
    """
    Issue a token for ``user`` with their current permission snapshot.
    """
    permissions = await user_crud.get_permission_names(db, user.id)
    return TokenWithUser(
        access_token=issue_token(user, permissions),
        user=UserWithPermissions(
            **User.model_validate(user).model_dump(),
            permissions=permissions,
        ),
    )

async def _current_user(db: AsyncSession, identity: Identity) -> UserModel:
    user = await user_crud.get_user(db, identity.user_id, identity.tenant_id)
    if not user:
        raise NotFound("User not found.")
    return user

@router.post("/register", response_model=TokenWithUser, status_code=status.HTTP_201_CREATED)
async def register(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: RegisterRequest
) -> Any:
    """
    Register a user into the office named by ``tenant_name``.

    A new office name creates the office with the registrant as its Admin.
    """
    logger.info(f"Registration requested for office {user_in.tenant_name!r}")
    user = await tenant_crud.register_user(
        db,
        user_in.tenant_name,
        UserCreate(**user_in.model_dump(exclude={"tenant_name"})),
    )
    return await token_response(db, user)

@router.post("/login", response_model=TokenWithUser)
async def login(
    *,
    db: AsyncSession = Depends(get_db),
    credentials: UserLogin
) -> Any:
    """
    Exchange email and password for an access token.
    """
    user = await user_crud.authenticate(db, credentials.email, credentials.password)
    if not user:
        logger.warning(f"Failed login attempt for {credentials.email}")
        raise Unauthorized("Incorrect email or password.")
    if not user.is_active:
        raise Forbidden("This account is inactive.")

    logger.info(f"User {user.id} logged in")
    return await token_response(db, user)

@router.post("/refresh", response_model=TokenWithUser)
async def refresh(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Issue a fresh token, re-reading the caller's permissions.
    """
    user = await _current_user(db, identity)
    if not user.is_active:
        raise Forbidden("This account is inactive.")
    return await token_response(db, user)

@router.get("/me", response_model=UserWithPermissions)
async def read_me(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    user = await _current_user(db, identity)
    return UserWithPermissions(
        **User.model_validate(user).model_dump(),
        permissions=identity.permissions,
    )

@router.put("/profile", response_model=User)
async def update_profile(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    profile_in: ProfileUpdate
) -> Any:
    require_permission(identity, CAN_EDIT_PERSONAL_PROFILE)
    user = await _current_user(db, identity)
    return await user_crud.update_profile(db, user, profile_in.first_name, profile_in.last_name)

@router.put("/change-password")
async def change_password(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    password_in: PasswordChange
) -> Any:
    require_permission(identity, CAN_CHANGE_PASSWORD)
    user = await _current_user(db, identity)
    if not verify_password(password_in.current_password, user.hashed_password):
        raise Unauthorized("Current password is incorrect.")

    await user_crud.change_password(db, user, password_in.new_password)
    return {"message": "Password changed successfully"}
