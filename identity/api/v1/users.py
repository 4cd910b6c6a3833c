"""Account profile, password change and role membership endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from identity.api.errors import http_error
from identity.api.v1.auth import get_auth_engine, get_current_user, require_admin
from identity.core.database import get_db
from identity.schemas.auth import (
    AccountOut,
    ChangePasswordRequest,
    CurrentUser,
    MessageResponse,
    RoleRequest,
    UpdateAccountRequest,
)
from identity.services.accounts import AccountService
from identity.services.auth_engine import AuthEngine
from identity.services.results import Failure

router = APIRouter()
roles_router = APIRouter()


def get_account_service(db: Annotated[Session, Depends(get_db)]) -> AccountService:
    return AccountService(db)


def _require_self_or_admin(current_user: CurrentUser, account_id: str) -> None:
    if current_user.id != account_id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access another user's account",
        )


@router.get("", response_model=list[AccountOut])
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> list[AccountOut]:
    """List active users (admin only)."""
    return service.get_all()


@router.get("/me", response_model=AccountOut)
def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> AccountOut:
    account = service.get_by_id(current_user.id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return account


@router.get("/by-email", response_model=AccountOut)
def get_user_by_email(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[AccountService, Depends(get_account_service)],
    email: str = Query(..., min_length=3, max_length=320),
) -> AccountOut:
    account = service.get_by_email(email)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return account


@router.get("/{account_id}", response_model=AccountOut)
def get_user(
    account_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> AccountOut:
    _require_self_or_admin(current_user, account_id)
    account = service.get_by_id(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return account


@router.put("/{account_id}", response_model=AccountOut)
def update_user(
    account_id: str,
    body: UpdateAccountRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> AccountOut:
    _require_self_or_admin(current_user, account_id)
    result = service.update_profile(
        account_id,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_number=body.phone_number,
        modified_by=current_user.id,
    )
    if isinstance(result, Failure):
        raise http_error(result)
    return result.value


@router.put("/{account_id}/change-password", response_model=MessageResponse)
def change_password(
    account_id: str,
    body: ChangePasswordRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> MessageResponse:
    """Change the caller's own password; the current password is required."""
    if current_user.id != account_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Users can only change their own password",
        )
    result = engine.change_password(account_id, body.current_password, body.new_password)
    if isinstance(result, Failure):
        raise http_error(result)
    return MessageResponse(message="Password changed successfully")


@router.delete("/{account_id}", response_model=MessageResponse)
def delete_user(
    account_id: str,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> MessageResponse:
    """Soft-delete a user (admin only)."""
    result = service.delete(account_id, deleted_by=admin.id)
    if isinstance(result, Failure):
        raise http_error(result)
    return MessageResponse(message="User deleted successfully")


@router.get("/{account_id}/roles", response_model=list[str])
def get_user_roles(
    account_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> list[str]:
    _require_self_or_admin(current_user, account_id)
    result = engine.list_roles(account_id)
    if isinstance(result, Failure):
        raise http_error(result)
    return result.value


@router.post("/{account_id}/roles", response_model=list[str])
def add_user_to_role(
    account_id: str,
    body: RoleRequest,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> list[str]:
    """Assign an existing role (admin only). Returns the user's roles."""
    result = engine.add_role(account_id, body.role)
    if isinstance(result, Failure):
        raise http_error(result)
    return result.value


@router.delete("/{account_id}/roles/{role}", response_model=list[str])
def remove_user_from_role(
    account_id: str,
    role: str,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> list[str]:
    """Remove a role membership (admin only). Returns the user's roles."""
    result = engine.remove_role(account_id, role)
    if isinstance(result, Failure):
        raise http_error(result)
    return result.value


@roles_router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleRequest,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> MessageResponse:
    """Create a role (admin only). Names are unique regardless of case."""
    result = engine.create_role(body.role)
    if isinstance(result, Failure):
        raise http_error(result)
    return MessageResponse(message=f"Role {result.value} created")


@roles_router.get("", response_model=list[str])
def list_all_roles(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    engine: Annotated[AuthEngine, Depends(get_auth_engine)],
) -> list[str]:
    """All role names, ordered case-insensitively (admin only)."""
    return engine.all_roles()
