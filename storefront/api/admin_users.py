"""
Storefront — Admin: user management.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from storefront.api.auth import UserResponse, user_response
from storefront.core.auth import CurrentUser, require_admin
from storefront.core.exceptions import ValidationError
from storefront.database import get_db
from storefront.services import auth as credential_store
from storefront.services.rbac import ROLES

router = APIRouter(prefix="/admin/users", tags=["admin"])
logger = logging.getLogger("storefront.api.admin")


class UserListResponse(BaseModel):
    users: List[UserResponse]


class RoleUpdateRequest(BaseModel):
    role: str


class BulkActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["change-role", "delete"]
    user_ids: List[str] = Field(..., min_length=1, alias="userIds")
    role: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class BulkActionResponse(MessageResponse):
    affected: int


def _validate_role(role: Optional[str]) -> str:
    if not role or role not in ROLES:
        raise ValidationError("Valid role is required (user or admin)", fields=["role"])
    return role


@router.get("", response_model=UserListResponse)
def list_users(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    return UserListResponse(users=[user_response(u) for u in credential_store.list_users(db)])


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    credential_store.get_user_or_404(db, user_id)
    if current_user.user_id == user_id:
        raise ValidationError("You cannot delete your own account", fields=["id"])
    credential_store.delete_user(db, user_id)
    logger.info("Admin %s deleted user %s", current_user.user_id, user_id)
    return MessageResponse(message="User deleted successfully")


@router.put("/{user_id}/role", response_model=MessageResponse)
def update_user_role(
    user_id: str,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    role = _validate_role(body.role)
    credential_store.update_role(db, user_id, role)
    logger.info("Admin %s set role of %s to %s", current_user.user_id, user_id, role)
    return MessageResponse(message="User role updated successfully")


@router.post("/bulk", response_model=BulkActionResponse)
def bulk_action(
    body: BulkActionRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    """Change role of, or delete, many users. The caller's own id is always skipped."""
    role = _validate_role(body.role) if body.action == "change-role" else None
    targets = [uid for uid in dict.fromkeys(body.user_ids) if uid != current_user.user_id]
    existing = [uid for uid in targets if credential_store.find_by_id(db, uid) is not None]

    if body.action == "change-role":
        for uid in existing:
            credential_store.update_role(db, uid, role)
        message = f"Successfully updated {len(existing)} user(s) to {role} role"
    else:
        for uid in existing:
            credential_store.delete_user(db, uid)
        message = f"Successfully deleted {len(existing)} user(s)"

    logger.info("Admin %s bulk %s on %d user(s)", current_user.user_id, body.action, len(existing))
    return BulkActionResponse(message=message, affected=len(existing))
