"""
Storefront — Account self-service and the signed-in user's orders.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from storefront.config import get_settings
from storefront.core.auth import CurrentUser, require_user
from storefront.core.exceptions import PermissionDeniedError
from storefront.database import get_db
from storefront.models.orders import Order
from storefront.services import auth as credential_store
from storefront.services import orders as order_service

router = APIRouter(tags=["account"])
logger = logging.getLogger("storefront.api.account")
settings = get_settings()


# ── Schemas ───────────────────────────────────────────────────────────────────


class ShippingAddressResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shipping_address: Optional[Dict[str, Any]] = Field(None, alias="shippingAddress")


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    quantity: int = Field(1, ge=1)
    price: Optional[float] = None


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[OrderItem] = Field(..., min_length=1)
    total: float = Field(..., gt=0)
    shipping_address: Optional[Dict[str, Any]] = Field(None, alias="shippingAddress")
    promo_code: Optional[str] = Field(None, alias="promoCode")


class OrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    items: List[Dict[str, Any]]
    subtotal: float
    discount: float
    total: float
    promo_code: Optional[str] = Field(None, alias="promoCode")
    status: str
    shipping_address: Optional[Dict[str, Any]] = Field(None, alias="shippingAddress")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]


class OrderEnvelope(BaseModel):
    order: OrderResponse


def order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        items=order.items,
        subtotal=float(order.subtotal),
        discount=float(order.discount),
        total=float(order.total),
        promo_code=order.promo_code,
        status=order.status,
        shipping_address=order.shipping_address,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _stored_account(current_user: CurrentUser) -> str:
    """The fixed administrator has no stored account to manage."""
    if current_user.is_fixed_admin:
        raise PermissionDeniedError(current_user.role, action="manage a stored account")
    return current_user.user_id


# ── Shipping address ──────────────────────────────────────────────────────────


@router.get("/user/shipping-address", response_model=ShippingAddressResponse)
def get_shipping_address(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user),
):
    user_id = _stored_account(current_user)
    return ShippingAddressResponse(
        shipping_address=credential_store.get_shipping_address(db, user_id)
    )


@router.post("/user/shipping-address")
def save_shipping_address(
    address: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user),
):
    user_id = _stored_account(current_user)
    credential_store.update_shipping_address(db, user_id, address)
    return {"success": True, "message": "Shipping address saved successfully"}


# ── Account deletion ──────────────────────────────────────────────────────────


@router.delete("/user/delete-account")
def delete_account(
    response: Response,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user),
):
    """Permanently delete the caller's account and orders. Admins cannot self-delete here."""
    if current_user.is_admin:
        raise PermissionDeniedError(
            current_user.role, action="delete an admin account through self-service"
        )
    credential_store.delete_user(db, current_user.user_id)
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"success": True, "message": "Your account has been permanently deleted"}


@router.delete("/user/delete-data")
def delete_data(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user),
):
    """Erase the caller's orders and shipping address. The account itself stays."""
    user_id = _stored_account(current_user)
    credential_store.delete_user_data(db, user_id)
    return {"success": True, "message": "Your data has been deleted successfully"}


# ── Orders ────────────────────────────────────────────────────────────────────


@router.get("/orders", response_model=OrderListResponse)
def list_orders(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user),
):
    user_id = _stored_account(current_user)
    orders = order_service.list_orders(db, user_id)
    return OrderListResponse(orders=[order_response(o) for o in orders])


@router.post("/orders", response_model=OrderEnvelope)
def place_order(
    body: PlaceOrderRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user),
):
    user_id = _stored_account(current_user)
    order = order_service.place_order(
        db,
        user_id,
        items=[item.model_dump(exclude_none=True) for item in body.items],
        total=body.total,
        shipping_address=body.shipping_address,
        promo_code=body.promo_code,
    )
    return OrderEnvelope(order=order_response(order))
