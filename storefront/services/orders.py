"""
Storefront — Orders owned by a user.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.core.exceptions import ValidationError
from storefront.models.orders import Order
from storefront.services.promo_codes import CENT, PromoCodeService, apply_discount

logger = logging.getLogger("storefront.orders")


def list_orders(db: Session, user_id: str) -> List[Order]:
    return (
        db.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .all()
    )


def place_order(
    db: Session,
    user_id: str,
    items: List[Dict[str, Any]],
    total: Any,
    shipping_address: Optional[Dict[str, Any]] = None,
    promo_code: Optional[str] = None,
) -> Order:
    """
    Create a pending order. `total` is the cart subtotal; when a promo code is
    given it must be active and its discount is applied to the stored total.
    """
    if not items:
        raise ValidationError("Items and total are required", fields=["items"])
    try:
        subtotal = Decimal(str(total)).quantize(CENT)
    except InvalidOperation:
        raise ValidationError("total must be a number", fields=["total"]) from None
    if subtotal <= 0:
        raise ValidationError("total must be greater than zero", fields=["total"])

    discount = Decimal("0.00")
    final_total = subtotal
    applied_code = None
    promos = PromoCodeService(db)
    promo = None
    if promo_code:
        promo = promos.find_active(promo_code)
        discount, final_total = apply_discount(subtotal, promo.discount_percentage)
        applied_code = promo.code

    order = Order(
        user_id=user_id,
        items=items,
        subtotal=subtotal,
        discount=discount,
        total=final_total,
        promo_code=applied_code,
        shipping_address=shipping_address,
    )
    db.add(order)
    if promo is not None:
        promos.record_use(promo)
    db.commit()
    db.refresh(order)
    logger.info("User %s placed order %s (total %s)", user_id, order.id, order.total)
    return order
