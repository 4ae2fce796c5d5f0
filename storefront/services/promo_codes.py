"""
Storefront — Promo code management and discount application.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.exceptions import (
    DuplicatePromoCodeError,
    PromoCodeNotFoundError,
    ValidationError,
)
from storefront.models.promo_codes import PromoCode

logger = logging.getLogger("storefront.promo_codes")

CENT = Decimal("0.01")


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _check_percentage(discount_percentage: int) -> None:
    if not 1 <= discount_percentage <= 100:
        raise ValidationError(
            "discountPercentage must be between 1 and 100",
            fields=["discountPercentage"],
        )


def apply_discount(subtotal: Decimal, discount_percentage: int) -> Tuple[Decimal, Decimal]:
    """Return (discount, total) rounded half-up to cents."""
    subtotal = subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
    discount = (subtotal * Decimal(discount_percentage) / Decimal(100)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )
    return discount, subtotal - discount


class PromoCodeService:
    """CRUD for promo codes. Uniqueness of `code` is enforced by the table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self) -> List[PromoCode]:
        return self.session.query(PromoCode).order_by(PromoCode.created_at).all()

    def get(self, promo_id: str) -> PromoCode:
        promo = self.session.get(PromoCode, promo_id)
        if promo is None:
            raise PromoCodeNotFoundError(promo_id=promo_id)
        return promo

    def create(self, code: str, discount_percentage: int) -> PromoCode:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Promo code is required", fields=["code"])
        _check_percentage(discount_percentage)

        promo = PromoCode(code=normalized, discount_percentage=discount_percentage)
        self.session.add(promo)
        self._commit_unique(normalized)
        self.session.refresh(promo)
        logger.info("Created promo code %s (%d%%)", normalized, discount_percentage)
        return promo

    def update(
        self,
        promo_id: str,
        code: Optional[str] = None,
        discount_percentage: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> PromoCode:
        promo = self.get(promo_id)
        if code is not None:
            normalized = normalize_code(code)
            if not normalized:
                raise ValidationError("Promo code is required", fields=["code"])
            promo.code = normalized
        if discount_percentage is not None:
            _check_percentage(discount_percentage)
            promo.discount_percentage = discount_percentage
        if is_active is not None:
            promo.is_active = is_active
        self._commit_unique(promo.code)
        self.session.refresh(promo)
        return promo

    def delete(self, promo_id: str) -> None:
        promo = self.get(promo_id)
        self.session.delete(promo)
        self.session.commit()
        logger.info("Deleted promo code %s", promo.code)

    def find_active(self, code: str) -> PromoCode:
        """Return the active promo code matching `code` (case-insensitive)."""
        normalized = normalize_code(code)
        promo = (
            self.session.query(PromoCode)
            .filter(PromoCode.code == normalized, PromoCode.is_active.is_(True))
            .first()
        )
        if promo is None:
            raise PromoCodeNotFoundError(code=normalized)
        return promo

    def record_use(self, promo: PromoCode) -> None:
        """Increment used_count in SQL so concurrent orders do not lose updates. No commit."""
        self.session.execute(
            update(PromoCode)
            .where(PromoCode.id == promo.id)
            .values(used_count=PromoCode.used_count + 1)
        )

    # ── Internal ──────────────────────────────────────────────────────────────

    def _commit_unique(self, code: str) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicatePromoCodeError(code) from None
