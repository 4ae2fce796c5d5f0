"""
Storefront — Promo codes: admin management and public validation.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from storefront.core.auth import CurrentUser, require_admin
from storefront.database import get_db
from storefront.models.promo_codes import PromoCode
from storefront.services.promo_codes import PromoCodeService

admin_router = APIRouter(prefix="/admin/promo-codes", tags=["admin"])
router = APIRouter(prefix="/promo-codes", tags=["promo-codes"])


class PromoCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    code: str
    discount_percentage: int = Field(..., alias="discountPercentage")
    is_active: bool = Field(..., alias="isActive")
    used_count: int = Field(..., alias="usedCount")
    created_at: datetime = Field(..., alias="createdAt")


class CreatePromoCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., min_length=1, max_length=64)
    discount_percentage: int = Field(..., ge=1, le=100, alias="discountPercentage")


class UpdatePromoCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = Field(None, min_length=1, max_length=64)
    discount_percentage: Optional[int] = Field(None, ge=1, le=100, alias="discountPercentage")
    is_active: Optional[bool] = Field(None, alias="isActive")


class ValidatePromoCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)


class ValidatePromoCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    discount_percentage: int = Field(..., alias="discountPercentage")


def promo_response(promo: PromoCode) -> PromoCodeResponse:
    return PromoCodeResponse(
        id=promo.id,
        code=promo.code,
        discount_percentage=promo.discount_percentage,
        is_active=promo.is_active,
        used_count=promo.used_count,
        created_at=promo.created_at,
    )


# ── Admin ─────────────────────────────────────────────────────────────────────


@admin_router.get("", response_model=List[PromoCodeResponse])
def list_promo_codes(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    return [promo_response(p) for p in PromoCodeService(db).list()]


@admin_router.post("", response_model=PromoCodeResponse, status_code=status.HTTP_201_CREATED)
def create_promo_code(
    req: CreatePromoCodeRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    return promo_response(PromoCodeService(db).create(req.code, req.discount_percentage))


@admin_router.patch("/{promo_id}", response_model=PromoCodeResponse)
def update_promo_code(
    promo_id: str,
    req: UpdatePromoCodeRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    promo = PromoCodeService(db).update(
        promo_id,
        code=req.code,
        discount_percentage=req.discount_percentage,
        is_active=req.is_active,
    )
    return promo_response(promo)


@admin_router.delete("/{promo_id}")
def delete_promo_code(
    promo_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    PromoCodeService(db).delete(promo_id)
    return {"message": "Promo code deleted successfully"}


# ── Public ────────────────────────────────────────────────────────────────────


@router.post("/validate", response_model=ValidatePromoCodeResponse)
def validate_promo_code(req: ValidatePromoCodeRequest, db: Session = Depends(get_db)):
    promo = PromoCodeService(db).find_active(req.code)
    return ValidatePromoCodeResponse(code=promo.code, discount_percentage=promo.discount_percentage)
