"""
Storefront — Maintenance mode: admin toggle and public status.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from storefront.core.auth import CurrentUser, require_admin
from storefront.database import get_db
from storefront.services.maintenance import MaintenanceService, MaintenanceStatus

admin_router = APIRouter(prefix="/admin/maintenance", tags=["admin"])
router = APIRouter(tags=["maintenance"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class MaintenanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_maintenance_mode: bool = Field(..., alias="isMaintenanceMode")
    maintenance_message: str = Field(..., alias="maintenanceMessage")
    estimated_time: Optional[str] = Field(None, alias="estimatedTime")


class MaintenanceUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_maintenance_mode: bool = Field(False, alias="isMaintenanceMode")
    maintenance_message: Optional[str] = Field(None, alias="maintenanceMessage")
    estimated_time: Optional[str] = Field(None, alias="estimatedTime")


class MaintenanceUpdateResponse(MaintenanceResponse):
    success: bool = True


def _response(state: MaintenanceStatus) -> MaintenanceResponse:
    return MaintenanceResponse(
        is_maintenance_mode=state.is_maintenance_mode,
        maintenance_message=state.maintenance_message,
        estimated_time=state.estimated_time,
    )


@admin_router.get("", response_model=MaintenanceResponse)
def get_maintenance(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    return _response(MaintenanceService(db).get_status())


@admin_router.post("", response_model=MaintenanceUpdateResponse)
def set_maintenance(
    body: MaintenanceUpdateRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    state = MaintenanceService(db).set_status(
        body.is_maintenance_mode, body.maintenance_message, body.estimated_time
    )
    return MaintenanceUpdateResponse(
        success=True,
        is_maintenance_mode=state.is_maintenance_mode,
        maintenance_message=state.maintenance_message,
        estimated_time=state.estimated_time,
    )


@router.get("/maintenance-status", response_model=MaintenanceResponse)
def maintenance_status(response: Response, db: Session = Depends(get_db)):
    """Public, never cached."""
    response.headers.update(NO_CACHE_HEADERS)
    return _response(MaintenanceService(db).get_status())
