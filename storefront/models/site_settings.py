"""
Storefront — Site-wide settings (single row).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.database import Base

DEFAULT_SETTINGS_ID = "default"
DEFAULT_MAINTENANCE_MESSAGE = (
    "We are currently performing scheduled maintenance. Please check back soon!"
)


class SiteSettings(Base):
    __tablename__ = "site_settings"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=DEFAULT_SETTINGS_ID)
    is_maintenance_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    maintenance_message: Mapped[str] = mapped_column(
        String(1000), nullable=False, default=DEFAULT_MAINTENANCE_MESSAGE
    )
    estimated_time: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
