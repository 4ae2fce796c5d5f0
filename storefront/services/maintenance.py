"""
Storefront — Maintenance mode.
State lives on the site settings row; a flag file stands in when the database is unreachable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import get_settings
from storefront.models.site_settings import (
    DEFAULT_MAINTENANCE_MESSAGE,
    DEFAULT_SETTINGS_ID,
    SiteSettings,
)

logger = logging.getLogger("storefront.maintenance")


@dataclass
class MaintenanceStatus:
    is_maintenance_mode: bool
    maintenance_message: str
    estimated_time: Optional[str]
    source: str  # "database" | "flag_file"


class MaintenanceService:
    """Reads and toggles maintenance mode."""

    def __init__(self, session: Session, flag_file: Optional[Path] = None) -> None:
        self.session = session
        self.flag_file = flag_file or Path(get_settings().MAINTENANCE_FLAG_FILE)

    def get_status(self) -> MaintenanceStatus:
        try:
            row = self.session.get(SiteSettings, DEFAULT_SETTINGS_ID)
        except SQLAlchemyError:
            logger.exception("Settings lookup failed, using maintenance flag file")
            self.session.rollback()
            return self._status_from_file()

        if row is None:
            return MaintenanceStatus(False, DEFAULT_MAINTENANCE_MESSAGE, None, "database")
        return MaintenanceStatus(
            is_maintenance_mode=row.is_maintenance_mode,
            maintenance_message=row.maintenance_message or DEFAULT_MAINTENANCE_MESSAGE,
            estimated_time=row.estimated_time,
            source="database",
        )

    def set_status(
        self,
        enabled: bool,
        message: Optional[str] = None,
        estimated_time: Optional[str] = None,
    ) -> MaintenanceStatus:
        message = message or DEFAULT_MAINTENANCE_MESSAGE
        try:
            row = self.session.get(SiteSettings, DEFAULT_SETTINGS_ID)
            if row is None:
                row = SiteSettings(id=DEFAULT_SETTINGS_ID)
                self.session.add(row)
            row.is_maintenance_mode = enabled
            row.maintenance_message = message
            row.estimated_time = estimated_time
            self.session.commit()
        except SQLAlchemyError:
            logger.exception("Settings update failed, using maintenance flag file")
            self.session.rollback()
            self._write_flag(enabled)
            return MaintenanceStatus(enabled, message, estimated_time, "flag_file")

        logger.info("Maintenance mode %s", "enabled" if enabled else "disabled")
        return MaintenanceStatus(enabled, message, estimated_time, "database")

    # ── Flag file ─────────────────────────────────────────────────────────────

    def _status_from_file(self) -> MaintenanceStatus:
        return MaintenanceStatus(
            is_maintenance_mode=self.flag_file.exists(),
            maintenance_message=DEFAULT_MAINTENANCE_MESSAGE,
            estimated_time=None,
            source="flag_file",
        )

    def _write_flag(self, enabled: bool) -> None:
        if enabled:
            self.flag_file.write_text("true")
        else:
            self.flag_file.unlink(missing_ok=True)
