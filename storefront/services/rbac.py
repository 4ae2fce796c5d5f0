"""
Storefront — Role checks used by the authorization gate.
"""

from __future__ import annotations

from typing import Dict

from storefront.core.exceptions import PermissionDeniedError

ROLES = ("user", "admin")

# ─── Role ordering ────────────────────────────────────────────────────────────
# A role satisfies every requirement at or below its own rank.

ROLE_RANK: Dict[str, int] = {
    "user": 0,
    "admin": 1,
}


class RBACService:
    """Checks whether a role satisfies a required role."""

    def check(self, role: str, required_role: str, action: str = "") -> bool:
        """
        Return True if the role is allowed.
        Raise PermissionDeniedError otherwise.

        Unknown roles on either side are denied.
        """
        have = ROLE_RANK.get(role)
        need = ROLE_RANK.get(required_role)
        if have is None or need is None or have < need:
            raise PermissionDeniedError(role, required_role, action)
        return True

    def has_role(self, role: str, required_role: str) -> bool:
        """Non-raising version of check(). Returns True/False."""
        try:
            return self.check(role, required_role)
        except PermissionDeniedError:
            return False
