"""
config.security
---------------
Role -> rights map and the authenticated principal passed to routes.

A principal is whatever account a bearer token resolved to. The token's
audience decides which table it was loaded from, so a user token can never
carry builder or admin rights.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple

ROLE_RIGHTS = {
    "super_admin": ("getUsers", "manageUsers", "getBuilders", "manageBuilders"),
    "admin": ("getUsers", "manageUsers", "getBuilders", "manageBuilders"),
    "builder": ("getBuilders",),
    "user": (),
    "agent": (),
    "guest": (),
}


@dataclass
class Principal:
    account_type: str          # user | builder | admin
    account: Any
    role: str
    team_member: Optional[Any] = None

    @property
    def id(self) -> int:
        return self.account.id

    @property
    def rights(self) -> Tuple[str, ...]:
        return ROLE_RIGHTS.get(self.role, ())

    @property
    def is_admin(self) -> bool:
        return self.account_type == "admin"

    def has_rights(self, *required: str) -> bool:
        granted = set(self.rights)
        return all(r in granted for r in required)

    def owns(self, account_type: str, account_id) -> bool:
        """True when the principal is the given account."""
        try:
            return self.account_type == account_type and int(account_id) == self.account.id
        except (TypeError, ValueError):
            return False
