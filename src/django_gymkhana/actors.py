"""Actor descriptor supplied by the external auth collaborator."""

from dataclasses import dataclass
from typing import Any

from .constants import Roles, Stage


@dataclass(frozen=True)
class Actor:
    """
    Who is performing an operation.

    This package authorizes (role/sub-role vs. required stage) but never
    authenticates; the caller vouches for the descriptor.

    Attributes:
        id: Opaque user identifier, stored as a string on audit records
        role: Top-level role (Admin, Super Admin, Gymkhana, ...)
        sub_role: Sub-role / approval stage, if any
    """

    id: str
    role: str = ""
    sub_role: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Actor":
        """Build from an ``{id, role, subRole}`` mapping."""
        sub_role = data.get("subRole", data.get("sub_role"))
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            role=data.get("role") or "",
            sub_role=sub_role or None,
        )

    @property
    def is_admin(self) -> bool:
        return self.role in Roles.ADMIN_LEVEL

    @property
    def is_super_admin(self) -> bool:
        return self.role == Roles.SUPER_ADMIN

    @property
    def is_gs(self) -> bool:
        return self.sub_role == Stage.GS_GYMKHANA

    @property
    def is_president(self) -> bool:
        return self.sub_role == Stage.PRESIDENT_GYMKHANA
