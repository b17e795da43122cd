"""Caller identity resolved by the upstream auth gateway."""
from __future__ import annotations

from pydantic import BaseModel, Field

ADMIN_ROLE = "admin"


class CurrentUser(BaseModel):
    id: int = Field(..., gt=0)
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role.lower() == ADMIN_ROLE
