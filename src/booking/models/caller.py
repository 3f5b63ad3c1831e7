"""Caller identity passed explicitly into authorization-sensitive operations."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import PRIVILEGED_ROLES, CallerRole


class Caller(BaseModel):
    """The user on whose behalf an operation runs, and their role."""

    model_config = ConfigDict(strict=True, frozen=True)

    user_id: str = Field(..., description="Opaque user ID")
    role: CallerRole = Field(default=CallerRole.GUEST)

    @property
    def is_privileged(self) -> bool:
        """Managers and admins may act on any reservation."""
        return self.role in PRIVILEGED_ROLES

    def can_act_on(self, owner_user_id: str) -> bool:
        return self.is_privileged or self.user_id == owner_user_id
