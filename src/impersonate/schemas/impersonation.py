"""Schemas for the impersonation endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ImpersonationStatus(BaseModel):
    """Current impersonation state of the visitor session.

    Used by frontends to show a banner while an operator acts as someone else.
    """

    is_impersonating: bool = Field(description="Whether the session is impersonating")
    impersonator_id: Any | None = Field(
        default=None, description="ID of the operator who started the impersonation"
    )
    impersonator_guard: str | None = Field(
        default=None, description="Guard the operator was logged in with"
    )
    impersonator_guard_using: str | None = Field(
        default=None, description="Guard the impersonated user is logged in with"
    )
    current_guard: str | None = Field(
        default=None, description="First guard with an authenticated user"
    )
    current_user_id: Any | None = Field(
        default=None, description="ID of the user the session is authenticated as"
    )
