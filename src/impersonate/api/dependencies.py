"""FastAPI dependency injection definitions."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.impersonate.auth.contracts import Authenticatable
from src.impersonate.core.logging import get_logger
from src.impersonate.services.impersonate_manager import ImpersonateManager
from src.impersonate.session.context import SessionContext

logger = get_logger(__name__)


def get_session_context(request: Request) -> SessionContext:
    """Get the visitor session opened by SessionMiddleware."""
    ctx = getattr(request.state, "session_context", None)
    if ctx is None:
        raise RuntimeError("SessionMiddleware is not installed")
    return ctx


def get_impersonate_manager(request: Request) -> ImpersonateManager:
    return request.app.state.impersonate_manager


SessionCtx = Annotated[SessionContext, Depends(get_session_context)]
ImpersonateManagerDep = Annotated[ImpersonateManager, Depends(get_impersonate_manager)]


async def get_current_user(ctx: SessionCtx, manager: ImpersonateManagerDep) -> Authenticatable:
    """Get the user authenticated on the first guard that has one.

    Raises:
        HTTPException: 401 if no guard has an authenticated user
    """
    guard_name = await manager.get_current_auth_guard_name(ctx)
    if guard_name is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await manager.auth.guard(guard_name, ctx).user()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


CurrentUser = Annotated[Authenticatable, Depends(get_current_user)]


async def authorize_impersonation(operator: CurrentUser, user_id: str) -> None:
    """Decide whether ``operator`` may impersonate ``user_id``.

    Denies everything. Applications install their own policy with
    ``app.dependency_overrides[authorize_impersonation] = policy``.
    """
    logger.warning(
        "Impersonation denied: no authorization policy installed",
        operator_id=str(operator.id),
        target_user_id=user_id,
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to impersonate this user",
    )


async def protect_from_impersonation(ctx: SessionCtx, manager: ImpersonateManagerDep) -> None:
    """Reject the request while the session is impersonating.

    Use on sensitive routes (password change, billing) an operator must
    not reach as someone else.
    """
    if await manager.is_impersonating(ctx):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed while impersonating",
        )


ProtectFromImpersonation = Depends(protect_from_impersonation)
