"""Impersonation API endpoints."""

from typing import Annotated, Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from src.impersonate.api.dependencies import (
    CurrentUser,
    ImpersonateManagerDep,
    SessionCtx,
    authorize_impersonation,
)
from src.impersonate.schemas.impersonation import ImpersonationStatus
from src.impersonate.services.redirects import BACK

router = APIRouter(prefix="/impersonate", tags=["impersonate"])


def _coerce_id(value: str) -> Any:
    """Path ids arrive as strings; numeric ids are looked up as ints."""
    return int(value) if value.isdigit() else value


def _is_local_target(target: str) -> bool:
    """True for paths on this site and for route names."""
    if target.startswith("//") or "\\" in target:
        return False
    parts = urlsplit(target)
    return not parts.scheme and not parts.netloc


def _redirect(request: Request, target: str) -> RedirectResponse:
    if target == BACK:
        target = request.headers.get("referer") or "/"
    return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)


@router.post(
    "/take/{user_id}",
    name="impersonate.take",
    summary="Start impersonating a user",
    responses={
        303: {"description": "Impersonation started (or failed); redirect"},
        400: {"description": "leave_redirect_to points off-site"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not allowed, already impersonating, or impersonating yourself"},
        404: {"description": "Target user not found"},
    },
)
async def take(
    request: Request,
    user_id: str,
    operator: CurrentUser,
    ctx: SessionCtx,
    manager: ImpersonateManagerDep,
    _authorized: Annotated[None, Depends(authorize_impersonation)],
    guard_name: Annotated[
        str | None, Query(description="Guard to log the target user in with")
    ] = None,
    leave_redirect_to: Annotated[
        str | None,
        Query(description="Path or route name to send the operator to after leaving"),
    ] = None,
) -> RedirectResponse:
    """Log the target user in and remember the operator.

    The authorization policy is supplied by the application by overriding
    ``authorize_impersonation``.
    """
    if leave_redirect_to and not _is_local_target(leave_redirect_to):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="leave_redirect_to must be a local path or route name",
        )

    guard_name = guard_name or manager.settings.default_impersonator_guard
    target_id = _coerce_id(user_id)

    if (
        target_id == operator.id
        and await manager.get_current_auth_guard_name(ctx) == guard_name
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot impersonate yourself",
        )

    if await manager.is_impersonating(ctx):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Already impersonating",
        )

    target = await manager.find_user_by_id(target_id, guard_name)

    if await manager.take(ctx, operator, target, guard_name):
        if leave_redirect_to:
            await manager.set_leave_redirect_to(ctx, leave_redirect_to)
        return _redirect(request, manager.get_take_redirect_to())

    return _redirect(request, BACK)


@router.post(
    "/leave",
    name="impersonate.leave",
    summary="Stop impersonating",
    responses={
        303: {"description": "Impersonation ended (or failed, back to the Referer); redirect"},
        403: {"description": "Not impersonating"},
    },
)
async def leave(
    request: Request,
    ctx: SessionCtx,
    manager: ImpersonateManagerDep,
) -> RedirectResponse:
    """Log the operator back in and end the impersonation."""
    if not await manager.is_impersonating(ctx):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not impersonating",
        )

    if not await manager.leave(ctx):
        # Keep the one-shot leave target for the retry
        return _redirect(request, BACK)

    return _redirect(request, await manager.get_leave_redirect_to(ctx))


@router.get(
    "/status",
    response_model=ImpersonationStatus,
    name="impersonate.status",
    summary="Current impersonation state",
)
async def impersonation_status(
    ctx: SessionCtx,
    manager: ImpersonateManagerDep,
) -> ImpersonationStatus:
    current_guard = await manager.get_current_auth_guard_name(ctx)
    current_user = (
        await manager.auth.guard(current_guard, ctx).user() if current_guard else None
    )

    return ImpersonationStatus(
        is_impersonating=await manager.is_impersonating(ctx),
        impersonator_id=await manager.get_impersonator_id(ctx),
        impersonator_guard=await manager.get_impersonator_guard_name(ctx),
        impersonator_guard_using=await manager.get_impersonator_guard_using_name(ctx),
        current_guard=current_guard,
        current_user_id=current_user.id if current_user is not None else None,
    )
