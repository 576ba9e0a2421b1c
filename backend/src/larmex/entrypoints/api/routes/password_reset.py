"""Password reset API routes.

The browser shell drives the recovery pages through these endpoints:

- forgot-password posts the email to ``/request``
- reset-password mounts a view with the URL it was opened on, mirrors the
  returned ``url`` into history, submits the new password and unmounts
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, EmailStr, Field

from larmex.core.exceptions import (
    InvalidEmailError,
    PasswordsDoNotMatchError,
    PasswordTooWeakError,
    PasswordUpdateFailedError,
    ResendCooldownActiveError,
    SamePasswordRejectedError,
    SessionExpiredMidFlowError,
    UpdateInProgressError,
    UpdateTimedOutError,
)
from larmex.core.recovery.password import check_password, password_strength
from larmex.core.recovery.request import ForgotPasswordFlow
from larmex.core.recovery.types import PasswordChangeRequest
from larmex.core.recovery.view import ResetPasswordView, ResetPasswordViewRegistry
from larmex.entrypoints.api.deps import (
    IdentityFactory,
    Settings,
    get_forgot_password_flow,
    get_identity_factory,
    get_settings,
    get_view_registry,
)

router = APIRouter(prefix="/auth/password-reset", tags=["password-reset"])

# Annotated types for dependency injection
RegistryDep = Annotated[ResetPasswordViewRegistry, Depends(get_view_registry)]
FactoryDep = Annotated[IdentityFactory, Depends(get_identity_factory)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
ForgotFlowDep = Annotated[ForgotPasswordFlow, Depends(get_forgot_password_flow)]


# Request/Response models
class PasswordResetRequest(BaseModel):
    """Password reset request body."""

    email: EmailStr


class PasswordResetRequestResponse(BaseModel):
    """Generic response, identical whether or not the email is registered."""

    message: str
    notice: str
    cooldown_seconds: int


class OpenViewRequest(BaseModel):
    """URL the reset-password page was opened on."""

    url: str = Field(..., min_length=1, max_length=8192)


class ScreenResponse(BaseModel):
    """User-visible screen."""

    title: str
    description: str
    action_label: str | None = None
    action_url: str | None = None


class ViewResponse(BaseModel):
    """State of a mounted reset-password view."""

    view_id: str
    status: str
    reason: str | None = None
    url: str
    screen: ScreenResponse


class PasswordUpdateRequest(BaseModel):
    """New password and confirmation."""

    password: str = Field(..., max_length=1024)
    confirm_password: str = Field(..., max_length=1024)


class PasswordUpdateResponse(BaseModel):
    """Successful password change."""

    redirect_url: str
    message: str


class StrengthRequest(BaseModel):
    """Password to evaluate."""

    password: str = Field(..., max_length=1024)


class RuleResponse(BaseModel):
    """One checklist line."""

    label: str
    passed: bool


class StrengthResponse(BaseModel):
    """Strength meter and rule checklist."""

    score: int
    label: str
    valid: bool
    rules: list[RuleResponse]


def _view_response(view: ResetPasswordView) -> ViewResponse:
    state = view.state
    screen = view.screen()
    return ViewResponse(
        view_id=view.id,
        status=state.status.value,
        reason=state.reason.value if state.reason else None,
        url=view.url,
        screen=ScreenResponse(
            title=screen.title,
            description=screen.description,
            action_label=screen.action_label,
            action_url=screen.action_url,
        ),
    )


def _get_view_or_410(registry: ResetPasswordViewRegistry, view_id: str) -> ResetPasswordView:
    view = registry.get(view_id)
    if view is None:
        raise HTTPException(status_code=410, detail=SessionExpiredMidFlowError().message)
    return view


@router.post("/request", response_model=PasswordResetRequestResponse)
async def request_password_reset(
    body: PasswordResetRequest,
    response: Response,
    flow: ForgotFlowDep,
) -> PasswordResetRequestResponse:
    """Request a password reset email.

    For security, this always returns the same message regardless of
    whether the email exists. This prevents email enumeration attacks.

    Args:
        body: Request containing the user's email.
        response: Outgoing response, for cooldown headers.
        flow: Forgot-password flow of the calling client.

    Returns:
        Generic outcome and the resend cooldown.
    """
    try:
        outcome = await flow.request_reset(body.email)
    except InvalidEmailError as e:
        raise HTTPException(status_code=422, detail=e.message) from None
    except ResendCooldownActiveError as e:
        raise HTTPException(
            status_code=429,
            detail={"message": e.message, "retry_after": e.retry_after},
            headers={"Retry-After": str(e.retry_after)},
        ) from None

    response.headers["Retry-After"] = str(outcome.cooldown_seconds)
    return PasswordResetRequestResponse(
        message=outcome.message,
        notice=outcome.notice,
        cooldown_seconds=outcome.cooldown_seconds,
    )


@router.post("/strength", response_model=StrengthResponse)
async def evaluate_password_strength(body: StrengthRequest) -> StrengthResponse:
    """Evaluate a password against the strength rules.

    Nothing is stored or sent anywhere; this backs the inline checklist.
    """
    results = check_password(body.password)
    strength = password_strength(body.password)
    return StrengthResponse(
        score=strength.score,
        label=strength.label,
        valid=all(r.passed for r in results),
        rules=[RuleResponse(label=r.label, passed=r.passed) for r in results],
    )


@router.post("/sessions", response_model=ViewResponse, status_code=201)
async def open_reset_view(
    body: OpenViewRequest,
    registry: RegistryDep,
    identity_factory: FactoryDep,
    app_settings: SettingsDep,
) -> ViewResponse:
    """Mount a reset-password view and resolve its recovery session.

    Responds once the view has reached a verdict: valid, or invalid with a
    reason. When valid, ``url`` is the cleaned location the browser must
    put into history in place of the recovery link.

    Args:
        body: URL the page was opened on.
        registry: View registry.
        identity_factory: Creates the view's identity client.
        app_settings: Application settings.

    Returns:
        The view's state and screen.
    """
    provider = await identity_factory()
    view = ResetPasswordView(
        provider,
        body.url,
        check_timeout=app_settings.recovery_check_timeout,
        update_timeout=app_settings.password_update_timeout,
    )
    registry.add(view)
    await view.open()
    return _view_response(view)


@router.get("/sessions/{view_id}", response_model=ViewResponse)
async def get_reset_view(view_id: str, registry: RegistryDep) -> ViewResponse:
    """Get the current state of a mounted view."""
    return _view_response(_get_view_or_410(registry, view_id))


@router.post("/sessions/{view_id}/password", response_model=PasswordUpdateResponse)
async def update_password(
    view_id: str,
    body: PasswordUpdateRequest,
    registry: RegistryDep,
) -> PasswordUpdateResponse:
    """Set a new password using the view's recovery session.

    Args:
        view_id: Mounted view.
        body: New password and confirmation.
        registry: View registry.

    Returns:
        Redirect target after success.

    Raises:
        HTTPException: Mapped from the recovery error taxonomy.
    """
    view = _get_view_or_410(registry, view_id)
    request = PasswordChangeRequest(
        new_password=body.password,
        confirm_password=body.confirm_password,
    )
    try:
        result = await view.submit_password(request)
    except PasswordTooWeakError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": e.message, "failed_rules": e.failed_rules},
        ) from None
    except PasswordsDoNotMatchError as e:
        raise HTTPException(status_code=422, detail=e.message) from None
    except (SamePasswordRejectedError, UpdateInProgressError) as e:
        raise HTTPException(status_code=409, detail=e.message) from None
    except UpdateTimedOutError as e:
        raise HTTPException(status_code=504, detail=e.message) from None
    except SessionExpiredMidFlowError as e:
        registry.remove(view_id)
        raise HTTPException(status_code=410, detail=e.message) from None
    except PasswordUpdateFailedError as e:
        raise HTTPException(status_code=502, detail=e.message) from None

    registry.remove(view_id)
    return PasswordUpdateResponse(redirect_url=result.redirect_url, message=result.message)


@router.delete("/sessions/{view_id}", status_code=204)
async def close_reset_view(view_id: str, registry: RegistryDep) -> Response:
    """Unmount a view, cancelling its pending check."""
    registry.remove(view_id)
    return Response(status_code=204)
