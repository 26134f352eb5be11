"""User routes: self-service profile access and the identity provider sync callback."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status
from starlette.concurrency import run_in_threadpool

from src.pupfinance.api.http.deps import (
    audit_request,
    get_current_claims,
    get_profile_service,
    get_user_sync_engine,
    require_service_secret,
)
from src.pupfinance.core.errors import ValidationError
from src.pupfinance.core.models import Claims
from src.pupfinance.core.services import ProfileService, UserSyncEngine
from src.pupfinance.entities.core.user import UserProfileResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/me",
    response_model=UserProfileResponse,
    dependencies=[Depends(audit_request)],
)
def get_me(
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserProfileResponse:
    user = profiles.get_self(claims.subject_id)
    return UserProfileResponse.model_validate(user, from_attributes=True)


@router.patch(
    "/me",
    response_model=UserProfileResponse,
    dependencies=[Depends(audit_request)],
)
def update_me(
    patch: dict[str, Any] = Body(...),
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserProfileResponse:
    """Partial update; only profile fields are accepted, anything else is a 400."""
    user = profiles.update_self(claims.subject_id, patch)
    return UserProfileResponse.model_validate(user, from_attributes=True)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(audit_request)],
)
def delete_me(
    claims: Claims = Depends(get_current_claims),
    profiles: ProfileService = Depends(get_profile_service),
) -> Response:
    profiles.delete_self(claims.subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sync", dependencies=[Depends(require_service_secret)])
async def sync_user(
    request: Request,
    engine: UserSyncEngine = Depends(get_user_sync_engine),
) -> dict[str, Any]:
    """Create or refresh a user on behalf of the identity provider.

    The body is parsed only after the service secret has been accepted.
    """
    try:
        payload = await request.json()
    except ValueError as exc:
        raise ValidationError("Request body is not valid JSON") from exc
    result = await run_in_threadpool(engine.sync, payload)
    return {
        "message": "User synced successfully",
        "userId": result.user_id,
        "created": result.created,
    }
