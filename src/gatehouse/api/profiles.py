"""Profile endpoints.

Both verbs share one path. GET carries ``action`` and a JSON ``payload`` in the
query string; POST carries the same pair as the request body.
"""

import json
import logging

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import TypeAdapter, ValidationError

from gatehouse.api.deps import CurrentUser, ServicesDep
from gatehouse.schemas.profiles import (
    AssignDisplayNameAction,
    FindUserAction,
    GetUserByIdAction,
    ProfileGetAction,
    ProfilePostAction,
    RemoveProfileImageAction,
    SearchProfilesAction,
    SearchUserAction,
    UpdateInfoAction,
    UpdateProfileAction,
    UploadProfileImageAction,
)
from gatehouse.services.profiles import (
    AssignRandomDisplayName,
    FindUser,
    GetProfile,
    ProfileCommand,
    ProfileResult,
    RemoveProfileImage,
    SearchProfiles,
    SearchUser,
    SetProfileImage,
    UpdateInfo,
    UpdateProfile,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_get_action_adapter: TypeAdapter[ProfileGetAction] = TypeAdapter(ProfileGetAction)


def to_command(request: ProfileGetAction | ProfilePostAction) -> ProfileCommand:
    """Translate a wire action into a profile command."""
    match request:
        case GetUserByIdAction(payload=payload):
            return GetProfile(user_id=payload.user_id)
        case FindUserAction(payload=payload):
            return FindUser(username=payload.username, user_id=payload.user_id, email=payload.email)
        case SearchUserAction(payload=payload):
            return SearchUser(username=payload.username, user_id=payload.user_id, email=payload.email)
        case SearchProfilesAction(payload=payload):
            return SearchProfiles(text=payload.text, limit=payload.limit)
        case UpdateProfileAction(payload=payload):
            return UpdateProfile(fields=payload.model_dump(exclude_unset=True))
        case AssignDisplayNameAction():
            return AssignRandomDisplayName()
        case UploadProfileImageAction(payload=payload):
            return SetProfileImage(profile_image_url=payload.profile_url)
        case RemoveProfileImageAction():
            return RemoveProfileImage()
        case UpdateInfoAction(payload=payload):
            return UpdateInfo(
                first_name=payload.first_name,
                last_name=payload.last_name,
                bio=payload.bio,
                display_name=payload.display_name,
            )
    raise ValueError(f"Unsupported profile action: {request.action}")


@router.get("", response_model=ProfileResult)
async def get_profile_action(
    user: CurrentUser,
    services: ServicesDep,
    action: str = Query(...),
    payload: str = Query(default="{}"),
):
    """Run a read-only profile action."""
    try:
        request = _get_action_adapter.validate_python({"action": action, "payload": json.loads(payload)})
    except (json.JSONDecodeError, ValidationError) as e:
        logger.info(f"Rejected profile GET action {action!r}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid profile action or payload",
        ) from e
    return await services.profile_service.execute(to_command(request), actor_id=user.user_id)


@router.post("", response_model=ProfileResult)
async def post_profile_action(request: ProfilePostAction, user: CurrentUser, services: ServicesDep):
    """Run a profile mutation on the caller's own profile."""
    return await services.profile_service.execute(to_command(request), actor_id=user.user_id)
