"""Profile schemas: read models and profile actions."""

from typing import Annotated, Literal

from pydantic import ConfigDict, Field

from gatehouse.schemas.common import CamelModel


class ProfileRead(CamelModel):
    """Schema for reading a profile."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    username: str
    display_name: str | None
    first_name: str | None
    last_name: str | None
    email: str
    bio: str | None
    website: str | None
    profile_image_url: str | None
    time_zone: str | None
    is_admin: bool
    number_of_wins: int
    number_of_losses: int
    number_of_ties: int
    level: int
    points: int


class ProfileSummary(CamelModel):
    """Slim profile used in search results."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    username: str
    display_name: str | None
    email: str
    profile_image_url: str | None


# Profile actions
#
# Requests name an ``action`` and carry a ``payload`` whose shape depends on it.
# Any ``userId`` in a mutation payload is ignored: mutations apply to the caller.


class UserIdPayload(CamelModel):
    user_id: str


class UserLookupPayload(CamelModel):
    username: str | None = None
    user_id: str | None = None
    email: str | None = None


class SearchPayload(CamelModel):
    text: str
    limit: int = Field(default=10, ge=1, le=50)


class UpdateProfilePayload(CamelModel):
    display_name: str | None = Field(default=None, max_length=255)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    bio: str | None = None
    website: str | None = Field(default=None, max_length=2048)
    time_zone: str | None = Field(default=None, max_length=64)


class ProfileImagePayload(CamelModel):
    profile_url: str = Field(min_length=1, max_length=2048)


class UpdateInfoPayload(CamelModel):
    first_name: str
    last_name: str
    bio: str | None = None
    display_name: str | None = Field(default=None, max_length=255)


class EmptyPayload(CamelModel):
    pass


class GetUserByIdAction(CamelModel):
    action: Literal["get_user_by_id"]
    payload: UserIdPayload


class FindUserAction(CamelModel):
    action: Literal["find_user"]
    payload: UserLookupPayload


class SearchUserAction(CamelModel):
    action: Literal["search_user"]
    payload: UserLookupPayload


class SearchProfilesAction(CamelModel):
    action: Literal["search_user_profile"]
    payload: SearchPayload


class UpdateProfileAction(CamelModel):
    action: Literal["update_user_profile"]
    payload: UpdateProfilePayload


class AssignDisplayNameAction(CamelModel):
    action: Literal["assign_random_display_name"]
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class UploadProfileImageAction(CamelModel):
    action: Literal["upload_profile_image"]
    payload: ProfileImagePayload


class RemoveProfileImageAction(CamelModel):
    action: Literal["remove_profile_image"]
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class UpdateInfoAction(CamelModel):
    action: Literal["update_info_from_profile"]
    payload: UpdateInfoPayload


ProfileGetAction = Annotated[
    GetUserByIdAction | FindUserAction | SearchUserAction | SearchProfilesAction,
    Field(discriminator="action"),
]

ProfilePostAction = Annotated[
    UpdateProfileAction
    | AssignDisplayNameAction
    | UploadProfileImageAction
    | RemoveProfileImageAction
    | UpdateInfoAction,
    Field(discriminator="action"),
]
