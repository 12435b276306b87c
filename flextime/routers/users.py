"""
Users router.

GET /users/me — the signed-in parent's profile, created on first sign-in
"""
from fastapi import APIRouter, Depends

from flextime.dependencies import get_parent_profile
from flextime.schemas.common import ErrorResponse
from flextime.schemas.users import UserProfileResponse
from flextime.services.users import UserProfile

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/me",
    response_model=UserProfileResponse,
    summary="Signed-in parent's profile",
    responses={401: {"model": ErrorResponse, "description": "No signed-in parent."}},
)
def read_me(profile: UserProfile = Depends(get_parent_profile)):
    return UserProfileResponse(
        uid=profile.uid,
        email=profile.email,
        name=profile.name,
        created_at=profile.created_at,
    )
