"""User API endpoints.

Endpoints:
    POST   /api/v1/users                   - Create a user and issue an access token (X-Admin-Key)
    GET    /api/v1/users/authors           - List live authors
    GET    /api/v1/users/{id}              - Get a live user
    PUT    /api/v1/users/{id}              - Sparse profile update (the user or super_admin)
    PUT    /api/v1/users/{id}/image        - Replace the profile image (multipart `image`)
    DELETE /api/v1/users/{id}              - Hard delete with the profile subtree (admin)
    DELETE /api/v1/users/{id}/soft-delete  - Deactivate, keeping the row

Tests:
    - tests/integration/test_api_users.py
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel, Field

from catalog.api.deps import get_lifecycle_manager, get_upload_stager, get_user_service
from catalog.api.v1.schemas import DeletionResponse, ResourceResponse
from catalog.auth import AuthContext, create_access_token, get_auth_context, require_admin_key
from catalog.core.errors import ValidationError
from catalog.core.lifecycle import ResourceLifecycleManager
from catalog.core.resources import USER
from catalog.core.users import UserService
from catalog.models_auth import SystemRole
from catalog.staging import USER_SLOTS, UploadStager
from catalog.storage.assets import UploadBatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"

# A valid X-Admin-Key acts with the top elevated role.
PROVISIONING_CONTEXT = AuthContext(caller_id="admin-key", role=SystemRole.SUPER_ADMIN)


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    role: SystemRole = SystemRole.USER
    full_name: str | None = Field(default=None, max_length=100)
    age: int | None = None
    description: str | None = None


class UpdateUserRequest(BaseModel):
    """Absent fields are left untouched. The role cannot be changed here."""

    username: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    full_name: str | None = Field(default=None, max_length=100)
    age: int | None = None
    description: str | None = None


class CreateUserResponse(BaseModel):
    """The new user and a bearer token for it."""

    user: dict
    access_token: str
    token_type: str = "bearer"


class UserListResponse(BaseModel):
    success: bool = True
    data: list[dict]


@router.post("", response_model=CreateUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    _key: None = Depends(require_admin_key),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
) -> CreateUserResponse:
    """Provision a user. Requires X-Admin-Key."""
    result = await manager.create_resource(
        USER, request.model_dump(), None, PROVISIONING_CONTEXT, UploadBatch()
    )
    user = result.resource
    logger.info(f"Provisioned user {user.id} with role {user.role.value}")
    return CreateUserResponse(user=user.to_dict(), access_token=create_access_token(user.id, user.role))


@router.get("/authors", response_model=UserListResponse)
async def list_authors(users: UserService = Depends(get_user_service)) -> UserListResponse:
    authors = await users.list_authors()
    return UserListResponse(data=[a.to_dict() for a in authors])


@router.get("/{user_id}", response_model=ResourceResponse)
async def get_user(
    user_id: str,
    _auth: AuthContext = Depends(get_auth_context),
    users: UserService = Depends(get_user_service),
) -> ResourceResponse:
    user = await users.get_user(user_id)
    return ResourceResponse(message="User fetched successfully", data=user.to_dict())


@router.put("/{user_id}", response_model=ResourceResponse)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
) -> ResourceResponse:
    """Sparse profile update. Only the user itself or super_admin."""
    result = await manager.update_resource(USER, user_id, request.model_dump(), auth)
    return ResourceResponse.from_result(result, "User updated successfully")


@router.put("/{user_id}/image", response_model=ResourceResponse)
async def update_profile_image(
    user_id: str,
    image: UploadFile | None = File(default=None),
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
    stager: UploadStager = Depends(get_upload_stager),
) -> ResourceResponse:
    """Upload the new profile image, then retire the old one."""
    if image is None:
        raise ValidationError("No image file provided")
    batch = await stager.stage_many(USER_SLOTS, {"image": image})
    result = await manager.update_resource(USER, user_id, {}, auth, batch)
    return ResourceResponse.from_result(result, "Profile image updated successfully")


@router.delete("/{user_id}", response_model=DeletionResponse)
async def delete_user(
    user_id: str,
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
) -> DeletionResponse:
    """Hard delete. Refused while books or categories reference the user."""
    report = await manager.delete_resource(USER, user_id, auth)
    return DeletionResponse.from_report(report, "User deleted successfully")


@router.delete("/{user_id}/soft-delete", response_model=ResourceResponse)
async def soft_delete_user(
    user_id: str,
    auth: AuthContext = Depends(get_auth_context),
    users: UserService = Depends(get_user_service),
) -> ResourceResponse:
    user = await users.soft_delete(user_id, auth)
    return ResourceResponse(message="User soft deleted and logged out successfully", data=user.to_dict())
