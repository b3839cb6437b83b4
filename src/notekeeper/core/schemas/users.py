"""
User management schemas: profile updates, password changes and account removal.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .auth import UserResponse
from .common import PaginationResponse


class UserUpdateRequest(BaseModel):
    """User profile update request schema. Omitted fields keep their current value."""

    username: Optional[str] = Field(default=None, min_length=3, max_length=50, description="Username")
    full_name: Optional[str] = Field(default=None, max_length=100, description="Full name")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        if v is not None and not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError("Username can only contain letters, numbers, hyphens, and underscores")
        return v

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "newusername", "full_name": "New Full Name"}}
    )


class PasswordChangeRequest(BaseModel):
    """Password change request schema."""

    current_password: str = Field(description="Current password")
    new_password: str = Field(min_length=8, max_length=128, description="New password")
    confirm_new_password: str = Field(min_length=8, max_length=128)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("New passwords do not match")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "current_password": "oldpassword123",
                "new_password": "newsecurepassword123",
                "confirm_new_password": "newsecurepassword123",
            }
        }
    )


class AccountDeleteResponse(BaseModel):
    message: str
    notes_removed: int = Field(description="Notes owned by the account, soft deleted ones included")
    versions_removed: int


UserListResponse = PaginationResponse[UserResponse]
