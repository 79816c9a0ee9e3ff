from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Bearer(BaseModel):
    token_type: str = "Bearer"
    expires_in: int = 0
    access_token: str = Field(min_length=1)
    refresh_token: str | None = None


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    user_name: str | None = Field(default=None, alias="userName")
    email_id: str | None = Field(default=None, alias="emailId")
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email_verified: bool = Field(default=False, alias="emailVerified")
    two_factor_enabled: bool = Field(default=False, alias="2FaEnabled")
    profile_images: dict[str, Any] | None = Field(default=None, alias="profileImages")
