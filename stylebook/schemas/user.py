from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

GENDER_PATTERN = "^(male|female|neutral)$"


class UserUpdate(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=100)
    gender: str | None = Field(None, pattern=GENDER_PATTERN)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    external_id: str
    email: EmailStr
    display_name: str
    gender: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class UserSyncRequest(BaseModel):
    external_id: str
    # Plain str: forward auth may only know a username, see utils.auth
    email: str
    display_name: str = Field(..., min_length=1, max_length=100)


class UserSyncResponse(BaseModel):
    id: UUID
    email: str
    display_name: str
    is_new_user: bool
    access_token: str


class AuthStatusResponse(BaseModel):
    mode: str
