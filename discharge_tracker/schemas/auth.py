from datetime import datetime

from pydantic import BaseModel, field_validator


class LoginRequest(BaseModel):
    user_id: str
    password: str


class RegisterRequest(BaseModel):
    user_id: str
    username: str
    department: str
    password: str
    fcm_token: str | None = None

    @field_validator("user_id", "username", "department", "password")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("All fields are required")
        return v


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    message: str = "Login successful"
    user_id: str
    name: str
    department: str


class UpdateTokenRequest(BaseModel):
    user_id: str
    fcm_token: str | None = None


class UserResponse(BaseModel):
    user_id: str
    username: str
    department: str
    has_push_token: bool = False
    created_at: datetime

    class Config:
        from_attributes = True
