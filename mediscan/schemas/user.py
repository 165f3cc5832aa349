from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RegisterRequest(BaseModel):
    # Presence is checked by the authenticator so missing fields map to a 400.
    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    preferred_language: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    preferred_language: str
    theme_preference: str
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
