from fastapi import APIRouter, Depends, Response

from mediscan.config import settings
from mediscan.routers.deps import get_authenticator, get_current_user, get_session_token
from mediscan.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from mediscan.services.auth import Authenticator
from mediscan.services.auth_store import PublicUser

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


@router.post("/register", response_model=AuthResponse)
def register(payload: RegisterRequest, response: Response, authenticator: Authenticator = Depends(get_authenticator)):
    user, token = authenticator.register(payload.model_dump())
    _set_session_cookie(response, token)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, response: Response, authenticator: Authenticator = Depends(get_authenticator)):
    user, token = authenticator.login(payload.email, payload.password)
    _set_session_cookie(response, token)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout")
def logout(
    response: Response,
    token: str | None = Depends(get_session_token),
    authenticator: Authenticator = Depends(get_authenticator),
):
    authenticator.logout(token)
    response.delete_cookie(settings.session_cookie_name, httponly=True, secure=settings.is_production, samesite="lax")
    return {"statusCode": 200, "message": "Logged out", "data": None}


@router.get("/me", response_model=UserResponse)
def me(current_user: PublicUser = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
