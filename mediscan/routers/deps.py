from contextlib import contextmanager

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from mediscan.config import settings
from mediscan.database import SessionLocal, get_db
from mediscan.gate import AuthorizationGate, extract_session_token
from mediscan.services.auth import Authenticator
from mediscan.services.auth_store import AuthRepository, PublicUser, SqlAuthRepository

gate = AuthorizationGate(settings.public_pages, settings.public_api_prefixes)


@contextmanager
def open_auth_repository():
    """Repository with its own DB session, for code that runs outside a route."""
    db = SessionLocal()
    try:
        yield SqlAuthRepository(db)
    finally:
        db.close()


def get_auth_repository(db: Session = Depends(get_db)) -> AuthRepository:
    return SqlAuthRepository(db)


def get_authenticator(repository: AuthRepository = Depends(get_auth_repository)) -> Authenticator:
    return Authenticator(repository)


def get_session_token(request: Request) -> str | None:
    return extract_session_token(request, settings.session_cookie_name)


def get_current_user(
    token: str | None = Depends(get_session_token),
    authenticator: Authenticator = Depends(get_authenticator),
) -> PublicUser:
    return authenticator.require_auth(token)
