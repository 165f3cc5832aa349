import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from mediscan.config import settings
from mediscan.errors import UnauthorizedError, ValidationError
from mediscan.services.auth_store import AuthRepository, PublicUser
from mediscan.services.passwords import hash_password, verify_password
from mediscan.timeutil import utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

REQUIRED_REGISTRATION_FIELDS = ("email", "password", "first_name", "last_name")


class CredentialStore:
    def __init__(self, repository: AuthRepository):
        self.repository = repository

    def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        preferred_language: str | None = None,
    ) -> PublicUser:
        if not email or not email.strip():
            raise ValidationError("Email is required")
        record = self.repository.create_user(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            preferred_language=preferred_language,
        )
        return record.public()

    def authenticate(self, email: str, password: str) -> PublicUser | None:
        # Unknown email and wrong password both yield None.
        record = self.repository.find_user_by_email(email)
        if record is None:
            return None
        if not verify_password(password, record.password_hash):
            return None
        return record.public()


class SessionStore:
    def __init__(self, repository: AuthRepository, clock: Clock = utcnow, ttl: timedelta | None = None):
        self.repository = repository
        self.clock = clock
        self.ttl = ttl if ttl is not None else timedelta(days=settings.session_ttl_days)

    def create(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        self.repository.create_session(user_id, token, self.clock() + self.ttl)
        return token

    def resolve(self, token: str) -> PublicUser | None:
        # Unknown and expired tokens both yield None.
        record = self.repository.resolve_session(token, self.clock())
        return record.public() if record else None

    def revoke(self, token: str) -> None:
        self.repository.delete_session(token)


class Authenticator:
    """Request-facing composition of the credential and session stores."""

    def __init__(self, repository: AuthRepository, clock: Clock = utcnow, ttl: timedelta | None = None):
        self.credentials = CredentialStore(repository)
        self.sessions = SessionStore(repository, clock=clock, ttl=ttl)

    def register(self, fields: dict) -> tuple[PublicUser, str]:
        missing = [name for name in REQUIRED_REGISTRATION_FIELDS if not fields.get(name)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        user = self.credentials.create_user(
            email=fields["email"],
            password=fields["password"],
            first_name=fields["first_name"],
            last_name=fields["last_name"],
            preferred_language=fields.get("preferred_language"),
        )
        token = self.sessions.create(user.id)
        logger.info("Registered user %s", user.id)
        return user, token

    def login(self, email: str, password: str) -> tuple[PublicUser, str]:
        user = self.credentials.authenticate(email, password)
        if user is None:
            raise UnauthorizedError("Invalid credentials")
        return user, self.sessions.create(user.id)

    def logout(self, token: str | None) -> None:
        if token:
            self.sessions.revoke(token)

    def current_user(self, token: str | None) -> PublicUser | None:
        if not token:
            return None
        return self.sessions.resolve(token)

    def require_auth(self, token: str | None) -> PublicUser:
        user = self.current_user(token)
        if user is None:
            raise UnauthorizedError("Invalid or expired session")
        return user
