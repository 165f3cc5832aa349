"""Storage for user credentials and login sessions.

Callers go through :class:`AuthRepository`; the SQLAlchemy implementation
backs the running service and :class:`InMemoryAuthRepository` keeps the same
row shapes in process memory for tests and local tooling.
"""

import itertools
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mediscan.errors import ConflictError
from mediscan.models.user import User, UserSession
from mediscan.timeutil import utcnow

DEFAULT_ROLE = "user"
DEFAULT_LANGUAGE = "en"
DEFAULT_THEME = "system"


@dataclass(frozen=True)
class PublicUser:
    """User fields that may leave the store."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    preferred_language: str
    theme_preference: str
    created_at: datetime


@dataclass(frozen=True)
class UserRecord(PublicUser):
    password_hash: str = ""

    def public(self) -> PublicUser:
        fields = asdict(self)
        fields.pop("password_hash")
        return PublicUser(**fields)


class AuthRepository(Protocol):
    def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        preferred_language: str | None = None,
    ) -> UserRecord: ...

    def find_user_by_email(self, email: str) -> UserRecord | None: ...

    def create_session(self, user_id: int, token: str, expires_at: datetime) -> None: ...

    def resolve_session(self, token: str, now: datetime) -> UserRecord | None: ...

    def delete_session(self, token: str) -> None: ...

    def delete_expired_sessions(self, now: datetime) -> int: ...


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        preferred_language=user.preferred_language,
        theme_preference=user.theme_preference,
        created_at=user.created_at,
        password_hash=user.password_hash,
    )


class SqlAuthRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email, password_hash, first_name, last_name, preferred_language=None) -> UserRecord:
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=DEFAULT_ROLE,
            preferred_language=preferred_language or DEFAULT_LANGUAGE,
            theme_preference=DEFAULT_THEME,
            created_at=utcnow(),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Email already exists") from exc
        self.db.refresh(user)
        return _to_record(user)

    def find_user_by_email(self, email: str) -> UserRecord | None:
        user = self.db.execute(select(User).where(User.email == email)).scalars().first()
        return _to_record(user) if user else None

    def create_session(self, user_id: int, token: str, expires_at: datetime) -> None:
        self.db.add(UserSession(user_id=user_id, session_token=token, created_at=utcnow(), expires_at=expires_at))
        self.db.commit()

    def resolve_session(self, token: str, now: datetime) -> UserRecord | None:
        stmt = (
            select(User)
            .join(UserSession, UserSession.user_id == User.id)
            .where(UserSession.session_token == token, UserSession.expires_at > now)
        )
        user = self.db.execute(stmt).scalars().first()
        return _to_record(user) if user else None

    def delete_session(self, token: str) -> None:
        self.db.execute(delete(UserSession).where(UserSession.session_token == token))
        self.db.commit()

    def delete_expired_sessions(self, now: datetime) -> int:
        result = self.db.execute(delete(UserSession).where(UserSession.expires_at <= now))
        self.db.commit()
        return result.rowcount or 0


@dataclass
class _SessionRow:
    id: int
    user_id: int
    session_token: str
    expires_at: datetime


class InMemoryAuthRepository:
    def __init__(self, clock=utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._users: dict[int, UserRecord] = {}
        self._sessions: dict[str, _SessionRow] = {}
        self._user_ids = itertools.count(1)
        self._session_ids = itertools.count(1)

    def create_user(self, email, password_hash, first_name, last_name, preferred_language=None) -> UserRecord:
        with self._lock:
            if any(user.email == email for user in self._users.values()):
                raise ConflictError("Email already exists")
            user = UserRecord(
                id=next(self._user_ids),
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=DEFAULT_ROLE,
                preferred_language=preferred_language or DEFAULT_LANGUAGE,
                theme_preference=DEFAULT_THEME,
                created_at=self._clock(),
                password_hash=password_hash,
            )
            self._users[user.id] = user
            return user

    def find_user_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            return next((user for user in self._users.values() if user.email == email), None)

    def create_session(self, user_id: int, token: str, expires_at: datetime) -> None:
        with self._lock:
            if token in self._sessions:
                raise ConflictError("Session token already exists")
            self._sessions[token] = _SessionRow(next(self._session_ids), user_id, token, expires_at)

    def resolve_session(self, token: str, now: datetime) -> UserRecord | None:
        with self._lock:
            session = self._sessions.get(token)
            if session is None or not now < session.expires_at:
                return None
            return self._users.get(session.user_id)

    def delete_session(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def delete_expired_sessions(self, now: datetime) -> int:
        with self._lock:
            expired = [token for token, row in self._sessions.items() if row.expires_at <= now]
            for token in expired:
                del self._sessions[token]
            return len(expired)

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)
