"""Route classification and session enforcement ahead of every handler.

Public pages are matched by exact path and public API routes by prefix, so
``/api/auth/login`` stays open while ``/api/auth/logout`` and the rest of the
``/api`` namespace require a session. Unlisted routes are protected.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from starlette.requests import HTTPConnection

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


class Outcome(str, enum.Enum):
    ALLOW = "allow"
    UNAUTHORIZED = "unauthorized"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


def extract_session_token(conn: HTTPConnection, cookie_name: str) -> str | None:
    token = conn.cookies.get(cookie_name)
    if token:
        return token
    authorization = conn.headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "", 1).strip() or None
    return None


class AuthorizationGate:
    def __init__(self, public_pages: Iterable[str], public_api_prefixes: Iterable[str], login_path: str = "/login"):
        self.public_pages = frozenset(public_pages)
        self.public_api_prefixes = tuple(public_api_prefixes)
        self.login_path = login_path

    def is_public(self, path: str) -> bool:
        return path in self.public_pages or path.startswith(self.public_api_prefixes)

    @staticmethod
    def is_api(path: str) -> bool:
        return path.startswith(API_PREFIX)

    def _reject(self, path: str, reason: str) -> Decision:
        if self.is_api(path):
            return Decision(Outcome.UNAUTHORIZED, reason)
        return Decision(Outcome.REDIRECT_TO_LOGIN, reason)

    def decide(self, path: str, token: str | None, resolve: Callable[[str], object | None]) -> Decision:
        if self.is_public(path):
            return Decision(Outcome.ALLOW, "public")
        if not token:
            return self._reject(path, "Unauthorized")
        try:
            user = resolve(token)
        except Exception:
            logger.exception("Session resolution failed for %s", path)
            return Decision(Outcome.INTERNAL_ERROR, "Authentication error")
        if user is None:
            return self._reject(path, "Invalid session")
        return Decision(Outcome.ALLOW, "session")
