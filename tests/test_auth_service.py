from datetime import timedelta

import pytest

from mediscan.errors import ConflictError, UnauthorizedError, ValidationError
from mediscan.services.auth import Authenticator
from mediscan.services.auth_store import PublicUser


def _fields(**overrides):
    fields = {"email": "a@x.com", "password": "secret1", "first_name": "Ada", "last_name": "Lovelace"}
    fields.update(overrides)
    return fields


def test_register_applies_defaults_and_hides_hash(authenticator, clock):
    user, token = authenticator.register(_fields())

    assert type(user) is PublicUser
    assert not hasattr(user, "password_hash")
    assert user.role == "user"
    assert user.preferred_language == "en"
    assert user.theme_preference == "system"
    assert user.created_at == clock.now
    assert token


def test_register_keeps_preferred_language(authenticator):
    user, _ = authenticator.register(_fields(preferred_language="es"))
    assert user.preferred_language == "es"


def test_registered_token_resolves_to_new_user(authenticator):
    user, token = authenticator.register(_fields())
    resolved = authenticator.current_user(token)
    assert resolved is not None
    assert resolved.id == user.id


@pytest.mark.parametrize("missing", ["email", "password", "first_name", "last_name"])
def test_register_requires_fields(authenticator, missing):
    with pytest.raises(ValidationError):
        authenticator.register(_fields(**{missing: ""}))


def test_duplicate_email_conflicts_regardless_of_other_fields(authenticator):
    authenticator.register(_fields())
    with pytest.raises(ConflictError) as exc_info:
        authenticator.register(_fields(password="other", first_name="Someone", last_name="Else"))
    assert exc_info.value.message == "Email already exists"


def test_email_match_is_case_sensitive(authenticator):
    authenticator.register(_fields())
    assert authenticator.credentials.authenticate("A@X.com", "secret1") is None


def test_authenticate_failures_are_indistinguishable(authenticator):
    authenticator.register(_fields())
    wrong_password = authenticator.credentials.authenticate("a@x.com", "nope")
    unknown_email = authenticator.credentials.authenticate("b@x.com", "secret1")
    assert wrong_password is None
    assert unknown_email is None


def test_login_failure_message_does_not_reveal_cause(authenticator):
    authenticator.register(_fields())
    with pytest.raises(UnauthorizedError) as wrong_password:
        authenticator.login("a@x.com", "nope")
    with pytest.raises(UnauthorizedError) as unknown_email:
        authenticator.login("b@x.com", "secret1")
    assert wrong_password.value.message == unknown_email.value.message


def test_session_valid_until_expiry(authenticator, clock):
    user, token = authenticator.register(_fields())

    clock.advance(days=7, microseconds=-1)
    assert authenticator.current_user(token).id == user.id

    clock.advance(microseconds=1)
    assert authenticator.current_user(token) is None


def test_expired_and_unknown_tokens_look_the_same(authenticator, clock):
    _, token = authenticator.register(_fields())
    clock.advance(days=8)
    assert authenticator.current_user(token) is None
    assert authenticator.current_user("never-issued") is None


def test_multiple_sessions_per_user(authenticator):
    user, first = authenticator.register(_fields())
    _, second = authenticator.login("a@x.com", "secret1")
    assert first != second
    assert authenticator.current_user(first).id == user.id
    assert authenticator.current_user(second).id == user.id


def test_login_logout_scenario(authenticator):
    authenticator.credentials.create_user("a@x.com", "secret1", "Ada", "Lovelace")
    user, t1 = authenticator.login("a@x.com", "secret1")

    assert authenticator.current_user(t1).email == "a@x.com"
    authenticator.logout(t1)
    assert authenticator.current_user(t1) is None
    authenticator.logout(t1)
    assert authenticator.current_user(t1) is None


def test_require_auth_rejects_missing_session(authenticator):
    with pytest.raises(UnauthorizedError):
        authenticator.require_auth(None)
    with pytest.raises(UnauthorizedError):
        authenticator.require_auth("garbage")


def test_session_ttl_is_configurable(memory_repository, clock):
    short_lived = Authenticator(memory_repository, clock=clock, ttl=timedelta(minutes=5))
    _, token = short_lived.register(_fields())
    clock.advance(minutes=5)
    assert short_lived.current_user(token) is None
