import pytest

from myjantes.errors import ApiError, MyJantesError, ValidationError
from myjantes.services.session import AuthSession
from myjantes.services.store import BIOMETRIC_ENABLED, SESSION_COOKIE

USER = {"id": "u1", "email": "marie@garage.fr", "firstName": "Marie", "role": "client"}


def test_login_accepts_wrapped_user_and_persists_cookie(api, session, store):
    session.add("POST", "/api/auth/login", {"user": USER}, cookies={"connect.sid": "s3cr3t"})
    auth = AuthSession(api, store)
    assert auth.login(" marie@garage.fr ", "password1") == USER
    assert auth.is_authenticated
    assert store.get(SESSION_COOKIE) == "connect.sid=s3cr3t"
    assert session.calls[0]["json"] == {"email": "marie@garage.fr", "password": "password1"}


def test_login_accepts_bare_user(api, session, store):
    session.add("POST", "/api/auth/login", USER)
    assert AuthSession(api, store).login("marie@garage.fr", "password1")["id"] == "u1"


def test_login_validates_before_calling_the_server(api, session, store):
    with pytest.raises(ValidationError):
        AuthSession(api, store).login("", "")
    assert session.calls == []


def test_login_rejects_unexpected_payload(api, session, store):
    session.add("POST", "/api/auth/login", {"ok": True})
    with pytest.raises(MyJantesError):
        AuthSession(api, store).login("marie@garage.fr", "password1")


def test_restore_uses_stored_cookie(api, session, store):
    store.set(SESSION_COOKIE, "connect.sid=abc")
    session.add("GET", "/api/auth/user", USER)
    auth = AuthSession(api, store)
    assert auth.restore()
    assert auth.user == USER
    assert api.client.session_cookie == "connect.sid=abc"


def test_restore_clears_rejected_cookie(api, session, store):
    store.set(SESSION_COOKIE, "connect.sid=expired")
    session.add("GET", "/api/auth/user", {"message": "Non authentifié"}, status=401)
    auth = AuthSession(api, store)
    assert not auth.restore()
    assert store.get(SESSION_COOKIE) is None
    assert api.client.session_cookie is None


def test_restore_without_cookie_does_nothing(api, session, store):
    assert not AuthSession(api, store).restore()
    assert session.calls == []


def test_logout_ignores_server_errors(api, session, store):
    store.set(SESSION_COOKIE, "connect.sid=abc")
    session.add("POST", "/api/auth/logout", {"message": "down"}, status=500)
    auth = AuthSession(api, store)
    auth.user = dict(USER)
    auth.logout()
    assert not auth.is_authenticated
    assert store.get(SESSION_COOKIE) is None


def test_refresh_user_keeps_previous_user_on_error(api, session, store):
    session.add("GET", "/api/auth/user", {"message": "down"}, status=503)
    auth = AuthSession(api, store)
    auth.user = dict(USER)
    assert auth.refresh_user() == USER


def test_register_then_login(api, session, store):
    session.add("POST", "/api/auth/register", {"id": "u2"})
    session.add("POST", "/api/auth/login", {"user": {"id": "u2", "email": "new@garage.fr"}})
    auth = AuthSession(api, store)
    user = auth.register({"email": "new@garage.fr", "password": "password1", "firstName": "Léa"})
    assert user["id"] == "u2"
    assert session.paths("POST") == ["/api/auth/register", "/api/auth/login"]


def test_biometric_login_requires_flag_cookie_and_prompt(api, session, store):
    session.add("GET", "/api/auth/user", USER)
    auth = AuthSession(api, store)
    prompts = []

    def accept(message):
        prompts.append(message)
        return True

    assert not auth.biometric_login(accept)
    store.set_bool(BIOMETRIC_ENABLED, True)
    assert not auth.biometric_login(accept)
    store.set(SESSION_COOKIE, "connect.sid=abc")
    assert not auth.biometric_login(lambda _: False)
    assert prompts == []
    assert auth.biometric_login(accept)
    assert prompts == ["Connexion à MyJantes"]
    assert auth.user == USER


def test_require_admin(api, store):
    auth = AuthSession(api, store)
    auth.user = dict(USER)
    with pytest.raises(ValidationError):
        auth.require_admin()
    auth.user["role"] = "super_admin"
    assert auth.require_admin()["id"] == "u1"


def test_api_error_is_a_known_error():
    assert issubclass(ApiError, MyJantesError)
