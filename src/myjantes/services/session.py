from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from ..api import MyJantesApi
from ..errors import MyJantesError, ValidationError
from ..logging import get_logger
from ..domain.validation import validate_login
from .store import BIOMETRIC_ENABLED, SESSION_COOKIE, LocalStore

LOG = get_logger("auth-session")

ADMIN_ROLES = ("admin", "super_admin")
BIOMETRIC_PROMPT = "Connexion à MyJantes"


def _extract_user(payload: Any) -> Optional[Dict[str, Any]]:
    """Login answers either ``{"user": {...}}`` or the user record itself."""
    if not isinstance(payload, Mapping):
        return None
    nested = payload.get("user")
    if isinstance(nested, Mapping):
        return dict(nested)
    if payload.get("id") is not None:
        return dict(payload)
    return None


class AuthSession:
    """Who is signed in, backed by the session cookie kept in the local store."""

    def __init__(self, api: MyJantesApi, store: LocalStore) -> None:
        self.api = api
        self.store = store
        self.user: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[str]:
        return (self.user or {}).get("role")

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def _persist_cookie(self) -> None:
        cookie = self.api.client.session_cookie
        if cookie:
            self.store.set(SESSION_COOKIE, cookie)
        else:
            LOG.debug("Login response carried no session cookie")

    def _forget(self) -> None:
        self.user = None
        self.api.client.set_session_cookie(None)
        self.store.delete(SESSION_COOKIE)

    def restore(self) -> bool:
        cookie = self.store.get(SESSION_COOKIE)
        if not cookie:
            return False
        self.api.client.set_session_cookie(cookie)
        try:
            self.user = _extract_user(self.api.auth.get_user())
        except MyJantesError as e:
            LOG.info(f"Stored session rejected ({e.message}); clearing it")
            self._forget()
            return False
        if self.user is None:
            self._forget()
            return False
        LOG.debug(f"Session restored for user {self.user.get('id')}")
        return True

    def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        creds = validate_login(email, password)
        payload = self.api.auth.login(creds["email"], creds["password"])
        user = _extract_user(payload)
        if user is None:
            raise MyJantesError("Réponse de connexion invalide.", title="Erreur de connexion")
        self.user = user
        self._persist_cookie()
        LOG.info(f"Logged in as {user.get('email') or user.get('id')}")
        return user

    def register(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        self.api.auth.register(dict(data))
        return self.login(data.get("email"), data.get("password"))

    def logout(self) -> None:
        try:
            self.api.auth.logout()
        except MyJantesError as e:
            LOG.warning(f"Logout request failed, clearing local session anyway: {e.message}")
        self._forget()

    def refresh_user(self) -> Optional[Dict[str, Any]]:
        try:
            user = _extract_user(self.api.auth.get_user())
        except MyJantesError as e:
            LOG.warning(f"Could not refresh user: {e.message}")
            return self.user
        if user is not None:
            self.user = user
        return self.user

    def biometric_login(self, prompt: Callable[[str], bool]) -> bool:
        if not self.store.get_bool(BIOMETRIC_ENABLED):
            return False
        if not self.store.get(SESSION_COOKIE):
            return False
        if not prompt(BIOMETRIC_PROMPT):
            LOG.info("Biometric prompt declined")
            return False
        return self.restore()

    def require_admin(self) -> Dict[str, Any]:
        if not self.is_admin:
            raise ValidationError(
                "Cette action est réservée aux administrateurs.",
                title="Accès refusé",
            )
        return self.user or {}
