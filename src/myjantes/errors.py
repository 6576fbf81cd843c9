"""Error types shared by the API client, the local validators and the CLI."""

from __future__ import annotations

from typing import Any, Optional

CONNECTION_ERROR_MESSAGE = "Erreur de connexion au serveur API"


class MyJantesError(Exception):
    """Known error carrying a user-facing (French) message."""

    def __init__(self, message: str, *, title: str = "Erreur") -> None:
        super().__init__(message)
        self.message = message
        self.title = title


class ValidationError(MyJantesError):
    """Raised by local form checks before any request leaves the client."""


class ApiError(MyJantesError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        reason: str = "",
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.payload = payload

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @classmethod
    def from_response(cls, status_code: int, reason: str, payload: Any) -> "ApiError":
        return cls(
            _server_message(payload) or f"{status_code} {reason}".strip(),
            status_code=status_code,
            reason=reason,
            payload=payload,
        )


class ApiConnectionError(ApiError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(CONNECTION_ERROR_MESSAGE, status_code=0, reason=detail)


def _server_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def describe_error(exc: BaseException, fallback: str) -> str:
    """Return the message of a known error, else the generic fallback text."""
    if isinstance(exc, MyJantesError) and exc.message:
        return exc.message
    return fallback
