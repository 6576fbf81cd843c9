from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import MyJantesError, describe_error

ALERT_TYPES = ("success", "error", "warning", "info")

_MARKERS = {
    "success": "OK",
    "error": "ERREUR",
    "warning": "ATTENTION",
    "info": "INFO",
}


@dataclass(frozen=True)
class AlertButton:
    text: str
    style: str = "default"
    action: Optional[str] = None


@dataclass
class Alert:
    type: str
    title: str
    message: str
    buttons: List[AlertButton] = field(default_factory=lambda: [AlertButton("OK", "primary")])

    def __post_init__(self) -> None:
        if self.type not in ALERT_TYPES:
            raise ValueError(f"Unknown alert type: {self.type!r}")

    @property
    def actions(self) -> List[str]:
        return [b.action for b in self.buttons if b.action]


def success(message: str, title: str = "Succès") -> Alert:
    return Alert("success", title, message)


def warning(message: str, title: str = "Attention", buttons: Optional[List[AlertButton]] = None) -> Alert:
    return Alert("warning", title, message, buttons or [AlertButton("OK", "primary")])


def info(message: str, title: str = "Information") -> Alert:
    return Alert("info", title, message)


def error_from(exc: BaseException, fallback: str, *, retry: bool = False, support: bool = False) -> Alert:
    title = exc.title if isinstance(exc, MyJantesError) else "Erreur"
    buttons = [AlertButton("Réessayer", "primary", "retry") if retry else AlertButton("OK", "primary")]
    if support:
        buttons.append(AlertButton("Contacter le support", "default", "support"))
    return Alert("error", title, describe_error(exc, fallback), buttons)


def render(alert: Alert) -> str:
    line = f"[{_MARKERS[alert.type]}] {alert.title}: {alert.message}"
    extra = [b.text for b in alert.buttons if b.action]
    if extra:
        line += f" ({' / '.join(extra)})"
    return line
