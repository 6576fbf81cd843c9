"""Local form rules run before a request is sent.

Messages are the French texts shown to users; callers surface them as-is.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

from ..errors import ValidationError
from .normalize import parse_amount, to_iso_date

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
MIN_RESET_CODE_LENGTH = 4
ROLES = ("client", "client_professionnel", "admin", "super_admin")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def validate_email(email: Optional[str]) -> str:
    trimmed = (email or "").strip()
    if not trimmed:
        raise ValidationError("Veuillez saisir votre adresse email.")
    if not EMAIL_RE.match(trimmed):
        raise ValidationError("Veuillez saisir une adresse email valide.")
    return trimmed


def validate_login(email: Optional[str], password: Optional[str]) -> Dict[str, str]:
    if _blank(email) or not password:
        raise ValidationError("Veuillez remplir tous les champs.")
    return {"email": str(email).strip(), "password": password}


def validate_reset_code(code: Optional[str]) -> str:
    trimmed = (code or "").strip()
    if not trimmed:
        raise ValidationError("Veuillez saisir le code reçu par email.")
    if len(trimmed) < MIN_RESET_CODE_LENGTH:
        raise ValidationError("Le code doit contenir au moins 4 caractères.")
    return trimmed


def validate_new_password(new_password: Optional[str], confirm_password: Optional[str]) -> str:
    if not new_password or not confirm_password:
        raise ValidationError("Veuillez remplir les deux champs.")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "Le mot de passe doit contenir au moins 8 caractères.",
            title="Mot de passe trop court",
        )
    if new_password != confirm_password:
        raise ValidationError("Les mots de passe ne correspondent pas.")
    return new_password


def validate_password_change(
    current_password: Optional[str],
    new_password: Optional[str],
    confirm_password: Optional[str],
) -> Dict[str, str]:
    if not current_password:
        raise ValidationError("Veuillez saisir votre mot de passe actuel.")
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("Le nouveau mot de passe doit contenir au moins 8 caractères.")
    if new_password != confirm_password:
        raise ValidationError("Les mots de passe ne correspondent pas.")
    return {"current_password": current_password, "new_password": new_password}


def password_strength(password: Optional[str]) -> Dict[str, bool]:
    pw = password or ""
    return {
        "min_length": len(pw) >= MIN_PASSWORD_LENGTH,
        "uppercase": bool(re.search(r"[A-Z]", pw)),
        "digit": bool(re.search(r"[0-9]", pw)),
    }


def _required_amount(value: Any, message: str, *, title: str = "Erreur") -> float:
    amount = parse_amount(value) if not _blank(value) else None
    if amount is None:
        raise ValidationError(message, title=title)
    return float(amount)


def validate_invoice_create(client_id: Any, amount: Any, notes: Optional[str] = None) -> Dict[str, Any]:
    total = _required_amount(amount, "Veuillez renseigner un montant.")
    data: Dict[str, Any] = {"totalTTC": total, "notes": notes or ""}
    if not _blank(client_id):
        data["clientId"] = str(client_id).strip()
    return data


def validate_expense(
    description: Optional[str],
    amount: Any,
    category: Optional[str] = None,
    date: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    if _blank(description) or _blank(amount) or parse_amount(amount) is None:
        raise ValidationError(
            "La description et le montant sont obligatoires.",
            title="Champs requis",
        )
    data: Dict[str, Any] = {
        "description": str(description).strip(),
        "amount": float(parse_amount(amount)),
        "category": _clean(category),
        "date": to_iso_date(date) if date else None,
        "notes": _clean(notes),
    }
    return {k: v for k, v in data.items() if v is not None}


def validate_payment_link(amount: Any, client_id: Any = None, description: Optional[str] = None) -> Dict[str, Any]:
    value = parse_amount(amount) if not _blank(amount) else None
    if value is None or value <= 0:
        raise ValidationError("Veuillez saisir un montant valide.", title="Montant requis")
    data: Dict[str, Any] = {"amount": float(value)}
    if not _blank(client_id):
        data["clientId"] = str(client_id).strip()
    if not _blank(description):
        data["description"] = str(description).strip()
    return data


def validate_reservation_create(data: Mapping[str, Any]) -> Dict[str, Any]:
    if _blank(data.get("date")):
        raise ValidationError("Veuillez renseigner une date.")
    out = dict(data)
    out["date"] = to_iso_date(data["date"]) or str(data["date"]).strip()
    return out


def validate_credit_note(data: Mapping[str, Any]) -> Dict[str, Any]:
    amount = _required_amount(data.get("amount"), "Veuillez saisir un montant.", title="Champ requis")
    out = dict(data)
    out["amount"] = amount
    return out


def validate_delivery_note(data: Mapping[str, Any]) -> Dict[str, Any]:
    if _blank(data.get("clientId")):
        raise ValidationError("Veuillez sélectionner un client.", title="Champ requis")
    return dict(data)


def validate_role(role: Optional[str]) -> str:
    r = (role or "").strip()
    if r not in ROLES:
        raise ValidationError(f"Rôle inconnu : {role!r}. Rôles valides : {', '.join(ROLES)}.")
    return r


def validate_rating(value: Any) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError("La note doit être un entier entre 1 et 5.") from None
    if not 1 <= rating <= 5:
        raise ValidationError("La note doit être un entier entre 1 et 5.")
    return rating
