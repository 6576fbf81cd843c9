from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from ..api import MyJantesApi
from ..domain.validation import (
    validate_email,
    validate_new_password,
    validate_password_change,
    validate_reset_code,
)
from ..errors import ApiError, MyJantesError, ValidationError
from ..logging import get_logger
from . import alerts
from .alerts import Alert, AlertButton
from .operations import run_mutation
from .session import AuthSession
from .store import BIOMETRIC_ENABLED, NOTIFICATION_KEYS, LocalStore

LOG = get_logger("account")

PROFILE_FIELDS = (
    "firstName",
    "lastName",
    "phone",
    "address",
    "postalCode",
    "city",
    "companyName",
    "siret",
    "tvaNumber",
    "companyAddress",
    "companyPostalCode",
    "companyCity",
    "companyCountry",
)

DEFAULT_NOTIFICATION_PREFERENCES = {"push": True, "email": True, "sms": False}


class AccountService:
    def __init__(self, api: MyJantesApi, store: LocalStore, session: Optional[AuthSession] = None) -> None:
        self.api = api
        self.store = store
        self.session = session

    # ---------- password reset ----------
    def send_reset_code(self, email: Optional[str]) -> Alert:
        """Request a reset code; the answer never tells whether the account exists."""
        address = validate_email(email)
        try:
            self.api.auth.forgot_password(address)
        except ApiError as e:
            if e.is_not_found or "Not Found" in e.message:
                return alerts.success(
                    "Si un compte est associé à cet email, vous recevrez un code de réinitialisation.",
                    title="Vérifiez votre email",
                )
            LOG.warning(f"Reset code request failed: {e.message}")
            return alerts.warning(
                "Si un compte est associé à cet email, un lien de réinitialisation sera envoyé. "
                "Vérifiez également vos spams.",
                title="Information",
                buttons=[
                    AlertButton("Saisir le code", "primary", "enter_code"),
                    AlertButton("Contacter le support", "default", "support"),
                ],
            )
        return alerts.success(
            "Si un compte est associé à cet email, vous recevrez un code de réinitialisation par email.",
            title="Code envoyé",
        )

    def verify_reset_code(self, code: Optional[str]) -> str:
        return validate_reset_code(code)

    def reset_password(
        self,
        email: Optional[str],
        token: Optional[str],
        new_password: Optional[str],
        confirm_password: Optional[str],
    ) -> Tuple[Any, Alert]:
        address = validate_email(email)
        code = validate_reset_code(token)
        password = validate_new_password(new_password, confirm_password)
        return run_mutation(
            lambda: self.api.auth.reset_password(address, code, password),
            cache=None,
            success_message=(
                "Votre mot de passe a été réinitialisé avec succès. "
                "Vous pouvez maintenant vous connecter."
            ),
            success_title="Mot de passe modifié",
            fallback="Impossible de réinitialiser le mot de passe. Le code est peut-être expiré.",
        )

    # ---------- profile ----------
    def change_password(
        self,
        current_password: Optional[str],
        new_password: Optional[str],
        confirm_password: Optional[str],
    ) -> Tuple[Any, Alert]:
        data = validate_password_change(current_password, new_password, confirm_password)
        return run_mutation(
            lambda: self.api.auth.change_password(data["current_password"], data["new_password"]),
            cache=None,
            success_message="Mot de passe modifié avec succès.",
            fallback="Impossible de modifier le mot de passe.",
        )

    def update_profile(self, fields: Mapping[str, Any]) -> Tuple[Any, Alert]:
        unknown = sorted(set(fields) - set(PROFILE_FIELDS))
        if unknown:
            raise ValidationError(f"Champs inconnus : {', '.join(unknown)}.")
        payload: Dict[str, Any] = {}
        for key, value in fields.items():
            text = "" if value is None else str(value).strip()
            payload[key] = text or None
        result, alert = run_mutation(
            lambda: self.api.auth.update_user(payload),
            cache=None,
            success_message="Profil mis à jour avec succès.",
            fallback="Impossible de mettre à jour le profil.",
        )
        if alert.type == "success" and self.session is not None:
            self.session.refresh_user()
        return result, alert

    def delete_account(self) -> Tuple[Any, Alert]:
        result, alert = run_mutation(
            self.api.auth.delete_account,
            cache=None,
            success_message="Votre compte a été définitivement supprimé.",
            success_title="Compte supprimé",
            fallback="Impossible de supprimer le compte. Veuillez réessayer.",
        )
        if alert.type == "success":
            self.store.clear()
            self.api.client.set_session_cookie(None)
            if self.session is not None:
                self.session.user = None
        return result, alert

    # ---------- device preferences ----------
    def notification_preferences(self) -> Dict[str, bool]:
        prefs = dict(DEFAULT_NOTIFICATION_PREFERENCES)
        try:
            remote = self.api.auth.get_notification_preferences()
        except MyJantesError as e:
            LOG.info(f"Notification preferences unavailable, using local values: {e.message}")
            remote = None
        if isinstance(remote, Mapping) and isinstance(remote.get("push"), bool):
            for key in NOTIFICATION_KEYS:
                prefs[key] = bool(remote.get(key))
            return prefs
        for key in NOTIFICATION_KEYS:
            prefs[key] = self.store.get_bool(f"notif_{key}", prefs[key])
        return prefs

    def set_notification_preference(self, key: str, value: bool) -> Dict[str, bool]:
        if key not in NOTIFICATION_KEYS:
            raise ValidationError(f"Préférence inconnue : {key!r}. Valeurs : {', '.join(NOTIFICATION_KEYS)}.")
        prefs = self.notification_preferences()
        prefs[key] = bool(value)
        for k in NOTIFICATION_KEYS:
            self.store.set_bool(f"notif_{k}", prefs[k])
        try:
            self.api.auth.update_notification_preferences(prefs)
        except MyJantesError as e:
            LOG.warning(f"Notification preferences kept locally only: {e.message}")
        return prefs

    def set_biometric(self, enabled: bool) -> Alert:
        self.store.set_bool(BIOMETRIC_ENABLED, enabled)
        if enabled:
            return alerts.success("Biométrie activé(e) pour la connexion.", title="Activé")
        return alerts.info("Connexion biométrique désactivée.")
