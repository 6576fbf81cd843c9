"""Back-office operations: list screens and mutations over the admin resources.

Every mutation goes through :func:`run_mutation`: one REST call, then cache
invalidation and a success alert, or an error alert built from the raised
error. Reads go through the shared :class:`QueryCache`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..api import CrudResource, MyJantesApi
from ..domain.accounting import CashFlow, ProfitLoss, TvaReport, journal_entries, period_param
from ..domain.aggregates import (
    average_rating,
    expense_categories,
    filter_by_rating,
    rating_counts,
    total_expenses,
    total_revenue,
)
from ..domain.documents import classify_audit_action
from ..domain.listing import search_records
from ..domain.status import count_by_status, filter_by_status
from ..domain.validation import (
    validate_credit_note,
    validate_delivery_note,
    validate_expense,
    validate_invoice_create,
    validate_payment_link,
    validate_rating,
    validate_reservation_create,
    validate_role,
)
from ..errors import MyJantesError, ValidationError
from ..logging import get_logger
from . import alerts
from .alerts import Alert
from .cache import Key, QueryCache

LOG = get_logger("back-office")

Record = Dict[str, Any]
Message = Union[str, Callable[[Any], str]]


def run_mutation(
    call: Callable[[], Any],
    *,
    cache: Optional[QueryCache],
    invalidate: Iterable[Key] = (),
    success_message: Message,
    fallback: str,
    success_title: str = "Succès",
) -> Tuple[Any, Alert]:
    """Run one write call and turn its outcome into ``(result, alert)``.

    Known errors become an error alert with ``result`` set to ``None``;
    anything else propagates.
    """
    try:
        result = call()
    except MyJantesError as e:
        LOG.warning(f"Mutation failed: {e.message}")
        return None, alerts.error_from(e, fallback)
    if cache is not None:
        for key in invalidate:
            cache.invalidate(key)
    message = success_message(result) if callable(success_message) else success_message
    return result, alerts.success(message, title=success_title)


def _result_message(default: str) -> Callable[[Any], str]:
    def pick(result: Any) -> str:
        if isinstance(result, Mapping) and result.get("message"):
            return str(result["message"])
        return default

    return pick


def _expense_payload(data: Mapping[str, Any]) -> Record:
    return validate_expense(
        data.get("description"),
        data.get("amount"),
        data.get("category"),
        data.get("date"),
        data.get("notes"),
    )


def _review_payload(data: Mapping[str, Any]) -> Record:
    out = dict(data)
    if "rating" in out:
        out["rating"] = validate_rating(out["rating"])
    return out


@dataclass(frozen=True)
class ResourceRules:
    name: str
    status_kind: Optional[str]
    created: str
    updated: str
    deleted: str
    label: str
    validate_create: Optional[Callable[[Mapping[str, Any]], Record]] = None
    validate_update: Optional[Callable[[Mapping[str, Any]], Record]] = None
    extra_keys: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def cache_key(self) -> Key:
        return (f"admin-{self.name}",)


RESOURCES: Dict[str, ResourceRules] = {
    rules.name: rules
    for rules in (
        ResourceRules(
            "clients", None,
            "Le client a été créé.", "Le client a été mis à jour.",
            "Le client a été supprimé avec succès.", "le client",
        ),
        ResourceRules(
            "quotes", "quote",
            "Le devis a été créé.", "Le devis a été mis à jour.",
            "Le devis a été supprimé.", "le devis",
            extra_keys=("quotes",),
        ),
        ResourceRules(
            "invoices", "invoice",
            "La facture a été créée.", "La facture a été mise à jour.",
            "La facture a été supprimée.", "la facture",
            extra_keys=("invoices",),
        ),
        ResourceRules(
            "reservations", "reservation",
            "La réservation a été créée.", "La réservation a été mise à jour.",
            "La réservation a été supprimée.", "la réservation",
            validate_create=validate_reservation_create,
            extra_keys=("reservations",),
        ),
        ResourceRules(
            "services", None,
            "Le service a été créé.", "Le service a été mis à jour.",
            "Le service a été supprimé.", "le service",
            extra_keys=("services",),
        ),
        ResourceRules(
            "repair-orders", "repair_order",
            "L'ordre de réparation a été créé.", "L'ordre de réparation a été mis à jour.",
            "L'ordre de réparation a été supprimé.", "l'ordre de réparation",
        ),
        ResourceRules(
            "expenses", None,
            "La dépense a été créée.", "La dépense a été mise à jour.",
            "La dépense a été supprimée.", "la dépense",
            validate_create=_expense_payload,
        ),
        ResourceRules(
            "payments", "payment",
            "Le paiement a été créé.", "Le paiement a été mis à jour.",
            "Le paiement a été supprimé.", "le paiement",
        ),
        ResourceRules(
            "reviews", "review",
            "L'avis a été créé.", "L'avis a été mis à jour.",
            "L'avis a été supprimé.", "l'avis",
            validate_create=_review_payload,
            validate_update=_review_payload,
        ),
        ResourceRules(
            "users", None,
            "L'utilisateur a été créé.", "Le rôle de l'utilisateur a été mis à jour.",
            "L'utilisateur a été supprimé.", "l'utilisateur",
        ),
        ResourceRules(
            "engagements", "engagement",
            "L'engagement a été créé.", "L'engagement a été mis à jour.",
            "L'engagement a été supprimé.", "l'engagement",
            extra_keys=("admin-engagements-summary",),
        ),
        ResourceRules(
            "credit-notes", "credit_note",
            "L'avoir a été créé.", "L'avoir a été mis à jour.",
            "L'avoir a été supprimé.", "l'avoir",
            validate_create=validate_credit_note,
        ),
        ResourceRules(
            "delivery-notes", None,
            "Le bon de livraison a été créé.", "Le bon de livraison a été mis à jour.",
            "Le bon de livraison a été supprimé.", "le bon de livraison",
            validate_create=validate_delivery_note,
        ),
        ResourceRules(
            "garages", "garage",
            "Le garage a été créé.", "Le garage a été mis à jour.",
            "Le garage a été supprimé.", "le garage",
        ),
    )
}

DEFAULT_NOTIFICATION_SETTINGS: Dict[str, bool] = {
    "pushNewQuotes": True,
    "pushNewClients": True,
    "pushNewPayments": True,
    "emailImportantEvents": True,
    "emailNewQuotes": False,
    "emailNewPayments": True,
    "smsEnabled": False,
    "smsUrgent": False,
}


def resource_rules(name: str) -> ResourceRules:
    try:
        return RESOURCES[name]
    except KeyError:
        raise ValidationError(
            f"Ressource inconnue : {name!r}. Ressources : {', '.join(sorted(RESOURCES))}."
        ) from None


class BackOffice:
    def __init__(self, api: MyJantesApi, cache: QueryCache, *, current_user_id: Any = None) -> None:
        self.api = api
        self.cache = cache
        self.current_user_id = current_user_id

    def _resource(self, name: str) -> CrudResource:
        if name == "garages":
            return self.api.garages
        return self.api.admin[name]

    def _keys(self, rules: ResourceRules, item_id: Any = None) -> List[Key]:
        keys: List[Key] = [rules.cache_key]
        keys.extend((k,) for k in rules.extra_keys)
        if item_id is not None:
            keys.append((rules.name.rstrip("s"), str(item_id)))
        return keys

    # ---------- reads ----------
    def list(self, name: str, *, status: Optional[str] = None, search: str = "") -> List[Record]:
        rules = resource_rules(name)
        items = self.cache.fetch(rules.cache_key, self._resource(name).list)
        if status and rules.status_kind:
            items = filter_by_status(items, rules.status_kind, status)
        if search:
            items = search_records(name, items, search)
        return list(items)

    def counts(self, name: str) -> Dict[str, int]:
        rules = resource_rules(name)
        if not rules.status_kind:
            return {"total": len(self.list(name))}
        items = self.list(name)
        out = count_by_status(items, rules.status_kind)
        out["total"] = len(items)
        return out

    def show(self, name: str, item_id: Any) -> Record:
        rules = resource_rules(name)
        return self.cache.fetch((rules.name.rstrip("s"), str(item_id)), lambda: self._resource(name).get(item_id))

    # ---------- writes ----------
    def create(self, name: str, data: Mapping[str, Any]) -> Tuple[Any, Alert]:
        rules = resource_rules(name)
        payload = rules.validate_create(data) if rules.validate_create else dict(data)
        return run_mutation(
            lambda: self._resource(name).create(payload),
            cache=self.cache,
            invalidate=self._keys(rules),
            success_message=rules.created,
            fallback=f"Impossible de créer {rules.label}.",
        )

    def update(self, name: str, item_id: Any, data: Mapping[str, Any]) -> Tuple[Any, Alert]:
        rules = resource_rules(name)
        payload = rules.validate_update(data) if rules.validate_update else dict(data)
        return run_mutation(
            lambda: self._resource(name).update(item_id, payload),
            cache=self.cache,
            invalidate=self._keys(rules, item_id),
            success_message=rules.updated,
            fallback=f"Impossible de mettre à jour {rules.label}.",
        )

    def delete(self, name: str, item_id: Any) -> Tuple[Any, Alert]:
        rules = resource_rules(name)
        if name == "users" and self.current_user_id is not None and str(item_id) == str(self.current_user_id):
            raise ValidationError("Vous ne pouvez pas supprimer votre propre compte.")
        return run_mutation(
            lambda: self._resource(name).delete(item_id),
            cache=self.cache,
            invalidate=self._keys(rules, item_id),
            success_message=rules.deleted,
            fallback=f"Impossible de supprimer {rules.label}.",
        )

    def set_user_role(self, user_id: Any, role: Optional[str]) -> Tuple[Any, Alert]:
        return self.update("users", user_id, {"role": validate_role(role)})

    def create_direct_invoice(self, client_id: Any, amount: Any, notes: Optional[str] = None) -> Tuple[Any, Alert]:
        payload = validate_invoice_create(client_id, amount, notes)
        rules = RESOURCES["invoices"]
        return run_mutation(
            lambda: self.api.admin["invoices"].create_direct(payload),
            cache=self.cache,
            invalidate=self._keys(rules),
            success_message=rules.created,
            fallback="Impossible de créer la facture.",
        )

    def generate_payment_link(
        self, amount: Any, client_id: Any = None, description: Optional[str] = None
    ) -> Tuple[Any, Alert]:
        payload = validate_payment_link(amount, client_id, description)

        def message(result: Any) -> str:
            if payment_link_of(result):
                return "Lien de paiement créé avec succès."
            return "Le lien de paiement a été généré."

        return run_mutation(
            lambda: self.api.admin["payments"].generate_link(payload),
            cache=self.cache,
            invalidate=[RESOURCES["payments"].cache_key],
            success_message=message,
            success_title="Lien généré",
            fallback="Impossible de générer le lien.",
        )

    # ---------- statistics ----------
    def invoice_stats(self) -> Dict[str, Any]:
        invoices = self.list("invoices")
        out: Dict[str, Any] = dict(count_by_status(invoices, "invoice"))
        out["total"] = len(invoices)
        out["revenue"] = total_revenue(invoices)
        return out

    def expense_stats(self) -> Dict[str, Any]:
        expenses = self.list("expenses")
        try:
            server_categories = self.cache.fetch(
                ("admin-expense-categories",), self.api.admin["expenses"].categories
            )
        except MyJantesError as e:
            LOG.info(f"Expense categories unavailable: {e.message}")
            server_categories = []
        return {
            "count": len(expenses),
            "total": total_expenses(expenses),
            "categories": expense_categories(expenses, server_categories),
        }

    def review_stats(self, rating: Optional[int] = None) -> Dict[str, Any]:
        reviews = self.list("reviews")
        return {
            "count": len(reviews),
            "average": round(average_rating(reviews), 1),
            "ratings": rating_counts(reviews),
            "matching": len(filter_by_rating(reviews, rating)),
        }

    def engagement_summary(self) -> Record:
        return self.cache.fetch(("admin-engagements-summary",), self.api.admin["engagements"].summary)

    # ---------- settings ----------
    def settings(self) -> Record:
        return self.cache.fetch(("admin-settings",), self.api.settings.get)

    def update_settings(self, data: Mapping[str, Any]) -> Tuple[Any, Alert]:
        return run_mutation(
            lambda: self.api.settings.update(dict(data)),
            cache=self.cache,
            invalidate=[("admin-settings",)],
            success_message="Les paramètres du simulateur ont été mis à jour.",
            fallback="Impossible de sauvegarder les paramètres.",
        )

    def garage_legal(self) -> Record:
        return self.cache.fetch(("admin-garage-legal",), self.api.settings.get_garage_legal)

    def update_garage_legal(self, data: Mapping[str, Any]) -> Tuple[Any, Alert]:
        return run_mutation(
            lambda: self.api.settings.update_garage_legal(dict(data)),
            cache=self.cache,
            invalidate=[("admin-garage-legal",)],
            success_message="Les informations légales ont été mises à jour.",
            fallback="Impossible de sauvegarder les informations légales.",
        )

    def notification_settings(self) -> Dict[str, bool]:
        merged = dict(DEFAULT_NOTIFICATION_SETTINGS)
        try:
            data = self.settings()
        except MyJantesError as e:
            LOG.info(f"Using default notification settings: {e.message}")
            return merged
        stored = data.get("notificationSettings") if isinstance(data, Mapping) else None
        if isinstance(stored, Mapping):
            merged.update(stored)
        return merged

    def update_notification_settings(self, changes: Mapping[str, bool]) -> Tuple[Any, Alert]:
        unknown = sorted(set(changes) - set(DEFAULT_NOTIFICATION_SETTINGS))
        if unknown:
            raise ValidationError(f"Paramètres inconnus : {', '.join(unknown)}.")
        merged = self.notification_settings()
        merged.update(changes)
        return run_mutation(
            lambda: self.api.settings.update({"notificationSettings": merged}),
            cache=self.cache,
            invalidate=[("admin-settings",)],
            success_message="Les paramètres de notification ont été mis à jour.",
            success_title="Enregistré",
            fallback="Impossible de sauvegarder les paramètres.",
        )

    # ---------- accounting ----------
    def accounting(self, report: str, period: Optional[str] = None) -> Any:
        p = period_param(period)
        acc = self.api.accounting
        key = ("admin-accounting", report, p or "all")
        if report == "pnl":
            return ProfitLoss.from_payload(self.cache.fetch(key, lambda: acc.profit_loss(p)))
        if report == "tva":
            return TvaReport.from_payload(self.cache.fetch(key, lambda: acc.tva_report(p)))
        if report == "cashflow":
            return CashFlow.from_payload(self.cache.fetch(key, lambda: acc.cash_flow(p)))
        if report == "entries":
            return journal_entries(self.cache.fetch(key, lambda: acc.entries(p)))
        raise ValidationError(f"Rapport inconnu : {report!r}. Rapports : {', '.join(ACCOUNTING_REPORTS)}.")

    def export_fec(self, period: Optional[str] = None) -> Tuple[Any, Alert]:
        p = period_param(period)
        return run_mutation(
            lambda: self.api.accounting.export_fec(p),
            cache=None,
            success_message="L'export FEC a été généré avec succès.",
            success_title="Export FEC",
            fallback="Impossible de générer l'export FEC.",
        )

    # ---------- export / audit ----------
    def export_data(self, fmt: str = "json") -> Tuple[Any, Alert]:
        return run_mutation(
            lambda: self.api.export.export_data(fmt),
            cache=None,
            success_message=_result_message("Les données ont été exportées avec succès."),
            success_title="Export réussi",
            fallback="Impossible d'exporter les données.",
        )

    def export_database(self) -> Tuple[Any, Alert]:
        return run_mutation(
            self.api.export.export_database,
            cache=None,
            success_message=_result_message("La base de données a été exportée avec succès."),
            success_title="Export réussi",
            fallback="Impossible d'exporter la base de données.",
        )

    def audit_logs(self, action: Optional[str] = None) -> List[Record]:
        logs = self.cache.fetch(("admin-audit-logs",), self.api.export.audit_logs)
        out = []
        for entry in logs:
            row = dict(entry)
            row["kind"] = classify_audit_action(entry.get("action"))
            if action and row["kind"] != action:
                continue
            out.append(row)
        return out


ACCOUNTING_REPORTS: Sequence[str] = ("pnl", "tva", "cashflow", "entries")


def payment_link_of(result: Any) -> str:
    if not isinstance(result, Mapping):
        return ""
    return str(result.get("paymentLink") or result.get("link") or result.get("url") or "")
