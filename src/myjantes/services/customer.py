"""Client-side flows: dashboard, quote answers, document scans and messaging."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..api import MyJantesApi
from ..domain.aggregates import (
    accepted_quotes,
    pending_quotes,
    unpaid_invoices,
    unread_count,
    upcoming_reservations,
)
from ..domain.documents import InvoiceView, QuoteView
from ..errors import MyJantesError, ValidationError
from ..logging import get_logger
from .alerts import Alert
from .cache import QueryCache
from .operations import run_mutation

LOG = get_logger("customer")

Record = Dict[str, Any]

DOCUMENT_TYPES = {
    "carte_grise": "Carte grise",
    "facture": "Facture",
    "devis": "Devis",
    "releve_bancaire": "Relevé bancaire",
    "avoir": "Avoir",
    "note_frais": "Note de frais",
    "autres": "Autres",
}

ASSISTANT_FALLBACK = "Désolé, je n'ai pas pu traiter votre demande."


def greeting(user: Optional[Mapping[str, Any]]) -> str:
    first = (user or {}).get("firstName")
    return f"Bonjour {first}" if first else "Bonjour"


@dataclass
class DashboardSummary:
    greeting: str
    services: List[Record] = field(default_factory=list)
    pending_quotes: List[Record] = field(default_factory=list)
    accepted_quotes: List[Record] = field(default_factory=list)
    unpaid_invoices: List[Record] = field(default_factory=list)
    upcoming_reservations: List[Record] = field(default_factory=list)
    unread_notifications: int = 0
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "greeting": self.greeting,
            "services": len(self.services),
            "pendingQuotes": len(self.pending_quotes),
            "acceptedQuotes": len(self.accepted_quotes),
            "unpaidInvoices": len(self.unpaid_invoices),
            "upcomingReservations": len(self.upcoming_reservations),
            "unreadNotifications": self.unread_notifications,
            "errors": dict(self.errors),
        }


class Dashboard:
    def __init__(self, api: MyJantesApi, cache: QueryCache, *, max_workers: int = 4) -> None:
        self.api = api
        self.cache = cache
        self.max_workers = max_workers

    def _sources(self) -> Dict[str, Callable[[], List[Record]]]:
        return {
            "services": self.api.services.list,
            "quotes": self.api.quotes.list,
            "invoices": self.api.invoices.list,
            "reservations": self.api.reservations.list,
            "notifications": self.api.notifications.list,
        }

    def refresh(self, user: Optional[Mapping[str, Any]] = None, now: Optional[datetime] = None) -> DashboardSummary:
        """Fetch every dashboard list concurrently; a failing list counts as empty."""
        data: Dict[str, List[Record]] = {}
        errors: Dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.cache.fetch, (name,), fn): name
                for name, fn in self._sources().items()
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    data[name] = future.result() or []
                except MyJantesError as e:
                    LOG.warning(f"Dashboard list '{name}' failed: {e.message}")
                    errors[name] = e.message
                    data[name] = []

        quotes = data.get("quotes", [])
        return DashboardSummary(
            greeting=greeting(user),
            services=data.get("services", []),
            pending_quotes=pending_quotes(quotes),
            accepted_quotes=accepted_quotes(quotes),
            unpaid_invoices=unpaid_invoices(data.get("invoices", [])),
            upcoming_reservations=upcoming_reservations(data.get("reservations", []), now),
            unread_notifications=unread_count(data.get("notifications", [])),
            errors=errors,
        )


class CustomerService:
    def __init__(self, api: MyJantesApi, cache: QueryCache) -> None:
        self.api = api
        self.cache = cache

    # ---------- quotes ----------
    def quotes(self) -> List[Record]:
        return self.cache.fetch(("quotes",), self.api.quotes.list)

    def quote(self, quote_id: Any) -> QuoteView:
        payload = self.cache.fetch(("quote", str(quote_id)), lambda: self.api.quotes.get(quote_id))
        return QuoteView.from_payload(payload or {}, self.api.client.base)

    def _answer_quote(self, quote_id: Any, accept: bool) -> Tuple[Any, Alert]:
        view = self.quote(quote_id)
        if not view.can_respond:
            raise ValidationError("Ce devis ne peut plus être accepté ou refusé.", title="Action impossible")
        token = view.view_token
        call = (lambda: self.api.quotes.accept(token)) if accept else (lambda: self.api.quotes.reject(token))
        return run_mutation(
            call,
            cache=self.cache,
            invalidate=[("quotes",), ("quote", str(quote_id))],
            success_message="Le devis a bien été accepté." if accept else "Le devis a bien été refusé.",
            success_title="Devis accepté" if accept else "Devis refusé",
            fallback="Impossible d'accepter le devis." if accept else "Impossible de refuser le devis.",
        )

    def accept_quote(self, quote_id: Any) -> Tuple[Any, Alert]:
        return self._answer_quote(quote_id, True)

    def reject_quote(self, quote_id: Any) -> Tuple[Any, Alert]:
        return self._answer_quote(quote_id, False)

    # ---------- invoices ----------
    def invoices(self) -> List[Record]:
        return self.cache.fetch(("invoices",), self.api.invoices.list)

    def invoice(self, invoice_id: Any) -> InvoiceView:
        payload = self.cache.fetch(("invoice", str(invoice_id)), lambda: self.api.invoices.get(invoice_id))
        return InvoiceView.from_payload(payload or {}, self.api.client.base)

    # ---------- documents ----------
    def scan_document(self, path: str, document_type: str = "autres") -> Any:
        if document_type not in DOCUMENT_TYPES:
            raise ValidationError(
                f"Type de document inconnu : {document_type!r}. Types : {', '.join(DOCUMENT_TYPES)}."
            )
        if not os.path.isfile(path):
            raise ValidationError("Impossible de sélectionner l'image.")
        LOG.info(f"Uploading {os.path.basename(path)} for OCR as {document_type}")
        return self.api.ocr.scan(path, document_type)

    # ---------- messaging ----------
    def ask_assistant(self, text: str) -> str:
        message = (text or "").strip()
        if not message:
            raise ValidationError("Veuillez saisir un message.")
        response = self.api.assistant.ask(message)
        if isinstance(response, Mapping):
            return str(response.get("response") or response.get("message") or ASSISTANT_FALLBACK)
        return ASSISTANT_FALLBACK

    def conversations(self) -> List[Record]:
        return self.cache.fetch(("conversations",), self.api.chat.conversations)

    def messages(self, conversation_id: Any) -> List[Record]:
        return self.cache.fetch(
            ("messages", str(conversation_id)),
            lambda: self.api.chat.messages(conversation_id),
        )

    def send_chat_message(self, conversation_id: Any, content: Optional[str]) -> Any:
        text = (content or "").strip()
        if not text:
            raise ValidationError("Veuillez saisir un message.")
        result = self.api.chat.send_message(conversation_id, text)
        self.cache.invalidate(("messages", str(conversation_id)))
        self.cache.invalidate(("conversations",))
        return result
