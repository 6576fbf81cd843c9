from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .normalize import first_amount, first_value, full_name, parse_amount
from .status import StatusOption, status_info


def parse_items(value: Any) -> List[Dict[str, Any]]:
    """Line items arrive either as a list or as a JSON-encoded string."""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value.strip():
        try:
            decoded = json.loads(value)
        except ValueError:
            return []
        return decoded if isinstance(decoded, list) else []
    return []


@dataclass
class QuoteView:
    id: Any
    reference: str
    status: StatusOption
    raw_status: str
    total_ht: Decimal
    tva_rate: Decimal
    tva_amount: Decimal
    total_ttc: Decimal
    view_token: Optional[str]
    client_name: str
    service_name: str
    request_details: str
    expiry_date: Optional[str]
    items: List[Dict[str, Any]] = field(default_factory=list)
    base_url: str = ""

    @classmethod
    def from_payload(cls, quote: Mapping[str, Any], base_url: str = "") -> "QuoteView":
        total_ht = first_amount(quote, "totalHT", "amountHT")
        tva_amount = first_amount(quote, "tvaAmount", "taxAmount")
        total_ttc = first_amount(quote, "quoteAmount", "totalIncludingTax", "totalAmount")
        if not total_ttc:
            total_ttc = total_ht + tva_amount
        service = quote.get("service") if isinstance(quote.get("service"), Mapping) else {}
        return cls(
            id=quote.get("id"),
            reference=str(first_value(quote, "reference", "quoteNumber", "id") or ""),
            status=status_info("quote", quote.get("status")),
            raw_status=str(quote.get("status") or "").strip().lower(),
            total_ht=total_ht,
            tva_rate=parse_amount(first_value(quote, "tvaRate", "taxRate")) or Decimal("20"),
            tva_amount=tva_amount,
            total_ttc=total_ttc,
            view_token=quote.get("viewToken") or None,
            client_name=full_name(quote),
            service_name=str(service.get("name") or quote.get("serviceName") or ""),
            request_details=str(quote.get("requestDetails") or quote.get("description") or ""),
            expiry_date=first_value(quote, "expiryDate", "validUntil"),
            items=parse_items(quote.get("items")),
            base_url=base_url.rstrip("/"),
        )

    @property
    def is_pending(self) -> bool:
        return self.status.value == "pending"

    @property
    def can_respond(self) -> bool:
        # "approved" is the admin-validated state awaiting the client's answer.
        return bool(self.view_token) and (self.is_pending or self.raw_status == "approved")

    @property
    def has_no_content(self) -> bool:
        return not self.items and self.total_ttc == 0

    @property
    def pdf_url(self) -> Optional[str]:
        if not self.view_token:
            return None
        return f"{self.base_url}/api/public/quotes/{self.view_token}/pdf"

    @property
    def public_url(self) -> Optional[str]:
        if not self.view_token:
            return None
        return f"{self.base_url}/public/quotes/{self.view_token}"


@dataclass
class InvoiceView:
    id: Any
    reference: str
    status: StatusOption
    total_ht: Decimal
    tva_rate: Decimal
    tva_amount: Decimal
    total_ttc: Decimal
    view_token: Optional[str]
    payment_link: Optional[str]
    quote_reference: Optional[str]
    client_name: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    base_url: str = ""

    @classmethod
    def from_payload(cls, invoice: Mapping[str, Any], base_url: str = "") -> "InvoiceView":
        return cls(
            id=invoice.get("id"),
            reference=str(first_value(invoice, "invoiceNumber", "id") or ""),
            status=status_info("invoice", invoice.get("status")),
            total_ht=first_amount(invoice, "totalHT"),
            tva_rate=parse_amount(first_value(invoice, "tvaRate")) or Decimal("20"),
            tva_amount=first_amount(invoice, "tvaAmount"),
            total_ttc=first_amount(invoice, "totalIncludingTax", "totalTTC"),
            view_token=invoice.get("viewToken") or None,
            payment_link=first_value(invoice, "paymentLink", "payment_url", "stripe_url"),
            quote_reference=first_value(invoice, "quoteNumber", "quoteReference"),
            client_name=full_name(invoice),
            items=parse_items(invoice.get("items")),
            base_url=base_url.rstrip("/"),
        )

    @property
    def is_paid(self) -> bool:
        return self.status.value == "paid"

    @property
    def is_unpaid(self) -> bool:
        return self.status.value in ("pending", "sent", "overdue")

    @property
    def pdf_url(self) -> Optional[str]:
        if not self.view_token:
            return None
        return f"{self.base_url}/api/public/invoices/{self.view_token}/pdf"

    @property
    def public_url(self) -> Optional[str]:
        if not self.view_token:
            return None
        return f"{self.base_url}/public/invoices/{self.view_token}"

    @property
    def payment_url(self) -> str:
        return self.payment_link or f"{self.base_url}/client/invoices"


_AUDIT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("delete", ("delete", "supprim")),
    ("create", ("create", "créa", "ajout")),
    ("update", ("update", "modif")),
    ("logout", ("logout", "déconnexion")),
    ("login", ("login", "connexion")),
    ("export", ("export",)),
)


def classify_audit_action(action: Optional[str]) -> str:
    a = (action or "").lower()
    for kind, words in _AUDIT_KEYWORDS:
        if any(w in a for w in words):
            return kind
    return "other"


_ROUTED_TYPES = {
    "quote": "quote-detail",
    "invoice": "invoice-detail",
    "reservation": "reservation-detail",
}


def notification_route(notification: Mapping[str, Any]) -> Optional[Tuple[str, str]]:
    screen = _ROUTED_TYPES.get(str(notification.get("type") or ""))
    related = notification.get("relatedId")
    if not screen or related in (None, ""):
        return None
    return screen, str(related)
