from decimal import Decimal

from myjantes.domain.documents import (
    InvoiceView,
    QuoteView,
    classify_audit_action,
    notification_route,
    parse_items,
)
from myjantes.domain.listing import search_invoices, search_records, search_users

BASE = "https://api.test"


def test_quote_view_totals_and_links():
    view = QuoteView.from_payload(
        {
            "id": 7,
            "quoteNumber": "DV-2024-007",
            "status": "en_attente",
            "totalHT": "100",
            "tvaAmount": "20",
            "viewToken": "tok",
            "items": '[{"description": "Jante 17", "quantity": 4}]',
        },
        BASE + "/",
    )
    assert view.reference == "DV-2024-007"
    assert view.total_ttc == Decimal("120")
    assert view.tva_rate == Decimal("20")
    assert view.can_respond
    assert view.pdf_url == "https://api.test/api/public/quotes/tok/pdf"
    assert view.public_url == "https://api.test/public/quotes/tok"
    assert view.items[0]["quantity"] == 4
    assert not view.has_no_content


def test_quote_view_respond_rules():
    approved = QuoteView.from_payload({"status": "approved", "viewToken": "t"})
    assert approved.status.value == "accepted"
    assert approved.can_respond
    no_token = QuoteView.from_payload({"status": "pending"})
    assert not no_token.can_respond
    assert no_token.pdf_url is None
    accepted = QuoteView.from_payload({"status": "accepted", "viewToken": "t"})
    assert not accepted.can_respond
    assert QuoteView.from_payload({"status": "pending"}).has_no_content


def test_invoice_view():
    unpaid = InvoiceView.from_payload(
        {"id": 3, "invoiceNumber": "FA-3", "status": "sent", "totalTTC": 80, "viewToken": "v"}, BASE
    )
    assert unpaid.is_unpaid and not unpaid.is_paid
    assert unpaid.pdf_url == "https://api.test/api/public/invoices/v/pdf"
    assert unpaid.payment_url == "https://api.test/client/invoices"
    paid = InvoiceView.from_payload({"status": "payée", "paymentLink": "https://pay.test/x"}, BASE)
    assert paid.is_paid
    assert paid.payment_url == "https://pay.test/x"


def test_parse_items():
    assert parse_items([{"a": 1}]) == [{"a": 1}]
    assert parse_items("not json") == []
    assert parse_items('{"a": 1}') == []
    assert parse_items(None) == []


def test_audit_classification():
    assert classify_audit_action("invoice.delete") == "delete"
    assert classify_audit_action("Création du devis") == "create"
    assert classify_audit_action("user.login") == "login"
    assert classify_audit_action("Déconnexion") == "logout"
    assert classify_audit_action("export_fec") == "export"
    assert classify_audit_action(None) == "other"


def test_notification_route():
    assert notification_route({"type": "quote", "relatedId": 12}) == ("quote-detail", "12")
    assert notification_route({"type": "chat", "relatedId": 3}) is None
    assert notification_route({"type": "invoice"}) is None


def test_search_helpers():
    invoices = [
        {"invoiceNumber": "FA-001", "client": {"firstName": "Marie", "lastName": "Curie", "email": "mc@x.fr"}},
        {"invoiceNumber": "FA-002", "client": {"firstName": "Paul", "lastName": "Martin"}},
    ]
    assert len(search_invoices(invoices, "  curie ")) == 1
    assert len(search_invoices(invoices, "fa-00")) == 2
    assert search_invoices(invoices, "") == invoices
    users = [{"firstName": "Ana", "email": "ana@garage.fr"}, {"firstName": "Bob", "email": "bob@x.fr"}]
    assert search_users(users, "GARAGE") == [users[0]]
    services = [{"name": "Rénovation jantes"}, {"name": "Pneus"}]
    assert search_records("services", services, "jantes") == [services[0]]
