from datetime import datetime, timezone
from decimal import Decimal

from myjantes.domain.aggregates import (
    accepted_quotes,
    average_rating,
    badge_label,
    expense_categories,
    filter_by_rating,
    pending_quotes,
    rating_counts,
    total_expenses,
    total_revenue,
    unpaid_invoices,
    unread_count,
    upcoming_reservations,
)


def test_revenue_sums_only_paid_invoices_in_any_spelling():
    invoices = [
        {"status": "paid", "totalIncludingTax": "100.00"},
        {"status": "payée", "totalTTC": 50},
        {"status": "payé", "totalIncludingTax": 0, "totalTTC": "25,50"},
        {"status": "pending", "totalIncludingTax": 1000},
        {"status": "overdue", "totalTTC": 300},
    ]
    assert total_revenue(invoices) == Decimal("175.50")


def test_unpaid_invoices_cover_pending_sent_and_overdue():
    invoices = [
        {"id": 1, "status": "pending"},
        {"id": 2, "status": "envoyée"},
        {"id": 3, "status": "en_retard"},
        {"id": 4, "status": "paid"},
        {"id": 5, "status": "draft"},
    ]
    assert [i["id"] for i in unpaid_invoices(invoices)] == [1, 2, 3]


def test_quote_partitions():
    quotes = [{"status": "pending"}, {"status": "en_attente"}, {"status": "accepté"}, {"status": "refusé"}]
    assert len(pending_quotes(quotes)) == 2
    assert len(accepted_quotes(quotes)) == 1


def test_upcoming_reservations():
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    reservations = [
        {"id": 1, "status": "confirmed", "date": "2024-06-02T09:00:00Z"},
        {"id": 2, "status": "pending", "date": "2024-05-30T09:00:00Z"},
        {"id": 3, "status": "cancelled", "date": "2024-06-10T09:00:00Z"},
        {"id": 4, "status": "en_attente", "date": "2024-06-01T12:00:00Z"},
        {"id": 5, "status": "pending"},
    ]
    assert [r["id"] for r in upcoming_reservations(reservations, now)] == [1, 4]


def test_badge_and_unread():
    notifications = [{"isRead": False}, {"isRead": True}, {}]
    assert unread_count(notifications) == 2
    assert badge_label(0) == ""
    assert badge_label(7) == "7"
    assert badge_label(12) == "9+"


def test_reviews():
    reviews = [{"rating": 5}, {"rating": 4}, {"rating": 2.5}, {"rating": None}]
    assert average_rating(reviews) == 11.5 / 4
    assert average_rating([]) == 0
    assert rating_counts(reviews) == {5: 1, 4: 1, 3: 1, 0: 1}
    assert len(filter_by_rating(reviews, 3)) == 1
    assert len(filter_by_rating(reviews, None)) == 4


def test_expenses():
    expenses = [{"amount": "10,50", "category": "Pièces"}, {"amount": 4.5, "category": "Outillage"}, {"amount": None}]
    assert total_expenses(expenses) == Decimal("15.00")
    assert expense_categories(expenses, [{"name": "Loyer"}, "Pièces"]) == ["Loyer", "Pièces", "Outillage"]
