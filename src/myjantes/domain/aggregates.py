from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .normalize import first_amount, parse_datetime
from .status import normalize_status

Record = Mapping[str, Any]

UNPAID_INVOICE_STATUSES = ("pending", "sent", "overdue")
UPCOMING_RESERVATION_STATUSES = ("pending", "confirmed")


def total_revenue(invoices: Iterable[Record]) -> Decimal:
    """Sum TTC totals of invoices whose status resolves to paid."""
    total = Decimal("0")
    for inv in invoices:
        if normalize_status("invoice", inv.get("status")) == "paid":
            total += first_amount(inv, "totalIncludingTax", "totalTTC")
    return total


def total_expenses(expenses: Iterable[Record]) -> Decimal:
    return sum((first_amount(e, "amount") for e in expenses), Decimal("0"))


def unpaid_invoices(invoices: Iterable[Record]) -> List[Record]:
    return [i for i in invoices if normalize_status("invoice", i.get("status")) in UNPAID_INVOICE_STATUSES]


def pending_quotes(quotes: Iterable[Record]) -> List[Record]:
    return [q for q in quotes if normalize_status("quote", q.get("status")) == "pending"]


def accepted_quotes(quotes: Iterable[Record]) -> List[Record]:
    return [q for q in quotes if normalize_status("quote", q.get("status")) == "accepted"]


def upcoming_reservations(reservations: Iterable[Record], now: Optional[datetime] = None) -> List[Record]:
    ref = now or datetime.now(timezone.utc)
    if ref.tzinfo is None:
        ref = ref.replace(tzinfo=timezone.utc)
    out: List[Record] = []
    for r in reservations:
        if normalize_status("reservation", r.get("status")) not in UPCOMING_RESERVATION_STATUSES:
            continue
        when = parse_datetime(r.get("date"))
        if when is not None and when >= ref:
            out.append(r)
    return out


def unread_count(notifications: Iterable[Record]) -> int:
    return sum(1 for n in notifications if not n.get("isRead"))


def badge_label(count: int) -> str:
    if count <= 0:
        return ""
    return "9+" if count > 9 else str(count)


def average_rating(reviews: Iterable[Record]) -> float:
    ratings = [float(r.get("rating") or 0) for r in reviews]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def _round_half_up(value: float) -> int:
    # Half-up: 2.5 counts as 3, where round() gives 2.
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rating_counts(reviews: Iterable[Record]) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for r in reviews:
        rating = _round_half_up(float(r.get("rating") or 0))
        counts[rating] = counts.get(rating, 0) + 1
    return counts


def filter_by_rating(reviews: Iterable[Record], rating: Optional[int]) -> List[Record]:
    items = list(reviews)
    if not rating:
        return items
    return [r for r in items if _round_half_up(float(r.get("rating") or 0)) == rating]


def expense_categories(expenses: Iterable[Record], categories: Iterable[Any] = ()) -> List[str]:
    seen: List[str] = []
    for c in categories:
        name = c.get("name") if isinstance(c, Mapping) else c
        if name and str(name) not in seen:
            seen.append(str(name))
    for e in expenses:
        name = e.get("category")
        if name and str(name) not in seen:
            seen.append(str(name))
    return seen
