from __future__ import annotations

from typing import Any, Callable, Iterable, List, Mapping, Sequence

Record = Mapping[str, Any]


def _text(value: Any) -> str:
    return "" if value is None else str(value).lower()


def _client(record: Record) -> Mapping[str, Any]:
    c = record.get("client")
    return c if isinstance(c, Mapping) else {}


def _search(items: Iterable[Record], query: str, haystacks: Callable[[Record], Sequence[str]]) -> List[Record]:
    records = list(items)
    q = (query or "").strip().lower()
    if not q:
        return records
    return [r for r in records if any(q in h for h in haystacks(r))]


def search_generic(items: Iterable[Record], query: str, fields: Sequence[str]) -> List[Record]:
    return _search(items, query, lambda r: [_text(r.get(f)) for f in fields])


def search_invoices(items: Iterable[Record], query: str) -> List[Record]:
    def haystacks(inv: Record) -> Sequence[str]:
        c = _client(inv)
        return (
            _text(inv.get("invoiceNumber") or inv.get("id")),
            f"{c.get('firstName') or ''} {c.get('lastName') or ''}".lower(),
            _text(c.get("email")),
        )

    return _search(items, query, haystacks)


def search_quotes(items: Iterable[Record], query: str) -> List[Record]:
    def haystacks(q: Record) -> Sequence[str]:
        c = _client(q)
        return (
            _text(q.get("reference") or q.get("quoteNumber") or q.get("id")),
            f"{c.get('firstName') or ''} {c.get('lastName') or ''}".lower(),
            _text(c.get("email")),
        )

    return _search(items, query, haystacks)


def search_users(items: Iterable[Record], query: str) -> List[Record]:
    def haystacks(u: Record) -> Sequence[str]:
        return (
            f"{u.get('firstName') or ''} {u.get('lastName') or ''}".lower(),
            _text(u.get("email")),
        )

    return _search(items, query, haystacks)


def search_clients(items: Iterable[Record], query: str) -> List[Record]:
    def haystacks(u: Record) -> Sequence[str]:
        return (
            f"{u.get('firstName') or ''} {u.get('lastName') or ''}".lower(),
            _text(u.get("email")),
            _text(u.get("phone")),
            _text(u.get("companyName")),
        )

    return _search(items, query, haystacks)


def search_engagements(items: Iterable[Record], query: str) -> List[Record]:
    def haystacks(e: Record) -> Sequence[str]:
        c = _client(e)
        return (
            _text(e.get("clientName") or c.get("firstName") or c.get("lastName")),
            _text(e.get("description")),
            _text(e.get("id")),
        )

    return _search(items, query, haystacks)


SEARCHERS: Mapping[str, Callable[[Iterable[Record], str], List[Record]]] = {
    "invoices": search_invoices,
    "quotes": search_quotes,
    "users": search_users,
    "clients": search_clients,
    "engagements": search_engagements,
}


def search_records(resource: str, items: Iterable[Record], query: str) -> List[Record]:
    """Search with the resource-specific matcher, else by id/name/description."""
    searcher = SEARCHERS.get(resource)
    if searcher:
        return searcher(items, query)
    return search_generic(items, query, ("id", "name", "description", "reference", "clientName"))
