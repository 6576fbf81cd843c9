import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from ..logging import get_logger

_LOG = get_logger("normalize")

_NNBSP = "\u202f"
_NBSP = "\u00a0"


def parse_amount(val: Any) -> Optional[Decimal]:
    """Parse an amount into a Decimal.

    Handles inputs like '14,70', '14.70', '1.470,00', '1,470.00', '1 234,50 €',
    numbers, etc. Returns None when nothing numeric is found.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float, Decimal)):
        try:
            return Decimal(str(val))
        except InvalidOperation:
            return None
    s = str(val).strip()
    for ch in (" ", _NBSP, _NNBSP, "€"):
        s = s.replace(ch, "")
    if not s:
        return None
    has_dot = "." in s
    has_comma = "," in s
    if has_dot and has_comma:
        if s.rfind(",") > s.rfind("."):
            s2 = s.replace(".", "").replace(",", ".")
        else:
            s2 = s.replace(",", "")
    elif has_comma:
        if re.search(r",\d{1,2}$", s):
            s2 = s.replace(",", ".")
        else:
            s2 = s.replace(",", "")
    elif has_dot and not re.search(r"\.\d{1,2}$", s):
        # Dots only as thousands separators: 1.234.567
        s2 = s.replace(".", "")
    else:
        s2 = s

    m = re.search(r"-?\d+(?:\.\d+)?", s2)
    if not m:
        return None
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        _LOG.debug(f"Unparseable amount: {val!r}")
        return None


def _is_set(value: Any) -> bool:
    # Mirrors a JavaScript `||` chain: None, "", 0 and False fall through.
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float, Decimal)) and value == 0:
        return False
    return True


def first_value(record: Optional[Mapping[str, Any]], *keys: str) -> Any:
    if not record:
        return None
    for key in keys:
        value = record.get(key)
        if _is_set(value):
            return value
    return None


def first_defined(record: Optional[Mapping[str, Any]], *keys: str) -> Any:
    """Like first_value but only skips missing/None (a `??` chain)."""
    if not record:
        return None
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def first_amount(record: Optional[Mapping[str, Any]], *keys: str) -> Decimal:
    return parse_amount(first_value(record, *keys)) or Decimal("0")


def format_currency(value: Any) -> str:
    """Format an amount the fr-FR way: '1 234,56 €'."""
    num = parse_amount(value)
    if num is None:
        num = Decimal("0")
    s = f"{num:,.2f}"
    s = s.replace(",", "_").replace(".", ",").replace("_", _NNBSP)
    return f"{s}{_NBSP}€"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        v = str(value).strip()
        if not v:
            return None
        if v.endswith("Z"):
            v = v[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(v)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_date(value: Any, *, with_time: bool = False) -> str:
    dt = parse_datetime(value)
    if dt is None:
        return str(value) if value else "-"
    if with_time:
        return dt.strftime("%d/%m/%Y %H:%M")
    return dt.strftime("%d/%m/%Y")


def to_iso_date(value: Any) -> Optional[str]:
    """Normalize common date strings to ISO YYYY-MM-DD.

    Supports:
    - DD/MM/YYYY, D.M.YYYY, DD-MM-YY, etc.
    - YYYY-MM-DD and full ISO datetimes
    - Two-digit years map to 19xx for >=70 else 20xx
    """
    if not value:
        return None
    v = str(value).strip()
    if not v:
        return None
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", v):
        return v
    m = re.fullmatch(r"(\d{1,2})[\./-](\d{1,2})[\./-](\d{2,4})", v)
    if m:
        d, mth, y = m.groups()
        if len(y) == 2:
            y = ("20" + y) if int(y) < 70 else ("19" + y)
        try:
            return date(int(y), int(mth), int(d)).isoformat()
        except ValueError:
            return None
    dt = parse_datetime(v)
    return dt.date().isoformat() if dt else None


def full_name(record: Optional[Mapping[str, Any]]) -> str:
    if not record:
        return ""
    client = record.get("client") if isinstance(record.get("client"), Mapping) else {}
    first = client.get("firstName") or record.get("firstName") or ""
    last = client.get("lastName") or record.get("lastName") or ""
    return f"{first} {last}".strip()


def initials(first: Optional[str], last: Optional[str]) -> str:
    f = (first or "")[:1].upper()
    l = (last or "")[:1].upper()
    return (f + l) or "?"
