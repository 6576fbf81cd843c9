"""Readers for the server-computed accounting reports.

Figures are computed by the backend; these readers only resolve the field
naming variants (English, French, FEC) into one shape. A derived figure is
only computed when the server left it out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from ..errors import ValidationError
from .normalize import first_defined, parse_amount

PERIODS = ("month", "quarter", "year", "all")
PERIOD_LABELS = {
    "month": "Ce mois",
    "quarter": "Ce trimestre",
    "year": "Cette année",
    "all": "Tout",
}


def period_param(period: Optional[str]) -> Optional[str]:
    p = (period or "all").strip().lower()
    if p not in PERIODS:
        raise ValidationError(f"Période inconnue : {period!r}. Valeurs : {', '.join(PERIODS)}.")
    return None if p == "all" else p


def _amount(value: Any) -> Decimal:
    return parse_amount(value) or Decimal("0")


def _resolve(payload: Mapping[str, Any], *keys: str) -> Optional[Decimal]:
    value = first_defined(payload, *keys)
    return None if value is None else _amount(value)


@dataclass
class ReportLine:
    label: str
    amount: Decimal
    date: Optional[str] = None


@dataclass
class ProfitLoss:
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    details: List[ReportLine] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "ProfitLoss":
        data = payload or {}
        revenue = _resolve(data, "revenue", "totalRevenue", "chiffreAffaires") or Decimal("0")
        expenses = _resolve(data, "expenses", "totalExpenses", "charges") or Decimal("0")
        profit = _resolve(data, "profit", "netProfit", "resultat")
        details = []
        raw = data.get("details")
        if isinstance(raw, list):
            for i, item in enumerate(raw):
                details.append(
                    ReportLine(
                        label=str(item.get("label") or item.get("category") or item.get("name") or f"Ligne {i + 1}"),
                        amount=_amount(item.get("amount") or item.get("value")),
                    )
                )
        return cls(
            revenue=revenue,
            expenses=expenses,
            profit=profit if profit is not None else revenue - expenses,
            details=details,
        )


@dataclass
class TvaReport:
    collected: Decimal
    deductible: Decimal
    due: Decimal
    details: List[ReportLine] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "TvaReport":
        data = payload or {}
        collected = _resolve(data, "tvaCollected", "tvaCollectee", "collected") or Decimal("0")
        deductible = _resolve(data, "tvaDeductible", "deductible") or Decimal("0")
        due = _resolve(data, "tvaDue", "tvaADeclarer", "due")
        details = []
        raw = data.get("details")
        if isinstance(raw, list):
            for item in raw:
                rate = first_defined(item, "rate", "taux")
                details.append(
                    ReportLine(
                        label=f"{rate if rate is not None else '-'}%",
                        amount=_amount(item.get("amount") or item.get("montant")),
                    )
                )
        return cls(
            collected=collected,
            deductible=deductible,
            due=due if due is not None else collected - deductible,
            details=details,
        )


@dataclass
class CashFlow:
    inflow: Decimal
    outflow: Decimal
    balance: Decimal
    movements: List[ReportLine] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "CashFlow":
        data = payload or {}
        inflow = _resolve(data, "inflow", "encaissements", "totalIn") or Decimal("0")
        outflow = _resolve(data, "outflow", "decaissements", "totalOut") or Decimal("0")
        balance = _resolve(data, "balance", "solde", "net")
        movements = []
        raw = data.get("movements")
        if isinstance(raw, list):
            for i, item in enumerate(raw):
                movements.append(
                    ReportLine(
                        label=str(item.get("description") or item.get("label") or f"Mouvement {i + 1}"),
                        amount=_amount(item.get("amount")),
                        date=item.get("date") or None,
                    )
                )
        return cls(
            inflow=inflow,
            outflow=outflow,
            balance=balance if balance is not None else inflow - outflow,
            movements=movements,
        )


@dataclass
class JournalEntry:
    reference: str
    date: Optional[str]
    label: str
    debit: Optional[Decimal]
    credit: Optional[Decimal]
    amount: Optional[Decimal]
    account: Optional[str]

    @classmethod
    def from_payload(cls, entry: Mapping[str, Any], index: int = 0) -> "JournalEntry":
        debit = _resolve(entry, "debit", "montantDebit")
        credit = _resolve(entry, "credit", "montantCredit")
        amount = None
        # A bare amount is only meaningful when neither side is given.
        if entry.get("debit") is None and entry.get("credit") is None:
            amount = _resolve(entry, "amount")
        account = None
        if entry.get("compteNum"):
            account = str(entry["compteNum"])
            if entry.get("compteLib"):
                account = f"{account} - {entry['compteLib']}"
        return cls(
            reference=str(entry.get("reference") or entry.get("journalCode") or entry.get("pieceRef") or f"#{index + 1}"),
            date=entry.get("date") or entry.get("ecritureDate") or entry.get("createdAt"),
            label=str(entry.get("label") or entry.get("ecritureLib") or entry.get("description") or "-"),
            debit=debit,
            credit=credit,
            amount=amount,
            account=account,
        )


def journal_entries(payload: Any) -> List[JournalEntry]:
    rows = payload if isinstance(payload, list) else []
    return [JournalEntry.from_payload(e, i) for i, e in enumerate(rows) if isinstance(e, Mapping)]
