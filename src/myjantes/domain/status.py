"""Status catalogues and normalisation across English and French spellings.

The backend is not consistent about status spelling: the same invoice can
come back as ``paid``, ``payée`` or ``payé`` depending on which code path
wrote it. Everything on this side compares canonical English values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class StatusOption:
    value: str
    label: str
    tone: str = "neutral"
    aliases: Tuple[str, ...] = ()


def _opt(value: str, label: str, tone: str, *aliases: str) -> StatusOption:
    return StatusOption(value=value, label=label, tone=tone, aliases=aliases)


CATALOGUES: Dict[str, Tuple[StatusOption, ...]] = {
    "quote": (
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("accepted", "Accepté", "accepted", "accepté", "accepte", "approved"),
        _opt("rejected", "Refusé", "rejected", "refusé", "refuse", "refused"),
        _opt("completed", "Terminé", "info", "terminé", "termine"),
        _opt("in_progress", "En cours", "progress", "en_cours"),
        _opt("cancelled", "Annulé", "neutral", "annulé", "annule", "canceled"),
    ),
    "invoice": (
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("paid", "Payée", "accepted", "payée", "payé", "payee", "paye"),
        _opt("sent", "Envoyée", "info", "envoyée", "envoyee"),
        _opt("overdue", "En retard", "rejected", "en_retard"),
        _opt("draft", "Brouillon", "neutral", "brouillon"),
        _opt("cancelled", "Annulée", "neutral", "annulée", "annulee", "canceled"),
    ),
    "reservation": (
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("confirmed", "Confirmée", "accepted", "confirmée", "confirmé", "confirmee", "confirme"),
        _opt("in_progress", "En cours", "progress", "en_cours"),
        _opt("completed", "Terminée", "info", "terminée", "terminé", "terminee"),
        _opt("cancelled", "Annulée", "neutral", "annulée", "annulee", "canceled"),
        _opt("no_show", "Absent", "rejected", "absent"),
    ),
    "payment": (
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("paid", "Payé", "accepted", "payé", "payée", "paye"),
        _opt("failed", "Échoué", "rejected", "échoué", "echoue"),
        _opt("refunded", "Remboursé", "info", "remboursé", "rembourse"),
        _opt("cancelled", "Annulé", "neutral", "annulé", "annule", "canceled"),
    ),
    "repair_order": (
        _opt("draft", "Brouillon", "neutral", "brouillon"),
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("in_progress", "En cours", "progress", "en_cours"),
        _opt("completed", "Terminé", "accepted", "terminé", "termine"),
        _opt("cancelled", "Annulé", "rejected", "annulé", "annule", "canceled"),
    ),
    "credit_note": (
        _opt("draft", "Brouillon", "neutral", "brouillon"),
        _opt("issued", "Émis", "info", "émis", "emis"),
        _opt("applied", "Appliqué", "accepted", "appliqué", "applique"),
        _opt("cancelled", "Annulé", "rejected", "annulé", "annule", "canceled"),
    ),
    "engagement": (
        _opt("active", "Actif", "accepted", "actif"),
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("completed", "Terminé", "info", "terminé", "termine"),
        _opt("cancelled", "Annulé", "neutral", "annulé", "annule", "canceled"),
        _opt("expired", "Expiré", "rejected", "expiré", "expire"),
    ),
    "garage": (
        _opt("active", "Actif", "accepted", "actif"),
        _opt("inactive", "Inactif", "neutral", "inactif"),
        _opt("suspended", "Suspendu", "rejected", "suspendu"),
    ),
    "review": (
        _opt("published", "Publié", "accepted", "publié", "publie"),
        _opt("pending", "En attente", "pending", "en_attente"),
        _opt("rejected", "Rejeté", "rejected", "rejeté", "rejete"),
    ),
}


def _build_index() -> Dict[str, Dict[str, StatusOption]]:
    index: Dict[str, Dict[str, StatusOption]] = {}
    for kind, options in CATALOGUES.items():
        lookup: Dict[str, StatusOption] = {}
        for opt in options:
            lookup[opt.value] = opt
            for alias in opt.aliases:
                lookup[alias] = opt
        index[kind] = lookup
    return index


_INDEX = _build_index()


def _lookup(kind: str) -> Dict[str, StatusOption]:
    try:
        return _INDEX[kind]
    except KeyError:
        raise KeyError(f"Unknown status kind: {kind!r}") from None


def _clean(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip().lower()


def normalize_status(kind: str, raw: Any, default: Optional[str] = None) -> Optional[str]:
    lookup = _lookup(kind)
    s = _clean(raw)
    if not s:
        return default
    opt = lookup.get(s)
    return opt.value if opt else s


def status_info(kind: str, raw: Any) -> StatusOption:
    lookup = _lookup(kind)
    s = _clean(raw)
    opt = lookup.get(s)
    if opt:
        return opt
    label = str(raw).strip() if raw not in (None, "") else "Inconnu"
    return StatusOption(value=s, label=label or "Inconnu")


def filter_by_status(items: Iterable[Mapping[str, Any]], kind: str, status: Optional[str]) -> List[Mapping[str, Any]]:
    """Keep records whose normalised status matches the normalised filter."""
    records = list(items)
    if not status:
        return records
    wanted = normalize_status(kind, status)
    return [r for r in records if normalize_status(kind, r.get("status")) == wanted]


def count_by_status(items: Iterable[Mapping[str, Any]], kind: str, default: str = "pending") -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for r in items:
        s = normalize_status(kind, r.get("status"), default=default) or default
        counts[s] = counts.get(s, 0) + 1
    return counts
