# cobranza/services/aggregation.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from cobranza.constants import (
    COL_CASH_EVENTS,
    COL_LOANS,
    DIRECT_LOAN_SOURCE,
    RAW_ADMIN_EXPENSE,
    RAW_LOAN,
    CanonicalKind,
)
from cobranza.services.balance import closing_balance
from cobranza.services.merger import KEY_FIELD
from cobranza.utils.fields import (
    resolve_actor,
    resolve_amount,
    resolve_client_id,
    resolve_client_name,
    resolve_event_note,
    resolve_loan_id,
    resolve_timestamp_ms,
)
from cobranza.utils.normalize import normalize_kind
from cobranza.utils.time_windows import parse_ymd

BucketKey = Tuple[str, Optional[str], Optional[str]]   # (día, ruta, cobrador)
EntityKey = Tuple[Optional[str], Optional[str]]        # (ruta, cobrador)


@dataclass(frozen=True)
class CashMovement:
    """Evento de caja ya normalizado."""
    key: str
    kind: CanonicalKind
    raw_kind: str
    amount: float
    day: str
    route_id: Optional[str]
    actor_id: Optional[str]
    route_agnostic: bool = False
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    loan_id: Optional[str] = None
    note: Optional[str] = None
    ts_ms: Optional[int] = None


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def collection_of(doc: dict) -> str:
    key = doc.get(KEY_FIELD) or ""
    return key.split(":", 1)[0] if ":" in key else COL_CASH_EVENTS


def is_direct_loan(doc: dict) -> bool:
    return collection_of(doc) == COL_LOANS and doc.get("source") == DIRECT_LOAN_SOURCE


def to_movement(doc: dict) -> Optional[CashMovement]:
    """
    Documento crudo → CashMovement. Devuelve None (sin lanzar) para documentos
    con tipo no reconocido, sin monto o sin día operativo válido.
    """
    key = doc.get(KEY_FIELD) or f"{COL_CASH_EVENTS}:{doc.get('id')}"

    if is_direct_loan(doc):
        # préstamos cargados directo en cartera: siempre 'prestado', sin ruta
        raw_amount = doc.get("total_prestamo")
        if raw_amount is None:
            raw_amount = doc.get("monto_total")
        amount = resolve_amount({"monto": raw_amount})
        day = doc.get("fecha_inicio")
        if amount is None or not parse_ymd(day):
            return None
        return CashMovement(
            key=key,
            kind=CanonicalKind.LOAN_DISBURSEMENT,
            raw_kind=RAW_LOAN,
            amount=amount,
            day=day[:10],
            route_id=None,
            actor_id=_clean(doc.get("creado_por")),
            route_agnostic=True,
            client_id=resolve_client_id(doc),
            client_name=_clean(doc.get("cliente_alias") or doc.get("concepto")) or resolve_client_name(doc),
            loan_id=_clean(doc.get("id")),
            ts_ms=resolve_timestamp_ms(doc),
        )

    raw_kind = doc.get("tipo")
    kind = normalize_kind(raw_kind)
    if kind is None:
        return None
    amount = resolve_amount(doc)
    day = doc.get("operational_date")
    if amount is None or not parse_ymd(day):
        return None

    route_id = _clean(doc.get("ruta_id"))
    raw_key = str(raw_kind).strip().lower()
    return CashMovement(
        key=key,
        kind=kind,
        raw_kind=raw_key,
        amount=amount,
        day=day[:10],
        route_id=route_id,
        actor_id=resolve_actor(doc),
        # gasto de admin sin ruta: cuenta para cualquier ruta filtrada
        route_agnostic=(raw_key == RAW_ADMIN_EXPENSE and route_id is None),
        client_id=resolve_client_id(doc),
        client_name=resolve_client_name(doc),
        loan_id=resolve_loan_id(doc),
        note=resolve_event_note(doc),
        ts_ms=resolve_timestamp_ms(doc),
    )


def to_movements(docs: Iterable[dict]) -> list[CashMovement]:
    out = []
    for doc in docs:
        m = to_movement(doc)
        if m is not None:
            out.append(m)
    return out


@dataclass(frozen=True)
class CashFilters:
    route_id: Optional[str] = None
    actor_id: Optional[str] = None

    def matches(self, m: CashMovement) -> bool:
        if self.actor_id and m.actor_id != self.actor_id:
            return False
        if self.route_id and m.route_id != self.route_id and not m.route_agnostic:
            return False
        return True

    def route_for(self, m: CashMovement) -> Optional[str]:
        if m.route_id is None and m.route_agnostic:
            return self.route_id
        return m.route_id


@dataclass
class DayAccumulator:
    opening: float = 0.0
    collection: float = 0.0
    loan: float = 0.0
    expense: float = 0.0
    incoming: float = 0.0
    outgoing: float = 0.0
    count: int = 0
    by_kind: Dict[CanonicalKind, float] = field(default_factory=dict)

    def add(self, kind: CanonicalKind, amount: float) -> None:
        if kind is CanonicalKind.OPENING:
            self.opening += amount
        elif kind is CanonicalKind.COLLECTION:
            self.collection += amount
        elif kind is CanonicalKind.LOAN_DISBURSEMENT:
            self.loan += amount
        elif kind is CanonicalKind.EXPENSE:
            self.expense += amount
        elif kind is CanonicalKind.INCOMING:
            self.incoming += amount
        elif kind is CanonicalKind.OUTGOING:
            self.outgoing += amount
        self.by_kind[kind] = self.by_kind.get(kind, 0.0) + amount
        self.count += 1

    def merge(self, other: "DayAccumulator") -> None:
        self.opening += other.opening
        self.collection += other.collection
        self.loan += other.loan
        self.expense += other.expense
        self.incoming += other.incoming
        self.outgoing += other.outgoing
        self.count += other.count
        for kind, amount in other.by_kind.items():
            self.by_kind[kind] = self.by_kind.get(kind, 0.0) + amount

    def closing(self, opening: float) -> float:
        return closing_balance(
            opening=opening,
            collection=self.collection,
            incoming=self.incoming,
            outgoing=self.outgoing,
            loan=self.loan,
            expense=self.expense,
        )


def aggregate(
    movements: Iterable[CashMovement],
    filters: CashFilters,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Dict[BucketKey, DayAccumulator]:
    """Una sola pasada: (día, ruta, cobrador) → acumulador. Es la verdad de base."""
    buckets: Dict[BucketKey, DayAccumulator] = defaultdict(DayAccumulator)
    for m in movements:
        if date_from and m.day < date_from:
            continue
        if date_to and m.day > date_to:
            continue
        if not filters.matches(m):
            continue
        buckets[(m.day, filters.route_for(m), m.actor_id)].add(m.kind, m.amount)
    return dict(buckets)


def rollup(
    buckets: Dict[BucketKey, DayAccumulator],
    keep_route: bool = False,
    keep_actor: bool = False,
) -> Dict[BucketKey, DayAccumulator]:
    """Segunda reducción sobre el mapa de buckets (nunca sobre eventos crudos)."""
    out: Dict[BucketKey, DayAccumulator] = defaultdict(DayAccumulator)
    for (day, route, actor), acc in buckets.items():
        key = (day, route if keep_route else None, actor if keep_actor else None)
        out[key].merge(acc)
    return dict(out)


def by_entity(buckets: Dict[BucketKey, DayAccumulator]) -> Dict[EntityKey, Dict[str, DayAccumulator]]:
    """(día, ruta, cobrador) → {(ruta, cobrador): {día: acumulador}}."""
    out: Dict[EntityKey, Dict[str, DayAccumulator]] = defaultdict(dict)
    for (day, route, actor), acc in buckets.items():
        out[(route, actor)][day] = acc
    return dict(out)
