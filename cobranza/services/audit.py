# cobranza/services/audit.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from cobranza.constants import COL_AUDIT_LOGS, COL_CASH_EVENTS, AuditType
from cobranza.schemas.dashboard import AuditRow
from cobranza.services.aggregation import collection_of
from cobranza.services.lifecycle import LiveView, ViewParams
from cobranza.services.merger import MergedSnapshot
from cobranza.services.sources import SourceSpec, audit_log_source, cash_sources
from cobranza.store.live import LiveStore
from cobranza.utils.fields import (
    resolve_actor,
    resolve_amount,
    resolve_client_name,
    resolve_event_note,
    resolve_loan_value,
    resolve_note,
    resolve_timestamp_ms,
)
from cobranza.utils.normalize import audit_type
from cobranza.utils.time_windows import parse_ymd

# Detalle por tipo: cobro y préstamo nunca llevan texto (monto y cliente ya
# tienen su columna); el resto muestra sólo la nota, si la hay.
_NO_LABEL = {AuditType.COLLECTION, AuditType.LOAN_DISBURSEMENT}

# tipos que el respaldo sintético toma de caja
_CASH_AUDIT_TYPES = {
    AuditType.COLLECTION,
    AuditType.LOAN_DISBURSEMENT,
    AuditType.ADMIN_EXPENSE,
    AuditType.COLLECTOR_EXPENSE,
    AuditType.INCOMING,
    AuditType.OUTGOING,
    AuditType.OPENING,
}


def build_label(type_: AuditType, message: Optional[str]) -> str:
    if type_ in _NO_LABEL:
        return ""
    return (message or "").strip()


def _day_ms(day: Optional[str]) -> int:
    d = parse_ymd(day)
    if d is None:
        return 0
    return int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp() * 1000)


def _date_of(doc: dict, ts: Optional[int]) -> str:
    for name in ("operational_date", "date"):
        value = doc.get(name)
        if isinstance(value, str) and parse_ymd(value):
            return value[:10]
    if ts is not None:
        return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).date().isoformat()
    return ""


def _loan_value(doc: dict, type_: AuditType, amount: Optional[float]) -> Optional[float]:
    value = resolve_loan_value(doc)
    if value is None and type_ is AuditType.LOAN_DISBURSEMENT:
        return amount
    return value


def audit_row_from_log(doc: dict) -> AuditRow:
    type_ = audit_type(doc.get("type") or doc.get("tipo") or doc.get("event_type"))
    amount = resolve_amount(doc)
    ts = resolve_timestamp_ms(doc)
    date = _date_of(doc, ts)
    message = resolve_note(doc)
    return AuditRow(
        id=str(doc["id"]),
        tenant_id=doc.get("tenant_id"),
        type=type_,
        ts=ts if ts is not None else _day_ms(date),
        date=date,
        admin=resolve_actor(doc),
        ruta_id=doc.get("ruta_id"),
        cliente_nombre=resolve_client_name(doc),
        prestamo_valor=_loan_value(doc, type_, amount),
        amount=amount,
        message=message,
        label=build_label(type_, message),
    )


def synth_row_from_event(doc: dict) -> Optional[AuditRow]:
    """Movimiento de caja → fila de auditoría sintética. None si no aplica."""
    type_ = audit_type(doc.get("tipo"))
    if type_ not in _CASH_AUDIT_TYPES:
        return None
    amount = resolve_amount(doc)
    ts = resolve_timestamp_ms(doc)
    date = _date_of(doc, ts)
    message = resolve_event_note(doc)
    return AuditRow(
        id=f"synth:{doc['id']}",
        tenant_id=doc.get("tenant_id"),
        type=type_,
        ts=ts if ts is not None else _day_ms(date),
        date=date,
        admin=resolve_actor(doc),
        ruta_id=doc.get("ruta_id"),
        cliente_nombre=resolve_client_name(doc),
        prestamo_valor=_loan_value(doc, type_, amount),
        amount=amount,
        message=message,
        label=build_label(type_, message),
    )


def sort_audit(rows: List[AuditRow]) -> List[AuditRow]:
    return sorted(rows, key=lambda r: (-r.ts, r.id))


class AuditView(LiveView):
    """
    Auditoría de la ventana. Si en esta suscripción apareció al menos un
    registro de `audit_logs`, se usa sólo esa fuente; si no, filas sintéticas
    desde caja. Nunca se mezclan.
    """

    def __init__(self, store: LiveStore, type_filter: Optional[AuditType] = None):
        super().__init__(store)
        self.type_filter = AuditType(type_filter) if type_filter else None
        self._got_audit = False

    def sources(self, params: ViewParams) -> List[SourceSpec]:
        return [
            audit_log_source(
                params.tenant_id, params.date_from, params.date_to,
                route_id=params.route_id, actor_id=params.actor_id,
            ),
        ] + cash_sources(
            params.tenant_id,
            params.date_from,
            params.date_to,
            route_id=params.route_id,
            actor_id=params.actor_id,
            include_direct_loans=False,
        )

    def reset_state(self) -> None:
        self._got_audit = False

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> List[AuditRow]:
        logs = [d for d in snapshot.docs if collection_of(d) == COL_AUDIT_LOGS]
        if logs:
            self._got_audit = True

        if self._got_audit:
            rows = [audit_row_from_log(d) for d in logs]
        else:
            rows = []
            for d in snapshot.docs:
                if collection_of(d) != COL_CASH_EVENTS:
                    continue
                row = synth_row_from_event(d)
                if row is not None:
                    rows.append(row)

        if self.type_filter:
            rows = [r for r in rows if r.type is self.type_filter]
        return sort_audit(rows)
