# cobranza/services/alerts.py
"""
Alertas del tablero.

- cierre faltante (alta): par (día, cobrador) con movimientos de caja en la
  ventana y sin documento en `cierres` para (tenant, YYYYMMDD, cobrador).
- promesa vencida (media): préstamo con restante > 0, promesa de pago anterior
  a hoy (TZ del tenant) y no cumplida.

La existencia de cada cierre se consulta con una lectura puntual. Sólo se
memoriza "existe": un faltante se vuelve a consultar en la siguiente emisión
(puede haberse cargado entretanto). Si la lectura falla no hay alerta y
tampoco se memoriza nada.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from cobranza.constants import (
    COL_CASH_EVENTS,
    COL_CLOSINGS,
    COL_LOANS,
    NO_ACTOR,
    SEVERITY_RANK,
    AlertKind,
    AlertSeverity,
)
from cobranza.schemas.dashboard import AlertItem
from cobranza.services.aggregation import CashFilters, collection_of, to_movements
from cobranza.services.lifecycle import LiveView, ViewParams
from cobranza.services.merger import MergedSnapshot
from cobranza.services.sources import SourceSpec, cash_sources, outstanding_loans_source
from cobranza.store.live import LiveStore
from cobranza.utils.fields import (
    resolve_actor,
    resolve_amount,
    resolve_client_id,
    resolve_client_name,
    resolve_promise_date,
    resolve_promise_fulfilled,
)
from cobranza.utils.time_windows import compact_ymd, days_between, resolve_tenant_tz, today_in_tz

logger = logging.getLogger(__name__)

DayActor = Tuple[str, str]


def _as_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def overdue_promises(
    loans: Iterable[dict],
    today: str,
    tz: ZoneInfo,
    filters: Optional[CashFilters] = None,
) -> List[AlertItem]:
    filters = filters or CashFilters()
    out: List[AlertItem] = []
    for doc in loans:
        restante = resolve_amount({"monto": doc.get("restante")}) or 0.0
        if restante <= 0:
            continue
        promise = resolve_promise_date(doc, tz)
        if not promise or resolve_promise_fulfilled(doc):
            continue
        if promise >= today:
            continue

        route = doc.get("ruta_id")
        actor = resolve_actor(doc)
        if filters.route_id and str(route or "") != filters.route_id:
            continue
        if filters.actor_id and actor != filters.actor_id:
            continue

        stored = _as_int(doc.get("dias_atraso"))
        dias = stored if stored > 0 else days_between(promise, today)
        nombre = resolve_client_name(doc) or resolve_client_id(doc) or "Cliente"
        out.append(
            AlertItem(
                id=f"promesa:{doc['id']}",
                kind=AlertKind.OVERDUE_PROMISE,
                severity=AlertSeverity.MEDIUM,
                date=promise,
                message=f"Promesa vencida de {nombre} (restante {restante:g})",
                admin_id=actor,
                ruta_id=route,
                meta={
                    "prestamo_id": str(doc["id"]),
                    "cliente_id": resolve_client_id(doc),
                    "restante": restante,
                    "dias_atraso": dias,
                },
            )
        )
    out.sort(key=lambda a: (-a.meta["restante"], -a.meta["dias_atraso"]))
    return out


def missing_closing_alert(day: str, actor: str) -> AlertItem:
    return AlertItem(
        id=f"cierre:{day}:{actor}",
        kind=AlertKind.MISSING_CLOSING,
        severity=AlertSeverity.HIGH,
        date=day,
        message=f"Falta cierre de {actor} en {day}",
        admin_id=actor,
    )


def _tie_break(alert: AlertItem) -> Tuple[float, float, str]:
    meta = alert.meta or {}
    return (-float(meta.get("restante") or 0), -float(meta.get("dias_atraso") or 0), alert.id)


def combine_alerts(*groups: Iterable[AlertItem]) -> List[AlertItem]:
    """
    Unión deduplicada por id; severidad desc, fecha desc. En empate, las
    promesas conservan su orden (restante desc, días de atraso desc) y luego id asc.
    """
    seen: Set[str] = set()
    merged: List[AlertItem] = []
    for group in groups:
        for alert in group:
            if alert.id in seen:
                continue
            seen.add(alert.id)
            merged.append(alert)
    merged.sort(key=_tie_break)
    merged.sort(key=lambda a: (SEVERITY_RANK[a.severity], a.date), reverse=True)
    return merged


class ClosingChecker:
    """Lecturas puntuales a `cierres`, memorizando sólo los presentes."""

    def __init__(self, store: LiveStore):
        self.store = store
        self._present: Set[Tuple[str, str, str]] = set()

    def reset(self) -> None:
        self._present.clear()

    def missing(self, tenant_id: str, pairs: Iterable[DayActor]) -> List[DayActor]:
        out: List[DayActor] = []
        for day, actor in sorted(set(pairs)):
            key = (tenant_id, day, actor)
            if key in self._present:
                continue
            try:
                doc = self.store.point_read(
                    COL_CLOSINGS, tenant_id, date=compact_ymd(day), admin=actor
                )
            except Exception as e:
                logger.warning(
                    "Chequeo de cierre falló (tenant=%s día=%s admin=%s): %s",
                    tenant_id, day, actor, e,
                )
                continue
            if doc is None:
                out.append((day, actor))
            else:
                self._present.add(key)
        return out


class AlertsView(LiveView):
    def __init__(
        self,
        store: LiveStore,
        today_fn: Callable[[ZoneInfo], str] = today_in_tz,
    ):
        super().__init__(store)
        self.today_fn = today_fn
        self.checker = ClosingChecker(store)

    def sources(self, params: ViewParams) -> List[SourceSpec]:
        return cash_sources(
            params.tenant_id,
            params.date_from,
            params.date_to,
            route_id=params.route_id,
            actor_id=params.actor_id,
            include_direct_loans=False,
        ) + [outstanding_loans_source(params.tenant_id)]

    def reset_state(self) -> None:
        self.checker.reset()

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> List[AlertItem]:
        filters = CashFilters(route_id=params.route_id, actor_id=params.actor_id)
        cash_docs = [d for d in snapshot.docs if collection_of(d) == COL_CASH_EVENTS]
        loans = [d for d in snapshot.docs if collection_of(d) == COL_LOANS]

        pairs = {
            (m.day, m.actor_id or NO_ACTOR)
            for m in to_movements(cash_docs)
            if params.date_from <= m.day <= params.date_to and filters.matches(m)
        }
        missing = [
            missing_closing_alert(day, actor)
            for day, actor in self.checker.missing(params.tenant_id, pairs)
        ]

        tz = resolve_tenant_tz(params.tenant_id)
        overdue = overdue_promises(loans, self.today_fn(tz), tz, filters)
        return combine_alerts(missing, overdue)
