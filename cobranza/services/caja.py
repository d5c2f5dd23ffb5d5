# cobranza/services/caja.py
from __future__ import annotations

from typing import Dict, List, Optional

from cobranza.services.aggregation import (
    CashFilters,
    CashMovement,
    DayAccumulator,
    aggregate,
    to_movements,
)
from cobranza.services.balance import closing_balance
from cobranza.services.carry_forward import (
    BY_ACTOR,
    TOTAL,
    CarryForwardResolver,
    DayBalance,
)
from cobranza.services.lifecycle import LiveView, ViewParams
from cobranza.services.merger import MergedSnapshot
from cobranza.services.sources import SourceSpec, cash_sources
from cobranza.constants import NO_ACTOR
from cobranza.schemas.dashboard import (
    CajaAggregate,
    CajaResponse,
    DailyActorRow,
    DailySummary,
    DayBalanceOut,
    MovimientoCaja,
)
from cobranza.store.live import LiveStore

TOTAL_ROW = "TOTAL"


def _day_out(b: DayBalance) -> DayBalanceOut:
    a = b.acc
    return DayBalanceOut(
        date=b.day,
        inicial=b.opening,
        cobrado=a.collection,
        prestado=a.loan,
        gastos=a.expense,
        ingresos=a.incoming,
        retiros=a.outgoing,
        caja_final=b.closing,
        movimientos=a.count,
    )


def _actor_row(admin_id: str, b: DayBalance) -> DailyActorRow:
    a = b.acc
    return DailyActorRow(
        admin_id=admin_id,
        inicial=b.opening,
        cobrado=a.collection,
        prestado=a.loan,
        gastos=a.expense,
        ingresos=a.incoming,
        retiros=a.outgoing,
        caja_final=b.closing,
    )


def _row(m: CashMovement, tenant_id: str, route_id: Optional[str]) -> MovimientoCaja:
    return MovimientoCaja(
        id=m.key,
        tenant_id=tenant_id,
        admin=m.actor_id,
        ruta_id=route_id,
        tipo=m.raw_kind,
        kind=m.kind.value,
        monto=m.amount,
        operational_date=m.day,
        cliente_id=m.client_id,
        cliente_nombre=m.client_name,
        prestamo_id=m.loan_id,
    )


def window_aggregate(balances: List[DayBalance]) -> CajaAggregate:
    """
    Agregado de la ventana: inicial = inicial resuelta del primer día, sumas
    de todas las categorías, caja final por la fórmula única.
    """
    total = DayAccumulator()
    by_day: Dict[str, float] = {}
    for b in balances:
        total.merge(b.acc)
        if b.acc.collection:
            by_day[b.day] = b.acc.collection
    opening = balances[0].opening if balances else 0.0
    return CajaAggregate(
        inicial=opening,
        cobrado=total.collection,
        prestado=total.loan,
        gastos=total.expense,
        ingresos=total.incoming,
        retiros=total.outgoing,
        caja_final=closing_balance(
            opening=opening,
            collection=total.collection,
            incoming=total.incoming,
            outgoing=total.outgoing,
            loan=total.loan,
            expense=total.expense,
        ),
        by_day=by_day,
        by_kind={kind.value: amount for kind, amount in total.by_kind.items()},
        days=[_day_out(b) for b in balances],
    )


class CashWindowView(LiveView):
    def __init__(self, store: LiveStore, resolver: Optional[CarryForwardResolver] = None):
        super().__init__(store)
        self.resolver = resolver or CarryForwardResolver(store)

    def sources(self, params: ViewParams) -> List[SourceSpec]:
        return cash_sources(
            params.tenant_id,
            params.date_from,
            params.date_to,
            route_id=params.route_id,
            actor_id=params.actor_id,
        )

    @staticmethod
    def filters_for(params: ViewParams) -> CashFilters:
        return CashFilters(route_id=params.route_id, actor_id=params.actor_id)


class CajaView(CashWindowView):
    """Movimientos de caja + agregado de la ventana con arrastre de inicial."""

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> CajaResponse:
        filters = self.filters_for(params)
        movements = [
            m for m in to_movements(snapshot.docs)
            if params.date_from <= m.day <= params.date_to and filters.matches(m)
        ]
        buckets = aggregate(movements, filters, params.date_from, params.date_to)
        balances = self.resolver.resolve_total(params.tenant_id, filters, params.date_from, buckets)

        movements.sort(key=lambda m: (m.day, m.ts_ms or 0, m.key))
        rows = [_row(m, params.tenant_id, filters.route_for(m)) for m in movements]
        return CajaResponse(rows=rows, aggregate=window_aggregate(balances))


class CierresView(CashWindowView):
    """Cierres por día: fila TOTAL + desglose por cobrador, día descendente."""

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> List[DailySummary]:
        filters = self.filters_for(params)
        buckets = aggregate(to_movements(snapshot.docs), filters, params.date_from, params.date_to)

        resolved = self.resolver.resolve(
            params.tenant_id, filters, params.date_from, buckets, (TOTAL, BY_ACTOR)
        )
        totals = resolved[TOTAL].get((None, None), [])
        per_actor = resolved[BY_ACTOR]

        actors_by_day: Dict[str, List[DailyActorRow]] = {}
        for (_, actor), balances in per_actor.items():
            for b in balances:
                actors_by_day.setdefault(b.day, []).append(_actor_row(actor or NO_ACTOR, b))

        out = [
            DailySummary(
                date=b.day,
                totals=_actor_row(TOTAL_ROW, b),
                admins=sorted(actors_by_day.get(b.day, []), key=lambda r: r.admin_id),
            )
            for b in totals
        ]
        out.sort(key=lambda s: s.date, reverse=True)
        return out

