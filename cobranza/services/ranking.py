# cobranza/services/ranking.py
from __future__ import annotations

import math
from typing import Callable, Dict, List, Optional, Tuple

from cobranza.config import HEALTH_EPSILON
from cobranza.constants import NO_ACTOR, RankingSortKey
from cobranza.schemas.dashboard import RouteRankingRow
from cobranza.services.aggregation import (
    DayAccumulator,
    EntityKey,
    aggregate,
    to_movements,
)
from cobranza.services.balance import closing_balance
from cobranza.services.caja import CashWindowView
from cobranza.services.carry_forward import BY_PAIR, CarryForwardResolver, DayBalance
from cobranza.services.lifecycle import ViewParams
from cobranza.services.merger import MergedSnapshot
from cobranza.store.live import LiveStore


def health_score(
    collection: float,
    loan: float,
    expense: float,
    outgoing: float,
    eps: float = HEALTH_EPSILON,
) -> float:
    """
    Score 0..100 de salud de una ruta/cobrador en la ventana.

    Heurística de negocio (no es un modelo validado y puede cambiar):
      base      = tanh(cobrado / (prestado + ε)) * 85
      penal.    = gastos / (cobrado + ε) * 30 + retiros / (cobrado + ε) * 20
      score     = clamp(base - penalizaciones, 0, 100)
    """
    efficiency = collection / (loan + eps)
    base = math.tanh(efficiency) * 85
    expense_penalty = (expense / (collection + eps)) * 30
    outgoing_penalty = (outgoing / (collection + eps)) * 20
    score = base - expense_penalty - outgoing_penalty
    if math.isnan(score):
        return 0.0
    return max(0.0, min(100.0, score))


def _label(route: Optional[str], actor: Optional[str]) -> str:
    return f"{route or 'Sin ruta'} / {actor or NO_ACTOR}"


def ranking_row(key: EntityKey, balances: List[DayBalance]) -> RouteRankingRow:
    route, actor = key
    total = DayAccumulator()
    for b in balances:
        total.merge(b.acc)
    opening = balances[0].opening if balances else 0.0
    return RouteRankingRow(
        ruta_id=route,
        admin=actor,
        label=_label(route, actor),
        apertura=total.opening,
        cobrado=total.collection,
        prestado=total.loan,
        ingresos=total.incoming,
        retiros=total.outgoing,
        gastos=total.expense,
        inicial=opening,
        caja_final=closing_balance(
            opening=opening,
            collection=total.collection,
            incoming=total.incoming,
            outgoing=total.outgoing,
            loan=total.loan,
            expense=total.expense,
        ),
        movimientos=total.count,
        score=health_score(total.collection, total.loan, total.expense, total.outgoing),
    )


_SORT_VALUE: Dict[RankingSortKey, Callable[[RouteRankingRow], float]] = {
    RankingSortKey.SCORE: lambda r: r.score,
    RankingSortKey.COBRADO: lambda r: r.cobrado,
    RankingSortKey.CAJA: lambda r: r.caja_final,
    RankingSortKey.PRESTADO: lambda r: r.prestado,
    RankingSortKey.GASTOS: lambda r: r.gastos,
}


def _tie_break(r: RouteRankingRow) -> Tuple:
    # None primero
    return (
        r.ruta_id is not None, r.ruta_id or "",
        r.admin is not None, r.admin or "",
    )


def sort_ranking(rows: List[RouteRankingRow], sort_by: RankingSortKey) -> List[RouteRankingRow]:
    value = _SORT_VALUE[sort_by]
    ascending = sort_by is RankingSortKey.GASTOS
    return sorted(
        rows,
        key=lambda r: ((value(r) if ascending else -value(r)),) + _tie_break(r),
    )


class RankingView(CashWindowView):
    """Ranking de pares ruta/cobrador sobre la ventana."""

    def __init__(
        self,
        store: LiveStore,
        sort_by: RankingSortKey = RankingSortKey.SCORE,
        resolver: Optional[CarryForwardResolver] = None,
    ):
        super().__init__(store, resolver)
        self.sort_by = RankingSortKey(sort_by)

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> List[RouteRankingRow]:
        filters = self.filters_for(params)
        buckets = aggregate(to_movements(snapshot.docs), filters, params.date_from, params.date_to)
        resolved = self.resolver.resolve(
            params.tenant_id, filters, params.date_from, buckets, (BY_PAIR,)
        )
        rows = [ranking_row(key, balances) for key, balances in resolved[BY_PAIR].items()]
        return sort_ranking(rows, self.sort_by)
