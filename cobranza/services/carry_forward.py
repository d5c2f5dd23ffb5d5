# cobranza/services/carry_forward.py
"""
Arrastre de caja inicial.

Por clave (total, cobrador o par ruta/cobrador), días en orden ascendente:
  - si el día tiene apertura explícita (≠ 0), la inicial ES esa apertura;
  - si no, la inicial es el cierre del día anterior dentro de la ventana.

El primer día de la ventana no tiene de dónde heredar: si además no tiene
apertura, se lee UNA vez el día calendario anterior al inicio de la ventana
(mismos filtros, mismas fuentes) y su cierre se usa como semilla. Ese día se
calcula sólo con su propia apertura: la profundidad del lookback es
exactamente un día (LOOKBACK_DAYS), nunca recursiva.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from cobranza.config import LOOKBACK_DAYS
from cobranza.services.aggregation import (
    BucketKey,
    CashFilters,
    DayAccumulator,
    EntityKey,
    aggregate,
    to_movements,
)
from cobranza.services.merger import StreamMerger
from cobranza.services.sources import cash_sources
from cobranza.store.live import LiveStore
from cobranza.utils.time_windows import add_days

logger = logging.getLogger(__name__)

# granularidades de clave: qué dimensiones del bucket se conservan
TOTAL = "total"
BY_ACTOR = "actor"
BY_PAIR = "pair"


def entity_key(bucket: BucketKey, granularity: str) -> EntityKey:
    _, route, actor = bucket
    if granularity == BY_PAIR:
        return (route, actor)
    if granularity == BY_ACTOR:
        return (None, actor)
    return (None, None)


def group_days(
    buckets: Dict[BucketKey, DayAccumulator],
    granularity: str,
) -> Dict[EntityKey, Dict[str, DayAccumulator]]:
    out: Dict[EntityKey, Dict[str, DayAccumulator]] = defaultdict(dict)
    for bucket, acc in buckets.items():
        day = bucket[0]
        days = out[entity_key(bucket, granularity)]
        if day not in days:
            days[day] = DayAccumulator()
        days[day].merge(acc)
    return dict(out)


@dataclass(frozen=True)
class DayBalance:
    day: str
    opening: float
    closing: float
    explicit_opening: bool
    acc: DayAccumulator


def resolve_days(days: Dict[str, DayAccumulator], seed: float = 0.0) -> List[DayBalance]:
    carry = seed
    out: List[DayBalance] = []
    for day in sorted(days):
        acc = days[day]
        explicit = acc.opening != 0
        opening = acc.opening if explicit else carry
        closing = acc.closing(opening)
        out.append(DayBalance(day=day, opening=opening, closing=closing, explicit_opening=explicit, acc=acc))
        carry = closing
    return out


def _needs_seed(days: Dict[str, DayAccumulator]) -> bool:
    return bool(days) and days[min(days)].opening == 0


class CarryForwardResolver:
    def __init__(self, store: LiveStore, lookback_days: int = LOOKBACK_DAYS):
        if lookback_days not in (0, 1):
            raise ValueError("lookback_days sólo admite 0 o 1")
        self.store = store
        self.lookback_days = lookback_days

    def previous_day_buckets(
        self,
        tenant_id: str,
        filters: CashFilters,
        date_from: str,
    ) -> Optional[Dict[BucketKey, DayAccumulator]]:
        """Buckets del día anterior a la ventana. None si el store falló."""
        day = add_days(date_from, -self.lookback_days)
        merger = StreamMerger(lambda _snapshot: None)
        sources = cash_sources(tenant_id, day, day, filters.route_id, filters.actor_id)
        try:
            for src in sources:
                merger.add_source(src.name, src.query.collection)
            for src in sources:
                merger.update(src.name, self.store.query_once(src.query))
        except Exception as e:
            logger.warning(
                "Lookback de cierre falló (tenant=%s día=%s): %s; se usa inicial 0",
                tenant_id, day, e,
            )
            return None
        return aggregate(to_movements(merger.snapshot().docs), filters, day, day)

    def resolve(
        self,
        tenant_id: str,
        filters: CashFilters,
        date_from: str,
        buckets: Dict[BucketKey, DayAccumulator],
        granularities: Sequence[str] = (TOTAL,),
    ) -> Dict[str, Dict[EntityKey, List[DayBalance]]]:
        """
        Resuelve inicial/cierre por día para cada granularidad pedida. El día
        anterior a la ventana se lee a lo sumo una vez por llamada.
        """
        prev: Optional[Dict[BucketKey, DayAccumulator]] = None
        fetched = False
        out: Dict[str, Dict[EntityKey, List[DayBalance]]] = {}

        for granularity in granularities:
            entities = group_days(buckets, granularity)
            needing = [k for k, days in entities.items() if _needs_seed(days)]
            seeds: Dict[EntityKey, float] = {}

            if needing and self.lookback_days:
                if not fetched:
                    prev = self.previous_day_buckets(tenant_id, filters, date_from)
                    fetched = True
                if prev:
                    prev_days = group_days(prev, granularity)
                    for key in needing:
                        if key in prev_days:
                            # un solo día, semilla 0: no se vuelve a mirar hacia atrás
                            seeds[key] = resolve_days(prev_days[key])[-1].closing

            out[granularity] = {
                key: resolve_days(days, seeds.get(key, 0.0)) for key, days in entities.items()
            }
        return out

    def resolve_total(
        self,
        tenant_id: str,
        filters: CashFilters,
        date_from: str,
        buckets: Dict[BucketKey, DayAccumulator],
    ) -> List[DayBalance]:
        return self.resolve(tenant_id, filters, date_from, buckets)[TOTAL].get((None, None), [])
