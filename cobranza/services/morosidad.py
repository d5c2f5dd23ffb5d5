# cobranza/services/morosidad.py
from __future__ import annotations

from typing import Iterable, List

from cobranza.config import MOROSIDAD_TOP
from cobranza.schemas.dashboard import MorosidadStats, MorosoItem
from cobranza.services.aggregation import CashFilters
from cobranza.services.lifecycle import LiveView, ViewParams
from cobranza.services.merger import MergedSnapshot
from cobranza.services.sources import SourceSpec, outstanding_loans_source
from cobranza.store.live import LiveStore
from cobranza.utils.fields import resolve_actor, resolve_client_id, resolve_client_name


def _num(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _in_arrears(doc: dict) -> bool:
    return _num(doc.get("dias_atraso")) > 0 or bool(doc.get("atraso") or False)


def morosidad_stats(
    loans: Iterable[dict],
    filters: CashFilters,
    top: int = MOROSIDAD_TOP,
) -> MorosidadStats:
    """
    Cartera activa (restante > 0): cuántos préstamos, cuántos en atraso y el
    top de morosos por restante desc, días de atraso desc.
    """
    active: List[dict] = []
    for doc in loans:
        if _num(doc.get("restante")) <= 0:
            continue
        # filtro en memoria: algunos préstamos no tienen ruta/cobrador
        if filters.route_id and str(doc.get("ruta_id") or "") != filters.route_id:
            continue
        if filters.actor_id and resolve_actor(doc) != filters.actor_id:
            continue
        active.append(doc)

    late = [d for d in active if _in_arrears(d)]
    late.sort(key=lambda d: (-_num(d.get("restante")), -_num(d.get("dias_atraso"))))

    return MorosidadStats(
        activos=len(active),
        en_atraso=len(late),
        ratio=(len(late) / len(active)) if active else 0.0,
        top=[
            MorosoItem(
                prestamo_id=str(d["id"]),
                cliente_id=resolve_client_id(d),
                nombre=resolve_client_name(d),
                restante=_num(d.get("restante")),
                dias_atraso=int(_num(d.get("dias_atraso"))),
                ruta_id=d.get("ruta_id"),
                admin=resolve_actor(d),
            )
            for d in late[:top]
        ],
    )


class MorosidadView(LiveView):
    def __init__(self, store: LiveStore, top: int = MOROSIDAD_TOP):
        super().__init__(store)
        self.top = top

    def sources(self, params: ViewParams) -> List[SourceSpec]:
        return [outstanding_loans_source(params.tenant_id)]

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> MorosidadStats:
        filters = CashFilters(route_id=params.route_id, actor_id=params.actor_id)
        return morosidad_stats(snapshot.docs, filters, self.top)
