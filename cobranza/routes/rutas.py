# cobranza/routes/rutas.py
from typing import List

from fastapi import APIRouter, Depends, Query

from cobranza.constants import RankingSortKey
from cobranza.routes.deps import first_emission, get_store, window_params
from cobranza.schemas.dashboard import RouteRankingRow
from cobranza.services.lifecycle import ViewParams
from cobranza.services.ranking import RankingView
from cobranza.store.live import LiveStore

router = APIRouter(prefix="/rutas", tags=["Rutas"])


@router.get("/ranking", response_model=List[RouteRankingRow])
def get_ranking(
    sort_by: RankingSortKey = Query(RankingSortKey.SCORE, description="score | cobrado | caja | prestado | gastos"),
    params: ViewParams = Depends(window_params),
    store: LiveStore = Depends(get_store),
):
    return first_emission(RankingView(store, sort_by=sort_by), params)
