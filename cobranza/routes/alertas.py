# cobranza/routes/alertas.py
from fastapi import APIRouter, Depends

from cobranza.routes.deps import first_emission, get_store, window_params
from cobranza.schemas.dashboard import AlertsResponse
from cobranza.services.alerts import AlertsView
from cobranza.services.lifecycle import ViewParams
from cobranza.store.live import LiveStore

router = APIRouter(prefix="/alertas", tags=["Alertas"])


@router.get("", response_model=AlertsResponse)
def get_alertas(
    params: ViewParams = Depends(window_params),
    store: LiveStore = Depends(get_store),
):
    view = AlertsView(store)
    alerts = first_emission(view, params)
    return AlertsResponse(alerts=alerts, loading=view.loading, error=view.error)
