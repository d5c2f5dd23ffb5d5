# cobranza/routes/morosidad.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from cobranza.routes.deps import build_params, first_emission, get_store
from cobranza.schemas.dashboard import MorosidadStats
from cobranza.services.morosidad import MorosidadView
from cobranza.store.live import LiveStore
from cobranza.utils.auth import AuthContext, require_admin
from cobranza.utils.time_windows import resolve_tenant_tz, today_in_tz

router = APIRouter(prefix="/morosidad", tags=["Morosidad"])


@router.get("", response_model=MorosidadStats)
def get_morosidad(
    ruta_id: Optional[str] = Query(None),
    cobrador_id: Optional[str] = Query(None),
    top: int = Query(10, ge=1, le=100),
    ctx: AuthContext = Depends(require_admin),
    store: LiveStore = Depends(get_store),
):
    """Cartera activa: préstamos con saldo, en atraso y top de morosos."""
    # la cartera no depende de la ventana: se usa hoy como ventana nominal
    today = today_in_tz(resolve_tenant_tz(ctx.tenant_id))
    params = build_params(ctx.tenant_id, today, today, ruta_id, cobrador_id)
    return first_emission(MorosidadView(store, top=top), params)
