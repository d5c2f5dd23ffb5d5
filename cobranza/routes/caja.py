# cobranza/routes/caja.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from cobranza.constants import COL_CASH_EVENTS
from cobranza.routes.deps import first_emission, get_store, window_params
from cobranza.schemas.dashboard import CajaResponse
from cobranza.schemas.events import CashEventCreate, CreatedOut
from cobranza.services.caja import CajaView
from cobranza.services.lifecycle import ViewParams
from cobranza.store.live import LiveStore, StoreError
from cobranza.utils.auth import AuthContext, get_auth_context

router = APIRouter(prefix="/caja", tags=["Caja"])
logger = logging.getLogger(__name__)


@router.get("", response_model=CajaResponse)
def get_caja(
    params: ViewParams = Depends(window_params),
    store: LiveStore = Depends(get_store),
):
    """Movimientos de la ventana + agregado (inicial con arrastre, caja final)."""
    return first_emission(CajaView(store), params)


@router.post("/eventos", response_model=CreatedOut, status_code=status.HTTP_201_CREATED)
def create_cash_event(
    body: CashEventCreate,
    ctx: AuthContext = Depends(get_auth_context),
    store: LiveStore = Depends(get_store),
):
    admin = body.admin or ctx.actor_id
    # un cobrador sólo registra movimientos propios
    if not ctx.is_admin and admin != ctx.actor_id:
        raise HTTPException(status_code=403, detail="No puede registrar movimientos de otro cobrador")

    try:
        doc = store.add(
            COL_CASH_EVENTS,
            tenant_id=ctx.tenant_id,
            tipo=body.tipo,
            monto=body.monto,
            operational_date=body.operational_date.isoformat(),
            ruta_id=body.ruta_id,
            admin=admin,
            cliente_id=body.cliente_id,
            cliente_nombre=body.cliente_nombre,
            prestamo_id=body.prestamo_id,
            nota=body.nota,
            categoria=body.categoria,
            extra=body.extra,
        )
    except StoreError as e:
        logger.error("No se pudo registrar movimiento de caja: %s", e)
        raise HTTPException(status_code=503, detail="No se pudo registrar el movimiento")
    return {"id": doc["id"]}
