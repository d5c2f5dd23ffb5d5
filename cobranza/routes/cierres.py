# cobranza/routes/cierres.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from cobranza.constants import COL_CLOSINGS, NO_ACTOR
from cobranza.routes.deps import first_emission, get_store, window_params
from cobranza.schemas.dashboard import DailySummary
from cobranza.schemas.events import ClosingCreate, CreatedOut
from cobranza.services.caja import CierresView
from cobranza.services.lifecycle import ViewParams
from cobranza.store.live import LiveStore, StoreError
from cobranza.utils.auth import AuthContext, get_auth_context
from cobranza.utils.time_windows import compact_ymd

router = APIRouter(prefix="/cierres", tags=["Cierres"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[DailySummary])
def get_cierres(
    params: ViewParams = Depends(window_params),
    store: LiveStore = Depends(get_store),
):
    return first_emission(CierresView(store), params)


@router.post("", response_model=CreatedOut, status_code=status.HTTP_201_CREATED)
def create_closing(
    body: ClosingCreate,
    ctx: AuthContext = Depends(get_auth_context),
    store: LiveStore = Depends(get_store),
):
    admin = body.admin or ctx.actor_id or NO_ACTOR
    if not ctx.is_admin and admin != ctx.actor_id:
        raise HTTPException(status_code=403, detail="No puede cerrar la caja de otro cobrador")

    key = compact_ymd(body.date.isoformat())
    try:
        if store.point_read(COL_CLOSINGS, ctx.tenant_id, date=key, admin=admin):
            raise HTTPException(status_code=409, detail="El cierre de ese día ya fue registrado")
        doc = store.add(
            COL_CLOSINGS,
            tenant_id=ctx.tenant_id,
            date=key,
            admin=admin,
            caja_final=body.caja_final,
        )
    except StoreError as e:
        logger.error("No se pudo registrar cierre: %s", e)
        raise HTTPException(status_code=503, detail="No se pudo registrar el cierre")
    return {"id": doc["id"]}
