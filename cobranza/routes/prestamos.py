# cobranza/routes/prestamos.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from cobranza.constants import COL_LOANS
from cobranza.routes.deps import get_store
from cobranza.schemas.events import CreatedOut, LoanCreate
from cobranza.store.live import LiveStore, StoreError
from cobranza.utils.auth import AuthContext, get_auth_context

router = APIRouter(prefix="/prestamos", tags=["Préstamos"])
logger = logging.getLogger(__name__)


@router.post("", response_model=CreatedOut, status_code=status.HTTP_201_CREATED)
def create_loan(
    body: LoanCreate,
    ctx: AuthContext = Depends(get_auth_context),
    store: LiveStore = Depends(get_store),
):
    if body.restante < 0:
        raise HTTPException(status_code=422, detail="restante no puede ser negativo")

    try:
        doc = store.add(
            COL_LOANS,
            tenant_id=ctx.tenant_id,
            cliente_id=body.cliente_id,
            cliente_nombre=body.cliente_nombre,
            ruta_id=body.ruta_id,
            admin=body.admin or ctx.actor_id,
            creado_por=ctx.actor_id,
            source=body.source,
            fecha_inicio=body.fecha_inicio.isoformat() if body.fecha_inicio else None,
            total_prestamo=body.total_prestamo,
            restante=body.restante,
            promesa_pago=body.promesa_pago.isoformat() if body.promesa_pago else None,
            promesa_pago_at=body.promesa_pago_at,
            promesa_cumplida=body.promesa_cumplida,
            dias_atraso=body.dias_atraso,
            extra=body.extra,
        )
    except StoreError as e:
        logger.error("No se pudo registrar préstamo: %s", e)
        raise HTTPException(status_code=503, detail="No se pudo registrar el préstamo")
    return {"id": doc["id"]}
