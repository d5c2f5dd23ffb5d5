# cobranza/routes/auditoria.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from cobranza.constants import AuditType
from cobranza.routes.deps import first_emission, get_store, window_params
from cobranza.schemas.dashboard import AuditRow
from cobranza.services.audit import AuditView
from cobranza.services.lifecycle import ViewParams
from cobranza.store.live import LiveStore

router = APIRouter(prefix="/auditoria", tags=["Auditoría"])


@router.get("", response_model=List[AuditRow])
def get_auditoria(
    type: Optional[AuditType] = Query(None, description="Filtra por tipo; vacío = todos"),
    params: ViewParams = Depends(window_params),
    store: LiveStore = Depends(get_store),
):
    return first_emission(AuditView(store, type_filter=type), params)
