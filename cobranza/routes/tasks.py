# cobranza/routes/tasks.py
from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from cobranza.constants import COL_LOANS
from cobranza.database.db import get_db
from cobranza.jobs.overdue import mark_overdue_loans
from cobranza.routes.deps import get_store
from cobranza.store.live import LiveStore
from cobranza.utils.auth import AuthContext, require_admin
from cobranza.utils.time_windows import resolve_tenant_tz

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.post("/mark-overdue", status_code=status.HTTP_200_OK)
def run_mark_overdue(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
    store: LiveStore = Depends(get_store),
):
    """
    Recalcula días de atraso de los préstamos del tenant.
    Requiere rol admin.
    """
    touched = mark_overdue_loans(db, tenant_id=ctx.tenant_id)
    for tenant_id in touched:
        store.notify_changed(COL_LOANS, tenant_id)
    return {
        "updated": bool(touched),
        "ran_at": datetime.now(resolve_tenant_tz(ctx.tenant_id)).isoformat(),
    }
