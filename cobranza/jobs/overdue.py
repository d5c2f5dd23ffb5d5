# cobranza/jobs/overdue.py
import logging
from typing import Optional, Set

from sqlalchemy.orm import Session

from cobranza.constants import COL_LOANS
from cobranza.database.db import SessionLocal
from cobranza.models.models import Loan
from cobranza.store.live import LiveStore
from cobranza.utils.fields import resolve_promise_date, resolve_promise_fulfilled
from cobranza.utils.time_windows import days_between, resolve_tenant_tz, today_in_tz

logger = logging.getLogger(__name__)


def mark_overdue_loans(
    db: Session,
    today: Optional[str] = None,
    tenant_id: Optional[str] = None,
) -> Set[str]:
    """
    Actualiza `dias_atraso` de los préstamos con saldo (restante > 0) cuya
    promesa de pago no cumplida es anterior a hoy (TZ del tenant). Los que
    dejaron de estar vencidos vuelven a 0.
    Idempotente. Devuelve los tenants que tuvieron cambios.
    """
    query = db.query(Loan).filter(Loan.restante > 0)
    if tenant_id:
        query = query.filter(Loan.tenant_id == tenant_id)
    touched: Set[str] = set()
    for loan in query.all():
        tz = resolve_tenant_tz(loan.tenant_id)
        day = today or today_in_tz(tz)
        doc = loan.to_doc()
        promise = resolve_promise_date(doc, tz)
        if not promise or resolve_promise_fulfilled(doc) or promise >= day:
            dias = 0
        else:
            dias = days_between(promise, day)
        if not dias and not loan.dias_atraso:
            continue
        if loan.dias_atraso != dias:
            loan.dias_atraso = dias
            touched.add(loan.tenant_id)
    db.commit()
    return touched


def mark_overdue_loans_job(store: Optional[LiveStore] = None) -> int:
    """
    Wrapper para correr sin FastAPI (scheduler o CLI). Si hay store vivo,
    avisa a las suscripciones de préstamos de cada tenant afectado.
    """
    db = SessionLocal()
    try:
        touched = mark_overdue_loans(db)
    finally:
        db.close()
    if store is not None:
        for tenant_id in touched:
            store.notify_changed(COL_LOANS, tenant_id)
    logger.info("Días de atraso actualizados en %d tenant(s)", len(touched))
    return len(touched)
