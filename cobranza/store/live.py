# cobranza/store/live.py
"""
Store "en vivo" sobre SQLAlchemy.

Contrato que necesita el núcleo de agregación:
  - subscribe_range: consulta filtrada por igualdad + rango de fechas que entrega
    el snapshot COMPLETO al suscribirse y después de cada escritura que lo afecte.
  - point_read: lectura puntual (cierres, etc.).
  - query_once: consulta por rango de una sola vez (lookback de arrastre).

Las escrituras pasan por `add`, que hace commit y vuelve a correr las
suscripciones vivas de esa colección/tenant (no hay diffs: siempre snapshot).
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import asc, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cobranza.constants import COL_AUDIT_LOGS, COL_CASH_EVENTS, COL_CLOSINGS, COL_LOANS
from cobranza.models.models import AuditLog, CashEvent, Closing, Loan

logger = logging.getLogger(__name__)

COLLECTIONS = {
    COL_CASH_EVENTS: CashEvent,
    COL_LOANS: Loan,
    COL_CLOSINGS: Closing,
    COL_AUDIT_LOGS: AuditLog,
}

Document = Dict[str, Any]
OnUpdate = Callable[[List[Document]], None]
OnError = Callable[[Exception], None]
Disposer = Callable[[], None]


class StoreError(Exception):
    """Error transitorio del store (consulta o escritura)."""


@dataclass(frozen=True)
class RangeQuery:
    collection: str
    tenant_id: str
    equals: Dict[str, Any] = field(default_factory=dict)   # None => IS NULL
    date_field: Optional[str] = None
    date_from: Optional[str] = None                        # inclusive
    date_to: Optional[str] = None                          # inclusive
    positive_field: Optional[str] = None                   # campo > 0
    order_by: Optional[str] = None
    descending: bool = False


@dataclass
class _Subscription:
    id: int
    query: RangeQuery
    on_update: OnUpdate
    on_error: Optional[OnError]
    active: bool = True


def _model_for(collection: str):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise StoreError(f"Colección desconocida: {collection}")


class LiveStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._subs: Dict[int, _Subscription] = {}
        self._ids = itertools.count(1)
        # serializa escrituras + notificaciones (un emisor a la vez)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lecturas
    # ------------------------------------------------------------------
    def _run(self, db: Session, q: RangeQuery) -> List[Document]:
        model = _model_for(q.collection)
        query = db.query(model).filter(model.tenant_id == q.tenant_id)

        for name, value in q.equals.items():
            column = getattr(model, name)
            query = query.filter(column.is_(None) if value is None else column == value)

        if q.date_field:
            column = getattr(model, q.date_field)
            if q.date_from is not None:
                query = query.filter(column >= q.date_from)
            if q.date_to is not None:
                query = query.filter(column <= q.date_to)

        if q.positive_field:
            query = query.filter(getattr(model, q.positive_field) > 0)

        order_col = getattr(model, q.order_by or "id")
        query = query.order_by(desc(order_col) if q.descending else asc(order_col), asc(model.id))
        return [row.to_doc() for row in query.all()]

    def query_once(self, q: RangeQuery) -> List[Document]:
        db = self._session_factory()
        try:
            return self._run(db, q)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def point_read(self, collection: str, tenant_id: str, **key: Any) -> Optional[Document]:
        model = _model_for(collection)
        db = self._session_factory()
        try:
            query = db.query(model).filter(model.tenant_id == tenant_id)
            for name, value in key.items():
                query = query.filter(getattr(model, name) == value)
            row = query.first()
            return row.to_doc() if row else None
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Suscripciones vivas
    # ------------------------------------------------------------------
    def subscribe_range(
        self,
        q: RangeQuery,
        on_update: OnUpdate,
        on_error: Optional[OnError] = None,
    ) -> Disposer:
        with self._lock:
            sub = _Subscription(id=next(self._ids), query=q, on_update=on_update, on_error=on_error)
            self._subs[sub.id] = sub
            self._deliver(sub)

        def dispose() -> None:
            with self._lock:
                sub.active = False
                self._subs.pop(sub.id, None)

        return dispose

    @property
    def active_subscriptions(self) -> int:
        return len(self._subs)

    def _deliver(self, sub: _Subscription) -> None:
        try:
            docs = self.query_once(sub.query)
        except StoreError as e:
            logger.warning("Suscripción %s falló (%s): %s", sub.id, sub.query.collection, e)
            if sub.on_error:
                sub.on_error(e)
            return
        if not sub.active:
            return
        try:
            sub.on_update(docs)
        except Exception:
            # un suscriptor roto no debe cortar la notificación del resto
            logger.exception("Callback de suscripción %s falló", sub.id)

    def _notify(self, collection: str, tenant_id: str) -> None:
        targets = [
            s for s in list(self._subs.values())
            if s.query.collection == collection and s.query.tenant_id == tenant_id
        ]
        for sub in targets:
            if sub.active:
                self._deliver(sub)

    def notify_changed(self, collection: str, tenant_id: str) -> None:
        """Para escrituras hechas por fuera de `add` (jobs, scripts)."""
        with self._lock:
            self._notify(collection, tenant_id)

    # ------------------------------------------------------------------
    # Escrituras
    # ------------------------------------------------------------------
    def add(self, collection: str, **values: Any) -> Document:
        model = _model_for(collection)
        tenant_id = values.get("tenant_id")
        if not tenant_id:
            raise StoreError("tenant_id requerido")

        with self._lock:
            db = self._session_factory()
            try:
                row = model(**values)
                db.add(row)
                db.commit()
                db.refresh(row)
                doc = row.to_doc()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError(str(e)) from e
            finally:
                db.close()

            self._notify(collection, tenant_id)
        return doc
