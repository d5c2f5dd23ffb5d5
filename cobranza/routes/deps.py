# cobranza/routes/deps.py
from datetime import date
from typing import Any, Optional

from fastapi import Depends, HTTPException, Query
from starlette.requests import HTTPConnection

from cobranza.services.lifecycle import LiveView, ViewParams
from cobranza.store.live import LiveStore
from cobranza.utils.auth import AuthContext, require_admin


def get_store(conn: HTTPConnection) -> LiveStore:
    return conn.app.state.store


def build_params(
    tenant_id: str,
    date_from: Any,
    date_to: Any,
    ruta_id: Optional[str] = None,
    cobrador_id: Optional[str] = None,
) -> ViewParams:
    try:
        return ViewParams(
            tenant_id=tenant_id,
            date_from=str(date_from),
            date_to=str(date_to),
            route_id=ruta_id or None,
            actor_id=cobrador_id or None,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def window_params(
    ctx: AuthContext = Depends(require_admin),
    date_from: date = Query(..., description="Día operativo inicial (YYYY-MM-DD) inclusive"),
    date_to: date = Query(..., description="Día operativo final (YYYY-MM-DD) inclusive"),
    ruta_id: Optional[str] = Query(None),
    cobrador_id: Optional[str] = Query(None),
) -> ViewParams:
    """Ventana + filtros del tablero. El tenant sale del token, nunca del query."""
    return build_params(ctx.tenant_id, date_from.isoformat(), date_to.isoformat(), ruta_id, cobrador_id)


def first_emission(view: LiveView, params: ViewParams) -> Any:
    """
    Suscribe, toma la primera emisión y cierra todo. Con error y sin datos
    responde 503.
    """
    dispose = view.subscribe(params)
    try:
        if view.result is None:
            raise HTTPException(status_code=503, detail=view.error or "Datos no disponibles")
        return view.result
    finally:
        dispose()
        view.close()
