# cobranza/routes/live.py
"""
Vistas en vivo por WebSocket: /ws/{vista}?token=...&date_from=...&date_to=...

Cada conexión tiene su propia vista y su propio set de suscripciones; cada
emisión se manda completa (no diffs). Al desconectar se cierra todo.
"""
import asyncio
import logging
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder

from cobranza.constants import AuditType, RankingSortKey
from cobranza.routes.deps import build_params, get_store
from cobranza.services.alerts import AlertsView
from cobranza.services.audit import AuditView
from cobranza.services.caja import CajaView, CierresView
from cobranza.services.lifecycle import LiveView
from cobranza.services.morosidad import MorosidadView
from cobranza.services.ranking import RankingView
from cobranza.store.live import LiveStore
from cobranza.utils.auth import context_from_token, ensure_admin
from cobranza.utils.time_windows import resolve_tenant_tz, today_in_tz

router = APIRouter(tags=["Live"])
logger = logging.getLogger(__name__)

ViewFactory = Callable[[LiveStore, Dict[str, Optional[str]]], LiveView]

VIEWS: Dict[str, ViewFactory] = {
    "caja": lambda store, opts: CajaView(store),
    "cierres": lambda store, opts: CierresView(store),
    "ranking": lambda store, opts: RankingView(store, sort_by=RankingSortKey(opts.get("sort_by") or "score")),
    "alertas": lambda store, opts: AlertsView(store),
    "auditoria": lambda store, opts: AuditView(
        store, type_filter=AuditType(opts["type"]) if opts.get("type") else None
    ),
    "morosidad": lambda store, opts: MorosidadView(store),
}


def build_view(name: str, store: LiveStore, **opts: Optional[str]) -> LiveView:
    factory = VIEWS.get(name)
    if factory is None:
        raise HTTPException(status_code=422, detail=f"Vista desconocida: {name}")
    try:
        return factory(store, opts)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _payload(name: str, view: LiveView) -> dict:
    return {
        "view": name,
        "version": view.version,
        "loading": view.loading,
        "error": view.error,
        "data": jsonable_encoder(view.result),
    }


@router.websocket("/ws/{view_name}")
async def live_view(
    websocket: WebSocket,
    view_name: str,
    token: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    ruta_id: Optional[str] = Query(None),
    cobrador_id: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    store: LiveStore = Depends(get_store),
):
    try:
        ctx = context_from_token(token)
        ensure_admin(ctx)
        if view_name == "morosidad" and not (date_from and date_to):
            date_from = date_to = today_in_tz(resolve_tenant_tz(ctx.tenant_id))
        params = build_params(ctx.tenant_id, date_from, date_to, ruta_id, cobrador_id)
        view = build_view(view_name, store, sort_by=sort_by, type=type)
    except HTTPException as e:
        logger.info("WS %s rechazado: %s", view_name, e.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[dict]" = asyncio.Queue()

    # las notificaciones pueden llegar desde el threadpool de otra request
    view.on_change(lambda v: loop.call_soon_threadsafe(queue.put_nowait, _payload(view_name, v)))

    async def sender():
        while True:
            await websocket.send_json(await queue.get())

    async def receiver():
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            return

    dispose = await run_in_threadpool(view.subscribe, params)
    tasks = [asyncio.create_task(sender()), asyncio.create_task(receiver())]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        for result in await asyncio.gather(*tasks, return_exceptions=True):
            if isinstance(result, Exception):
                logger.info("WS %s: envío cortado (%s)", view_name, result)
        dispose()
        view.close()
        logger.info("WS %s cerrado (tenant=%s)", view_name, ctx.tenant_id)
