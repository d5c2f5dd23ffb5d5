# cobranza/services/lifecycle.py
"""
Ciclo de vida de las suscripciones de una vista.

Una vista tiene, en todo momento, a lo sumo UN set de suscripciones vivas.
Cambiar cualquier parámetro (ventana, ruta, cobrador, tenant) cierra el set
anterior ANTES de abrir el nuevo; cerrar la vista cierra todo. Los updates
que llegan de un set ya cerrado se descartan.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from cobranza.services.merger import MergedSnapshot, SourceState, StreamMerger
from cobranza.services.sources import SourceSpec
from cobranza.store.live import Disposer, LiveStore
from cobranza.utils.time_windows import parse_ymd

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "No se pudieron cargar los datos."


@dataclass(frozen=True)
class ViewParams:
    tenant_id: str
    date_from: str
    date_to: str
    route_id: Optional[str] = None
    actor_id: Optional[str] = None

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id requerido")
        dfrom, dto = parse_ymd(self.date_from), parse_ymd(self.date_to)
        if dfrom is None or dto is None:
            raise ValueError("Fechas inválidas (YYYY-MM-DD)")
        if dfrom > dto:
            raise ValueError("date_from no puede ser posterior a date_to")


class SubscriptionSet:
    def __init__(self):
        self._disposers: List[Disposer] = []
        self.disposed = False

    def add(self, disposer: Disposer) -> None:
        if self.disposed:
            disposer()
            return
        self._disposers.append(disposer)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        while self._disposers:
            disposer = self._disposers.pop()
            try:
                disposer()
            except Exception:
                logger.exception("Error cerrando suscripción")


class LiveView:
    """
    Base de las vistas vivas: arma las fuentes, las une con un StreamMerger y
    recalcula el resultado completo en cada emisión (no hay estado incremental).
    """

    def __init__(self, store: LiveStore):
        self.store = store
        self.params: Optional[ViewParams] = None
        self.loading = True
        self.error: Optional[str] = None
        self.result: Any = None
        self.version = 0
        self._subs = SubscriptionSet()
        self._merger: Optional[StreamMerger] = None
        self._listeners: List[Callable[["LiveView"], None]] = []
        self._closed = False

    # --- a implementar por cada vista ---------------------------------
    def sources(self, params: ViewParams) -> List[SourceSpec]:
        raise NotImplementedError

    def compute(self, params: ViewParams, snapshot: MergedSnapshot) -> Any:
        raise NotImplementedError

    def reset_state(self) -> None:
        """Estado privado por set de suscripciones (memos, flags)."""

    # ------------------------------------------------------------------
    def on_change(self, listener: Callable[["LiveView"], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def subscribe(self, params: ViewParams) -> Disposer:
        if self._closed:
            raise RuntimeError("La vista ya fue cerrada")

        # primero cerrar lo anterior: nunca dos sets vivos a la vez
        self._subs.dispose()
        self._subs = SubscriptionSet()
        subs = self._subs

        self.params = params
        self.loading = True
        self.error = None
        self.result = None
        self.version = 0
        self.reset_state()

        specs = self.sources(params)
        merger = StreamMerger(lambda snap: self._on_merged(merger, snap))
        for spec in specs:
            merger.add_source(spec.name, spec.query.collection)
        self._merger = merger
        subs.add(merger.dispose)

        for spec in specs:
            subs.add(
                self.store.subscribe_range(
                    spec.query,
                    on_update=lambda docs, name=spec.name: self._on_update(merger, name, docs),
                    on_error=lambda e, name=spec.name: self._on_error(merger, name, e),
                )
            )
        return subs.dispose

    def close(self) -> None:
        self._closed = True
        self._subs.dispose()
        self._merger = None
        self._listeners.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    def _is_current(self, merger: StreamMerger) -> bool:
        return merger is self._merger and not self._subs.disposed

    def _on_update(self, merger: StreamMerger, name: str, docs: list) -> None:
        if not self._is_current(merger):
            return
        merger.update(name, docs)

    def _on_error(self, merger: StreamMerger, name: str, error: Exception) -> None:
        if not self._is_current(merger):
            return
        merger.fail(name, error)
        self.error = ERROR_MESSAGE
        if self.result is None and not self._pending(merger):
            # primera carga: mostrar lo que haya de las fuentes sanas
            self._emit(merger.snapshot())
            return
        self.loading = False
        self._notify()

    def _on_merged(self, merger: StreamMerger, snapshot: MergedSnapshot) -> None:
        if not self._is_current(merger) or self._pending(merger):
            return
        self._emit(snapshot)

    @staticmethod
    def _pending(merger: StreamMerger) -> bool:
        return merger.any_in(SourceState.PENDING)

    def _emit(self, snapshot: MergedSnapshot) -> None:
        params = self.params
        result = self.compute(params, snapshot)
        # otro set pudo reemplazar a este mientras calculábamos
        if params is not self.params or self._merger is None:
            return
        self.result = result
        self.version = snapshot.version
        self.loading = False
        if not self._merger.any_in(SourceState.FAILED):
            self.error = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Listener de vista falló")
