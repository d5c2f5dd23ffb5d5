# cobranza/services/merger.py
"""
Unión de N fuentes vivas en un único set de documentos deduplicado.

Cada fuente entrega snapshots completos, sin orden garantizado entre fuentes.
El aporte de una fuente se reemplaza entero en cada update (last-write-wins
por fuente) y la unión se recalcula y emite en el acto, sin debounce.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

KEY_FIELD = "__key"
SOURCE_FIELD = "__source"


class SourceState(str, Enum):
    PENDING = "pending"     # todavía no entregó snapshot
    READY = "ready"         # último snapshot válido (puede ser vacío)
    FAILED = "failed"       # último intento falló; conserva el aporte previo
    DISPOSED = "disposed"


@dataclass
class SourceSlot:
    name: str
    collection: str
    state: SourceState = SourceState.PENDING
    docs: Dict[str, dict] = field(default_factory=dict)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class MergedSnapshot:
    version: int
    docs: Tuple[dict, ...]


def provenance_key(collection: str, doc_id) -> str:
    return f"{collection}:{doc_id}"


def _order_key(key: str) -> Tuple[str, int, int, str]:
    # ids numéricos por valor (orden de alta), el resto después como texto
    collection, _, doc_id = key.partition(":")
    if doc_id.isdigit():
        return (collection, 0, int(doc_id), "")
    return (collection, 1, 0, doc_id)


class StreamMerger:
    def __init__(self, on_merged: Callable[[MergedSnapshot], None]):
        self._on_merged = on_merged
        self._slots: Dict[str, SourceSlot] = {}
        self._version = 0
        self._disposed = False

    def add_source(self, name: str, collection: str) -> None:
        if name in self._slots:
            raise ValueError(f"Fuente duplicada: {name}")
        self._slots[name] = SourceSlot(name=name, collection=collection)

    @property
    def version(self) -> int:
        return self._version

    def state(self, name: str) -> SourceState:
        return self._slots[name].state

    def any_in(self, state: SourceState) -> bool:
        return any(s.state is state for s in self._slots.values())

    def update(self, name: str, docs: List[dict]) -> None:
        if self._disposed:
            return
        slot = self._slots[name]
        tagged: Dict[str, dict] = {}
        for doc in docs:
            doc_id = doc.get("id")
            if doc_id is None:
                continue
            key = provenance_key(slot.collection, doc_id)
            tagged[key] = {**doc, KEY_FIELD: key, SOURCE_FIELD: name}
        slot.docs = tagged
        slot.state = SourceState.READY
        slot.error = None
        self._emit()

    def fail(self, name: str, error: Exception) -> None:
        if self._disposed:
            return
        slot = self._slots[name]
        slot.state = SourceState.FAILED
        slot.error = error
        logger.warning("Fuente %s falló: %s", name, error)

    def dispose(self) -> None:
        self._disposed = True
        for slot in self._slots.values():
            slot.state = SourceState.DISPOSED
            slot.docs = {}

    def snapshot(self) -> MergedSnapshot:
        union: Dict[str, dict] = {}
        # orden de registro de fuentes: en colisión gana la primera (mismo documento)
        for slot in self._slots.values():
            for key, doc in slot.docs.items():
                union.setdefault(key, doc)
        docs = tuple(union[k] for k in sorted(union, key=_order_key))
        return MergedSnapshot(version=self._version, docs=docs)

    def _emit(self) -> None:
        self._version += 1
        self._on_merged(self.snapshot())
