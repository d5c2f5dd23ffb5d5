# cobranza/tests/test_carry_forward.py
import logging

import pytest

from cobranza.services.aggregation import CashFilters, DayAccumulator, aggregate, to_movements
from cobranza.services.carry_forward import (
    BY_ACTOR,
    BY_PAIR,
    TOTAL,
    CarryForwardResolver,
    resolve_days,
)
from cobranza.services.merger import StreamMerger
from cobranza.services.sources import cash_sources
from cobranza.store.live import LiveStore, StoreError
from cobranza.constants import CanonicalKind

TENANT = "t1"


def _acc(**kinds):
    acc = DayAccumulator()
    for name, amount in kinds.items():
        acc.add(CanonicalKind(name), amount)
    return acc


def _window_buckets(store, date_from, date_to, filters=CashFilters()):
    """Buckets de la ventana leyendo las mismas fuentes que las vistas."""
    merger = StreamMerger(lambda _s: None)
    sources = cash_sources(TENANT, date_from, date_to, filters.route_id, filters.actor_id)
    for src in sources:
        merger.add_source(src.name, src.query.collection)
    for src in sources:
        merger.update(src.name, store.query_once(src.query))
    return aggregate(to_movements(merger.snapshot().docs), filters, date_from, date_to)


class CountingStore(LiveStore):
    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.queries = []

    def query_once(self, q):
        self.queries.append(q)
        return super().query_once(q)


class BrokenStore:
    def query_once(self, q):
        raise StoreError("store caído")


def test_opening_carries_to_next_day():
    days = {
        "2024-01-01": _acc(opening=100, collection=50, expense=20),
        "2024-01-02": _acc(collection=10),
    }
    d1, d2 = resolve_days(days)
    assert d1.closing == 130
    assert d2.opening == 130
    assert d2.closing == 140
    assert d1.explicit_opening and not d2.explicit_opening


def test_explicit_opening_wins_over_carry():
    days = {
        "2024-01-01": _acc(opening=100, collection=50),
        "2024-01-02": _acc(opening=90, collection=10),
    }
    _, d2 = resolve_days(days)
    assert d2.opening == 90
    assert d2.closing == 100


def test_first_window_day_uses_one_day_lookback(store, add_event):
    add_event("apertura", 100, "2024-01-01")
    add_event("abono", 50, "2024-01-01")
    add_event("gasto_admin", 20, "2024-01-01")
    add_event("abono", 10, "2024-01-02")

    buckets = _window_buckets(store, "2024-01-02", "2024-01-02")
    (d2,) = CarryForwardResolver(store).resolve_total(TENANT, CashFilters(), "2024-01-02", buckets)
    assert d2.opening == 130
    assert d2.closing == 140


def test_lookback_is_not_recursive(store, add_event):
    # el día anterior a la ventana no tiene apertura: se calcula con semilla 0
    add_event("apertura", 1000, "2023-12-31")
    add_event("abono", 50, "2024-01-01")
    add_event("abono", 10, "2024-01-02")

    buckets = _window_buckets(store, "2024-01-02", "2024-01-02")
    (d2,) = CarryForwardResolver(store).resolve_total(TENANT, CashFilters(), "2024-01-02", buckets)
    assert d2.opening == 50


def test_lookback_applies_route_agnostic_expense(store, add_event):
    add_event("apertura", 100, "2024-01-01", ruta_id="R1")
    add_event("gasto_admin", 30, "2024-01-01", ruta_id=None)
    add_event("gasto_admin", 999, "2024-01-01", ruta_id="R2")
    add_event("abono", 10, "2024-01-02", ruta_id="R1")

    filters = CashFilters(route_id="R1")
    buckets = _window_buckets(store, "2024-01-02", "2024-01-02", filters)
    (d2,) = CarryForwardResolver(store).resolve_total(TENANT, filters, "2024-01-02", buckets)
    assert d2.opening == 70
    assert d2.closing == 80


def test_lookback_failure_falls_back_to_zero(caplog):
    buckets = {("2024-01-02", "R1", "c1"): _acc(collection=10)}
    with caplog.at_level(logging.WARNING):
        (d2,) = CarryForwardResolver(BrokenStore()).resolve_total(
            TENANT, CashFilters(), "2024-01-02", buckets
        )
    assert d2.opening == 0
    assert d2.closing == 10
    assert "Lookback" in caplog.text


def test_lookback_is_read_once_for_all_granularities(session_factory, add_event):
    store = CountingStore(session_factory)
    add_event("apertura", 100, "2024-01-01")
    buckets = {
        ("2024-01-02", "R1", "c1"): _acc(collection=10),
        ("2024-01-02", "R2", "c2"): _acc(collection=5),
    }
    resolved = CarryForwardResolver(store).resolve(
        TENANT, CashFilters(), "2024-01-02", buckets, (TOTAL, BY_ACTOR, BY_PAIR)
    )
    # una lectura por fuente del día anterior, no por granularidad
    assert len(store.queries) == len(cash_sources(TENANT, "2024-01-01", "2024-01-01"))
    assert resolved[TOTAL][(None, None)][0].opening == 100
    assert resolved[BY_ACTOR][(None, "c1")][0].opening == 100
    assert resolved[BY_ACTOR][(None, "c2")][0].opening == 0
    assert resolved[BY_PAIR][("R1", "c1")][0].opening == 100


def test_no_lookback_when_first_day_has_opening(session_factory):
    store = CountingStore(session_factory)
    buckets = {("2024-01-02", "R1", "c1"): _acc(opening=10)}
    CarryForwardResolver(store).resolve_total(TENANT, CashFilters(), "2024-01-02", buckets)
    assert store.queries == []


def test_lookback_can_be_disabled(store, add_event):
    add_event("apertura", 100, "2024-01-01")
    buckets = {("2024-01-02", "R1", "c1"): _acc(collection=10)}
    (d2,) = CarryForwardResolver(store, lookback_days=0).resolve_total(
        TENANT, CashFilters(), "2024-01-02", buckets
    )
    assert d2.opening == 0


def test_lookback_depth_is_bounded(store):
    with pytest.raises(ValueError):
        CarryForwardResolver(store, lookback_days=2)
