# cobranza/tests/test_ranking.py
import math

import pytest

from cobranza.constants import RankingSortKey
from cobranza.schemas.dashboard import RouteRankingRow
from cobranza.services.lifecycle import ViewParams
from cobranza.services.ranking import RankingView, health_score, sort_ranking

TENANT = "t1"


def _params(date_from="2024-01-01", date_to="2024-01-31", **kw):
    return ViewParams(tenant_id=TENANT, date_from=date_from, date_to=date_to, **kw)


def _row(ruta_id, admin, score=0.0, gastos=0.0):
    return RouteRankingRow(
        ruta_id=ruta_id, admin=admin, label="x",
        apertura=0, cobrado=0, prestado=0, ingresos=0, retiros=0, gastos=gastos,
        inicial=0, caja_final=0, movimientos=0, score=score,
    )


def test_health_score_with_no_activity_is_zero():
    score = health_score(0, 0, 0, 0)
    assert score == 0
    assert not math.isnan(score)


def test_health_score_constants():
    expected = math.tanh(100 / (100 + 1e-6)) * 85
    assert health_score(100, 100, 0, 0) == pytest.approx(expected)

    with_penalties = expected - (10 / (100 + 1e-6)) * 30 - (5 / (100 + 1e-6)) * 20
    assert health_score(100, 100, 10, 5) == pytest.approx(with_penalties)


def test_health_score_is_clamped():
    assert health_score(10, 1000, 500, 0) == 0
    assert health_score(10_000, 1, 0, 0) <= 85


def test_ties_break_by_route_then_actor_with_none_first():
    rows = [_row("B", "c1"), _row("A", "c2"), _row(None, "c9"), _row("A", None)]
    ordered = sort_ranking(rows, RankingSortKey.SCORE)
    assert [(r.ruta_id, r.admin) for r in ordered] == [
        (None, "c9"), ("A", None), ("A", "c2"), ("B", "c1"),
    ]


def test_expense_sorts_ascending():
    rows = [_row("A", "c1", gastos=30), _row("B", "c2", gastos=10)]
    assert [r.ruta_id for r in sort_ranking(rows, RankingSortKey.GASTOS)] == ["B", "A"]


def test_ranking_view_sorts_by_selected_key(store, add_event):
    add_event("abono", 300, "2024-01-02", admin="c1", ruta_id="R1")
    add_event("prestamo", 100, "2024-01-02", admin="c1", ruta_id="R1")
    add_event("abono", 100, "2024-01-02", admin="c2", ruta_id="R2")
    add_event("prestamo", 300, "2024-01-02", admin="c2", ruta_id="R2")
    add_event("gasto_admin", 50, "2024-01-02", admin="c2", ruta_id="R2")

    view = RankingView(store)
    view.subscribe(_params())
    assert [r.ruta_id for r in view.result] == ["R1", "R2"]
    view.close()

    view = RankingView(store, sort_by=RankingSortKey.PRESTADO)
    view.subscribe(_params())
    assert [r.ruta_id for r in view.result] == ["R2", "R1"]
    r2 = view.result[0]
    assert r2.label == "R2 / c2"
    assert r2.caja_final == 100 - 300 - 50
    view.close()


def test_ranking_opening_uses_lookback(store, add_event):
    add_event("apertura", 100, "2024-01-01", admin="c1", ruta_id="R1")
    add_event("abono", 10, "2024-01-02", admin="c1", ruta_id="R1")

    view = RankingView(store)
    view.subscribe(_params(date_from="2024-01-02", date_to="2024-01-02"))
    (row,) = view.result
    assert row.inicial == 100
    assert row.caja_final == 110
    assert row.apertura == 0
    view.close()
