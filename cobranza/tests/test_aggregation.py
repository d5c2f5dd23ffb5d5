# cobranza/tests/test_aggregation.py
import random

from cobranza.constants import CanonicalKind
from cobranza.services.aggregation import (
    CashFilters,
    aggregate,
    rollup,
    to_movement,
    to_movements,
)
from cobranza.services.balance import closing_balance
from cobranza.services.merger import KEY_FIELD


def ev(id_, tipo, monto, day="2024-01-01", admin="c1", ruta_id="R1", **kw):
    return {"id": str(id_), "tipo": tipo, "monto": monto, "operational_date": day,
            "admin": admin, "ruta_id": ruta_id, **kw}


def test_closing_balance_formula():
    assert closing_balance(
        opening=100, collection=50, incoming=30, outgoing=10, loan=40, expense=20
    ) == 110


def test_bucket_closing_is_independent_of_event_order():
    docs = [
        ev(1, "apertura", 500),
        ev(2, "abono", 120),
        ev(3, "ingreso_admin", 80),
        ev(4, "retiro", 40),
        ev(5, "prestamo", 200),
        ev(6, "gasto_admin", 15),
    ]
    expected = 500 + 120 + 80 - 40 - 200 - 15
    for _ in range(5):
        random.shuffle(docs)
        buckets = aggregate(to_movements(docs), CashFilters())
        acc = buckets[("2024-01-01", "R1", "c1")]
        assert acc.closing(acc.opening) == expected


def test_aggregate_is_idempotent():
    docs = [ev(1, "apertura", 100), ev(2, "abono", 50, day="2024-01-02")]
    movements = to_movements(docs)
    assert aggregate(movements, CashFilters()) == aggregate(movements, CashFilters())


def test_route_agnostic_admin_expense_counts_for_filtered_route():
    docs = [
        ev(1, "gasto_admin", 50, ruta_id=None),
        ev(2, "gasto_admin", 70, ruta_id="R2"),
        ev(3, "gasto_admin", 5, ruta_id="R1"),
    ]
    buckets = aggregate(to_movements(docs), CashFilters(route_id="R1"))
    assert list(buckets) == [("2024-01-01", "R1", "c1")]
    assert buckets[("2024-01-01", "R1", "c1")].expense == 55


def test_routeless_non_admin_expense_is_not_route_agnostic():
    docs = [ev(1, "abono", 50, ruta_id=None)]
    assert aggregate(to_movements(docs), CashFilters(route_id="R1")) == {}


def test_collector_expense_stays_out_of_the_formula():
    docs = [ev(1, "apertura", 100), ev(2, "gasto_cobrador", 30)]
    buckets = aggregate(to_movements(docs), CashFilters())
    acc = buckets[("2024-01-01", "R1", "c1")]
    assert acc.expense == 0
    assert acc.count == 1


def test_malformed_documents_are_skipped():
    docs = [
        ev(1, "abono", None),
        ev(2, "desconocido", 10),
        ev(3, "abono", 10, day="no-es-fecha"),
        ev(4, "abono", "12,50"),
    ]
    movements = to_movements(docs)
    assert [m.amount for m in movements] == [12.5]


def test_actor_filter():
    docs = [ev(1, "abono", 10, admin="c1"), ev(2, "abono", 20, admin="c2")]
    buckets = aggregate(to_movements(docs), CashFilters(actor_id="c2"))
    assert list(buckets) == [("2024-01-01", "R1", "c2")]


def test_direct_loan_counts_as_route_agnostic_disbursement():
    doc = {
        KEY_FIELD: "prestamos:9",
        "id": "9",
        "source": "demo",
        "total_prestamo": 300,
        "fecha_inicio": "2024-01-01",
        "creado_por": "c1",
    }
    m = to_movement(doc)
    assert m.kind is CanonicalKind.LOAN_DISBURSEMENT
    assert m.route_agnostic and m.route_id is None
    assert m.actor_id == "c1"

    buckets = aggregate([m], CashFilters(route_id="R1"))
    assert buckets[("2024-01-01", "R1", "c1")].loan == 300


def test_direct_loan_falls_back_to_monto_total():
    doc = {KEY_FIELD: "prestamos:3", "id": "3", "source": "demo",
           "monto_total": 120, "fecha_inicio": "2024-01-02"}
    assert to_movement(doc).amount == 120


def test_rollup_and_window_filter():
    docs = [
        ev(1, "abono", 10, admin="c1"),
        ev(2, "abono", 20, admin="c2", ruta_id="R2"),
        ev(3, "abono", 99, day="2024-02-01"),
    ]
    buckets = aggregate(to_movements(docs), CashFilters(), "2024-01-01", "2024-01-31")
    per_day = rollup(buckets)
    assert per_day[("2024-01-01", None, None)].collection == 30
    assert len(per_day) == 1

    per_actor = rollup(buckets, keep_actor=True)
    assert per_actor[("2024-01-01", None, "c2")].collection == 20
