# cobranza/tests/test_morosidad.py
from cobranza.jobs.overdue import mark_overdue_loans
from cobranza.models.models import Loan
from cobranza.services.aggregation import CashFilters
from cobranza.services.lifecycle import ViewParams
from cobranza.services.morosidad import MorosidadView, morosidad_stats

TENANT = "t1"


def test_morosidad_stats_counts_and_top():
    loans = [
        {"id": "1", "restante": 100, "dias_atraso": 5, "ruta_id": "R1"},
        {"id": "2", "restante": 300, "dias_atraso": 1, "ruta_id": "R1"},
        {"id": "3", "restante": 300, "dias_atraso": 9, "ruta_id": "R1"},
        {"id": "4", "restante": 50, "atraso": True, "ruta_id": "R1"},
        {"id": "5", "restante": 70, "ruta_id": "R1"},
        {"id": "6", "restante": 0, "dias_atraso": 30, "ruta_id": "R1"},
        {"id": "7", "restante": 999, "dias_atraso": 30, "ruta_id": "R2"},
    ]
    stats = morosidad_stats(loans, CashFilters(route_id="R1"), top=3)
    assert stats.activos == 5
    assert stats.en_atraso == 4
    assert stats.ratio == 0.8
    assert [m.prestamo_id for m in stats.top] == ["3", "2", "1"]


def test_morosidad_without_loans():
    stats = morosidad_stats([], CashFilters())
    assert stats.activos == 0 and stats.ratio == 0.0 and stats.top == []


def test_morosidad_view_is_live(store, add_loan):
    add_loan(restante=100, dias_atraso=2, cliente_nombre="Ana", admin="c1")
    add_loan(restante=50, admin="c1")

    view = MorosidadView(store)
    view.subscribe(ViewParams(tenant_id=TENANT, date_from="2024-01-01", date_to="2024-01-01"))
    assert view.result.activos == 2
    assert view.result.en_atraso == 1
    assert view.result.top[0].nombre == "Ana"

    add_loan(restante=500, dias_atraso=1, admin="c2")
    assert view.result.activos == 3
    assert view.result.top[0].restante == 500
    view.close()


def test_mark_overdue_loans_sets_days_late(db, add_loan):
    late = add_loan(restante=100, promesa_pago="2024-01-01")
    kept = add_loan(restante=100, promesa_pago="2024-01-01", promesa_cumplida=True)
    add_loan(tenant_id="otro", restante=100, promesa_pago="2024-01-05")

    touched = mark_overdue_loans(db, today="2024-01-10")
    assert touched == {TENANT, "otro"}
    assert db.get(Loan, int(late["id"])).dias_atraso == 9
    assert db.get(Loan, int(kept["id"])).dias_atraso is None

    # idempotente
    assert mark_overdue_loans(db, today="2024-01-10") == set()


def test_mark_overdue_loans_by_tenant(db, add_loan):
    add_loan(restante=100, promesa_pago="2024-01-01")
    add_loan(tenant_id="otro", restante=100, promesa_pago="2024-01-01")
    assert mark_overdue_loans(db, today="2024-01-10", tenant_id="otro") == {"otro"}


def test_mark_overdue_loans_clears_days_once_not_overdue(db, add_loan):
    paid = add_loan(restante=100, promesa_pago="2024-01-01", ruta_id="R1")
    moved = add_loan(restante=100, promesa_pago="2024-01-01", ruta_id="R1")
    mark_overdue_loans(db, today="2024-01-10")
    assert db.get(Loan, int(paid["id"])).dias_atraso == 9

    db.get(Loan, int(paid["id"])).promesa_cumplida = True
    db.get(Loan, int(moved["id"])).promesa_pago = "2024-02-01"
    db.commit()

    assert mark_overdue_loans(db, today="2024-01-11") == {TENANT}
    loans = [db.get(Loan, int(paid["id"])), db.get(Loan, int(moved["id"]))]
    assert [loan.dias_atraso for loan in loans] == [0, 0]

    stats = morosidad_stats([loan.to_doc() for loan in loans], CashFilters(route_id="R1"))
    assert stats.activos == 2
    assert stats.en_atraso == 0
    assert stats.ratio == 0.0
