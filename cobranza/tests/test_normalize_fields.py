# cobranza/tests/test_normalize_fields.py
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from cobranza.constants import AuditType, CanonicalKind
from cobranza.utils.fields import (
    resolve_actor,
    resolve_amount,
    resolve_client_name,
    resolve_loan_value,
    resolve_note,
    resolve_promise_date,
    resolve_promise_fulfilled,
    resolve_timestamp_ms,
)
from cobranza.utils.normalize import audit_type, normalize_kind

SP = ZoneInfo("America/Sao_Paulo")


def test_normalize_kind_vocabulary():
    assert normalize_kind("apertura") is CanonicalKind.OPENING
    assert normalize_kind(" Abono ") is CanonicalKind.COLLECTION
    assert normalize_kind("gasto_admin") is CanonicalKind.EXPENSE
    assert normalize_kind("INGRESO_ADMIN") is CanonicalKind.INCOMING
    assert normalize_kind("Retiro") is CanonicalKind.OUTGOING
    assert normalize_kind("retiro_banco") is CanonicalKind.OUTGOING
    assert normalize_kind("prestamo") is CanonicalKind.LOAN_DISBURSEMENT


def test_normalize_kind_rejects_unknown_and_collector_expense():
    assert normalize_kind("gasto_cobrador") is None
    assert normalize_kind("cualquier cosa") is None
    assert normalize_kind("") is None
    assert normalize_kind(None) is None
    assert normalize_kind(123) is None


def test_audit_type_keeps_collector_expense():
    assert audit_type("gasto_cobrador") is AuditType.COLLECTOR_EXPENSE
    assert audit_type("cobro") is AuditType.COLLECTION
    assert audit_type("abono") is AuditType.COLLECTION
    assert audit_type("user_created") is AuditType.USER
    assert audit_type("rule_update") is AuditType.CONFIG
    assert audit_type("collection") is AuditType.COLLECTION
    assert audit_type("???") is AuditType.OTHER
    assert audit_type(None) is AuditType.OTHER


def test_resolve_amount_priority_and_strings():
    assert resolve_amount({"monto": "12,5"}) == 12.5
    assert resolve_amount({"monto": 10, "amount": 99}) == 10.0
    assert resolve_amount({"monto": None, "amount": 5}) == 5.0
    assert resolve_amount({"monto": "abc"}) is None
    assert resolve_amount({}) is None


def test_resolve_client_name_priority():
    assert resolve_client_name({"nombre": "B", "cliente": {"nombre": "C"}}) == "B"
    assert resolve_client_name({"cliente_nombre": "A", "nombre": "B"}) == "A"
    assert resolve_client_name({"cliente": {"display_name": "D"}}) == "D"
    assert resolve_client_name({"cliente_name": "E"}) == "E"
    assert resolve_client_name({}) is None


def test_resolve_loan_value_numbers_only():
    assert resolve_loan_value({"valor": "100", "capital": 50}) == 50.0
    assert resolve_loan_value({"valor_prestamo": 300, "valor": 10}) == 300.0
    assert resolve_loan_value({"valor": True}) is None


def test_resolve_promise_date_variants():
    assert resolve_promise_date({"promesa_pago": "2024-01-05", "promesa": "2024-02-01"}, SP) == "2024-01-05"
    # 02:00 UTC es todavía el día anterior en São Paulo
    at = datetime(2024, 1, 5, 2, 0, tzinfo=timezone.utc)
    assert resolve_promise_date({"promesa_pago_at": at}, SP) == "2024-01-04"
    assert resolve_promise_date({"promesa_pago": "basura", "promesa": "2024-01-07"}, SP) == "2024-01-07"
    assert resolve_promise_date({}, SP) is None


def test_resolve_promise_fulfilled_flags():
    assert resolve_promise_fulfilled({"promesa_cumplida": True}) is True
    assert resolve_promise_fulfilled({"promesa_cumplida_flag": 1}) is True
    assert resolve_promise_fulfilled({}) is False


def test_resolve_actor_and_note():
    assert resolve_actor({"cobrador_id": "c9", "actor": "x"}) == "c9"
    assert resolve_actor({"admin": " c1 "}) == "c1"
    assert resolve_note({"nota": "n", "categoria": "cat"}) == "n"
    assert resolve_note({"source": "app"}) == "app"


def test_resolve_timestamp_priority():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert resolve_timestamp_ms({"created_at_ms": 5, "created_at": created}) == 5
    assert resolve_timestamp_ms({"created_at": created}) == int(created.timestamp() * 1000)
    # naive = UTC
    assert resolve_timestamp_ms({"created_at": datetime(2024, 1, 1)}) == int(created.timestamp() * 1000)
    assert resolve_timestamp_ms({"ts": 7}) == 7
    assert resolve_timestamp_ms({}) is None
