# cobranza/utils/fields.py
"""
Resolución de campos con nombres históricos.

Los documentos de caja, préstamos y auditoría se escribieron durante años con
nombres distintos para el mismo concepto. Cada concepto tiene UNA función acá,
con su orden de prioridad fijo; nadie más adivina nombres de campos.

    monto            monto > amount (strings numéricos aceptados)
    cliente (nombre) cliente_nombre > nombre > cliente.nombre > cliente.display_name > cliente_name
    cliente (id)     cliente_id > cliente.id
    préstamo (id)    prestamo_id > prestamo.id
    préstamo (valor) valor_prestamo > valor > monto_prestamo > capital
    promesa          promesa_pago (YYYY-MM-DD) > promesa_pago_at (datetime) > promesa (YYYY-MM-DD)
    promesa cumplida promesa_cumplida > promesa_cumplida_flag
    actor            admin > cobrador_id > actor
    nota (auditoría) message > nota > descripcion > categoria > source
    nota (caja)      categoria > nota > descripcion > source
    timestamp        created_at_ms > created_at > ts_ms > ts
"""
from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from cobranza.utils.time_windows import parse_ymd, to_ymd_in_tz


def _first(doc: dict, *names: str) -> Any:
    for name in names:
        value = doc.get(name)
        if value is not None and value != "":
            return value
    return None


def _nested(doc: dict, parent: str, child: str) -> Any:
    obj = doc.get(parent)
    if isinstance(obj, dict):
        value = obj.get(child)
        if value is not None and value != "":
            return value
    return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", "."))
        except ValueError:
            return None
    return None


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def resolve_amount(doc: dict) -> Optional[float]:
    for name in ("monto", "amount"):
        if name in doc and doc[name] is not None:
            return _as_float(doc[name])
    return None


def resolve_client_name(doc: dict) -> Optional[str]:
    value = (
        _first(doc, "cliente_nombre", "nombre")
        or _nested(doc, "cliente", "nombre")
        or _nested(doc, "cliente", "display_name")
        or _first(doc, "cliente_name")
    )
    return _as_str(value)


def resolve_client_id(doc: dict) -> Optional[str]:
    return _as_str(_first(doc, "cliente_id") or _nested(doc, "cliente", "id"))


def resolve_loan_id(doc: dict) -> Optional[str]:
    return _as_str(_first(doc, "prestamo_id") or _nested(doc, "prestamo", "id"))


def resolve_loan_value(doc: dict) -> Optional[float]:
    # sólo valores numéricos reales: un string en "valor" suele ser otra cosa
    for name in ("valor_prestamo", "valor", "monto_prestamo", "capital"):
        value = doc.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


def resolve_promise_date(doc: dict, tz: ZoneInfo) -> Optional[str]:
    raw = doc.get("promesa_pago")
    if isinstance(raw, str) and parse_ymd(raw):
        return raw[:10]
    at = doc.get("promesa_pago_at")
    if isinstance(at, datetime):
        return to_ymd_in_tz(at, tz)
    raw = doc.get("promesa")
    if isinstance(raw, str) and parse_ymd(raw):
        return raw[:10]
    return None


def resolve_promise_fulfilled(doc: dict) -> bool:
    return bool(_first(doc, "promesa_cumplida", "promesa_cumplida_flag") or False)


def resolve_actor(doc: dict) -> Optional[str]:
    return _as_str(_first(doc, "admin", "cobrador_id", "actor"))


def resolve_note(doc: dict) -> Optional[str]:
    return _as_str(_first(doc, "message", "nota", "descripcion", "categoria", "source"))


def resolve_event_note(doc: dict) -> Optional[str]:
    return _as_str(_first(doc, "categoria", "nota", "descripcion", "source"))


def _to_ms(value: Any) -> Optional[int]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return None


def resolve_timestamp_ms(doc: dict) -> Optional[int]:
    for name in ("created_at_ms", "created_at", "ts_ms", "ts"):
        ms = _to_ms(doc.get(name))
        if ms is not None:
            return ms
    return None
