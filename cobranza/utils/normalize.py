# cobranza/utils/normalize.py
from typing import Any, Optional

from cobranza.constants import (
    RAW_ADMIN_EXPENSE,
    RAW_COLLECTION,
    RAW_COLLECTOR_EXPENSE,
    RAW_INCOMING_PREFIX,
    RAW_LOAN,
    RAW_OPENING,
    RAW_OUTGOING_PREFIX,
    AuditType,
    CanonicalKind,
)


def _key(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    return raw.strip().lower()


def normalize_kind(raw: Any) -> Optional[CanonicalKind]:
    """
    Tipo crudo de cajaDiaria → tipo canónico de caja. El primer match gana.
    Gasto: SOLO gasto_admin (gasto_cobrador no entra en la fórmula de cierre).
    Ingreso/Retiro: cualquier "ingreso*" / "retiro*".
    """
    key = _key(raw)
    if not key:
        return None
    if key == RAW_OPENING:
        return CanonicalKind.OPENING
    if key == RAW_COLLECTION:
        return CanonicalKind.COLLECTION
    if key == RAW_ADMIN_EXPENSE:
        return CanonicalKind.EXPENSE
    if key.startswith(RAW_INCOMING_PREFIX):
        return CanonicalKind.INCOMING
    if key.startswith(RAW_OUTGOING_PREFIX):
        return CanonicalKind.OUTGOING
    if key == RAW_LOAN:
        return CanonicalKind.LOAN_DISBURSEMENT
    return None


def audit_type(raw: Any) -> AuditType:
    """Clasificación para auditoría; a diferencia de caja, nunca descarta."""
    key = _key(raw)
    if key in (RAW_COLLECTION, "cobro"):
        return AuditType.COLLECTION
    if key == RAW_LOAN:
        return AuditType.LOAN_DISBURSEMENT
    if key == RAW_ADMIN_EXPENSE:
        return AuditType.ADMIN_EXPENSE
    if key == RAW_COLLECTOR_EXPENSE:
        return AuditType.COLLECTOR_EXPENSE
    if key.startswith(RAW_INCOMING_PREFIX):
        return AuditType.INCOMING
    if key.startswith(RAW_OUTGOING_PREFIX):
        return AuditType.OUTGOING
    if key == RAW_OPENING:
        return AuditType.OPENING
    if "user" in key or key == "usuario":
        return AuditType.USER
    if "config" in key or "rule" in key:
        return AuditType.CONFIG
    # ya normalizados (audit logs escritos con el vocabulario canónico)
    try:
        return AuditType(key)
    except ValueError:
        return AuditType.OTHER
