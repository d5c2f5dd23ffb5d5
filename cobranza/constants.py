# cobranza/constants.py
from enum import Enum

# ==============================
# Tipos canónicos de caja (fórmula de cierre)
# ==============================
class CanonicalKind(str, Enum):
    OPENING           = "opening"            # apertura
    COLLECTION        = "collection"         # abono / cobro
    EXPENSE           = "expense"            # gasto_admin (solo admin)
    INCOMING          = "incoming"           # ingreso*
    OUTGOING          = "outgoing"           # retiro*
    LOAN_DISBURSEMENT = "loan_disbursement"  # prestamo

# ==============================
# Clasificación de auditoría (superconjunto de la de caja)
# ==============================
class AuditType(str, Enum):
    COLLECTION        = "collection"
    LOAN_DISBURSEMENT = "loan_disbursement"
    ADMIN_EXPENSE     = "admin_expense"
    COLLECTOR_EXPENSE = "collector_expense"
    INCOMING          = "incoming"
    OUTGOING          = "outgoing"
    OPENING           = "opening"
    USER              = "user"
    CONFIG            = "config"
    OTHER             = "other"

# ==============================
# Alertas
# ==============================
class AlertKind(str, Enum):
    MISSING_CLOSING = "missing_closing"   # cierre faltante
    OVERDUE_PROMISE = "overdue_promise"   # promesa vencida

class AlertSeverity(str, Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"

SEVERITY_RANK = {
    AlertSeverity.HIGH: 3,
    AlertSeverity.MEDIUM: 2,
    AlertSeverity.LOW: 1,
}

# ==============================
# Ranking de rutas
# ==============================
class RankingSortKey(str, Enum):
    SCORE    = "score"
    COBRADO  = "cobrado"
    CAJA     = "caja"
    PRESTADO = "prestado"
    GASTOS   = "gastos"      # ascendente: menos gasto, mejor

# ==============================
# Vocabulario crudo ("legacy") de cajaDiaria
# ==============================
RAW_OPENING = "apertura"
RAW_COLLECTION = "abono"
RAW_ADMIN_EXPENSE = "gasto_admin"
RAW_COLLECTOR_EXPENSE = "gasto_cobrador"
RAW_LOAN = "prestamo"
RAW_INCOMING_PREFIX = "ingreso"
RAW_OUTGOING_PREFIX = "retiro"

# Préstamos cargados directo en la cartera (sin movimiento de caja)
DIRECT_LOAN_SOURCE = "demo"

# Colecciones del store
COL_CASH_EVENTS = "caja_diaria"
COL_LOANS = "prestamos"
COL_CLOSINGS = "cierres"
COL_AUDIT_LOGS = "audit_logs"

# Actor "sin asignar" en claves de cierre/alertas
NO_ACTOR = "—"

# Roles
ROLE_ADMIN = "admin"
ROLE_COLLECTOR = "cobrador"
