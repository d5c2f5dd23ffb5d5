# cobranza/schemas/dashboard.py
from __future__ import annotations

from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from cobranza.constants import AlertKind, AlertSeverity, AuditType


# -------------------------
# Caja (movimientos + agregado de la ventana)
# -------------------------
class MovimientoCaja(BaseModel):
    id: str
    tenant_id: str
    admin: Optional[str] = None          # cobrador
    ruta_id: Optional[str] = None
    tipo: str                            # tipo crudo (p. ej. "gasto_admin")
    kind: str                            # tipo canónico
    monto: float
    operational_date: str                # YYYY-MM-DD
    cliente_id: Optional[str] = None
    cliente_nombre: Optional[str] = None
    prestamo_id: Optional[str] = None


class DayBalanceOut(BaseModel):
    date: str
    inicial: float
    cobrado: float
    prestado: float
    gastos: float
    ingresos: float
    retiros: float
    caja_final: float
    movimientos: int


class CajaAggregate(BaseModel):
    inicial: float
    cobrado: float
    prestado: float
    gastos: float
    ingresos: float
    retiros: float
    caja_final: float
    by_day: Dict[str, float] = {}        # cobrado por día
    by_kind: Dict[str, float] = {}       # monto por tipo canónico
    days: List[DayBalanceOut] = []


class CajaResponse(BaseModel):
    rows: List[MovimientoCaja]
    aggregate: CajaAggregate


# -------------------------
# Cierres (por día, total + por cobrador)
# -------------------------
class DailyActorRow(BaseModel):
    admin_id: str                        # 'TOTAL' en la fila de totales
    inicial: float
    cobrado: float
    prestado: float
    gastos: float
    ingresos: float
    retiros: float
    caja_final: float


class DailySummary(BaseModel):
    date: str
    totals: DailyActorRow
    admins: List[DailyActorRow]


# -------------------------
# Ranking de rutas
# -------------------------
class RouteRankingRow(BaseModel):
    ruta_id: Optional[str] = None
    admin: Optional[str] = None
    label: str

    apertura: float
    cobrado: float
    prestado: float
    ingresos: float
    retiros: float
    gastos: float

    inicial: float
    caja_final: float
    movimientos: int
    score: float


# -------------------------
# Alertas
# -------------------------
class AlertItem(BaseModel):
    id: str
    kind: AlertKind
    severity: AlertSeverity
    date: str                            # día operativo o fecha promesa
    message: str
    admin_id: Optional[str] = None
    ruta_id: Optional[str] = None
    meta: Dict[str, Any] = {}


class AlertsResponse(BaseModel):
    alerts: List[AlertItem]
    loading: bool
    error: Optional[str] = None


# -------------------------
# Auditoría (referencias redactadas: cliente por nombre, préstamo por valor)
# -------------------------
class AuditRow(BaseModel):
    id: str
    tenant_id: Optional[str] = None
    type: AuditType
    ts: int                              # ms epoch
    date: str
    admin: Optional[str] = None
    ruta_id: Optional[str] = None
    cliente_nombre: Optional[str] = None
    prestamo_valor: Optional[float] = None
    amount: Optional[float] = None
    message: Optional[str] = None
    label: str


# -------------------------
# Morosidad
# -------------------------
class MorosoItem(BaseModel):
    prestamo_id: str
    cliente_id: Optional[str] = None
    nombre: Optional[str] = None
    restante: float
    dias_atraso: int = 0
    ruta_id: Optional[str] = None
    admin: Optional[str] = None


class MorosidadStats(BaseModel):
    activos: int
    en_atraso: int
    ratio: float                         # 0..1
    top: List[MorosoItem]
