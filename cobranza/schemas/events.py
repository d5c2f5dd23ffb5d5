# cobranza/schemas/events.py
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


# -------------------------
# Movimiento de caja
# -------------------------
class CashEventCreate(BaseModel):
    tipo: str = Field(..., min_length=1, description="Vocabulario crudo: apertura, abono, gasto_admin, ingreso_*, retiro_*, prestamo")
    monto: float
    operational_date: dt.date
    ruta_id: Optional[str] = None
    admin: Optional[str] = None          # si falta, el actor del token
    cliente_id: Optional[str] = None
    cliente_nombre: Optional[str] = None
    prestamo_id: Optional[str] = None
    nota: Optional[str] = None
    categoria: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None

    @field_validator("tipo")
    @classmethod
    def _strip_tipo(cls, v: str) -> str:
        return v.strip()


# -------------------------
# Cierre diario
# -------------------------
class ClosingCreate(BaseModel):
    date: dt.date
    admin: Optional[str] = None          # si falta, el actor del token
    caja_final: Optional[float] = None


# -------------------------
# Préstamo
# -------------------------
class LoanCreate(BaseModel):
    cliente_id: Optional[str] = None
    cliente_nombre: Optional[str] = None
    ruta_id: Optional[str] = None
    admin: Optional[str] = None
    source: Optional[str] = None         # 'demo' = cargado directo en cartera
    fecha_inicio: Optional[dt.date] = None
    total_prestamo: Optional[float] = None
    restante: float = 0.0
    promesa_pago: Optional[dt.date] = None
    promesa_pago_at: Optional[dt.datetime] = None
    promesa_cumplida: Optional[bool] = None
    dias_atraso: Optional[int] = None
    extra: Optional[Dict[str, Any]] = None


class CreatedOut(BaseModel):
    id: str
