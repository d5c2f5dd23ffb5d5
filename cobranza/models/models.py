from sqlalchemy import Column, Index, Integer, String, Float, DateTime, Boolean, JSON, UniqueConstraint
from sqlalchemy import inspect as sa_inspect
from cobranza.database.db import Base
from datetime import datetime, timezone


def _now_utc():
    return datetime.now(timezone.utc)


class DocumentMixin:
    """
    Las filas se consumen como "documentos" sueltos (dict): columnas no nulas
    por encima de los campos históricos guardados en `extra`.
    """

    def to_doc(self) -> dict:
        doc = dict(getattr(self, "extra", None) or {})
        for attr in sa_inspect(self).mapper.column_attrs:
            if attr.key == "extra":
                continue
            value = getattr(self, attr.key)
            if value is not None:
                doc[attr.key] = value
        doc["id"] = str(self.id)
        return doc


class CashEvent(DocumentMixin, Base):
    """Movimiento de caja diaria (append-only)."""
    __tablename__ = "caja_diaria"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, nullable=False, index=True)

    tipo = Column(String, nullable=False)           # vocabulario crudo: abono, gasto_admin, retiro_admin...
    monto = Column(Float, nullable=True)
    operational_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD (día operativo)

    ruta_id = Column(String, nullable=True, index=True)
    admin = Column(String, nullable=True, index=True)  # cobrador / actor

    cliente_id = Column(String, nullable=True)
    cliente_nombre = Column(String, nullable=True)
    prestamo_id = Column(String, nullable=True)
    nota = Column(String, nullable=True)
    categoria = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    extra = Column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_caja_tenant_date", "tenant_id", "operational_date"),
    )


class Loan(DocumentMixin, Base):
    """Préstamo de la cartera. Varios campos de promesa por razones históricas."""
    __tablename__ = "prestamos"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, nullable=False, index=True)

    cliente_id = Column(String, nullable=True)
    cliente_nombre = Column(String, nullable=True)
    ruta_id = Column(String, nullable=True)
    admin = Column(String, nullable=True)          # cobrador asignado
    creado_por = Column(String, nullable=True)
    source = Column(String, nullable=True)         # 'demo' = cargado directo en cartera

    fecha_inicio = Column(String(10), nullable=True, index=True)  # YYYY-MM-DD
    total_prestamo = Column(Float, nullable=True)
    restante = Column(Float, nullable=False, default=0.0)

    # Promesa de pago (variantes históricas, ver utils/fields.py)
    promesa_pago = Column(String(10), nullable=True)
    promesa_pago_at = Column(DateTime(timezone=True), nullable=True)
    promesa = Column(String(10), nullable=True)
    promesa_cumplida = Column(Boolean, nullable=True)

    dias_atraso = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    extra = Column(JSON, nullable=True)


class Closing(DocumentMixin, Base):
    """Cierre diario registrado por un cobrador: clave (tenant, YYYYMMDD, admin)."""
    __tablename__ = "cierres"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, nullable=False, index=True)
    date = Column(String(8), nullable=False)        # YYYYMMDD
    admin = Column(String, nullable=False)
    caja_final = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "date", "admin", name="ux_cierres_tenant_date_admin"),
    )


class AuditLog(DocumentMixin, Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, nullable=False, index=True)

    type = Column(String, nullable=True)
    operational_date = Column(String(10), nullable=False, index=True)
    admin = Column(String, nullable=True)
    ruta_id = Column(String, nullable=True)

    cliente_id = Column(String, nullable=True)
    cliente_nombre = Column(String, nullable=True)
    prestamo_id = Column(String, nullable=True)
    amount = Column(Float, nullable=True)
    message = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    extra = Column(JSON, nullable=True)
