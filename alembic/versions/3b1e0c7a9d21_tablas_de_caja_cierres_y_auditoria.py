"""Tablas de caja diaria, préstamos, cierres y auditoría

Revision ID: 3b1e0c7a9d21
Revises:
Create Date: 2026-10-19 10:12:31.402118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1e0c7a9d21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "caja_diaria",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("tipo", sa.String(), nullable=False),
        sa.Column("monto", sa.Float(), nullable=True),
        sa.Column("operational_date", sa.String(length=10), nullable=False),
        sa.Column("ruta_id", sa.String(), nullable=True),
        sa.Column("admin", sa.String(), nullable=True),
        sa.Column("cliente_id", sa.String(), nullable=True),
        sa.Column("cliente_nombre", sa.String(), nullable=True),
        sa.Column("prestamo_id", sa.String(), nullable=True),
        sa.Column("nota", sa.String(), nullable=True),
        sa.Column("categoria", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("extra", sa.JSON(), nullable=True),
    )
    op.create_index("ix_caja_diaria_id", "caja_diaria", ["id"])
    op.create_index("ix_caja_diaria_tenant_id", "caja_diaria", ["tenant_id"])
    op.create_index("ix_caja_diaria_operational_date", "caja_diaria", ["operational_date"])
    op.create_index("ix_caja_diaria_ruta_id", "caja_diaria", ["ruta_id"])
    op.create_index("ix_caja_diaria_admin", "caja_diaria", ["admin"])
    op.create_index("ix_caja_tenant_date", "caja_diaria", ["tenant_id", "operational_date"])

    op.create_table(
        "prestamos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("cliente_id", sa.String(), nullable=True),
        sa.Column("cliente_nombre", sa.String(), nullable=True),
        sa.Column("ruta_id", sa.String(), nullable=True),
        sa.Column("admin", sa.String(), nullable=True),
        sa.Column("creado_por", sa.String(), nullable=True),
        sa.Column("source", sa.String(), nullable=True),
        sa.Column("fecha_inicio", sa.String(length=10), nullable=True),
        sa.Column("total_prestamo", sa.Float(), nullable=True),
        sa.Column("restante", sa.Float(), nullable=False, server_default="0"),
        sa.Column("promesa_pago", sa.String(length=10), nullable=True),
        sa.Column("promesa_pago_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("promesa", sa.String(length=10), nullable=True),
        sa.Column("promesa_cumplida", sa.Boolean(), nullable=True),
        sa.Column("dias_atraso", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("extra", sa.JSON(), nullable=True),
    )
    op.create_index("ix_prestamos_id", "prestamos", ["id"])
    op.create_index("ix_prestamos_tenant_id", "prestamos", ["tenant_id"])
    op.create_index("ix_prestamos_fecha_inicio", "prestamos", ["fecha_inicio"])

    op.create_table(
        "cierres",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("date", sa.String(length=8), nullable=False),
        sa.Column("admin", sa.String(), nullable=False),
        sa.Column("caja_final", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tenant_id", "date", "admin", name="ux_cierres_tenant_date_admin"),
    )
    op.create_index("ix_cierres_id", "cierres", ["id"])
    op.create_index("ix_cierres_tenant_id", "cierres", ["tenant_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=True),
        sa.Column("operational_date", sa.String(length=10), nullable=False),
        sa.Column("admin", sa.String(), nullable=True),
        sa.Column("ruta_id", sa.String(), nullable=True),
        sa.Column("cliente_id", sa.String(), nullable=True),
        sa.Column("cliente_nombre", sa.String(), nullable=True),
        sa.Column("prestamo_id", sa.String(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=True),
        sa.Column("message", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("extra", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])
    op.create_index("ix_audit_logs_operational_date", "audit_logs", ["operational_date"])


def downgrade():
    op.drop_index("ix_audit_logs_operational_date", table_name="audit_logs")
    op.drop_index("ix_audit_logs_tenant_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_cierres_tenant_id", table_name="cierres")
    op.drop_index("ix_cierres_id", table_name="cierres")
    op.drop_table("cierres")

    op.drop_index("ix_prestamos_fecha_inicio", table_name="prestamos")
    op.drop_index("ix_prestamos_tenant_id", table_name="prestamos")
    op.drop_index("ix_prestamos_id", table_name="prestamos")
    op.drop_table("prestamos")

    op.drop_index("ix_caja_tenant_date", table_name="caja_diaria")
    op.drop_index("ix_caja_diaria_admin", table_name="caja_diaria")
    op.drop_index("ix_caja_diaria_ruta_id", table_name="caja_diaria")
    op.drop_index("ix_caja_diaria_operational_date", table_name="caja_diaria")
    op.drop_index("ix_caja_diaria_tenant_id", table_name="caja_diaria")
    op.drop_index("ix_caja_diaria_id", table_name="caja_diaria")
    op.drop_table("caja_diaria")
