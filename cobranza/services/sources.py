# cobranza/services/sources.py
"""Consultas vivas que alimentan cada vista (una por fuente)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from cobranza.constants import (
    COL_AUDIT_LOGS,
    COL_CASH_EVENTS,
    COL_LOANS,
    DIRECT_LOAN_SOURCE,
    RAW_ADMIN_EXPENSE,
)
from cobranza.store.live import RangeQuery


@dataclass(frozen=True)
class SourceSpec:
    name: str
    query: RangeQuery


def cash_sources(
    tenant_id: str,
    date_from: str,
    date_to: str,
    route_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    include_direct_loans: bool = True,
) -> List[SourceSpec]:
    """
    - caja: cajaDiaria del rango (respeta ruta/cobrador)
    - gastos_sin_ruta: con ruta filtrada, gasto_admin sin ruta también cuenta
    - prestamos_directos: préstamos cargados directo en cartera (no tienen ruta)
    """
    equals = {}
    if actor_id:
        equals["admin"] = actor_id
    if route_id:
        equals["ruta_id"] = route_id

    out = [
        SourceSpec(
            "caja",
            RangeQuery(
                collection=COL_CASH_EVENTS,
                tenant_id=tenant_id,
                equals=equals,
                date_field="operational_date",
                date_from=date_from,
                date_to=date_to,
                order_by="operational_date",
            ),
        )
    ]

    if route_id:
        extra = {"tipo": RAW_ADMIN_EXPENSE, "ruta_id": None}
        if actor_id:
            extra["admin"] = actor_id
        out.append(
            SourceSpec(
                "gastos_sin_ruta",
                RangeQuery(
                    collection=COL_CASH_EVENTS,
                    tenant_id=tenant_id,
                    equals=extra,
                    date_field="operational_date",
                    date_from=date_from,
                    date_to=date_to,
                    order_by="operational_date",
                ),
            )
        )

    if include_direct_loans:
        loans_eq = {"source": DIRECT_LOAN_SOURCE}
        if actor_id:
            loans_eq["creado_por"] = actor_id
        out.append(
            SourceSpec(
                "prestamos_directos",
                RangeQuery(
                    collection=COL_LOANS,
                    tenant_id=tenant_id,
                    equals=loans_eq,
                    date_field="fecha_inicio",
                    date_from=date_from,
                    date_to=date_to,
                    order_by="fecha_inicio",
                ),
            )
        )
    return out


def outstanding_loans_source(tenant_id: str) -> SourceSpec:
    # filtro de ruta/cobrador en memoria: no todos los préstamos lo tienen
    return SourceSpec(
        "prestamos_con_saldo",
        RangeQuery(
            collection=COL_LOANS,
            tenant_id=tenant_id,
            positive_field="restante",
            order_by="restante",
            descending=True,
        ),
    )


def audit_log_source(
    tenant_id: str,
    date_from: str,
    date_to: str,
    route_id: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> SourceSpec:
    equals = {}
    if route_id:
        equals["ruta_id"] = route_id
    if actor_id:
        equals["admin"] = actor_id
    return SourceSpec(
        "audit_logs",
        RangeQuery(
            collection=COL_AUDIT_LOGS,
            tenant_id=tenant_id,
            equals=equals,
            date_field="operational_date",
            date_from=date_from,
            date_to=date_to,
            order_by="operational_date",
            descending=True,
        ),
    )
