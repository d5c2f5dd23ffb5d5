# cobranza/tests/conftest.py
import os
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from cobranza.main import app
from cobranza.database.db import Base, get_db
from cobranza.routes.deps import get_store
from cobranza.store.live import LiveStore
from cobranza.utils.auth import create_access_token
from cobranza.constants import ROLE_ADMIN, ROLE_COLLECTOR

# Usá SQLite en archivo para evitar problemas de conexión en memoria
TEST_DB_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test_unit.db")

TENANT = "t1"


# ---------- ENGINE (session-scoped) ----------
@pytest.fixture(scope="session")
def engine():
    """
    Engine único para la sesión de tests.
    """
    eng = create_engine(
        TEST_DB_URL,
        future=True,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    # Limpieza final
    Base.metadata.drop_all(eng)


# ---------- Session factory (function-scoped) ----------
@pytest.fixture
def session_factory(engine):
    """
    Base limpia por test: dropea y crea tablas antes de cada test para
    evitar colisiones de UNIQUE entre casos (cierres por día/cobrador).
    """
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ---------- Store vivo ----------
@pytest.fixture
def store(session_factory):
    return LiveStore(session_factory)


# ---------- Overrides de get_db / get_store ----------
@pytest.fixture(autouse=True)
def _override_deps(db, store):
    def _get_db():
        try:
            yield db
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_store] = lambda: store
    yield
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_store, None)


# ---------- Cliente FastAPI ----------
@pytest.fixture
def client():
    return TestClient(app)


# ---------- Tokens ----------
@pytest.fixture
def admin_token():
    return create_access_token(TENANT, "admin1", ROLE_ADMIN)


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def collector_headers():
    access = create_access_token(TENANT, "c1", ROLE_COLLECTOR)
    return {"Authorization": f"Bearer {access}"}


# ---------- Helpers de carga ----------
@pytest.fixture
def add_event(store):
    """Carga un movimiento de caja por el store (notifica a las vistas vivas)."""
    def _add(tipo, monto, day, admin="c1", ruta_id="R1", tenant_id=TENANT, **extra):
        return store.add(
            "caja_diaria",
            tenant_id=tenant_id,
            tipo=tipo,
            monto=monto,
            operational_date=day,
            admin=admin,
            ruta_id=ruta_id,
            **extra,
        )
    return _add


@pytest.fixture
def add_loan(store):
    def _add(tenant_id=TENANT, **values):
        values.setdefault("restante", 0.0)
        return store.add("prestamos", tenant_id=tenant_id, **values)
    return _add
