import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

# Routers (usar imports absolutos para evitar issues según cómo se ejecute uvicorn)
from cobranza.config import ENABLE_SCHEDULER, SCHED_HOUR, SCHED_MINUTE, DEFAULT_TENANT_TZ
from cobranza.database.db import SessionLocal
from cobranza.routes import alertas, auditoria, caja, cierres, live, morosidad, prestamos, rutas, tasks
from cobranza.store.live import LiveStore

# -----------------------------------------------------------------------------
# Logging base
# -----------------------------------------------------------------------------
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("uvicorn.error")

# -----------------------------------------------------------------------------
# Lifespan: store vivo del proceso + scheduler opcional
# -----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Crea el store vivo compartido por todas las vistas. Si ENABLE_SCHEDULER=true,
    inicia APScheduler al levantar y lo detiene al apagar.
    """
    store = LiveStore(SessionLocal)
    app.state.store = store
    scheduler = None

    if ENABLE_SCHEDULER:
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.cron import CronTrigger
            from zoneinfo import ZoneInfo
            from cobranza.jobs.overdue import mark_overdue_loans_job

            tz = ZoneInfo(DEFAULT_TENANT_TZ)
            scheduler = AsyncIOScheduler(timezone=tz)
            scheduler.add_job(
                mark_overdue_loans_job,
                CronTrigger(hour=SCHED_HOUR, minute=SCHED_MINUTE, timezone=tz),
                args=[store],
                id="mark-overdue-daily",
                replace_existing=True,
                max_instances=1,     # evita superposiciones
                coalesce=True,       # si se salteó por caída, ejecuta una sola
                misfire_grace_time=3600,
            )
            scheduler.start()
            logger.info("Scheduler iniciado: %02d:%02d TZ=%s", SCHED_HOUR, SCHED_MINUTE, tz.key)
        except Exception as e:
            logger.exception("Error iniciando scheduler: %s", e)

    try:
        yield
    finally:
        if scheduler:
            try:
                scheduler.shutdown(wait=False)
                logger.info("Scheduler detenido correctamente")
            except Exception as e:
                logger.exception("Error al detener scheduler: %s", e)
        if store.active_subscriptions:
            logger.warning("Quedaron %d suscripciones vivas al apagar", store.active_subscriptions)

# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
app = FastAPI(title="Cobranza - tablero de caja", lifespan=lifespan)

# -----------------------------------------------------------------------------
# CORS por entorno
# -----------------------------------------------------------------------------
ENV = os.getenv("ENV", "dev").lower()
_raw = os.getenv("CORS_ORIGINS", "")
ALLOWED_ORIGINS = [o.strip() for o in _raw.split(",") if o.strip()]

if ENV == "prod":
    if any(o == "*" for o in ALLOWED_ORIGINS):
        raise RuntimeError('En prod, CORS_ORIGINS no puede contener "*". Definí dominios explícitos.')
    if not ALLOWED_ORIGINS:
        logger.warning("CORS_ORIGINS vacío en prod: el tablero web no podrá consumir la API")
else:
    if not ALLOWED_ORIGINS:
        ALLOWED_ORIGINS = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=600,  # cachea el preflight 10 min
)

# -----------------------------------------------------------------------------
# Handlers y health
# -----------------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    logger.error("422 detail: %s", exc.errors())
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/health")
def health():
    return {"ok": True}

# (Opcional) compat k8s/PAAS
@app.get("/healthz")
def healthz():
    return {"ok": True}

# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
app.include_router(caja.router)
app.include_router(cierres.router)
app.include_router(rutas.router)
app.include_router(alertas.router)
app.include_router(auditoria.router)
app.include_router(morosidad.router)
app.include_router(prestamos.router)
app.include_router(tasks.router)
app.include_router(live.router)
