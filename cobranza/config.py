# cobranza/config.py
import os
from dotenv import load_dotenv

load_dotenv()

ENV = os.getenv("ENV", "dev").lower()

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me-dev-secret-key")
if ENV == "prod":
    # En prod: clave obligatoria y suficientemente larga (>=32 bytes)
    if not os.getenv("SECRET_KEY") or len(SECRET_KEY) < 32:
        raise RuntimeError("SECRET_KEY requerido en prod (>=32 bytes)")

# JWT (emitido por el proveedor de identidad externo)
JWT_ALGORITHM = os.getenv("JWT_ALGO", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_MINS", "60"))

# Zona horaria por defecto del tenant (día operativo / "hoy")
DEFAULT_TENANT_TZ = os.getenv("DEFAULT_TENANT_TZ", "America/Sao_Paulo")

# Arrastre de caja: cuántos días hacia atrás mira el primer día de la ventana.
# Sólo se soporta 1 (un día); el límite es explícito, no recursivo.
LOOKBACK_DAYS = int(os.getenv("LOOKBACK_DAYS", "1"))
if LOOKBACK_DAYS not in (0, 1):
    raise RuntimeError("LOOKBACK_DAYS sólo admite 0 o 1")

# Score de salud de rutas
HEALTH_EPSILON = float(os.getenv("HEALTH_EPSILON", "1e-6"))

# Morosidad: tamaño del top
MOROSIDAD_TOP = int(os.getenv("MOROSIDAD_TOP", "10"))

# Scheduler (job diario de días de atraso)
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"
SCHED_HOUR = int(os.getenv("SCHED_HOUR", "2"))
SCHED_MINUTE = int(os.getenv("SCHED_MINUTE", "0"))
