# stylistbook/main.py
import os
import logging

from fastapi import FastAPI

from .config import settings
from .database import init_db
from .jobs.scheduler import start_scheduler

# Routers
from .routers.appointments import router as appointments_router
from .routers.calendar import router as calendar_router
from .routers.webhooks import router as webhooks_router
from .routers.admin import router as admin_router

# ──────────────────────────────────────────────────────────────────────────────
# LOGGING
# Controla niveles con variables de entorno:
#   LOG_LEVEL, ENGINE_LOG_LEVEL, SQLA_LOG_LEVEL, UVICORN_LOG_LEVEL
# ──────────────────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Verbosidad del motor (barrido, transiciones)
logging.getLogger("stylistbook.engine").setLevel(
    getattr(logging, os.getenv("ENGINE_LOG_LEVEL", "INFO"), logging.INFO)
)
logging.getLogger("sqlalchemy.engine").setLevel(
    getattr(logging, os.getenv("SQLA_LOG_LEVEL", "WARNING"), logging.WARNING)
)
logging.getLogger("uvicorn.error").setLevel(
    getattr(logging, os.getenv("UVICORN_LOG_LEVEL", "INFO"), logging.INFO)
)

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────
app = FastAPI(title=settings.APP_NAME)

app.include_router(appointments_router)
app.include_router(calendar_router)
app.include_router(webhooks_router)
app.include_router(admin_router, prefix="/admin")  # admin.py NO repite /admin

_scheduler = None


# ──────────────────────────────────────────────────────────────────────────────
# Ciclo de vida
# ──────────────────────────────────────────────────────────────────────────────
@app.on_event("startup")
def on_startup():
    global _scheduler
    init_db()
    if settings.SCHEDULER_ENABLED:
        _scheduler = start_scheduler()
    logger.info("Startup completo: %s (%s) perfil=%s", settings.APP_NAME, settings.ENV, settings.EXPIRY_PROFILE)


@app.on_event("shutdown")
def on_shutdown():
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"ok": True, "app": settings.APP_NAME, "env": settings.ENV}
