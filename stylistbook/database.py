# stylistbook/database.py
from __future__ import annotations
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import settings


def _build_engine(url: str | None) -> Engine:
    if not url:
        raise RuntimeError("DATABASE_URL no está configurada (revisa tu .env).")

    if url.startswith("sqlite"):
        # El barrido y los recordatorios corren en el hilo del BackgroundScheduler,
        # no en el de la petición que abrió la conexión.
        sqlite_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
            future=True,
        )

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            # ondelete="CASCADE" de clients/appointments/notification_log
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    # Postgres: cada tick del barrido toma una conexión corta; el pool chico basta
    # para las peticiones HTTP más los dos jobs del scheduler.
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        future=True,
    )


engine = _build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def get_db():
    """Sesión por petición (FastAPI Depends)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Crea proveedores, clientes, citas y notification_log si no existen."""
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
