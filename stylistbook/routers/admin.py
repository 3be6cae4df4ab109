# stylistbook/routers/admin.py
from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from .. import schemas
from ..services import booking

router = APIRouter(tags=["admin"])
logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────
def _require_admin(x_admin_token: str | None) -> None:
    expected = (settings.ADMIN_TOKEN or "").strip()
    provided = (x_admin_token or "").strip()
    if not expected:
        raise HTTPException(status_code=403, detail="ADMIN_TOKEN not configured")
    if provided != expected:
        raise HTTPException(status_code=401, detail="Invalid token")


# ──────────────────────────────────────────────────────────────────────────────
# Básicos
# (main.py monta este router con prefix="/admin")
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/ping")
def admin_ping():
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@router.get("/health")
def admin_health():
    cfg = settings.expiry_config()
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "tz": settings.TIMEZONE,
        "expiry_profile": settings.EXPIRY_PROFILE,
        "expiry_window_min": cfg.window.total_seconds() / 60,
        "warning_threshold_min": cfg.warning_minutes,
        "final_warning_threshold_min": cfg.final_warning_minutes,
        "sweep_interval_min": settings.SWEEP_INTERVAL_MINUTES,
        "ts": datetime.now(timezone.utc).isoformat(),
    }


# ──────────────────────────────────────────────────────────────────────────────
# Barrido manual
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/sweep", response_model=schemas.SweepResponse)
def admin_sweep(
    x_admin_token: str | None = Header(default=None),
    provider_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    Corre un barrido de expiración ahora mismo (un proveedor o todos).
    Si el job periódico gana la carrera, uq_notification_log_stage rechaza los
    avisos repetidos y se responde 409.
    """
    _require_admin(x_admin_token)
    if provider_id is not None:
        try:
            booking.get_provider(db, provider_id)
        except booking.ProviderNotFound:
            raise HTTPException(status_code=404, detail="Provider not found")
    try:
        if provider_id is not None:
            result = booking.run_sweep(db, provider_id)
        else:
            result = booking.run_sweep_all(db)
    except IntegrityError as e:
        db.rollback()
        logger.warning("Barrido manual encimado con el job periódico: %s", e.orig)
        raise HTTPException(status_code=409, detail="A sweep is already running; try again shortly")
    return schemas.SweepResponse(
        expired_count=result.expired_count,
        warnings_sent=result.warnings_sent,
        final_warnings_sent=result.final_warnings_sent,
        delivery_failures=result.delivery_failures,
    )
