# stylistbook/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

from .engine.lifecycle import PRESETS, ExpiryConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== App =====
    APP_NAME: str = "stylistbook"
    ENV: str = "dev"
    # TZ por defecto si el proveedor no tiene una propia
    TIMEZONE: str = "America/New_York"

    # ===== DB =====
    # En producción define DATABASE_URL con tu Postgres. Local puede caer a SQLite.
    DATABASE_URL: str = "sqlite:///./stylistbook.db"

    DB_POOL_SIZE: int = 2
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min

    # ===== Twilio (SMS) =====
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_SMS_FROM: Optional[str] = None

    # Simulación (True = no envía mensajes reales)
    DRY_RUN: bool = False

    # ===== Expiración de reservas pendientes =====
    # "standard" (30/10/5) o "mobile" (30/20/5); los *_MIN sobreescriben campo por campo
    EXPIRY_PROFILE: str = "standard"
    EXPIRY_WINDOW_MIN: Optional[int] = None
    WARNING_THRESHOLD_MIN: Optional[int] = None
    FINAL_WARNING_THRESHOLD_MIN: Optional[int] = None

    # ===== Jobs =====
    SCHEDULER_ENABLED: bool = True
    SWEEP_INTERVAL_MINUTES: int = 1
    REMINDER_HOURS_BEFORE: int = 24

    # Tarjeta de pendientes: cuánto tiempo atrás contar las expiradas
    PENDING_VIEW_LOOKBACK_HOURS: int = 24

    # ===== Admin =====
    ADMIN_TOKEN: Optional[str] = None

    def expiry_config(self) -> ExpiryConfig:
        profile = (self.EXPIRY_PROFILE or "standard").strip().lower()
        base = PRESETS.get(profile)
        if base is None:
            raise RuntimeError(f"EXPIRY_PROFILE inválido: {self.EXPIRY_PROFILE!r} (usa: {', '.join(PRESETS)})")
        return ExpiryConfig.from_minutes(
            window=self.EXPIRY_WINDOW_MIN if self.EXPIRY_WINDOW_MIN is not None
            else int(base.window.total_seconds() // 60),
            warning=self.WARNING_THRESHOLD_MIN if self.WARNING_THRESHOLD_MIN is not None
            else int(base.warning_minutes),
            final_warning=self.FINAL_WARNING_THRESHOLD_MIN if self.FINAL_WARNING_THRESHOLD_MIN is not None
            else int(base.final_warning_minutes),
        )


settings = Settings()
