# stylistbook/engine/pending.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Optional

from .lifecycle import AppointmentStatus, ExpiryConfig, minutes_until_expiry


@dataclass
class PendingView:
    visible: List[Any] = field(default_factory=list)
    should_show: bool = False
    expired_count: int = 0
    warning_count: int = 0


def project(
    appointments: Iterable[Any],
    now: Optional[datetime] = None,
    config: Optional[ExpiryConfig] = None,
) -> PendingView:
    """
    Tarjeta de "pendientes por confirmar". Solo filtra por status: las citas
    vencidas desaparecen hasta que el barrido las marca como expired.
    `warning_count` requiere `now` y `config`.
    """
    batch = list(appointments)
    visible = [a for a in batch if a.status == AppointmentStatus.pending]
    expired_count = sum(1 for a in batch if a.status == AppointmentStatus.expired)

    warning_count = 0
    if now is not None and config is not None:
        warning_count = sum(
            1 for a in visible
            if a.expires_at is not None and minutes_until_expiry(a, now) <= config.warning_minutes
        )

    return PendingView(
        visible=visible,
        should_show=len(visible) > 0,
        expired_count=expired_count,
        warning_count=warning_count,
    )
