import os
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("DRY_RUN", "true")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from stylistbook.database import Base, _build_engine  # noqa: E402
from stylistbook import models  # noqa: E402

WEEKDAY_HOURS = {
    "sunday": {"enabled": False, "start": "09:00", "end": "17:00"},
    "monday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "tuesday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "wednesday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "thursday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "friday": {"enabled": True, "start": "09:00", "end": "17:00"},
}


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def db():
    engine = _build_engine("sqlite:///:memory:")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def provider(db):
    p = models.Provider(business_name="Fade Mobile", timezone="UTC", working_hours=dict(WEEKDAY_HOURS))
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch):
    """Captura los SMS en lugar de llamar a Twilio."""
    outbox: list[tuple[str, str]] = []

    def fake_send_sms(to: str, body: str) -> dict:
        outbox.append((to, body))
        return {"mock": True, "to": to, "body": body}

    monkeypatch.setattr("stylistbook.services.notifications.send_sms", fake_send_sms)
    return outbox
