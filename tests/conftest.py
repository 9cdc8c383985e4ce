"""Shared test fixtures and helpers."""

import os
from datetime import datetime, timezone
from typing import Optional

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from viewing_scheduler.database import Base  # noqa: E402
from viewing_scheduler.domain.scheduling.availability_service import AvailabilityService  # noqa: E402
from viewing_scheduler.domain.scheduling.booking_service import BookingService  # noqa: E402
from viewing_scheduler.domain.scheduling.confirmation_service import ConfirmationService  # noqa: E402
from viewing_scheduler.domain.scheduling.reminder_service import ReminderService  # noqa: E402
from viewing_scheduler.domain.scheduling.schemas import (  # noqa: E402
    AgentAvailabilityRequest,
    BookViewingRequest,
)
from viewing_scheduler.models import Agent, Conversation, Property  # noqa: E402
from viewing_scheduler.models_viewing import ScheduledViewing  # noqa: E402
from viewing_scheduler.services.twilio_service import MessageDeliveryError  # noqa: E402


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


# Thursday 1 January 2026, 08:00 UTC. The following Monday is 5 January.
NOW = utc(2026, 1, 1, 8, 0)
MONDAY = (2026, 1, 5)


class FakeReminderQueue:
    """In-memory delayed-job queue keyed like the arq one"""

    def __init__(self):
        self.jobs: dict[str, dict] = {}
        self.enqueued: list[str] = []

    async def enqueue(self, function, job_key, fire_at, *args):
        self.jobs[job_key] = {"function": function, "fire_at": fire_at, "args": args}
        self.enqueued.append(job_key)

    async def remove(self, job_key):
        return self.jobs.pop(job_key, None) is not None


class BrokenReminderQueue:
    async def enqueue(self, function, job_key, fire_at, *args):
        raise RuntimeError("redis unavailable")

    async def remove(self, job_key):
        raise RuntimeError("redis unavailable")


class RecordingGateway:
    """Messaging gateway that records every message instead of sending it"""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def send_text(self, to, body):
        if self.fail:
            raise MessageDeliveryError("provider down")
        self.sent.append((to, body))
        return f"SM{len(self.sent):04d}"

    def bodies_to(self, address):
        return [body for to, body in self.sent if to == address]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def agent(db_session):
    agent = Agent(full_name="Omar Hassan", phone_number="+201001112223", whatsapp_number="+201009998887")
    db_session.add(agent)
    db_session.commit()
    db_session.refresh(agent)
    return agent


@pytest.fixture
def other_agent(db_session):
    agent = Agent(full_name="Sara Adel", whatsapp_number="+201005554443")
    db_session.add(agent)
    db_session.commit()
    db_session.refresh(agent)
    return agent


@pytest.fixture
def listing(db_session, agent):
    listing = Property(
        agent_id=agent.id,
        project_name="Palm Hills",
        property_type="Apartment",
        city="Cairo",
        district="New Cairo",
        address="90th Street",
    )
    db_session.add(listing)
    db_session.commit()
    db_session.refresh(listing)
    return listing


@pytest.fixture
def conversation(db_session, agent):
    conversation = Conversation(agent_id=agent.id, customer_phone="+201001234567")
    db_session.add(conversation)
    db_session.commit()
    db_session.refresh(conversation)
    return conversation


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def availability_service(db_session, clock):
    return AvailabilityService(db_session, clock=clock)


@pytest.fixture
def monday_morning(availability_service, agent):
    """Monday 09:00-12:00 UTC, 60 minute viewings, 30 minute buffer"""
    return availability_service.set_availability(
        agent.id,
        AgentAvailabilityRequest(
            timezone="UTC",
            slots=[{"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"}],
            viewing_duration_minutes=60,
            buffer_minutes=30,
        ),
    )


@pytest.fixture
def reminder_queue():
    return FakeReminderQueue()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def booking_service(db_session, availability_service, reminder_queue, gateway):
    return BookingService(
        db_session,
        availability_service,
        reminders=ReminderService(reminder_queue),
        notifier=ConfirmationService(gateway),
    )


def make_booking_request(
    listing,
    conversation,
    scheduled_time: datetime,
    duration_minutes: Optional[int] = None,
    notes: Optional[str] = None,
) -> BookViewingRequest:
    """Helper to create a BookViewingRequest."""
    return BookViewingRequest(
        conversation_id=conversation.id,
        property_id=listing.id,
        scheduled_time=scheduled_time,
        customer_phone="+201001234567",
        customer_name="Mona",
        duration_minutes=duration_minutes,
        notes=notes,
    )


def add_viewing(db_session, agent, listing, conversation, scheduled_time, **overrides):
    """Insert a viewing directly, bypassing availability checks"""
    values = {
        "agent_id": agent.id,
        "property_id": listing.id,
        "conversation_id": conversation.id,
        "customer_phone": "+201001234567",
        "customer_name": "Mona",
        "scheduled_time": scheduled_time,
        "duration_minutes": 60,
        "status": "scheduled",
    }
    values.update(overrides)
    viewing = ScheduledViewing(**values)
    db_session.add(viewing)
    db_session.commit()
    db_session.refresh(viewing)
    return viewing
