"""Scheduling router - FastAPI endpoints for availability and viewings"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ...database import get_db
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .calendar_service import create_event_from_viewing, generate_ical_event
from .confirmation_service import ConfirmationService
from .errors import NotFoundError, ValidationError
from .integration_service import SchedulingIntegrationService
from .reminder_service import ArqReminderQueue, ReminderService
from .schemas import (
    AgentAvailabilityRequest,
    AgentAvailabilityResponse,
    BookViewingRequest,
    CancelViewingRequest,
    RescheduleViewingRequest,
    SlotsMessageResponse,
    SlotsResponse,
    ViewingListResponse,
    ViewingResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents/{agent_id}/schedule", tags=["Scheduling"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def get_reminder_service(request: Request) -> Optional[ReminderService]:
    """Reminders are only available when the arq pool connected at startup"""
    pool = getattr(request.app.state, "arq_pool", None)
    if pool is None:
        return None
    return ReminderService(ArqReminderQueue(pool))


def get_confirmation_service(request: Request) -> Optional[ConfirmationService]:
    gateway = getattr(request.app.state, "messaging_gateway", None)
    if gateway is None:
        return None
    return ConfirmationService(gateway)


def get_booking_service(
    db: Session = Depends(get_db),
    availability: AvailabilityService = Depends(get_availability_service),
    reminders: Optional[ReminderService] = Depends(get_reminder_service),
    notifier: Optional[ConfirmationService] = Depends(get_confirmation_service),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, availability, reminders=reminders, notifier=notifier)


def get_integration_service(
    availability: AvailabilityService = Depends(get_availability_service),
) -> SchedulingIntegrationService:
    return SchedulingIntegrationService(availability)


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.put("/availability", response_model=AgentAvailabilityResponse)
async def set_availability(
    agent_id: str,
    data: AgentAvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Replace the agent's weekly availability"""
    availability = service.set_availability(agent_id, data)
    return AgentAvailabilityResponse.model_validate(availability)


@router.get("/availability", response_model=AgentAvailabilityResponse)
async def get_availability(
    agent_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    availability = service.get_availability(agent_id)
    if not availability:
        raise NotFoundError("Availability not configured")
    return AgentAvailabilityResponse.model_validate(availability)


@router.get("/slots", response_model=SlotsResponse)
async def get_available_slots(
    agent_id: str,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    property_id: Optional[str] = Query(None, alias="propertyId"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Open slots between two instants"""
    if start_date >= end_date:
        raise ValidationError("startDate must be before endDate")

    slots = service.get_available_slots(agent_id, start_date, end_date, property_id)
    return SlotsResponse(slots=slots, count=len(slots))


@router.get("/slots/message", response_model=SlotsMessageResponse)
async def get_available_slots_message(
    agent_id: str,
    property_id: Optional[str] = Query(None, alias="propertyId"),
    language: str = Query("mixed", pattern="^(ar|en|mixed)$"),
    service: SchedulingIntegrationService = Depends(get_integration_service),
):
    """Next week's open slots as a chat message for the customer conversation"""
    message = service.generate_available_slots_message(agent_id, property_id, language)
    return SlotsMessageResponse(message=message)


# ============================================================================
# VIEWINGS
# ============================================================================


@router.post("/viewings", response_model=ViewingResponse, status_code=201)
async def book_viewing(
    agent_id: str,
    data: BookViewingRequest,
    service: BookingService = Depends(get_booking_service),
):
    viewing = await service.book_viewing(agent_id, data)
    return ViewingResponse.model_validate(viewing)


@router.get("/viewings", response_model=ViewingListResponse)
async def list_viewings(
    agent_id: str,
    status: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    property_id: Optional[str] = Query(None, alias="propertyId"),
    service: BookingService = Depends(get_booking_service),
):
    viewings = service.list_viewings(agent_id, status, start_date, end_date, property_id)
    return ViewingListResponse(
        viewings=[ViewingResponse.model_validate(v) for v in viewings], count=len(viewings)
    )


@router.get("/viewings/{viewing_id}", response_model=ViewingResponse)
async def get_viewing(
    agent_id: str,
    viewing_id: str,
    service: BookingService = Depends(get_booking_service),
):
    viewing = service.get_viewing_by_id(viewing_id, agent_id)
    if not viewing:
        raise NotFoundError("Viewing not found")
    return ViewingResponse.model_validate(viewing)


@router.put("/viewings/{viewing_id}/reschedule", response_model=ViewingResponse)
async def reschedule_viewing(
    agent_id: str,
    viewing_id: str,
    data: RescheduleViewingRequest,
    service: BookingService = Depends(get_booking_service),
):
    viewing = await service.reschedule_viewing(
        viewing_id, agent_id, data.new_scheduled_time, data.notes
    )
    return ViewingResponse.model_validate(viewing)


@router.post("/viewings/{viewing_id}/cancel", response_model=ViewingResponse)
async def cancel_viewing(
    agent_id: str,
    viewing_id: str,
    data: Optional[CancelViewingRequest] = None,
    service: BookingService = Depends(get_booking_service),
):
    viewing = await service.cancel_viewing(viewing_id, agent_id, data.reason if data else None)
    return ViewingResponse.model_validate(viewing)


@router.post("/viewings/{viewing_id}/confirm", response_model=ViewingResponse)
async def confirm_viewing(
    agent_id: str,
    viewing_id: str,
    service: BookingService = Depends(get_booking_service),
):
    viewing = await service.confirm_viewing(viewing_id, agent_id)
    return ViewingResponse.model_validate(viewing)


@router.post("/viewings/{viewing_id}/complete", response_model=ViewingResponse)
async def complete_viewing(
    agent_id: str,
    viewing_id: str,
    service: BookingService = Depends(get_booking_service),
):
    viewing = await service.complete_viewing(viewing_id, agent_id)
    return ViewingResponse.model_validate(viewing)


# ============================================================================
# CALENDAR EXPORT
# ============================================================================


@router.get("/viewings/{viewing_id}/icalendar")
async def export_viewing_icalendar(
    agent_id: str,
    viewing_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Download the viewing as an .ics invitation"""
    viewing = service.get_viewing_by_id(viewing_id, agent_id)
    if not viewing:
        raise NotFoundError("Viewing not found")

    content = generate_ical_event(create_event_from_viewing(viewing))
    return Response(
        content=content,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="viewing-{viewing_id}.ics"'},
    )
