"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ...config import DEFAULT_BUFFER_MINUTES, DEFAULT_TIMEZONE, DEFAULT_VIEWING_DURATION_MINUTES
from ...shared.validators import validate_phone


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serializes camelCase"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AvailabilitySlot(CamelModel):
    """One weekly window: dayOfWeek 0 = Sunday ... 6 = Saturday, HH:mm wall-clock times"""

    day_of_week: int
    start_time: str
    end_time: str


class AgentAvailabilityRequest(CamelModel):
    """Schema for replacing an agent's availability"""

    timezone: str = DEFAULT_TIMEZONE
    slots: list[AvailabilitySlot]
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    viewing_duration_minutes: int = Field(
        default=DEFAULT_VIEWING_DURATION_MINUTES,
        validation_alias=AliasChoices(
            "viewingDurationMinutes", "viewing_duration_minutes", "viewingDuration"
        ),
    )


class AgentAvailabilityResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    agent_id: str
    timezone: str
    viewing_duration_minutes: int
    buffer_minutes: int
    slots: list[AvailabilitySlot]


class TimeSlot(CamelModel):
    """A bookable interval; produced by the slot generator, never persisted"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    start_time: datetime
    end_time: datetime
    property_id: Optional[str] = None


class SlotsResponse(CamelModel):
    slots: list[TimeSlot]
    count: int


class SlotsMessageResponse(CamelModel):
    """Open slots rendered as chat text"""

    message: str


class BookViewingRequest(CamelModel):
    """Schema for booking a viewing"""

    conversation_id: str
    property_id: str
    scheduled_time: datetime
    customer_phone: str
    customer_name: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    notes: Optional[str] = None

    @field_validator("customer_phone")
    @classmethod
    def validate_customer_phone(cls, v):
        return validate_phone(v)


class RescheduleViewingRequest(CamelModel):
    """Schema for moving a viewing to a new time"""

    new_scheduled_time: datetime
    notes: Optional[str] = None


class CancelViewingRequest(CamelModel):
    reason: Optional[str] = None


class PropertySummary(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    project_name: str
    property_type: str
    city: str
    district: str
    address: Optional[str] = None


class AgentSummary(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    full_name: str
    phone_number: Optional[str] = None
    whatsapp_number: str


class ViewingResponse(CamelModel):
    """Schema for viewing response"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    agent_id: str
    property_id: str
    conversation_id: str
    customer_phone: str
    customer_name: Optional[str] = None
    scheduled_time: datetime
    duration_minutes: int
    status: str
    notes: Optional[str] = None
    reminder_sent: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    property: Optional[PropertySummary] = None
    agent: Optional[AgentSummary] = None


class ViewingListResponse(CamelModel):
    viewings: list[ViewingResponse]
    count: int
