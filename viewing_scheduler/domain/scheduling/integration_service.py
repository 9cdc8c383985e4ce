"""
Scheduling Integration Service
Bridges the customer conversation flow with the scheduling engine: offers
open slots as chat text and maps a free-text time preference onto a slot.

The slots message is served by the router at GET /slots/message. Preference
parsing needs a DateTimeParser supplied by the chat flow; without one every
preference reads as "no date given".
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Protocol

from pydantic import BaseModel

from .availability_service import AvailabilityService
from .message_builder import format_date, format_time
from .time_calculator import agent_zone, ensure_utc

logger = logging.getLogger(__name__)

LOOKAHEAD_DAYS = 7
MAX_DAYS_SHOWN = 3
MAX_TIMES_PER_DAY = 4
MATCH_WINDOW = timedelta(hours=2)


class ParsedDateTime(BaseModel):
    success: bool
    date: Optional[datetime] = None
    confidence: float = 0.0
    parsed_text: Optional[str] = None


class DateTimeParser(Protocol):
    """Natural-language date/time extraction"""

    def parse_datetime(self, text: str) -> ParsedDateTime: ...


class SlotMatch(BaseModel):
    success: bool
    slot: Optional[datetime] = None
    message: str


def find_closest_slot(target: datetime, starts: list[datetime]) -> Optional[datetime]:
    """Closest start strictly less than two hours away; earliest wins a tie"""
    target = ensure_utc(target)
    closest = None
    best = MATCH_WINDOW
    for start in starts:
        difference = abs(ensure_utc(start) - target)
        if difference < best:
            best = difference
            closest = start
    return closest


class SchedulingIntegrationService:
    def __init__(
        self, availability_service: AvailabilityService, parser: Optional[DateTimeParser] = None
    ):
        self.availability = availability_service
        self.parser = parser

    def generate_available_slots_message(
        self,
        agent_id: str,
        property_id: Optional[str] = None,
        language: str = "mixed",
        now: Optional[datetime] = None,
    ) -> str:
        """Chat text listing open slots over the next week"""
        logger.info(f"💬 Generating available slots message for agent {agent_id}")

        start = ensure_utc(now) if now is not None else self.availability.clock()
        end = start + timedelta(days=LOOKAHEAD_DAYS)

        try:
            slots = self.availability.get_available_slots(agent_id, start, end, property_id)
            availability = self.availability.get_availability(agent_id) if slots else None
        except Exception as e:
            logger.error(f"❌ Failed to generate slots message for agent {agent_id}: {str(e)}")
            return build_error_message(language)

        if not slots:
            return build_no_slots_message(language)

        zone = agent_zone(availability)
        grouped: dict[date, list[datetime]] = {}
        for slot in slots:
            grouped.setdefault(slot.start_time.astimezone(zone).date(), []).append(slot.start_time)

        return build_slots_message(grouped, availability.timezone, language)

    def _parse(self, text: str) -> ParsedDateTime:
        if self.parser is None:
            return ParsedDateTime(success=False)
        return self.parser.parse_datetime(text)

    def parse_scheduling_request(self, message: str) -> dict:
        logger.debug(f"Parsing scheduling request: {message}")
        result = self._parse(message)
        return {
            "has_date_preference": result.success,
            "preferred_date": result.date,
            "confidence": result.confidence,
            "parsed_text": result.parsed_text,
        }

    def validate_and_find_slot(
        self, agent_id: str, customer_preference: str, property_id: Optional[str] = None
    ) -> SlotMatch:
        """Match a free-text time preference to an open slot on the same local day"""
        logger.info(f"🔍 Validating time preference for agent {agent_id}: {customer_preference}")

        result = self._parse(customer_preference)
        if not result.success or result.date is None:
            return SlotMatch(
                success=False,
                message="لم أتمكن من فهم الوقت المطلوب. هل يمكنك توضيحه؟\n"
                "I couldn't understand the time. Could you clarify?",
            )

        try:
            availability = self.availability.get_availability(agent_id)
            slots = []
            if availability is not None:
                zone = agent_zone(availability)
                day = ensure_utc(result.date).astimezone(zone).date()
                day_start = datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)
                day_end = datetime.combine(day, time.max, tzinfo=zone).astimezone(timezone.utc)
                slots = self.availability.get_available_slots(
                    agent_id, day_start, day_end, property_id
                )
        except Exception as e:
            logger.error(f"❌ Failed to validate slot for agent {agent_id}: {str(e)}")
            return SlotMatch(
                success=False, message="حدث خطأ في التحقق من المواعيد\nError checking availability"
            )

        if not slots:
            return SlotMatch(
                success=False,
                message="عذراً، لا توجد مواعيد متاحة في هذا اليوم. هل يمكنك اختيار يوم آخر؟\n"
                "Sorry, no available slots on that day. Can you choose another day?",
            )

        closest = find_closest_slot(result.date, [slot.start_time for slot in slots])
        if closest is None:
            return SlotMatch(
                success=False,
                message="لم أجد موعداً متاحاً قريباً من الوقت المطلوب. هل يمكنك اختيار من المواعيد المتاحة؟\n"
                "No slot available close to that time. Can you choose from available slots?",
            )

        return SlotMatch(success=True, slot=closest, message="تم إيجاد موعد متاح!\nFound an available slot!")


def build_slots_message(grouped: dict[date, list[datetime]], tz: str, language: str) -> str:
    if language == "ar":
        lines = ["📅 المواعيد المتاحة للمعاينة:", ""]
    elif language == "en":
        lines = ["📅 Available viewing slots:", ""]
    else:
        lines = ["📅 المواعيد المتاحة | Available Slots:", ""]

    text_language = "ar" if language == "ar" else "en"

    for day in sorted(grouped)[:MAX_DAYS_SHOWN]:
        times = grouped[day]
        lines.append(f"\n*{format_date(times[0], tz, text_language, style='full')}*")
        for start in times[:MAX_TIMES_PER_DAY]:
            lines.append(f"• {format_time(start, tz, text_language)}")

        if len(times) > MAX_TIMES_PER_DAY:
            more = len(times) - MAX_TIMES_PER_DAY
            if language == "ar":
                lines.append(f"... و {more} موعد آخر")
            else:
                lines.append(f"... and {more} more")

    lines.append("")
    if language == "ar":
        lines.append("يرجى اختيار الموعد المناسب لك، أو أخبرني بموعد آخر تفضله.")
    elif language == "en":
        lines.append("Please select a suitable time, or let me know your preferred date/time.")
    else:
        lines.append("يرجى اختيار الموعد المناسب | Please select a time.")

    return "\n".join(lines)


def build_no_slots_message(language: str) -> str:
    if language == "ar":
        return "عذراً، لا توجد مواعيد متاحة حالياً. يرجى التواصل مع الوكيل مباشرة لتحديد موعد مناسب."
    if language == "en":
        return (
            "Sorry, no viewing slots are currently available. "
            "Please contact the agent directly to schedule a viewing."
        )
    return (
        "عذراً، لا توجد مواعيد متاحة حالياً. | Sorry, no slots available currently.\n"
        "يرجى التواصل مع الوكيل. | Please contact the agent."
    )


def build_error_message(language: str) -> str:
    if language == "ar":
        return "عذراً، حدث خطأ أثناء جلب المواعيد المتاحة. يرجى التواصل مع الوكيل مباشرة."
    if language == "en":
        return "Sorry, there was an error retrieving available slots. Please contact the agent directly."
    return (
        "عذراً، حدث خطأ. | Sorry, an error occurred.\n"
        "يرجى التواصل مع الوكيل. | Please contact the agent."
    )
