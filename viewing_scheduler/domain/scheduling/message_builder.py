"""
Viewing Message Templates
Bilingual (Arabic / English) text for confirmations, reminders, reschedules
and cancellations. Every builder is a pure function of the viewing it is
given; times are rendered in the agent's configured timezone.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import DEFAULT_TIMEZONE

ARABIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")

ARABIC_MONTHS = [
    "يناير",
    "فبراير",
    "مارس",
    "أبريل",
    "مايو",
    "يونيو",
    "يوليو",
    "أغسطس",
    "سبتمبر",
    "أكتوبر",
    "نوفمبر",
    "ديسمبر",
]

# Indexed by datetime.weekday() (Monday = 0)
ARABIC_WEEKDAYS = ["الاثنين", "الثلاثاء", "الأربعاء", "الخميس", "الجمعة", "السبت", "الأحد"]


def to_arabic_digits(text: str) -> str:
    return text.translate(ARABIC_DIGITS)


def viewing_timezone(viewing) -> str:
    """Agent's zone when availability is configured, otherwise the default"""
    agent = getattr(viewing, "agent", None)
    availability = getattr(agent, "availability", None) if agent else None
    return getattr(availability, "timezone", None) or DEFAULT_TIMEZONE


def _localize(value: datetime, tz: Optional[str]) -> datetime:
    return value.astimezone(ZoneInfo(tz or DEFAULT_TIMEZONE))


def format_date(value: datetime, tz: Optional[str] = None, language: str = "ar", style: str = "long") -> str:
    """
    Format a date as "15 January 2026" (long) or "Thursday, 15 January 2026" (full).
    language is "ar", "en" or "mixed" ("English (Arabic)").
    """
    local = _localize(value, tz)

    if language == "en":
        text = f"{local.day} {local.strftime('%B')} {local.year}"
        if style == "full":
            text = f"{local.strftime('%A')}, {text}"
        return text

    arabic = to_arabic_digits(f"{local.day}") + f" {ARABIC_MONTHS[local.month - 1]} "
    arabic += to_arabic_digits(f"{local.year}")
    if style == "full":
        arabic = f"{ARABIC_WEEKDAYS[local.weekday()]}، {arabic}"

    if language == "mixed":
        return f"{format_date(value, tz, 'en', style)} ({arabic})"
    return arabic


def format_time(value: datetime, tz: Optional[str] = None, language: str = "ar") -> str:
    """12-hour clock, e.g. "١٠:٣٠ ص" or "10:30 AM" """
    local = _localize(value, tz)
    hour = local.hour % 12 or 12
    clock = f"{hour:02d}:{local.minute:02d}"

    if language == "en":
        return f"{clock} {'AM' if local.hour < 12 else 'PM'}"
    return f"{to_arabic_digits(clock)} {'ص' if local.hour < 12 else 'م'}"


def format_location(property) -> str:
    if property.address:
        return f"{property.address}, {property.district}, {property.city}"
    return f"{property.district}, {property.city}"


def build_property_header(property) -> str:
    return f"📍 {property.project_name}\n🏠 {property.property_type}\n📌 {format_location(property)}"


def _agent_contact(agent) -> str:
    return agent.phone_number or agent.whatsapp_number


def _notes_line(viewing) -> str:
    return f"📝 ملاحظات | Notes: {viewing.notes}\n" if viewing.notes else ""


def _require_details(viewing):
    if viewing.property is None or viewing.agent is None:
        raise ValueError("Viewing missing property or agent data")


def build_customer_confirmation(viewing, tz: Optional[str] = None) -> str:
    _require_details(viewing)
    tz = tz or viewing_timezone(viewing)
    name = viewing.customer_name or ""

    return f"""✅ تم تأكيد الحجز | Booking Confirmed

مرحباً {name}! 👋
Hello {name}! 👋

تم حجز معاينة عقارك بنجاح:
Your property viewing has been successfully booked:

{build_property_header(viewing.property)}

📅 {format_date(viewing.scheduled_time, tz)}
🕐 {format_time(viewing.scheduled_time, tz)}
⏱️ Duration | المدة: {viewing.duration_minutes} minutes | دقيقة

الوكيل: {viewing.agent.full_name}
Agent: {viewing.agent.full_name}
📞 {_agent_contact(viewing.agent)}

{_notes_line(viewing)}
سنرسل لك تذكيراً قبل الموعد بـ 24 ساعة وساعتين.
We'll send you reminders 24 hours and 2 hours before the viewing.

إذا كنت بحاجة لإعادة الجدولة، يرجى إخبارنا.
If you need to reschedule, please let us know.

نتطلع لرؤيتك! 🏡
Looking forward to seeing you! 🏡"""


def build_agent_notification(viewing, tz: Optional[str] = None) -> str:
    _require_details(viewing)
    tz = tz or viewing_timezone(viewing)

    return f"""🔔 حجز معاينة جديد | New Viewing Booked

تم حجز معاينة جديدة:
A new viewing has been booked:

العقار | Property: {viewing.property.project_name}
العميل | Customer: {viewing.customer_name or 'غير محدد | Not specified'}
الهاتف | Phone: {viewing.customer_phone}

📅 {format_date(viewing.scheduled_time, tz)}
🕐 {format_time(viewing.scheduled_time, tz)}
⏱️ المدة | Duration: {viewing.duration_minutes} دقيقة | minutes

{_notes_line(viewing)}
يرجى التأكد من جاهزيتك للموعد.
Please ensure you're ready for the appointment."""


def build_long_lead_reminder(viewing, tz: Optional[str] = None) -> str:
    """Reminder sent the day before the viewing"""
    _require_details(viewing)
    tz = tz or viewing_timezone(viewing)
    name = viewing.customer_name or ""

    return f"""⏰ تذكير بالمعاينة | Viewing Reminder

مرحباً {name}! 👋
Hello {name}! 👋

تذكير بمعاينة العقار غداً:
Reminder: Your property viewing is tomorrow:

{build_property_header(viewing.property)}

📅 {format_date(viewing.scheduled_time, tz)}
🕐 {format_time(viewing.scheduled_time, tz)}

الوكيل: {viewing.agent.full_name}
Agent: {viewing.agent.full_name}
📞 {_agent_contact(viewing.agent)}

{_notes_line(viewing)}
سنرسل لك تذكيراً آخر قبل الموعد بساعتين.
We'll send another reminder 2 hours before the viewing.

إذا احتجت لإعادة الجدولة أو الإلغاء، يرجى إخبارنا.
If you need to reschedule or cancel, please let us know.

نتطلع لرؤيتك! 🏡
Looking forward to seeing you! 🏡"""


def build_short_lead_reminder(viewing, tz: Optional[str] = None) -> str:
    """Final reminder, two hours out"""
    _require_details(viewing)
    tz = tz or viewing_timezone(viewing)
    name = viewing.customer_name or ""

    return f"""⏰ تذكير عاجل | Urgent Reminder

مرحباً {name}! 👋
Hello {name}! 👋

معاينتك للعقار بعد ساعتين!
Your property viewing is in 2 hours!

🕐 {format_time(viewing.scheduled_time, tz)}
📍 {viewing.property.project_name}
📌 {format_location(viewing.property)}

الوكيل: {viewing.agent.full_name}
Agent: {viewing.agent.full_name}
📞 {_agent_contact(viewing.agent)}

نتمنى لك معاينة ممتعة! 🏡
Have a great viewing! 🏡"""


REMINDER_BUILDERS = {
    "long-lead": build_long_lead_reminder,
    "short-lead": build_short_lead_reminder,
}


def build_reminder(viewing, kind: str, tz: Optional[str] = None) -> str:
    """Reminder text for a long-lead or short-lead reminder job"""
    builder = REMINDER_BUILDERS.get(kind)
    if builder is None:
        raise ValueError(f"Unknown reminder kind: {kind}")
    return builder(viewing, tz)


def build_reschedule_confirmation(viewing, old_time: datetime, tz: Optional[str] = None) -> str:
    _require_details(viewing)
    tz = tz or viewing_timezone(viewing)

    return f"""🔄 تم تغيير موعد المعاينة | Viewing Rescheduled

تم تغيير موعد معاينة العقار بنجاح:
Your property viewing has been rescheduled:

📍 {viewing.property.project_name}

الموعد السابق | Previous:
📅 {format_date(old_time, tz)}
🕐 {format_time(old_time, tz)}

الموعد الجديد | New:
📅 {format_date(viewing.scheduled_time, tz)}
🕐 {format_time(viewing.scheduled_time, tz)}

الوكيل: {viewing.agent.full_name}
Agent: {viewing.agent.full_name}
📞 {_agent_contact(viewing.agent)}

نتطلع لرؤيتك! 🏡
Looking forward to seeing you! 🏡"""


def build_cancellation_notice(viewing, reason: Optional[str] = None, tz: Optional[str] = None) -> str:
    if viewing.property is None:
        raise ValueError("Viewing missing property data")
    tz = tz or viewing_timezone(viewing)
    reason_line = f"\nالسبب | Reason: {reason}\n" if reason else ""

    return f"""❌ تم إلغاء المعاينة | Viewing Cancelled

تم إلغاء معاينة العقار:
Property viewing has been cancelled:

📍 {viewing.property.project_name}
📅 {format_date(viewing.scheduled_time, tz)}
🕐 {format_time(viewing.scheduled_time, tz)}
{reason_line}
إذا كنت ترغب في حجز موعد آخر، يرجى إخبارنا.
If you'd like to schedule another viewing, please let us know.

شكراً لك! 🏡
Thank you! 🏡"""
