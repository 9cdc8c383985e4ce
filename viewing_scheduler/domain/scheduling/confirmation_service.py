"""
Confirmation Dispatcher
Fans booking lifecycle events out to the customer and the agent
"""

import asyncio
import logging
from typing import Optional

from . import message_builder
from .reminder_service import LONG_LEAD, MessagingGateway

logger = logging.getLogger(__name__)

NOTIFY_KINDS = ("created", "rescheduled", "cancelled", "reminder")


class ConfirmationService:
    """Sends bilingual confirmation messages; never raises on delivery failure"""

    def __init__(self, gateway: MessagingGateway):
        self.gateway = gateway

    def _messages(self, kind: str, viewing, extra: dict) -> list[tuple[str, str, str]]:
        """(recipient label, address, body) for every message an event produces"""
        customer = viewing.customer_phone
        agent = viewing.agent.whatsapp_number if viewing.agent else None

        if kind == "created":
            return [
                ("customer", customer, message_builder.build_customer_confirmation(viewing)),
                ("agent", agent, message_builder.build_agent_notification(viewing)),
            ]

        if kind == "rescheduled":
            body = message_builder.build_reschedule_confirmation(viewing, extra["old_time"])
            return [("customer", customer, body), ("agent", agent, body)]

        if kind == "cancelled":
            body = message_builder.build_cancellation_notice(viewing, extra.get("reason"))
            return [("customer", customer, body), ("agent", agent, body)]

        if kind == "reminder":
            body = message_builder.build_reminder(viewing, extra.get("kind", LONG_LEAD))
            return [("customer", customer, body)]

        raise ValueError(f"Unknown notification kind: {kind}")

    async def _send(self, label: str, address: Optional[str], body: str, viewing_id: str) -> bool:
        if not address:
            logger.warning(f"⚠️ No {label} address for viewing {viewing_id}, message skipped")
            return False
        try:
            await self.gateway.send_text(address, body)
            return True
        except Exception as e:
            logger.error(f"❌ Failed to send {label} message for viewing {viewing_id}: {str(e)}")
            return False

    async def notify(self, kind: str, viewing, extra: Optional[dict] = None) -> int:
        """
        Send the messages for one lifecycle event.

        Args:
            kind: created, rescheduled, cancelled or reminder
            viewing: The viewing, with property and agent loaded
            extra: old_time for rescheduled, reason for cancelled, kind for reminder

        Returns:
            Number of messages delivered
        """
        extra = extra or {}
        try:
            messages = self._messages(kind, viewing, extra)
        except Exception as e:
            logger.error(f"❌ Failed to build {kind} messages for viewing {viewing.id}: {str(e)}")
            return 0

        results = await asyncio.gather(
            *(self._send(label, address, body, viewing.id) for label, address, body in messages)
        )
        sent = sum(1 for ok in results if ok)
        logger.info(f"📨 {kind} notification for viewing {viewing.id}: {sent}/{len(messages)} sent")
        return sent
