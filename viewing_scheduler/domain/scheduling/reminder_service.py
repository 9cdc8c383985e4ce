"""
Reminder Scheduler
Delayed, cancellable reminder jobs for booked viewings.

Each viewing owns at most two pending jobs, keyed "{viewing_id}-long-lead"
and "{viewing_id}-short-lead". Scheduling replaces any job under the same
key, so calling it twice never queues a duplicate. Jobs re-read the viewing
when they fire and skip anything that was cancelled or completed meanwhile.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from arq.connections import ArqRedis
from arq.constants import default_queue_name, job_key_prefix, result_key_prefix, retry_key_prefix
from sqlalchemy.orm import Session

from ...config import LONG_LEAD_HOURS, SHORT_LEAD_HOURS
from ...models_viewing import TERMINAL_STATUSES
from . import message_builder
from .repository import SchedulingRepository
from .time_calculator import ensure_utc

logger = logging.getLogger(__name__)

REMINDER_TASK_NAME = "send_viewing_reminder_task"

LONG_LEAD = "long-lead"
SHORT_LEAD = "short-lead"
REMINDER_KINDS = (LONG_LEAD, SHORT_LEAD)

LEAD_TIMES = {
    LONG_LEAD: timedelta(hours=LONG_LEAD_HOURS),
    SHORT_LEAD: timedelta(hours=SHORT_LEAD_HOURS),
}


def reminder_job_key(viewing_id: str, kind: str) -> str:
    return f"{viewing_id}-{kind}"


class ReminderQueue(Protocol):
    """Delayed-job queue that addresses jobs by caller-chosen key"""

    async def enqueue(self, function: str, job_key: str, fire_at: datetime, *args) -> None: ...

    async def remove(self, job_key: str) -> bool: ...


class MessagingGateway(Protocol):
    async def send_text(self, to: str, body: str): ...


class ArqReminderQueue:
    """ReminderQueue on top of an arq Redis pool"""

    def __init__(self, redis: ArqRedis, queue_name: str = default_queue_name):
        self.redis = redis
        self.queue_name = queue_name

    async def enqueue(self, function: str, job_key: str, fire_at: datetime, *args) -> None:
        # arq refuses a job id that still has a job or result key, so clear it first
        await self.remove(job_key)
        job = await self.redis.enqueue_job(
            function,
            *args,
            _job_id=job_key,
            _queue_name=self.queue_name,
            _defer_until=fire_at,
        )
        if job is None:
            logger.warning(f"⚠️ Job {job_key} already queued, not replaced")

    async def remove(self, job_key: str) -> bool:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zrem(self.queue_name, job_key)
            pipe.delete(
                job_key_prefix + job_key,
                retry_key_prefix + job_key,
                result_key_prefix + job_key,
            )
            removed_from_queue, deleted_keys = await pipe.execute()
        return bool(removed_from_queue or deleted_keys)


class ReminderService:
    """Schedules, cancels and fires viewing reminders"""

    def __init__(self, queue: ReminderQueue):
        self.queue = queue

    async def schedule_reminders(
        self, viewing_id: str, scheduled_time: datetime, now: Optional[datetime] = None
    ) -> list[str]:
        """
        Queue the long-lead and short-lead reminders for a viewing.

        Triggers that are not strictly in the future are skipped.

        Returns:
            The reminder kinds that were queued
        """
        scheduled_time = ensure_utc(scheduled_time)
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

        scheduled = []
        for kind in REMINDER_KINDS:
            fire_at = scheduled_time - LEAD_TIMES[kind]
            if fire_at <= now:
                logger.info(f"⏭️ Skipping {kind} reminder for viewing {viewing_id}: trigger passed")
                continue

            await self.queue.enqueue(
                REMINDER_TASK_NAME,
                reminder_job_key(viewing_id, kind),
                fire_at,
                viewing_id,
                kind,
            )
            scheduled.append(kind)

        logger.info(f"⏰ Scheduled reminders for viewing {viewing_id}: {scheduled or 'none'}")
        return scheduled

    async def cancel_reminders(self, viewing_id: str) -> int:
        """Remove both pending reminder jobs; returns how many existed"""
        removed = 0
        for kind in REMINDER_KINDS:
            if await self.queue.remove(reminder_job_key(viewing_id, kind)):
                removed += 1

        logger.info(f"🗑️ Cancelled {removed} reminder job(s) for viewing {viewing_id}")
        return removed

    async def reschedule_reminders(
        self, viewing_id: str, new_time: datetime, now: Optional[datetime] = None
    ) -> list[str]:
        await self.cancel_reminders(viewing_id)
        return await self.schedule_reminders(viewing_id, new_time, now=now)

    async def process_reminder(
        self, db: Session, viewing_id: str, kind: str, gateway: MessagingGateway
    ) -> bool:
        """
        Body of a fired reminder job.

        Returns True when a message was sent. Gateway errors propagate so the
        worker can retry.
        """
        if kind not in REMINDER_KINDS:
            logger.error(f"❌ Unknown reminder kind {kind} for viewing {viewing_id}")
            return False

        viewing = SchedulingRepository.get_viewing(db, viewing_id)
        if not viewing:
            logger.info(f"Viewing {viewing_id} no longer exists, skipping {kind} reminder")
            return False

        if viewing.status in TERMINAL_STATUSES:
            logger.info(f"Viewing {viewing_id} is {viewing.status}, skipping {kind} reminder")
            return False

        if kind == LONG_LEAD and viewing.reminder_sent:
            logger.info(f"Long-lead reminder already sent for viewing {viewing_id}")
            return False

        body = message_builder.build_reminder(viewing, kind)
        await gateway.send_text(viewing.customer_phone, body)

        if kind == LONG_LEAD:
            viewing.reminder_sent = True
            db.commit()

        logger.info(f"✅ Sent {kind} reminder for viewing {viewing_id}")
        return True
