# telepsy/services/notifications.py
"""
Outbound appointment events.

Scheduling never depends on delivery: the Notifier is called after commit and
publisher failures are logged and dropped.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import httpx

from telepsy.core.business import DATE_FORMAT, format_local
from telepsy.core.config import settings
from telepsy.core.logging import get_logger
from telepsy.db.models.appointment import Appointment

logger = get_logger(__name__)

CHANNELS = ("notifications", "emails")

BOOKED = "appointment.booked"
RESCHEDULED = "appointment.rescheduled"
CANCELLED = "appointment.cancelled"
REPORTED = "appointment.reported"


class Publisher(Protocol):
    async def publish(self, topic: str, payload: Dict[str, Any]) -> None: ...


class LoggingPublisher:
    """Default publisher: writes each event to the structured log."""

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        logger.info("event_published", topic=topic, **payload)


class WebhookPublisher:
    """POST each event as JSON to a single webhook endpoint."""

    def __init__(self, url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.url, json={"topic": topic, "payload": payload})
            resp.raise_for_status()


def build_publisher() -> Publisher:
    if settings.NOTIFY_WEBHOOK_URL:
        return WebhookPublisher(settings.NOTIFY_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT)
    return LoggingPublisher()


def appointment_payload(appt: Appointment) -> Dict[str, Any]:
    return {
        "appointment_id": appt.id,
        "number": appt.number,
        "user_id": appt.user_id,
        "psychologist_id": appt.psychologist_id,
        "date": format_local(appt.starts_at, DATE_FORMAT),
        "time": format_local(appt.starts_at, "%H:%M"),
        "duration": appt.duration,
    }


class Notifier:
    def __init__(self, publisher: Optional[Publisher] = None):
        self.publisher = publisher or LoggingPublisher()

    async def _dispatch(self, topic: str, payload: Dict[str, Any]) -> None:
        for channel in CHANNELS:
            try:
                await self.publisher.publish(topic, {"channel": channel, **payload})
            except Exception as e:
                logger.warning("notification_failed", topic=topic, channel=channel, error=str(e))

    async def appointment_booked(self, appt: Appointment) -> None:
        await self._dispatch(BOOKED, appointment_payload(appt))

    async def appointment_rescheduled(self, appt: Appointment, previous_start) -> None:
        payload = appointment_payload(appt)
        payload["previous_date"] = format_local(previous_start, DATE_FORMAT)
        payload["previous_time"] = format_local(previous_start, "%H:%M")
        await self._dispatch(RESCHEDULED, payload)

    async def appointment_cancelled(self, appt: Appointment) -> None:
        payload = appointment_payload(appt)
        payload["cancelled_by"] = appt.cancelled_by
        payload["cancelled_paid"] = appt.cancelled_paid
        await self._dispatch(CANCELLED, payload)

    async def appointment_reported(self, appt: Appointment, follow_up: Optional[Appointment] = None) -> None:
        payload = appointment_payload(appt)
        if follow_up is not None:
            payload["next_appointment"] = appointment_payload(follow_up)
        await self._dispatch(REPORTED, payload)
