"""
Best-effort side effects of the absence workflow.

Calendar events, auto-replies, chat messages and mails are enhancements:
each call is wrapped so that a failure is logged and returned as an
``IntegrationResult`` instead of being raised into the workflow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import Awaitable, Optional

from leavedesk.core.config import settings
from leavedesk.core.enums import HalfDayPeriod, format_absence_type, format_days
from leavedesk.integrations.graph import GraphClient
from leavedesk.models.absence import Absence
from leavedesk.models.user import User
from leavedesk.schemas.absence import AutoReplyConfig
from leavedesk.services.auto_reply import map_auto_reply_settings
from leavedesk.services.calendar import format_date

logger = logging.getLogger(__name__)

# Office hours blocked by a half-day absence.
HALF_DAY_HOURS = {
    HalfDayPeriod.MORNING.value: (time(8, 0), time(12, 0)),
    HalfDayPeriod.AFTERNOON.value: (time(13, 0), time(17, 0)),
}


@dataclass(frozen=True)
class IntegrationResult:
    name: str
    success: bool
    skipped: bool = False
    error: Optional[str] = None


async def best_effort(name: str, call: Awaitable) -> IntegrationResult:
    """Await *call*; any failure becomes an unsuccessful result."""
    try:
        await call
    except Exception as exc:  # integration failures must never reach the caller
        logger.warning("%s failed: %s", name, exc)
        return IntegrationResult(name=name, success=False, error=str(exc))
    logger.info("%s succeeded", name)
    return IntegrationResult(name=name, success=True)


def _skipped(name: str, why: str) -> IntegrationResult:
    logger.info("%s skipped: %s", name, why)
    return IntegrationResult(name=name, success=False, skipped=True, error=why)


def approval_request_message(absence: Absence) -> str:
    return (
        "<h3>Neuer Abwesenheitsantrag</h3>"
        f"<p><strong>Von:</strong> {absence.user_name}</p>"
        f"<p><strong>Art:</strong> {format_absence_type(absence.type)}</p>"
        f"<p><strong>Zeitraum:</strong> {format_date(absence.start_date)} - {format_date(absence.end_date)}</p>"
        f"<p><strong>Dauer:</strong> {format_days(absence.total_days)}</p>"
        f'<p><a href="{settings.APP_URL}/manager/approvals">Jetzt genehmigen</a></p>'
    )


def decision_message(absence: Absence, reason: Optional[str] = None) -> str:
    status_text = "genehmigt" if absence.status == "approved" else "abgelehnt"
    message = (
        f"<h3>Abwesenheitsantrag {status_text}</h3>"
        f"<p><strong>Art:</strong> {format_absence_type(absence.type)}</p>"
        f"<p><strong>Zeitraum:</strong> {format_date(absence.start_date)} - {format_date(absence.end_date)}</p>"
    )
    if reason:
        message += f"<p><strong>Grund:</strong> {reason}</p>"
    return message


class NotificationService:
    def __init__(self, graph: Optional[GraphClient]) -> None:
        self.graph = graph

    async def notify_manager(self, absence: Absence, requester: User, manager: Optional[User]) -> list[IntegrationResult]:
        if manager is None or not manager.entra_id:
            return [_skipped("manager_notification", "manager not found")]
        if self.graph is None:
            return [_skipped("manager_notification", "graph client unavailable")]
        subject = f"Neuer Abwesenheitsantrag von {absence.user_name}"
        body = approval_request_message(absence)
        return [
            await best_effort("manager_mail", self.graph.send_mail(requester.entra_id, manager.email, subject, body)),
            await best_effort("manager_chat", self.graph.send_chat_message(manager.entra_id, body)),
        ]

    async def notify_requester(self, absence: Absence, requester: User, reason: Optional[str] = None) -> IntegrationResult:
        if self.graph is None:
            return _skipped("requester_chat", "graph client unavailable")
        return await best_effort(
            "requester_chat",
            self.graph.send_chat_message(requester.entra_id, decision_message(absence, reason)),
        )

    async def create_calendar_event(self, absence: Absence, requester: User) -> IntegrationResult:
        if self.graph is None:
            return _skipped("calendar_event", "graph client unavailable")
        start_time, end_time = (None, None)
        if absence.is_half_day:
            start_time, end_time = HALF_DAY_HOURS.get(absence.half_day_period, (None, None))
        return await best_effort(
            "calendar_event",
            self.graph.create_calendar_event(
                requester.entra_id,
                subject=f"{format_absence_type(absence.type)} - {absence.user_name}",
                body=absence.reason or "",
                start=absence.start_date,
                end=absence.end_date,
                is_all_day=not absence.is_half_day,
                start_time=start_time,
                end_time=end_time,
            ),
        )

    async def apply_auto_reply(self, absence: Absence, requester: User) -> IntegrationResult:
        config = AutoReplyConfig.model_validate(absence.auto_reply or {"enabled": False})
        if not config.enabled:
            return _skipped("auto_reply", "disabled by requester")
        if self.graph is None:
            return _skipped("auto_reply", "graph client unavailable")
        setting = map_auto_reply_settings(config, absence.start_date, absence.end_date, absence.user_name)
        return await best_effort(
            "auto_reply",
            self.graph.set_automatic_replies(requester.entra_id, setting.to_graph(self.graph.time_zone)),
        )
