"""
Out-of-office message generation and mapping to the Graph mailbox shape.

The internal and external bodies share one template for now; they are
produced separately so they can diverge without touching callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from leavedesk.core.exceptions import ValidationError
from leavedesk.schemas.absence import (AutoReplyConfig, AutoReplyMessages,
                                       AutoReplyRecipients, AutoReplySettingsIn,
                                       AutoReplyTiming, SubstituteInfo)
from leavedesk.services.calendar import format_date

END_OF_DAY = time(23, 59, 59)


@dataclass(frozen=True)
class AutomaticRepliesSetting:
    """Mailbox auto-reply setting as understood by the Graph API."""

    status: str  # disabled | alwaysEnabled | scheduled
    external_audience: str = "none"  # all | contactsOnly | none
    internal_reply_message: Optional[str] = None
    external_reply_message: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None

    def to_graph(self, time_zone: str) -> dict:
        payload: dict = {"status": self.status}
        if self.status == "disabled":
            return payload
        payload["externalAudience"] = self.external_audience
        if self.internal_reply_message is not None:
            payload["internalReplyMessage"] = self.internal_reply_message
        if self.external_reply_message is not None:
            payload["externalReplyMessage"] = self.external_reply_message
        if self.status == "scheduled":
            payload["scheduledStartDateTime"] = {
                "dateTime": self.scheduled_start.isoformat(timespec="seconds"),
                "timeZone": time_zone,
            }
            payload["scheduledEndDateTime"] = {
                "dateTime": self.scheduled_end.isoformat(timespec="seconds"),
                "timeZone": time_zone,
            }
        return payload


def generate_auto_reply_messages(
    user_name: str,
    start_date: date,
    end_date: date,
    substitute: Optional[SubstituteInfo] = None,
    signature: Optional[str] = None,
) -> AutoReplyMessages:
    """Render the internal and external reply bodies."""
    base = (
        "Guten Tag,\n\n"
        "vielen Dank für Ihre Nachricht.\n\n"
        f"Ich bin vom {format_date(start_date)} bis {format_date(end_date)} abwesend "
        "und habe in dieser Zeit keinen Zugriff auf meine E-Mails."
    )

    if substitute is not None and substitute.email:
        substitute_section = (
            "\n\nBei dringenden Angelegenheiten wenden Sie sich bitte an meine Vertretung:\n\n"
            f"{substitute.name or 'Vertretung'}\nE-Mail: {substitute.email}"
        )
        if substitute.phone:
            substitute_section += f"\nTel.: {substitute.phone}"
    else:
        substitute_section = "\n\nBei dringenden Angelegenheiten wenden Sie sich bitte an mein Team."

    return_section = "\n\nIch werde Ihre E-Mail nach meiner Rückkehr bearbeiten."
    closing = f"\n\nMit freundlichen Grüßen\n{user_name}"
    signature_section = f"\n────────────────────\n{signature}" if signature else ""

    body = base + substitute_section + return_section + closing + signature_section
    return AutoReplyMessages(internal=body, external=body)


def generate_user_signature(
    user_name: str,
    email: str,
    job_title: Optional[str] = None,
    department: Optional[str] = None,
    phone: Optional[str] = None,
) -> str:
    lines = [user_name]
    if job_title:
        lines.append(job_title)
    if department:
        lines.append(department)
    signature = "\n".join(lines) + f"\n\nE-Mail: {email}"
    if phone:
        signature += f"\nTel.: {phone}"
    return signature


def resolve_auto_reply_config(
    settings_in: Optional[AutoReplySettingsIn],
    user_name: str,
    start_date: date,
    end_date: date,
) -> AutoReplyConfig:
    """Apply defaults to submitted settings and attach the generated messages.

    This is the only place where auto-reply defaults are decided: enabled,
    both recipient groups, scheduled at midnight on the first absence day.
    """
    raw = settings_in or AutoReplySettingsIn()
    timing = raw.timing or AutoReplyTiming()
    try:
        config = AutoReplyConfig(
            enabled=raw.enabled,
            has_substitute=raw.has_substitute,
            substitute_info=raw.substitute_info,
            recipients=raw.recipients or AutoReplyRecipients(),
            timing=AutoReplyTiming(
                activate_immediately=timing.activate_immediately,
                scheduled_date=start_date,
                scheduled_time=timing.scheduled_time,
            ),
        )
    except PydanticValidationError as exc:
        raise ValidationError(exc.errors()[0]["msg"]) from exc

    substitute = config.substitute_info if config.has_substitute else None
    config.generated_message = generate_auto_reply_messages(user_name, start_date, end_date, substitute)
    return config


def map_auto_reply_settings(
    config: AutoReplyConfig,
    start_date: date,
    end_date: date,
    user_name: str,
) -> AutomaticRepliesSetting:
    """Translate an absence's auto-reply config into the mailbox setting."""
    if not config.enabled:
        return AutomaticRepliesSetting(status="disabled")

    substitute = config.substitute_info if config.has_substitute else None
    messages = generate_auto_reply_messages(user_name, start_date, end_date, substitute)
    status = "alwaysEnabled" if config.timing.activate_immediately else "scheduled"

    scheduled_start = scheduled_end = None
    if status == "scheduled":
        hour, minute = (int(part) for part in config.timing.scheduled_time.split(":"))
        scheduled_start = datetime.combine(start_date, time(hour, minute))
        scheduled_end = datetime.combine(end_date, END_OF_DAY)

    return AutomaticRepliesSetting(
        status=status,
        external_audience="all" if config.recipients.external else "none",
        internal_reply_message=messages.internal if config.recipients.internal else None,
        external_reply_message=messages.external if config.recipients.external else None,
        scheduled_start=scheduled_start,
        scheduled_end=scheduled_end,
    )
