"""
Absence lifecycle: create, approve, reject, cancel and edit requests.

State changes are written with a conditional ``UPDATE … WHERE status IN
(...)``; a zero row count means the record left the eligible state before
this writer got to it, which surfaces as ``InvalidStateError``. The vacation
debit is applied as ``used = used + days`` in the same transaction as the
approval.

Calendar, auto-reply, chat and mail side effects run after the commit and
never affect the outcome of a transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.config import settings
from leavedesk.core.enums import ACTIVE_STATUSES, AbsenceStatus, AbsenceType
from leavedesk.core.exceptions import (ForbiddenError, InvalidStateError,
                                       NotFoundError, ValidationError)
from leavedesk.integrations.graph import GraphClient
from leavedesk.models.absence import Absence
from leavedesk.models.user import User
from leavedesk.schemas.absence import (AbsenceCreate, AbsenceRead,
                                       AbsenceStatsResponse, AbsenceUpdate,
                                       AutoReplyConfig, AutoReplySettingsIn,
                                       VacationBalance)
from leavedesk.services.auto_reply import resolve_auto_reply_config
from leavedesk.services.calendar import working_days_between
from leavedesk.services.conflicts import ConflictCheck, check_absence_conflicts
from leavedesk.services.notifications import IntegrationResult, NotificationService
from leavedesk.services.policy import load_policy

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 5


@dataclass
class AbsenceOutcome:
    absence: Absence
    conflict: Optional[ConflictCheck] = None
    integrations: list[IntegrationResult] = field(default_factory=list)

    def integration_summary(self) -> dict[str, bool]:
        return {result.name: result.success for result in self.integrations}


def is_manager_of(approver: User, requester: User) -> bool:
    """Directory manager match by id, falling back to the manager's mail address."""
    if requester.manager_id and approver.entra_id == requester.manager_id:
        return True
    return bool(
        requester.manager_email
        and approver.email
        and approver.email.lower() == requester.manager_email.lower()
    )


def can_decide(approver: User, requester: User) -> bool:
    return approver.is_admin or is_manager_of(approver, requester)


def _substitute_fields(config: AutoReplyConfig, substitute_email: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    info = config.substitute_info if config.enabled and config.has_substitute else None
    if info is None:
        return substitute_email, None
    return substitute_email or info.email, info.name


def _settings_from_config(config: AutoReplyConfig) -> AutoReplySettingsIn:
    return AutoReplySettingsIn(
        enabled=config.enabled,
        has_substitute=config.has_substitute,
        substitute_info=config.substitute_info,
        recipients=config.recipients,
        timing=config.timing,
    )


class AbsenceService:
    def __init__(self, db: AsyncSession, graph: Optional[GraphClient] = None) -> None:
        self.db = db
        self.notifications = NotificationService(graph)

    # ── Lookups ─────────────────────────────────────────────────────
    async def _load(self, absence_id: int) -> Absence:
        absence = await self.db.get(Absence, absence_id, populate_existing=True)
        if absence is None:
            raise NotFoundError(f"Absence {absence_id} not found")
        return absence

    async def _requester(self, absence: Absence) -> User:
        requester = await self.db.get(User, absence.user_id)
        if requester is None:
            raise NotFoundError(f"User {absence.user_id} not found")
        return requester

    async def get(self, absence_id: int, caller: Optional[User] = None) -> Absence:
        """Fetch one absence; with *caller*, only its owner, manager or an admin may see it."""
        absence = await self._load(absence_id)
        if caller is not None and absence.user_id != caller.id and not caller.is_admin:
            requester = await self._requester(absence)
            if not is_manager_of(caller, requester):
                raise ForbiddenError("Not allowed to view this absence")
        return absence

    async def manager_of(self, user: User) -> Optional[User]:
        if user.manager_id:
            result = await self.db.execute(select(User).where(User.entra_id == user.manager_id))
            manager = result.scalar_one_or_none()
            if manager is not None:
                return manager
        if user.manager_email:
            result = await self.db.execute(
                select(User).where(func.lower(User.email) == user.manager_email.lower())
            )
            return result.scalar_one_or_none()
        return None

    async def direct_reports(self, manager: User) -> list[User]:
        result = await self.db.execute(
            select(User)
            .where(
                User.is_active.is_(True),
                or_(
                    User.manager_id == manager.entra_id,
                    func.lower(User.manager_email) == manager.email.lower(),
                ),
            )
            .order_by(User.name)
        )
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user: User,
        *,
        status: Optional[AbsenceStatus] = None,
        absence_type: Optional[AbsenceType] = None,
        year: Optional[int] = None,
    ) -> list[Absence]:
        stmt = select(Absence).where(Absence.user_id == user.id)
        if status is not None:
            stmt = stmt.where(Absence.status == status.value)
        if absence_type is not None:
            stmt = stmt.where(Absence.type == absence_type.value)
        if year is not None:
            stmt = stmt.where(
                Absence.start_date <= date(year, 12, 31),
                Absence.end_date >= date(year, 1, 1),
            )
        result = await self.db.execute(stmt.order_by(Absence.start_date.desc()))
        return list(result.scalars().all())

    async def pending_for_manager(self, approver: User) -> list[Absence]:
        """Pending requests the approver may decide, oldest first."""
        stmt = select(Absence).where(Absence.status == AbsenceStatus.PENDING.value)
        if not approver.is_admin:
            conditions = [func.lower(User.manager_email) == (approver.email or "").lower()]
            if approver.entra_id:
                conditions.append(User.manager_id == approver.entra_id)
            stmt = stmt.join(User, Absence.user_id == User.id).where(or_(*conditions))
        result = await self.db.execute(stmt.order_by(Absence.created_at.asc(), Absence.id.asc()))
        return list(result.scalars().all())

    async def user_stats(self, user: User, today: Optional[date] = None) -> AbsenceStatsResponse:
        today = today or date.today()
        result = await self.db.execute(
            select(Absence.status, func.count(Absence.id))
            .where(Absence.user_id == user.id)
            .group_by(Absence.status)
        )
        counts = {status: count for status, count in result.all()}

        upcoming = await self.db.execute(
            select(Absence)
            .where(
                Absence.user_id == user.id,
                Absence.status == AbsenceStatus.APPROVED.value,
                Absence.start_date >= today,
            )
            .order_by(Absence.start_date.asc())
            .limit(UPCOMING_LIMIT)
        )
        return AbsenceStatsResponse(
            total=sum(counts.values()),
            pending=counts.get(AbsenceStatus.PENDING.value, 0),
            approved=counts.get(AbsenceStatus.APPROVED.value, 0),
            vacation_days=VacationBalance(
                total=user.vacation_total,
                used=user.vacation_used,
                remaining=user.vacation_remaining,
                carry_over=user.vacation_carry_over,
            ),
            upcoming_absences=[AbsenceRead.model_validate(a) for a in upcoming.scalars().all()],
        )

    # ── Conflicts ───────────────────────────────────────────────────
    async def team_absences(self, requester: User, start: date, end: date) -> list[Absence]:
        """Active absences of the requester's team that touch ``[start, end]``.

        The team is everyone sharing the requester's manager, or the
        requester's department when no manager is known.
        """
        stmt = (
            select(Absence)
            .join(User, Absence.user_id == User.id)
            .where(
                Absence.status.in_(ACTIVE_STATUSES),
                Absence.start_date <= end,
                Absence.end_date >= start,
                Absence.user_id != requester.id,
            )
        )
        if requester.manager_id:
            stmt = stmt.where(User.manager_id == requester.manager_id)
        elif requester.department:
            stmt = stmt.where(User.department == requester.department)
        else:
            return []
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def check_conflicts(self, requester: User, start: date, end: date) -> ConflictCheck:
        if end < start:
            raise ValidationError("end_date must be on or after start_date")
        policy = await load_policy(self.db)
        return check_absence_conflicts(
            start,
            end,
            await self.team_absences(requester, start, end),
            max_concurrent_absences=policy.max_concurrent_absences,
            exclude_user_id=requester.id,
        )

    # ── Create / edit ───────────────────────────────────────────────
    async def create(self, requester: User, data: AbsenceCreate) -> AbsenceOutcome:
        config = resolve_auto_reply_config(
            data.auto_reply_settings, requester.name, data.start_date, data.end_date
        )
        conflict = await self.check_conflicts(requester, data.start_date, data.end_date)
        substitute_email, substitute_name = _substitute_fields(config, data.substitute_email)

        is_sick = data.type == AbsenceType.SICK
        absence = Absence(
            user_id=requester.id,
            user_email=requester.email,
            user_name=requester.name,
            type=data.type.value,
            start_date=data.start_date,
            end_date=data.end_date,
            is_half_day=data.is_half_day,
            half_day_period=data.half_day_period.value if data.half_day_period else None,
            total_days=working_days_between(data.start_date, data.end_date, data.is_half_day),
            # Sick leave needs no manager decision.
            status=AbsenceStatus.APPROVED.value if is_sick else AbsenceStatus.PENDING.value,
            reason=data.reason,
            substitute_email=substitute_email,
            substitute_name=substitute_name,
            substitute_tasks=data.substitute_tasks,
            auto_reply=config.model_dump(mode="json"),
            conflict_warning=conflict.has_conflict,
        )
        self.db.add(absence)
        await self.db.commit()
        await self.db.refresh(absence)
        logger.info(
            "Absence %s created for user %s (%s, %s, %.1f days)",
            absence.id,
            requester.id,
            absence.type,
            absence.status,
            absence.total_days,
        )
        if conflict.has_conflict:
            logger.warning(
                "Absence %s exceeds the team limit (%s of %s)",
                absence.id,
                conflict.concurrent_absences,
                conflict.max_allowed,
            )

        outcome = AbsenceOutcome(absence=absence, conflict=conflict)
        if not is_sick:
            policy = await load_policy(self.db)
            if policy.notify_manager_on_request:
                manager = await self.manager_of(requester)
                outcome.integrations.extend(
                    await self.notifications.notify_manager(absence, requester, manager)
                )
        return outcome

    async def update(self, absence_id: int, caller: User, data: AbsenceUpdate) -> Absence:
        """Edit a pending request; only the whitelisted fields can change."""
        absence = await self._load(absence_id)
        if absence.user_id != caller.id:
            raise ForbiddenError("Only the requester can edit an absence")

        changes = data.model_dump(exclude_unset=True)
        start = changes.get("start_date") or absence.start_date
        end = changes.get("end_date") or absence.end_date
        is_half_day = changes.get("is_half_day", absence.is_half_day)
        if is_half_day is None:
            is_half_day = False
        if end < start:
            raise ValidationError("end_date must be on or after start_date")

        half_day_period = changes.get("half_day_period", absence.half_day_period)
        if not is_half_day:
            if changes.get("half_day_period") is not None:
                raise ValidationError("half_day_period is only allowed for half-day absences")
            half_day_period = None

        if data.auto_reply_settings is not None:
            settings_in = data.auto_reply_settings
        elif absence.auto_reply:
            settings_in = _settings_from_config(AutoReplyConfig.model_validate(absence.auto_reply))
        else:
            settings_in = None
        config = resolve_auto_reply_config(settings_in, absence.user_name, start, end)
        substitute_email, substitute_name = _substitute_fields(
            config, changes.get("substitute_email", absence.substitute_email)
        )

        values = {
            "start_date": start,
            "end_date": end,
            "is_half_day": is_half_day,
            "half_day_period": getattr(half_day_period, "value", half_day_period),
            "total_days": working_days_between(start, end, is_half_day),
            "reason": changes.get("reason", absence.reason),
            "substitute_email": substitute_email,
            "substitute_name": substitute_name,
            "substitute_tasks": changes.get("substitute_tasks", absence.substitute_tasks),
            "auto_reply": config.model_dump(mode="json"),
        }
        if start != absence.start_date or end != absence.end_date:
            conflict = await self.check_conflicts(caller, start, end)
            values["conflict_warning"] = conflict.has_conflict

        await self._transition(absence_id, (AbsenceStatus.PENDING.value,), "edit", **values)
        await self.db.commit()
        await self.db.refresh(absence)
        logger.info("Absence %s updated by user %s: %s", absence_id, caller.id, sorted(changes))
        return absence

    # ── Transitions ─────────────────────────────────────────────────
    async def _transition(self, absence_id: int, eligible: tuple[str, ...], action: str, **values) -> None:
        """Apply *values* only while the absence is still in an *eligible* state.

        Leaves the transaction open so the caller can add to it before
        committing. A miss writes nothing, so the session stays usable.
        """
        values["updated_at"] = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(Absence)
            .where(Absence.id == absence_id, Absence.status.in_(eligible))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self._load(absence_id)
            raise InvalidStateError(f"Cannot {action} absence {absence_id} in status '{current.status}'")

    async def approve(self, absence_id: int, approver: User) -> AbsenceOutcome:
        absence = await self._load(absence_id)
        requester = await self._requester(absence)
        if not can_decide(approver, requester):
            raise ForbiddenError("Only the requester's manager or an admin can approve")

        await self._transition(
            absence_id,
            (AbsenceStatus.PENDING.value,),
            "approve",
            status=AbsenceStatus.APPROVED.value,
            approved_by=approver.entra_id,
            approved_by_email=approver.email,
            approved_at=datetime.now(timezone.utc),
        )
        if absence.type == AbsenceType.VACATION.value:
            await self.db.execute(
                update(User)
                .where(User.id == requester.id)
                .values(vacation_used=User.vacation_used + absence.total_days)
                .execution_options(synchronize_session=False)
            )
        await self.db.commit()
        await self.db.refresh(absence)
        await self.db.refresh(requester)
        logger.info("Absence %s approved by %s", absence_id, approver.email)

        outcome = AbsenceOutcome(absence=absence)
        outcome.integrations.append(await self.notifications.create_calendar_event(absence, requester))
        outcome.integrations.append(await self.notifications.apply_auto_reply(absence, requester))
        policy = await load_policy(self.db)
        if policy.notify_user_on_approval:
            outcome.integrations.append(await self.notifications.notify_requester(absence, requester))
        return outcome

    async def reject(self, absence_id: int, approver: User, reason: Optional[str] = None) -> AbsenceOutcome:
        absence = await self._load(absence_id)
        requester = await self._requester(absence)
        if not can_decide(approver, requester):
            raise ForbiddenError("Only the requester's manager or an admin can reject")

        rejection_reason = (reason or "").strip() or settings.DEFAULT_REJECTION_REASON
        await self._transition(
            absence_id,
            (AbsenceStatus.PENDING.value,),
            "reject",
            status=AbsenceStatus.REJECTED.value,
            approved_by=approver.entra_id,
            approved_by_email=approver.email,
            approved_at=datetime.now(timezone.utc),
            rejection_reason=rejection_reason,
        )
        await self.db.commit()
        await self.db.refresh(absence)
        logger.info("Absence %s rejected by %s", absence_id, approver.email)

        outcome = AbsenceOutcome(absence=absence)
        policy = await load_policy(self.db)
        if policy.notify_user_on_approval:
            outcome.integrations.append(
                await self.notifications.notify_requester(absence, requester, rejection_reason)
            )
        return outcome

    async def cancel(self, absence_id: int, caller: User) -> Absence:
        absence = await self._load(absence_id)
        if absence.user_id != caller.id:
            raise ForbiddenError("Only the requester can cancel an absence")

        was_approved_vacation = (
            absence.status == AbsenceStatus.APPROVED.value
            and absence.type == AbsenceType.VACATION.value
        )
        await self._transition(
            absence_id,
            ACTIVE_STATUSES,
            "cancel",
            status=AbsenceStatus.CANCELLED.value,
        )
        await self.db.commit()
        await self.db.refresh(absence)
        if was_approved_vacation:
            # The debited balance stays as is.
            logger.warning(
                "Approved vacation %s cancelled; %.1f days remain booked for user %s",
                absence_id,
                absence.total_days,
                caller.id,
            )
        logger.info("Absence %s cancelled by user %s", absence_id, caller.id)
        return absence
