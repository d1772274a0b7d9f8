"""Vesting schedule generator.

Vesting events are computed on read from the grant and its schedule. Manual
status changes (forfeitures) are kept in a small overlay keyed by the
event's vest date and applied after generation, so the full schedule is
never stored as mutable rows.

Time-based algorithm:
  1. Cliff event at grant_date + cliff_months for
     floor(quantity * cliff_months / total_vesting_months) shares.
  2. The rest of the term is split into periods of 1, 3 or 12 months, each
     vesting floor(quantity * period_months / total_vesting_months). When
     the term does not divide evenly, the last period is shortened so the
     final event lands exactly at grant_date + total_vesting_months.
  3. The final event absorbs quantity - sum(prior events), so generated
     quantities always add up to the grant quantity.
"""

import logging
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from vestcalc.exceptions import ConfigurationError
from vestcalc.models.enums import ScheduleKind, VestingStatus
from vestcalc.models.equity import (
    Grant,
    GrantLedger,
    VestingEvent,
    VestingOverride,
    VestingSchedule,
)

logger = logging.getLogger(__name__)


class VestingScheduleGenerator:
    """Turns grant parameters into a deterministic list of vesting events."""

    def validate_schedule(self, grant: Grant, schedule: VestingSchedule) -> None:
        if schedule.grant_id != grant.id:
            raise ConfigurationError(
                "vesting_schedule.grant_id",
                f"schedule belongs to {schedule.grant_id}, not {grant.id}",
            )
        if schedule.kind == ScheduleKind.MILESTONE:
            return
        if schedule.total_vesting_months is None or schedule.total_vesting_months <= 0:
            raise ConfigurationError(
                "vesting_schedule.total_vesting_months",
                f"must be positive, got {schedule.total_vesting_months}",
            )
        if schedule.cliff_months < 0:
            raise ConfigurationError(
                "vesting_schedule.cliff_months", f"must be >= 0, got {schedule.cliff_months}"
            )
        if schedule.cliff_months > schedule.total_vesting_months:
            raise ConfigurationError(
                "vesting_schedule.cliff_months",
                f"cliff of {schedule.cliff_months} months exceeds the "
                f"{schedule.total_vesting_months}-month vesting term",
            )
        if schedule.frequency is None:
            raise ConfigurationError(
                "vesting_schedule.frequency", "time-based schedule has no frequency"
            )

    def generate_events(
        self,
        grant: Grant,
        schedule: VestingSchedule,
        as_of: date | None = None,
        overrides: list[VestingOverride] | None = None,
    ) -> list[VestingEvent]:
        """Generate vesting events for a grant as of a date.

        Milestone schedules produce no dated events; the caller records
        milestone completion separately.
        """
        self.validate_schedule(grant, schedule)
        as_of = as_of or date.today()

        if schedule.kind == ScheduleKind.MILESTONE:
            logger.debug("Grant %s vests on milestone; no dated events generated", grant.id)
            return []

        planned = self._plan_quantities(grant.quantity, schedule)
        override_map = {o.vest_date: o for o in overrides or []}

        events: list[VestingEvent] = []
        for month_offset, shares in planned:
            if shares <= 0:
                logger.debug(
                    "Skipping zero-share period at month %d for grant %s", month_offset, grant.id
                )
                continue
            vest_date = grant.grant_date + relativedelta(months=month_offset)
            status = VestingStatus.VESTED if vest_date <= as_of else VestingStatus.PENDING
            notes = None
            override = override_map.get(vest_date)
            if override is not None:
                status = override.status
                notes = override.notes
            events.append(
                VestingEvent(
                    id=f"{grant.id}-{len(events) + 1}",
                    grant_id=grant.id,
                    vest_date=vest_date,
                    quantity=shares,
                    fmv_at_vest=grant.fmv_at_grant,
                    status=status,
                    notes=notes,
                )
            )

        unmatched = set(override_map) - {e.vest_date for e in events}
        if unmatched:
            logger.warning(
                "Ignoring %d override(s) for grant %s with no matching vest date: %s",
                len(unmatched),
                grant.id,
                ", ".join(sorted(d.isoformat() for d in unmatched)),
            )
        return events

    @staticmethod
    def _plan_quantities(quantity: int, schedule: VestingSchedule) -> list[tuple[int, int]]:
        """Return (month_offset, shares) pairs with the remainder on the last one."""
        total = schedule.total_vesting_months
        cliff = schedule.cliff_months
        step = schedule.frequency.months

        planned: list[tuple[int, int]] = []
        if cliff > 0:
            planned.append((cliff, quantity * cliff // total))

        month = cliff
        while month < total:
            period = min(step, total - month)
            month += period
            planned.append((month, quantity * period // total))

        allocated = sum(shares for _, shares in planned[:-1])
        last_month, _ = planned[-1]
        planned[-1] = (last_month, quantity - allocated)
        return planned

    def events_for_ledger(self, ledger: GrantLedger, as_of: date | None = None) -> list[VestingEvent]:
        """Generated events plus any caller-recorded milestone vestings, by date."""
        events: list[VestingEvent] = []
        if ledger.schedule is None:
            logger.warning("Grant %s has no vesting schedule", ledger.grant.id)
        else:
            events = self.generate_events(ledger.grant, ledger.schedule, as_of, ledger.overrides)
        events.extend(ledger.milestone_vestings)
        return sorted(events, key=lambda e: e.vest_date)

    @staticmethod
    def vested_quantity(events: list[VestingEvent], at: date) -> int:
        """Shares vested by ``at``: vested events dated on or before it."""
        return sum(
            e.quantity for e in events if e.status == VestingStatus.VESTED and e.vest_date <= at
        )

    def vested_quantity_for(self, ledger: GrantLedger, at: date) -> int:
        return self.vested_quantity(self.events_for_ledger(ledger, at), at)

    def upcoming_events(
        self, ledgers: list[GrantLedger], as_of: date, days: int
    ) -> list[VestingEvent]:
        """Pending events vesting within ``days`` after ``as_of``."""
        horizon = as_of + timedelta(days=days)
        upcoming = []
        for ledger in ledgers:
            for event in self.events_for_ledger(ledger, as_of):
                if event.status == VestingStatus.PENDING and as_of < event.vest_date <= horizon:
                    upcoming.append(event)
        return sorted(upcoming, key=lambda e: (e.vest_date, e.grant_id))
