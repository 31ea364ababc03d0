"""Where "now" (or the check-in time) stands against today's work schedule.

All instants are aware UTC datetimes; they are converted to the configured
local timezone before any time-of-day arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import Clock, local_combine, minutes_of_day, to_local
from ..core.constants import GRACE_WINDOW_MINUTES, NEXT_DAY_THRESHOLD_HOURS
from ..core.enums import TimeDirection
from .factory import StatusStrategyFactory
from .model import WorkSchedule


@dataclass(frozen=True)
class ClockReading:
    minutes_delta: int
    direction: TimeDirection
    label: str
    reference_time: datetime
    scheduled_start: datetime
    shifted_to_next_day: bool = False
    grace_window_minutes: int = GRACE_WINDOW_MINUTES


class ScheduleClock:
    def __init__(
        self,
        *,
        clock: Clock,
        tz,
        grace_minutes: int = GRACE_WINDOW_MINUTES,
        strategy_factory: StatusStrategyFactory | None = None,
    ):
        self._clock = clock
        self._tz = tz
        self._grace_minutes = int(grace_minutes)
        self._factory = strategy_factory or StatusStrategyFactory()

    @property
    def tz(self):
        return self._tz

    def now(self) -> datetime:
        return self._clock.now()

    def local_today(self, now: Optional[datetime] = None) -> date:
        return to_local(now or self._clock.now(), self._tz).date()

    def evaluate(
        self,
        schedule: WorkSchedule,
        now: Optional[datetime] = None,
        has_checked_in: bool = False,
        check_in_time: Optional[datetime] = None,
    ) -> ClockReading:
        now = now or self._clock.now()
        reference = check_in_time if has_checked_in and check_in_time is not None else now
        local_ref = to_local(reference, self._tz)

        scheduled_start = local_combine(local_ref.date(), schedule.start_time, self._tz)
        delta = local_ref - scheduled_start

        # Known approximation: more than 12h "late" before check-in is read as
        # tomorrow's shift (01:00 start seen at 23:55). A shift really missed by
        # over 12h is therefore shown as upcoming.
        shifted = False
        if not has_checked_in and delta > timedelta(hours=NEXT_DAY_THRESHOLD_HOURS):
            scheduled_start = local_combine(local_ref.date() + timedelta(days=1), schedule.start_time, self._tz)
            delta = local_ref - scheduled_start
            shifted = True

        seconds = delta.total_seconds()
        minutes = int(abs(seconds) // 60)

        strategy = self._factory.for_reading(
            delta_seconds=seconds,
            minutes=minutes,
            has_checked_in=has_checked_in,
            grace_minutes=self._grace_minutes,
        )
        if has_checked_in:
            decision = strategy.decide_checked_in(minutes=minutes)
        else:
            decision = strategy.decide_pending(minutes=minutes)

        return ClockReading(
            minutes_delta=-minutes if seconds < 0 else minutes,
            direction=decision.direction,
            label=decision.label,
            reference_time=reference,
            scheduled_start=scheduled_start,
            shifted_to_next_day=shifted,
            grace_window_minutes=self._grace_minutes,
        )

    def is_after_scheduled_end(self, schedule: WorkSchedule, now: Optional[datetime] = None) -> bool:
        """True once the scheduled window has fully elapsed (minute resolution).

        For a schedule crossing midnight (22:00-06:00) only the gap between the
        end and the next start (06:00-22:00, exclusive) counts as closed.
        """

        current = minutes_of_day(to_local(now or self._clock.now(), self._tz))
        start = minutes_of_day(schedule.start_time)
        end = minutes_of_day(schedule.end_time)

        if schedule.crosses_midnight:
            return end < current < start
        return current > end
