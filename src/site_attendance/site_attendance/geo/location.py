"""Device location stream, reduced to "latest position + latest error".

Devices push fixes and errors at arbitrary intervals. Everything downstream
(geofence distance, attendance gate) only reads a :class:`LocationSnapshot`, so
it never depends on how the events were delivered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

import structlog

from ..core.constants import LOCATION_MAX_FIX_AGE_SECONDS, LOCATION_TIMEOUT_SECONDS
from ..core.enums import LocationErrorKind, LocationState
from .model import Coordinate

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PositionFix:
    coordinate: Coordinate
    received_at: datetime
    accuracy_m: Optional[float] = None


@dataclass(frozen=True)
class LocationFailure:
    kind: LocationErrorKind
    received_at: datetime
    message: Optional[str] = None


LocationEvent = Union[PositionFix, LocationFailure]


@dataclass(frozen=True)
class LocationSnapshot:
    position: Optional[Coordinate] = None
    error: Optional[LocationErrorKind] = None
    accuracy_m: Optional[float] = None

    @property
    def state(self) -> LocationState:
        if self.error == LocationErrorKind.PERMISSION_DENIED:
            return LocationState.PERMISSION_DENIED
        if self.error is not None:
            return LocationState.UNAVAILABLE
        if self.position is None:
            return LocationState.LOCATING
        return LocationState.LOCATED


class LocationTracker:
    """Keeps the latest fix and the latest error for one worker's device.

    - A fix clears any previous error.
    - An error keeps the last fix but the error wins while it is outstanding.
    - No fix within ``timeout`` of starting the watch reads as TIMEOUT.
    - Fixes older than ``max_fix_age`` are not reused.
    """

    def __init__(
        self,
        *,
        started_at: datetime,
        timeout: timedelta = timedelta(seconds=LOCATION_TIMEOUT_SECONDS),
        max_fix_age: timedelta = timedelta(seconds=LOCATION_MAX_FIX_AGE_SECONDS),
    ):
        self._started_at = started_at
        self._timeout = timeout
        self._max_fix_age = max_fix_age
        self._fix: Optional[PositionFix] = None
        self._failure: Optional[LocationFailure] = None

    def apply(self, event: LocationEvent) -> None:
        if isinstance(event, PositionFix):
            self._fix = event
            self._failure = None
        else:
            self._failure = event
            logger.info("location_error", kind=event.kind.value, message=event.message)

    def restart(self, started_at: datetime) -> None:
        self._started_at = started_at
        self._fix = None
        self._failure = None

    def snapshot(self, now: datetime) -> LocationSnapshot:
        if self._failure is not None:
            last = self._fix.coordinate if self._fix else None
            return LocationSnapshot(position=last, error=self._failure.kind)

        fix = self._fix
        waiting_since = self._started_at
        if fix is not None and now - fix.received_at > self._max_fix_age:
            waiting_since = max(waiting_since, fix.received_at + self._max_fix_age)
            fix = None

        if fix is None:
            if now - waiting_since > self._timeout:
                return LocationSnapshot(error=LocationErrorKind.TIMEOUT)
            return LocationSnapshot()

        return LocationSnapshot(position=fix.coordinate, accuracy_m=fix.accuracy_m)


class LocationSubscription:
    """Cancellable handle on a device's location stream feeding a tracker."""

    def __init__(self, tracker: LocationTracker):
        self._tracker = tracker
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def publish(self, event: LocationEvent) -> bool:
        """Deliver one event; returns False once the subscription is cancelled."""
        if self._cancelled:
            return False
        self._tracker.apply(event)
        return True

    def cancel(self) -> None:
        self._cancelled = True

    def latest(self, now: datetime) -> LocationSnapshot:
        return self._tracker.snapshot(now)
