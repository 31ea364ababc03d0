from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Set

from ..core.exceptions import SubmissionInFlight


class SingleFlight:
    """At most one in-flight call per key; a second caller fails fast instead of waiting."""

    def __init__(self) -> None:
        self._busy: Set[Hashable] = set()
        self._lock = threading.Lock()

    @contextmanager
    def claim(self, key: Hashable, *, message: str = "A submission is already in progress") -> Iterator[None]:
        with self._lock:
            if key in self._busy:
                raise SubmissionInFlight(message)
            self._busy.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(key)
