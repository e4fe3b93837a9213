"""Fixed-window per-client quota with separate reserve and commit steps."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, Optional, Set

from ..errors import QuotaExceeded
from ..utils import minutes_until, to_datetime, to_iso


@dataclass
class QuotaWindow:
    count: int = 0
    window_start: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Reservation:
    client_id: str
    reservation_id: str


@dataclass(frozen=True)
class QuotaSnapshot:
    remaining: int
    limit: int
    reset_at: Optional[float]

    def to_dict(self) -> Dict[str, object]:
        return {"remaining": self.remaining, "limit": self.limit, "resetAt": to_iso(self.reset_at)}


class QuotaTracker:
    """
    Counts committed enqueues per client in fixed windows.

    ``try_reserve`` never touches the counter; it only registers an in-flight
    hold so that concurrent reservations cannot together overshoot the limit.
    Holds are turned into counts by ``commit`` or dropped by ``release``.
    Windows roll forward lazily when a commit finds the current one lapsed,
    and each commit drops every other lapsed window.
    """

    def __init__(self, limit: int = 10, window_seconds: int = 3600, clock: Callable[[], float] = time.time) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, QuotaWindow] = {}
        self._holds: Dict[str, Set[str]] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def try_reserve(self, client_id: str) -> Reservation:
        with self._lock:
            now = self._clock()
            window = self._live_window(client_id, now)
            used = (window.count if window else 0) + len(self._holds.get(client_id, ()))
            if used >= self.limit:
                reset_at = window.window_start + self.window_seconds if window else now + self.window_seconds
                raise QuotaExceeded(self.limit, to_datetime(reset_at), minutes_until(reset_at, now))
            reservation = Reservation(client_id=client_id, reservation_id=uuid.uuid4().hex)
            self._holds.setdefault(client_id, set()).add(reservation.reservation_id)
            return reservation

    def commit(self, reservation: Reservation) -> QuotaSnapshot:
        with self._lock:
            self._drop_hold(reservation)
            now = self._clock()
            window = self._live_window(reservation.client_id, now)
            if window is None:
                window = QuotaWindow(count=0, window_start=now)
                self._windows[reservation.client_id] = window
            window.count += 1
            self._prune_locked(now)
            return self._snapshot(window)

    def release(self, reservation: Reservation) -> None:
        with self._lock:
            self._drop_hold(reservation)

    def peek(self, client_id: str) -> QuotaSnapshot:
        with self._lock:
            window = self._live_window(client_id, self._clock())
            if window is None:
                return QuotaSnapshot(remaining=self.limit, limit=self.limit, reset_at=None)
            return self._snapshot(window)

    def _prune_locked(self, now: float) -> None:
        lapsed = [
            client_id
            for client_id, window in self._windows.items()
            if now - window.window_start >= self.window_seconds
        ]
        for client_id in lapsed:
            del self._windows[client_id]

    def _live_window(self, client_id: str, now: float) -> Optional[QuotaWindow]:
        window = self._windows.get(client_id)
        if window is None or now - window.window_start >= self.window_seconds:
            return None
        return window

    def _snapshot(self, window: QuotaWindow) -> QuotaSnapshot:
        return QuotaSnapshot(
            remaining=max(0, self.limit - window.count),
            limit=self.limit,
            reset_at=window.window_start + self.window_seconds,
        )

    def _drop_hold(self, reservation: Reservation) -> None:
        holds = self._holds.get(reservation.client_id)
        if holds is None:
            return
        holds.discard(reservation.reservation_id)
        if not holds:
            del self._holds[reservation.client_id]
