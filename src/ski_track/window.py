"""Forward-looking buffer over an interpolated point sequence.

The window buffers *upcoming* elements, not history::

    points:  p0  p1  p2  p3  p4  p5  ...
    buffer: [e1  e2  e3  e4]              capacity 4, e1 under classification

Each :meth:`LookaheadWindow.next` call drops the element handed out by the
previous call, tops the buffer back up from the remaining points and hands
out the new head. The statistics therefore always cover the element being
classified plus the ``capacity - 1`` elements after it, shrinking once the
points run out.
"""

from __future__ import annotations

import collections
from typing import Iterator, Sequence

from ski_track.config import config
from ski_track.errors import ConfigError
from ski_track.ski_data import TrackElement
from ski_track.track_data import Datum


class LookaheadWindow:
    def __init__(self, points: Sequence[Datum], capacity: int | None = None):
        if capacity is None:
            capacity = config.WINDOW_CAPACITY
        if capacity < 1:
            raise ConfigError(f"Window capacity must be positive, got {capacity}")

        self.capacity = capacity
        self._points = points
        self._next_index = 0
        self._buffer: collections.deque[TrackElement] = collections.deque()
        self._head_returned = False
        self._fill()

    def _fill(self) -> None:
        points = self._points
        while len(self._buffer) < self.capacity and self._next_index < len(points):
            i = self._next_index
            successor = points[i + 1] if i + 1 < len(points) else None
            self._buffer.append(TrackElement.from_pair(points[i], successor))
            self._next_index += 1

    def next(self) -> TrackElement | None:
        """Advance to the next element, or return ``None`` when exhausted."""
        if self._head_returned:
            self._buffer.popleft()
            self._fill()
        if not self._buffer:
            self._head_returned = False
            return None
        self._head_returned = True
        return self._buffer[0]

    def __iter__(self) -> Iterator[TrackElement]:
        while (element := self.next()) is not None:
            yield element

    def __len__(self) -> int:
        return len(self._buffer)

    # ── statistics over the buffered elements ───────────────────────────
    # Ratios divide by the buffer size and raise ZeroDivisionError when empty.

    @property
    def ascent(self) -> int:
        return sum(e.altitude_change for e in self._buffer)

    @property
    def ascending(self) -> float:
        return sum(1 for e in self._buffer if e.altitude_change > 0) / len(self._buffer)

    @property
    def descending(self) -> float:
        return sum(1 for e in self._buffer if e.altitude_change < 0) / len(self._buffer)

    @property
    def flat(self) -> float:
        return sum(1 for e in self._buffer if e.altitude_change == 0) / len(self._buffer)

    @property
    def moving(self) -> float:
        return sum(1 for e in self._buffer if e.distance > 0) / len(self._buffer)

    @property
    def stopped(self) -> float:
        still = sum(1 for e in self._buffer if e.distance == 0 and e.altitude_change == 0)
        return still / len(self._buffer)

    def __repr__(self) -> str:
        return f"LookaheadWindow(capacity={self.capacity}, buffered={len(self)})"
