"""
Classified track structures: elements, runs (tracks), rides (blocks) and the
session aggregate.

A *run* is a maximal stretch of consecutive elements sharing one mode. A
*block* groups the runs of one ride: it opens with a LIFT run and collects
every following SKI/STOP run until the next LIFT run begins. Only the first
block of a session may start with something other than LIFT.

    STOP  LIFT  SKI  STOP  SKI  LIFT  SKI
    [--- block 1 ---------------][-- block 2 --]
    ^     ^ starts block 1 only if it is the first non-empty block

Every structure computes its aggregates once, when it is closed; until then
the aggregate accessors return their defaults (``0`` / ``None``).
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from ski_track.errors import SealedDataError, UnclassifiedElementError
from ski_track.track_data import Datum, Mode

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# TrackElement
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, eq=False)
class TrackElement:
    """A GPS sample annotated with the change to its successor.

    ``mode`` is ``None`` for a freshly measured element; the classified copy
    is produced by :meth:`with_mode`. Elements compare and hash by ``time``.
    """

    datum: Datum
    altitude_change: int = 0
    distance: float = 0.0
    mode: Mode | None = None

    @classmethod
    def from_pair(cls, datum: Datum, successor: Datum | None = None) -> TrackElement:
        if successor is None:
            return cls(datum)
        dx = successor.x - datum.x
        dy = successor.y - datum.y
        return cls(
            datum,
            altitude_change=successor.altitude - datum.altitude,
            distance=(dx * dx + dy * dy) ** 0.5,
        )

    def with_mode(self, mode: Mode) -> TrackElement:
        return dataclasses.replace(self, mode=mode)

    @property
    def time(self) -> int:
        return self.datum.time

    @property
    def timestamp(self) -> datetime.datetime:
        return self.datum.timestamp

    @property
    def latitude(self) -> float:
        return self.datum.latitude

    @property
    def longitude(self) -> float:
        return self.datum.longitude

    @property
    def x(self) -> float:
        return self.datum.x

    @property
    def y(self) -> float:
        return self.datum.y

    @property
    def altitude(self) -> int:
        return self.datum.altitude

    @property
    def speed(self) -> float:
        return self.datum.speed

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrackElement):
            return NotImplemented
        return self.time == other.time

    def __hash__(self) -> int:
        return hash(self.time)


# ---------------------------------------------------------------------------
# Track
# ---------------------------------------------------------------------------


class Track:
    """Ordered elements plus aggregates computed by :meth:`close`."""

    def __init__(self, elements: Iterable[TrackElement] = ()):
        self._elements: list[TrackElement] = list(elements)
        self.closed = False
        self._reset_aggregates()

    def _reset_aggregates(self) -> None:
        self.average_speed: float = 0.0
        self.distance: float = 0.0
        self.altitude_delta: int = 0
        self.highest: TrackElement | None = None
        self.lowest: TrackElement | None = None
        self.max_speed_element: TrackElement | None = None
        self.start_time: int = 0
        self.end_time: int = 0

    def append(self, element: TrackElement) -> None:
        self._elements.append(element)

    def extend(self, elements: Iterable[TrackElement]) -> None:
        self._elements.extend(elements)

    def close(self) -> None:
        """Compute the aggregates in a single forward pass."""
        self._reset_aggregates()
        for count, elem in enumerate(self._elements, start=1):
            self.altitude_delta += elem.altitude_change
            self.distance += elem.distance
            self.average_speed += (elem.speed - self.average_speed) / count

            if self.highest is None or elem.altitude > self.highest.altitude:
                self.highest = elem
            if self.lowest is None or elem.altitude < self.lowest.altitude:
                self.lowest = elem
            if self.max_speed_element is None or elem.speed > self.max_speed_element.speed:
                self.max_speed_element = elem

            if count == 1:
                self.start_time = self.end_time = elem.time
            else:
                self.start_time = min(self.start_time, elem.time)
                self.end_time = max(self.end_time, elem.time)
        self.closed = True

    @property
    def first(self) -> TrackElement:
        return self._elements[0]

    @property
    def last(self) -> TrackElement:
        return self._elements[-1]

    @property
    def mode(self) -> Mode | None:
        return self._elements[0].mode if self._elements else None

    @property
    def high_altitude(self) -> int:
        return self.highest.altitude if self.highest else 0

    @property
    def low_altitude(self) -> int:
        return self.lowest.altitude if self.lowest else 0

    @property
    def max_speed(self) -> float:
        return self.max_speed_element.speed if self.max_speed_element else 0.0

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[TrackElement]:
        return iter(self._elements)

    def __getitem__(self, index: int) -> TrackElement:
        return self._elements[index]

    def __repr__(self) -> str:
        return (
            f"Track(mode={self.mode}, elements={len(self)}, "
            f"start={self.start_time}, end={self.end_time}, closed={self.closed})"
        )


def _by_mode(elements: Iterable[TrackElement], modes: dict[Mode, Track]) -> None:
    for elem in elements:
        if elem.mode not in modes:
            modes[elem.mode] = Track()
        modes[elem.mode].append(elem)


# ---------------------------------------------------------------------------
# TrackBlock
# ---------------------------------------------------------------------------


class TrackBlock:
    """Runs of one ride, keyed by their first element."""

    def __init__(self) -> None:
        self._tracks: dict[TrackElement, Track] = {}
        self.elements = Track()
        self._modes: dict[Mode, Track] = {}

    def add(self, track: Track) -> None:
        self._tracks[track.first] = track
        self.elements.extend(track)
        _by_mode(track, self._modes)

    def close(self) -> None:
        self.elements.close()
        for mode_track in self._modes.values():
            mode_track.close()

    @property
    def tracks(self) -> list[Track]:
        return [self._tracks[k] for k in sorted(self._tracks, key=lambda e: e.time)]

    @property
    def key(self) -> Track:
        return self.tracks[0]

    def get_track(self, element: TrackElement) -> Track | None:
        return self._tracks.get(element)

    def elements_for(self, mode: Mode) -> Track | None:
        return self._modes.get(mode)

    @property
    def start_time(self) -> int:
        return self.key.start_time if self._tracks else 0

    @property
    def end_time(self) -> int:
        return self.tracks[-1].end_time if self._tracks else 0

    def ratio(self, mode: Mode) -> float:
        """Share of this block's elements classified as *mode*."""
        if not len(self.elements):
            return 0.0
        mode_track = self._modes.get(mode)
        return (len(mode_track) if mode_track else 0) / len(self.elements)

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks)


# ---------------------------------------------------------------------------
# SkiData
# ---------------------------------------------------------------------------


class SkiData:
    """A classified session: runs, rides and whole-session aggregates.

    Built incrementally with :meth:`add_element` and sealed by
    :meth:`close_all`; read-only afterwards.
    """

    def __init__(self) -> None:
        self._all = Track()
        self._modes: dict[Mode, Track] = {}
        self._tracks: dict[TrackElement, Track] = {}
        self._blocks: dict[Track, TrackBlock] = {}

        self._current_track = Track()
        self._current_block = TrackBlock()
        self._sealed = False

    def _close_track(self) -> None:
        track = self._current_track
        if not len(track):
            return
        track.close()
        self._tracks[track.first] = track

        # A LIFT run opens the next ride
        if len(self._current_block) and track.mode == Mode.LIFT:
            self._close_block()
        self._current_block.add(track)

        self._current_track = Track()

    def _close_block(self) -> None:
        block = self._current_block
        block.close()
        self._blocks[block.key] = block
        logger.debug(
            "Closed block of %d runs starting at t=%d (%s)",
            len(block),
            block.start_time,
            block.key.mode,
        )
        self._current_block = TrackBlock()

    def add_element(self, element: TrackElement) -> None:
        if self._sealed:
            raise SealedDataError("SkiData is sealed, cannot add elements")
        if element.mode is None:
            raise UnclassifiedElementError(f"Element at t={element.time} has not been classified")

        self._all.append(element)
        _by_mode([element], self._modes)

        if len(self._current_track) and element.mode != self._current_track.mode:
            self._close_track()
        self._current_track.append(element)

    def close_all(self) -> None:
        """Close the open run and ride, compute session aggregates and seal."""
        if self._sealed:
            return
        self._close_track()
        if len(self._current_block):
            self._close_block()

        self._all.close()
        for mode_track in self._modes.values():
            mode_track.close()
        self._sealed = True

    # --- accessors ---------------------------------------------------------

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    @property
    def all_elements(self) -> Track:
        return self._all

    def elements_for(self, mode: Mode) -> Track | None:
        return self._modes.get(mode)

    @property
    def tracks(self) -> list[Track]:
        return list(self._tracks.values())

    def get_track_from(self, element: TrackElement) -> Track | None:
        return self._tracks.get(element)

    @property
    def blocks(self) -> list[TrackBlock]:
        return list(self._blocks.values())

    def block_keys(self) -> list[Track]:
        return sorted(self._blocks, key=lambda t: t.start_time)

    def get_block(self, key: Track) -> TrackBlock | None:
        return self._blocks.get(key)

    def get_block_elements(self, key: Track) -> Track | None:
        block = self._blocks.get(key)
        return block.elements if block else None

    @property
    def size(self) -> int:
        return len(self._all)

    @property
    def track_count(self) -> int:
        return len(self._tracks)

    @property
    def block_count(self) -> int:
        return len(self._blocks)

    def __len__(self) -> int:
        return len(self._all)
