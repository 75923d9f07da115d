"""Movement mode state machine.

Each element is classified from the mode of its predecessor, its own deltas
and the statistics of the lookahead window (which starts at the element):

    ======  ====================================================  ======
    From    Condition                                             To
    ======  ====================================================  ======
    STOP    moving, climbing now and ahead                        LIFT
    STOP    moving, dropping now and ahead                        SKI
    SKI     standing still now and ahead                          STOP
    SKI     climbing > 5 m now, almost only climbing ahead        LIFT
    LIFT    standing still now and ahead                          STOP
    LIFT    dropping now, almost only dropping ahead              SKI
    ======  ====================================================  ======

Anything else keeps the current mode.
"""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, Sequence

from ski_track.ski_data import TrackElement
from ski_track.track_data import Datum, Mode
from ski_track.window import LookaheadWindow

logger = logging.getLogger(__name__)

# Window ratio thresholds
START_MOVING_RATIO = 0.5
START_TREND_RATIO = 0.3
STOPPED_RATIO = 0.8
SWITCH_TREND_RATIO = 0.9
# Units: metres
LIFT_MIN_CLIMB = 5

INITIAL_MODE = Mode.STOP


def next_mode(current: Mode, element: TrackElement, window: LookaheadWindow) -> Mode:
    """Mode of *element* given the mode of its predecessor."""
    change = element.altitude_change

    if current == Mode.STOP:
        if element.distance > 0 and window.moving >= START_MOVING_RATIO:
            if change > 0 and window.ascent > 0 and window.ascending > START_TREND_RATIO:
                return Mode.LIFT
            if change < 0 and window.ascent < 0 and window.descending > START_TREND_RATIO:
                return Mode.SKI

    elif current == Mode.SKI:
        if element.distance == 0 and window.stopped > STOPPED_RATIO:
            return Mode.STOP
        if change > LIFT_MIN_CLIMB and window.ascent > 0 and window.ascending > SWITCH_TREND_RATIO:
            return Mode.LIFT

    elif current == Mode.LIFT:
        if element.distance == 0 and window.stopped > STOPPED_RATIO:
            return Mode.STOP
        if change < 0 and window.ascent < 0 and window.descending > SWITCH_TREND_RATIO:
            return Mode.SKI

    return current


class Processor(Protocol):
    def process_element(
        self, current: Mode, element: TrackElement, window: LookaheadWindow
    ) -> Mode: ...


class SkiModeClassifier:
    """Default :class:`Processor` backed by :func:`next_mode`."""

    def process_element(
        self, current: Mode, element: TrackElement, window: LookaheadWindow
    ) -> Mode:
        return next_mode(current, element, window)


def iter_classified(
    points: Sequence[Datum],
    processor: Processor,
    capacity: int | None = None,
) -> Iterator[TrackElement]:
    """Yield the elements of *points* with their mode attached."""
    window = LookaheadWindow(points, capacity)
    mode = INITIAL_MODE
    for element in window:
        new_mode = processor.process_element(mode, element, window)
        if new_mode != mode:
            logger.debug("t=%d: %s -> %s", element.time, mode, new_mode)
            mode = new_mode
        yield element.with_mode(mode)
