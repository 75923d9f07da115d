"""Gap interpolation for raw GPS sequences.

The device samples once per second but drops fixes. :func:`interpolate`
restores the 1 s cadence by repeatedly inserting the midpoint between the
last emitted point and the next real one until the gap is at most 1 s:

    t=0 ........ t=5        gap 5 -> midpoint t=2
    t=0 .. t=2              gap 2 -> midpoint t=1
    t=1 -> t=2 -> t=5       gap 3 -> midpoint t=3, then t=4

so every missing second is eventually filled, but the synthesized positions
come from a halving cascade rather than an even linear spread.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ski_track.config import config
from ski_track.track_data import Datum

logger = logging.getLogger(__name__)


def _half_int(a: int, b: int) -> int:
    return a + math.trunc((b - a) / 2)


def _half_float(a: float, b: float) -> float:
    return a + (b - a) / 2.0


def midpoint(p1: Datum, p2: Datum) -> Datum:
    """Datum halfway between *p1* and *p2* on every field.

    Speed is forced to zero when the two points share the same x/y position.
    """
    stationary = p2.x - p1.x == 0 and p2.y - p1.y == 0
    return Datum(
        time=_half_int(p1.time, p2.time),
        latitude=_half_float(p1.latitude, p2.latitude),
        longitude=_half_float(p1.longitude, p2.longitude),
        x=_half_float(p1.x, p2.x),
        y=_half_float(p1.y, p2.y),
        altitude=_half_int(p1.altitude, p2.altitude),
        speed=0.0 if stationary else _half_float(p1.speed, p2.speed),
    )


def interpolate(points: Sequence[Datum], remove_duplicates: bool = False) -> list[Datum]:
    """Return a copy of *points* with time gaps filled to a 1 s cadence.

    Parameters
    ----------
    points:
        Raw samples in recording order.
    remove_duplicates:
        Drop any point whose time is not after the previously kept one.

    Returns
    -------
    list[Datum]
        The repaired sequence; its length is the updated point count.
    """
    if not points:
        return []

    out: list[Datum] = [points[0]]
    inserted = 0
    removed = 0

    for position, nxt in enumerate(points[1:], start=1):
        delta = nxt.time - out[-1].time

        if remove_duplicates and delta <= 0:
            removed += 1
            continue

        if delta < 0:
            logger.warning("Negative time delta (%ds) at position %d", delta, position)
        elif delta > config.LONG_GAP_WARNING_S:
            logger.info("Interpolating into position %d - missing %d points", len(out), delta - 1)

        # Right-hand endpoints still to be reached from out[-1]
        pending = [nxt]
        while pending:
            right = pending[-1]
            if right.time - out[-1].time > 1:
                pending.append(midpoint(out[-1], right))
                inserted += 1
            else:
                out.append(pending.pop())

    logger.info(
        "Interpolated %d points (%d duplicates removed), %d -> %d",
        inserted,
        removed,
        len(points),
        len(out),
    )
    return out
