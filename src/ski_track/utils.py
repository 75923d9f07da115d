"""Utility helpers for the ski_track package."""

from __future__ import annotations

from ski_track.ski_data import SkiData
from ski_track.track_data import Mode


def format_duration(seconds: float) -> str:
    """Length of a ski day or a run: ``"5h 12m"``, ``"6m"`` or ``"42s"``.

    Seconds are only shown below one minute.
    """
    minutes, secs = divmod(max(0, round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)

    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"


def get_session_summary_text(data: SkiData) -> str | None:
    """Build a short one-line summary of a sealed session.

    Parameters
    ----------
    data:
        A sealed :class:`SkiData`.

    Returns
    -------
    str | None
        A compact string such as
        ``"2024-02-03 · 3 rides · 12.4 km skied · 1850 m lift · Max 62.1 km/h · 5h 12m"``
        or *None* for an empty session.
    """
    everything = data.all_elements
    if not len(everything):
        return None

    parts: list[str] = [everything.first.timestamp.strftime("%Y-%m-%d")]

    rides = data.block_count
    parts.append(f"{rides} ride" if rides == 1 else f"{rides} rides")

    ski = data.elements_for(Mode.SKI)
    if ski is not None:
        parts.append(f"{ski.distance / 1000.0:.1f} km skied")

    lift = data.elements_for(Mode.LIFT)
    if lift is not None:
        parts.append(f"{lift.altitude_delta} m lift")

    parts.append(f"Max {everything.max_speed:.1f} km/h")
    parts.append(format_duration(everything.duration))

    return " · ".join(parts)
