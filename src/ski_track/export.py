"""
Tabular and GeoJSON exports of a sealed :class:`~ski_track.ski_data.SkiData`.

Element and run tables are validated against pandera schemas before they
are returned, so a CSV written by :func:`write_exports` always has the
documented columns. A clock that steps backwards is logged, not rejected:
the loader keeps such points.
"""

from __future__ import annotations

import datetime
import json
import logging
import pathlib

import numpy as np
import pandas as pd
import pandera.pandas as pa

from ski_track.ski_data import SkiData, Track
from ski_track.track_data import Mode

logger = logging.getLogger(__name__)

MODE_VALUES = [m.value for m in Mode]

# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

element_frame_schema = pa.DataFrameSchema(
    columns={
        "time": pa.Column(int, pa.Check.ge(0), nullable=False),
        "latitude": pa.Column(float, pa.Check.in_range(-90.0, 90.0), nullable=False),
        "longitude": pa.Column(float, pa.Check.in_range(-180.0, 180.0), nullable=False),
        "x": pa.Column(float, nullable=False),
        "y": pa.Column(float, nullable=False),
        "altitude": pa.Column(int, nullable=False),
        "altitude_change": pa.Column(int, nullable=False),
        "distance": pa.Column(float, pa.Check.ge(0.0), nullable=False),
        "speed": pa.Column(float, nullable=False),
        "mode": pa.Column(str, pa.Check.isin(MODE_VALUES), nullable=False),
    },
    strict=True,
    coerce=True,
)

track_frame_schema = pa.DataFrameSchema(
    columns={
        "run": pa.Column(int, pa.Check.ge(0)),
        "block": pa.Column(int, pa.Check.ge(0)),
        "mode": pa.Column(str, pa.Check.isin(MODE_VALUES)),
        "start_time": pa.Column(int),
        "end_time": pa.Column(int),
        "duration_s": pa.Column(int, pa.Check.ge(0)),
        "elements": pa.Column(int, pa.Check.gt(0)),
        "distance_m": pa.Column(float, pa.Check.ge(0.0)),
        "altitude_delta_m": pa.Column(int),
        "high_altitude_m": pa.Column(int),
        "low_altitude_m": pa.Column(int),
        "average_speed_kph": pa.Column(float),
        "max_speed_kph": pa.Column(float),
    },
    checks=pa.Check(
        lambda df: df["end_time"] >= df["start_time"],
        name="end_after_start",
    ),
    strict=True,
    coerce=True,
)

# ---------------------------------------------------------------------------
# DataFrames
# ---------------------------------------------------------------------------


def elements_frame(track: Track) -> pd.DataFrame:
    """One row per element of *track* (a run, a mode view or the whole session)."""
    df = pd.DataFrame(
        {
            "time": np.array([e.time for e in track], dtype=np.int64),
            "latitude": np.array([e.latitude for e in track], dtype=np.float64),
            "longitude": np.array([e.longitude for e in track], dtype=np.float64),
            "x": np.array([e.x for e in track], dtype=np.float64),
            "y": np.array([e.y for e in track], dtype=np.float64),
            "altitude": np.array([e.altitude for e in track], dtype=np.int64),
            "altitude_change": np.array([e.altitude_change for e in track], dtype=np.int64),
            "distance": np.array([e.distance for e in track], dtype=np.float64),
            "speed": np.array([e.speed for e in track], dtype=np.float64),
            "mode": [str(e.mode) for e in track],
        }
    )
    backwards = int((np.diff(df["time"].to_numpy()) < 0).sum())
    if backwards:
        logger.warning("Time steps backwards %d time(s) in exported elements", backwards)
    return element_frame_schema.validate(df)


def _block_index(data: SkiData) -> dict[int, int]:
    """Map ``id(run)`` to the position of its block in the session."""
    index: dict[int, int] = {}
    for i, key in enumerate(data.block_keys()):
        for run in data.get_block(key).tracks:
            index[id(run)] = i
    return index


def tracks_frame(data: SkiData) -> pd.DataFrame:
    """One row per run, in session order."""
    blocks = _block_index(data)
    rows = [
        {
            "run": i,
            "block": blocks.get(id(run), 0),
            "mode": str(run.mode),
            "start_time": run.start_time,
            "end_time": run.end_time,
            "duration_s": run.duration,
            "elements": len(run),
            "distance_m": run.distance,
            "altitude_delta_m": run.altitude_delta,
            "high_altitude_m": run.high_altitude,
            "low_altitude_m": run.low_altitude,
            "average_speed_kph": run.average_speed,
            "max_speed_kph": run.max_speed,
        }
        for i, run in enumerate(data.tracks)
    ]
    df = pd.DataFrame(rows, columns=list(track_frame_schema.columns))
    return track_frame_schema.validate(df)


# ---------------------------------------------------------------------------
# GeoJSON
# ---------------------------------------------------------------------------


def _iso(epoch_s: int) -> str:
    return datetime.datetime.fromtimestamp(epoch_s, tz=datetime.timezone.utc).isoformat()


def session_geojson(data: SkiData) -> dict:
    """FeatureCollection with one feature per run, coloured by mode downstream."""
    blocks = _block_index(data)
    features = []
    for i, run in enumerate(data.tracks):
        coordinates = [[e.longitude, e.latitude, e.altitude] for e in run]
        if len(coordinates) > 1:
            geometry = {"type": "LineString", "coordinates": coordinates}
        else:
            geometry = {"type": "Point", "coordinates": coordinates[0]}

        features.append(
            {
                "type": "Feature",
                "geometry": geometry,
                "properties": {
                    "run": i,
                    "block": blocks.get(id(run), 0),
                    "mode": str(run.mode),
                    "start_time": _iso(run.start_time),
                    "end_time": _iso(run.end_time),
                    "duration_s": run.duration,
                    "total_points": len(run),
                    "distance_m": round(run.distance, 2),
                    "altitude_delta_m": run.altitude_delta,
                    "elevation_stats": {
                        "min_elevation": run.low_altitude,
                        "max_elevation": run.high_altitude,
                    },
                    "average_speed_kph": round(run.average_speed, 2),
                    "max_speed_kph": round(run.max_speed, 2),
                },
            }
        )

    return {
        "type": "FeatureCollection",
        "features": features,
        "properties": {"coordinate_system": "WGS84", "runs": data.track_count},
    }


def write_exports(data: SkiData, output_dir: pathlib.Path, stem: str) -> list[pathlib.Path]:
    """Write element CSV, run CSV and GeoJSON for *data*; return the paths."""
    output_dir = pathlib.Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    elements_path = output_dir / f"{stem}_elements.csv"
    tracks_path = output_dir / f"{stem}_tracks.csv"
    geojson_path = output_dir / f"{stem}.geojson"

    elements_frame(data.all_elements).to_csv(elements_path, index=False)
    tracks_frame(data).to_csv(tracks_path, index=False)
    with open(geojson_path, "w", encoding="utf-8") as f:
        json.dump(session_geojson(data), f, indent=2)

    for path in (elements_path, tracks_path, geojson_path):
        logger.info("Wrote %s", path)
    return [elements_path, tracks_path, geojson_path]
