import io
import json
import logging

import pandas as pd
import pandera.pandas as pa
import pytest

from ski_track.classification import SkiModeClassifier
from ski_track.export import (
    element_frame_schema,
    elements_frame,
    session_geojson,
    tracks_frame,
    write_exports,
)
from ski_track.loader import DataLoader, LoaderState
from ski_track.parsers import CSVParser
from ski_track.ski_data import Track


def test_elements_frame(session):
    df = elements_frame(session.all_elements)

    assert list(df.columns) == [
        "time", "latitude", "longitude", "x", "y", "altitude",
        "altitude_change", "distance", "speed", "mode",
    ]
    assert len(df) == 13
    assert df["mode"].tolist()[:3] == ["STOP", "STOP", "LIFT"]
    assert df["distance"].sum() == pytest.approx(session.all_elements.distance)


def test_elements_frame_keeps_time_going_back(session, caplog):
    with caplog.at_level(logging.WARNING, logger="ski_track.export"):
        elements_frame(session.all_elements)
    assert "steps backwards" not in caplog.text

    reordered = Track(reversed(list(session.all_elements)))
    with caplog.at_level(logging.WARNING, logger="ski_track.export"):
        df = elements_frame(reordered)

    assert df["time"].tolist() == list(range(12, -1, -1))
    assert "Time steps backwards 12 time(s)" in caplog.text


def test_element_schema_rejects_unknown_mode(session):
    df = elements_frame(session.all_elements)
    df.loc[0, "mode"] = "FLY"

    with pytest.raises(pa.errors.SchemaError):
        element_frame_schema.validate(df)


def test_tracks_frame(session):
    df = tracks_frame(session)

    assert len(df) == session.track_count
    assert df["block"].tolist() == [0, 1, 1, 1, 1, 2, 2]
    assert df["mode"].tolist() == ["STOP", "LIFT", "SKI", "STOP", "SKI", "LIFT", "SKI"]
    assert df["elements"].sum() == len(session)

    lift = df.iloc[1]
    assert (lift["start_time"], lift["end_time"], lift["duration_s"]) == (2, 4, 2)
    assert lift["distance_m"] == pytest.approx(9.0)
    assert lift["max_speed_kph"] == pytest.approx(8.0)


def test_session_geojson(session):
    geojson = session_geojson(session)

    assert geojson["type"] == "FeatureCollection"
    features = geojson["features"]
    assert len(features) == 7

    lift = features[1]
    assert lift["geometry"]["type"] == "LineString"
    lon, lat, alt = lift["geometry"]["coordinates"][0]
    assert (lon, lat, alt) == (6.0, 45.0, 1002)
    assert lift["properties"]["mode"] == "LIFT"
    assert lift["properties"]["block"] == 1

    # One-element runs become points
    assert features[3]["geometry"]["type"] == "Point"


def test_write_exports(session, tmp_path):
    paths = write_exports(session, tmp_path / "out", "day1")

    assert [p.name for p in paths] == ["day1_elements.csv", "day1_tracks.csv", "day1.geojson"]
    assert all(p.exists() for p in paths)

    assert len(paths[0].read_text().splitlines()) == 14
    assert json.loads(paths[2].read_text())["features"][0]["properties"]["mode"] == "STOP"


def test_write_exports_after_clock_step_back(csv_row, tmp_path):
    text = "\n".join([csv_row(), csv_row(time="09:30:16"), csv_row(time="09:30:15")])
    parser = CSVParser(io.StringIO(text), bad_file=tmp_path / "import.bad")

    loader = DataLoader(parser, SkiModeClassifier())
    data = loader.load()
    assert loader.state == LoaderState.COMPLETE

    paths = write_exports(data, tmp_path / "out", "day1")

    assert all(p.exists() for p in paths)
    times = pd.read_csv(paths[0])["time"].tolist()
    assert len(times) == 3
    assert times[2] == times[0] < times[1]

    runs = pd.read_csv(paths[1])
    assert (runs["end_time"] >= runs["start_time"]).all()
