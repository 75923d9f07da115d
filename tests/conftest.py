import pytest

from ski_track.ski_data import SkiData, TrackElement
from ski_track.track_data import Datum, Mode

BASE_X = 500_000.0
BASE_Y = 5_000_000.0


@pytest.fixture
def make_datum():
    def _make(time, x=BASE_X, y=BASE_Y, altitude=1000, speed=10.0, latitude=45.0, longitude=6.0):
        return Datum(
            time=time,
            latitude=latitude,
            longitude=longitude,
            x=x,
            y=y,
            altitude=altitude,
            speed=speed,
        )

    return _make


@pytest.fixture
def csv_row():
    """Render one CSV record using the default column layout."""

    def _row(date="03-02-2024", time="09:30:15", lat="45.5", lon="6.2", alt="1825",
             speed="15.25", x="300000.0", y="5040000.0"):
        return ",".join(["1", date, time, "-", "-", "-", lat, lon, alt, speed, x, y])

    return _row


# Mode of each element of the sample session, one per second
SESSION_MODES = "SSLLLKKSKKLLK"
_MODE_CODES = {"S": Mode.STOP, "L": Mode.LIFT, "K": Mode.SKI}


@pytest.fixture
def session_elements(make_datum):
    elements = []
    for t, code in enumerate(SESSION_MODES):
        datum = make_datum(
            t,
            x=BASE_X + t * 3.0,
            altitude=1000 + t,
            speed=float(t * 2),
        )
        elements.append(
            TrackElement(datum, altitude_change=1, distance=3.0, mode=_MODE_CODES[code])
        )
    return elements


@pytest.fixture
def session(session_elements):
    data = SkiData()
    for elem in session_elements:
        data.add_element(elem)
    data.close_all()
    return data
