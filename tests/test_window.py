import pytest

from ski_track.errors import ConfigError
from ski_track.window import LookaheadWindow


@pytest.fixture
def points(make_datum):
    # altitude changes to successor: +1, +1, 0, -1, (last) 0
    # distance to successor:          3,  3, 0,  0, (last) 0
    return [
        make_datum(0, x=0.0, altitude=100),
        make_datum(1, x=3.0, altitude=101),
        make_datum(2, x=6.0, altitude=102),
        make_datum(3, x=6.0, altitude=102),
        make_datum(4, x=6.0, altitude=101),
    ]


def test_elements_paired_with_successor(points):
    window = LookaheadWindow(points, capacity=10)
    elements = list(window)

    assert [e.time for e in elements] == [0, 1, 2, 3, 4]
    assert [e.altitude_change for e in elements] == [1, 1, 0, -1, 0]
    assert [e.distance for e in elements] == [3.0, 3.0, 0.0, 0.0, 0.0]
    assert all(e.mode is None for e in elements)


def test_statistics_include_current_element(points):
    window = LookaheadWindow(points, capacity=3)
    assert len(window) == 3

    head = window.next()
    assert head.time == 0
    assert len(window) == 3
    assert window.ascent == 2
    assert window.ascending == pytest.approx(2 / 3)
    assert window.flat == pytest.approx(1 / 3)
    assert window.moving == pytest.approx(2 / 3)
    assert window.stopped == pytest.approx(1 / 3)

    head = window.next()
    assert head.time == 1
    assert window.ascent == 0
    assert window.descending == pytest.approx(1 / 3)


def test_buffer_shrinks_at_end(points):
    window = LookaheadWindow(points, capacity=3)
    sizes = []
    while window.next() is not None:
        sizes.append(len(window))

    assert sizes == [3, 3, 3, 2, 1]
    assert len(window) == 0
    assert window.next() is None


def test_statistics_on_last_element(points):
    window = LookaheadWindow(points, capacity=3)
    for _ in range(5):
        last = window.next()

    assert last.time == 4
    assert window.stopped == 1.0
    assert window.moving == 0.0


def test_empty_window_ratios_undefined():
    window = LookaheadWindow([], capacity=5)

    assert window.next() is None
    assert window.ascent == 0
    with pytest.raises(ZeroDivisionError):
        window.ascending


@pytest.mark.parametrize("capacity", [0, -3])
def test_invalid_capacity(points, capacity):
    with pytest.raises(ConfigError):
        LookaheadWindow(points, capacity=capacity)


def test_default_capacity(make_datum):
    window = LookaheadWindow([make_datum(t) for t in range(50)])
    assert window.capacity == 20
    assert len(window) == 20
