import io
import threading

import pytest

from ski_track.classification import SkiModeClassifier
from ski_track.errors import ConfigError
from ski_track.loader import DataLoader, DataLoaderListener, LoaderState
from ski_track.parsers import CSVParser, DataParser


class RecordingListener(DataLoaderListener):
    def __init__(self):
        self.calls = []

    def aborted(self):
        self.calls.append(("aborted",))

    def completed(self, count):
        self.calls.append(("completed", count))

    def empty_data(self):
        self.calls.append(("empty_data",))

    def error(self, exc):
        self.calls.append(("error", exc))

    def loading_complete(self, count):
        self.calls.append(("loading_complete", count))

    def processed_element(self, count, total):
        self.calls.append(("processed_element", count, total))

    def names(self):
        return [c[0] for c in self.calls]


class ListParser(DataParser):
    def __init__(self, points):
        self.points = list(points)
        self.reads = 0

    def read_next(self):
        self.reads += 1
        return self.points.pop(0) if self.points else None

    def skip(self):
        if self.points:
            self.points.pop(0)


@pytest.fixture
def listener():
    return RecordingListener()


def test_csv_two_records(csv_row, tmp_path, listener):
    text = "\n".join([csv_row(), csv_row(time="09:30:16")])
    parser = CSVParser(io.StringIO(text), bad_file=tmp_path / "import.bad")

    loader = DataLoader(parser, SkiModeClassifier(), listener=listener)
    data = loader.load()

    assert loader.state == LoaderState.COMPLETE
    assert data is not None and data.is_sealed
    assert len(data) == 2
    assert listener.calls == [
        ("loading_complete", 2),
        ("processed_element", 1, 2),
        ("processed_element", 2, 2),
        ("completed", 2),
    ]


def test_gaps_interpolated_before_processing(make_datum, listener):
    loader = DataLoader(
        ListParser([make_datum(0), make_datum(4)]), SkiModeClassifier(), listener=listener
    )
    loader.run()

    assert ("loading_complete", 2) in listener.calls
    assert listener.calls[-1] == ("completed", 5)
    assert [e.time for e in loader.get_data().all_elements] == [0, 1, 2, 3, 4]


def test_cancel_during_load(make_datum, listener):
    class CancellingParser(ListParser):
        loader = None

        def read_next(self):
            self.loader.cancel()
            return None

    parser = CancellingParser([make_datum(0)])
    loader = DataLoader(parser, SkiModeClassifier(), listener=listener)
    parser.loader = loader

    loader.run()

    assert loader.state == LoaderState.CANCELLED
    assert listener.calls == [("aborted",), ("loading_complete", 0)]
    assert loader.get_data() is None


def test_cancel_before_start(make_datum, listener):
    parser = ListParser([make_datum(0), make_datum(1)])
    loader = DataLoader(parser, SkiModeClassifier(), listener=listener)

    loader.cancel()
    assert loader.load() is None

    assert parser.reads == 0
    assert listener.calls == [("aborted",), ("loading_complete", 0)]
    assert loader.state == LoaderState.CANCELLED


def test_cancel_during_processing(make_datum):
    class CancellingListener(RecordingListener):
        def processed_element(self, count, total):
            super().processed_element(count, total)
            if count == 2:
                loader.cancel()

    listener = CancellingListener()
    loader = DataLoader(
        ListParser([make_datum(t) for t in range(5)]), SkiModeClassifier(), listener=listener
    )
    loader.run()

    assert loader.state == LoaderState.CANCELLED
    assert listener.names()[-1] == "aborted"
    assert "completed" not in listener.names()
    assert loader.get_data() is None
    assert len(loader.partial_data) == 2


def test_cancel_from_another_thread(make_datum):
    class PausingListener(RecordingListener):
        def __init__(self):
            super().__init__()
            self.reached = threading.Event()
            self.resume = threading.Event()

        def processed_element(self, count, total):
            super().processed_element(count, total)
            if count == 2:
                self.reached.set()
                self.resume.wait(5)

    listener = PausingListener()
    loader = DataLoader(
        ListParser([make_datum(t) for t in range(10)]), SkiModeClassifier(), listener=listener
    )

    thread = loader.load_in_background()
    assert listener.reached.wait(5)
    assert loader.state == LoaderState.PROCESSING

    loader.cancel()
    listener.resume.set()
    loader.join(5)

    assert not thread.is_alive()
    assert thread.name == "DataLoader"
    assert loader.state == LoaderState.CANCELLED
    assert listener.names()[-1] == "aborted"
    assert "completed" not in listener.names()
    assert loader.get_data() is None
    assert len(loader.partial_data) == 2


def test_empty_input(listener):
    loader = DataLoader(ListParser([]), SkiModeClassifier(), listener=listener)
    data = loader.load()

    assert listener.calls == [("empty_data",), ("loading_complete", 0), ("completed", 0)]
    assert data is not None and len(data) == 0


def test_io_error_during_load(listener):
    class BrokenParser(ListParser):
        def read_next(self):
            raise OSError("disk gone")

    loader = DataLoader(BrokenParser([]), SkiModeClassifier(), listener=listener)
    loader.run()

    assert loader.state == LoaderState.ERROR
    assert listener.names() == ["error"]
    assert isinstance(listener.calls[0][1], OSError)
    assert loader.get_data() is None


def test_fault_during_processing(make_datum, listener):
    class FailingClassifier:
        def process_element(self, current, element, window):
            if element.time == 3:
                raise RuntimeError("boom")
            return current

    loader = DataLoader(
        ListParser([make_datum(t) for t in range(6)]), FailingClassifier(), listener=listener
    )
    loader.run()

    assert loader.state == LoaderState.ERROR
    assert listener.names()[-1] == "error"
    assert "completed" not in listener.names()
    assert loader.get_data() is None

    partial = loader.partial_data
    assert partial.is_sealed
    assert len(partial) == 3
    assert partial.track_count == 1


def test_start_and_max(make_datum, listener):
    parser = ListParser([make_datum(t) for t in range(10)])
    loader = DataLoader(parser, SkiModeClassifier(), start=2, max_records=3, listener=listener)

    data = loader.load()

    assert [e.time for e in data.all_elements] == [2, 3, 4]
    assert ("loading_complete", 3) in listener.calls


def test_negative_max_is_unlimited(make_datum):
    parser = ListParser([make_datum(t) for t in range(4)])
    loader = DataLoader(parser, SkiModeClassifier(), max_records=-1)
    assert len(loader.load()) == 4


def test_no_listener(make_datum):
    loader = DataLoader(ListParser([make_datum(0)]), SkiModeClassifier())
    assert len(loader.load()) == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(parser=None),
        dict(processor=None),
        dict(start=-1),
        dict(window_capacity=0),
    ],
)
def test_invalid_arguments(kwargs):
    args = dict(parser=ListParser([]), processor=SkiModeClassifier())
    args.update(kwargs)
    with pytest.raises(ConfigError):
        DataLoader(**args)
