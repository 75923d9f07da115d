"""
Background load pipeline: parse -> interpolate -> classify -> aggregate.

The loader runs on one dedicated worker thread in two phases::

    IDLE -> LOADING -> PROCESSING -> COMPLETE
               |           |
               +-----------+--> CANCELLED | ERROR

Cancellation is cooperative: it is checked once per record while loading and
once per element while processing. Listener callbacks are invoked on the
worker thread.
"""

from __future__ import annotations

import logging
import threading
from enum import StrEnum

from ski_track.classification import Processor, iter_classified
from ski_track.config import config
from ski_track.errors import ConfigError
from ski_track.interpolation import interpolate
from ski_track.parsers import DataParser
from ski_track.ski_data import SkiData
from ski_track.track_data import Datum

logger = logging.getLogger(__name__)


class LoaderState(StrEnum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"


# ---------------------------------------------------------------------------
# Listeners
# ---------------------------------------------------------------------------


class DataLoaderListener:
    """Progress callbacks; every method is a no-op by default."""

    def aborted(self) -> None:
        pass

    def completed(self, count: int) -> None:
        pass

    def empty_data(self) -> None:
        pass

    def error(self, exc: BaseException) -> None:
        pass

    def loading_complete(self, count: int) -> None:
        pass

    def processed_element(self, count: int, total: int) -> None:
        pass


class LoggingListener(DataLoaderListener):
    def __init__(self, progress_every: int = 1000):
        self.progress_every = progress_every

    def aborted(self) -> None:
        logger.warning("Load cancelled")

    def completed(self, count: int) -> None:
        logger.info("Processing complete: %d elements", count)

    def empty_data(self) -> None:
        logger.warning("No records read from input")

    def error(self, exc: BaseException) -> None:
        logger.error("Load failed: %s", exc)

    def loading_complete(self, count: int) -> None:
        logger.info("Loaded %d records", count)

    def processed_element(self, count: int, total: int) -> None:
        if count % self.progress_every == 0 or count == total:
            logger.debug("Processed %d/%d", count, total)


# ---------------------------------------------------------------------------
# DataLoader
# ---------------------------------------------------------------------------


class DataLoader:
    def __init__(
        self,
        parser: DataParser,
        processor: Processor,
        start: int = 0,
        max_records: int | None = None,
        listener: DataLoaderListener | None = None,
        window_capacity: int = config.WINDOW_CAPACITY,
        remove_duplicates: bool = config.REMOVE_DUPLICATES,
    ):
        if parser is None:
            raise ConfigError("Parser cannot be None")
        if processor is None:
            raise ConfigError("Processor cannot be None")
        if start < 0:
            raise ConfigError(f"Start cannot be negative ({start})")
        if window_capacity < 1:
            raise ConfigError(f"Window capacity must be positive, got {window_capacity}")

        self.parser = parser
        self.processor = processor
        self.start = start
        # None or negative: no limit
        self.max_records = max_records if max_records is not None and max_records >= 0 else None
        self.listener = listener
        self.window_capacity = window_capacity
        self.remove_duplicates = remove_duplicates

        self._state = LoaderState.IDLE
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._thread: threading.Thread | None = None
        self._data: SkiData | None = None

    # --- state -------------------------------------------------------------

    @property
    def state(self) -> LoaderState:
        with self._lock:
            return self._state

    def _transition(self, expected: LoaderState, new: LoaderState) -> bool:
        """Move to *new* only if no other transition (cancel/error) got there first."""
        with self._lock:
            if self._state != expected:
                return False
            self._state = new
        logger.info("Loader state %s -> %s", expected, new)
        return True

    def _fail(self, exc: BaseException) -> None:
        with self._lock:
            self._state = LoaderState.ERROR
        logger.error("Loader failed: %s", exc)
        if self.listener is not None:
            self.listener.error(exc)

    def cancel(self) -> None:
        """Request cancellation; the worker stops at its next check."""
        with self._lock:
            if self._state in (LoaderState.COMPLETE, LoaderState.ERROR):
                return
            self._state = LoaderState.CANCELLED
        self._cancelled.set()
        logger.info("Loader cancellation requested")

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    # --- phases ------------------------------------------------------------

    def _read_points(self) -> list[Datum]:
        for _ in range(self.start):
            self.parser.skip()

        points: list[Datum] = []
        while not self.cancelled:
            if self.max_records is not None and len(points) >= self.max_records:
                break
            datum = self.parser.read_next()
            if datum is None:
                break
            points.append(datum)
        return points

    def run(self) -> None:
        if not self._transition(LoaderState.IDLE, LoaderState.LOADING):
            if self.cancelled and self.listener is not None:
                self.listener.aborted()
                self.listener.loading_complete(0)
            return

        try:
            points = self._read_points()
        except OSError as exc:
            self._fail(exc)
            return

        if self.listener is not None:
            if self.cancelled:
                self.listener.aborted()
            elif not points:
                self.listener.empty_data()
            self.listener.loading_complete(len(points))
        if self.state != LoaderState.LOADING:
            return

        try:
            points = interpolate(points, self.remove_duplicates)
        except Exception as exc:
            self._fail(exc)
            return
        if not self._transition(LoaderState.LOADING, LoaderState.PROCESSING):
            if self.cancelled and self.listener is not None:
                self.listener.aborted()
            return

        data = self._data = SkiData()
        total = len(points)
        try:
            elements = iter_classified(points, self.processor, self.window_capacity)
            for count, element in enumerate(elements, start=1):
                if self.cancelled:
                    break
                data.add_element(element)
                if self.listener is not None:
                    self.listener.processed_element(count, total)
        except Exception as exc:
            logger.exception("Error while classifying elements")
            self._fail(exc)
        finally:
            data.close_all()

        if self.cancelled:
            if self.listener is not None:
                self.listener.aborted()
            return

        if self._transition(LoaderState.PROCESSING, LoaderState.COMPLETE):
            if self.listener is not None:
                self.listener.completed(data.size)

    # --- threading ---------------------------------------------------------

    def load_in_background(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="DataLoader", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def load(self) -> SkiData | None:
        """Run the pipeline on the worker thread and wait for it."""
        self.load_in_background()
        self.join()
        return self.get_data()

    # --- results -----------------------------------------------------------

    def get_data(self) -> SkiData | None:
        """The sealed session, or ``None`` unless the load completed."""
        if self.state == LoaderState.COMPLETE:
            return self._data
        return None

    @property
    def partial_data(self) -> SkiData | None:
        """Whatever was classified before an error or cancellation, sealed."""
        if self._data is not None and self._data.is_sealed:
            return self._data
        return None
