"""
Line-oriented decoders for the two ski-tracker export formats.

CSV
    Comma separated, ``#`` starts a comment line. Column positions come from
    :class:`~ski_track.config.CSVColumns`. Rejected lines are appended to a
    "bad lines" file as ``<lineNumber>:<rawLine>#<errorMessage>``.

GSD
    INI-like sections (``[NAME]``). The ``[TP]`` section lists the track-point
    blocks; each block holds ``key=lat,long,time,date,speed,alt`` records with
    packed integers. ``1=45301234,06123456,093015,030224,1525,18250000``
    decodes to 45.50206°N 6.20576°E at 2024-02-03 09:30:15 UTC, 15.25 km/h,
    1825 m.

Both parsers recover from a malformed record by logging it and moving on; an
``OSError`` from the underlying stream is never caught here.
"""

from __future__ import annotations

import abc
import contextlib
import datetime
import logging
import pathlib
from typing import Iterator, TextIO

from ski_track.config import CSVColumns, config
from ski_track.errors import ConfigError, CoordinateError, FormatError
from ski_track.projection import dms_to_wgs, wgs_to_utm
from ski_track.track_data import Datum, DMSCoordinate, WGSCoordinate

logger = logging.getLogger(__name__)

GSD_DATE_FORMAT = "%d%m%y %H%M%S"


def _epoch_seconds(text: str, fmt: str) -> int:
    parsed = datetime.datetime.strptime(text, fmt)
    return int(parsed.replace(tzinfo=datetime.timezone.utc).timestamp())


class DataParser(abc.ABC):
    """Source of :class:`Datum` records."""

    @abc.abstractmethod
    def read_next(self) -> Datum | None:
        """Return the next record, or ``None`` at the end of the source."""

    @abc.abstractmethod
    def skip(self) -> None:
        """Discard one record without decoding it."""

    def __iter__(self) -> Iterator[Datum]:
        while (datum := self.read_next()) is not None:
            yield datum


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


class CSVParser(DataParser):
    def __init__(
        self,
        stream: TextIO,
        columns: CSVColumns | None = None,
        bad_file: pathlib.Path | None = None,
        date_format: str | None = None,
    ):
        if stream is None:
            raise ConfigError("Null input stream")
        self._stream = stream
        self.columns = columns or config.CSV_COLUMNS
        self.bad_file = bad_file or config.BAD_LINES_FILE
        self.date_format = date_format or config.CSV_DATE_FORMAT

        self.line_number = 0
        self.bad_lines = 0

    def _read_line(self, ignore_comments: bool = True) -> str | None:
        while True:
            raw = self._stream.readline()
            if raw == "":
                return None
            self.line_number += 1
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            if ignore_comments and line.startswith("#"):
                continue
            return line

    def _field(self, name: str, parts: list[str]) -> str | None:
        index = getattr(self.columns, name)
        if index is None:
            return None
        try:
            return parts[index].strip()
        except IndexError:
            raise FormatError(f"Invalid field index for {name}", self.line_number) from None

    def _float_field(self, name: str, parts: list[str]) -> float:
        value = self._field(name, parts)
        if value is None:
            return 0.0
        try:
            return float(value)
        except ValueError:
            raise FormatError(f"Invalid field value for {name}", self.line_number) from None

    def _int_field(self, name: str, parts: list[str]) -> int:
        value = self._field(name, parts)
        if value is None:
            return 0
        try:
            return int(value)
        except ValueError:
            raise FormatError(f"Invalid field value for {name}", self.line_number) from None

    def _parse_line(self, line: str) -> Datum:
        parts = line.split(",")

        lat = self._float_field("lat", parts)
        lon = self._float_field("long", parts)

        if self.columns.x is None or self.columns.y is None:
            # No projected columns, derive them from lat/long
            try:
                utm = wgs_to_utm(WGSCoordinate(latitude=lat, longitude=lon))
            except CoordinateError as exc:
                raise FormatError(str(exc), self.line_number) from exc
            x, y = utm.x, utm.y
        else:
            x = self._float_field("x", parts)
            y = self._float_field("y", parts)

        alt = self._int_field("alt", parts)
        speed = self._float_field("speed", parts)

        date = self._field("date", parts)
        time = self._field("time", parts)
        if date is None or time is None:
            raise FormatError("Date/time columns not configured", self.line_number)
        try:
            t = _epoch_seconds(f"{date} {time}", self.date_format)
        except ValueError:
            raise FormatError(
                f"Unparseable date/time '{date} {time}'", self.line_number
            ) from None

        return Datum(time=t, latitude=lat, longitude=lon, x=x, y=y, altitude=alt, speed=speed)

    def _reject(self, line: str, exc: FormatError) -> None:
        self.bad_lines += 1
        logger.warning("Skipping CSV line %d: %s", exc.line_number, exc)
        try:
            with open(self.bad_file, "a", encoding="utf-8") as out:
                out.write(f"{exc.line_number}:{line}#{exc}\n")
        except OSError as write_exc:
            logger.error("Could not record bad line in %s: %s", self.bad_file, write_exc)

    def read_next(self) -> Datum | None:
        while True:
            line = self._read_line()
            if line is None:
                return None
            try:
                return self._parse_line(line)
            except FormatError as exc:
                self._reject(line, exc)

    def skip(self) -> None:
        self._read_line()


# ---------------------------------------------------------------------------
# GSD
# ---------------------------------------------------------------------------


class GSDParser(DataParser):
    def __init__(self, stream: TextIO, bypass_headers: bool | None = None):
        if stream is None:
            raise ConfigError("Null input stream")
        self._stream = stream
        self.line_number = 0
        self.bad_lines = 0

        if bypass_headers is None:
            bypass_headers = config.GSD_BYPASS_HEADERS
        if bypass_headers:
            self._bypass_headers()

    def _read_raw(self) -> str | None:
        raw = self._stream.readline()
        if raw == "":
            return None
        self.line_number += 1
        return raw.strip()

    def _read_header_line(self) -> str | None:
        while (line := self._read_raw()) is not None:
            if line.startswith("["):
                return line
        return None

    def _read_data_line(self) -> str | None:
        while (line := self._read_raw()) is not None:
            if line and not line.startswith("["):
                return line
        return None

    def _seek_header(self, header: str) -> bool:
        while (line := self._read_header_line()) is not None:
            if line.upper() == header.upper():
                return True
        return False

    def _bypass_headers(self) -> None:
        """Skip to the first data block referenced from the ``[TP]`` section."""
        if not self._seek_header("[TP]"):
            logger.warning("No [TP] section found in GSD input")
            return

        first_block = self._read_data_line()
        if first_block is None:
            return

        block_name = first_block.partition("=")[2].strip()
        if not self._seek_header(f"[{block_name}]"):
            logger.warning("Track-point block [%s] not found in GSD input", block_name)

    @staticmethod
    def decode_record(line: str, line_number: int = 0) -> Datum:
        """Decode one ``key=lat,long,time,date,speed,alt`` record."""
        key, sep, payload = line.partition("=")
        if not sep:
            raise FormatError(f"Missing '=' in record '{line}'", line_number)

        parts = payload.split(",")
        if len(parts) < 6:
            raise FormatError(f"Expected 6 fields, found {len(parts)}", line_number)

        try:
            lat_str = f"{int(parts[0]):08d}"
            lon_str = f"{int(parts[1]):08d}"
            time_str = f"{int(parts[2]):06d}"
            date_str = f"{int(parts[3]):06d}"
            speed = int(parts[4]) / 100.0
            alt = int(int(parts[5]) / 10000)
        except ValueError as exc:
            raise FormatError(f"Invalid packed value in record {key}: {exc}", line_number) from exc

        # DDMMmmmm: two digits of degrees, minutes scaled by 10000
        lat_d = int(lat_str[:2])
        lat_m = int(lat_str[2:]) / 10000.0
        lon_d = int(lon_str[:2])
        lon_m = int(lon_str[2:]) / 10000.0

        try:
            wgs = dms_to_wgs(DMSCoordinate.from_decimal_minutes(lat_d, lat_m, lon_d, lon_m))
            utm = wgs_to_utm(wgs)
        except CoordinateError as exc:
            raise FormatError(str(exc), line_number) from exc

        try:
            t = _epoch_seconds(f"{date_str} {time_str}", GSD_DATE_FORMAT)
        except ValueError:
            raise FormatError(
                f"Unparseable date/time '{date_str} {time_str}'", line_number
            ) from None

        return Datum(
            time=t,
            latitude=wgs.latitude,
            longitude=wgs.longitude,
            x=utm.x,
            y=utm.y,
            altitude=alt,
            speed=speed,
        )

    def read_next(self) -> Datum | None:
        while True:
            line = self._read_data_line()
            if line is None:
                return None
            try:
                return self.decode_record(line, self.line_number)
            except FormatError as exc:
                self.bad_lines += 1
                logger.warning("Skipping GSD line %d: %s", exc.line_number, exc)

    def skip(self) -> None:
        self._read_data_line()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

PARSER_FORMATS = ("csv", "gsd")


@contextlib.contextmanager
def open_parser(
    path: pathlib.Path,
    fmt: str | None = None,
    *,
    columns: CSVColumns | None = None,
    bad_file: pathlib.Path | None = None,
    bypass_headers: bool | None = None,
) -> Iterator[DataParser]:
    """Open *path* and yield the parser for its format.

    The format is *fmt* when given, otherwise the file suffix.
    """
    fmt = (fmt or pathlib.Path(path).suffix.lstrip(".")).lower()
    if fmt not in PARSER_FORMATS:
        raise ConfigError(f"Unsupported input format '{fmt}' for {path}")

    with open(path, "r", encoding="latin-1") as stream:
        if fmt == "csv":
            yield CSVParser(stream, columns=columns, bad_file=bad_file)
        else:
            yield GSDParser(stream, bypass_headers=bypass_headers)
