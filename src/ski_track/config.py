import pathlib

import pydantic
import pydantic_settings


class CSVColumns(pydantic.BaseModel):
    """Zero-based column indices of the CSV export. ``None`` marks an absent column."""

    lat: int | None = 6
    long: int | None = 7
    alt: int | None = 8
    speed: int | None = 9
    x: int | None = 10
    y: int | None = 11
    date: int | None = 1
    time: int | None = 2


class SkiTrackDirs(pydantic_settings.BaseSettings):
    PROJECT_ROOT: pathlib.Path = pathlib.Path(__file__).parents[2]
    INPUT: pathlib.Path = PROJECT_ROOT / "SkiData"
    OUTPUT: pathlib.Path = PROJECT_ROOT / "ProcessedData"


class SkiTrackConfig(pydantic_settings.BaseSettings):
    DIR: SkiTrackDirs = SkiTrackDirs()

    # --- Classification ---
    # Number of upcoming points the classifier looks at
    WINDOW_CAPACITY: int = 20

    # --- Interpolation ---
    REMOVE_DUPLICATES: bool = False
    # Units: seconds
    LONG_GAP_WARNING_S: int = 300

    # --- CSV input ---
    BAD_LINES_FILE: pathlib.Path = pathlib.Path("import.bad")
    CSV_DATE_FORMAT: str = "%d-%m-%Y %H:%M:%S"
    CSV_COLUMNS: CSVColumns = CSVColumns()

    # --- GSD input ---
    GSD_BYPASS_HEADERS: bool = True


config = SkiTrackConfig()
