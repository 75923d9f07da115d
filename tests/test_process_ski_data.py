import sys

import pytest

from ski_track.scripts import process_ski_data


def run_main(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["ski-track", *map(str, argv)])
    process_ski_data.main()


def test_cli_exports_track_with_clock_step_back(csv_row, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "day1.csv"
    source.write_text(
        "\n".join([csv_row(), csv_row(time="09:30:16"), csv_row(time="09:30:15")]) + "\n",
        encoding="latin-1",
    )
    out = tmp_path / "out"

    run_main(monkeypatch, source, "-o", out)

    assert sorted(p.name for p in out.iterdir()) == [
        "day1.geojson",
        "day1_elements.csv",
        "day1_tracks.csv",
    ]


def test_cli_missing_input(tmp_path, monkeypatch):
    with pytest.raises(SystemExit) as exc_info:
        run_main(monkeypatch, tmp_path / "nope.csv")
    assert exc_info.value.code == 1
