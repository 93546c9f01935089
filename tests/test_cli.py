import pandas as pd

import cli

from conftest import THREE_STOPS, make_track, set_tides


def _write_config(tmp_path, extra=""):
    path = tmp_path / "residence.yaml"
    path.write_text(
        "logging:\n"
        f"  dir: {tmp_path / 'logs'}\n"
        "input:\n"
        f"  raw_csv_glob: {tmp_path / 'raw' / '*.csv'}\n"
        f"  tide_csv: {tmp_path / 'tides.csv'}\n"
        f"  residence_csv_glob: {tmp_path / 'residence' / '*.csv'}\n"
        "output:\n"
        f"  dir: {tmp_path / 'out'}\n" + extra,
        encoding="utf-8",
    )
    return path


def test_segment_command(tmp_path):
    (tmp_path / "residence").mkdir()
    set_tides(make_track(THREE_STOPS), [40]).to_csv(tmp_path / "residence" / "435.csv", index=False)
    cli.main("segment", str(_write_config(tmp_path, "  save_spatial: true\n")))

    summary = pd.read_csv(tmp_path / "out" / "patch_summary.csv")
    points = pd.read_csv(tmp_path / "out" / "patch_points.csv")
    assert len(summary) == 3
    assert len(points) == summary["nfixes"].sum()
    assert (tmp_path / "out" / "patches.gpkg").exists()


def test_prepare_command(tmp_path, raw_fixes, tide_table):
    (tmp_path / "raw").mkdir()
    raw_fixes.to_csv(tmp_path / "raw" / "tag.csv", index=False)
    tide_table.to_csv(tmp_path / "tides.csv", index=False)
    cli.main("prepare", str(_write_config(tmp_path)))

    prepared = pd.read_csv(tmp_path / "out" / "prepared" / "31001000435_prepared.csv")
    assert len(prepared) == len(raw_fixes)
    assert {"tide_number", "tidaltime"} <= set(prepared.columns)
