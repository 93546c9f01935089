import pandas as pd
import pytest

from residence_patches.errors import SchemaError
from residence_patches.io import (
    add_utm_coordinates,
    ensure_required_columns,
    load_csvs,
    load_tide_data,
    save_dataframe,
)


def test_tide_table_roundtrip(tmp_path, tide_table):
    path = tmp_path / "tides.csv"
    save_dataframe(tide_table, path)
    loaded = load_tide_data(path)
    assert str(loaded["timestamp"].dt.tz) == "UTC"
    assert loaded["tide_number"].tolist() == [1, 2]


def test_tide_table_missing_columns(tmp_path):
    path = tmp_path / "tides.csv"
    pd.DataFrame({"timestamp": ["2020-09-13 12:00:00"], "tide_number": [1]}).to_csv(path, index=False)
    with pytest.raises(SchemaError):
        load_tide_data(path)


def test_load_csvs_requires_matches(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_csvs(str(tmp_path / "*.csv"))


def test_ensure_required_columns(raw_fixes):
    assert ensure_required_columns(raw_fixes) is raw_fixes
    with pytest.raises(SchemaError, match=r"input: missing required columns: \['SD'\]"):
        ensure_required_columns(raw_fixes.drop(columns=["SD"]))


def test_add_utm_coordinates():
    df = pd.DataFrame({"longitude": [5.25], "latitude": [53.25]})
    converted = add_utm_coordinates(df, utm_crs="epsg:32631")
    assert 600_000 < converted["X"].iloc[0] < 700_000
    assert 5_890_000 < converted["Y"].iloc[0] < 5_910_000
    assert "X" not in df.columns
