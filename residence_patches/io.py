"""Input/output helpers for the residence patch pipeline.

Covers CSV loading, required-column checks, tide table loading, coordinate
conversion to UTM, and CSV/GeoPackage saving.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import Iterable, List

import geopandas as gpd
import pandas as pd
from pyproj import Transformer

from .errors import SchemaError, require_columns

RAW_COLUMNS: List[str] = ["TAG", "TIME", "X", "Y", "SD", "NBS", "VARX", "VARY", "COVXY"]
TIDE_COLUMNS: List[str] = ["timestamp", "waterlevel", "tide_number"]


def load_csvs(csv_glob: str) -> List[pd.DataFrame]:
    """Load every CSV matching the glob, one frame per file."""

    paths = sorted(glob.glob(csv_glob))
    if not paths:
        raise FileNotFoundError(f"No CSV files matched glob: {csv_glob}")

    frames: List[pd.DataFrame] = []
    for path in paths:
        logging.info("Reading %s", path)
        frames.append(pd.read_csv(path, low_memory=False))
    logging.info("Loaded %d rows from %d files", sum(len(f) for f in frames), len(paths))
    return frames


def ensure_required_columns(df: pd.DataFrame, columns: Iterable[str] = RAW_COLUMNS) -> pd.DataFrame:
    """Validate that the DataFrame contains the required columns."""

    require_columns(df, columns, "input")
    return df


def load_tide_data(path: str | Path) -> pd.DataFrame:
    """Read a high-tide table and parse its timestamps as UTC."""

    tides = pd.read_csv(path)
    ensure_required_columns(tides, TIDE_COLUMNS)
    tides["timestamp"] = pd.to_datetime(tides["timestamp"], utc=True)
    logging.info("Loaded %d tide records from %s", len(tides), path)
    return tides


def save_dataframe(df: pd.DataFrame, path: str | Path) -> None:
    """Persist a DataFrame to CSV."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logging.info("Saved %d rows to %s", len(df), path)


def save_spatial(gdf: gpd.GeoDataFrame, path: str | Path, layer: str = "patches") -> None:
    """Persist a GeoDataFrame to a GeoPackage layer."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    gdf.to_file(path, layer=layer, driver="GPKG")
    logging.info("Saved %d features to %s (layer=%s)", len(gdf), path, layer)


def add_utm_coordinates(df: pd.DataFrame, utm_crs: str = "epsg:32631") -> pd.DataFrame:
    """
    Convert longitude/latitude to UTM and store them in the 'X' and 'Y' columns.
    """

    if "longitude" not in df.columns or "latitude" not in df.columns:
        raise SchemaError("Longitude and latitude columns are required for UTM conversion.")

    transformer = Transformer.from_crs("epsg:4326", utm_crs, always_xy=True)
    x_utm, y_utm = transformer.transform(df["longitude"].to_numpy(), df["latitude"].to_numpy())
    df = df.copy()
    df["X"] = x_utm
    df["Y"] = y_utm
    logging.info("Added UTM coordinates using CRS=%s", utm_crs)
    return df
