"""CLI entry point for the residence patch pipeline.

``prepare`` cleans raw fixes per tag and aligns them to the tide table;
``segment`` turns residence-time annotated fixes into residence patches and
writes the summary, point and spatial views.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List

import pandas as pd

from residence_patches.access import get_patch_data, patch_trajectory
from residence_patches.config import CleaningParams, InferenceParams, PatchParams, get_nested, load_config
from residence_patches.io import (
    RAW_COLUMNS,
    add_utm_coordinates,
    ensure_required_columns,
    load_csvs,
    load_tide_data,
    save_dataframe,
    save_spatial,
)
from residence_patches.pipeline import prepare_fixes, segment_individuals, split_individuals


def configure_logging(log_cfg: Dict[str, object]) -> None:
    """Configure root logger with both file and console handlers."""

    log_dir = Path(log_cfg.get("dir", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    filename = log_cfg.get("filename", "residence_patches.log")
    log_path = log_dir / filename
    level_name = str(log_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s - %(levelname)s - %(message)s"
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt))
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(fmt))

    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    root.info("Logging to %s (level=%s)", log_path, level_name)


def run_prepare(cfg: Dict[str, object]) -> None:
    input_cfg = cfg.get("input", {}) or {}
    output_dir = Path(get_nested(cfg, ["output", "dir"], "output"))
    tides = load_tide_data(input_cfg.get("tide_csv", "data/tides.csv"))
    params = CleaningParams.from_config(cfg)
    convert = bool(get_nested(cfg, ["coordinates", "convert_lonlat"], False))
    utm_crs = get_nested(cfg, ["coordinates", "utm_crs"], "epsg:32631")

    for raw in load_csvs(input_cfg.get("raw_csv_glob", "data/raw/*.csv")):
        if convert:
            raw = add_utm_coordinates(raw, utm_crs=utm_crs)
        raw = ensure_required_columns(raw, RAW_COLUMNS)
        for tag, tag_df in raw.groupby("TAG"):
            prepared = prepare_fixes(tag_df, tides, params)
            if prepared.empty:
                logging.warning("Tag %s has no usable fixes after cleaning; skipping.", tag)
                continue
            save_dataframe(prepared, output_dir / "prepared" / f"{tag}_prepared.csv")


def run_segment(cfg: Dict[str, object]) -> None:
    input_cfg = cfg.get("input", {}) or {}
    output_cfg = cfg.get("output", {}) or {}
    output_dir = Path(output_cfg.get("dir", "output"))
    crs = get_nested(cfg, ["coordinates", "crs"], None)
    n_jobs = int(get_nested(cfg, ["parallel", "n_jobs"], 1))

    frames: List[pd.DataFrame] = []
    for df in load_csvs(input_cfg.get("residence_csv_glob", "data/residence/*.csv")):
        frames.extend(split_individuals(df))

    tables = segment_individuals(
        frames,
        inference=InferenceParams.from_config(cfg),
        patches=PatchParams.from_config(cfg),
        n_jobs=n_jobs,
    )
    tables = [table for table in tables if not table.empty]
    if not tables:
        logging.warning("No residence patches found; nothing to write.")
        return

    summary = pd.concat([get_patch_data(t, "summary") for t in tables], ignore_index=True)
    save_dataframe(summary, output_dir / "patch_summary.csv")
    if output_cfg.get("save_points", True):
        points = pd.concat([get_patch_data(t, "points") for t in tables], ignore_index=True)
        save_dataframe(points, output_dir / "patch_points.csv")
    if output_cfg.get("save_spatial", False):
        spatial = pd.concat([get_patch_data(t, "spatial", crs=crs) for t in tables], ignore_index=True)
        save_spatial(spatial, output_dir / "patches.gpkg", layer="patches")
        traj = pd.concat([patch_trajectory(t, crs=crs) for t in tables], ignore_index=True)
        save_spatial(traj, output_dir / "patches.gpkg", layer="patch_trajectory")


def main(command: str, config_path: str = "config/residence.yaml") -> None:
    cfg = load_config(config_path)
    configure_logging(cfg.get("logging", {}) or {})
    if command == "prepare":
        run_prepare(cfg)
    else:
        run_segment(cfg)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Residence patch pipeline.")
    parser.add_argument("command", choices=["prepare", "segment"], help="Pipeline step to run.")
    parser.add_argument(
        "-c",
        "--config",
        default="config/residence.yaml",
        help="Path to YAML config file.",
    )
    args = parser.parse_args()
    main(args.command, args.config)
