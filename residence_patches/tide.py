"""Tidal-cycle alignment of cleaned fixes.

Attaches the index of the tidal cycle each fix falls in, the water level of
that cycle's high tide, and the time in minutes since that high tide.
"""

from __future__ import annotations

import logging
from typing import Dict, List

import numpy as np
import pandas as pd

from .errors import require_columns, sort_by_time

TIDE_COLUMNS: List[str] = ["timestamp", "waterlevel", "tide_number"]
TIDE_CONTEXT: List[str] = ["tide_number", "tidaltime", "waterlevel"]


def add_tide(fixes: pd.DataFrame, tide_data: pd.DataFrame) -> pd.DataFrame:
    """
    Join each fix to the most recent high tide at or before it.

    Fixes and tide records are merged into one time-ordered sequence (a tide
    record sorts before a fix with the same timestamp) and scanned once,
    carrying the last tide record forward. Tidal time counts from the first
    record of the fix's tide_number, so a cycle may hold several records
    (high and low water, say) without restarting the clock. Fixes that precede
    the first tide record cannot be resolved and are dropped. Any tide columns
    already present on ``fixes`` are replaced, so aligning twice gives the same
    result.
    """

    require_columns(fixes, ["time", "ts"], "add_tide")
    require_columns(tide_data, TIDE_COLUMNS, "add_tide tide data")

    data = sort_by_time(fixes, "time", "add_tide")
    data = data.drop(columns=[col for col in TIDE_CONTEXT if col in data.columns]).reset_index(drop=True)

    tides = tide_data[TIDE_COLUMNS].dropna(subset=["timestamp", "tide_number"])
    tide_times = pd.to_datetime(tides["timestamp"], utc=True).dt.tz_convert(None).to_numpy()
    fix_times = pd.to_datetime(data["ts"], utc=True).dt.tz_convert(None).to_numpy()

    events = pd.concat(
        [
            pd.DataFrame({"ts": tide_times, "is_tide": True, "row": np.arange(len(tides))}),
            pd.DataFrame({"ts": fix_times, "is_tide": False, "row": np.arange(len(data))}),
        ],
        ignore_index=True,
    )
    # Tide records first on ties, so a fix at high tide gets tidaltime 0.
    events = events.sort_values(["ts", "is_tide"], ascending=[True, False], kind="mergesort")

    tide_number = np.full(len(data), np.nan)
    tidaltime = np.full(len(data), np.nan)
    waterlevel = np.full(len(data), np.nan)
    tide_numbers = tides["tide_number"].to_numpy(dtype=float)
    tide_levels = tides["waterlevel"].to_numpy(dtype=float)

    current = None
    cycle_start: Dict[float, np.datetime64] = {}
    for ts, is_tide, row in zip(events["ts"].to_numpy(), events["is_tide"].to_numpy(), events["row"].to_numpy()):
        if is_tide:
            current = row
            cycle_start.setdefault(tide_numbers[row], ts)
            continue
        if current is None:
            continue
        cycle = tide_numbers[current]
        tide_number[row] = cycle
        waterlevel[row] = tide_levels[current]
        tidaltime[row] = (ts - cycle_start[cycle]) / np.timedelta64(1, "m")

    aligned = data.assign(tide_number=tide_number, tidaltime=tidaltime, waterlevel=waterlevel)
    resolved = aligned[~np.isnan(tide_number)].reset_index(drop=True)
    resolved["tide_number"] = resolved["tide_number"].astype("int64")

    dropped = len(aligned) - len(resolved)
    if dropped:
        logging.info("add_tide: dropped %d fixes preceding the first tide record", dropped)
    ids = resolved["id"].unique().tolist() if "id" in resolved.columns else []
    logging.info("add_tide: tag %s added time since high tide", ids)
    return resolved
