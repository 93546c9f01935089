"""Temporal aggregation of cleaned fixes over a fixed interval."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .cleaning import CLEAN_COLUMNS
from .errors import require_columns


def aggregate_fixes(fixes: pd.DataFrame, interval: float = 60) -> pd.DataFrame:
    """
    Average cleaned fixes over consecutive ``interval``-second bins.

    ``time`` is floored to the bin start and every numeric column is averaged
    per ``(time, id)``. The localisation error ``SD`` is then recomputed as
    ``sqrt(VARX + VARY + 2 * COVXY)``, or 0 where that sum is not positive.
    ``posID`` is renumbered over the bins and ``NBS`` rounded back to an
    integer count, so cleaned input keeps its column types.
    """

    require_columns(fixes, ["id", "x", "y", "time", "VARX", "VARY", "COVXY"], "aggregate_fixes")
    if fixes.empty:
        return fixes.copy()
    min_step = float(np.diff(np.sort(fixes["time"].to_numpy(dtype=float))).min()) if len(fixes) > 1 else 0.0
    if interval <= min_step:
        raise ValueError("aggregate_fixes: aggregation interval less than tracking interval")

    binned = fixes.assign(time=np.floor(fixes["time"] / interval) * interval)
    numeric = [
        col
        for col in binned.select_dtypes(include="number").columns
        if col not in {"time", "id"}
    ]
    aggregated = binned.groupby(["time", "id"], as_index=False, sort=True)[numeric].mean()

    variance = aggregated["VARX"] + aggregated["VARY"] + 2 * aggregated["COVXY"]
    aggregated["SD"] = np.sqrt(variance.where(variance > 0, 0.0))
    aggregated["ts"] = pd.to_datetime(aggregated["time"], unit="s", utc=True)
    if "posID" in aggregated.columns:
        aggregated["posID"] = np.arange(1, len(aggregated) + 1)
    if "NBS" in aggregated.columns:
        aggregated["NBS"] = aggregated["NBS"].round().astype("int64")
    ordered = [col for col in CLEAN_COLUMNS if col in aggregated.columns]
    aggregated = aggregated[ordered + [col for col in aggregated.columns if col not in ordered]]
    logging.info("aggregate_fixes: %d fixes aggregated to %d over %ss", len(fixes), len(aggregated), interval)
    return aggregated
