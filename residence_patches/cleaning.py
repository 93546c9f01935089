"""Quality filtering and smoothing of raw tracking fixes.

Handles per-tag removal of poorly localised fixes, an optional straight-line
speed filter, and a two-pass running median on the coordinates that cancels
the phase shift of a single pass.
"""

from __future__ import annotations

import logging
from typing import Dict, List

import numpy as np
import pandas as pd
from scipy.ndimage import median_filter

from .errors import SchemaError, require_columns, sort_by_time
from .geometry import point_distance

RAW_COLUMNS: List[str] = ["X", "Y", "SD", "NBS", "TAG", "TIME", "VARX", "VARY", "COVXY"]

CLEAN_DTYPES: Dict[str, str] = {
    "id": "int64",
    "posID": "int64",
    "time": "float64",
    "ts": "datetime64[ns, UTC]",
    "X_raw": "float64",
    "Y_raw": "float64",
    "NBS": "int64",
    "VARX": "float64",
    "VARY": "float64",
    "COVXY": "float64",
    "x": "float64",
    "y": "float64",
    "SD": "float64",
}
CLEAN_COLUMNS: List[str] = list(CLEAN_DTYPES)


def empty_clean_frame() -> pd.DataFrame:
    """Return a zero-row frame with the cleaned-fix schema."""

    return pd.DataFrame({col: pd.Series(dtype=dtype) for col, dtype in CLEAN_DTYPES.items()})


def running_median(values: pd.Series, window: int) -> np.ndarray:
    """Running median applied forward and again on the reversed sequence."""

    arr = values.to_numpy(dtype=float)
    forward = median_filter(arr, size=window, mode="nearest")
    backward = median_filter(forward[::-1], size=window, mode="nearest")
    return backward[::-1]


def speed_filter_mask(x: np.ndarray, y: np.ndarray, time: np.ndarray, max_speed: float) -> np.ndarray:
    """
    Mask of fixes kept by the speed filter.

    Each fix is compared with the last kept fix, so the retained sequence never
    contains a step faster than ``max_speed`` (distance units per second).
    """

    keep = np.zeros(len(x), dtype=bool)
    if len(x) == 0:
        return keep
    keep[0] = True
    last = 0
    for idx in range(1, len(x)):
        dist = point_distance(x[last], y[last], x[idx], y[idx])
        elapsed = time[idx] - time[last]
        if elapsed > 0:
            ok = dist / elapsed <= max_speed
        else:
            ok = dist == 0
        if ok:
            keep[idx] = True
            last = idx
    return keep


def clean_fixes(
    fixes: pd.DataFrame,
    moving_window: int = 3,
    nbs_min: int = 0,
    sd_threshold: float = 2000,
    filter_speed: bool = True,
    speed_cutoff: float = 150,
    tag_prefix: int = 31001000000,
) -> pd.DataFrame:
    """
    Clean the raw fixes of a single tag.

    Parameters
    ----------
    fixes:
        Raw fixes with columns ``TAG, TIME, X, Y, SD, NBS, VARX, VARY, COVXY``;
        ``TIME`` is in milliseconds since the epoch.
    moving_window:
        Window size of the running median on the coordinates.
    nbs_min:
        Minimum number of receivers that detected the fix.
    sd_threshold:
        Fixes with a localisation standard deviation at or above this are dropped.
    filter_speed:
        Whether to apply the straight-line speed filter.
    speed_cutoff:
        Maximum plausible speed in km/h.
    tag_prefix:
        Subtracted from tag numbers at or above it to give the short ``id``.

    Returns
    -------
    pd.DataFrame
        Cleaned fixes with smoothed ``x``/``y``, the raw coordinates retained
        as ``X_raw``/``Y_raw``, and ``time`` in seconds. Empty (but typed) when
        fewer than two fixes survive filtering.
    """

    require_columns(fixes, RAW_COLUMNS, "clean_fixes")
    if fixes["TAG"].nunique() > 1:
        raise SchemaError("clean_fixes: cannot be used on data with multiple individuals")
    if moving_window <= 1:
        raise ValueError("clean_fixes: moving window not > 1")
    if nbs_min < 0:
        raise ValueError("clean_fixes: NBS min not positive")
    if speed_cutoff < 0:
        raise ValueError("clean_fixes: speed cutoff not positive")

    data = sort_by_time(fixes, "TIME", "clean_fixes")
    data = data[(data["SD"] < sd_threshold) & (data["NBS"] >= nbs_min)]
    if len(data) < 2:
        logging.info("clean_fixes: %d fixes after quality filter, returning empty result", len(data))
        return empty_clean_frame()

    tag = int(data["TAG"].iloc[0])
    time_s = data["TIME"].to_numpy(dtype=float) / 1e3
    cleaned = pd.DataFrame(
        {
            "id": tag - tag_prefix if tag >= tag_prefix else tag,
            "posID": np.arange(1, len(data) + 1),
            "time": time_s,
            "X_raw": data["X"].to_numpy(dtype=float),
            "Y_raw": data["Y"].to_numpy(dtype=float),
            "NBS": data["NBS"].to_numpy(dtype="int64"),
            "VARX": data["VARX"].to_numpy(dtype=float),
            "VARY": data["VARY"].to_numpy(dtype=float),
            "COVXY": data["COVXY"].to_numpy(dtype=float),
            "SD": data["SD"].to_numpy(dtype=float),
        }
    )

    if filter_speed:
        mask = speed_filter_mask(
            cleaned["X_raw"].to_numpy(),
            cleaned["Y_raw"].to_numpy(),
            cleaned["time"].to_numpy(),
            max_speed=speed_cutoff / 3.6,
        )
        dropped = int((~mask).sum())
        if dropped:
            logging.info("clean_fixes: speed filter removed %d fixes from tag %s", dropped, tag)
        cleaned = cleaned[mask].reset_index(drop=True)

    if len(cleaned) < 2:
        logging.info("clean_fixes: fewer than 2 fixes remain for tag %s, returning empty result", tag)
        return empty_clean_frame()

    cleaned["ts"] = pd.to_datetime(cleaned["time"], unit="s", utc=True)
    cleaned["x"] = running_median(cleaned["X_raw"], moving_window)
    cleaned["y"] = running_median(cleaned["Y_raw"], moving_window)
    logging.info("clean_fixes: tag %s cleaned, %d fixes retained", tag, len(cleaned))
    return cleaned[CLEAN_COLUMNS].astype(CLEAN_DTYPES)
