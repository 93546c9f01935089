"""Inference of residence across tracking gaps.

A long silent period between two fixes that lie close together most likely
covers a single uninterrupted stop rather than lost movement. Each such gap is
bridged with one synthetic fix whose residence time is the gap duration.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd

from .errors import check_time_order, require_columns, sort_by_time
from .geometry import simple_dist

REQUIRED_COLUMNS: List[str] = ["id", "tide_number", "x", "y", "time", "resTime"]


def find_gap_groups(
    time: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
    max_time_s: float,
    max_dist: float,
) -> List[Tuple[int, int]]:
    """
    Return ``(first, last)`` fix positions bounding each inferable gap.

    A gap lies between consecutive fixes that are more than ``max_time_s``
    seconds apart and less than ``max_dist`` apart in space. When gaps follow
    each other directly the shared boundary fix cannot stand alone, so the
    group is carried forward into the next gap and the chain forms one group.
    """

    if len(time) < 2:
        return []
    time_diff = np.diff(time)
    spat_diff = simple_dist(x, y)[1:]
    is_gap = (time_diff > max_time_s) & (spat_diff < max_dist)

    groups: List[Tuple[int, int]] = []
    k = 0
    while k < len(is_gap):
        if is_gap[k]:
            first = k
            while k + 1 < len(is_gap) and is_gap[k + 1]:
                k += 1
            groups.append((first, k + 1))
        k += 1
    return groups


def infer_residence(
    fixes: pd.DataFrame,
    inf_patch_time_diff: float = 30,
    inf_patch_spat_diff: float = 100,
) -> pd.DataFrame:
    """
    Add inferred fixes for long, spatially short tracking gaps.

    Parameters
    ----------
    fixes:
        Tide-aligned fixes with a residence time column ``resTime`` (minutes).
    inf_patch_time_diff:
        Minimum gap duration in minutes worth examining for a missed stop.
    inf_patch_spat_diff:
        Maximum distance between the gap's boundary fixes.

    Returns
    -------
    pd.DataFrame
        All input fixes tagged ``type='real'`` together with the inferred
        fixes tagged ``type='inferred'``, ordered by time.
    """

    require_columns(fixes, REQUIRED_COLUMNS, "infer_residence")

    data = fixes[fixes["time"].notna()]
    data = sort_by_time(data, "time", "infer_residence").reset_index(drop=True)
    data = data.assign(type="real")

    time = data["time"].to_numpy(dtype=float)
    x = data["x"].to_numpy(dtype=float)
    y = data["y"].to_numpy(dtype=float)
    groups = find_gap_groups(time, x, y, inf_patch_time_diff * 60, inf_patch_spat_diff)

    rows = []
    for first, last in groups:
        span = slice(first, last + 1)
        t_mean = float(time[span].mean())
        row = {
            "id": data["id"].iloc[first],
            "tide_number": data["tide_number"].iloc[first],
            "time": t_mean,
            "x": float(x[span].mean()),
            "y": float(y[span].mean()),
            "resTime": (time[last] - time[first]) / 60.0,
            "type": "inferred",
        }
        if "tidaltime" in data.columns:
            row["tidaltime"] = data["tidaltime"].iloc[first] + (t_mean - time[first]) / 60.0
        if "waterlevel" in data.columns:
            row["waterlevel"] = data["waterlevel"].iloc[first]
        if "ts" in data.columns:
            row["ts"] = pd.Timestamp(t_mean, unit="s", tz="UTC")
        rows.append(row)

    if rows:
        inferred = pd.DataFrame(rows)
        combined = pd.concat([data, inferred], ignore_index=True)
        combined = combined.sort_values("time", kind="mergesort").reset_index(drop=True)
    else:
        combined = data

    check_time_order(combined, "time", "infer_residence")
    logging.info(
        "infer_residence: tag %s, %d real fixes, %d inferred fixes",
        data["id"].unique().tolist(),
        len(data),
        len(rows),
    )
    return combined
