"""Stationary / travel classification of fixes by residence time."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from .errors import require_columns, sort_by_time


def label_bouts(labels: np.ndarray, is_travel: np.ndarray, travel_seg: Optional[int] = None) -> np.ndarray:
    """
    Number maximal runs of equal labels, starting from 0.

    With ``travel_seg`` set, travel runs longer than that many fixes are cut
    into consecutive segments of at most ``travel_seg`` fixes.
    """

    bouts = np.zeros(len(labels), dtype=int)
    bout = 0
    run_length = 0
    for idx in range(len(labels)):
        if idx > 0:
            new_run = labels[idx] != labels[idx - 1]
            split = bool(travel_seg) and is_travel[idx] and run_length >= travel_seg
            if new_run or split:
                bout += 1
                run_length = 0
        bouts[idx] = bout
        run_length += 1
    return bouts


def classify_points(
    fixes: pd.DataFrame,
    res_time_limit: float = 2,
    travel_seg: Optional[int] = None,
) -> pd.DataFrame:
    """
    Label each fix as ``patch`` or ``travel``.

    A fix whose residence time is at least ``res_time_limit`` minutes is
    stationary. The ``bout`` column numbers contiguous runs of one label;
    ``travel_seg`` bounds the length of travel bouts.
    """

    require_columns(fixes, ["time", "resTime"], "classify_points")
    if travel_seg is not None and travel_seg < 1:
        raise ValueError("classify_points: travel_seg must be a positive number of fixes")

    data = sort_by_time(fixes, "time", "classify_points").reset_index(drop=True)
    is_patch = data["resTime"].to_numpy(dtype=float) >= res_time_limit
    labels = np.where(is_patch, "patch", "travel")
    data = data.assign(label=labels, bout=label_bouts(labels, ~is_patch, travel_seg))

    logging.info(
        "classify_points: %d patch fixes, %d travel fixes in %d bouts",
        int(is_patch.sum()),
        int((~is_patch).sum()),
        int(data["bout"].nunique()),
    )
    return data
