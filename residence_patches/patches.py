"""Construction of residence patches from classified fixes.

Groups contiguous stationary fixes into candidate patches per individual and
tidal cycle, merges candidates that are close in space and time, discards
undersized patches, and summarises the survivors with geometry and movement
statistics.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import require_columns, sort_by_time
from .geometry import buffer_union, circularity, point_distance, simple_dist
from .models import PatchTable, ResidencePatch

REQUIRED_COLUMNS: List[str] = ["id", "tide_number", "time", "x", "y", "resTime", "label"]


def _column_mean(fixes: pd.DataFrame, column: str) -> float:
    if column not in fixes.columns or fixes[column].isna().all():
        return float("nan")
    return float(fixes[column].mean())


def _patch_type(fixes: pd.DataFrame) -> str:
    if "type" not in fixes.columns:
        return "real"
    kinds = set(fixes["type"].dropna())
    if len(kinds) == 1:
        return kinds.pop()
    return "mixed"


def summarise_patch(
    arena: pd.DataFrame,
    index: Iterable[int],
    buffer_size: float,
    tide_number: Optional[int] = None,
    patch: int = 0,
) -> ResidencePatch:
    """
    Build a :class:`ResidencePatch` from the arena rows at ``index``.

    ``tide_number`` defaults to the cycle of the earliest contributing fix.
    ``dist_bw_patch`` is left as NaN; it depends on the neighbouring patch and
    is filled in by :func:`number_patches`.
    """

    fixes = arena.iloc[list(index)]
    order = np.argsort(fixes["time"].to_numpy(dtype=float), kind="mergesort")
    fixes = fixes.iloc[order]
    positions = tuple(int(pos) for pos in np.asarray(list(index))[order])

    x = fixes["x"].to_numpy(dtype=float)
    y = fixes["y"].to_numpy(dtype=float)
    time = fixes["time"].to_numpy(dtype=float)
    polygon = buffer_union(x, y, buffer_size)
    steps = simple_dist(x, y)

    return ResidencePatch(
        id=int(fixes["id"].iloc[0]),
        tide_number=int(fixes["tide_number"].iloc[0] if tide_number is None else tide_number),
        patch=patch,
        type=_patch_type(fixes),
        time_start=float(time[0]),
        time_end=float(time[-1]),
        time_mean=float(time.mean()),
        tidaltime_mean=_column_mean(fixes, "tidaltime"),
        x_mean=float(x.mean()),
        y_mean=float(y.mean()),
        duration=float(time[-1] - time[0]),
        dist_in_patch=float(np.nansum(steps)),
        disp_in_patch=point_distance(x[0], y[0], x[-1], y[-1]),
        dist_bw_patch=float("nan"),
        waterlevel_mean=_column_mean(fixes, "waterlevel"),
        res_time_mean=_column_mean(fixes, "resTime"),
        nfixes=len(fixes),
        area=float(polygon.area),
        circularity=circularity(polygon),
        polygon=polygon,
        fix_index=positions,
    )


def is_independent(
    first: ResidencePatch,
    second: ResidencePatch,
    spat_indep_lim: float,
    temp_indep_lim: float,
    rest_indep_lim: Optional[float] = None,
) -> bool:
    """
    Decide whether ``second`` is a separate stay from the earlier ``first``.

    The two are one extended stay when their centroids are closer than
    ``spat_indep_lim`` and the time between the end of ``first`` and the start
    of ``second`` is below ``temp_indep_lim`` minutes. With ``rest_indep_lim``
    set, their summed mean residence times must also stay below it.
    """

    distance = point_distance(first.x_mean, first.y_mean, second.x_mean, second.y_mean)
    gap_minutes = (second.time_start - first.time_end) / 60.0
    dependent = distance < spat_indep_lim and gap_minutes < temp_indep_lim
    if dependent and rest_indep_lim is not None:
        dependent = (first.res_time_mean + second.res_time_mean) < rest_indep_lim
    return not dependent


def number_patches(patches: Sequence[ResidencePatch]) -> Tuple[ResidencePatch, ...]:
    """
    Number patches 1..k by start time within each (id, tide_number) and set
    the centroid distance to the preceding patch of the same cycle.
    """

    groups: Dict[Tuple[int, int], List[ResidencePatch]] = {}
    for item in patches:
        groups.setdefault((item.id, item.tide_number), []).append(item)

    numbered: List[ResidencePatch] = []
    for key in sorted(groups):
        previous: Optional[ResidencePatch] = None
        for number, item in enumerate(sorted(groups[key], key=lambda p: p.time_start), start=1):
            dist_bw = float("nan")
            if previous is not None:
                dist_bw = point_distance(previous.x_mean, previous.y_mean, item.x_mean, item.y_mean)
            numbered.append(replace(item, patch=number, dist_bw_patch=dist_bw))
            previous = item
    return tuple(sorted(numbered, key=lambda p: (p.time_start, p.id)))


def stationary_runs(labels: np.ndarray) -> List[np.ndarray]:
    """Return positions of each maximal run of ``patch`` labels."""

    is_patch = labels == "patch"
    runs: List[np.ndarray] = []
    start: Optional[int] = None
    for pos, flag in enumerate(is_patch):
        if flag and start is None:
            start = pos
        elif not flag and start is not None:
            runs.append(np.arange(start, pos))
            start = None
    if start is not None:
        runs.append(np.arange(start, len(is_patch)))
    return runs


def make_res_patch(
    fixes: pd.DataFrame,
    buffer_size: float = 10,
    spat_indep_lim: float = 100,
    temp_indep_lim: float = 30,
    rest_indep_lim: Optional[float] = None,
    min_fixes: int = 3,
    tide_limits: Optional[Tuple[float, float]] = None,
) -> PatchTable:
    """
    Construct residence patches from classified fixes.

    Parameters
    ----------
    fixes:
        Output of :func:`~residence_patches.classification.classify_points`.
        When a ``bout`` column is present, two stationary runs separated by
        more than one travel bout are never merged.
    buffer_size:
        Radius of the buffer around each fix that forms the patch polygon.
    spat_indep_lim:
        Centroid distance below which consecutive patches may be merged.
    temp_indep_lim:
        Time gap in minutes below which consecutive patches may be merged.
    rest_indep_lim:
        Optional bound on the summed mean residence time of merged patches.
    min_fixes:
        Patches with fewer contributing fixes are discarded.
    tide_limits:
        Optional ``(low, high)`` window on ``tidaltime`` in minutes; fixes
        outside it do not contribute to patches.

    Returns
    -------
    PatchTable
        Patches numbered per individual and tidal cycle, referencing the
        time-ordered input fixes.
    """

    require_columns(fixes, REQUIRED_COLUMNS, "make_res_patch")
    if min_fixes < 1:
        raise ValueError("make_res_patch: min_fixes must be at least 1")
    if tide_limits is not None:
        require_columns(fixes, ["tidaltime"], "make_res_patch")

    arena = sort_by_time(fixes, "time", "make_res_patch").reset_index(drop=True)
    usable = arena
    if tide_limits is not None:
        low, high = tide_limits
        usable = arena[arena["tidaltime"].between(low, high)]

    patches: List[ResidencePatch] = []
    discarded = 0
    for (_, tide_number), group in usable.groupby(["id", "tide_number"], sort=True):
        positions = group.index.to_numpy()
        bouts = group["bout"].to_numpy() if "bout" in group.columns else None
        merged: List[ResidencePatch] = []
        last_end: Optional[int] = None
        for run in stationary_runs(group["label"].to_numpy()):
            candidate = summarise_patch(arena, positions[run], buffer_size, tide_number=tide_number)
            split_by_travel = (
                bouts is not None and last_end is not None and len(np.unique(bouts[last_end + 1 : run[0]])) > 1
            )
            last_end = int(run[-1])
            if (
                merged
                and not split_by_travel
                and not is_independent(merged[-1], candidate, spat_indep_lim, temp_indep_lim, rest_indep_lim)
            ):
                combined = merged[-1].fix_index + candidate.fix_index
                merged[-1] = summarise_patch(arena, combined, buffer_size, tide_number=tide_number)
            else:
                merged.append(candidate)

        kept = [item for item in merged if item.nfixes >= min_fixes]
        discarded += len(merged) - len(kept)
        patches.extend(kept)

    if discarded:
        logging.info("make_res_patch: discarded %d patches with fewer than %d fixes", discarded, min_fixes)
    table = PatchTable(fixes=arena, patches=number_patches(patches))
    logging.info("make_res_patch: built %d patches from %d fixes", len(table), len(arena))
    return table
