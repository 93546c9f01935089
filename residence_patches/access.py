"""Read-only views of a patch table for downstream consumers.

Three views are offered: ``summary`` (one row per patch, no geometry),
``points`` (one row per contributing fix) and ``spatial`` (the summary with
patch polygons as a GeoDataFrame). :func:`patch_trajectory` additionally links
consecutive patches of an individual with straight line segments.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString

from .models import PatchTable

SUMMARY_FIELDS: Dict[str, str] = {
    "id": "id",
    "tide_number": "tide_number",
    "type": "type",
    "patch": "patch",
    "time_start": "time_start",
    "time_end": "time_end",
    "time_mean": "time_mean",
    "tidaltime_mean": "tidaltime_mean",
    "x_mean": "x_mean",
    "y_mean": "y_mean",
    "duration": "duration",
    "dist_in_patch": "distInPatch",
    "dist_bw_patch": "distBwPatch",
    "disp_in_patch": "dispInPatch",
    "waterlevel_mean": "waterlevel_mean",
    "res_time_mean": "resTime_mean",
    "nfixes": "nfixes",
    "area": "area",
    "circularity": "circularity",
}
SUMMARY_COLUMNS: List[str] = list(SUMMARY_FIELDS.values())
VIEWS = ("summary", "points", "spatial")


def _summary(table: PatchTable) -> pd.DataFrame:
    rows = [{column: getattr(item, attr) for attr, column in SUMMARY_FIELDS.items()} for item in table.patches]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def _points(table: PatchTable) -> pd.DataFrame:
    parts: List[pd.DataFrame] = []
    for item in table.patches:
        fixes = table.patch_fixes(item).rename(columns={"tide_number": "fix_tide_number"})
        fixes = fixes.assign(id=item.id, tide_number=item.tide_number, patch=item.patch)
        parts.append(fixes)
    if not parts:
        columns = [c if c != "tide_number" else "fix_tide_number" for c in table.fixes.columns]
        return pd.DataFrame(columns=[*columns, "tide_number", "patch"])
    return pd.concat(parts, ignore_index=True)


def get_patch_data(table: PatchTable, which: str = "summary", crs: Optional[str] = None) -> pd.DataFrame:
    """
    Project a patch table into one of its views.

    Parameters
    ----------
    table:
        Output of :func:`~residence_patches.patches.make_res_patch` or
        :func:`~residence_patches.merging.merge_tide_boundaries`.
    which:
        ``"summary"``, ``"points"`` or ``"spatial"``.
    crs:
        Coordinate reference system assigned to the spatial view.
    """

    if which == "summary":
        return _summary(table)
    if which == "points":
        return _points(table)
    if which == "spatial":
        geometry = [item.polygon for item in table.patches]
        return gpd.GeoDataFrame(_summary(table), geometry=geometry, crs=crs)
    raise ValueError(f"Unsupported patch view: {which!r}; expected one of {VIEWS}")


def patch_trajectory(table: PatchTable, crs: Optional[str] = None) -> gpd.GeoDataFrame:
    """Line segments joining the centroids of consecutive patches per individual."""

    rows = []
    geometry = []
    by_id: Dict[int, list] = {}
    for item in table.patches:
        by_id.setdefault(item.id, []).append(item)
    for ident in sorted(by_id):
        ordered = sorted(by_id[ident], key=lambda p: p.time_start)
        for before, after in zip(ordered, ordered[1:]):
            line = LineString([(before.x_mean, before.y_mean), (after.x_mean, after.y_mean)])
            rows.append(
                {
                    "id": ident,
                    "tide_from": before.tide_number,
                    "patch_from": before.patch,
                    "tide_to": after.tide_number,
                    "patch_to": after.patch,
                    "time_start": before.time_end,
                    "time_end": after.time_start,
                    "duration": after.time_start - before.time_end,
                    "distance": line.length,
                }
            )
            geometry.append(line)
    columns = ["id", "tide_from", "patch_from", "tide_to", "patch_to", "time_start", "time_end", "duration", "distance"]
    return gpd.GeoDataFrame(pd.DataFrame(rows, columns=columns), geometry=geometry, crs=crs)
