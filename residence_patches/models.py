"""Residence patch records and the table that owns their fixes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import pandas as pd
from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class ResidencePatch:
    """
    One spatially bounded, temporally contiguous stop.

    ``fix_index`` holds positions into the ``fixes`` arena of the owning
    :class:`PatchTable`; the contributing fixes are never copied.
    """

    id: int
    tide_number: int
    patch: int
    type: str
    time_start: float
    time_end: float
    time_mean: float
    tidaltime_mean: float
    x_mean: float
    y_mean: float
    duration: float
    dist_in_patch: float
    disp_in_patch: float
    dist_bw_patch: float
    waterlevel_mean: float
    res_time_mean: float
    nfixes: int
    area: float
    circularity: float
    polygon: Optional[BaseGeometry] = field(default=None, repr=False, compare=False)
    fix_index: Tuple[int, ...] = field(default=(), repr=False)


@dataclass(frozen=True, eq=False)
class PatchTable:
    """Patches of one or more tidal cycles together with their fix arena."""

    fixes: pd.DataFrame
    patches: Tuple[ResidencePatch, ...] = ()

    def __len__(self) -> int:
        return len(self.patches)

    @property
    def empty(self) -> bool:
        return len(self.patches) == 0

    def patch_fixes(self, patch: ResidencePatch) -> pd.DataFrame:
        """Return the arena rows that contribute to ``patch``."""

        return self.fixes.iloc[list(patch.fix_index)]
