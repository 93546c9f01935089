"""Repair of residence patches cut in two by a tidal-cycle boundary.

Patches are built per tidal cycle, so a stay that spans a high tide ends up
as the last patch of one cycle and the first patch of the next. This module
joins such pairs when they fail the same independence test used when building
patches.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .errors import SchemaError, require_columns
from .models import PatchTable, ResidencePatch
from .patches import is_independent, number_patches, summarise_patch


def _cycle_of(table: PatchTable) -> int:
    require_columns(table.fixes, ["id", "tide_number"], "merge_tide_boundaries")
    cycles = table.fixes["tide_number"].dropna().unique()
    if len(cycles) != 1:
        raise SchemaError(
            f"merge_tide_boundaries: each patch table must hold exactly one tidal cycle, got {sorted(cycles)}"
        )
    return int(cycles[0])


def merge_tide_boundaries(
    tables: Iterable[PatchTable],
    spat_indep_lim: float = 100,
    temp_indep_lim: float = 30,
    rest_indep_lim: Optional[float] = None,
    buffer_size: float = 10,
) -> PatchTable:
    """
    Merge patches across consecutive tidal cycles of one individual.

    ``tables`` must be ordered by strictly ascending ``tide_number``. For each
    pair of cycles numbered n and n + 1 the last patch of the earlier cycle is compared
    with the first patch of the later one; if they are not independent they
    are merged, statistics and geometry are recomputed over the union of their
    fixes, and the result is attributed to the earlier cycle. Longer chains
    only form through this pairwise step applied in cycle order.

    The fix arenas of the inputs are concatenated into one arena and patch
    indices shifted accordingly.
    """

    cycles: List[Tuple[int, Tuple[ResidencePatch, ...]]] = []
    frames: List[pd.DataFrame] = []
    offset = 0
    for table in tables:
        if table.fixes.empty:
            continue
        cycle = _cycle_of(table)
        if cycles and cycle <= cycles[-1][0]:
            raise SchemaError(
                f"merge_tide_boundaries: tidal cycles must be strictly ascending, got {cycle} after {cycles[-1][0]}"
            )
        shifted = tuple(
            replace(item, fix_index=tuple(pos + offset for pos in item.fix_index)) for item in table.patches
        )
        cycles.append((cycle, tuple(sorted(shifted, key=lambda p: p.time_start))))
        frames.append(table.fixes)
        offset += len(table.fixes)

    if not frames:
        return PatchTable(fixes=pd.DataFrame(), patches=())

    arena = pd.concat(frames, ignore_index=True)
    if arena["id"].nunique() > 1:
        raise SchemaError("merge_tide_boundaries: patch tables belong to more than one individual")

    output: List[ResidencePatch] = []
    last_cycle: Optional[int] = None
    previous_cycle: Optional[int] = None
    merges = 0
    for cycle, patches in cycles:
        remaining = list(patches)
        # Only the patch holding fixes of cycle n - 1 may absorb the first patch of cycle n.
        boundary_open = (
            bool(output) and previous_cycle is not None and cycle == previous_cycle + 1 and last_cycle == previous_cycle
        )
        if remaining and boundary_open and not is_independent(
            output[-1], remaining[0], spat_indep_lim, temp_indep_lim, rest_indep_lim
        ):
            combined = output[-1].fix_index + remaining[0].fix_index
            output[-1] = summarise_patch(arena, combined, buffer_size, tide_number=output[-1].tide_number)
            remaining = remaining[1:]
            last_cycle = cycle
            merges += 1
            logging.info("merge_tide_boundaries: merged patches across tides %s and %s", previous_cycle, cycle)
        output.extend(remaining)
        if remaining:
            last_cycle = cycle
        previous_cycle = cycle

    before = sum(len(patches) for _, patches in cycles)
    table = PatchTable(fixes=arena, patches=number_patches(output))
    logging.info("merge_tide_boundaries: %d patches in, %d out (%d boundary merges)", before, len(table), merges)
    return table
