"""End-to-end orchestration of the residence patch stages.

Individuals are independent units of work: each one runs through the stages
sequentially, and several individuals can be processed in parallel.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

import pandas as pd
from joblib import Parallel, delayed

from .aggregation import aggregate_fixes
from .classification import classify_points
from .cleaning import clean_fixes
from .config import CleaningParams, InferenceParams, PatchParams
from .errors import SchemaError, require_columns
from .inference import infer_residence
from .merging import merge_tide_boundaries
from .models import PatchTable
from .patches import make_res_patch
from .tide import add_tide


def prepare_fixes(raw: pd.DataFrame, tide_data: pd.DataFrame, params: CleaningParams) -> pd.DataFrame:
    """Clean the raw fixes of one tag, optionally aggregate them, and add tide context."""

    cleaned = clean_fixes(
        raw,
        moving_window=params.moving_window,
        nbs_min=params.nbs_min,
        sd_threshold=params.sd_threshold,
        filter_speed=params.filter_speed,
        speed_cutoff=params.speed_cutoff,
        tag_prefix=params.tag_prefix,
    )
    if params.aggregate_interval and not cleaned.empty:
        cleaned = aggregate_fixes(cleaned, interval=params.aggregate_interval)
    return add_tide(cleaned, tide_data)


def segment_individual(fixes: pd.DataFrame, inference: InferenceParams, patches: PatchParams) -> PatchTable:
    """
    Run gap inference, classification, per-cycle patch building and tide
    boundary repair for the residence data of a single individual.
    """

    require_columns(fixes, ["id", "tide_number"], "segment_individual")
    if fixes["id"].nunique() > 1:
        raise SchemaError("segment_individual: data holds more than one individual")

    inferred = infer_residence(
        fixes,
        inf_patch_time_diff=inference.inf_patch_time_diff,
        inf_patch_spat_diff=inference.inf_patch_spat_diff,
    )
    classified = classify_points(inferred, res_time_limit=inference.res_time_limit, travel_seg=inference.travel_seg)

    per_cycle = [
        make_res_patch(
            cycle,
            buffer_size=patches.buffer_size,
            spat_indep_lim=patches.spat_indep_lim,
            temp_indep_lim=patches.temp_indep_lim,
            rest_indep_lim=patches.rest_indep_lim,
            min_fixes=patches.min_fixes,
            tide_limits=patches.tide_limits,
        )
        for _, cycle in classified.groupby("tide_number", sort=True)
    ]
    return merge_tide_boundaries(
        per_cycle,
        spat_indep_lim=patches.spat_indep_lim,
        temp_indep_lim=patches.temp_indep_lim,
        rest_indep_lim=patches.rest_indep_lim,
        buffer_size=patches.buffer_size,
    )


def split_individuals(fixes: pd.DataFrame, key: str = "id") -> List[pd.DataFrame]:
    """Split a multi-individual frame into one frame per individual."""

    return [group.reset_index(drop=True) for _, group in fixes.groupby(key, sort=True)]


def segment_individuals(
    frames: Iterable[pd.DataFrame],
    inference: InferenceParams,
    patches: PatchParams,
    n_jobs: int = 1,
) -> List[PatchTable]:
    """Segment several individuals independently, in parallel when ``n_jobs`` allows."""

    frames = [frame for frame in frames if not frame.empty]
    logging.info("Segmenting %d individuals (n_jobs=%d)", len(frames), n_jobs)
    return Parallel(n_jobs=n_jobs)(delayed(segment_individual)(frame, inference, patches) for frame in frames)
