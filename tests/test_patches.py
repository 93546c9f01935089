import math

import numpy as np
import pandas as pd
import pytest

from residence_patches.access import get_patch_data
from residence_patches.classification import classify_points
from residence_patches.errors import SchemaError
from residence_patches.inference import infer_residence
from residence_patches.patches import is_independent, make_res_patch, summarise_patch

from conftest import make_track

EXPECTED_FIELDS = [
    "id",
    "tide_number",
    "type",
    "patch",
    "time_mean",
    "tidaltime_mean",
    "x_mean",
    "y_mean",
    "duration",
    "distInPatch",
    "distBwPatch",
    "dispInPatch",
]


def _classified(track):
    return classify_points(infer_residence(track, inf_patch_time_diff=30, inf_patch_spat_diff=100))


def test_patch_calc_on_track(three_stop_track):
    table = make_res_patch(
        _classified(three_stop_track),
        buffer_size=10,
        spat_indep_lim=100,
        temp_indep_lim=30,
        rest_indep_lim=10,
        min_fixes=3,
    )
    summary = get_patch_data(table, "summary")
    for name in EXPECTED_FIELDS:
        assert name in summary.columns, f"{name} expected in output but not produced"
    assert len(summary) == 3
    assert summary["patch"].tolist() == [1, 2, 3]
    assert (np.diff(summary["time_mean"]) > 0).all()
    assert (summary["nfixes"] >= 3).all()
    assert summary["nfixes"].tolist() == [20, 20, 15]
    assert (summary["type"] == "real").all()


def test_patch_statistics(three_stop_track):
    table = make_res_patch(_classified(three_stop_track))
    first, second = table.patches[0], table.patches[1]

    assert first.x_mean == pytest.approx(0.0, abs=1.0)
    assert first.duration == pytest.approx(first.time_end - first.time_start)
    assert first.duration == pytest.approx(190.0)
    assert first.dist_in_patch >= first.disp_in_patch
    assert math.isnan(first.dist_bw_patch)
    assert second.dist_bw_patch == pytest.approx(1000.0, abs=2.0)
    assert first.waterlevel_mean == pytest.approx(120.0)
    assert first.res_time_mean == pytest.approx(5.0)

    assert first.polygon.geom_type == "Polygon"
    assert first.area > math.pi * 10**2 * 0.95
    assert 0.9 < first.circularity <= 1.0


def test_close_patches_merge():
    track = make_track(
        [
            (20, (0.0, 0.0), (0.0, 0.0), 5.0),
            (3, (30.0, 0.0), (30.0, 0.0), 1.0),
            (20, (10.0, 0.0), (10.0, 0.0), 5.0),
        ]
    )
    table = make_res_patch(_classified(track), spat_indep_lim=100, temp_indep_lim=30)
    assert len(table) == 1
    assert table.patches[0].nfixes == 40


def test_residence_limit_blocks_merge():
    track = make_track(
        [
            (20, (0.0, 0.0), (0.0, 0.0), 5.0),
            (3, (30.0, 0.0), (30.0, 0.0), 1.0),
            (20, (10.0, 0.0), (10.0, 0.0), 5.0),
        ]
    )
    classified = _classified(track)
    assert len(make_res_patch(classified, rest_indep_lim=8)) == 2
    assert len(make_res_patch(classified, rest_indep_lim=12)) == 1


def test_distant_or_late_patches_stay_apart():
    track = make_track(
        [
            (20, (0.0, 0.0), (0.0, 0.0), 5.0),
            (3, (30.0, 0.0), (30.0, 0.0), 1.0),
            (20, (10.0, 0.0), (10.0, 0.0), 5.0),
        ]
    )
    classified = _classified(track)
    assert len(make_res_patch(classified, spat_indep_lim=5)) == 2
    assert len(make_res_patch(classified, temp_indep_lim=0.1)) == 2


def test_undersized_patches_discarded():
    track = make_track(
        [
            (20, (0.0, 0.0), (0.0, 0.0), 5.0),
            (5, (100.0, 0.0), (4900.0, 0.0), 0.5),
            (2, (5000.0, 0.0), (5000.0, 0.0), 5.0),
            (5, (5100.0, 0.0), (9900.0, 0.0), 0.5),
            (10, (10000.0, 0.0), (10000.0, 0.0), 5.0),
        ]
    )
    table = make_res_patch(_classified(track), min_fixes=3)
    assert [p.nfixes for p in table.patches] == [20, 10]
    assert [p.patch for p in table.patches] == [1, 2]


def test_tide_limits_window(three_stop_track):
    table = make_res_patch(_classified(three_stop_track), tide_limits=(4.5, 9.0))
    assert len(table) == 1
    assert table.patches[0].x_mean == pytest.approx(1000.0, abs=1.0)


def test_patches_numbered_per_tide(three_stop_track):
    track = three_stop_track.assign(tide_number=np.where(np.arange(len(three_stop_track)) < 30, 1, 2))
    table = make_res_patch(_classified(track))
    assert [(p.tide_number, p.patch) for p in table.patches] == [(1, 1), (2, 1), (2, 2)]
    assert math.isnan(table.patches[1].dist_bw_patch)


def test_inferred_fixes_mark_patch_type():
    track = make_track([(10, (0.0, 0.0), (0.0, 0.0), 5.0)])
    later = make_track([(10, (5.0, 0.0), (5.0, 0.0), 5.0)], start=track["time"].iloc[-1] + 45 * 60, seed=2)
    table = make_res_patch(_classified(pd.concat([track, later], ignore_index=True)))
    assert len(table) == 1
    assert table.patches[0].type == "mixed"
    assert table.patches[0].nfixes == 21


def test_deterministic(three_stop_track):
    classified = _classified(three_stop_track)
    first = get_patch_data(make_res_patch(classified), "summary")
    second = get_patch_data(make_res_patch(classified), "summary")
    pd.testing.assert_frame_equal(first, second)


def test_input_not_mutated(three_stop_track):
    classified = _classified(three_stop_track)
    before = classified.copy()
    make_res_patch(classified)
    pd.testing.assert_frame_equal(classified, before)


def test_missing_label_column(three_stop_track):
    with pytest.raises(SchemaError):
        make_res_patch(three_stop_track)


def test_independence_rules():
    track = make_track([(10, (0.0, 0.0), (0.0, 0.0), 4.0), (10, (50.0, 0.0), (50.0, 0.0), 4.0)])
    a = summarise_patch(track, range(10), buffer_size=10)
    b = summarise_patch(track, range(10, 20), buffer_size=10)
    assert not is_independent(a, b, spat_indep_lim=100, temp_indep_lim=30)
    assert is_independent(a, b, spat_indep_lim=40, temp_indep_lim=30)
    assert is_independent(a, b, spat_indep_lim=100, temp_indep_lim=0.1)
    assert is_independent(a, b, spat_indep_lim=100, temp_indep_lim=30, rest_indep_lim=8)
    assert not is_independent(a, b, spat_indep_lim=100, temp_indep_lim=30, rest_indep_lim=8.5)


def test_segmented_travel_keeps_patches_apart():
    track = make_track(
        [
            (20, (0.0, 0.0), (0.0, 0.0), 5.0),
            (6, (30.0, 0.0), (30.0, 0.0), 1.0),
            (20, (10.0, 0.0), (10.0, 0.0), 5.0),
        ]
    )
    assert len(make_res_patch(classify_points(track))) == 1
    assert len(make_res_patch(classify_points(track, travel_seg=6))) == 1
    split = make_res_patch(classify_points(track, travel_seg=3))
    assert [p.nfixes for p in split.patches] == [20, 20]
