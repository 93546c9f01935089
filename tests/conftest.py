"""Shared synthetic trajectories for the residence patch tests."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
import pytest

T0 = 1_600_000_000.0

Segment = Tuple[int, Tuple[float, float], Tuple[float, float], float]


def make_track(
    segments: Sequence[Segment],
    start: float = T0,
    step: float = 10.0,
    ident: int = 435,
    tide_number: int = 1,
    noise: float = 0.5,
    seed: int = 1,
) -> pd.DataFrame:
    """
    Build a residence-annotated track from ``(n, start_xy, end_xy, resTime)``
    segments sampled every ``step`` seconds.
    """

    rng = np.random.default_rng(seed)
    rows: List[dict] = []
    t = start
    for n, (x0, y0), (x1, y1), res_time in segments:
        for frac in np.linspace(0.0, 1.0, n):
            rows.append(
                {
                    "id": ident,
                    "time": t,
                    "x": x0 + (x1 - x0) * frac + rng.normal(0.0, noise),
                    "y": y0 + (y1 - y0) * frac + rng.normal(0.0, noise),
                    "resTime": res_time,
                }
            )
            t += step
    df = pd.DataFrame(rows)
    df["ts"] = pd.to_datetime(df["time"], unit="s", utc=True)
    df["tide_number"] = tide_number
    df["tidaltime"] = (df["time"] - start) / 60.0
    df["waterlevel"] = 120.0
    return df


def set_tides(track: pd.DataFrame, boundaries: Sequence[int]) -> pd.DataFrame:
    """Assign tide numbers 1, 2, ... starting a new cycle at each row position in ``boundaries``."""

    tide = np.ones(len(track), dtype=int)
    for boundary in boundaries:
        tide[boundary:] += 1
    track = track.assign(tide_number=tide)
    start = track.groupby("tide_number")["time"].transform("min")
    return track.assign(tidaltime=(track["time"] - start) / 60.0)


THREE_STOPS: List[Segment] = [
    (20, (0.0, 0.0), (0.0, 0.0), 5.0),
    (10, (50.0, 0.0), (950.0, 0.0), 0.5),
    (20, (1000.0, 0.0), (1000.0, 0.0), 5.0),
    (10, (1050.0, 50.0), (1950.0, 450.0), 0.5),
    (15, (2000.0, 500.0), (2000.0, 500.0), 5.0),
]


@pytest.fixture
def three_stop_track() -> pd.DataFrame:
    return make_track(THREE_STOPS)


@pytest.fixture
def raw_fixes() -> pd.DataFrame:
    """Raw fixes of one tag, sampled every 3 s along a slow straight walk."""

    n = 60
    rng = np.random.default_rng(7)
    return pd.DataFrame(
        {
            "TAG": 31001000435,
            "TIME": (T0 + np.arange(n) * 3.0) * 1e3,
            "X": 650000.0 + np.arange(n) * 1.0 + rng.normal(0.0, 0.2, n),
            "Y": 5900000.0 + rng.normal(0.0, 0.2, n),
            "SD": 10.0,
            "NBS": 4,
            "VARX": 20.0,
            "VARY": 25.0,
            "COVXY": 5.0,
        }
    )


@pytest.fixture
def tide_table() -> pd.DataFrame:
    """High tides one hour before the raw fixes start and 90 s into them."""

    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime([T0 - 3600.0, T0 + 90.0], unit="s", utc=True),
            "waterlevel": [110.0, 95.0],
            "tide_number": [1, 2],
        }
    )
