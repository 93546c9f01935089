"""Exception and warning types raised by the pipeline stages."""

from __future__ import annotations

import logging
import warnings
from typing import Iterable

import pandas as pd


class SchemaError(ValueError):
    """Input is missing required fields or is otherwise malformed."""


class OrderingWarning(UserWarning):
    """Input was not ordered by time and has been re-sorted."""


class InvariantViolation(AssertionError):
    """A stage produced output that breaks a pipeline invariant."""


def require_columns(df: pd.DataFrame, columns: Iterable[str], stage: str) -> None:
    """Raise :class:`SchemaError` naming any of ``columns`` absent from ``df``."""

    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise SchemaError(f"{stage}: missing required columns: {missing}")


def sort_by_time(df: pd.DataFrame, column: str, stage: str) -> pd.DataFrame:
    """Return ``df`` ordered by ``column``, warning when a re-sort was needed."""

    if df[column].is_monotonic_increasing:
        return df
    message = f"{stage}: {column} not ordered, re-ordering"
    logging.warning(message)
    warnings.warn(message, OrderingWarning, stacklevel=3)
    return df.sort_values(column, kind="mergesort")


def check_time_order(df: pd.DataFrame, column: str, stage: str) -> None:
    """Raise :class:`InvariantViolation` unless ``column`` is non-decreasing."""

    if len(df) > 1 and not df[column].is_monotonic_increasing:
        raise InvariantViolation(f"{stage}: output is not ordered by {column}")
