"""
Aggregation of the generated cohort.

Reshapes the per-subject table into long form (one row per glucose
measurement) and computes grouped sample means and standard deviations,
including the final wide summary table keyed by diagnosis and infant sex.
All functions are pure and leave their inputs untouched.
"""

import logging
from typing import Iterable, List, Sequence, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel

from .errors import EmptyInput, InvalidArgument, UndefinedStatistic
from .schema import (
    FEMALE,
    GESTATIONAL_DIABETES,
    HEALTHY,
    LONG_FORM_COLUMNS,
    MALE,
    SUBJECT_COLUMNS,
    TIMEPOINTS,
)

logger = logging.getLogger(__name__)


WIDE_TABLE_ORDER = [
    (HEALTHY, FEMALE),
    (GESTATIONAL_DIABETES, FEMALE),
    (HEALTHY, MALE),
    (GESTATIONAL_DIABETES, MALE),
]
WIDE_TABLE_COLUMNS = [
    "group",
    "diagnosis",
    "infant_sex",
    "n",
    "age_mean",
    "glucose_baseline_mean",
    "glucose_baseline_sd",
    "glucose_one_hour_mean",
    "glucose_one_hour_sd",
]

Records = Union[pd.DataFrame, Sequence[dict], Sequence[BaseModel]]


def _as_frame(records: Records) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        return records
    rows = [r.model_dump() if isinstance(r, BaseModel) else dict(r) for r in records]
    return pd.DataFrame(rows)


def _require_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise InvalidArgument(f"Missing required columns: {missing}")


def to_long_form(subjects: Records) -> pd.DataFrame:
    """
    Expand each subject into a Baseline row followed by a OneHour row.

    Output order follows input order; the result has exactly twice as many
    rows as the input.
    """
    subjects = _as_frame(subjects)
    _require_columns(subjects, SUBJECT_COLUMNS)

    n = len(subjects)
    positions = np.repeat(np.arange(n), len(TIMEPOINTS))
    long_form = subjects.iloc[positions][["subject_id", "age", "infant_sex", "diagnosis"]]
    long_form = long_form.reset_index(drop=True)

    # Row-major ravel interleaves baseline and one-hour values per subject
    glucose = subjects[["glucose_baseline", "glucose_one_hour"]].to_numpy(dtype=float).ravel()
    long_form["timepoint"] = np.tile(TIMEPOINTS, n)
    long_form["glucose"] = glucose
    return long_form[LONG_FORM_COLUMNS]


def summarize_by_group(
    records: Records,
    group_keys: Union[str, Sequence[str]],
    value_columns: Union[str, Sequence[str]] = ("glucose",),
) -> pd.DataFrame:
    """
    Group size, sample mean and sample standard deviation per group.

    One row per distinct combination of ``group_keys`` present in the input,
    sorted by key. For each value column the result carries ``<col>_mean``
    and ``<col>_sd`` (divisor n-1).

    Raises:
        EmptyInput: ``records`` holds no rows.
        UndefinedStatistic: some group has a single member.
        InvalidArgument: unknown or non-numeric columns, missing values
            in a key or value column, or no group keys.
    """
    frame = _as_frame(records)
    if frame.empty:
        raise EmptyInput("Cannot summarize an empty set of records")

    keys: List[str] = [group_keys] if isinstance(group_keys, str) else list(group_keys)
    values: List[str] = [value_columns] if isinstance(value_columns, str) else list(value_columns)
    if not keys:
        raise InvalidArgument("At least one group key is required")
    if not values:
        raise InvalidArgument("At least one value column is required")
    _require_columns(frame, keys + values)
    for col in values:
        if not pd.api.types.is_numeric_dtype(frame[col]):
            raise InvalidArgument(f"Column '{col}' is not numeric")
    # groupby drops NaN keys and mean/std skip NaN values
    missing = [col for col in keys + values if frame[col].isna().any()]
    if missing:
        raise InvalidArgument(f"Columns {missing} contain missing values")

    grouped = frame.groupby(keys, sort=True, observed=True)
    sizes = grouped.size()
    singletons = sizes[sizes == 1]
    if not singletons.empty:
        raise UndefinedStatistic(singletons.index[0], values[0])

    means = grouped[values].mean()
    sds = grouped[values].std(ddof=1)

    summary = pd.DataFrame({"n": sizes})
    for col in values:
        summary[f"{col}_mean"] = means[col]
        summary[f"{col}_sd"] = sds[col]
    summary = summary.reset_index()
    logger.debug("Summarized %d records into %d groups by %s", len(frame), len(summary), keys)
    return summary


def build_wide_summary_table(subjects: Records) -> pd.DataFrame:
    """
    Final summary table keyed by diagnosis and infant sex.

    Rows follow the fixed order Healthy Female, Gestational Diabetes Female,
    Healthy Male, Gestational Diabetes Male. Groups absent from the data are
    omitted.
    """
    keys = ["diagnosis", "infant_sex"]
    summary = summarize_by_group(
        subjects, keys, ["age", "glucose_baseline", "glucose_one_hour"]
    )

    indexed = summary.set_index(keys)
    present = [k for k in WIDE_TABLE_ORDER if k in indexed.index]
    table = indexed.loc[present].reset_index()
    table["group"] = table["diagnosis"] + " " + table["infant_sex"]
    return table[WIDE_TABLE_COLUMNS].reset_index(drop=True)


def summarize_baseline_by_sex_and_diagnosis(subjects: Records) -> pd.DataFrame:
    """Baseline glucose summary per (infant_sex, diagnosis)."""
    return summarize_by_group(subjects, ["infant_sex", "diagnosis"], ["glucose_baseline"])


def summarize_by_timepoint(long_form: Records) -> pd.DataFrame:
    """Glucose summary per timepoint, Baseline first."""
    summary = summarize_by_group(long_form, ["timepoint"], ["glucose"])
    order = {tp: i for i, tp in enumerate(TIMEPOINTS)}
    return summary.sort_values("timepoint", key=lambda s: s.map(order)).reset_index(drop=True)


def diagnosis_counts(subjects: Records) -> pd.DataFrame:
    """Subject counts per diagnosis and infant sex, in wide-table order."""
    frame = _as_frame(subjects)
    _require_columns(frame, ["diagnosis", "infant_sex"])
    counts = frame.groupby(["diagnosis", "infant_sex"], observed=True).size()
    present = [k for k in WIDE_TABLE_ORDER if k in counts.index]
    return counts.loc[present].rename("n").reset_index()
