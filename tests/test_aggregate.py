#!/usr/bin/env python3
"""
Tests for long-form reshaping and grouped summaries.
"""

import sys
import pytest
import numpy as np
import pandas as pd
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gdmstudy import aggregate
from gdmstudy.data_gen import generate
from gdmstudy.errors import EmptyInput, InvalidArgument, UndefinedStatistic
from gdmstudy.schema import LONG_FORM_COLUMNS, diagnose


def make_subjects(rows):
    """Build a subject frame from (age, sex, baseline, one_hour) tuples."""
    return pd.DataFrame([
        {
            "subject_id": i,
            "age": age,
            "infant_sex": sex,
            "glucose_baseline": baseline,
            "glucose_one_hour": one_hour,
            "diagnosis": diagnose(baseline, one_hour),
        }
        for i, (age, sex, baseline, one_hour) in enumerate(rows, start=1)
    ])


@pytest.fixture(scope="module")
def cohort():
    return generate(42, 10000)


@pytest.fixture
def four_groups():
    # Deliberately shuffled so ordering comes from the aggregator
    return make_subjects([
        (30, "Male", 100.0, 170.0),
        (20, "Female", 80.0, 150.0),
        (22, "Male", 84.0, 160.0),
        (25, "Female", 97.0, 160.0),
        (32, "Male", 90.0, 190.0),
        (24, "Female", 82.0, 154.0),
        (26, "Male", 86.0, 162.0),
        (27, "Female", 85.0, 185.0),
    ])


class TestLongForm:
    """Reshaping subjects into one row per measurement."""

    def test_length_doubles(self, cohort):
        long_form = aggregate.to_long_form(cohort)
        assert len(long_form) == 2 * len(cohort)
        assert list(long_form.columns) == LONG_FORM_COLUMNS

    def test_pairs_share_subject(self, cohort):
        long_form = aggregate.to_long_form(cohort.iloc[:200])
        first = long_form.iloc[0::2].reset_index(drop=True)
        second = long_form.iloc[1::2].reset_index(drop=True)

        shared = ["subject_id", "age", "infant_sex", "diagnosis"]
        pd.testing.assert_frame_equal(first[shared], second[shared])
        assert (first["timepoint"] == "Baseline").all()
        assert (second["timepoint"] == "OneHour").all()

    def test_values_follow_input_order(self):
        subjects = make_subjects([(30, "Male", 90.0, 170.0), (20, "Female", 81.0, 150.0)])
        long_form = aggregate.to_long_form(subjects)

        assert long_form["subject_id"].tolist() == [1, 1, 2, 2]
        assert long_form["timepoint"].tolist() == ["Baseline", "OneHour", "Baseline", "OneHour"]
        assert long_form["glucose"].tolist() == [90.0, 170.0, 81.0, 150.0]

    def test_input_untouched(self, four_groups):
        before = four_groups.copy()
        aggregate.to_long_form(four_groups)
        pd.testing.assert_frame_equal(four_groups, before)

    def test_non_default_index(self, four_groups):
        shuffled = four_groups.iloc[::-1]
        long_form = aggregate.to_long_form(shuffled)
        assert long_form["subject_id"].tolist()[:2] == [8, 8]
        assert long_form.index.tolist() == list(range(16))

    def test_empty_subjects(self, four_groups):
        long_form = aggregate.to_long_form(four_groups.iloc[0:0])
        assert long_form.empty
        assert list(long_form.columns) == LONG_FORM_COLUMNS

    def test_missing_column_rejected(self, four_groups):
        with pytest.raises(InvalidArgument):
            aggregate.to_long_form(four_groups.drop(columns=["glucose_one_hour"]))


class TestSummarizeByGroup:
    """Grouped sample means and standard deviations."""

    def test_constant_group(self):
        records = [{"timepoint": "Baseline", "glucose": 80.0} for _ in range(3)]
        summary = aggregate.summarize_by_group(records, ["timepoint"])

        assert len(summary) == 1
        assert summary.loc[0, "n"] == 3
        assert summary.loc[0, "glucose_mean"] == 80.0
        assert summary.loc[0, "glucose_sd"] == 0.0

    def test_sample_sd_uses_n_minus_one(self):
        records = pd.DataFrame({"g": ["a"] * 4, "glucose": [1.0, 2.0, 3.0, 4.0]})
        summary = aggregate.summarize_by_group(records, "g")
        assert summary.loc[0, "glucose_mean"] == pytest.approx(2.5)
        assert summary.loc[0, "glucose_sd"] == pytest.approx(np.std([1, 2, 3, 4], ddof=1))

    def test_one_row_per_group(self, cohort):
        long_form = aggregate.to_long_form(cohort)
        summary = aggregate.summarize_by_group(long_form, ["infant_sex", "diagnosis"])
        assert len(summary) == 4
        assert summary["n"].sum() == len(long_form)
        assert not summary[["glucose_mean", "glucose_sd"]].isna().any().any()

    def test_matches_pandas(self, cohort):
        summary = aggregate.summarize_by_group(cohort, ["infant_sex"], ["glucose_baseline", "age"])
        expected = cohort.groupby("infant_sex")[["glucose_baseline", "age"]].agg(["mean", "std"])
        for _, row in summary.iterrows():
            sex = row["infant_sex"]
            assert row["glucose_baseline_mean"] == pytest.approx(expected.loc[sex, ("glucose_baseline", "mean")])
            assert row["glucose_baseline_sd"] == pytest.approx(expected.loc[sex, ("glucose_baseline", "std")])
            assert row["age_mean"] == pytest.approx(expected.loc[sex, ("age", "mean")])

    def test_empty_list_rejected(self):
        with pytest.raises(EmptyInput):
            aggregate.summarize_by_group([], ["timepoint"])

    def test_empty_frame_rejected(self, four_groups):
        with pytest.raises(EmptyInput):
            aggregate.summarize_by_group(four_groups.iloc[0:0], ["infant_sex"], ["glucose_baseline"])

    def test_singleton_group_signals(self):
        records = pd.DataFrame({
            "timepoint": ["Baseline", "Baseline", "OneHour"],
            "glucose": [80.0, 82.0, 150.0],
        })
        with pytest.raises(UndefinedStatistic) as excinfo:
            aggregate.summarize_by_group(records, ["timepoint"])
        assert excinfo.value.group == "OneHour"
        assert excinfo.value.column == "glucose"

    def test_singleton_multi_key_names_group(self, four_groups):
        subset = four_groups.iloc[:3]
        with pytest.raises(UndefinedStatistic) as excinfo:
            aggregate.summarize_by_group(subset, ["infant_sex", "diagnosis"], ["glucose_baseline"])
        assert isinstance(excinfo.value.group, tuple)

    def test_unknown_column_rejected(self, four_groups):
        with pytest.raises(InvalidArgument):
            aggregate.summarize_by_group(four_groups, ["timepoint"], ["glucose_baseline"])
        with pytest.raises(InvalidArgument):
            aggregate.summarize_by_group(four_groups, ["infant_sex"], ["glucose"])

    def test_no_group_keys_rejected(self, four_groups):
        with pytest.raises(InvalidArgument):
            aggregate.summarize_by_group(four_groups, [], ["glucose_baseline"])

    def test_non_numeric_value_rejected(self, four_groups):
        with pytest.raises(InvalidArgument):
            aggregate.summarize_by_group(four_groups, ["infant_sex"], ["diagnosis"])

    def test_missing_key_rejected(self):
        records = pd.DataFrame({
            "timepoint": ["Baseline", "Baseline", None, None],
            "glucose": [80.0, 82.0, 150.0, 152.0],
        })
        with pytest.raises(InvalidArgument):
            aggregate.summarize_by_group(records, ["timepoint"])

    def test_missing_value_rejected(self):
        records = pd.DataFrame({
            "timepoint": ["Baseline", "Baseline", "Baseline"],
            "glucose": [80.0, np.nan, 84.0],
        })
        with pytest.raises(InvalidArgument):
            aggregate.summarize_by_group(records, ["timepoint"])


class TestWideSummaryTable:
    """Final table keyed by diagnosis and infant sex."""

    def test_fixed_order(self, four_groups):
        table = aggregate.build_wide_summary_table(four_groups)
        assert table["group"].tolist() == [
            "Healthy Female",
            "Gestational Diabetes Female",
            "Healthy Male",
            "Gestational Diabetes Male",
        ]

    def test_values(self, four_groups):
        table = aggregate.build_wide_summary_table(four_groups).set_index("group")
        healthy_female = table.loc["Healthy Female"]
        assert healthy_female["n"] == 2
        assert healthy_female["age_mean"] == pytest.approx(22.0)
        assert healthy_female["glucose_baseline_mean"] == pytest.approx(81.0)
        assert healthy_female["glucose_baseline_sd"] == pytest.approx(np.std([80, 82], ddof=1))
        assert healthy_female["glucose_one_hour_mean"] == pytest.approx(152.0)
        assert healthy_female["glucose_one_hour_sd"] == pytest.approx(np.std([150, 154], ddof=1))

    def test_only_healthy_female(self):
        subjects = make_subjects([
            (20, "Female", 80.0, 150.0),
            (25, "Female", 82.0, 155.0),
            (30, "Female", 78.0, 160.0),
        ])
        table = aggregate.build_wide_summary_table(subjects)
        assert len(table) == 1
        assert table.loc[0, "group"] == "Healthy Female"
        assert table.loc[0, "n"] == 3

    def test_absent_groups_omitted(self, four_groups):
        males_only = four_groups[four_groups["infant_sex"] == "Male"]
        table = aggregate.build_wide_summary_table(males_only)
        assert table["group"].tolist() == ["Healthy Male", "Gestational Diabetes Male"]
        assert not table.isna().any().any()

    def test_columns(self, four_groups):
        table = aggregate.build_wide_summary_table(four_groups)
        assert list(table.columns) == aggregate.WIDE_TABLE_COLUMNS
        assert "age_sd" not in table.columns

    def test_generated_cohort(self, cohort):
        table = aggregate.build_wide_summary_table(cohort)
        assert len(table) == 4
        assert table["n"].sum() == len(cohort)

    def test_empty_rejected(self, four_groups):
        with pytest.raises(EmptyInput):
            aggregate.build_wide_summary_table(four_groups.iloc[0:0])

    def test_singleton_rejected(self, four_groups):
        with pytest.raises(UndefinedStatistic):
            aggregate.build_wide_summary_table(four_groups.iloc[:5])


class TestConvenienceViews:
    """Views built on summarize_by_group."""

    def test_timepoint_order(self, cohort):
        summary = aggregate.summarize_by_timepoint(aggregate.to_long_form(cohort))
        assert summary["timepoint"].tolist() == ["Baseline", "OneHour"]
        assert summary["n"].tolist() == [len(cohort), len(cohort)]
        assert summary.loc[0, "glucose_mean"] < summary.loc[1, "glucose_mean"]

    def test_baseline_by_sex_and_diagnosis(self, four_groups):
        summary = aggregate.summarize_baseline_by_sex_and_diagnosis(four_groups)
        assert list(summary.columns) == [
            "infant_sex", "diagnosis", "n", "glucose_baseline_mean", "glucose_baseline_sd",
        ]
        assert len(summary) == 4

    def test_diagnosis_counts(self, four_groups):
        counts = aggregate.diagnosis_counts(four_groups)
        assert counts["n"].tolist() == [2, 2, 2, 2]
        assert counts["diagnosis"].tolist()[0] == "Healthy"
        assert counts["infant_sex"].tolist()[0] == "Female"
