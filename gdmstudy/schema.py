"""
Record schemas for the generated cohort and its summaries.

Frames are the working representation; the pydantic models here give
consumers typed, immutable rows and enforce the record invariants.
"""

from typing import List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator


MALE = "Male"
FEMALE = "Female"

HEALTHY = "Healthy"
GESTATIONAL_DIABETES = "Gestational Diabetes"

BASELINE = "Baseline"
ONE_HOUR = "OneHour"
TIMEPOINTS = (BASELINE, ONE_HOUR)

# Diagnostic thresholds (mg/dL), exceeded strictly
BASELINE_THRESHOLD = 95.0
ONE_HOUR_THRESHOLD = 180.0

SUBJECT_COLUMNS = [
    "subject_id",
    "age",
    "infant_sex",
    "glucose_baseline",
    "glucose_one_hour",
    "diagnosis",
]
LONG_FORM_COLUMNS = [
    "subject_id",
    "age",
    "infant_sex",
    "diagnosis",
    "timepoint",
    "glucose",
]


def diagnose(glucose_baseline: float, glucose_one_hour: float) -> str:
    """Diagnosis label implied by the two glucose measurements."""
    if glucose_baseline > BASELINE_THRESHOLD or glucose_one_hour > ONE_HOUR_THRESHOLD:
        return GESTATIONAL_DIABETES
    return HEALTHY


class Subject(BaseModel):
    """Schema for a single synthetic subject."""
    model_config = ConfigDict(frozen=True)

    subject_id: int = Field(..., ge=1, description="1-based generation index")
    age: int = Field(..., ge=0, description="Maternal age in whole years")
    infant_sex: Literal["Male", "Female"] = Field(..., description="Infant sex")
    glucose_baseline: float = Field(..., description="Fasting glucose (Glucose1)")
    glucose_one_hour: float = Field(..., description="One-hour post-load glucose (Glucose2)")
    diagnosis: Literal["Healthy", "Gestational Diabetes"] = Field(..., description="Derived diagnosis")

    @model_validator(mode="after")
    def check_diagnosis(self):
        expected = diagnose(self.glucose_baseline, self.glucose_one_hour)
        if self.diagnosis != expected:
            raise ValueError(
                f"diagnosis '{self.diagnosis}' does not match glucose values (expected '{expected}')"
            )
        return self


class LongFormRecord(BaseModel):
    """Schema for one glucose measurement of one subject."""
    model_config = ConfigDict(frozen=True)

    subject_id: int = Field(..., ge=1)
    age: int = Field(..., ge=0)
    infant_sex: Literal["Male", "Female"]
    diagnosis: Literal["Healthy", "Gestational Diabetes"]
    timepoint: Literal["Baseline", "OneHour"]
    glucose: float


class GroupSummary(BaseModel):
    """Schema for one group of a grouped summary."""
    model_config = ConfigDict(frozen=True)

    key: dict = Field(..., description="Group key columns and their values")
    n: int = Field(..., ge=2, description="Group size")
    means: dict = Field(default_factory=dict, description="Sample mean per field")
    sds: dict = Field(default_factory=dict, description="Sample standard deviation per field")
    label: Optional[str] = Field(None, description="Display label, when the summary has one")


def to_records(frame: pd.DataFrame, model=Subject) -> List[BaseModel]:
    """Validate every row of a subject or long-form frame into models."""
    return [model(**row) for row in frame.to_dict(orient="records")]


def summary_records(summary: pd.DataFrame, group_keys) -> List[GroupSummary]:
    """Convert a grouped summary frame into GroupSummary models."""
    group_keys = list(group_keys)
    records = []
    for row in summary.to_dict(orient="records"):
        means = {c[: -len("_mean")]: float(v) for c, v in row.items() if c.endswith("_mean")}
        sds = {c[: -len("_sd")]: float(v) for c, v in row.items() if c.endswith("_sd")}
        records.append(GroupSummary(
            key={k: row[k] for k in group_keys},
            n=int(row["n"]),
            means=means,
            sds=sds,
            label=row.get("group"),
        ))
    return records
