"""
Synthetic data generation module for the gestational diabetes cohort.

Generates one row per subject: maternal age, infant sex, baseline and
one-hour glucose drawn from sex-dependent normal distributions, and the
diagnosis derived from the two glucose values.

Random stream order
-------------------
A single ``numpy.random.Generator`` (PCG64) is seeded from ``seed``. For
each subject 1..n, exactly four scalar draws are consumed in this order:

1. age            ``uniform(age_min, age_max)``, truncated toward zero
2. infant sex     ``binomial(1, 0.5)``, 1 -> Male, 0 -> Female
3. baseline       ``normal(mean, sd)`` for the subject's sex
4. one-hour       ``normal(mean, sd)`` for the subject's sex

The same (seed, n, config) therefore reproduces identical output.
"""

import sys
import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
from tqdm import tqdm

from .aggregate import to_long_form
from .config import GLUCOSE_FIELDS, load_config, resolve_data_gen_config
from .errors import InvalidArgument
from .io.paths import ensure_dir, get_long_form_path, get_subjects_path
from .schema import FEMALE, GESTATIONAL_DIABETES, MALE, SUBJECT_COLUMNS, diagnose
from .tracking import tracker_run

logger = logging.getLogger(__name__)


def _check_int(name: str, value) -> int:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
        raise InvalidArgument(f"{name} must be an integer, got {type(value).__name__}")
    return int(value)


class SyntheticDataGenerator:
    """Generates synthetic per-subject screening data."""

    def __init__(self, config=None, progress=False):
        self.config = resolve_data_gen_config(config)
        self.progress = progress

        subject = self.config["subject"]
        self.age_min = float(subject["age_min"])
        self.age_max = float(subject["age_max"])

        # {field: {sex: (mean, sd)}}
        self.glucose_params = {
            field: {
                sex: (float(p["mean"]), float(p["sd"]))
                for sex, p in self.config["glucose"][field].items()
            }
            for field in GLUCOSE_FIELDS
        }

    @staticmethod
    def _create_subject_schema():
        """Create PyArrow schema for the subject table."""
        return pa.schema([
            pa.field("subject_id", pa.int32()),
            pa.field("age", pa.int32()),
            pa.field("infant_sex", pa.string()),
            pa.field("glucose_baseline", pa.float64()),
            pa.field("glucose_one_hour", pa.float64()),
            pa.field("diagnosis", pa.string()),
        ])

    @staticmethod
    def _create_long_form_schema():
        """Create PyArrow schema for the long-form table."""
        return pa.schema([
            pa.field("subject_id", pa.int32()),
            pa.field("age", pa.int32()),
            pa.field("infant_sex", pa.string()),
            pa.field("diagnosis", pa.string()),
            pa.field("timepoint", pa.string()),
            pa.field("glucose", pa.float64()),
        ])

    def _generate_subject(self, rng, subject_id):
        """Draw one subject; consumes age, sex, baseline, one-hour in that order."""
        age = int(np.trunc(rng.uniform(self.age_min, self.age_max)))
        infant_sex = MALE if rng.binomial(1, 0.5) == 1 else FEMALE

        glucose = {}
        for field in GLUCOSE_FIELDS:
            mean, sd = self.glucose_params[field][infant_sex]
            glucose[field] = float(rng.normal(mean, sd))

        return {
            "subject_id": subject_id,
            "age": age,
            "infant_sex": infant_sex,
            "glucose_baseline": glucose["glucose_baseline"],
            "glucose_one_hour": glucose["glucose_one_hour"],
            "diagnosis": diagnose(glucose["glucose_baseline"], glucose["glucose_one_hour"]),
        }

    def _iter_subjects(self, seed, n):
        rng = np.random.default_rng(seed)
        for subject_id in range(1, n + 1):
            yield self._generate_subject(rng, subject_id)

    def generate(self, seed=None, n=None) -> pd.DataFrame:
        """Generate ``n`` subjects from ``seed`` (defaults come from the config)."""
        seed = _check_int("seed", self.config["processing"]["seed"] if seed is None else seed)
        n = _check_int("n", self.config["dataset"]["n_subjects"] if n is None else n)
        if n <= 0:
            raise InvalidArgument(f"n must be positive, got {n}")
        if seed < 0:
            raise InvalidArgument(f"seed must be non-negative, got {seed}")

        rows = list(tqdm(
            self._iter_subjects(seed, n),
            total=n,
            desc="Generating subjects",
            unit="rows",
            ncols=80,
            ascii=True,
            file=sys.stdout,
            disable=not self.progress,
        ))
        subjects = pd.DataFrame(rows, columns=SUBJECT_COLUMNS)

        gdm_rate = (subjects["diagnosis"] == GESTATIONAL_DIABETES).mean()
        logger.info("Generated %d subjects (seed=%d), Gestational Diabetes rate %.1f%%",
                    n, seed, gdm_rate * 100)
        return subjects

    def write_dataset(self, subjects: pd.DataFrame, out_dir, fmt=None) -> dict:
        """Write the subject table and its long form; return the written paths."""
        fmt = fmt or self.config["output"]["format"]
        out_dir = ensure_dir(Path(out_dir))
        long_form = to_long_form(subjects)

        paths = {
            "subjects": get_subjects_path(out_dir, fmt),
            "long_form": get_long_form_path(out_dir, fmt),
        }
        if fmt == "parquet":
            pq.write_table(
                pa.Table.from_pandas(subjects, schema=self._create_subject_schema(), preserve_index=False),
                paths["subjects"],
            )
            pq.write_table(
                pa.Table.from_pandas(long_form, schema=self._create_long_form_schema(), preserve_index=False),
                paths["long_form"],
            )
        elif fmt == "csv":
            subjects.to_csv(paths["subjects"], index=False)
            long_form.to_csv(paths["long_form"], index=False)
        else:
            raise InvalidArgument(f"Unknown output format '{fmt}'")

        logger.info("Wrote %d subjects and %d long-form rows to %s", len(subjects), len(long_form), out_dir)
        return paths


def generate(seed: int, n: int, config=None) -> pd.DataFrame:
    """Generate ``n`` synthetic subjects deterministically from ``seed``."""
    return SyntheticDataGenerator(config).generate(seed=seed, n=n)


def generate_dataset(
    config_file=None,
    n_subjects=None,
    seed=None,
    out=None,
    fmt=None,
    progress=True,
) -> dict:
    """
    Generate the cohort and write it to disk.

    Loads the configuration (built-in defaults when ``config_file`` is None),
    applies any overrides, writes ``subjects`` and ``subjects_long`` tables and
    records the run in ``run_log.json`` next to them.

    Example:
        python cli.py data-gen --config config/data_gen.yaml --n-subjects 5000 --format csv
    """
    config = load_config("data_gen", config_file) if config_file else resolve_data_gen_config()

    # Override config values if provided as command line arguments
    if n_subjects is not None:
        config['dataset']['n_subjects'] = n_subjects
    if seed is not None:
        config['processing']['seed'] = seed
    if out is not None:
        config['output']['directory'] = out
    if fmt is not None:
        config['output']['format'] = fmt
    config = resolve_data_gen_config(config)

    out_dir = ensure_dir(Path(config['output']['directory']))
    params = {
        "seed": config['processing']['seed'],
        "n_subjects": config['dataset']['n_subjects'],
        "format": config['output']['format'],
    }

    with tracker_run("data_gen", params, log_dir=out_dir) as run:
        generator = SyntheticDataGenerator(config, progress=progress)
        subjects = generator.generate()
        paths = generator.write_dataset(subjects, out_dir)
        run["log"]({
            "rows": len(subjects),
            "gestational_diabetes_rate": (subjects["diagnosis"] == GESTATIONAL_DIABETES).mean(),
        })

    tqdm.write(f"Data generation complete! {len(subjects):,} subjects written to {out_dir.absolute()}")
    return paths
