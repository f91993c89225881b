"""
Path management utilities for the gdmstudy pipeline.
Provides consistent paths for configuration, generated data and summaries.
"""

from pathlib import Path


# Base project directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Configuration
CONFIG_DIR = PROJECT_ROOT / "config"

SUBJECTS_STEM = "subjects"
LONG_FORM_STEM = "subjects_long"
RUN_LOG_NAME = "run_log.json"


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, create if it doesn't."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_subjects_path(out_dir, fmt: str = "parquet") -> Path:
    """Get path for the per-subject table."""
    return Path(out_dir) / f"{SUBJECTS_STEM}.{fmt}"


def get_long_form_path(out_dir, fmt: str = "parquet") -> Path:
    """Get path for the long-form (one row per measurement) table."""
    return Path(out_dir) / f"{LONG_FORM_STEM}.{fmt}"


def get_summary_path(out_dir, name: str) -> Path:
    """Get path for a summary CSV."""
    return Path(out_dir) / f"{name}.csv"


def get_run_log_path(out_dir) -> Path:
    """Get path for the JSON run log."""
    return Path(out_dir) / RUN_LOG_NAME
