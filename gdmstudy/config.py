"""
Configuration management for the gdmstudy pipeline.
Loads and validates configuration from YAML files.
"""

import copy
from pathlib import Path

import yaml

from .errors import InvalidArgument
from .io.paths import CONFIG_DIR
from .schema import FEMALE, MALE


SEXES = (MALE, FEMALE)
GLUCOSE_FIELDS = ("glucose_baseline", "glucose_one_hour")
OUTPUT_FORMATS = ("parquet", "csv")

DEFAULT_DATA_GEN_CONFIG = {
    "dataset": {
        "n_subjects": 2000,
    },
    "processing": {
        "seed": 42,
    },
    "subject": {
        # Uniform draw over [age_min, age_max), truncated to an integer
        "age_min": 18,
        "age_max": 36,
    },
    "glucose": {
        "glucose_baseline": {
            "Male": {"mean": 85.0, "sd": 6.0},
            "Female": {"mean": 80.0, "sd": 6.0},
        },
        "glucose_one_hour": {
            "Male": {"mean": 165.0, "sd": 9.0},
            "Female": {"mean": 155.0, "sd": 9.0},
        },
    },
    "output": {
        "directory": "output",
        "format": "parquet",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_data_gen_config(config=None) -> dict:
    """Merge a (possibly partial) config over the defaults and validate it."""
    return validate_data_gen_config(_deep_merge(DEFAULT_DATA_GEN_CONFIG, config or {}))


def _section(mapping: dict, name: str) -> dict:
    section = mapping.get(name)
    if not isinstance(section, dict):
        raise InvalidArgument(f"Config section '{name}' must be a mapping, got {section!r}")
    return section


def _number(value, name: str):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument(f"{name} must be a number, got {value!r}")
    return value


def validate_data_gen_config(config: dict) -> dict:
    """Check the values the generator relies on; return the config unchanged."""
    if not isinstance(config, dict):
        raise InvalidArgument(f"Config must be a mapping, got {config!r}")
    for name in ("dataset", "processing", "output"):
        _section(config, name)

    subject = _section(config, "subject")
    age_min = _number(subject.get("age_min"), "subject.age_min")
    age_max = _number(subject.get("age_max"), "subject.age_max")
    if not age_min < age_max:
        raise InvalidArgument(f"age_min ({age_min}) must be below age_max ({age_max})")

    glucose = _section(config, "glucose")
    for field in GLUCOSE_FIELDS:
        params = _section(glucose, field)
        for sex in SEXES:
            if sex not in params:
                raise InvalidArgument(f"Missing '{sex}' parameters for '{field}'")
            sex_params = _section(params, sex)
            _number(sex_params.get("mean"), f"glucose.{field}.{sex}.mean")
            if _number(sex_params.get("sd"), f"glucose.{field}.{sex}.sd") <= 0:
                raise InvalidArgument(f"Standard deviation for {field}/{sex} must be positive")

    fmt = config["output"].get("format")
    if fmt not in OUTPUT_FORMATS:
        raise InvalidArgument(f"Unknown output format '{fmt}', expected one of {OUTPUT_FORMATS}")
    return config


class ConfigLoader:
    """Loads YAML configuration files into dicts."""

    def __init__(self, config_dir=CONFIG_DIR):
        self.config_dir = Path(config_dir)

    def load_yaml(self, filename):
        filepath = Path(filename)
        # Bare file names resolve against the config directory
        if not filepath.is_absolute() and filepath.parent == Path("."):
            if not self.config_dir.exists():
                raise FileNotFoundError(f"Configuration directory {self.config_dir} does not exist")
            filepath = self.config_dir / filepath
        if not filepath.exists():
            raise FileNotFoundError(f"Configuration file {filepath} does not exist")
        with open(filepath, "r") as f:
            return yaml.safe_load(f) or {}

    def load_data_gen_config(self, filename="data_gen.yaml") -> dict:
        return resolve_data_gen_config(self.load_yaml(filename))


def load_config(config_type: str, filename=None, config_dir=CONFIG_DIR):
    loader = ConfigLoader(config_dir)
    if config_type == "data_gen":
        return loader.load_data_gen_config(filename or "data_gen.yaml")
    else:
        raise ValueError(f"Unknown config type: {config_type}")
