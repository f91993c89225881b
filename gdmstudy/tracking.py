import json
import time
from pathlib import Path
from contextlib import contextmanager

from .io.paths import ensure_dir, get_run_log_path


def _json_serializable(obj):
    """Convert numpy scalars to native Python types for JSON serialization."""
    if hasattr(obj, 'item'):
        return obj.item()
    return obj


@contextmanager
def tracker_run(run_name: str, params: dict = None, log_dir="output"):
    """Context manager recording a pipeline run to a local JSON log.

    Args:
        run_name: Name of the run
        params: Dictionary of parameters to log
        log_dir: Directory receiving run_log.json

    Yields:
        Dictionary with 'log' function for logging metrics
    """
    params = {k: _json_serializable(v) for k, v in (params or {}).items()}
    start = time.time()
    log_path = get_run_log_path(ensure_dir(Path(log_dir)))
    data = {"run_name": run_name, "params": params, "metrics": []}

    def _log(d):
        data["metrics"].append({k: _json_serializable(v) for k, v in d.items()})

    try:
        yield {"log": _log}
    finally:
        data["_runtime_sec"] = time.time() - start
        with open(log_path, "w") as f:
            json.dump(data, f, indent=2)
