"""Cache path helpers for engine artifacts."""

import logging
from pathlib import Path
from platformdirs import user_cache_dir


APP_NAME = "mpredictor"
APP_AUTHOR = "mpredictor"
log = logging.getLogger(__name__)


def get_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Return a writable cache directory and ensure it exists."""
    if cache_dir is not None:
        path = Path(cache_dir).expanduser().resolve()
    else:
        path = Path(user_cache_dir(APP_NAME, APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    assert path.exists(), f"failed to create cache directory: {path}"
    log.debug(f"resolved cache directory to\n    {path}")
    return path


def get_profile_prefix(model_fp: str | Path, cache_dir: str | Path | None = None) -> Path:
    """Return the ORT profiling file prefix for one model."""
    model_name = Path(model_fp).stem
    assert model_name, "model file name cannot be empty"

    # Profiles are grouped per model; ORT appends a timestamp and `.json`.
    profile_dir = get_cache_dir(cache_dir) / "profiles" / model_name
    profile_dir.mkdir(parents=True, exist_ok=True)
    prefix = profile_dir / "profile"
    log.debug(f"resolved profile prefix to\n    {prefix}")
    return prefix
