"""Process-wide engine lifecycle."""

import logging, threading


# ORT severities: 0 verbose, 1 info, 2 warning, 3 error, 4 fatal.
DEFAULT_LOG_SEVERITY = 3

log = logging.getLogger(__name__)
_lock = threading.Lock()
_initialized = False


def is_initialized() -> bool:
    """Return whether the engine runtime has been initialized in this process."""
    return _initialized


def initialize(log_severity: int = DEFAULT_LOG_SEVERITY) -> None:
    """Initialize the ONNX Runtime environment once per process.

    Later calls are no-ops until `teardown` runs.
    """
    global _initialized
    assert 0 <= log_severity <= 4, f"log_severity must be within 0..4; got {log_severity}"
    with _lock:
        if _initialized:
            return
        import onnxruntime as ort

        ort.set_default_logger_severity(log_severity)
        _initialized = True
        log.debug(f"initialized onnxruntime {ort.__version__} with log_severity={log_severity}")


def ensure_initialized() -> None:
    """Lazily initialize the runtime on first backend use."""
    if not _initialized:
        initialize()


def teardown() -> None:
    """Reset the process-wide runtime state so the next use re-initializes."""
    global _initialized
    with _lock:
        if not _initialized:
            return
        _initialized = False
        log.debug("engine runtime torn down")
