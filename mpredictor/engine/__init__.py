"""Engine package exports."""

from mpredictor.engine.base import ExecutionContext, InferenceBackend
from mpredictor.engine.ort import AcceleratedBackend, LocalDenseBackend, get_backend, resolve_backend_name
from mpredictor.engine.providers import get_onnxruntime_info
from mpredictor.engine.runtime import initialize, teardown


__all__ = [
    "AcceleratedBackend",
    "ExecutionContext",
    "InferenceBackend",
    "LocalDenseBackend",
    "get_backend",
    "get_onnxruntime_info",
    "initialize",
    "resolve_backend_name",
    "teardown",
]
