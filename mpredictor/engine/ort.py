"""ONNX Runtime backends for mpredictor."""

import logging, math, sys, time
from abc import abstractmethod
from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort

from mpredictor.cache_paths import get_profile_prefix
from mpredictor.engine.base import ExecutionContext, InferenceBackend
from mpredictor.engine.providers import ProviderSpec, resolve_providers
from mpredictor.engine.runtime import DEFAULT_LOG_SEVERITY, ensure_initialized
from mpredictor.errors import UnsupportedBackend
from mpredictor.hardware import HardwareMode
from mpredictor.inputs import TaggedInput


CPU_MODES = frozenset(mode for mode in HardwareMode if mode.is_cpu)

# ORT tensor type strings mapped to numpy dtypes for input marshalling.
_ORT_INPUT_DTYPES = {
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
    "tensor(uint8)": np.uint8,
    "tensor(int8)": np.int8,
    "tensor(uint16)": np.uint16,
    "tensor(int16)": np.int16,
    "tensor(int32)": np.int32,
    "tensor(int64)": np.int64,
}

log = logging.getLogger(__name__)


def _qnn_backend_path(backend: str) -> str:
    """Return the platform library name of a QNN backend (Htp, Gpu, Cpu)."""
    if sys.platform == "win32":
        return f"Qnn{backend}.dll"
    return f"libQnn{backend}.so"


def _resolve_item_shape(dims: list[Any], item_size: int, tensor_name: str) -> tuple[int, ...]:
    """Resolve the per-item shape of an input tensor, filling at most one dynamic dim."""
    static = [d if isinstance(d, int) and d > 0 else None for d in dims]
    known = math.prod(d for d in static if d is not None)
    n_dynamic = static.count(None)
    if n_dynamic == 0:
        if known != item_size:
            raise ValueError(
                f"input {tensor_name} expects {known} values per item (shape {dims}); got {item_size}"
            )
        return tuple(static)
    if n_dynamic > 1:
        raise ValueError(f"input {tensor_name} has more than one dynamic non-batch dim: {dims}")
    if item_size % known != 0:
        raise ValueError(
            f"input {tensor_name} item size {item_size} is not divisible by static dims {dims}"
        )
    return tuple(d if d is not None else item_size // known for d in static)


class OrtBackend(InferenceBackend):
    """Shared ONNX Runtime plumbing for the named backends.

    Subclasses only choose execution providers per hardware mode.
    """

    def __init__(self, cache_dir: str | Path | None = None, logger=None):
        self.cache_dir = cache_dir
        self.log = logger or logging.getLogger(__name__)

    @abstractmethod
    def provider_specs(self, mode: HardwareMode) -> list[ProviderSpec]:
        """Return requested (provider, options) pairs for `mode`, CPU excluded."""

    def _session_options(self, context: ExecutionContext, verbose: bool, profile: bool) -> ort.SessionOptions:
        so = ort.SessionOptions()
        if context.mode.is_cpu:
            so.intra_op_num_threads = context.mode.cpu_threads
        so.log_severity_level = 0 if verbose else DEFAULT_LOG_SEVERITY
        if profile:
            so.enable_profiling = True
            so.profile_file_prefix = get_profile_prefix(context.model_fp, cache_dir=self.cache_dir).as_posix()
        return so

    def create(
        self,
        model_fp: Path,
        batch_size: int,
        mode: HardwareMode,
        verbose: bool = False,
        profile: bool = False,
    ) -> ExecutionContext:
        """Load an ORT session bound to `mode` and `batch_size`."""
        mode = HardwareMode.parse(mode)
        assert self.supports(mode), f"{self.name} does not support {mode.name}"
        assert batch_size >= 0, f"batch_size must be >= 0; got {batch_size}"
        ensure_initialized()

        context = ExecutionContext(
            backend_name=self.name,
            model_fp=Path(model_fp),
            mode=mode,
            batch_size=int(batch_size),
            options={"verbose": bool(verbose), "profile": bool(profile)},
        )
        so = self._session_options(context, verbose, profile)
        providers, provider_options = resolve_providers(self.provider_specs(mode), logger=self.log)

        start = time.perf_counter()
        self.log.debug(f"loading ORT session for {self.name} from\n    {context.model_fp}")
        context.session = ort.InferenceSession(
            context.model_fp.as_posix(),
            sess_options=so,
            providers=providers,
            provider_options=provider_options,
        )
        inputs = context.session.get_inputs()
        outputs = context.session.get_outputs()
        assert len(inputs) == 1, f"expected a single model input; got {[i.name for i in inputs]}"
        assert len(outputs) > 0, "model outputs are empty"
        self.log.info(
            f"created {self.name} context for '{context.model_fp.name}' in {time.perf_counter() - start:.3f}s "
            f"(mode={mode.name}, batch={batch_size}, providers={context.session.get_providers()})"
        )
        return context

    def _build_input(self, context: ExecutionContext, data: TaggedInput) -> tuple[str, np.ndarray]:
        """Shape and cast tagged input values to the model input tensor."""
        input_meta = context.session.get_inputs()[0]
        dims = list(input_meta.shape)
        assert len(dims) >= 1, f"input {input_meta.name} must have a batch dim; got {dims}"
        batch_dim = dims[0]
        if isinstance(batch_dim, int) and batch_dim > 0 and batch_dim != context.batch_size:
            raise ValueError(
                f"model input {input_meta.name} has fixed batch {batch_dim}; handle batch is {context.batch_size}"
            )

        values = data.values
        if values.size % context.batch_size != 0:
            raise ValueError(f"input has {values.size} values; not divisible by batch {context.batch_size}")
        item_shape = _resolve_item_shape(dims[1:], values.size // context.batch_size, input_meta.name)

        dtype = _ORT_INPUT_DTYPES.get(input_meta.type)
        if dtype is None:
            raise ValueError(f"unsupported model input type {input_meta.type} for {input_meta.name}")
        if np.issubdtype(dtype, np.integer):
            if not data.quantized:
                raise ValueError(f"model input {input_meta.name} is {input_meta.type}; use the quantized path")
            info = np.iinfo(dtype)
            values = np.clip(values, info.min, info.max)

        tensor = values.astype(dtype, copy=False).reshape((context.batch_size, *item_shape))
        return input_meta.name, tensor

    @staticmethod
    def _to_scores(output: np.ndarray) -> np.ndarray:
        """Flatten one output tensor into a float32 score buffer."""
        output = np.asarray(output)
        if output.dtype == np.uint8:
            scores = output.astype(np.float32) / 255.0
        else:
            scores = output.astype(np.float32, copy=False)
        scores = np.ascontiguousarray(scores).ravel()
        scores.flags.writeable = False
        return scores

    def predict(self, context: ExecutionContext, data: TaggedInput) -> None:
        """Run one forward pass and replace the context score buffer."""
        assert not context.released, "execution context already released"
        assert context.session is not None, "session must be loaded before inference"
        assert context.batch_size > 0, "batch_size must be > 0 for inference"

        start = time.perf_counter()
        input_name, tensor = self._build_input(context, data)
        output_name = context.session.get_outputs()[0].name
        outputs = context.session.run([output_name], {input_name: tensor})
        assert len(outputs) > 0, "model returned zero outputs"
        context.scores = self._to_scores(outputs[0])
        self.log.debug(
            f"{self.name} predict complete in {time.perf_counter() - start:.3f}s; "
            f"input_shape={tensor.shape}, scores={context.scores.size}"
        )

    def prediction_length(self, context: ExecutionContext) -> int:
        """Return per-item score length, from the last run or the static output shape."""
        if context.batch_size == 0 or context.session is None:
            return 0
        if context.scores is not None:
            return int(context.scores.size // context.batch_size)

        dims = list(context.session.get_outputs()[0].shape)[1:]
        if all(isinstance(d, int) and d > 0 for d in dims):
            return int(math.prod(dims))
        return 0

    def predictions(self, context: ExecutionContext) -> np.ndarray | None:
        """Return the read-only score buffer of the last forward pass."""
        return context.scores

    def destroy(self, context: ExecutionContext) -> None:
        """Drop the ORT session, flushing profiling output when enabled."""
        assert not context.released, "execution context already released"
        if context.options.get("profile") and context.session is not None:
            profile_fp = context.session.end_profiling()
            self.log.info(f"wrote {self.name} profile to\n    {profile_fp}")
        context.session = None
        context.scores = None
        context.released = True
        self.log.info(f"destroyed {self.name} context for '{context.model_fp.name}'")


class LocalDenseBackend(OrtBackend):
    """On-device dense engine: CPU threads, CUDA GPU, or Android NNAPI."""

    name = "Tensorflow Lite"
    supported_modes = CPU_MODES | {HardwareMode.GPU, HardwareMode.NNAPI}

    def provider_specs(self, mode: HardwareMode) -> list[ProviderSpec]:
        if mode == HardwareMode.GPU:
            return [("CUDAExecutionProvider", {})]
        if mode == HardwareMode.NNAPI:
            return [("NnapiExecutionProvider", {})]
        return []


class AcceleratedBackend(OrtBackend):
    """Accelerator-offload engine on Qualcomm QNN: Adreno GPU or Hexagon DSP."""

    name = "Qualcomm SNPE"
    supported_modes = CPU_MODES | {HardwareMode.GPU, HardwareMode.DSP}

    def provider_specs(self, mode: HardwareMode) -> list[ProviderSpec]:
        if mode == HardwareMode.GPU:
            return [("QNNExecutionProvider", {"backend_path": _qnn_backend_path("Gpu")})]
        if mode == HardwareMode.DSP:
            return [("QNNExecutionProvider", {"backend_path": _qnn_backend_path("Htp")})]
        return []


BACKEND_CLASSES = {
    LocalDenseBackend.name: LocalDenseBackend,
    AcceleratedBackend.name: AcceleratedBackend,
}
BACKEND_ALIASES = {
    "tensorflow lite": LocalDenseBackend.name,
    "tflite": LocalDenseBackend.name,
    "qualcomm snpe": AcceleratedBackend.name,
    "snpe": AcceleratedBackend.name,
}


def resolve_backend_name(backend_name: str) -> str:
    """Return the canonical backend identifier for a name or alias."""
    if not isinstance(backend_name, str) or not backend_name.strip():
        raise UnsupportedBackend(f"{backend_name!r} framework not supported")
    canonical = BACKEND_ALIASES.get(backend_name.strip().lower())
    if canonical is None:
        choices = ", ".join(BACKEND_CLASSES)
        raise UnsupportedBackend(f"{backend_name} framework not supported. choices: {choices}")
    return canonical


def get_backend(backend_name: str, cache_dir: str | Path | None = None, logger=None) -> OrtBackend:
    """Instantiate the backend registered under `backend_name`."""
    canonical = resolve_backend_name(backend_name)
    return BACKEND_CLASSES[canonical](cache_dir=cache_dir, logger=logger)
