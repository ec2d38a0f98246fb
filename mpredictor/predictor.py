"""Predictor handle: the create / predict / read-results / close façade."""

import logging
from pathlib import Path

from mpredictor.engine.base import ExecutionContext, InferenceBackend
from mpredictor.engine.ort import get_backend, resolve_backend_name
from mpredictor.errors import (
    EmptyPredictions,
    EmptyPredictorContext,
    ModelNotFound,
    NullBatch,
    NullPredictionLength,
    UnsupportedHardwareMode,
)
from mpredictor.hardware import HardwareMode
from mpredictor.inputs import as_tagged_input
from mpredictor.integrity import check_model_integrity
from mpredictor.labels import load_labels
from mpredictor.ranking import DEFAULT_SEPARATOR, DEFAULT_TOP_K, RankedResult, rank_scores


log = logging.getLogger(__name__)


class PredictorHandle:
    """One loaded model bound to a backend, a hardware mode and a batch size.

    A handle owns exactly one execution context and is not reentrant: callers
    serialize access to a handle. Use it as a context manager to guarantee the
    context is released on every exit path.
    """

    def __init__(
        self,
        backend: InferenceBackend,
        context: ExecutionContext | None,
        mode: HardwareMode,
        batch_size: int,
        logger=None,
    ):
        self.backend = backend
        self.context = context
        self.mode = mode
        self.batch_size = batch_size
        self.log = logger or log

    @property
    def backend_name(self) -> str:
        return self.backend.name

    @property
    def closed(self) -> bool:
        return self.context is None

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"PredictorHandle(backend={self.backend_name!r}, mode={self.mode!r}, batch_size={self.batch_size}, {state})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _require_context(self) -> ExecutionContext:
        if self.context is None:
            raise EmptyPredictorContext("empty predictor context")
        return self.context

    def inc(self) -> None:
        """Diagnostic helper: bump mode and batch size by one.

        The mode stays a HardwareMode while the bumped value is one; past DSP
        it is left as a plain int. The loaded context keeps the batch size it was
        created with, so reading results afterwards raises ScoreLengthMismatch.
        """
        bumped = int(self.mode) + 1
        try:
            self.mode = HardwareMode(bumped)
        except ValueError:
            self.mode = bumped
        self.batch_size += 1
        self.log.debug(f"inc: mode={self.mode}, batch_size={self.batch_size}")

    def predict(self, data, quantized: bool = False) -> None:
        """Run one forward pass over raw bytes or a tagged input.

        Previous score buffers are invalidated.
        """
        tagged = as_tagged_input(data, quantized)
        context = self._require_context()
        if self.batch_size == 0:
            raise NullBatch("null batch")
        self.backend.predict(context, tagged)

    def read_results(self, label_fp: str | Path, top_k: int | None = None) -> list[RankedResult]:
        """Rank the last forward pass for every batch item."""
        if self.batch_size == 0:
            raise NullBatch("null batch")
        context = self._require_context()

        pred_len = self.backend.prediction_length(context)
        if pred_len == 0:
            raise NullPredictionLength("null prediction length")

        scores = self.backend.predictions(context)
        if scores is None:
            raise EmptyPredictions("empty predictions")

        labels = load_labels(label_fp)
        # Rank before returning so the borrowed buffer is never held past this call.
        return rank_scores(scores, self.batch_size, labels, top_k=top_k, per_item_length=pred_len)

    def read_top_labels(
        self,
        label_fp: str | Path,
        k: int = DEFAULT_TOP_K,
        sep: str = DEFAULT_SEPARATOR,
    ) -> str:
        """Return the top `k` labels of batch item 0 joined by `sep`."""
        ranked = self.read_results(label_fp, top_k=k)
        return ranked[0].concatenate(k, sep=sep)

    def close(self) -> None:
        """Release the execution context; later calls are no-ops."""
        if self.context is None:
            self.log.debug(f"{self.backend_name} handle already closed")
            return
        assert isinstance(self.backend, InferenceBackend), f"unexpected backend {self.backend!r}"
        context, self.context = self.context, None
        self.backend.destroy(context)


def create(
    backend_name: str,
    model_fp: str | Path,
    mode: HardwareMode | int | str = HardwareMode.CPU_1,
    batch_size: int = 1,
    verbose: bool = False,
    profile: bool = False,
    *,
    sha256: str | None = None,
    cache_dir: str | Path | None = None,
    logger=None,
) -> PredictorHandle:
    """Validate the model file, select the backend, and load an execution context."""
    log_ = logger or log
    model_path = Path(model_fp).expanduser().resolve()
    if not model_path.is_file():
        raise ModelNotFound(f"file {model_path} not found")

    canonical = resolve_backend_name(backend_name)
    hw_mode = HardwareMode.parse(mode)
    batch_size = int(batch_size)
    if batch_size < 0:
        raise ValueError(f"batch_size must be >= 0; got {batch_size}")
    if batch_size == 0:
        log_.warning("creating predictor with batch_size=0; results cannot be read")
    if sha256:
        check_model_integrity(model_path, sha256, logger=log_)

    backend = get_backend(canonical, cache_dir=cache_dir, logger=logger)
    if not backend.supports(hw_mode):
        supported = ", ".join(m.name for m in sorted(backend.supported_modes))
        raise UnsupportedHardwareMode(f"{canonical} does not support {hw_mode.name}. supported: {supported}")

    context = backend.create(model_path, batch_size, hw_mode, verbose=verbose, profile=profile)
    return PredictorHandle(backend, context, hw_mode, batch_size, logger=logger)


def predict(handle: PredictorHandle, data, quantized: bool = False) -> None:
    """Run inference on `handle`."""
    handle.predict(data, quantized=quantized)


def read_prediction_output(handle: PredictorHandle, label_fp: str | Path) -> str:
    """Return the top-5 labels of batch item 0 joined by '|'."""
    return handle.read_top_labels(label_fp, k=DEFAULT_TOP_K)


def close(handle: PredictorHandle) -> None:
    """Delete the predictor context."""
    handle.close()
