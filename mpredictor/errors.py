"""Exception taxonomy for predictor operations."""


class PredictorError(Exception):
    """Base class for all predictor failures returned to callers."""


class ModelNotFound(PredictorError, FileNotFoundError):
    """Model path does not reference an existing regular file."""


class UnsupportedBackend(PredictorError, ValueError):
    """Backend identifier is not one of the recognized backends."""


class UnsupportedHardwareMode(PredictorError, ValueError):
    """Hardware mode is not offered by the selected backend."""


class EmptyInput(PredictorError, ValueError):
    """Input buffer has zero length."""


class NullBatch(PredictorError, ValueError):
    """Handle was created with a batch size of zero."""


class NullPredictionLength(PredictorError, RuntimeError):
    """Backend reports a per-item score length of zero."""


class EmptyPredictorContext(PredictorError, RuntimeError):
    """Handle has no execution context (never created or already closed)."""


class EmptyPredictions(PredictorError, RuntimeError):
    """Backend has no score buffer to read."""


class LabelFileUnreadable(PredictorError, OSError):
    """Label file could not be opened or decoded."""


class LabelCountMismatch(PredictorError, ValueError):
    """Label table is shorter than the per-item score vector."""


class ModelChecksumMismatch(PredictorError, ValueError):
    """Model file digest differs from the expected SHA256."""


class ScoreLengthMismatch(PredictorError, ValueError):
    """Score buffer is shorter than batch size times the per-item length."""
