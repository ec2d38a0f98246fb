"""Top-K ranking of flat score buffers into labelled predictions."""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mpredictor.errors import LabelCountMismatch, NullBatch, NullPredictionLength, ScoreLengthMismatch


DEFAULT_TOP_K = 5
DEFAULT_SEPARATOR = "|"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    """One ranked class of one batch item."""

    index: int
    label: str
    probability: float


@dataclass(frozen=True)
class RankedResult:
    """Predictions of one batch item, highest probability first."""

    item: int
    predictions: tuple[Prediction, ...]

    def __len__(self) -> int:
        return len(self.predictions)

    def __iter__(self):
        return iter(self.predictions)

    def __getitem__(self, position):
        return self.predictions[position]

    def top(self, k: int) -> tuple[Prediction, ...]:
        """Return the first `k` predictions (fewer when the item has fewer classes)."""
        assert k >= 0, f"k must be >= 0; got {k}"
        return self.predictions[:k]

    def labels(self, k: int | None = None) -> list[str]:
        """Return ranked labels, optionally cut to the top `k`."""
        ranked = self.predictions if k is None else self.top(k)
        return [prediction.label for prediction in ranked]

    def concatenate(self, k: int = DEFAULT_TOP_K, sep: str = DEFAULT_SEPARATOR) -> str:
        """Join the top `k` labels with `sep`."""
        return sep.join(self.labels(k))


def rank_item(
    scores: np.ndarray,
    labels: Sequence[str],
    top_k: int | None = None,
    item: int = 0,
) -> RankedResult:
    """Rank one score vector; ties keep ascending class-index order."""
    scores = np.asarray(scores, dtype=np.float32).ravel()
    if len(labels) < scores.size:
        raise LabelCountMismatch(f"label table has {len(labels)} entries; scores have {scores.size} classes")

    # Stable sort on negated scores keeps the lower class index first on ties.
    order = np.argsort(-scores, kind="stable")
    if top_k is not None:
        assert top_k >= 0, f"top_k must be >= 0; got {top_k}"
        order = order[:top_k]
    predictions = tuple(
        Prediction(index=int(j), label=labels[int(j)], probability=float(scores[j])) for j in order
    )
    return RankedResult(item=item, predictions=predictions)


def rank_scores(
    scores: np.ndarray,
    batch_size: int,
    labels: Sequence[str],
    top_k: int | None = None,
    per_item_length: int | None = None,
) -> list[RankedResult]:
    """Split a flat score buffer into `batch_size` items and rank each one.

    `per_item_length` defaults to an even split of the buffer.
    """
    if batch_size == 0:
        raise NullBatch("null batch")
    assert batch_size > 0, f"batch_size must be > 0; got {batch_size}"
    flat = np.asarray(scores, dtype=np.float32).ravel()
    if per_item_length is None:
        per_item_length = flat.size // batch_size
    if per_item_length == 0:
        raise NullPredictionLength("null prediction length")
    if flat.size < batch_size * per_item_length:
        raise ScoreLengthMismatch(
            f"score buffer has {flat.size} values; expected {batch_size} x {per_item_length}"
        )

    items = flat[: batch_size * per_item_length].reshape((batch_size, per_item_length))
    ranked = [rank_item(items[ii], labels, top_k=top_k, item=ii) for ii in range(batch_size)]
    log.debug(f"ranked {batch_size} item(s) of {per_item_length} classes (top_k={top_k})")
    return ranked
