"""Inference backend interfaces for mpredictor."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from mpredictor.hardware import HardwareMode
from mpredictor.inputs import TaggedInput


@dataclass(eq=False)
class ExecutionContext:
    """Backend-owned state for one loaded model bound to a mode and batch size.

    Only the backend that created a context reads or mutates its fields.
    """

    backend_name: str
    model_fp: Path
    mode: HardwareMode
    batch_size: int
    session: Any = None
    scores: np.ndarray | None = None
    options: dict[str, Any] = field(default_factory=dict)
    released: bool = False


class InferenceBackend(ABC):
    """Abstract interface for inference backends."""

    name = "base"
    supported_modes: frozenset[HardwareMode] = frozenset()

    def supports(self, mode: HardwareMode) -> bool:
        """Return whether this backend can run in `mode`."""
        return HardwareMode.parse(mode) in self.supported_modes

    @abstractmethod
    def create(
        self,
        model_fp: Path,
        batch_size: int,
        mode: HardwareMode,
        verbose: bool = False,
        profile: bool = False,
    ) -> ExecutionContext:
        """Load the model and return a fresh execution context."""

    @abstractmethod
    def predict(self, context: ExecutionContext, data: TaggedInput) -> None:
        """Run one forward pass and replace the context score buffer."""

    @abstractmethod
    def prediction_length(self, context: ExecutionContext) -> int:
        """Return the per-item score vector length of the last forward pass."""

    @abstractmethod
    def predictions(self, context: ExecutionContext) -> np.ndarray | None:
        """Return the flat score buffer, or None before the first forward pass."""

    @abstractmethod
    def destroy(self, context: ExecutionContext) -> None:
        """Release every resource held by `context`."""
