"""Tagged input buffers for the quantized and float inference paths."""

from dataclasses import dataclass

import numpy as np

from mpredictor.errors import EmptyInput


ELEMENT_BYTES = 4


@dataclass(frozen=True)
class QuantizedInput:
    """Flat int32 values consumed by the quantized path."""

    values: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "values", np.ascontiguousarray(self.values, dtype=np.int32).ravel())

    @property
    def quantized(self) -> bool:
        return True

    def __len__(self) -> int:
        return int(self.values.size)


@dataclass(frozen=True)
class FloatInput:
    """Flat float32 values consumed by the float path."""

    values: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "values", np.ascontiguousarray(self.values, dtype=np.float32).ravel())

    @property
    def quantized(self) -> bool:
        return False

    def __len__(self) -> int:
        return int(self.values.size)


TaggedInput = QuantizedInput | FloatInput


def as_tagged_input(data, quantized: bool = False) -> TaggedInput:
    """Convert raw little-endian bytes (or an existing tagged input) into a tagged input.

    Raw bytes are read as int32 when `quantized` is set and as float32 otherwise.
    A tagged input is returned unchanged and its own tag wins over `quantized`.
    """
    if isinstance(data, (QuantizedInput, FloatInput)):
        if len(data) == 0:
            raise EmptyInput("input data is empty")
        return data

    if isinstance(data, np.ndarray):
        if data.size == 0:
            raise EmptyInput("input data is empty")
        return QuantizedInput(data) if quantized else FloatInput(data)

    buffer = memoryview(data).cast("B")
    if buffer.nbytes == 0:
        raise EmptyInput("input data is empty")
    if buffer.nbytes % ELEMENT_BYTES != 0:
        raise ValueError(
            f"input byte length {buffer.nbytes} is not a multiple of {ELEMENT_BYTES}; "
            f"cannot read as {'int32' if quantized else 'float32'}"
        )

    dtype = np.dtype("<i4") if quantized else np.dtype("<f4")
    values = np.frombuffer(buffer, dtype=dtype)
    return QuantizedInput(values) if quantized else FloatInput(values)
