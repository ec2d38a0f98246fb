"""Hardware execution modes shared by every backend."""

from enum import IntEnum


MAX_CPU_THREADS = 8


class HardwareMode(IntEnum):
    """Execution target bound to a predictor at creation."""

    CPU_1 = 1
    CPU_2 = 2
    CPU_3 = 3
    CPU_4 = 4
    CPU_5 = 5
    CPU_6 = 6
    CPU_7 = 7
    CPU_8 = 8
    GPU = 9
    NNAPI = 10
    DSP = 11

    @property
    def is_cpu(self) -> bool:
        """Return True for the CPU_k modes."""
        return self.value <= MAX_CPU_THREADS

    @property
    def cpu_threads(self) -> int | None:
        """Return the thread count for CPU modes, else None."""
        return int(self.value) if self.is_cpu else None

    @classmethod
    def cpu(cls, threads: int) -> "HardwareMode":
        """Return the CPU mode running `threads` threads."""
        if not 1 <= int(threads) <= MAX_CPU_THREADS:
            raise ValueError(f"cpu thread count must be within 1..{MAX_CPU_THREADS}; got {threads}")
        return cls(int(threads))

    @classmethod
    def parse(cls, value: "HardwareMode | int | str") -> "HardwareMode":
        """Resolve a mode from a member, its integer value, or its name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid hardware mode: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"invalid hardware mode value: {value}") from None
        if isinstance(value, str):
            token = value.strip()
            if token.isdigit():
                return cls.parse(int(token))
            try:
                return cls[token.upper().replace("-", "_")]
            except KeyError:
                choices = ", ".join(member.name for member in cls)
                raise ValueError(f"invalid hardware mode name '{value}'. choices: {choices}") from None
        raise ValueError(f"invalid hardware mode: {value!r}")
