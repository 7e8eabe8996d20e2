"""
Saturating Counters

2-bit saturating counters and numpy-backed counter tables used as
pattern history tables and as the tournament chooser.
"""

import numpy as np

from ..errors import ConfigError


WEAKLY_NOT_TAKEN = 1


class SaturatingCounter:
    """
    Saturating up/down counter.

    The counter is clamped to [0, 2**bits - 1]. Its high bit is the
    prediction: for the default 2 bits, values 0,1 = Not Taken and
    2,3 = Taken.
    """

    def __init__(self, value: int = WEAKLY_NOT_TAKEN, bits: int = 2):
        if bits < 1:
            raise ConfigError(f"Counter needs at least one bit, got {bits}")
        self.bits = bits
        self.maximum = (1 << bits) - 1
        if not 0 <= value <= self.maximum:
            raise ConfigError(
                f"Counter value {value} outside [0, {self.maximum}]"
            )
        self.value = value

    @staticmethod
    def next_value(value: int, taken: bool, maximum: int) -> int:
        """Value after training a counter holding `value` with an outcome."""
        if taken:
            return min(value + 1, maximum)
        return max(value - 1, 0)

    def increment(self) -> None:
        self.value = min(self.value + 1, self.maximum)

    def decrement(self) -> None:
        self.value = max(self.value - 1, 0)

    def train(self, taken: bool) -> None:
        """Move towards the observed outcome."""
        self.value = self.next_value(self.value, taken, self.maximum)

    def predict(self) -> bool:
        return ((self.value >> (self.bits - 1)) & 1) == 1

    def __int__(self) -> int:
        return self.value

    def __eq__(self, other) -> bool:
        if isinstance(other, SaturatingCounter):
            return self.value == other.value and self.bits == other.bits
        return NotImplemented

    def __repr__(self) -> str:
        return f"SaturatingCounter({self.value}, bits={self.bits})"


class CounterTable:
    """
    Table of saturating counters.

    Sized at runtime; every access is bounds-checked so a bad index
    raises IndexError instead of wrapping.
    """

    def __init__(self, size: int, initial: int = WEAKLY_NOT_TAKEN,
                 bits: int = 2):
        """
        Initialize counter table.

        Args:
            size: Number of counters
            initial: Initial value of every counter
            bits: Bits per counter
        """
        if size < 1:
            raise ConfigError(f"Counter table needs at least one entry, got {size}")

        # Validates initial/bits
        template = SaturatingCounter(initial, bits)

        self.size = size
        self.bits = bits
        self.initial = initial
        self.maximum = template.maximum
        self.table = np.full(size, initial, dtype=np.int8)

        # Access statistics
        self.reads = 0
        self.writes = 0

    def _check(self, index: int) -> int:
        if not 0 <= index < self.size:
            raise IndexError(
                f"Counter index {index} out of range for table of {self.size}"
            )
        return index

    def value(self, index: int) -> int:
        """Current value of the counter at index."""
        return int(self.table[self._check(index)])

    def predict(self, index: int) -> bool:
        """High bit of the counter at index."""
        self.reads += 1
        return ((self.value(index) >> (self.bits - 1)) & 1) == 1

    def train(self, index: int, taken: bool) -> None:
        """Increment on taken, decrement on not taken."""
        idx = self._check(index)
        self.writes += 1
        self.table[idx] = SaturatingCounter.next_value(
            int(self.table[idx]), taken, self.maximum
        )

    def increment(self, index: int) -> None:
        self.train(index, True)

    def decrement(self, index: int) -> None:
        self.train(index, False)

    def reset(self) -> None:
        """Restore every counter to its initial value."""
        self.table.fill(self.initial)

    def get_storage_bits(self) -> int:
        return self.size * self.bits

    def get_statistics(self) -> dict:
        """Get table statistics."""
        return {
            'entries': self.size,
            'counter_bits': self.bits,
            'total_bits': self.get_storage_bits(),
            'reads': self.reads,
            'writes': self.writes,
            'predict_taken': int(np.sum(self.table >> (self.bits - 1))),
            'saturated_high': int(np.sum(self.table == self.maximum)),
            'saturated_low': int(np.sum(self.table == 0)),
        }

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"CounterTable({self.size}): {self.table[:16].tolist()}"
