"""
History Register

Fixed-width shift register of recent branch outcomes. Used as the
global history (GHR) of a predictor or as the local history (BHR)
of a BTB entry, and always consumed as a counter-table index.
"""

from ..errors import ConfigError


MAX_HISTORY_BITS = 24


class HistoryRegister:
    """
    Branch History Register.

    The newest outcome enters at bit 0; the register is masked to
    `width` bits after every shift.
    """

    def __init__(self, width: int):
        """
        Initialize the history register.

        Args:
            width: Number of branch outcomes to track
        """
        if not 0 <= width <= MAX_HISTORY_BITS:
            raise ConfigError(
                f"History width must be in [0, {MAX_HISTORY_BITS}], got {width}"
            )
        self.width = width
        self.mask = (1 << width) - 1
        self.value = 0

    def update(self, taken: bool) -> None:
        """
        Shift in a new branch outcome.

        Args:
            taken: Branch outcome (True = taken)
        """
        self.value = ((self.value << 1) | (1 if taken else 0)) & self.mask

    def as_index(self) -> int:
        """Current history as a counter-table index."""
        return self.value

    @property
    def table_size(self) -> int:
        """Number of distinct histories (size of a table it indexes)."""
        return 1 << self.width

    def reset(self) -> None:
        """Clear all recorded outcomes."""
        self.value = 0

    def __int__(self) -> int:
        return self.value

    def __len__(self) -> int:
        return self.width

    def __repr__(self) -> str:
        if self.width == 0:
            return "BHR(0)"
        return f"BHR({self.width}): {self.value:0{self.width}b}"
