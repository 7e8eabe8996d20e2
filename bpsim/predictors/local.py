"""
Local History Predictors

Per-branch history registers held in a 2-way BTB, indexing either one
pattern table shared by all branches (LocalShared) or a pattern table
private to each BTB entry (LocalPrivate).

A branch that misses in the BTB is allocated during predict() and then
goes through exactly the same predict/update path as a hit: its fresh
history (0) selects a counter in the pattern table.
"""

from abc import abstractmethod

from .base import BasePredictor, PredictionResult
from ..components.btb import BranchTargetBuffer, BTBEntry
from ..components.counters import CounterTable


DEFAULT_BHR_BITS = 3
DEFAULT_BTB_ENTRIES = 2048


class LocalHistoryPredictor(BasePredictor):
    """Common BTB handling for the local history predictors."""

    private_counters = False

    def __init__(self, name: str, config: dict):
        super().__init__(name, config)
        self.history_bits = config.get('bhr_bits', DEFAULT_BHR_BITS)
        self.btb = BranchTargetBuffer(
            config.get('entries', DEFAULT_BTB_ENTRIES),
            self.history_bits,
            private_counters=self.private_counters,
        )

    @abstractmethod
    def _pattern_table(self, entry: BTBEntry) -> CounterTable:
        """Counter table the entry's history indexes."""
        pass

    def predict(self, pc: int) -> PredictionResult:
        entry = self.btb.lookup(pc)
        hit = entry is not None
        if entry is None:
            entry = self.btb.insert_or_evict(pc)

        table = self._pattern_table(entry)
        idx = entry.history.as_index()
        return PredictionResult(
            prediction=table.predict(idx),
            predictor_used=self.name,
            counter=table.value(idx),
            btb_hit=hit,
            entry=entry,
        )

    def update(self, pc: int, taken: bool,
               prediction: PredictionResult) -> None:
        entry = prediction.entry
        if entry is None:
            # predict() always attaches the entry
            raise ValueError(f"{self.name} update without a BTB entry for pc 0x{pc:x}")

        self._pattern_table(entry).train(entry.history.as_index(), taken)
        entry.history.update(taken)
        self.btb.touch(entry)

    def get_statistics(self) -> dict:
        return {'btb': self.btb.get_statistics()}


class LocalSharedPredictor(LocalHistoryPredictor):
    """Local histories, one pattern table shared by all BTB entries."""

    DISPLAY_NAME = "LocalShared"

    def __init__(self, config: dict):
        super().__init__(self.DISPLAY_NAME, config)
        self.shared_table = CounterTable(1 << self.history_bits)

    def _pattern_table(self, entry: BTBEntry) -> CounterTable:
        return self.shared_table

    def get_hardware_cost(self) -> dict:
        return self._storage_summary(
            self.btb.get_storage_bits() + self.shared_table.get_storage_bits(),
            btb_entries=self.btb.num_entries,
            history_bits=self.history_bits,
            pattern_table_entries=self.shared_table.size,
        )

    def get_statistics(self) -> dict:
        stats = super().get_statistics()
        stats['pattern_table'] = self.shared_table.get_statistics()
        return stats


class LocalPrivatePredictor(LocalHistoryPredictor):
    """Local histories, each BTB entry with its own pattern table."""

    DISPLAY_NAME = "LocalPrivate"
    private_counters = True

    def __init__(self, config: dict):
        super().__init__(self.DISPLAY_NAME, config)

    def _pattern_table(self, entry: BTBEntry) -> CounterTable:
        return entry.counters

    def get_hardware_cost(self) -> dict:
        return self._storage_summary(
            self.btb.get_storage_bits(),
            btb_entries=self.btb.num_entries,
            history_bits=self.history_bits,
            pattern_table_entries=1 << self.history_bits,
        )
