"""
Global History Predictor

A single global history register indexes one table of 2-bit
counters shared by every branch.
"""

from .base import BasePredictor, PredictionResult
from ..components.counters import CounterTable
from ..components.history import HistoryRegister


DEFAULT_GHR_BITS = 6


class GlobalPredictor(BasePredictor):
    """
    Global history predictor.

    The counter trained on update is the one the pre-update history
    selects, i.e. the counter that produced the prediction being checked.
    """

    DISPLAY_NAME = "Global"

    def __init__(self, config: dict):
        super().__init__(self.DISPLAY_NAME, config)
        self.history_bits = config.get('ghr_bits', DEFAULT_GHR_BITS)
        self.history = HistoryRegister(self.history_bits)
        self.table = CounterTable(self.history.table_size)

    def predict(self, pc: int = 0) -> PredictionResult:
        idx = self.history.as_index()
        return PredictionResult(
            prediction=self.table.predict(idx),
            predictor_used=self.name,
            counter=self.table.value(idx),
        )

    def update(self, pc: int, taken: bool,
               prediction: PredictionResult) -> None:
        self.table.train(self.history.as_index(), taken)
        self.history.update(taken)

    def get_hardware_cost(self) -> dict:
        return self._storage_summary(
            self.table.get_storage_bits() + self.history_bits,
            table_entries=self.table.size,
            bits_per_entry=self.table.bits,
            history_bits=self.history_bits,
        )

    def get_statistics(self) -> dict:
        return {'pattern_table': self.table.get_statistics()}
