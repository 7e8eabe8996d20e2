"""
Tournament Predictor

Arbitrates between a local predictor (private per-entry pattern tables)
and a global history predictor with a table of 2-bit chooser counters.
Both components are trained on every branch; the chooser only moves
when exactly one of them was right.
"""

import logging
from typing import Dict

from .base import BasePredictor, PredictionResult
from .global_history import GlobalPredictor
from .local import LocalPrivatePredictor
from ..components.counters import CounterTable
from ..components.tables import AddressCodec

logger = logging.getLogger(__name__)


DEFAULT_CHOOSER_ENTRIES = 1024


class TournamentLocalPredictor(LocalPrivatePredictor):
    """
    Local component of the tournament.

    Unlike the standalone local predictors, a BTB miss is not allocated
    at predict time: the branch is predicted taken, and the entry is
    allocated (untrained) when the outcome arrives.
    """

    DISPLAY_NAME = "Local"
    MISS_PREDICTION = True

    def predict(self, pc: int) -> PredictionResult:
        entry = self.btb.lookup(pc)
        if entry is None:
            return PredictionResult(
                prediction=self.MISS_PREDICTION,
                predictor_used=self.name,
                btb_hit=False,
            )

        idx = entry.history.as_index()
        return PredictionResult(
            prediction=entry.counters.predict(idx),
            predictor_used=self.name,
            counter=entry.counters.value(idx),
            btb_hit=True,
            entry=entry,
        )

    def update(self, pc: int, taken: bool,
               prediction: PredictionResult) -> None:
        entry = prediction.entry
        if entry is None:
            entry = self.btb.insert_or_evict(pc)
        else:
            entry.counters.train(entry.history.as_index(), taken)
            entry.history.update(taken)
        self.btb.touch(entry)


class TournamentPredictor(BasePredictor):
    """
    Local/global tournament predictor.

    Chooser counters >= 2 select the local prediction; they start at 1
    (weakly favour global). The chooser is indexed by the branch's BTB
    index bits modulo the chooser size.
    """

    DISPLAY_NAME = "Tournament"

    def __init__(self, config: dict):
        super().__init__(self.DISPLAY_NAME, config)
        self.local = TournamentLocalPredictor(config)
        self.global_predictor = GlobalPredictor(config)
        self.chooser = CounterTable(
            config.get('chooser_entries', DEFAULT_CHOOSER_ENTRIES)
        )

        logger.debug("Tournament: %d BTB entries, %d chooser entries, "
                     "bhr %d bits, ghr %d bits",
                     self.local.btb.num_entries, self.chooser.size,
                     self.local.history_bits, self.global_predictor.history_bits)

    def chooser_index(self, pc: int) -> int:
        return AddressCodec.index(pc, self.local.btb.index_bits) % self.chooser.size

    def predict(self, pc: int) -> PredictionResult:
        local_result = self.local.predict(pc)
        global_result = self.global_predictor.predict(pc)

        idx = self.chooser_index(pc)
        use_local = self.chooser.predict(idx)
        chosen = local_result if use_local else global_result

        return PredictionResult(
            prediction=chosen.prediction,
            predictor_used=chosen.predictor_used,
            counter=self.chooser.value(idx),
            btb_hit=local_result.btb_hit,
            sub_predictions={'local': local_result, 'global': global_result},
            chooser_index=idx,
        )

    def update(self, pc: int, taken: bool,
               prediction: PredictionResult) -> None:
        local_result = prediction.sub_predictions['local']
        global_result = prediction.sub_predictions['global']

        self.local.update(pc, taken, local_result)
        self.global_predictor.update(pc, taken, global_result)

        local_correct = local_result.prediction == taken
        global_correct = global_result.prediction == taken
        if local_correct and not global_correct:
            self.chooser.increment(prediction.chooser_index)
        elif global_correct and not local_correct:
            self.chooser.decrement(prediction.chooser_index)

    def get_hardware_cost(self) -> dict:
        local_cost = self.local.get_hardware_cost()
        global_cost = self.global_predictor.get_hardware_cost()
        chooser_bits = self.chooser.get_storage_bits()
        return self._storage_summary(
            local_cost['total_bits'] + global_cost['total_bits'] + chooser_bits,
            local_bits=local_cost['total_bits'],
            global_bits=global_cost['total_bits'],
            chooser_entries=self.chooser.size,
            chooser_bits=chooser_bits,
        )

    def get_statistics(self) -> Dict[str, dict]:
        return {
            'btb': self.local.btb.get_statistics(),
            'global_pattern_table': self.global_predictor.table.get_statistics(),
            'chooser': self.chooser.get_statistics(),
        }
