import random

import pytest

from bpsim.predictors import (
    GlobalPredictor,
    LocalPrivatePredictor,
    LocalSharedPredictor,
    PredictionResult,
    TournamentPredictor,
)
from bpsim.errors import ConfigError


def step(predictor, pc, taken):
    result = predictor.predict(pc)
    predictor.update(pc, taken, result)
    return result


def mispredictions(predictor, outcomes, pc=0x100):
    return sum(step(predictor, pc, taken).prediction != taken for taken in outcomes)


class TestGlobalPredictor:

    def test_example_trace(self):
        predictor = GlobalPredictor({'ghr_bits': 1})
        predictions = [step(predictor, 0x100, taken).prediction
                       for taken in (False, True, False)]

        assert predictions == [False, False, False]
        assert [predictor.table.value(i) for i in range(2)] == [1, 0]
        assert predictor.history.as_index() == 0

    def test_trains_counter_selected_before_update(self):
        predictor = GlobalPredictor({'ghr_bits': 2})
        step(predictor, 0x100, True)
        # history 0 selected the trained counter, then history became 1
        assert predictor.table.value(0) == 2
        assert predictor.table.value(1) == 1
        assert predictor.history.as_index() == 1

    def test_deterministic_from_fresh_state(self):
        rng = random.Random(7)
        outcomes = [rng.random() < 0.6 for _ in range(300)]

        runs = []
        for _ in range(2):
            predictor = GlobalPredictor({'ghr_bits': 4})
            runs.append([step(predictor, 0x100, t).prediction for t in outcomes])
        assert runs[0] == runs[1]

    def test_learns_alternating_pattern(self):
        predictor = GlobalPredictor({'ghr_bits': 2})
        outcomes = [i % 2 == 0 for i in range(100)]
        mispredictions(predictor, outcomes[:20])
        assert mispredictions(predictor, outcomes[20:]) == 0

    def test_hardware_cost(self):
        cost = GlobalPredictor({'ghr_bits': 6}).get_hardware_cost()
        assert cost['table_entries'] == 64
        assert cost['total_bits'] == 64 * 2 + 6


class TestLocalSharedPredictor:

    def test_first_miss_uses_fresh_history(self):
        predictor = LocalSharedPredictor({'bhr_bits': 3, 'entries': 2048})
        result = predictor.predict(0x100)

        assert result.btb_hit is False
        assert result.prediction is False
        assert result.counter == 1
        # Allocated during predict
        assert predictor.btb.lookup(0x100) is result.entry

    def test_miss_goes_through_normal_update(self):
        predictor = LocalSharedPredictor({'bhr_bits': 3, 'entries': 2048})
        result = step(predictor, 0x100, True)

        assert predictor.shared_table.value(0) == 2
        assert result.entry.history.as_index() == 1
        assert step(predictor, 0x100, True).btb_hit is True

    def test_always_taken_warms_up(self):
        predictor = LocalSharedPredictor({'bhr_bits': 3, 'entries': 2048})
        # histories 0, 1, 3, 7 each start weakly not taken
        assert mispredictions(predictor, [True] * 20) == 4

    def test_pattern_table_is_shared(self):
        predictor = LocalSharedPredictor({'bhr_bits': 3, 'entries': 2048})
        step(predictor, 0x100, True)
        # A new branch starts at history 0, which 0x100 already trained
        assert predictor.predict(0x204).prediction is True

    def test_rejects_bad_geometry(self):
        with pytest.raises(ConfigError):
            LocalSharedPredictor({'bhr_bits': 3, 'entries': 1000})


class TestLocalPrivatePredictor:

    def test_pattern_tables_are_private(self):
        predictor = LocalPrivatePredictor({'bhr_bits': 3, 'entries': 2048})
        step(predictor, 0x100, True)
        assert predictor.predict(0x204).prediction is False

    def test_always_taken_warms_up(self):
        predictor = LocalPrivatePredictor({'bhr_bits': 3, 'entries': 2048})
        assert mispredictions(predictor, [True] * 20) == 4

    def test_evicted_branch_starts_over(self):
        # One set: a third branch evicts the least recently used one
        predictor = LocalPrivatePredictor({'bhr_bits': 2, 'entries': 2})
        for _ in range(4):
            step(predictor, 0x100, True)
        step(predictor, 0x200, False)
        step(predictor, 0x300, False)

        result = predictor.predict(0x100)
        assert result.btb_hit is False
        assert result.counter == 1


class TestTournamentPredictor:

    CONFIG = {'bhr_bits': 3, 'ghr_bits': 6, 'entries': 2048, 'chooser_entries': 1024}

    def test_local_miss_predicts_taken_without_allocating(self):
        predictor = TournamentPredictor(self.CONFIG)
        result = predictor.predict(0x100)

        local = result.sub_predictions['local']
        assert local.prediction is True
        assert local.btb_hit is False
        assert predictor.local.btb.lookup(0x100) is None

    def test_miss_allocates_untrained_entry_on_update(self):
        predictor = TournamentPredictor(self.CONFIG)
        step(predictor, 0x100, True)

        entry = predictor.local.btb.lookup(0x100)
        assert entry is not None
        assert entry.history.as_index() == 0
        assert [entry.counters.value(i) for i in range(8)] == [1] * 8

    def test_first_branch(self):
        predictor = TournamentPredictor(self.CONFIG)
        result = step(predictor, 0x100, True)

        # Chooser starts weakly favouring global, which says not taken
        assert result.predictor_used == "Global"
        assert result.prediction is False
        # Local was right and global wrong
        assert predictor.chooser.value(0x100) == 2
        assert predictor.global_predictor.table.value(0) == 2

    def test_chooser_index(self):
        predictor = TournamentPredictor(dict(self.CONFIG, chooser_entries=4))
        # 10 BTB index bits, then modulo chooser size
        assert predictor.chooser_index(0x1406) == (0x006 % 4)
        assert predictor.chooser_index(0x3ff) == 3

    def _fix_components(self, monkeypatch, predictor, local, global_):
        monkeypatch.setattr(predictor.local, 'predict',
                            lambda pc: PredictionResult(local, "Local", btb_hit=False))
        monkeypatch.setattr(predictor.global_predictor, 'predict',
                            lambda pc: PredictionResult(global_, "Global"))

    def test_chooser_converges_to_local(self, monkeypatch):
        predictor = TournamentPredictor(self.CONFIG)
        self._fix_components(monkeypatch, predictor, local=True, global_=False)
        idx = predictor.chooser_index(0x100)

        values = []
        for _ in range(10):
            step(predictor, 0x100, True)
            values.append(predictor.chooser.value(idx))

        assert values[:2] == [2, 3]
        assert set(values[2:]) == {3}
        assert predictor.predict(0x100).predictor_used == "Local"

    def test_chooser_moves_towards_global(self, monkeypatch):
        predictor = TournamentPredictor(self.CONFIG)
        self._fix_components(monkeypatch, predictor, local=False, global_=True)
        step(predictor, 0x100, True)
        step(predictor, 0x100, True)
        assert predictor.chooser.value(predictor.chooser_index(0x100)) == 0

    @pytest.mark.parametrize("local,global_", [(True, True), (False, False)])
    def test_chooser_unchanged_when_components_agree(self, monkeypatch, local, global_):
        predictor = TournamentPredictor(self.CONFIG)
        self._fix_components(monkeypatch, predictor, local=local, global_=global_)
        step(predictor, 0x100, True)
        assert predictor.chooser.value(predictor.chooser_index(0x100)) == 1

    def test_both_components_always_learn(self):
        predictor = TournamentPredictor(self.CONFIG)
        for _ in range(3):
            step(predictor, 0x100, True)

        entry = predictor.local.btb.lookup(0x100)
        # First branch only allocated; the next two trained histories 0 and 1
        assert entry.counters.value(0) == 2
        assert entry.counters.value(1) == 2
        assert predictor.global_predictor.history.as_index() == 0b111

    def test_hardware_cost_adds_components(self):
        predictor = TournamentPredictor(self.CONFIG)
        cost = predictor.get_hardware_cost()
        assert cost['chooser_bits'] == 2048
        assert cost['total_bits'] == (cost['local_bits'] + cost['global_bits']
                                      + cost['chooser_bits'])
