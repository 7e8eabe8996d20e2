import gzip

import pytest

from bpsim.errors import ConfigError
from bpsim.simulation import (
    BranchSimulator,
    BranchStatistics,
    SimulationConfig,
    SimulationResults,
)
from bpsim.trace import BranchTrace, create_sample_trace

from conftest import EXAMPLE_PAIRS, events, trace_lines


def global_simulator(**kwargs):
    return BranchSimulator(SimulationConfig(predictor='global', ghr_bits=1, **kwargs))


class TestBranchStatistics:

    def test_rate_guarded_without_branches(self):
        stats = BranchStatistics()
        assert stats.misprediction_rate == 0.0
        assert stats.accuracy == 0.0

    def test_record(self):
        stats = BranchStatistics()
        assert stats.record(predicted=False, actual=True) is True
        assert stats.record(predicted=True, actual=True) is False
        assert stats.total_branches == 2
        assert stats.mispredictions == 1
        assert stats.misprediction_rate == 0.5


class TestSimulationConfig:

    @pytest.mark.parametrize("code,name", [(0, 'local_private'), (1, 'local_shared'),
                                           (2, 'global'), (3, 'tournament')])
    def test_which_predictor_codes(self, code, name):
        assert SimulationConfig.from_dict({'which_predictor': code}).predictor == name

    def test_names_normalized(self):
        assert SimulationConfig(predictor='Local-Shared').predictor == 'local_shared'
        assert SimulationConfig(predictor='2').predictor == 'global'

    def test_overrides(self):
        config = SimulationConfig.from_dict({'which_predictor': 2, 'ghr_bits': 4},
                                            predictor='tournament', verbose=None)
        assert config.predictor == 'tournament'
        assert config.ghr_bits == 4
        assert config.verbose is False

    @pytest.mark.parametrize("values", [
        {'which_predictor': 7},
        {'predictor': 'perceptron'},
        {'on_malformed': 'ignore'},
        {'entries': -2},
        {'max_branches': 0},
        {'max_branches': 'all'},
        {'ghr_bits': True},
    ])
    def test_invalid(self, values):
        with pytest.raises(ConfigError):
            SimulationConfig.from_dict(values)


class TestBranchSimulator:

    def test_example_trace(self):
        results = global_simulator().run_events(events(EXAMPLE_PAIRS))

        assert results.total_branches == 3
        assert results.mispredictions == 1
        assert results.misprediction_rate == pytest.approx(1 / 3)
        assert "Misprediction Rate: 33.3333" in results.get_summary()

    def test_run_file(self, write_trace):
        results = global_simulator().run(write_trace(EXAMPLE_PAIRS))
        assert results.succeeded
        assert results.mispredictions == 1
        assert results.predictor_name == "Global"

    def test_fresh_predictor_per_run(self, tmp_path):
        path = tmp_path / "loop_filtered.trc"
        create_sample_trace(path, num_branches=2000, pattern='loop', seed=3)
        simulator = BranchSimulator(SimulationConfig(predictor='tournament'))

        first, second = simulator.run_many([path, path])
        assert first.statistics == second.statistics

    def test_empty_trace(self, write_trace):
        results = global_simulator().run(write_trace([]))
        assert results.total_branches == 0
        assert results.misprediction_rate == 0.0
        assert "0.0000 (no branches)" in results.get_summary()

    def test_warmup_not_counted(self):
        results = global_simulator(warmup_branches=2).run_events(events(EXAMPLE_PAIRS))
        # Only the third branch is measured and it is predicted correctly
        assert results.total_branches == 1
        assert results.mispredictions == 0
        assert results.warmup_branches == 2

    def test_max_branches(self):
        results = global_simulator(max_branches=2).run_events(events(EXAMPLE_PAIRS))
        assert results.total_branches == 2

    def test_batch_continues_after_failures(self, write_trace, tmp_path):
        good = write_trace(EXAMPLE_PAIRS)
        bad = write_trace(EXAMPLE_PAIRS, name="bad_filtered.trc", extra_lines=["oops\n"])
        results = global_simulator().run_many([tmp_path / "missing.trc", bad, good])

        assert [r.succeeded for r in results] == [False, False, True]
        assert "missing.trc" in results[0].error
        assert "line 7" in results[1].error
        assert results[2].total_branches == 3
        assert results[0].predictor_name == "Global"

    def test_skip_malformed(self, write_trace):
        path = write_trace(EXAMPLE_PAIRS, extra_lines=["oops\n", "oops\n"])
        results = global_simulator(on_malformed='skip').run(path)
        assert results.succeeded
        assert results.total_branches == 3
        assert results.skipped_lines == 2

    def test_undecodable_bytes_are_malformed(self, tmp_path, write_trace):
        good = write_trace(EXAMPLE_PAIRS)
        bad = tmp_path / "binary_filtered.trc"
        bad.write_bytes("".join(trace_lines(EXAMPLE_PAIRS)).encode() + b"\xff\xfe garbage\n")

        results = global_simulator(on_malformed='skip').run_many([bad, good])
        assert [r.succeeded for r in results] == [True, True]
        assert results[0].total_branches == 3
        assert results[0].skipped_lines == 1

        results = global_simulator().run_many([bad, good])
        assert [r.succeeded for r in results] == [False, True]
        assert "line 7" in results[0].error

    def test_truncated_archive_fails_only_that_trace(self, tmp_path, write_trace):
        good = write_trace(EXAMPLE_PAIRS)
        bad = tmp_path / "cut_filtered.trc.gz"
        data = gzip.compress("".join(trace_lines(EXAMPLE_PAIRS * 100)).encode())
        bad.write_bytes(data[:len(data) // 2])

        results = global_simulator().run_many([bad, good])
        assert [r.succeeded for r in results] == [False, True]
        assert "Cannot read trace file" in results[0].error
        assert results[1].total_branches == 3

    @pytest.mark.parametrize("predictor", ['local_private', 'local_shared',
                                           'global', 'tournament'])
    def test_every_predictor_learns_loops(self, tmp_path, predictor):
        path = tmp_path / "loop_filtered.trc"
        create_sample_trace(path, num_branches=5000, pattern='loop', seed=11)
        results = BranchSimulator(SimulationConfig(predictor=predictor)).run(path)

        assert results.total_branches == 5000
        assert 0 < results.misprediction_rate < 0.5
        assert results.hardware_cost['total_bits'] > 0

    def test_per_branch_stats(self):
        trace = BranchTrace(events([(0x100, 0x200), (0x100, 0x104)] * 20))
        simulator = BranchSimulator(SimulationConfig(
            predictor='local_shared', bhr_bits=0, collect_per_branch_stats=True))
        results = simulator.run_on_trace(trace)
        # Alternating outcomes defeat a single counter
        assert results.hard_branches == [0x100]

    def test_results_serializable(self):
        results = global_simulator().run_events(events(EXAMPLE_PAIRS), "example")
        data = results.to_dict()
        assert data['trace_name'] == "example"
        assert data['statistics']['mispredictions'] == 1
        assert data['config']['predictor'] == 'global'


def test_failed_result_summary():
    results = SimulationResults("t.trc", "Global", error="Cannot read trace file: t.trc")
    assert results.get_summary() == "Global for t.trc:\nError: Cannot read trace file: t.trc"
