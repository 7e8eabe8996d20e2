"""
Branch Prediction Simulator

Main simulation engine: replays branch events through one predictor
and accumulates misprediction statistics. Every trace gets a freshly
constructed predictor, so no state carries over between runs.
"""

import logging
import time
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from tqdm import tqdm

from ..components.btb import BranchTargetBuffer
from ..components.history import MAX_HISTORY_BITS
from ..components.tables import AddressCodec
from ..errors import ConfigError, MalformedTraceLine, TraceIOError
from ..predictors import PREDICTORS, PREDICTOR_CODES
from ..predictors.base import BasePredictor
from ..trace.formats import BranchEvent
from ..trace.parser import MALFORMED_POLICIES, BranchTrace, TraceParser
from .metrics import MetricsCollector, SimulationResults

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for simulation run."""
    predictor: Union[str, int] = 'tournament'
    ghr_bits: int = 6
    bhr_bits: int = 3
    entries: int = 2048
    chooser_entries: int = 1024
    warmup_branches: int = 0
    max_branches: Optional[int] = None
    on_malformed: str = 'abort'
    verbose: bool = False
    log_interval: int = 100000
    collect_per_branch_stats: bool = False

    def __post_init__(self):
        self.predictor = normalize_predictor_name(self.predictor)
        if self.on_malformed not in MALFORMED_POLICIES:
            raise ConfigError(
                f"on_malformed must be one of {MALFORMED_POLICIES}, got {self.on_malformed!r}"
            )
        for name in ('ghr_bits', 'bhr_bits', 'entries', 'chooser_entries',
                     'warmup_branches'):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
        if self.max_branches is not None and (
                not _is_int(self.max_branches) or self.max_branches < 1):
            raise ConfigError(
                f"max_branches must be a positive integer, got {self.max_branches!r}"
            )
        if self.chooser_entries < 1:
            raise ConfigError("chooser_entries must be at least 1")
        for name in ('ghr_bits', 'bhr_bits'):
            if getattr(self, name) > MAX_HISTORY_BITS:
                raise ConfigError(f"{name} must be at most {MAX_HISTORY_BITS}")
        AddressCodec.index_bits_for(self.entries, BranchTargetBuffer.WAYS)

    @classmethod
    def from_dict(cls, values: Dict[str, Any], **overrides) -> 'SimulationConfig':
        """
        Build a config from loaded configuration values.

        `which_predictor` is accepted as an alias of `predictor`. Keys
        that are not config fields are ignored (load_config reports them).
        """
        values = dict(values)
        if 'which_predictor' in values:
            values.setdefault('predictor', values.pop('which_predictor'))
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)

    def predictor_config(self) -> Dict[str, int]:
        """Size parameters handed to the predictor constructor."""
        return {
            'ghr_bits': self.ghr_bits,
            'bhr_bits': self.bhr_bits,
            'entries': self.entries,
            'chooser_entries': self.chooser_entries,
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def normalize_predictor_name(predictor: Union[str, int]) -> str:
    """Map a predictor code (0-3) or name to its registry key."""
    if isinstance(predictor, int) and not isinstance(predictor, bool):
        if predictor not in PREDICTOR_CODES:
            raise ConfigError(f"Unknown predictor code: {predictor}")
        return PREDICTOR_CODES[predictor]

    key = str(predictor).strip().lower().replace('-', '_')
    if key.isdigit():
        return normalize_predictor_name(int(key))
    if key not in PREDICTORS:
        raise ConfigError(
            f"Unknown predictor type: {predictor} (choose from {sorted(PREDICTORS)})"
        )
    return key


class BranchSimulator:
    """
    Branch Prediction Simulator.

    Simulates branch prediction using trace-driven methodology. For
    every branch: predict, compare with the actual direction, count,
    then train the predictor.
    """

    def __init__(self, config: Union[SimulationConfig, dict, None] = None):
        """
        Initialize simulator.

        Args:
            config: Simulation configuration
        """
        if config is None:
            self.config = SimulationConfig()
        elif isinstance(config, dict):
            self.config = SimulationConfig.from_dict(config)
        else:
            self.config = config

    def create_predictor(self) -> BasePredictor:
        """Construct a predictor in its initial state."""
        predictor_class = PREDICTORS[self.config.predictor]
        return predictor_class(self.config.predictor_config())

    def run(self, trace_path: Union[str, Path]) -> SimulationResults:
        """
        Run simulation on a filtered trace file.

        Raises:
            TraceIOError: The trace cannot be read
            MalformedTraceLine: Bad line with on_malformed='abort'
        """
        trace_path = Path(trace_path)
        parser = TraceParser(on_malformed=self.config.on_malformed)

        logger.info("Simulating %s with %s", trace_path, self.config.predictor)
        results = self.run_events(parser.parse_file(trace_path), str(trace_path))
        results.skipped_lines = parser.malformed_lines
        return results

    def run_on_trace(self, trace: BranchTrace) -> SimulationResults:
        """Run simulation on a pre-loaded trace."""
        return self.run_events(trace, trace.name)

    def run_events(self, events: Iterable[BranchEvent],
                   trace_name: str = "memory",
                   predictor: Optional[BasePredictor] = None) -> SimulationResults:
        """
        Run the simulation loop over branch events.

        Args:
            events: Branch events in program order
            trace_name: Name used in the results
            predictor: Predictor to drive (a fresh one by default)

        Returns:
            SimulationResults for this pass
        """
        if predictor is None:
            predictor = self.create_predictor()
        metrics = MetricsCollector(self.config.collect_per_branch_stats)

        warmup = self.config.warmup_branches
        limit = None
        if self.config.max_branches:
            limit = warmup + self.config.max_branches

        if self.config.verbose:
            events = tqdm(events, desc=f"{predictor.name} {Path(trace_name).name}",
                          unit="branches")

        start_time = time.time()
        seen = 0
        for event in events:
            seen += 1
            taken = event.taken
            prediction = predictor.predict(event.branch_address)

            if seen > warmup:
                metrics.record_prediction(event.branch_address, prediction, taken)

            predictor.update(event.branch_address, taken, prediction)

            if self.config.verbose and seen % self.config.log_interval == 0:
                self._log_progress(seen, metrics)
            if limit is not None and seen >= limit:
                break

        elapsed_time = time.time() - start_time
        if seen <= warmup and seen > 0:
            logger.warning("%s: trace ended during warm-up (%d of %d branches)",
                           trace_name, seen, warmup)

        return SimulationResults(
            trace_name=trace_name,
            predictor_name=predictor.name,
            statistics=metrics.get_stats(),
            warmup_branches=min(seen, warmup),
            elapsed_time=elapsed_time,
            predictor_statistics=predictor.get_statistics(),
            hardware_cost=predictor.get_hardware_cost(),
            config=asdict(self.config),
            hard_branches=metrics.get_hard_branches(),
        )

    def run_many(self, trace_paths: Iterable[Union[str, Path]]) -> List[SimulationResults]:
        """
        Run each trace in turn.

        A trace that cannot be read or parsed is logged and recorded as
        a failed result; the remaining traces still run.
        """
        all_results = []
        for trace_path in trace_paths:
            try:
                results = self.run(trace_path)
            except (TraceIOError, MalformedTraceLine) as e:
                logger.error("%s: %s", trace_path, e)
                results = SimulationResults(
                    trace_name=str(trace_path),
                    predictor_name=PREDICTORS[self.config.predictor].DISPLAY_NAME,
                    config=asdict(self.config),
                    error=str(e),
                )
            all_results.append(results)
        return all_results

    def _log_progress(self, seen: int, metrics: MetricsCollector) -> None:
        stats = metrics.overall
        tqdm.write(f"Branches: {seen:,} | "
                   f"Mispredictions: {stats.mispredictions:,} | "
                   f"Rate: {stats.misprediction_rate * 100:.4f}%")
