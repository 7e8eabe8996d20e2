"""
Metrics Collection and Analysis

Collects branch prediction statistics over one trace pass.
"""

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..predictors.base import PredictionResult


@dataclass
class BranchStatistics:
    """Counts accumulated over one trace pass."""
    total_branches: int = 0
    mispredictions: int = 0
    taken_actual: int = 0
    taken_predicted: int = 0

    def record(self, predicted: bool, actual: bool) -> bool:
        """Count one branch; returns True if it was mispredicted."""
        self.total_branches += 1
        if actual:
            self.taken_actual += 1
        if predicted:
            self.taken_predicted += 1
        mispredicted = predicted != actual
        if mispredicted:
            self.mispredictions += 1
        return mispredicted

    @property
    def correct(self) -> int:
        return self.total_branches - self.mispredictions

    @property
    def accuracy(self) -> float:
        if self.total_branches == 0:
            return 0.0
        return self.correct / self.total_branches

    @property
    def misprediction_rate(self) -> float:
        """Mispredictions per branch; 0.0 when no branch was seen."""
        if self.total_branches == 0:
            return 0.0
        return self.mispredictions / self.total_branches

    def to_dict(self) -> Dict[str, Any]:
        stats = asdict(self)
        stats.update({
            'correct': self.correct,
            'accuracy': self.accuracy,
            'misprediction_rate': self.misprediction_rate,
        })
        return stats


class MetricsCollector:
    """
    Collects and computes branch prediction metrics.
    """

    def __init__(self, collect_per_branch: bool = False):
        self.collect_per_branch = collect_per_branch
        self.overall = BranchStatistics()
        self.providers: Counter = Counter()
        self.btb_misses = 0
        self._per_branch: Dict[int, BranchStatistics] = {}

    def record_prediction(self, pc: int, prediction: PredictionResult,
                          actual: bool) -> bool:
        """
        Record a prediction outcome.

        Args:
            pc: Branch address
            prediction: PredictionResult from the predictor
            actual: Actual branch outcome

        Returns:
            True if the branch was mispredicted
        """
        mispredicted = self.overall.record(prediction.prediction, actual)
        self.providers[prediction.predictor_used] += 1
        if prediction.btb_hit is False:
            self.btb_misses += 1

        if self.collect_per_branch:
            if pc not in self._per_branch:
                self._per_branch[pc] = BranchStatistics()
            self._per_branch[pc].record(prediction.prediction, actual)

        return mispredicted

    def get_stats(self) -> Dict[str, Any]:
        stats = self.overall.to_dict()
        stats['providers'] = dict(self.providers)
        stats['btb_misses'] = self.btb_misses
        return stats

    def get_per_branch_stats(self) -> Dict[int, Dict[str, Any]]:
        """Get per-branch statistics."""
        return {pc: s.to_dict() for pc, s in self._per_branch.items()}

    def get_hard_branches(self, threshold: float = 0.3,
                          min_samples: int = 10) -> List[int]:
        """
        Branches whose misprediction rate is at least `threshold`.

        Only populated when per-branch collection is enabled.
        """
        return sorted(
            pc for pc, s in self._per_branch.items()
            if s.total_branches >= min_samples
            and s.misprediction_rate >= threshold
        )

    def reset(self) -> None:
        """Reset all metrics."""
        self.overall = BranchStatistics()
        self.providers.clear()
        self.btb_misses = 0
        self._per_branch.clear()


@dataclass
class SimulationResults:
    """Container for simulation results."""
    trace_name: str
    predictor_name: str
    statistics: Dict[str, Any] = field(default_factory=dict)
    warmup_branches: int = 0
    elapsed_time: float = 0.0
    skipped_lines: int = 0
    predictor_statistics: Dict[str, Any] = field(default_factory=dict)
    hardware_cost: Dict[str, Any] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)
    hard_branches: List[int] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def total_branches(self) -> int:
        return self.statistics.get('total_branches', 0)

    @property
    def mispredictions(self) -> int:
        return self.statistics.get('mispredictions', 0)

    @property
    def misprediction_rate(self) -> float:
        return self.statistics.get('misprediction_rate', 0.0)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def get_summary(self) -> str:
        """Per-trace report."""
        lines = [f"{self.predictor_name} for {self.trace_name}:"]
        if self.error:
            lines.append(f"Error: {self.error}")
            return "\n".join(lines)

        lines.append(f"Total Branches: {self.total_branches}")
        lines.append(f"Mispredictions: {self.mispredictions}")
        rate = f"{self.misprediction_rate * 100:.4f}"
        if self.total_branches == 0:
            rate += " (no branches)"
        lines.append(f"Misprediction Rate: {rate}")
        return "\n".join(lines)
