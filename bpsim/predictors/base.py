"""
Base Predictor Interface

Abstract base class for all branch direction predictors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..components.btb import BTBEntry


@dataclass
class PredictionResult:
    """Result of a branch prediction."""
    prediction: bool          # True = Taken, False = Not Taken
    predictor_used: str       # Which predictor made the decision
    counter: Optional[int] = None     # Counter value behind the decision
    btb_hit: Optional[bool] = None    # None for predictors without a BTB

    # State carried from predict() to update() for the same branch
    entry: Optional[BTBEntry] = field(default=None, repr=False)
    sub_predictions: Dict[str, 'PredictionResult'] = field(default_factory=dict)
    chooser_index: Optional[int] = None

    @property
    def taken(self) -> bool:
        return self.prediction


class BasePredictor(ABC):
    """Abstract base class for branch predictors."""

    def __init__(self, name: str, config: dict):
        """
        Initialize the predictor.

        Args:
            name: Name identifier for this predictor
            config: Configuration dictionary
        """
        self.name = name
        self.config = config

    @abstractmethod
    def predict(self, pc: int) -> PredictionResult:
        """
        Make a branch prediction.

        Args:
            pc: Address of the branch instruction

        Returns:
            PredictionResult with the predicted direction
        """
        pass

    @abstractmethod
    def update(self, pc: int, taken: bool,
               prediction: PredictionResult) -> None:
        """
        Update the predictor based on actual outcome.

        Args:
            pc: Address of the branch instruction
            taken: Actual branch outcome (True = taken)
            prediction: The prediction returned by predict() for this branch
        """
        pass

    @abstractmethod
    def get_hardware_cost(self) -> dict:
        """
        Estimate hardware implementation cost.

        Returns:
            Dictionary with storage (bits/bytes) and other metrics
        """
        pass

    def get_statistics(self) -> dict:
        """Internal table statistics (optional override)."""
        return {}

    @staticmethod
    def _storage_summary(total_bits: int, **extra) -> dict:
        cost = dict(extra)
        cost.update({
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024,
        })
        return cost

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
