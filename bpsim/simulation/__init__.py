# Simulation Package
from .simulator import BranchSimulator, SimulationConfig, normalize_predictor_name
from .metrics import BranchStatistics, MetricsCollector, SimulationResults

__all__ = [
    'BranchSimulator',
    'SimulationConfig',
    'normalize_predictor_name',
    'BranchStatistics',
    'MetricsCollector',
    'SimulationResults',
]
