# Predictors Package
from .base import BasePredictor, PredictionResult
from .global_history import GlobalPredictor
from .local import LocalHistoryPredictor, LocalSharedPredictor, LocalPrivatePredictor
from .tournament import TournamentPredictor, TournamentLocalPredictor


# Predictor names and their numeric `which_predictor` config codes
PREDICTORS = {
    'local_private': LocalPrivatePredictor,
    'local_shared': LocalSharedPredictor,
    'global': GlobalPredictor,
    'tournament': TournamentPredictor,
}

PREDICTOR_CODES = {
    0: 'local_private',
    1: 'local_shared',
    2: 'global',
    3: 'tournament',
}


__all__ = [
    'BasePredictor',
    'PredictionResult',
    'GlobalPredictor',
    'LocalHistoryPredictor',
    'LocalSharedPredictor',
    'LocalPrivatePredictor',
    'TournamentPredictor',
    'TournamentLocalPredictor',
    'PREDICTORS',
    'PREDICTOR_CODES',
]
