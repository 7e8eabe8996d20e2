# Utils Package
from .helpers import (
    load_config,
    save_config,
    save_results,
    setup_logging,
    create_predictor_from_config,
    parse_key_value_lines,
)

__all__ = [
    'load_config',
    'save_config',
    'save_results',
    'setup_logging',
    'create_predictor_from_config',
    'parse_key_value_lines',
]
