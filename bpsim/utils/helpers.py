"""
Utility Functions

Helper functions for configuration, logging, and I/O.
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from ..errors import ConfigError

logger = logging.getLogger(__name__)


CONFIG_KEYS = frozenset({
    'ghr_bits',
    'bhr_bits',
    'entries',
    'which_predictor',
    'predictor',
    'chooser_entries',
    'warmup_branches',
    'max_branches',
    'on_malformed',
})

DEFAULT_CONFIG_FILE = "BTBConfiguration.txt"


def _convert_value(value: str) -> Union[int, str]:
    try:
        return int(value)
    except ValueError:
        return value


def parse_key_value_lines(lines: Iterable[str]) -> Dict[str, Any]:
    """
    Parse `key = value` configuration lines.

    Lines starting with '#' and blank lines are skipped. Integer values
    are converted; anything else is kept as a string.
    """
    config: Dict[str, Any] = {}
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue

        key, sep, value = line.partition('=')
        key = key.strip()
        if not sep or not key:
            logger.warning("Ignoring configuration line %d: %r", line_number, line)
            continue

        config[key] = _convert_value(value.strip())
    return config


def _report_unknown_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    known = {}
    for key, value in config.items():
        if key in CONFIG_KEYS:
            known[key] = value
        else:
            logger.warning("Unknown configuration key: %s", key)
    return known


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a key=value or YAML file.

    Args:
        config_path: Path to the config file (.yaml/.yml read as YAML)

    Returns:
        Configuration dictionary with unknown keys dropped
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        if config_path.suffix.lower() in ('.yaml', '.yml'):
            config = yaml.safe_load(f) or {}
            if not isinstance(config, dict):
                raise ConfigError(f"{config_path}: expected a mapping at top level")
        else:
            config = parse_key_value_lines(f)

    return _report_unknown_keys(config)


def save_config(config: Dict[str, Any],
                config_path: Union[str, Path]) -> None:
    """Save configuration as key=value lines (YAML for .yaml/.yml)."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        if config_path.suffix.lower() in ('.yaml', '.yml'):
            yaml.dump(config, f, default_flow_style=False)
        else:
            for key, value in config.items():
                f.write(f"{key}={value}\n")


def create_predictor_from_config(config: Dict[str, Any],
                                 predictor_type: Optional[str] = None):
    """
    Create predictor instance from configuration.

    Args:
        config: Configuration dictionary (sizes and predictor choice)
        predictor_type: Override the configured predictor

    Returns:
        Predictor instance
    """
    from ..predictors import PREDICTORS
    from ..simulation.simulator import SimulationConfig

    sim_config = SimulationConfig.from_dict(config, predictor=predictor_type)
    return PREDICTORS[sim_config.predictor](sim_config.predictor_config())


def save_results(results: Union[Dict[str, Any], List[Dict[str, Any]]],
                 output_dir: Union[str, Path],
                 name: str = "results",
                 formats: tuple = ('json', 'csv')) -> Dict[str, Path]:
    """
    Save results to multiple formats.

    Args:
        results: Results dictionary, or a list of per-trace dictionaries
        output_dir: Output directory
        name: Base filename
        formats: Output formats ('json', 'csv', 'yaml')

    Returns:
        Dictionary of format -> output path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base_name = f"{name}_{timestamp}"

    output_paths = {}

    if 'json' in formats:
        json_path = output_dir / f"{base_name}.json"
        with open(json_path, 'w') as f:
            json.dump(results, f, indent=2, default=str)
        output_paths['json'] = json_path

    if 'yaml' in formats:
        yaml_path = output_dir / f"{base_name}.yaml"
        with open(yaml_path, 'w') as f:
            yaml.safe_dump(results, f, default_flow_style=False)
        output_paths['yaml'] = yaml_path

    if 'csv' in formats:
        csv_path = output_dir / f"{base_name}.csv"
        _save_results_csv(results, csv_path)
        output_paths['csv'] = csv_path

    return output_paths


def _flatten(prefix: str, value: Any, rows: list) -> None:
    if isinstance(value, dict):
        for sub_key, sub_value in value.items():
            _flatten(f"{prefix}.{sub_key}" if prefix else str(sub_key),
                     sub_value, rows)
    else:
        rows.append([prefix, value])


def _save_results_csv(results: Union[Dict[str, Any], List[Dict[str, Any]]],
                      filepath: Path) -> None:
    """Save results to CSV format."""
    rows: list = []
    if isinstance(results, list):
        for i, entry in enumerate(results):
            _flatten(str(i), entry, rows)
    else:
        _flatten("", results, rows)

    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerows(rows)


def setup_logging(level: str = "INFO",
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        level: Logging level
        log_file: Optional log file path

    Returns:
        Logger instance
    """
    logger = logging.getLogger("bpsim")
    logger.setLevel(getattr(logging, level.upper()))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler (if specified)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
