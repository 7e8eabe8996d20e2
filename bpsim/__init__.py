# Branch Predictor Simulator Package
"""
bpsim - trace-driven branch direction predictor simulator

Replays riscvOVPsim instruction traces through:
- Global history predictor
- Local history predictors (shared or per-entry pattern tables) behind a 2-way BTB
- Tournament predictor choosing between local and global
"""

__version__ = "1.0.0"
