# Trace Package
from .parser import (
    TraceParser,
    TraceFilter,
    BranchTrace,
    create_sample_trace,
    filtered_path_for,
)
from .formats import BranchEvent, RiscvTraceFormat

__all__ = [
    'TraceParser',
    'TraceFilter',
    'BranchTrace',
    'BranchEvent',
    'RiscvTraceFormat',
    'create_sample_trace',
    'filtered_path_for',
]
