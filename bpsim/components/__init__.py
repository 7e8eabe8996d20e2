# Components Package
from .counters import SaturatingCounter, CounterTable
from .history import HistoryRegister
from .tables import AddressCodec
from .btb import BranchTargetBuffer, BTBEntry, BTBSet

__all__ = [
    'SaturatingCounter',
    'CounterTable',
    'HistoryRegister',
    'AddressCodec',
    'BranchTargetBuffer',
    'BTBEntry',
    'BTBSet',
]
