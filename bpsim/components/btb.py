"""
Branch Target Buffer

2-way set-associative table keyed by branch address. Entries carry
per-branch state (local history and, optionally, a private pattern
table) rather than target addresses. Replacement is true LRU, kept
as one bit per set.
"""

import logging
from typing import List, Optional

from .counters import CounterTable
from .history import HistoryRegister
from .tables import AddressCodec

logger = logging.getLogger(__name__)


class BTBEntry:
    """
    One way of a BTB set.

    `set_index` and `way` identify the slot and never change; all
    other fields are rewritten when the slot is reallocated.
    """

    __slots__ = ('set_index', 'way', 'tag', 'valid', 'history', 'counters')

    def __init__(self, set_index: int, way: int, history_bits: int,
                 private_counters: bool = False):
        self.set_index = set_index
        self.way = way
        self.tag = 0
        self.valid = False
        self.history = HistoryRegister(history_bits)
        self.counters: Optional[CounterTable] = (
            CounterTable(self.history.table_size) if private_counters else None
        )

    def reset(self, tag: int) -> None:
        """Reallocate the slot to a new branch."""
        self.tag = tag
        self.valid = True
        self.history.reset()
        if self.counters is not None:
            self.counters.reset()

    def __repr__(self) -> str:
        state = f"tag=0x{self.tag:x}" if self.valid else "invalid"
        return f"BTBEntry(set={self.set_index}, way={self.way}, {state}, {self.history!r})"


class BTBSet:
    """Two entries plus the way number of the least recently used one."""

    __slots__ = ('entries', 'lru')

    def __init__(self, set_index: int, history_bits: int,
                 private_counters: bool = False):
        self.entries = [
            BTBEntry(set_index, way, history_bits, private_counters)
            for way in range(BranchTargetBuffer.WAYS)
        ]
        # Way 0 is the first victim
        self.lru = 0

    def find(self, tag: int) -> Optional[BTBEntry]:
        for entry in self.entries:
            if entry.valid and entry.tag == tag:
                return entry
        return None

    def victim(self) -> BTBEntry:
        return self.entries[self.lru]

    def touch(self, entry: BTBEntry) -> None:
        """Mark `entry` most recently used; the other way becomes LRU."""
        self.lru = 1 - entry.way


class BranchTargetBuffer:
    """
    Set-associative branch table.

    A tag that is not resident in its own set is a miss, however full
    the other sets are.
    """

    WAYS = 2

    def __init__(self, num_entries: int, history_bits: int,
                 private_counters: bool = False):
        """
        Initialize the BTB.

        Args:
            num_entries: Total entries (sets * 2), power of two
            history_bits: Width of each entry's local history register
            private_counters: Give every entry its own pattern table
        """
        self.index_bits = AddressCodec.index_bits_for(num_entries, self.WAYS)
        self.num_entries = num_entries
        self.num_sets = num_entries // self.WAYS
        self.history_bits = history_bits
        self.private_counters = private_counters

        self.sets = [
            BTBSet(i, history_bits, private_counters)
            for i in range(self.num_sets)
        ]

        # Access statistics
        self.lookups = 0
        self.hits = 0
        self.evictions = 0

        logger.debug("BTB: %d entries, %d sets, %d index bits, "
                     "%d history bits, private counters: %s",
                     num_entries, self.num_sets, self.index_bits,
                     history_bits, private_counters)

    def _locate(self, address: int):
        index = AddressCodec.index(address, self.index_bits)
        tag = AddressCodec.tag(address, self.index_bits)
        return self.sets[index % self.num_sets], tag

    def lookup(self, address: int) -> Optional[BTBEntry]:
        """
        Find the entry for a branch.

        Returns:
            The matching valid entry, or None on a miss
        """
        btb_set, tag = self._locate(address)
        self.lookups += 1
        entry = btb_set.find(tag)
        if entry is not None:
            self.hits += 1
        return entry

    def insert_or_evict(self, address: int) -> BTBEntry:
        """
        Allocate an entry for a branch that missed.

        The set's LRU entry is reset for the new tag and returned. The
        LRU bit is left alone; callers `touch` the entry once used.
        """
        btb_set, tag = self._locate(address)
        entry = btb_set.victim()
        if entry.valid:
            self.evictions += 1
            logger.debug("BTB evict set %d way %d tag 0x%x for tag 0x%x",
                         entry.set_index, entry.way, entry.tag, tag)
        entry.reset(tag)
        return entry

    def touch(self, entry: BTBEntry) -> None:
        """Record a use of `entry` in its set's LRU state."""
        self.sets[entry.set_index].touch(entry)

    def resident_tags(self, address: int) -> List[int]:
        """Tags currently valid in the set `address` maps to."""
        btb_set, _ = self._locate(address)
        return [e.tag for e in btb_set.entries if e.valid]

    @property
    def misses(self) -> int:
        return self.lookups - self.hits

    def get_storage_bits(self, tag_bits: int = 64) -> int:
        """
        Storage estimate in bits.

        Args:
            tag_bits: Address width the tag is cut from
        """
        bits_per_entry = (tag_bits - self.index_bits) + self.history_bits + 1
        if self.private_counters:
            bits_per_entry += (1 << self.history_bits) * 2
        # One LRU bit per set
        return self.num_entries * bits_per_entry + self.num_sets

    def get_statistics(self) -> dict:
        """Get BTB statistics."""
        return {
            'entries': self.num_entries,
            'sets': self.num_sets,
            'index_bits': self.index_bits,
            'lookups': self.lookups,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hits / self.lookups if self.lookups else 0.0,
            'evictions': self.evictions,
        }

    def __len__(self) -> int:
        return self.num_entries
