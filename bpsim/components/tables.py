"""
Table Indexing

Splits branch addresses into the index that selects a table slot and
the tag that identifies the branch within that slot.
"""

from ..errors import ConfigError


class AddressCodec:
    """
    Index/tag split of a branch address.

    The low `index_bits` bits select the slot, the remaining high bits
    form the tag.
    """

    @staticmethod
    def index(address: int, index_bits: int) -> int:
        """Low `index_bits` bits of the address."""
        return address & ((1 << index_bits) - 1)

    @staticmethod
    def tag(address: int, index_bits: int) -> int:
        """Address bits above the index."""
        return address >> index_bits

    @staticmethod
    def index_bits_for(table_entries: int, ways: int = 1) -> int:
        """
        Index width for a table of `table_entries` split into `ways`.

        Args:
            table_entries: Total number of entries
            ways: Entries per set

        Returns:
            log2(table_entries / ways)
        """
        if ways < 1 or table_entries < ways or table_entries % ways:
            raise ConfigError(
                f"{table_entries} entries cannot be split into {ways}-way sets"
            )
        sets = table_entries // ways
        if sets & (sets - 1):
            raise ConfigError(
                f"Set count must be a power of two, got {sets} "
                f"({table_entries} entries / {ways} ways)"
            )
        return sets.bit_length() - 1
