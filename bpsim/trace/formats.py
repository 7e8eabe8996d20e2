"""
Trace Format Definitions

riscvOVPsim instruction trace lines and the branch events derived
from consecutive (branch, next instruction) line pairs.
"""

import re
from dataclasses import dataclass

from ..errors import MalformedTraceLine


INSTRUCTION_BYTES = 4
ADDRESS_MASK = (1 << 64) - 1


@dataclass(frozen=True)
class BranchEvent:
    """One executed branch: its address and the address executed next."""
    branch_address: int
    next_address: int

    @property
    def taken(self) -> bool:
        # Fall-through is the next sequential instruction
        return self.next_address != self.branch_address + INSTRUCTION_BYTES


class RiscvTraceFormat:
    """
    riscvOVPsim trace format.

    Relevant lines look like::

        Info 'riscvOVPsim/cpu', 0x0000000080000104(main+8): 00b50463 beq a0,a1,8000010c

    Only the leading address is used by the simulator.
    """

    ADDRESS_PATTERN = re.compile(r"Info 'riscvOVPsim/cpu', 0x([0-9a-fA-F]+)")

    # Matched as substrings, so e.g. bnez/bltz lines count as branches
    BRANCH_MNEMONICS = (
        'beq', 'beqz', 'bne', 'blt', 'bge', 'bgtz',
        'blez', 'bltz', 'bgez', 'bltu', 'bgeu',
    )

    @classmethod
    def parse_address(cls, line: str, line_number: int = 0) -> int:
        """
        Extract the instruction address of a trace line.

        Args:
            line: Raw trace line
            line_number: 1-based position in the file, for error reports

        Raises:
            MalformedTraceLine: No address, or one wider than 64 bits
        """
        match = cls.ADDRESS_PATTERN.match(line.lstrip())
        if match is None:
            raise MalformedTraceLine(line_number, line)

        address = int(match.group(1), 16)
        if address > ADDRESS_MASK:
            raise MalformedTraceLine(line_number, line)
        return address

    @classmethod
    def is_branch_line(cls, line: str) -> bool:
        return any(mnemonic in line for mnemonic in cls.BRANCH_MNEMONICS)

    @staticmethod
    def format_line(address: int, disassembly: str = "") -> str:
        """Render a trace line for `address` (used for synthetic traces)."""
        line = f"Info 'riscvOVPsim/cpu', 0x{address:016x}"
        if disassembly:
            line += f": {disassembly}"
        return line
