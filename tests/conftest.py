import pytest

from bpsim.trace.formats import BranchEvent, RiscvTraceFormat


def trace_lines(pairs):
    """Filtered trace lines for (branch_address, next_address) pairs."""
    lines = []
    for branch, nxt in pairs:
        lines.append(RiscvTraceFormat.format_line(branch, "00b50463 beq a0,a1,8") + "\n")
        lines.append(RiscvTraceFormat.format_line(nxt, "00150513 addi a0,a0,1") + "\n")
    return lines


def events(pairs):
    return [BranchEvent(b, n) for b, n in pairs]


# taken = False, True, False
EXAMPLE_PAIRS = [(0x100, 0x104), (0x100, 0x200), (0x100, 0x104)]


@pytest.fixture
def write_trace(tmp_path):
    def _write(pairs, name="test_filtered.trc", extra_lines=()):
        path = tmp_path / name
        with open(path, 'w') as f:
            f.writelines(trace_lines(pairs))
            f.writelines(extra_lines)
        return path
    return _write
