"""
Trace Parser

Filters raw riscvOVPsim traces down to branch/next-instruction line
pairs and turns filtered traces into a stream of BranchEvents.
Handles compressed traces and provides a streaming interface.
"""

import bz2
import gzip
import logging
import lzma
import random
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from .formats import BranchEvent, RiscvTraceFormat
from ..errors import ConfigError, MalformedTraceLine, TraceIOError

logger = logging.getLogger(__name__)


MALFORMED_POLICIES = ('abort', 'skip')


class BranchTrace:
    """
    Container for branch trace data.

    Can be used for streaming or caching trace data.
    """

    def __init__(self, events: Optional[List[BranchEvent]] = None,
                 name: str = "memory"):
        self._events = events or []
        self.name = name

    def add(self, event: BranchEvent) -> None:
        """Add a branch event."""
        self._events.append(event)

    def __iter__(self) -> Iterator[BranchEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, idx: int) -> BranchEvent:
        return self._events[idx]

    def get_statistics(self) -> dict:
        """Get trace statistics."""
        if not self._events:
            return {'count': 0}

        taken_count = sum(1 for e in self._events if e.taken)
        unique_branches = len(set(e.branch_address for e in self._events))

        return {
            'count': len(self._events),
            'taken': taken_count,
            'not_taken': len(self._events) - taken_count,
            'taken_ratio': taken_count / len(self._events),
            'unique_branches': unique_branches,
        }


# Failures while reading a trace: I/O errors, truncated or corrupt archives
_READ_ERRORS = (OSError, EOFError, lzma.LZMAError)


def _open_text(filepath: Path, mode: str = 'rt'):
    opener = TraceParser.COMPRESSION.get(filepath.suffix.lower(), open)
    try:
        # Undecodable bytes become U+FFFD and fail address parsing as a malformed line
        return opener(filepath, mode, errors='replace')
    except OSError as e:
        raise TraceIOError(filepath, e.strerror or str(e)) from e


def _iter_lines(file_handle, filepath: Path) -> Iterator[str]:
    try:
        yield from file_handle
    except _READ_ERRORS as e:
        raise TraceIOError(filepath, str(e)) from e


def _read_lines(filepath: Path) -> Iterator[str]:
    """Yield lines of a (possibly compressed) text file."""
    file_handle = _open_text(filepath)
    try:
        yield from _iter_lines(file_handle, filepath)
    finally:
        file_handle.close()


class TraceParser:
    """
    Filtered trace parser.

    A filtered trace alternates branch-instruction lines and the
    instruction line executed right after each branch. The parser
    pairs them up (AWAIT_BRANCH -> AWAIT_NEXT -> emit) and drops a
    trailing branch line with no successor.
    """

    # Compression handlers
    COMPRESSION = {
        '.gz': gzip.open,
        '.gzip': gzip.open,
        '.xz': lzma.open,
        '.bz2': bz2.open,
        '.lzma': lzma.open,
    }

    def __init__(self, on_malformed: str = 'abort'):
        """
        Initialize parser.

        Args:
            on_malformed: 'abort' raises MalformedTraceLine, 'skip' drops
                the branch pair containing the bad line and continues
        """
        if on_malformed not in MALFORMED_POLICIES:
            raise ConfigError(
                f"on_malformed must be one of {MALFORMED_POLICIES}, got {on_malformed!r}"
            )
        self.on_malformed = on_malformed
        self.format = RiscvTraceFormat()
        self.malformed_lines = 0
        self.unmatched_lines = 0

    def _address(self, line: str, line_number: int) -> Optional[int]:
        try:
            return self.format.parse_address(line, line_number)
        except MalformedTraceLine as e:
            if self.on_malformed == 'abort':
                raise
            self.malformed_lines += 1
            logger.warning("Skipping branch pair: %s", e)
            return None

    def parse_lines(self, lines: Iterable[str]) -> Iterator[BranchEvent]:
        """
        Pair up filtered trace lines into branch events.

        Blank lines are ignored. A malformed line in 'skip' mode still
        takes its place in the pairing, so the rest of the file stays
        aligned.
        """
        self.malformed_lines = 0
        self.unmatched_lines = 0

        awaiting_branch = True
        branch_address: Optional[int] = None
        line_number = 0

        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue

            address = self._address(line, line_number)
            if awaiting_branch:
                branch_address = address
                awaiting_branch = False
                continue

            awaiting_branch = True
            if branch_address is not None and address is not None:
                yield BranchEvent(branch_address, address)

        if not awaiting_branch:
            self.unmatched_lines += 1
            logger.debug("Dropping unmatched branch line at end of trace (line %d)",
                         line_number)

    def parse_file(self, filepath: Union[str, Path],
                   max_branches: Optional[int] = None,
                   skip_branches: int = 0) -> Iterator[BranchEvent]:
        """
        Parse a filtered trace file.

        Args:
            filepath: Path to trace file
            max_branches: Maximum branches to read (None = all)
            skip_branches: Number of branches to skip

        Yields:
            BranchEvent for each branch

        Raises:
            TraceIOError: The file cannot be opened or read
        """
        filepath = Path(filepath)
        count = 0
        skipped = 0

        for event in self.parse_lines(_read_lines(filepath)):
            if skipped < skip_branches:
                skipped += 1
                continue

            yield event
            count += 1

            if max_branches and count >= max_branches:
                break

    def load_trace(self, filepath: Union[str, Path],
                   max_branches: Optional[int] = None,
                   skip_branches: int = 0) -> BranchTrace:
        """
        Load entire trace into memory.

        Returns:
            BranchTrace with all events
        """
        events = list(self.parse_file(filepath, max_branches, skip_branches))
        return BranchTrace(events, name=str(filepath))


class TraceFilter:
    """
    Reduce a raw instruction trace to branch-adjacent line pairs.

    Every line naming a conditional branch is kept together with the
    line immediately after it.
    """

    def __init__(self):
        self.format = RiscvTraceFormat()

    def filter_lines(self, lines: Iterable[str]) -> Iterator[str]:
        write_next = False
        for line in lines:
            if write_next:
                yield line
                write_next = False
            if self.format.is_branch_line(line):
                yield line
                write_next = True

    def filter_file(self, input_path: Union[str, Path],
                    output_path: Union[str, Path]) -> int:
        """
        Write the filtered form of `input_path` to `output_path`.

        Returns:
            Number of lines written
        """
        input_path = Path(input_path)
        output_path = Path(output_path)

        written = 0
        source = _open_text(input_path)
        try:
            try:
                out = open(output_path, 'w')
            except OSError as e:
                raise TraceIOError(output_path, e.strerror or str(e)) from e

            try:
                with out:
                    for line in self.filter_lines(_iter_lines(source, input_path)):
                        if not line.endswith('\n'):
                            line += '\n'
                        out.write(line)
                        written += 1
            except TraceIOError:
                output_path.unlink()
                raise
        finally:
            source.close()

        logger.info("Filtered branch commands have been written to %s (%d lines)",
                    output_path, written)
        return written


def filtered_path_for(raw_path: Union[str, Path]) -> Path:
    """coremark_val.trc -> coremark_val_filtered.trc"""
    raw_path = Path(raw_path)
    return raw_path.with_name(f"{raw_path.stem}_filtered{raw_path.suffix or '.trc'}")


def create_sample_trace(filepath: Union[str, Path],
                        num_branches: int = 10000,
                        pattern: str = 'random',
                        num_sites: int = 16,
                        seed: Optional[int] = None) -> None:
    """
    Create a sample filtered trace file for testing.

    Args:
        filepath: Output path
        num_branches: Number of branches to generate
        pattern: Pattern type ('random', 'loop', 'biased', 'alternating')
        num_sites: Number of distinct branch addresses
        seed: Random seed
    """
    rng = random.Random(seed)
    filepath = Path(filepath)
    base = 0x80000000
    sites = [base + 0x40 * i for i in range(num_sites)]
    visits = [0] * num_sites

    with open(filepath, 'w') as f:
        for i in range(num_branches):
            site = rng.randrange(num_sites)
            pc = sites[site]
            n = visits[site]
            visits[site] += 1

            if pattern == 'loop':
                # Loop pattern: mostly taken, falls through every 10th visit
                taken = (n % 10) != 9
            elif pattern == 'biased':
                taken = rng.random() > 0.2
            elif pattern == 'alternating':
                taken = n % 2 == 0
            else:
                taken = rng.random() > 0.5

            target = pc - 0x20 if taken else pc + 4
            f.write(RiscvTraceFormat.format_line(pc, "00b50463 bne a0,a1,-32") + "\n")
            f.write(RiscvTraceFormat.format_line(target, "00150513 addi a0,a0,1") + "\n")
