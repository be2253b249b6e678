# See LICENSE for details
"""
Extractor: locates file/line(/column) references in tool logs.

Both interfaces apply the same per-line rule. For line i every pattern is
tried in priority order; a pattern with window k searches the text of lines
i-k+1..i (joined with '\\n') once k lines have been seen, and only matches
whose last character sits on line i count. The first such match wins and
becomes the extraction of line i, so a line carries at most one extraction.

- extract(): whole-buffer interface, returns all records of a complete text.
- Extractor: incremental interface, fed one line at a time through a bounded
  deque of max_window lines; lines come back with their extraction once they
  fall out of the window.

Spans are offsets into the scanned text; for the incremental interface the
scanned text is '\\n'.join(pushed lines), which makes both interfaces return
identical records.
"""

import dataclasses
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Iterator, List, Optional, Sequence, Tuple

from svmap.tool.patterns import DEFAULT_PATTERNS, PatternSet


@dataclass(frozen=True)
class ExtractionRecord:
    """
    One matched reference.

    Attributes:
        start: Offset of the first matched character
        end: Offset one past the last matched character
        path: Path as captured, not resolved or canonicalized
        line: Line number (1-indexed)
        column: Column number (1-indexed), None when the reference has none
    """

    start: int
    end: int
    path: str
    line: int
    column: Optional[int] = None

    def __post_init__(self):
        """Validate record data."""
        if not 0 <= self.start <= self.end:
            raise ValueError(f'invalid span [{self.start}, {self.end})')
        if self.line < 1:
            raise ValueError(f'line must be >= 1, got {self.line}')
        if self.column is not None and self.column < 1:
            raise ValueError(f'column must be >= 1, got {self.column}')

    @property
    def span(self) -> Tuple[int, int]:
        """Half-open (start, end) span."""
        return self.start, self.end


@dataclass(frozen=True)
class ExtractedLine:
    """
    A line handed back by the incremental Extractor.

    Attributes:
        text: Line text without separator
        offset: Offset of the line start in the scanned text
        extraction: Record whose span ends on this line, if any
        indent: Column of the record start within the line it starts on
    """

    text: str
    offset: int
    extraction: Optional[ExtractionRecord] = None
    indent: int = 0


def _scan_window(patterns: PatternSet, window: Sequence[Tuple[int, str]]) -> Optional[Tuple[ExtractionRecord, int]]:
    """
    Find the extraction of the last line in window.

    Args:
        patterns: Patterns in priority order
        window: (offset, text) of the most recent lines, oldest first

    Returns:
        (record, indent) for the first matching pattern, or None
    """
    window = list(window)
    for pattern in patterns:
        # a depth-k pattern needs k lines of context
        if pattern.window > len(window):
            continue
        scope = window[-pattern.window :]
        base = scope[0][0]
        text = '\n'.join(line for _, line in scope)
        tail = scope[-1][0] - base
        for match in pattern.finditer(text):
            if match.end() <= tail:
                continue
            column = match.group('column') if 'column' in match.re.groupindex else None
            record = ExtractionRecord(
                start=base + match.start(),
                end=base + match.end(),
                path=match.group('path'),
                line=int(match.group('line')),
                column=int(column) if column else None,
            )
            return record, _indent(scope, record.start)
    return None


def _indent(scope: Sequence[Tuple[int, str]], start: int) -> int:
    for offset, _ in reversed(scope):
        if offset <= start:
            return start - offset
    return 0


def extract(text: str, patterns: PatternSet = DEFAULT_PATTERNS) -> List[ExtractionRecord]:
    """
    Scan a complete text and return its extraction records in scan order.

    Args:
        text: Text to scan
        patterns: Patterns to apply (default: DEFAULT_PATTERNS)

    Returns:
        List of ExtractionRecord, at most one per line, ordered by end offset
    """
    records = []
    window: Deque[Tuple[int, str]] = deque(maxlen=patterns.max_window)
    offset = 0
    for line in text.split('\n'):
        window.append((offset, line))
        found = _scan_window(patterns, window)
        if found:
            records.append(found[0])
        offset += len(line) + 1
    return records


class Extractor:
    """
    Incremental extractor.

    Keeps the last max_window lines in a deque. Once the deque is full every
    push evicts the oldest line, which is returned with its final extraction.
    end() drains what is left.

    Usage:
        extractor = Extractor()
        for line in lines:
            done = extractor.push_line(line)
            if done:
                emit(done)
        for done in extractor.end():
            emit(done)
    """

    def __init__(self, patterns: PatternSet = DEFAULT_PATTERNS):
        self.patterns = patterns
        self._queue: Deque[ExtractedLine] = deque()
        self._offset = 0
        self.lines = 0

    def push_line(self, line: str) -> Optional[ExtractedLine]:
        """
        Add the next line of input.

        Args:
            line: Line text without its trailing separator

        Returns:
            The evicted oldest line once the window is full, otherwise None

        Raises:
            ValueError: If the line contains a line separator
        """
        if '\n' in line:
            raise ValueError('push_line() expects a single line without separator')

        evicted = None
        if len(self._queue) == self.patterns.max_window:
            evicted = self._queue.popleft()

        entry = ExtractedLine(text=line, offset=self._offset)
        self._queue.append(entry)
        self._offset += len(line) + 1
        self.lines += 1

        found = _scan_window(self.patterns, [(e.offset, e.text) for e in self._queue])
        if found:
            record, indent = found
            self._queue[-1] = dataclasses.replace(entry, extraction=record, indent=indent)

        return evicted

    def end(self) -> List[ExtractedLine]:
        """
        Drain the remaining lines in order and reset for a new input.

        Returns:
            The queued lines with their final extraction state
        """
        remaining = list(self._queue)
        self._queue.clear()
        self._offset = 0
        self.lines = 0
        return remaining

    def __len__(self) -> int:
        """Number of lines currently queued."""
        return len(self._queue)


def extract_lines(lines: Iterable[str], patterns: PatternSet = DEFAULT_PATTERNS) -> Iterator[ExtractedLine]:
    """
    Run the incremental extractor over an iterable of lines.

    Args:
        lines: Lines without separators
        patterns: Patterns to apply

    Yields:
        ExtractedLine objects in input order
    """
    extractor = Extractor(patterns)
    for line in lines:
        done = extractor.push_line(line)
        if done is not None:
            yield done
    yield from extractor.end()
