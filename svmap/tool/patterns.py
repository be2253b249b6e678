# See LICENSE for details
"""
Reference patterns for HDL tool logs.

Each pattern recognizes one vendor flavour of a file/line(/column) reference
and declares how many consecutive lines (its window) it may span. The default
set covers VCS, Verilator, Vivado, Design Compiler and Formality output.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple


@dataclass(frozen=True)
class Pattern:
    """
    One reference pattern.

    Attributes:
        name: Short identifier used in logs and tests
        window: Number of consecutive lines the pattern may span (>= 1)
        regex: Compiled regex with named groups 'path', 'line' and optionally 'column'
    """

    name: str
    window: int
    regex: re.Pattern

    def __post_init__(self):
        """Validate pattern data."""
        if self.window < 1:
            raise ValueError(f'window must be >= 1, got {self.window}')
        groups = self.regex.groupindex
        if 'path' not in groups or 'line' not in groups:
            raise ValueError(f"pattern '{self.name}' needs named groups 'path' and 'line'")

    def finditer(self, text: str) -> Iterator[re.Match]:
        """Iterate non-overlapping matches in text, leftmost first."""
        return self.regex.finditer(text)


class PatternSet:
    """
    Ordered, immutable collection of patterns.

    Patterns are tried in the order given; the first one that matches wins.
    The scanners size their line window with max_window.
    """

    def __init__(self, patterns: Iterable[Pattern]):
        self._patterns: Tuple[Pattern, ...] = tuple(patterns)
        if not self._patterns:
            raise ValueError('PatternSet needs at least one pattern')
        self.max_window = max(p.window for p in self._patterns)

    @classmethod
    def from_tuples(cls, entries: Iterable[Tuple[str, int, str]]) -> 'PatternSet':
        """
        Build a set from (name, window, regex source) triples.

        Args:
            entries: Iterable of (name, window, regex) in priority order

        Returns:
            A new PatternSet

        Raises:
            ValueError: If a window is invalid or a regex lacks the required groups
        """
        patterns = []
        for name, window, source in entries:
            try:
                regex = re.compile(source)
            except re.error as e:
                raise ValueError(f"pattern '{name}' does not compile: {e}") from e
            patterns.append(Pattern(name=name, window=window, regex=regex))
        return cls(patterns)

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __getitem__(self, index: int) -> Pattern:
        return self._patterns[index]

    def __repr__(self) -> str:
        names = ', '.join(p.name for p in self._patterns)
        return f'PatternSet([{names}], max_window={self.max_window})'


DEFAULT_PATTERNS = PatternSet.from_tuples(
    [
        # "path", 10   /   path, line 10
        ('comma_line', 1, r'"?(?P<path>[^\s"]+)"?, (?:line )?(?P<line>[0-9]+)'),
        # path:10   /   path:10:4
        ('colon', 1, r'(?P<path>[^:\s\[\]]+):(?P<line>[0-9]+)(?::(?P<column>[0-9]+))?'),
        # File: path Line: 10
        ('file_line', 1, r'File: (?P<path>[^:\s\[\]]+) Line: (?P<line>[0-9]+)'),
        # line 10 in file
        #     'path'
        ('line_in_file', 2, r"line (?P<line>[0-9]+) in file[^\S\n]*\n[^\S\n]*'(?P<path>[^'\n]+)'"),
    ]
)
