# See LICENSE for details
"""
Annotator: re-emits a log with resolved locations inserted under references.

An annotation line is the match column in spaces, the indicator, one space and
path:line:column of the original location:

    %Error: top.sv:23:1: syntax error, unexpected endmodule
            ^-- /src/rtl/orig.sv:5:3
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from svmap.tool.extractor import ExtractedLine, ExtractionRecord
from svmap.tool.resolver import ResolvedLocation

DEFAULT_INDICATOR = '^--'


@dataclass(frozen=True)
class PendingAnnotation:
    """
    A resolved reference waiting to be emitted.

    Attributes:
        start: Span start offset in the scanned text
        end: Span end offset in the scanned text
        location: Resolved original location
    """

    start: int
    end: int
    location: ResolvedLocation

    @classmethod
    def from_record(cls, record: ExtractionRecord, location: ResolvedLocation) -> 'PendingAnnotation':
        return cls(start=record.start, end=record.end, location=location)

    @property
    def sort_key(self) -> Tuple[int, int]:
        return self.end, self.start


class Annotator:
    """
    Merges the original text with annotation lines.

    Usage:
        annotator = Annotator(indicator='^--')
        out = annotator.merge(text, pendings)
    """

    def __init__(self, indicator: str = DEFAULT_INDICATOR):
        self.indicator = indicator

    def format_line(self, indent: int, location: ResolvedLocation) -> str:
        """
        Build one annotation line (without separator).

        Args:
            indent: Number of leading spaces
            location: Resolved location to print

        Returns:
            The annotation text
        """
        return f'{" " * max(0, indent)}{self.indicator} {location}'

    def iter_merge(self, text: str, pendings: Iterable[PendingAnnotation]) -> Iterator[str]:
        """
        Yield the text in chunks with annotation lines inserted.

        One pass over the line boundaries with a pointer into the pendings
        sorted by end offset. A pending is emitted after the line holding the
        last character of its span; pendings of one line come out in start
        order.

        Args:
            text: The scanned text
            pendings: Annotations with spans into text, in any order

        Yields:
            Original lines (with their separators) and annotation lines
        """
        queue = sorted(pendings, key=lambda p: p.sort_key)
        pos = 0
        line_start = 0
        while True:
            nl = text.find('\n', line_start)
            if nl == -1:
                next_start = len(text)
                term = ''
            else:
                next_start = nl + 1
                term = '\r\n' if nl > line_start and text[nl - 1] == '\r' else '\n'

            yield text[line_start:next_start]

            group: List[PendingAnnotation] = []
            while pos < len(queue) and queue[pos].end <= next_start:
                group.append(queue[pos])
                pos += 1
            for pending in sorted(group, key=lambda p: p.start):
                annotation = self.format_line(self._indent(text, line_start, pending.start), pending.location)
                if term:
                    yield annotation + term
                else:
                    yield '\n' + annotation

            if nl == -1:
                break
            line_start = next_start

    def merge(self, text: str, pendings: Iterable[PendingAnnotation]) -> str:
        """Return the annotated text. See iter_merge()."""
        return ''.join(self.iter_merge(text, pendings))

    def iter_lines(self, lines: Iterable[Tuple[ExtractedLine, Optional[ResolvedLocation]]]) -> Iterator[str]:
        """
        Streaming form: yield each line followed by its annotation, if any.

        Lines are split on '\\n' only, so a CRLF line keeps its '\\r'; the
        annotation copies it to end the same way once the '\\n' is added back.

        Args:
            lines: (ExtractedLine, location or None) pairs in input order

        Yields:
            Lines without '\\n' separators
        """
        for line, location in lines:
            yield line.text
            if location is not None:
                cr = '\r' if line.text.endswith('\r') else ''
                yield self.format_line(line.indent, location) + cr

    @staticmethod
    def _indent(text: str, line_start: int, start: int) -> int:
        if start >= line_start:
            return start - line_start
        # span starts on an earlier line
        return start - (text.rfind('\n', 0, start) + 1)
