# See LICENSE for details

import logging
from dataclasses import replace
from typing import Iterable, Iterator, List, Optional

from svmap.core.config import AnnotateConfig, ConfigError
from svmap.tool.annotator import Annotator, PendingAnnotation
from svmap.tool.extractor import ExtractionRecord, extract, extract_lines
from svmap.tool.patterns import DEFAULT_PATTERNS, PatternSet
from svmap.tool.resolver import Resolver
from svmap.tool.tool import Tool

logger = logging.getLogger(__name__)


class SourceAnnotator(Tool):
    """
    Annotates tool logs with original source locations.

    Wires Extractor -> Resolver -> Annotator. Resolution is best effort:
    references that do not resolve are left unannotated.

    Usage:
        dut = SourceAnnotator()
        if not dut.setup(indicator='^--'):
            print(dut.get_error())
        print(dut.annotate_text(log_text))
    """

    def __init__(self, patterns: PatternSet = DEFAULT_PATTERNS):
        super().__init__()
        self.patterns = patterns
        self.config = AnnotateConfig()
        self.resolver: Optional[Resolver] = None
        self.annotator: Optional[Annotator] = None
        self.references = 0
        self.annotated = 0

    def setup(self, indicator: Optional[str] = None, config: Optional[AnnotateConfig] = None) -> bool:
        """
        Prepare the pipeline.

        Args:
            indicator: Annotation token, overrides config.indicator
            config: Settings (default: AnnotateConfig())

        Returns:
            True if the pipeline is ready, False otherwise (see get_error()).
        """
        config = config or AnnotateConfig()
        try:
            if indicator is not None:
                config = replace(config, indicator=indicator)
            config.validate()
        except ConfigError as e:
            self.set_error(f'Invalid configuration: {e}')
            return False

        self.config = config
        self.resolver = Resolver(cache=config.cache_maps)
        self.annotator = Annotator(indicator=config.indicator)
        self.error_message = ''
        self._is_ready = True
        return True

    def pending_for(self, records: Iterable[ExtractionRecord]) -> List[PendingAnnotation]:
        """
        Resolve records, dropping the ones that fail.

        Returns:
            PendingAnnotation list sorted by span end
        """
        self.check_ready()
        pendings = []
        for record in records:
            self.references += 1
            location = self.resolver.try_resolve(record.path, record.line, record.column)
            if location is not None:
                pendings.append(PendingAnnotation.from_record(record, location))
        self.annotated += len(pendings)
        return sorted(pendings, key=lambda p: p.sort_key)

    def annotate_text(self, text: str) -> str:
        """
        Whole-buffer mode: annotate a complete text.

        Args:
            text: Log text

        Returns:
            The text with annotation lines inserted

        Raises:
            RuntimeError: If setup() did not succeed
        """
        self.check_ready()
        self.references = 0
        self.annotated = 0
        pendings = self.pending_for(extract(text, self.patterns))
        logger.info('annotated %d of %d references', self.annotated, self.references)
        return self.annotator.merge(text, pendings)

    def annotate_lines(self, lines: Iterable[str]) -> Iterator[str]:
        """
        Streaming mode: annotate lines as they arrive.

        Output lags the input by at most the pattern window.

        Args:
            lines: Input lines without separators

        Yields:
            Output lines without separators

        Raises:
            RuntimeError: If setup() did not succeed
        """
        self.check_ready()
        self.references = 0
        self.annotated = 0
        for line in extract_lines(lines, self.patterns):
            location = None
            record = line.extraction
            if record is not None:
                self.references += 1
                location = self.resolver.try_resolve(record.path, record.line, record.column)
                if location is not None:
                    self.annotated += 1
            yield from self.annotator.iter_lines([(line, location)])
        logger.info('annotated %d of %d references', self.annotated, self.references)
