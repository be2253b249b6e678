#!/usr/bin/env python3
# See LICENSE for details
"""
Annotate HDL tool logs with original source locations.

References such as 'top.sv:23:1' whose file ends with a
'//# sourceMappingURL=top.sv.map' line are resolved through the map, and an
annotation line pointing at the original source is inserted below them.

Usage examples:
  verilator --lint-only top.sv 2>&1 | svmap
  svmap -o annotated.log sim.log '--indicator=-->'
  python3 -m svmap.tool.cli_annotate --mode buffer synth.log
"""

import argparse
import logging
import sys
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional, TextIO

from rich.console import Console
from rich.markup import escape

from svmap.core.config import MODES, ConfigError, load_config
from svmap.tool.source_annotator import SourceAnnotator

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Annotate HDL tool logs with source-map resolved locations.')
    parser.add_argument('files', nargs='*', help='Log files to annotate (default: standard input)')
    parser.add_argument('-o', '--output', help='Output file (default: standard output)')
    parser.add_argument(
        '--indicator',
        help="Token that starts every annotation line (default: '^--'); use --indicator=TOKEN if it starts with '-'",
    )
    parser.add_argument('--config', help='YAML configuration file (default: $SVMAP_CONFIG)')
    parser.add_argument('--mode', choices=MODES, help='stream: line by line, buffer: whole input at once')
    parser.add_argument('--no-cache', action='store_true', help='Reload source maps for every reference')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')
    return parser


def read_files(files: List[str]) -> str:
    """
    Concatenate the contents of files.

    Decoding is strict UTF-8 and line endings are left as they are.
    OSError and UnicodeDecodeError propagate.
    """
    text = []
    for name in files:
        with open(name, 'r', encoding='utf-8', newline='') as f:
            text.append(f.read())
    return ''.join(text)


def read_stdin() -> str:
    """All of standard input, decoded like read_files()."""
    return sys.stdin.buffer.read().decode('utf-8')


def split_lines(text: str) -> List[str]:
    """Split text after every \\n, keeping the separators (and any \\r before them)."""
    chunks = [line + '\n' for line in text.split('\n')]
    chunks[-1] = chunks[-1][:-1]
    if not chunks[-1]:
        chunks.pop()
    return chunks


def stdin_chunks(stream: BinaryIO) -> Iterator[str]:
    for raw in stream:
        yield raw.decode('utf-8')


class InputLines:
    """
    Lines of the input without their \\n, read lazily from chunks.

    terminated records whether the last chunk ended with \\n, so the output
    can end the same way the input did.
    """

    def __init__(self, chunks: Iterable[str]):
        self.chunks = chunks
        self.terminated = False

    def __iter__(self) -> Iterator[str]:
        for chunk in self.chunks:
            self.terminated = chunk.endswith('\n')
            yield chunk[:-1] if self.terminated else chunk


def write_lines(out: TextIO, lines: Iterable[str], terminated: Callable[[], bool]) -> None:
    """Write lines separated by \\n; the last one gets a \\n only if terminated() says so."""
    first = True
    for line in lines:
        if not first:
            out.write('\n')
        out.write(line)
        first = False
    if not first and terminated():
        out.write('\n')


def run(args: argparse.Namespace, out: TextIO) -> None:
    """
    Execute the annotation described by args, writing to out.

    Raises:
        ConfigError: Bad configuration
        OSError: Input or output failure
        UnicodeDecodeError: Input is not UTF-8
    """
    overrides = {'indicator': args.indicator, 'mode': args.mode}
    if args.no_cache:
        overrides['cache_maps'] = False
    if args.verbose:
        overrides['log_level'] = 'DEBUG'
    config = load_config(args.config, overrides)
    logging.getLogger().setLevel(config.log_level)
    logger.debug('effective config: %s', config)

    dut = SourceAnnotator()
    if not dut.setup(config=config):
        raise ConfigError(dut.get_error())

    if config.mode == 'buffer':
        text = read_files(args.files) if args.files else read_stdin()
        out.write(dut.annotate_text(text))
        return

    chunks = split_lines(read_files(args.files)) if args.files else stdin_chunks(sys.stdin.buffer)
    lines = InputLines(chunks)
    write_lines(out, dut.annotate_lines(lines), lambda: lines.terminated)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s', stream=sys.stderr)

    try:
        if args.output:
            with open(args.output, 'w', encoding='utf-8', newline='') as out:
                run(args, out)
        else:
            run(args, sys.stdout)
            sys.stdout.flush()
    except ConfigError as e:
        console.print(f'[bold red]Configuration error:[/bold red] {escape(str(e))}')
        return 2
    except UnicodeDecodeError as e:
        console.print(f'[bold red]Error:[/bold red] input is not valid UTF-8: {escape(str(e))}')
        return 1
    except OSError as e:
        console.print(f'[bold red]Error:[/bold red] {escape(str(e))}')
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
