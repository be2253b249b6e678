"""
Global pytest configuration for svmap tests.

Provides a temporary project with generated HDL files that carry a trailing
sourceMappingURL link and the matching version 3 source maps.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

B64 = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/'

# (generated line, generated column, source index, source line, source column), all 0-indexed
Mapping = Tuple[int, int, int, int, int]


def vlq(value: int) -> str:
    """Base64 VLQ encoding of one signed integer."""
    value = ((-value) << 1) | 1 if value < 0 else value << 1
    out = ''
    while True:
        digit = value & 31
        value >>= 5
        if value:
            digit |= 32
        out += B64[digit]
        if not value:
            return out


def encode_mappings(entries: Sequence[Mapping]) -> str:
    """Encode mapping tuples into a 'mappings' string."""
    by_line: Dict[int, List[Mapping]] = {}
    for entry in sorted(entries):
        by_line.setdefault(entry[0], []).append(entry)

    groups = []
    prev_src = prev_line = prev_col = 0
    for gen_line in range(max(by_line) + 1 if by_line else 0):
        prev_gen_col = 0
        segments = []
        for _, gen_col, src, line, col in by_line.get(gen_line, []):
            segments.append(vlq(gen_col - prev_gen_col) + vlq(src - prev_src) + vlq(line - prev_line) + vlq(col - prev_col))
            prev_gen_col, prev_src, prev_line, prev_col = gen_col, src, line, col
        groups.append(','.join(segments))
    return ';'.join(groups)


class MappedProject:
    """Builds generated files and source maps under a root directory."""

    def __init__(self, root: Path):
        self.root = root

    def source(self, name: str, text: str = 'module orig;\nendmodule\n') -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    def generated(
        self,
        name: str,
        mappings: Sequence[Mapping],
        sources: Sequence[str],
        map_name: Optional[str] = None,
        body: str = 'module top;\nendmodule\n',
    ) -> Path:
        """Write name plus its map; the link line is the last line of name."""
        map_name = map_name or f'{Path(name).name}.map'
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f'{body}//# sourceMappingURL={map_name}\n')

        smap = {
            'version': 3,
            'file': Path(name).name,
            'sources': list(sources),
            'names': [],
            'mappings': encode_mappings(mappings),
        }
        map_path = path.parent / map_name
        map_path.parent.mkdir(parents=True, exist_ok=True)
        map_path.write_text(json.dumps(smap))
        return path


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A MappedProject rooted at tmp_path, which is also the working directory."""
    monkeypatch.chdir(tmp_path)
    return MappedProject(tmp_path)


@pytest.fixture
def mapped_sv(project):
    """
    test.sv mapped so that (23, 1) resolves to orig.sv:5:3 and (11, 1) to orig.sv:2:1.
    """
    orig = project.source('orig.sv')
    gen = project.generated('test.sv', [(22, 0, 0, 4, 2), (10, 0, 0, 1, 0)], ['orig.sv'])
    return gen, orig.resolve()
