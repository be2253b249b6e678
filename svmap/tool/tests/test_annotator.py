# See LICENSE file for details

import pytest

from svmap.tool.annotator import DEFAULT_INDICATOR, Annotator, PendingAnnotation
from svmap.tool.extractor import ExtractedLine, ExtractionRecord, extract
from svmap.tool.resolver import ResolvedLocation

ORIG = ResolvedLocation(path='/src/orig.sv', line=5, column=3)
OTHER = ResolvedLocation(path='/src/other.sv', line=1, column=1)


@pytest.fixture
def dut():
    return Annotator()


@pytest.mark.parametrize('text', ['', 'a', 'a\n', 'a\r\nb\r\n', 'test.sv:3\nfoo\n\n', '\n\n\n'])
def test_no_pendings_is_identity(dut, text):
    assert dut.merge(text, []) == text


def test_format_line():
    assert DEFAULT_INDICATOR == '^--'
    assert Annotator().format_line(4, ORIG) == '    ^-- /src/orig.sv:5:3'
    assert Annotator(indicator='-->').format_line(0, ORIG) == '--> /src/orig.sv:5:3'


def test_annotation_after_reference_line(dut):
    text = '%Error: test.sv:23:1: syntax error\nnext line\n'
    (record,) = extract(text)
    out = dut.merge(text, [PendingAnnotation.from_record(record, ORIG)])
    assert out == ('%Error: test.sv:23:1: syntax error\n        ^-- /src/orig.sv:5:3\nnext line\n')


def test_alignment_matches_start_column(dut):
    text = 'first\n    x.sv:1 and more\nlast'
    (record,) = extract(text)
    out = dut.merge(text, [PendingAnnotation.from_record(record, ORIG)])
    annotation = out.split('\n')[2]
    assert len(annotation) - len(annotation.lstrip(' ')) == record.start - text.index('\n') - 1 == 4


def test_last_line_without_separator(dut):
    text = 'a\nx.sv:1'
    (record,) = extract(text)
    out = dut.merge(text, [PendingAnnotation.from_record(record, ORIG)])
    assert out == 'a\nx.sv:1\n^-- /src/orig.sv:5:3'


def test_crlf_is_kept(dut):
    text = 'x.sv:1\r\nnext\r\n'
    (record,) = extract(text)
    out = dut.merge(text, [PendingAnnotation.from_record(record, ORIG)])
    assert out == 'x.sv:1\r\n^-- /src/orig.sv:5:3\r\nnext\r\n'


def test_same_line_in_start_order(dut):
    text = 'ab x.sv:1 y.sv:2\n'
    first = PendingAnnotation(start=3, end=9, location=ORIG)
    second = PendingAnnotation(start=10, end=16, location=OTHER)
    expected = 'ab x.sv:1 y.sv:2\n   ^-- /src/orig.sv:5:3\n          ^-- /src/other.sv:1:1\n'
    assert dut.merge(text, [second, first]) == expected
    assert dut.merge(text, [first, second]) == expected


def test_pendings_in_any_order(dut):
    text = 'x.sv:1\nnothing\ny.sv:2\n'
    pendings = [PendingAnnotation.from_record(r, loc) for r, loc in zip(extract(text), [ORIG, OTHER])]
    out = dut.merge(text, list(reversed(pendings)))
    assert out == 'x.sv:1\n^-- /src/orig.sv:5:3\nnothing\ny.sv:2\n^-- /src/other.sv:1:1\n'


def test_two_line_span(dut):
    text = "Inferred\n\tin routine M line 10 in file\n\t\t'test.sv'.\ndone\n"
    (record,) = extract(text)
    out = dut.merge(text, [PendingAnnotation.from_record(record, ORIG)])
    lines = out.split('\n')
    assert lines[3] == ' ' * 14 + '^-- /src/orig.sv:5:3'
    assert lines[4] == 'done'


def test_merge_chunks(dut):
    text = 'x.sv:1\nb'
    (record,) = extract(text)
    chunks = list(dut.iter_merge(text, [PendingAnnotation.from_record(record, ORIG)]))
    assert chunks == ['x.sv:1\n', '^-- /src/orig.sv:5:3\n', 'b']


def test_iter_lines(dut):
    record = ExtractionRecord(start=2, end=8, path='x.sv', line=1)
    pairs = [
        (ExtractedLine(text='  x.sv:1', offset=0, extraction=record, indent=2), ORIG),
        (ExtractedLine(text='y.sv:9', offset=9, extraction=None), None),
    ]
    assert list(dut.iter_lines(pairs)) == ['  x.sv:1', '  ^-- /src/orig.sv:5:3', 'y.sv:9']


def test_iter_lines_crlf(dut):
    text = 'x.sv:1\r\nb\r\n'
    (record,) = extract(text)
    lines = text.split('\n')[:-1]
    pairs = [
        (ExtractedLine(text=lines[0], offset=0, extraction=record, indent=0), ORIG),
        (ExtractedLine(text=lines[1], offset=8), None),
    ]
    streamed = ''.join(line + '\n' for line in dut.iter_lines(pairs))
    assert streamed == 'x.sv:1\r\n^-- /src/orig.sv:5:3\r\nb\r\n'
    assert streamed == dut.merge(text, [PendingAnnotation.from_record(record, ORIG)])
