# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

import itertools
from os.path import join
import numpy as np
import pytest
import ffgff
import ffgff.fasta as fasta
from .util import data_dir


HEADER = b">seq\n"
SEQUENCE = "NNACacgtttnN"
# The sequence is split into lines of four bases
DATA = HEADER + b"NNAC\nacgt\nttnN\n"


def build_index(data):
    data = np.frombuffer(data, dtype=np.uint8)
    return fasta.SequenceIndexBuilder(data).build(len(HEADER))


def read_bases(data, spans):
    return "".join(data[span.start : span.stop].decode("ascii") for span in spans)


def test_build():
    index = build_index(DATA)
    assert index.lines == [
        fasta.LineEntry(1, 4, 5, 9),
        fasta.LineEntry(5, 8, 10, 14),
        fasta.LineEntry(9, 12, 15, 19),
    ]
    assert index.first_base_byte == 5
    assert index.last_base_byte == 19
    assert index.next_header_byte == len(DATA)
    assert index.total_bases() == len(SEQUENCE)


@pytest.mark.parametrize("buffer_size", [1, 3, 7, 1 << 20])
def test_build_buffer_size(buffer_size):
    """
    The index must not depend on the chunks the data is read in.
    """
    data = np.frombuffer(DATA + b">next\nACGT\n", dtype=np.uint8)
    ref_index = fasta.SequenceIndexBuilder(data).build(len(HEADER))
    test_index = fasta.SequenceIndexBuilder(data, buffer_size=buffer_size).build(
        len(HEADER)
    )
    assert test_index == ref_index
    assert test_index.next_header_byte == len(DATA)


def test_build_crlf():
    index = build_index(HEADER + b"NNAC\r\nacgt\r\n")
    assert index.lines == [
        fasta.LineEntry(1, 4, 5, 9),
        fasta.LineEntry(5, 8, 11, 15),
    ]


def test_build_illegal_byte():
    with pytest.raises(ffgff.SequenceIndexError) as info:
        build_index(HEADER + b"AC1T\n")
    assert info.value.offset == len(HEADER) + 2


@pytest.mark.parametrize(
    "data, leading_n, trailing_n",
    [
        (HEADER + b"NNAC\nacgt\nttnN\n", 2, 2),
        (HEADER + b"ACGT\nNNNN\nACGT\n", 0, 0),
        (HEADER + b"NNNN\nACGT\nnnnn\n", 4, 4),
        # A single line only consisting of 'N'
        (HEADER + b"NNNN\n", 4, 0),
        (HEADER + b"\n", 0, 0),
    ]
)
def test_edge_n(data, leading_n, trailing_n):
    index = build_index(data)
    assert index.leading_n == leading_n
    assert index.trailing_n == trailing_n
    assert index.total_bases_excluding_edge_n() == max(
        0, index.total_bases() - leading_n - trailing_n
    )


def test_byte_spans():
    """
    For every valid base range, the bytes covered by the spans must be
    the bases of the range.
    """
    index = build_index(DATA)
    for from_base, to_base in itertools.combinations_with_replacement(
        range(1, len(SEQUENCE) + 1), 2
    ):
        spans = index.byte_spans(from_base, to_base)
        assert read_bases(DATA, spans) == SEQUENCE[from_base - 1 : to_base]
        # One span per overlapped line
        assert len(spans) == (to_base - 1) // 4 - (from_base - 1) // 4 + 1


@pytest.mark.parametrize(
    "from_base, to_base", [(0, 1), (10, 9), (1, 13), (-1, 5)]
)
def test_byte_spans_invalid(from_base, to_base):
    index = build_index(DATA)
    with pytest.raises(ValueError):
        index.byte_spans(from_base, to_base)


def test_byte_spans_excluding_edge_n():
    index = build_index(DATA)
    spans = index.byte_spans_excluding_edge_n(1, 8)
    assert read_bases(DATA, spans) == SEQUENCE[2:-2]
    with pytest.raises(ValueError):
        index.byte_spans_excluding_edge_n(1, 9)


@pytest.mark.parametrize(
    "from_base, to_base",
    [
        (1, 1), (1, 2), (3, 4), (1, 4), (2, 11), (3, 8),
        (4, 9), (5, 12), (3, 12), (9, 10), (12, 12), (1, 12),
    ]
)
def test_apply_deletion(from_base, to_base):
    """
    Deleting a base range from the index must give the same index as
    indexing a file, from which the bytes of these bases were removed.
    """
    test_index = build_index(DATA)
    spans = test_index.byte_spans(from_base, to_base)
    deleted = bytearray(DATA)
    for span in reversed(spans):
        del deleted[span.start : span.stop]
    ref_index = build_index(bytes(deleted))

    test_index.apply_deletion(from_base, to_base)
    assert test_index == ref_index
    remaining = SEQUENCE[: from_base - 1] + SEQUENCE[to_base:]
    if len(remaining) > 0:
        spans = test_index.byte_spans(1, len(remaining))
        assert read_bases(bytes(deleted), spans) == remaining
    else:
        assert test_index.total_bases() == 0


def test_apply_deletion_invalid():
    index = build_index(DATA)
    with pytest.raises(ValueError):
        index.apply_deletion(5, 13)
    # The index is unchanged
    assert index == build_index(DATA)


def test_sequence_index_invalid_lines():
    with pytest.raises(ValueError):
        # Base ranges are not contiguous
        fasta.SequenceIndex([(1, 4, 0, 4), (6, 8, 5, 8)], 0, 8, 0, 0, 9)
    with pytest.raises(ValueError):
        # Number of bases and bytes differ
        fasta.SequenceIndex([(1, 4, 0, 5)], 0, 5, 0, 0, 6)


def test_alphabet():
    alphabet = fasta.ByteAlphabet.nucleotide()
    assert alphabet.is_base(ord("a"))
    assert alphabet.is_ambiguous(ord("N"))
    assert not alphabet.is_ambiguous(ord("A"))
    assert alphabet.is_separator(ord("\r"))
    assert alphabet.is_header_start(ord(">"))
    assert not alphabet.is_base(ord(">"))
    assert alphabet.is_valid("ACGTN")
    assert not alphabet.is_valid("ACG1")

    protein = fasta.ByteAlphabet.protein()
    assert protein.is_valid("MKV*")
    assert not protein.is_valid("mkv")
    assert protein.is_ambiguous(ord("X"))


def test_alphabet_header_is_never_base():
    alphabet = fasta.ByteAlphabet(b"AC>", separators=b"\n>")
    assert not alphabet.is_base(ord(">"))
    assert not alphabet.is_separator(ord(">"))


def test_indexed_fasta_file():
    file = fasta.IndexedFastaFile(join(data_dir(), "indexed.fasta"))
    assert list(file) == ["AB000001.1", "AB000002.1"]
    assert len(file) == 2
    assert file["AB000001.1"] == SEQUENCE
    assert file["AB000002.1"] == "ACGTACGTACGT"
    assert file.get_sequence("AB000001.1", 2, 9) == "NACacgtt"
    assert file.get_sequence("AB000001.1", exclude_edge_n=True) == "ACacgttn"
    assert file.get_sequence("AB000002.1", 10, 12) == "CGT"

    header = file.headers["AB000001.1"]
    assert header.topology == "circular"
    assert header.molecule_type == "genomic DNA"
    assert header.description == "Test plasmid"
    header = file.headers["AB000002.1"]
    assert header.topology is None
    assert header.description == "Linear test sequence"


def test_indexed_fasta_file_invalid(tmp_path):
    path = tmp_path / "no_header.fasta"
    path.write_bytes(b"ACGT\n")
    with pytest.raises(ffgff.SequenceIndexError):
        fasta.IndexedFastaFile(path)

    path = tmp_path / "duplicate.fasta"
    path.write_bytes(b">seq\nACGT\n>seq\nACGT\n")
    with pytest.raises(ffgff.SequenceIndexError):
        fasta.IndexedFastaFile(path)

    path = tmp_path / "json.fasta"
    path.write_bytes(b">seq | {invalid\nACGT\n")
    with pytest.raises(ffgff.SequenceIndexError):
        fasta.IndexedFastaFile(path)


def test_indexed_fasta_file_empty(tmp_path):
    path = tmp_path / "empty.fasta"
    path.write_bytes(b"")
    assert len(fasta.IndexedFastaFile(path)) == 0
