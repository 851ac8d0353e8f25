# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.fasta"
__author__ = "The ffgff developers"
__all__ = ["FastaHeader", "IndexedFastaFile"]

import json
import logging
from collections.abc import Mapping
import numpy as np
from ffgff.error import SequenceIndexError
from ffgff.fasta.builder import SequenceIndexBuilder

_logger = logging.getLogger(__name__)


class FastaHeader:
    """
    A parsed FASTA header line.

    The first word after the ``>`` is the sequence ID.
    The remainder is either free text or, if it is separated from the ID
    by ``|``, a JSON object with sequence metadata, e.g.

    ``>AB000001.1 | {"description": "Plasmid", "molecule_type": "genomic DNA", "topology": "circular"}``

    Parameters
    ----------
    line : str
        The header line, with or without leading ``>``.

    Attributes
    ----------
    id : str
        The sequence ID.
    description : str or None
        The free text description or the ``description`` member of the
        JSON object.
    metadata : dict
        The JSON object, empty if the header has none.
    """

    def __init__(self, line):
        line = line.strip()
        if line.startswith(">"):
            line = line[1:]
        identifier, _, remainder = line.partition(" ")
        identifier = identifier.strip()
        remainder = remainder.strip()
        if len(identifier) == 0:
            raise SequenceIndexError("Header line without sequence ID")
        self.id = identifier
        self.metadata = {}
        self.description = None
        if remainder.startswith("|"):
            try:
                self.metadata = json.loads(remainder[1:])
            except json.JSONDecodeError as e:
                raise SequenceIndexError(
                    f"Invalid JSON metadata in header of '{identifier}': {e}"
                ) from e
            self.description = self.metadata.get("description")
        elif len(remainder) > 0:
            self.description = remainder

    @property
    def topology(self):
        return self.metadata.get("topology")

    @property
    def molecule_type(self):
        return self.metadata.get("molecule_type")

    def __repr__(self):
        return f'FastaHeader("{self.id}", metadata={self.metadata})'


class IndexedFastaFile(Mapping):
    """
    Random access to the sequences of a FASTA file.

    The file is memory mapped and each record is indexed by a
    :class:`SequenceIndex`, so that arbitrary base ranges can be read
    without loading the complete sequence.

    The object is used in a dictionary like manner:
    Sequence IDs are used as keys, and strings containing the complete
    sequences are the corresponding values.

    Parameters
    ----------
    path : str
        The path of the FASTA file.
    alphabet : ByteAlphabet, optional
        The alphabet of the sequences.
        By default :meth:`ByteAlphabet.nucleotide()` is used.

    Examples
    --------

    >>> import os.path
    >>> fasta_file = IndexedFastaFile(os.path.join(path_to_sequences, "indexed.fasta"))
    >>> print(list(fasta_file))
    ['AB000001.1', 'AB000002.1']
    >>> print(fasta_file.get_sequence("AB000001.1", 3, 6))
    ACac
    """

    def __init__(self, path, alphabet=None):
        self._path = path
        with open(path, "rb") as f:
            f.seek(0, 2)
            size = f.tell()
        # Memory mapping a file of size 0 is not possible
        if size == 0:
            self._data = np.zeros(0, dtype=np.uint8)
        else:
            self._data = np.memmap(path, dtype=np.uint8, mode="r")
        self._builder = SequenceIndexBuilder(self._data, alphabet)
        self._headers = {}
        self._indices = {}
        self._index_records()

    def _index_records(self):
        size = len(self._data)
        position = 0
        # Skip leading blank lines
        while position < size and chr(self._data[position]) in "\r\n":
            position += 1
        if position < size and self._data[position] != ord(">"):
            raise SequenceIndexError(
                "The file does not start with a header line", offset=position
            )
        while position < size:
            header_stop = self._find_line_end(position)
            header = FastaHeader(
                bytes(self._data[position:header_stop]).decode("utf-8")
            )
            if header.id in self._headers:
                raise SequenceIndexError(
                    f"Duplicate sequence ID '{header.id}'", offset=position
                )
            index = self._builder.build(min(header_stop + 1, size))
            _logger.debug(
                "Indexed sequence '%s' with %d bases", header.id, index.total_bases()
            )
            self._headers[header.id] = header
            self._indices[header.id] = index
            position = index.next_header_byte

    def _find_line_end(self, position, chunk_size=4096):
        size = len(self._data)
        while position < size:
            chunk = np.asarray(self._data[position : position + chunk_size])
            line_breaks = np.flatnonzero(chunk == ord("\n"))
            if len(line_breaks) > 0:
                return position + int(line_breaks[0])
            position += len(chunk)
        return size

    @property
    def headers(self):
        """
        dict : Maps sequence IDs to their :class:`FastaHeader`.
        """
        return dict(self._headers)

    def get_index(self, seq_id):
        return self._indices[seq_id]

    def get_sequence(self, seq_id, from_base=None, to_base=None, exclude_edge_n=False):
        """
        Read a range of bases of a sequence.

        Parameters
        ----------
        seq_id : str
            The sequence ID.
        from_base, to_base : int, optional
            The 1-based, inclusive base range.
            By default the complete sequence is read.
        exclude_edge_n : bool, optional
            If true, positions are relative to the sequence without
            leading and trailing *N* bases.

        Returns
        -------
        sequence : str
            The bases in the range.
        """
        index = self._indices[seq_id]
        if exclude_edge_n:
            total = index.total_bases_excluding_edge_n()
        else:
            total = index.total_bases()
        if from_base is None:
            from_base = 1
        if to_base is None:
            to_base = total
        if total == 0 and from_base > to_base:
            return ""
        if exclude_edge_n:
            spans = index.byte_spans_excluding_edge_n(from_base, to_base)
        else:
            spans = index.byte_spans(from_base, to_base)
        return "".join(
            bytes(self._data[span.start : span.stop]).decode("ascii") for span in spans
        )

    def __getitem__(self, seq_id):
        return self.get_sequence(seq_id)

    def __len__(self):
        return len(self._indices)

    def __iter__(self):
        return iter(self._indices)
