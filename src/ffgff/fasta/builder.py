# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.fasta"
__author__ = "The ffgff developers"
__all__ = ["SequenceIndexBuilder"]

import numpy as np
from ffgff.error import SequenceIndexError
from ffgff.fasta.alphabet import ByteAlphabet
from ffgff.fasta.index import SequenceIndex

_LINE_FEED = ord("\n")


class SequenceIndexBuilder:
    """
    Creates the :class:`SequenceIndex` of a FASTA record by scanning
    the sequence bytes following the record header.

    The builder only accesses the data by absolute position, i.e. by
    slicing `data`.
    Therefore a memory mapped file can be shared between multiple
    builders.

    Parameters
    ----------
    data : ndarray, dtype=uint8
        The content of the file, typically a :class:`numpy.memmap`.
    alphabet : ByteAlphabet, optional
        The alphabet used to classify the bytes.
        By default :meth:`ByteAlphabet.nucleotide()` is used.
    buffer_size : int, optional
        The number of bytes classified at once.

    Examples
    --------

    >>> data = np.frombuffer(b">seq1\\nNNAC\\nacgt\\n>seq2\\nAC\\n", dtype=np.uint8)
    >>> index = SequenceIndexBuilder(data).build(6)
    >>> print(index.lines)
    [LineEntry(base_start=1, base_end=4, byte_start=6, byte_stop=10), LineEntry(base_start=5, base_end=8, byte_start=11, byte_stop=15)]
    >>> print(index.leading_n, index.next_header_byte)
    2 16
    """

    def __init__(self, data, alphabet=None, buffer_size=1 << 20):
        self._data = data
        self._alphabet = alphabet if alphabet is not None else ByteAlphabet.nucleotide()
        if buffer_size < 1:
            raise ValueError("The buffer size must be positive")
        self._buffer_size = buffer_size

    def build(self, start):
        """
        Scan the sequence starting at the given byte offset.

        The scan ends at the next header line or at the end of the data.

        Parameters
        ----------
        start : int
            The absolute byte offset of the first byte after the header
            line.

        Returns
        -------
        index : SequenceIndex
            The index of the sequence.

        Raises
        ------
        SequenceIndexError
            If the sequence contains a byte that is neither a base nor a
            separator.
        """
        size = len(self._data)
        if start < 0 or start > size:
            raise ValueError(f"Start offset {start} is outside of the data")

        # Each element is a (byte start, byte stop) tuple
        runs = []
        next_header = size
        position = start
        while position < size:
            chunk = np.asarray(self._data[position : position + self._buffer_size])
            header_index = self._find_header(chunk, position)
            if header_index is not None:
                chunk = chunk[:header_index]
                next_header = position + header_index
            self._check_bytes(chunk, position)
            for run_start, run_stop in self._base_runs(chunk):
                run_start += position
                run_stop += position
                if len(runs) > 0 and runs[-1][1] == run_start:
                    # The line continues from the previous chunk
                    runs[-1] = (runs[-1][0], run_stop)
                else:
                    runs.append((run_start, run_stop))
            if header_index is not None:
                break
            position += len(chunk)

        first_base_byte = runs[0][0] if len(runs) > 0 else start
        # Only keep lines between the first base and the next header
        runs = [
            (run_start, run_stop)
            for run_start, run_stop in runs
            if run_start >= first_base_byte and run_stop <= next_header
        ]
        lines = []
        base_count = 0
        for run_start, run_stop in runs:
            length = run_stop - run_start
            lines.append((base_count + 1, base_count + length, run_start, run_stop))
            base_count += length
        last_base_byte = runs[-1][1] if len(runs) > 0 else first_base_byte

        if len(runs) > 0:
            leading_n = self._count_ambiguous(*runs[0], reverse=False)
            trailing_n = self._count_ambiguous(*runs[-1], reverse=True)
            if len(runs) == 1 and leading_n == base_count:
                # A single line consisting only of 'N'
                trailing_n = 0
        else:
            leading_n = 0
            trailing_n = 0

        return SequenceIndex(
            lines, first_base_byte, last_base_byte, leading_n, trailing_n, next_header
        )

    def _find_header(self, chunk, position):
        """
        Find the index of the first header start in the chunk, i.e. a
        header byte at the start of the data or after a line feed.
        """
        candidates = np.flatnonzero(chunk == self._alphabet.header_start)
        for i in candidates:
            absolute = position + i
            if absolute == 0:
                return int(i)
            previous = chunk[i - 1] if i > 0 else self._data[absolute - 1]
            if previous == _LINE_FEED:
                return int(i)
        return None

    def _check_bytes(self, chunk, position):
        illegal = ~(self._alphabet.base_mask[chunk] | self._alphabet.separator_mask[chunk])
        if illegal.any():
            i = int(np.argmax(illegal))
            code = int(chunk[i])
            raise SequenceIndexError(
                f"Illegal character '{chr(code)}' (byte value {code}) "
                f"at byte offset {position + i}, "
                f"allowed characters are '{self._alphabet.describe()}'",
                offset=position + i,
            )

    def _base_runs(self, chunk):
        """
        Get the ranges of consecutive base bytes in the chunk.
        """
        base_positions = np.flatnonzero(self._alphabet.base_mask[chunk])
        if len(base_positions) == 0:
            return []
        breaks = np.flatnonzero(np.diff(base_positions) != 1)
        starts = base_positions[np.concatenate(([0], breaks + 1))]
        stops = base_positions[np.concatenate((breaks, [len(base_positions) - 1]))] + 1
        return zip(starts.tolist(), stops.tolist())

    def _count_ambiguous(self, byte_start, byte_stop, reverse):
        line = np.asarray(self._data[byte_start:byte_stop])
        if reverse:
            line = line[::-1]
        ambiguous = self._alphabet.ambiguous_mask[line]
        if ambiguous.all():
            return len(line)
        return int(np.argmin(ambiguous))
