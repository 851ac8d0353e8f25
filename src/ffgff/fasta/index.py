# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.fasta"
__author__ = "The ffgff developers"
__all__ = ["LineEntry", "ByteSpan", "SequenceIndex"]

from collections import namedtuple
import numpy as np

LineEntry = namedtuple(
    "LineEntry", ["base_start", "base_end", "byte_start", "byte_stop"]
)
LineEntry.__doc__ = """
A run of base bytes on one line of a sequence file.

Parameters
----------
base_start, base_end : int
    The 1-based, inclusive base range covered by the line.
byte_start, byte_stop : int
    The 0-based, exclusive absolute byte range of the bases in the
    file.
"""

ByteSpan = namedtuple("ByteSpan", ["start", "stop"])
ByteSpan.__doc__ = """
A 0-based, exclusive absolute byte range in a sequence file.
"""


class SequenceIndex:
    """
    An index of a single FASTA record, that maps base positions to
    byte positions in the file.

    The index consists of the line entries of the record, i.e. runs of
    base bytes between line breaks.
    The base ranges of the lines are contiguous and start at 1.
    For each line the number of bases equals the number of bytes.

    Objects of this class are usually created by a
    :class:`SequenceIndexBuilder`.

    Parameters
    ----------
    lines : ndarray, dtype=int, shape=(n,4) or iterable object of LineEntry
        The line entries, sorted by position.
    first_base_byte : int
        The absolute byte offset of the first base.
    last_base_byte : int
        The absolute byte offset after the last base.
    leading_n : int
        The number of ambiguous bases at the start of the sequence.
    trailing_n : int
        The number of ambiguous bases at the end of the sequence.
    next_header_byte : int
        The absolute byte offset of the next header or the file size.

    Attributes
    ----------
    first_base_byte, last_base_byte, leading_n, trailing_n, next_header_byte
        Same as the parameters.

    Notes
    -----
    :meth:`apply_deletion()` modifies the index in place.
    An index must not be modified while it is concurrently read.
    """

    def __init__(
        self,
        lines,
        first_base_byte,
        last_base_byte,
        leading_n,
        trailing_n,
        next_header_byte,
    ):
        lines = np.array(lines, dtype=np.int64).reshape(-1, 4)
        if len(lines) > 0:
            if lines[0, 0] != 1:
                raise ValueError("The first line must start at base 1")
            if (lines[1:, 0] != lines[:-1, 1] + 1).any():
                raise ValueError("The base ranges of the lines must be contiguous")
            if (lines[:, 1] - lines[:, 0] + 1 != lines[:, 3] - lines[:, 2]).any():
                raise ValueError(
                    "The number of bases and bytes of a line must be equal"
                )
        self._lines = lines
        self.first_base_byte = first_base_byte
        self.last_base_byte = last_base_byte
        self.leading_n = leading_n
        self.trailing_n = trailing_n
        self.next_header_byte = next_header_byte

    def __repr__(self):
        return (
            f"SequenceIndex({len(self._lines)} lines, "
            f"{self.total_bases()} bases, leading_n={self.leading_n}, "
            f"trailing_n={self.trailing_n})"
        )

    @property
    def lines(self):
        """
        list of LineEntry : The line entries of the index.
        """
        return [LineEntry(*(int(value) for value in line)) for line in self._lines]

    def total_bases(self):
        if len(self._lines) == 0:
            return 0
        return int(self._lines[-1, 1])

    def total_bases_excluding_edge_n(self):
        """
        Get the number of bases without the leading and trailing
        ambiguous bases.
        """
        return max(0, self.total_bases() - self.leading_n - self.trailing_n)

    def byte_spans(self, from_base, to_base):
        """
        Get the byte ranges in the file covering a base range.

        Parameters
        ----------
        from_base, to_base : int
            The 1-based, inclusive base range.

        Returns
        -------
        spans : list of ByteSpan
            One span for each line overlapping the base range, clipped
            to the range.

        Raises
        ------
        ValueError
            If the base range is empty or exceeds the sequence.

        Examples
        --------

        >>> index = SequenceIndex(
        ...     [(1, 4, 5, 9), (5, 8, 10, 14), (9, 12, 15, 19)], 5, 19, 0, 0, 20
        ... )
        >>> print(index.byte_spans(3, 6))
        [ByteSpan(start=7, stop=9), ByteSpan(start=10, stop=12)]
        """
        total = self.total_bases()
        if from_base < 1:
            raise ValueError(f"Base range start {from_base} is smaller than 1")
        if to_base < from_base:
            raise ValueError(
                f"Base range end {to_base} is smaller than start {from_base}"
            )
        if to_base > total:
            raise ValueError(
                f"Base range end {to_base} exceeds the sequence length {total}"
            )
        # First line, whose end is not before the range start
        first = np.searchsorted(self._lines[:, 1], from_base, side="left")
        # Last line, whose start is not after the range end
        last = np.searchsorted(self._lines[:, 0], to_base, side="right")
        spans = []
        for base_start, base_end, byte_start, _ in self._lines[first:last]:
            start = byte_start + (max(from_base, base_start) - base_start)
            stop = byte_start + (min(to_base, base_end) - base_start) + 1
            spans.append(ByteSpan(int(start), int(stop)))
        return spans

    def byte_spans_excluding_edge_n(self, from_base, to_base):
        """
        Same as :meth:`byte_spans()`, but the base positions are
        relative to the sequence without leading ambiguous bases.
        """
        trimmed = self.total_bases_excluding_edge_n()
        if to_base > trimmed:
            raise ValueError(
                f"Base range end {to_base} exceeds the trimmed sequence "
                f"length {trimmed}"
            )
        return self.byte_spans(from_base + self.leading_n, to_base + self.leading_n)

    def apply_deletion(self, from_base, to_base):
        """
        Remove a base range from the index, as if the corresponding
        bytes were removed from the file.

        Line breaks are not removed.
        Hence, the base and byte positions of all bases after the
        deleted range are shifted by the length of the range.
        Lines, that lose all their bases, are removed.
        The edge *N* counts are reduced by the number of deleted bases
        within the respective edge run.

        Parameters
        ----------
        from_base, to_base : int
            The 1-based, inclusive base range to be deleted.

        Raises
        ------
        ValueError
            If the base range is empty or exceeds the sequence.
        """
        total = self.total_bases()
        if from_base < 1 or to_base < from_base or to_base > total:
            raise ValueError(
                f"Invalid deletion range {from_base}-{to_base} "
                f"for sequence of length {total}"
            )
        length = to_base - from_base + 1

        new_lines = []
        for base_start, base_end, byte_start, byte_stop in self._lines.tolist():
            if base_end < from_base:
                new_lines.append((base_start, base_end, byte_start, byte_stop))
                continue
            if base_start > to_base:
                new_lines.append(
                    (
                        base_start - length,
                        base_end - length,
                        byte_start - length,
                        byte_stop - length,
                    )
                )
                continue
            # The line overlaps the deleted range:
            # Keep the bases in front of and behind the range
            kept_before = max(0, from_base - base_start)
            kept_after = max(0, base_end - to_base)
            if kept_before + kept_after == 0:
                continue
            # Bytes in front of the range keep their position,
            # bytes behind it are shifted by the deleted length
            if kept_after > 0:
                new_byte_stop = byte_stop - length
                new_byte_start = new_byte_stop - kept_before - kept_after
            else:
                new_byte_start = byte_start
                new_byte_stop = byte_start + kept_before
            new_base_start = min(base_start, from_base)
            new_lines.append(
                (
                    new_base_start,
                    new_base_start + kept_before + kept_after - 1,
                    new_byte_start,
                    new_byte_stop,
                )
            )
        # Overlapping lines might have been shifted to a base position,
        # that does not reflect the contiguous base numbering
        # -> renumber the bases
        renumbered = []
        next_base = 1
        for base_start, base_end, byte_start, byte_stop in new_lines:
            count = base_end - base_start + 1
            renumbered.append((next_base, next_base + count - 1, byte_start, byte_stop))
            next_base += count
        self._lines = np.array(renumbered, dtype=np.int64).reshape(-1, 4)

        # Clip the edge N runs
        if self.leading_n > 0 and from_base <= self.leading_n:
            self.leading_n -= min(to_base, self.leading_n) - from_base + 1
        trailing_start = total - self.trailing_n + 1
        if self.trailing_n > 0 and to_base >= trailing_start:
            self.trailing_n -= to_base - max(from_base, trailing_start) + 1
        self.leading_n = min(self.leading_n, self.total_bases())
        self.trailing_n = min(self.trailing_n, self.total_bases() - self.leading_n)

        if len(self._lines) > 0:
            self.first_base_byte = int(self._lines[0, 2])
            self.last_base_byte = int(self._lines[-1, 3])
        else:
            self.last_base_byte = self.first_base_byte
        self.next_header_byte -= length

    def __len__(self):
        return len(self._lines)

    def __eq__(self, item):
        if not isinstance(item, SequenceIndex):
            return False
        return (
            np.array_equal(self._lines, item._lines)
            and self.first_base_byte == item.first_base_byte
            and self.last_base_byte == item.last_base_byte
            and self.leading_n == item.leading_n
            and self.trailing_n == item.trailing_n
            and self.next_header_byte == item.next_header_byte
        )
