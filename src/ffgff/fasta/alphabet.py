# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.fasta"
__author__ = "The ffgff developers"
__all__ = ["ByteAlphabet"]

import string
import numpy as np

_NUCLEOTIDE_SYMBOLS = b"ACGTURYSWKMBDHVNacgturyswkmbdhvn-.*"
_PROTEIN_SYMBOLS = string.ascii_uppercase.encode("ascii") + b"*"


class ByteAlphabet:
    """
    A classifier for the bytes of a sequence file.

    Each of the 256 possible byte values is either a sequence symbol
    (*base*), a *separator* (e.g. a line break), or illegal.
    Additionally the alphabet knows the byte that starts a header line
    and the bytes denoting an ambiguous (*N*) base.

    The classification is stored in lookup tables, so that whole
    arrays of bytes can be classified at once.

    Parameters
    ----------
    bases : bytes
        The bytes that represent sequence symbols.
    separators : bytes, optional
        The bytes that are allowed between sequence symbols.
    ambiguous : bytes, optional
        The bytes that represent an unknown base.
    header : bytes, optional
        The byte that starts a header line.
        It is never a base or separator.

    Attributes
    ----------
    base_mask, separator_mask, ambiguous_mask : ndarray, dtype=bool, shape=(256,)
        Lookup tables, that indicate for each byte value whether it is
        a base, a separator or an ambiguous base, respectively.

    Examples
    --------

    >>> alphabet = ByteAlphabet.nucleotide()
    >>> print(alphabet.is_base(ord("A")), alphabet.is_base(ord(">")))
    True False
    >>> codes = np.frombuffer(b"NnAC\\n", dtype=np.uint8)
    >>> print(alphabet.ambiguous_mask[codes])
    [ True  True False False False]
    """

    def __init__(self, bases, separators=b"\n\r", ambiguous=b"Nn", header=b">"):
        if len(header) != 1:
            raise ValueError("The header start must be a single byte")
        self._header = header[0]
        self.base_mask = ByteAlphabet._create_mask(bases)
        self.separator_mask = ByteAlphabet._create_mask(separators)
        self.ambiguous_mask = ByteAlphabet._create_mask(ambiguous)
        # The header start is always illegal inside of sequence data
        self.base_mask[self._header] = False
        self.separator_mask[self._header] = False
        self.ambiguous_mask &= self.base_mask

    @staticmethod
    def nucleotide():
        """
        Get the alphabet of IUPAC nucleotide symbols in upper and lower
        case, including gaps (``-``, ``.``) and ``*``.
        Tabs and spaces are tolerated as separators.
        """
        return ByteAlphabet(_NUCLEOTIDE_SYMBOLS, separators=b"\n\r\t ")

    @staticmethod
    def protein():
        """
        Get the alphabet of upper case amino acid symbols and ``*``.
        """
        return ByteAlphabet(_PROTEIN_SYMBOLS, ambiguous=b"X")

    @property
    def header_start(self):
        return self._header

    def is_base(self, byte):
        return bool(self.base_mask[byte])

    def is_separator(self, byte):
        return bool(self.separator_mask[byte])

    def is_header_start(self, byte):
        return byte == self._header

    def is_ambiguous(self, byte):
        return bool(self.ambiguous_mask[byte])

    def is_valid(self, text):
        """
        Check whether a text consists only of base symbols.

        Parameters
        ----------
        text : bytes or str
            The text to check.

        Returns
        -------
        valid : bool
            True, if every character of `text` is a base symbol.
        """
        if isinstance(text, str):
            text = text.encode("ascii", errors="replace")
        codes = np.frombuffer(text, dtype=np.uint8)
        return bool(self.base_mask[codes].all())

    def describe(self):
        """
        Describe the allowed base symbols, e.g. for error messages.

        Returns
        -------
        description : str
            The allowed symbols.
        """
        return "".join(chr(code) for code in np.flatnonzero(self.base_mask))

    @staticmethod
    def _create_mask(symbols):
        mask = np.zeros(256, dtype=bool)
        mask[np.frombuffer(symbols, dtype=np.uint8)] = True
        return mask
