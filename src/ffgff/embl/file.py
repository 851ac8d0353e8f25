# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.embl"
__author__ = "The ffgff developers"
__all__ = ["EMBLFile", "MultiFile"]

import io
from ffgff.file import InvalidFileError, TextFile

# Canonical order of the line types in an entry
_LINE_ORDER = [
    "ID", "AC", "PR", "DT", "DE", "KW", "OS", "OC", "OG",
    "RN", "RC", "RP", "RX", "RG", "RA", "RT", "RL",
    "DR", "CC", "AH", "AS", "FH", "FT", "CO", "SQ",
]
_CONTENT_START = 5
_SPACER = "XX"
_TERMINATOR = "//"


class EMBLFile(TextFile):
    """
    This class represents a file containing a single entry in *EMBL*
    flat-file format.

    Each line of an entry starts with a two-letter line type code,
    e.g. ``ID`` for the identification line or ``FT`` for the feature
    table, followed by the content starting at the sixth column.
    Blocks of different line types are separated by ``XX`` lines and
    the entry is terminated by ``//``.

    This class provides a low-level interface for parsing, editing and
    writing the line blocks of an entry.
    The sequence lines following the ``SQ`` line are kept as part of
    the ``SQ`` block.

    Examples
    --------

    >>> file = EMBLFile()
    >>> file.set_lines("DE", ["Some description"])
    >>> file.set_lines("ID", ["XXX; SV 1; linear; genomic DNA; STD; UNC; 10 BP."])
    >>> print(file)
    ID   XXX; SV 1; linear; genomic DNA; STD; UNC; 10 BP.
    XX
    DE   Some description
    XX
    //
    >>> print(file.get_lines("DE"))
    ['Some description']
    """

    def __init__(self):
        super().__init__()
        self.lines = [_TERMINATOR]

    @classmethod
    def read(cls, file):
        """
        Read an *EMBL* file.

        Parameters
        ----------
        file : file-like object or str
            The file to be read.
            Alternatively a file path can be supplied.

        Returns
        -------
        file_object : EMBLFile
            The parsed file.
        """
        file = super().read(file)
        if _TERMINATOR not in [line.strip() for line in file.lines]:
            raise InvalidFileError("Entry is not terminated by '//'")
        return file

    def get_codes(self):
        """
        Get the line type codes present in the entry.

        Returns
        -------
        codes : list of str
            The codes in the order of their appearance.
        """
        return [code for code, _ in self._get_blocks()]

    def get_lines(self, code):
        """
        Get the content of all lines of the given type.

        Parameters
        ----------
        code : str
            The two-letter line type code, e.g. ``'FT'``.

        Returns
        -------
        content : list of str
            The content of the lines, without the line type code and
            the following indentation.
            Empty if the entry has no such lines.
        """
        code = code.upper()
        return [
            line[_CONTENT_START:]
            for line in self.lines
            if line[:2] == code and line[2:_CONTENT_START].strip() == ""
        ]

    def set_lines(self, code, content):
        """
        Set the lines of the given type.

        If lines of this type already exist in the file, they are
        replaced, otherwise they are inserted at the position given by
        the canonical line type order.

        Parameters
        ----------
        code : str
            The two-letter line type code, e.g. ``'FT'``.
        content : list of str
            The content of the lines.
            An empty string creates a line containing only the code.
        """
        code = code.upper()
        if len(code) != 2 or code in (_SPACER, _TERMINATOR):
            raise ValueError(f"'{code}' is not a valid line type code")
        new_lines = [
            f"{code}   {line}" if len(line) > 0 else code for line in content
        ]
        blocks = self._get_blocks()
        for i, (block_code, _) in enumerate(blocks):
            if block_code == code:
                blocks[i] = (code, new_lines)
                break
        else:
            position = _order_index(code)
            index = len(blocks)
            for i, (block_code, _) in enumerate(blocks):
                if _order_index(block_code) > position:
                    index = i
                    break
            blocks.insert(index, (code, new_lines))
        self.lines = _join_blocks(blocks)

    def _get_blocks(self):
        """
        Group the lines of the entry into blocks of the same line type.
        """
        blocks = []
        for line in self.lines:
            code = line[:2]
            if code == _TERMINATOR:
                break
            if code == _SPACER or len(line.strip()) == 0:
                continue
            if code == "  ":
                # Sequence lines belong to the 'SQ' block
                if len(blocks) == 0 or blocks[-1][0] != "SQ":
                    raise InvalidFileError("Sequence data without 'SQ' line")
                blocks[-1][1].append(line)
            elif len(blocks) > 0 and blocks[-1][0] == code:
                blocks[-1][1].append(line)
            else:
                blocks.append((code, [line]))
        return blocks


class MultiFile(TextFile):
    """
    This class represents a file in *EMBL* format, that contains
    multiple entries.

    The entries are appended to each other in such a file, each one
    terminated by ``//``.
    Objects of this class can be iterated to obtain an
    :class:`EMBLFile` for each entry in the file.
    """

    def __iter__(self):
        return _split_entries(self.lines)

    @staticmethod
    def read_iter(file):
        """
        Create an iterator over the entries of the given file, without
        reading the complete file into memory.

        Parameters
        ----------
        file : file-like object or str
            The file to be read.
            Alternatively a file path can be supplied.

        Yields
        ------
        entry_file : EMBLFile
            A file for each entry.
        """
        return _split_entries(TextFile.read_iter(file))


def _split_entries(lines):
    entry_lines = []
    for line in lines:
        entry_lines.append(line)
        if line.strip() == _TERMINATOR:
            yield EMBLFile.read(io.StringIO("\n".join(entry_lines)))
            entry_lines = []
    if any(len(line.strip()) > 0 for line in entry_lines):
        raise InvalidFileError("Last entry is not terminated by '//'")


def _join_blocks(blocks):
    lines = []
    for i, (code, block_lines) in enumerate(blocks):
        # The feature table follows its header without spacer
        if i > 0 and not (code == "FT" and blocks[i - 1][0] == "FH"):
            lines.append(_SPACER)
        lines.extend(block_lines)
    if len(blocks) > 0 and blocks[-1][0] != "SQ":
        lines.append(_SPACER)
    lines.append(_TERMINATOR)
    return lines


def _order_index(code):
    try:
        return _LINE_ORDER.index(code)
    except ValueError:
        # Unknown line types are put in front of the feature table
        return _LINE_ORDER.index("FH") - 0.5
