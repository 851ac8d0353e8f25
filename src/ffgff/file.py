# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff"
__author__ = "The ffgff developers"
__all__ = [
    "TextFile",
    "InvalidFileError",
    "open_text",
    "wrap_string",
    "is_text",
    "is_open_compatible",
]

import abc
import io
from contextlib import contextmanager
from os import PathLike


class TextFile(metaclass=abc.ABCMeta):
    """
    Base class for line based text files, that are small enough to be
    kept in memory, like a single *EMBL* entry.
    Large inputs, like GFF3 files, are streamed via :meth:`read_iter()`
    instead.

    Attributes
    ----------
    lines : list of str
        The lines of the file, without line breaks.
    """

    def __init__(self):
        self.lines = []

    @classmethod
    def read(cls, file, *args, **kwargs):
        """
        Parse a file (or file-like object).

        Parameters
        ----------
        file : file-like object or str
            The file to be read.
            Alternatively a file path can be supplied.

        Returns
        -------
        file : TextFile
            An instance of the respective :class:`TextFile` subclass
            containing the lines of the file.
        """
        with open_text(file) as f:
            lines = f.read().splitlines()
        file_object = cls(*args, **kwargs)
        file_object.lines = lines
        return file_object

    @staticmethod
    def read_iter(file):
        """
        Create an iterator over each line of the given text file.

        Parameters
        ----------
        file : file-like object or str
            The file to be read.
            Alternatively a file path can be supplied.

        Yields
        ------
        line : str
            The current line in the file, without the line break.
        """
        with open_text(file) as f:
            for line in f:
                yield line.rstrip("\r\n")

    def write(self, file):
        """
        Write the lines of this object into a file
        (or file-like object).

        Parameters
        ----------
        file : file-like object or str
            The file to be written to.
            Alternatively a file path can be supplied.
        """
        with open_text(file, "w") as f:
            for line in self.lines:
                f.write(line + "\n")

    def __str__(self):
        return "\n".join(self.lines)


class InvalidFileError(Exception):
    """
    Indicates that the file is not suitable for the requested action,
    either because the file does not contain the required data or
    because the file is malformed.
    """

    pass


@contextmanager
def open_text(file, mode="r"):
    """
    Open a file path in text mode or pass through an already opened
    text file.

    A file given as path is closed when the context is left, while a
    file object stays open.

    Parameters
    ----------
    file : file-like object or str
        The file path or the file object.
    mode : {'r', 'w'}, optional
        The mode used for opening a file path.

    Yields
    ------
    file : file-like object
        The opened file.

    Raises
    ------
    TypeError
        If a file object is given, that was not opened in text mode.
    """
    if is_open_compatible(file):
        with open(file, mode) as f:
            yield f
    else:
        if not is_text(file):
            raise TypeError("A file opened in 'text' mode is required")
        yield file


def wrap_string(text, width):
    """
    Wrap the given `text` after `width` characters, ignoring
    whitespaces.

    Parameters
    ----------
    text : str
        The text to be wrapped.
    width : int
        The maximum number of characters per line.

    Returns
    -------
    lines : list of str
        The wrapped lines.

    Examples
    --------

    >>> print(wrap_string("MKVLAAGIVG", 4))
    ['MKVL', 'AAGI', 'VG']
    """
    return [text[i : i + width] for i in range(0, len(text), width)]


def is_text(file):
    if isinstance(file, io.TextIOBase):
        return True
    # for file wrappers, e.g. 'TemporaryFile'
    return hasattr(file, "file") and isinstance(file.file, io.TextIOBase)


def is_open_compatible(file):
    return isinstance(file, (str, bytes, PathLike))
