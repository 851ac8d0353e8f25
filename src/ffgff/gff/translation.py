# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
Reading and writing of the translations in the ``##FASTA`` section at
the end of GFF3 files.
"""

__name__ = "ffgff.gff"
__author__ = "The ffgff developers"
__all__ = [
    "OffsetRange",
    "TranslationReader",
    "translation_key",
    "write_translations",
    "INVALID_TRANSLATION",
]

import os
from collections import namedtuple
from ffgff.error import ValidationError
from ffgff.fasta.alphabet import ByteAlphabet
from ffgff.file import wrap_string
from ffgff.validation.engine import ValidationEngine

INVALID_TRANSLATION = "INVALID_TRANSLATION"

OffsetRange = namedtuple("OffsetRange", ["start", "stop"])
OffsetRange.__doc__ = """
The 0-based, exclusive absolute byte range of a translation in a file,
including line breaks.
"""


def translation_key(accession, feature_id):
    """
    Get the FASTA header, under which the translation of a feature is
    stored.

    Parameters
    ----------
    accession : str
        The accession of the reference sequence.
    feature_id : str
        The ID of the feature.

    Returns
    -------
    key : str
        The key, e.g. ``'AB000001.1|CDS_abc'``.
    """
    return f"{accession}|{feature_id}"


class TranslationReader:
    """
    Reads the translations from the ``##FASTA`` section at the end of a
    GFF3 file.

    As this section is at the end of the file, the file is scanned
    backwards until the ``##FASTA`` directive is reached.
    The feature section is never read.

    Parameters
    ----------
    path : str
        The path of the GFF3 file.
    engine : ValidationEngine, optional
        Receives invalid translations as syntactic errors.
    buffer_size : int, optional
        The number of bytes read at once.
    """

    def __init__(self, path, engine=None, buffer_size=8192):
        self._path = path
        self._engine = engine if engine is not None else ValidationEngine()
        self._buffer_size = buffer_size
        self._alphabet = ByteAlphabet.protein()

    def read_offsets(self):
        """
        Locate the translations in the file.

        Returns
        -------
        offsets : dict
            Maps translation keys, i.e. the FASTA headers, to the
            :class:`OffsetRange` of the translations, in file order.
            Empty if the file has no ``##FASTA`` section.
        """
        # Offsets are collected from the end of the file
        offsets = {}
        # Byte after the last translation line of the current entry
        stop = None
        with open(self._path, "rb") as file:
            for line_start, raw_line in _iter_lines_reversed(file, self._buffer_size):
                line = raw_line.rstrip(b"\r")
                content = line.strip()
                if len(content) == 0:
                    continue
                if line.startswith(b"##FASTA"):
                    break
                if line.startswith(b">"):
                    key = line[1:].decode("utf-8").strip()
                    start = line_start + len(raw_line) + 1
                    offsets[key] = OffsetRange(start, stop if stop is not None else start)
                    stop = None
                elif self._alphabet.is_valid(content.upper()):
                    if stop is None:
                        stop = line_start + len(line)
                elif len(offsets) == 0:
                    # Feature section reached -> no translations
                    return {}
                else:
                    self._engine.handle_syntactic_error(
                        ValidationError(
                            INVALID_TRANSLATION,
                            f"Unexpected line in translation section at byte "
                            f"offset {line_start}",
                        )
                    )
                    break
        return dict(reversed(list(offsets.items())))

    def read_translation(self, offset_range):
        """
        Read a single translation.

        Parameters
        ----------
        offset_range : OffsetRange
            The location of the translation.

        Returns
        -------
        translation : str or None
            The upper case amino acid sequence.
            ``None`` if the translation is invalid and the corresponding
            rule is not treated as error.
        """
        with open(self._path, "rb") as file:
            file.seek(offset_range.start)
            content = file.read(offset_range.stop - offset_range.start)
        sequence = b"".join(content.split()).decode("ascii", errors="replace")
        sequence = sequence.upper()
        if not self._alphabet.is_valid(sequence):
            self._engine.handle_syntactic_error(
                ValidationError(
                    INVALID_TRANSLATION,
                    f"Translation at byte offset {offset_range.start} "
                    f"contains invalid amino acid symbols",
                )
            )
            return None
        return sequence

    def read_translations(self):
        """
        Read all translations.

        Returns
        -------
        translations : dict
            Maps translation keys to the upper case amino acid
            sequences.
        """
        translations = {}
        for key, offset_range in self.read_offsets().items():
            translation = self.read_translation(offset_range)
            if translation is not None:
                translations[key] = translation
        return translations


def write_translations(writer, translations, chars_per_line=60):
    """
    Write translations as ``##FASTA`` section.

    Parameters
    ----------
    writer : GFFWriter
        The writer of the GFF3 file.
        The section must be the last content written to the file.
    translations : dict
        Maps translation keys to amino acid sequences.
    chars_per_line : int, optional
        The number of amino acids per line.
    """
    if len(translations) == 0:
        return
    lines = ["##FASTA"]
    for key, sequence in translations.items():
        lines.append(">" + key)
        lines.extend(wrap_string(sequence, chars_per_line))
    writer.write_lines(lines)


def _iter_lines_reversed(file, buffer_size):
    """
    Iterate backwards over the lines of a binary file.

    Yields
    ------
    line_start : int
        The absolute byte offset of the line.
    line : bytes
        The line without line feed.
    """
    file.seek(0, os.SEEK_END)
    position = file.tell()
    # Incomplete first line of the previously read chunk
    remainder = b""
    while position > 0:
        read_size = min(buffer_size, position)
        position -= read_size
        file.seek(position)
        chunk = file.read(read_size) + remainder
        lines = chunk.split(b"\n")
        line_stop = position + len(chunk)
        for line in reversed(lines[1:]):
            line_start = line_stop - len(line)
            yield line_start, line
            # Skip line feed
            line_stop = line_start - 1
        remainder = lines[0]
    yield 0, remainder
