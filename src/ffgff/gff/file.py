# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.gff"
__author__ = "The ffgff developers"
__all__ = [
    "GFFReader",
    "GFFWriter",
    "INVALID_HEADER",
    "INVALID_DIRECTIVE",
    "INVALID_RECORD",
    "UNDEFINED_SEQID",
    "DUPLICATE_SEQID",
]

import re
import string
from enum import Enum, auto
from urllib.parse import quote, unquote
from ffgff.annotation import Location
from ffgff.error import ValidationError
from ffgff.file import TextFile, is_open_compatible, is_text
from ffgff.gff.feature import GFF3Annotation, GFF3Feature, SequenceRegion, Species
from ffgff.validation.engine import ValidationEngine

# All punctuation characters except
# percent, semicolon, equals, ampersand, comma
_NOT_QUOTED = "".join([char for char in string.punctuation if char not in "%;=&,"]) + " "

_VERSION_PATTERN = re.compile(r"^##gff-version (?P<version>[0-9]+(\.[0-9]+(\.[0-9]+)?)?)\s*$")
_REGION_PATTERN = re.compile(
    r"^##sequence-region\s+(?P<accession>\S+)\s+(?P<start>[0-9]+)\s+(?P<end>[0-9]+)\s*$"
)
_SPECIES_PATTERN = re.compile(r"^##species\s+(?P<url>.*?)\s*$")
_RESOLUTION_DIRECTIVE = "###"
_FASTA_DIRECTIVE = "##FASTA"

# Names of the syntactic rules
INVALID_HEADER = "INVALID_HEADER"
INVALID_DIRECTIVE = "INVALID_DIRECTIVE"
INVALID_RECORD = "INVALID_RECORD"
UNDEFINED_SEQID = "UNDEFINED_SEQID"
DUPLICATE_SEQID = "DUPLICATE_SEQID"


class _State(Enum):
    AWAITING_HEADER = auto()
    SCANNING = auto()
    EOF = auto()


class GFFReader:
    """
    A streaming reader for files in *Generic Feature Format 3*
    (`GFF3 <https://github.com/The-Sequence-Ontology/Specifications/blob/master/gff3.md>`_)
    format.

    In contrast to loading the complete file, the reader returns one
    :class:`GFF3Annotation` at a time, i.e. the features of one
    contiguous run of lines that share the same *seqid*.
    A run ends when the *seqid* changes, at a ``###`` directive or at
    the end of the feature section.

    Syntactic problems are reported to the :class:`ValidationEngine`,
    which decides whether they are raised or only recorded.
    Each feature and each completed annotation is validated by the
    engine as well.

    Parameters
    ----------
    file : file-like object or str
        The file to be read.
        Alternatively a file path can be supplied.
    engine : ValidationEngine, optional
        The engine used for validation.
        By default an engine without any rules is used, that raises
        every syntactic error.

    Attributes
    ----------
    version : str or None
        The GFF version given in the header, available after
        :meth:`read_header()`.

    Examples
    --------

    >>> from io import StringIO
    >>> file = StringIO(
    ...     "##gff-version 3\\n"
    ...     "##sequence-region AB000001.1 1 1000\\n"
    ...     "AB000001.1\\tENA\\tgene\\t10\\t200\\t.\\t+\\t.\\tID=gene1;gene=abc\\n"
    ... )
    >>> reader = GFFReader(file)
    >>> annotation = reader.read_annotation()
    >>> print(annotation.accession)
    AB000001.1
    >>> print(annotation.features[0].attributes)
    {'ID': ['gene1'], 'gene': ['abc']}
    >>> print(reader.read_annotation())
    None
    """

    def __init__(self, file, engine=None):
        self._lines = TextFile.read_iter(file)
        self._engine = engine if engine is not None else ValidationEngine()
        self._state = _State.AWAITING_HEADER
        self._line_number = 0
        self._pushback = None
        self._regions = {}
        self._region_species = {}
        self._global_species = []
        self._used_accessions = set()
        self._pending = None
        self._pending_accession = None
        self.version = None

    @property
    def line_number(self):
        return self._line_number

    def close(self):
        self._lines.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def read_header(self):
        """
        Read the ``##gff-version`` header line.

        Returns
        -------
        version : str or None
            The GFF version, ``None`` if the header is invalid and the
            corresponding rule is not treated as error.
        """
        if self._state != _State.AWAITING_HEADER:
            return self.version
        self._state = _State.SCANNING
        line = self._next_line()
        while line is not None and len(line.strip()) == 0:
            line = self._next_line()
        if line is not None:
            match = _VERSION_PATTERN.match(line)
            if match is not None:
                self.version = match.group("version")
                return self.version
        self._engine.handle_syntactic_error(
            ValidationError(
                INVALID_HEADER,
                "The file does not start with a '##gff-version' directive",
                self._line_number,
            )
        )
        # The line is no header, so it must be evaluated as content
        self._push_back(line)
        return None

    def read_annotation(self):
        """
        Read the next annotation from the file.

        At the end of the feature section, an empty annotation is
        returned for each declared sequence region that had no
        features.

        Returns
        -------
        annotation : GFF3Annotation or None
            The next annotation, ``None`` if the end of the file is
            reached.
        """
        if self._state == _State.AWAITING_HEADER:
            self.read_header()
        while self._state == _State.SCANNING:
            line = self._next_line()
            if line is None:
                self._state = _State.EOF
                break
            annotation = self._process_line(line)
            if annotation is not None:
                return annotation

        if self._pending is not None and len(self._pending) > 0:
            return self._flush()
        self._pending = None
        for accession, region in self._regions.items():
            if accession not in self._used_accessions:
                self._used_accessions.add(accession)
                annotation = GFF3Annotation(region, self._species_for(accession))
                self._engine.validate_annotation(annotation, self._line_number)
                return annotation
        return None

    def read_annotations(self):
        """
        Iterate over all annotations in the file.

        In contrast to :meth:`read_annotation()`, consecutive
        annotations of the same reference sequence, that are only
        separated by a ``###`` directive, are merged.

        Yields
        ------
        annotation : GFF3Annotation
            The next annotation.
        """
        pending = None
        while True:
            annotation = self.read_annotation()
            if annotation is None:
                break
            if pending is not None and pending.accession == annotation.accession:
                pending.merge(annotation)
            else:
                if pending is not None:
                    yield pending
                pending = annotation
        if pending is not None:
            yield pending

    def __iter__(self):
        return self.read_annotations()

    def _process_line(self, line):
        """
        Evaluate a single line.
        Return the completed annotation, if the line completes one.
        """
        if len(line.strip()) == 0:
            return None
        if line.startswith("#"):
            return self._process_directive(line)
        if line.startswith(">"):
            # Start of FASTA data without preceding directive
            self._state = _State.EOF
            return None

        feature = self._parse_feature(line)
        if feature is None:
            return None
        self._engine.validate_feature(feature, self._line_number)

        accession = feature.accession
        completed = None
        if self._pending is None or self._pending_accession != accession:
            if self._pending is not None and len(self._pending) > 0:
                completed = self._flush()
            if (
                accession != self._pending_accession
                and accession in self._used_accessions
            ):
                self._engine.handle_syntactic_error(
                    ValidationError(
                        DUPLICATE_SEQID,
                        f"Features of '{accession}' were already read before "
                        f"the features of another sequence",
                        self._line_number,
                    )
                )
            self._pending = self._new_annotation(accession)
            self._pending_accession = accession
        self._pending.add_feature(feature)
        return completed

    def _process_directive(self, line):
        if line.startswith(_FASTA_DIRECTIVE):
            self._state = _State.EOF
        elif line.strip() == _RESOLUTION_DIRECTIVE:
            if self._pending is not None and len(self._pending) > 0:
                return self._flush()
        elif line.startswith("##sequence-region"):
            match = _REGION_PATTERN.match(line)
            if match is None:
                self._engine.handle_syntactic_error(
                    ValidationError(
                        INVALID_DIRECTIVE,
                        f"Invalid sequence region directive '{line}'",
                        self._line_number,
                    )
                )
                return None
            region = SequenceRegion.from_accession(
                match.group("accession"),
                int(match.group("start")),
                int(match.group("end")),
            )
            self._regions[region.accession] = region
            self._region_species[region.accession] = self._read_region_species()
        elif line.startswith("##species"):
            match = _SPECIES_PATTERN.match(line)
            if match is not None:
                self._global_species.append(Species(match.group("url")))
        # Other directives and comments are ignored
        return None

    def _read_region_species(self):
        """
        Read the species directives directly following a sequence
        region directive.
        """
        species = []
        while True:
            line = self._next_line()
            match = _SPECIES_PATTERN.match(line) if line is not None else None
            if match is None:
                self._push_back(line)
                return species
            species.append(Species(match.group("url")))

    def _new_annotation(self, accession):
        region = self._regions.get(accession)
        if region is None:
            self._engine.handle_syntactic_error(
                ValidationError(
                    UNDEFINED_SEQID,
                    f"No sequence region is declared for '{accession}'",
                    self._line_number,
                )
            )
        self._used_accessions.add(accession)
        return GFF3Annotation(region, self._species_for(accession))

    def _species_for(self, accession):
        return self._global_species + self._region_species.get(accession, [])

    def _flush(self):
        annotation = self._pending
        self._pending = None
        self._engine.validate_annotation(annotation, self._line_number)
        return annotation

    def _parse_feature(self, line):
        """
        Parse a feature line.
        Return ``None`` if the line is invalid.
        """
        # Columns are tab separated
        columns = line.split("\t")
        if len(columns) != 9:
            return self._invalid_record(f"Expected 9 columns, but got {len(columns)}")
        seqid, source, type, start, end, score, strand, phase, attrib = columns

        seqid = unquote(seqid)
        source = unquote(source)
        type = unquote(type)
        if len(seqid) == 0 or len(source) == 0 or len(type) == 0:
            return self._invalid_record("'seqid', 'source' and 'type' must not be empty")
        if not start.isdigit() or not end.isdigit():
            return self._invalid_record(f"Invalid position '{start}' - '{end}'")
        start = int(start)
        end = int(end)
        if score == ".":
            score = None
        else:
            try:
                score = float(score)
            except ValueError:
                return self._invalid_record(f"Invalid score '{score}'")
        if strand == "+":
            strand = Location.Strand.FORWARD
        elif strand == "-":
            strand = Location.Strand.REVERSE
        elif strand in (".", "?"):
            strand = None
        else:
            return self._invalid_record(f"Invalid strand '{strand}'")
        if phase == ".":
            phase = None
        elif phase in ("0", "1", "2"):
            phase = int(phase)
        else:
            return self._invalid_record(f"Invalid phase '{phase}'")
        try:
            attrib = GFFReader._parse_attributes(attrib)
        except ValueError as e:
            return self._invalid_record(str(e))

        return GFF3Feature(seqid, source, type, start, end, score, strand, phase, attrib)

    def _invalid_record(self, message):
        self._engine.handle_syntactic_error(
            ValidationError(INVALID_RECORD, message, self._line_number)
        )
        return None

    def _next_line(self):
        if self._pushback is not None:
            line = self._pushback
            self._pushback = None
        else:
            line = next(self._lines, None)
            if line is None:
                return None
        self._line_number += 1
        return line

    def _push_back(self, line):
        if line is None:
            return
        self._pushback = line
        self._line_number -= 1

    @staticmethod
    def _parse_attributes(attributes):
        """
        Parse the *attributes* string into a dictionary of value lists.
        """
        attrib_dict = {}
        if attributes.strip() == ".":
            return attrib_dict
        for entry in attributes.split(";"):
            if len(entry.strip()) == 0:
                continue
            compounds = entry.split("=")
            if len(compounds) != 2:
                raise ValueError(f"Attribute entry '{entry}' is invalid")
            key, val = compounds
            values = attrib_dict.setdefault(unquote(key.strip()), [])
            values.extend(unquote(v) for v in val.split(","))
        return attrib_dict


class GFFWriter:
    """
    A streaming writer for GFF3 files.

    Parameters
    ----------
    file : file-like object or str
        The file to be written to.
        Alternatively a file path can be supplied.
        A file given as path is opened by the writer and closed by
        :meth:`close()`.

    Examples
    --------

    >>> from io import StringIO
    >>> file = StringIO()
    >>> writer = GFFWriter(file)
    >>> writer.write_header()
    >>> writer.write_feature(
    ...     GFF3Feature(
    ...         "AB000001.1", "ENA", "CDS", 1, 99,
    ...         strand=Location.Strand.FORWARD, phase=0,
    ...         attributes={"ID": "cds1", "product": "A protein"}
    ...     )
    ... )
    >>> print(file.getvalue())   #doctest: +NORMALIZE_WHITESPACE
    ##gff-version 3
    AB000001.1  ENA  CDS  1  99  .  +  0  ID=cds1;product=A protein
    """

    def __init__(self, file):
        if is_open_compatible(file):
            self._file = open(file, "w")
            self._owns_file = True
        else:
            if not is_text(file):
                raise TypeError("A file opened in 'text' mode is required")
            self._file = file
            self._owns_file = False

    def close(self):
        if self._owns_file:
            self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def write_header(self, version="3"):
        self._write(f"##gff-version {version}")

    def write_annotation(self, annotation):
        """
        Write the directives and features of an annotation, followed
        by a ``###`` directive.

        Parameters
        ----------
        annotation : GFF3Annotation
            The annotation to be written.
        """
        region = annotation.sequence_region
        if region is not None:
            self._write(
                f"##sequence-region {region.accession} {region.start} {region.end}"
            )
        for species in annotation.species:
            self._write(f"##species {species.url}")
        for feature in annotation.features:
            self.write_feature(feature)
        self._write(_RESOLUTION_DIRECTIVE)

    def write_feature(self, feature):
        self._write(GFFWriter._create_line(feature))

    def write_lines(self, lines):
        for line in lines:
            self._write(line)

    def _write(self, line):
        self._file.write(line + "\n")

    @staticmethod
    def _create_line(feature):
        """
        Create a line for a feature.
        """
        seqid = quote(feature.seqid.strip(), safe=_NOT_QUOTED)
        source = quote(feature.source.strip(), safe=_NOT_QUOTED)
        type = feature.type.strip()

        # Perform checks
        if len(seqid) == 0:
            raise ValueError("'seqid' must not be empty")
        if len(source) == 0:
            raise ValueError("'source' must not be empty")
        if len(type) == 0:
            raise ValueError("'type' must not be empty")
        if seqid[0] == ">":
            raise ValueError("'seqid' must not start with '>'")

        score = str(feature.score) if feature.score is not None else "."
        if feature.strand == Location.Strand.FORWARD:
            strand = "+"
        elif feature.strand == Location.Strand.REVERSE:
            strand = "-"
        else:
            strand = "."
        phase = str(feature.phase) if feature.phase is not None else "."
        if len(feature.attributes) == 0:
            attributes = "."
        else:
            attributes = ";".join(
                [
                    quote(key, safe=_NOT_QUOTED)
                    + "="
                    + ",".join(quote(val, safe=_NOT_QUOTED) for val in values)
                    for key, values in sorted(feature.attributes.items())
                ]
            )

        return "\t".join(
            [
                seqid,
                source,
                type,
                str(feature.start),
                str(feature.end),
                score,
                strand,
                phase,
                attributes,
            ]
        )
