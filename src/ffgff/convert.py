# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
High-level conversion between GFF3 and *EMBL* files.
"""

__name__ = "ffgff"
__author__ = "The ffgff developers"
__all__ = ["ConversionResult", "gff3_to_embl", "embl_to_gff3", "convert"]

import logging
from collections import namedtuple
from os.path import splitext
from ffgff.annotation import Entry
from ffgff.embl.convert import get_entry, set_entry
from ffgff.embl.file import EMBLFile, MultiFile
from ffgff.error import FormatSupportError
from ffgff.fasta.file import IndexedFastaFile
from ffgff.file import is_open_compatible, open_text
from ffgff.gff.file import GFFReader, GFFWriter
from ffgff.gff.translation import TranslationReader, write_translations
from ffgff.mapping.entry_to_gff import AnnotationMapper
from ffgff.mapping.gff_to_entry import EntryMapper
from ffgff.validation.engine import ValidationEngine

_logger = logging.getLogger(__name__)

_GFF_EXTENSIONS = (".gff", ".gff3")
_EMBL_EXTENSIONS = (".embl", ".dat", ".ffl")

ConversionResult = namedtuple("ConversionResult", ["entries", "warnings"])
ConversionResult.__doc__ = """
The outcome of a successful conversion.

Attributes
----------
entries : list of str
    The accessions of the converted records, in output order.
warnings : list of ValidationError
    The violations of rules with *WARN* severity, in the order they
    occurred.
"""


def gff3_to_embl(gff_file, embl_file, engine=None, ontology=None, fasta=None):
    """
    Convert a GFF3 file into an *EMBL* file.

    The GFF3 file is streamed annotation by annotation.
    Consecutive annotations of the same reference sequence are merged
    into a single entry.

    Parameters
    ----------
    gff_file : file-like object or str
        The GFF3 file to be read.
        Translations in a trailing ``##FASTA`` section are only
        available, if a file path is given.
    embl_file : file-like object or str
        The *EMBL* file to be written.
    engine : ValidationEngine, optional
        The engine used for validation.
        By default an engine with the builtin rules and fixes is used.
    ontology : OntologyLookup, optional
        The ontology used for mapping and validation.
        By default the bundled *Sequence Ontology* subset is used.
    fasta : IndexedFastaFile or str, optional
        A FASTA file of the reference sequences.
        Its headers provide the topology, molecule type and description
        of the entries.

    Returns
    -------
    result : ConversionResult
        The converted accessions and the collected warnings.

    Raises
    ------
    ValidationError
        If a rule with *ERROR* severity is violated.
    AggregatedValidationError
        If the engine does not fail fast and at least one rule with
        *ERROR* severity was violated.
    MappingError
        If an annotation cannot be mapped to an entry.
    """
    if engine is None:
        engine = ValidationEngine.default(ontology)
    if fasta is not None and not isinstance(fasta, IndexedFastaFile):
        fasta = IndexedFastaFile(fasta)
    translations = (
        TranslationReader(gff_file, engine) if is_open_compatible(gff_file) else None
    )
    mapper = EntryMapper(ontology, translations=translations)

    accessions = []
    with open_text(embl_file, "w") as output, GFFReader(gff_file, engine) as reader:
        for annotation in reader.read_annotations():
            entry = mapper.map_annotation(annotation)
            if fasta is not None:
                _apply_fasta_header(entry, fasta)
            file = EMBLFile()
            set_entry(file, entry)
            file.write(output)
            accessions.append(entry.accession_string)
            _logger.info(
                "Converted '%s' with %d features",
                entry.accession_string,
                len(entry),
            )
    engine.raise_collected()
    return ConversionResult(accessions, list(engine.warnings))


def embl_to_gff3(embl_file, gff_file, engine=None, ontology=None):
    """
    Convert an *EMBL* file into a GFF3 file.

    The translations of the features are written into a ``##FASTA``
    section at the end of the GFF3 file.

    Parameters
    ----------
    embl_file : file-like object or str
        The *EMBL* file to be read.
    gff_file : file-like object or str
        The GFF3 file to be written.
    engine : ValidationEngine, optional
        The engine used for validating the created GFF3 features.
        By default an engine with the builtin rules and fixes is used.
    ontology : OntologyLookup, optional
        The ontology used for mapping and validation.
        By default the bundled *Sequence Ontology* subset is used.

    Returns
    -------
    result : ConversionResult
        The converted accessions and the collected warnings.

    Raises
    ------
    MappingError
        If an entry cannot be mapped to an annotation.
    """
    if engine is None:
        engine = ValidationEngine.default(ontology)
    mapper = AnnotationMapper(ontology)

    accessions = []
    all_translations = {}
    with GFFWriter(gff_file) as writer:
        writer.write_header()
        for file in MultiFile.read_iter(embl_file):
            entry = get_entry(file)
            annotation, translations = mapper.map_entry(entry)
            for feature in annotation.features:
                engine.validate_feature(feature)
            engine.validate_annotation(annotation)
            writer.write_annotation(annotation)
            all_translations.update(translations)
            accessions.append(annotation.accession)
            _logger.info(
                "Converted '%s' with %d features", annotation.accession, len(annotation)
            )
        write_translations(writer, all_translations)
    engine.raise_collected()
    return ConversionResult(accessions, list(engine.warnings))


def convert(input, output, engine=None, ontology=None, fasta=None):
    """
    Convert between GFF3 and *EMBL* files, depending on the file
    extensions.

    Parameters
    ----------
    input, output : str
        The paths of the input and output file.
        Either the input is a GFF3 file (``.gff``, ``.gff3``) and the
        output is an *EMBL* file (``.embl``, ``.dat``, ``.ffl``) or
        vice versa.
    engine : ValidationEngine, optional
        The engine used for validation.
    ontology : OntologyLookup, optional
        The ontology used for mapping and validation.
    fasta : IndexedFastaFile or str, optional
        A FASTA file of the reference sequences.
        Only used for GFF3 input.

    Returns
    -------
    result : ConversionResult
        The converted accessions and the collected warnings.

    Raises
    ------
    FormatSupportError
        If the conversion between the file formats is not supported.
    """
    input_format = _get_format(input)
    output_format = _get_format(output)
    if input_format == "gff" and output_format == "embl":
        return gff3_to_embl(input, output, engine, ontology, fasta)
    if input_format == "embl" and output_format == "gff":
        if fasta is not None:
            _logger.warning("The FASTA file is ignored for EMBL input")
        return embl_to_gff3(input, output, engine, ontology)
    raise FormatSupportError(
        f"Conversion from '{input}' to '{output}' is not supported"
    )


def _get_format(path):
    extension = splitext(str(path))[1].lower()
    if extension in _GFF_EXTENSIONS:
        return "gff"
    if extension in _EMBL_EXTENSIONS:
        return "embl"
    return None


def _apply_fasta_header(entry, fasta):
    headers = fasta.headers
    seq_id = entry.accession_string
    if seq_id not in headers:
        seq_id = entry.accession
    if seq_id not in headers:
        _logger.warning("No sequence for '%s' in FASTA file", entry.accession_string)
        return
    header = headers[seq_id]
    if header.topology is not None:
        entry.topology = Entry.Topology(header.topology.lower())
    if header.molecule_type is not None:
        entry.molecule_type = header.molecule_type
    if header.description is not None:
        entry.description = header.description

    source = entry.get_source_feature()
    length = fasta.get_index(seq_id).total_bases()
    if source is not None and source.get_location_range()[1] != length:
        _logger.warning(
            "Sequence region of '%s' ends at %d, but the sequence has %d bases",
            entry.accession_string,
            source.get_location_range()[1],
            length,
        )
