# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
Conversion between GFF3 directives and the *source* feature of
flat-file entries.
"""

__name__ = "ffgff.mapping"
__author__ = "The ffgff developers"
__all__ = [
    "sequence_region_from_entry",
    "species_from_entry",
    "source_qualifiers_from_species",
]

from ffgff.error import MappingError
from ffgff.gff.feature import SequenceRegion, Species, split_accession

_TAXON_PREFIX = "taxon:"


def sequence_region_from_entry(entry):
    """
    Create the sequence region directive of an entry.

    The extent is taken from the *source* feature, the accession and
    version from the entry.

    Parameters
    ----------
    entry : Entry
        The entry.

    Returns
    -------
    region : SequenceRegion
        The sequence region.

    Raises
    ------
    MappingError
        If the entry has no *source* feature.
    """
    source = entry.get_source_feature()
    if source is None:
        raise MappingError(
            "NO_SOURCE", "The entry has no source feature", entry.accession
        )
    start, end = source.get_location_range()
    accession_id, version = split_accession(entry.accession)
    if version is None:
        version = entry.version if entry.version is not None else 1
    return SequenceRegion(accession_id, version, start, end)


def species_from_entry(entry):
    """
    Create the species directives of an entry from the ``db_xref`` and
    ``organism`` qualifiers of the *source* feature.

    Parameters
    ----------
    entry : Entry
        The entry.

    Returns
    -------
    species : list of Species
        The species directives, empty if the organism is unknown.
    """
    source = entry.get_source_feature()
    if source is None:
        return []
    for db_xref in source.get_values("db_xref"):
        if db_xref is not None and db_xref.startswith(_TAXON_PREFIX):
            return [Species.from_taxon(taxon_id=db_xref[len(_TAXON_PREFIX) :])]
    organisms = source.get_values("organism")
    if len(organisms) > 0 and organisms[0] is not None:
        return [Species.from_taxon(organism=organisms[0])]
    return []


def source_qualifiers_from_species(species):
    """
    Create the qualifiers of a *source* feature from species
    directives.

    Parameters
    ----------
    species : iterable object of Species
        The species directives.

    Returns
    -------
    qualifiers : dict
        The ``organism`` and ``db_xref`` qualifiers.
    """
    qual = {}
    for directive in species:
        if directive.organism is not None and "organism" not in qual:
            qual["organism"] = directive.organism
        if directive.taxon_id is not None and "db_xref" not in qual:
            qual["db_xref"] = _TAXON_PREFIX + directive.taxon_id
    return qual
