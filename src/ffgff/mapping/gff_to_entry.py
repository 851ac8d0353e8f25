# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
Mapping of GFF3 annotations to flat-file entries.
"""

__name__ = "ffgff.mapping"
__author__ = "The ffgff developers"
__all__ = ["EntryMapper"]

import logging
from ffgff.annotation import CompoundLocation, Entry, Feature, Location
from ffgff.error import MappingError
from ffgff.gff.feature import split_accession
from ffgff.gff.translation import translation_key
from ffgff.mapping.directives import source_qualifiers_from_species
from ffgff.mapping.tables import MappingTable
from ffgff.ontology import CDS, REGION, get_sequence_ontology

_logger = logging.getLogger(__name__)

# Attributes, that are represented by the feature structure itself
_STRUCTURAL_ATTRIBUTES = ("ID", "Parent", "partial")


class _ConversionContext:
    """
    The mutable state of mapping a single annotation.
    """

    def __init__(self, accession):
        self.accession = accession
        # Maps feature IDs to GFF3 features, for walking the parent chain
        self.features_by_id = {}
        # Maps feature IDs (or hashes) to flat-file features,
        # for joining multi-line features
        self.joinable = {}


class EntryMapper:
    """
    Maps :class:`GFF3Annotation` objects to flat-file :class:`Entry`
    objects.

    GFF3 features spanning multiple lines, i.e. lines sharing the same
    ``ID`` (or the same content, if no ``ID`` is given), are joined
    into a single feature with a compound location.

    Parameters
    ----------
    ontology : OntologyLookup, optional
        Used to resolve the GFF3 feature types.
        By default the bundled *Sequence Ontology* subset is used.
    table : MappingTable, optional
        The feature and qualifier mapping.
        By default :meth:`MappingTable.default_table()` is used.
    translations : TranslationReader, optional
        Provides the translations of CDS features.
    """

    def __init__(self, ontology=None, table=None, translations=None):
        self._ontology = ontology if ontology is not None else get_sequence_ontology()
        self._table = table if table is not None else MappingTable.default_table()
        self._offsets = translations.read_offsets() if translations is not None else {}
        self._translations = translations

    def map_annotation(self, annotation):
        """
        Map a GFF3 annotation to a flat-file entry.

        Parameters
        ----------
        annotation : GFF3Annotation
            The annotation to be mapped.

        Returns
        -------
        entry : Entry
            The entry.
            The *source* feature spans the declared sequence region.

        Raises
        ------
        MappingError
            If a feature type cannot be resolved or a ``Parent``
            attribute references an unknown feature.
        """
        region = annotation.sequence_region
        accession = annotation.accession
        if region is not None:
            entry = Entry(
                region.accession_id,
                region.version if region.version is not None else 1,
            )
            source_location = CompoundLocation([Location(region.start, region.end)])
            entry.add_feature(
                Feature(
                    "source",
                    source_location,
                    source_qualifiers_from_species(annotation.species),
                )
            )
        else:
            # Only possible if undefined sequence IDs are tolerated
            accession_id, version = split_accession(accession)
            entry = Entry(accession_id, version if version is not None else 1)
            _logger.warning("No sequence region for '%s', omitting source", accession)

        context = _ConversionContext(accession)
        # Parents may be defined after their children
        for feature in annotation.features:
            if feature.id is not None:
                context.features_by_id.setdefault(feature.id, feature)
        for feature in annotation.features:
            _check_parents(feature, context)
        for feature in annotation.features:
            self._map_feature(feature, context, entry)
        return entry

    def _map_feature(self, gff_feature, context, entry):
        location = _map_location(gff_feature)
        identity = (
            gff_feature.id if gff_feature.id is not None else gff_feature.hash_id()
        )

        if identity in context.joinable:
            ff_feature = context.joinable[identity]
            _join_location(ff_feature.location, location)
        else:
            term_id = self._ontology.resolve(gff_feature.type)
            if term_id is None:
                raise MappingError(
                    "GFF3_UNMAPPED_FEATURE",
                    f"Feature type '{gff_feature.type}' is not an ontology term",
                    context.accession,
                    gff_feature.id,
                )
            if term_id == REGION and "Is_circular" in gff_feature.attributes:
                # The topology is stored in the entry itself
                _logger.debug("Dropping circular region of '%s'", context.accession)
                entry.topology = Entry.Topology.CIRCULAR
                return

            mapping = self._table.for_so_id(term_id, self._ontology)
            if mapping is not None:
                key = mapping.feature_key
            else:
                key = self._ontology.get_name(term_id)

            compound = CompoundLocation()
            if location.is_complement:
                compound.complement = True
                location = location.complement(False)
            compound.add_location(location)

            ff_feature = Feature(key, compound, self._map_qualifiers(gff_feature))
            if mapping is not None:
                for name, value in self._table.default_qualifiers(mapping).items():
                    if name not in ff_feature.qual:
                        ff_feature.qual[name] = value
            if self._is_cds(term_id):
                translation = self._get_translation(
                    translation_key(gff_feature.accession, identity)
                )
                if translation is not None:
                    ff_feature.qual["translation"] = translation

            context.joinable[identity] = ff_feature
            entry.add_feature(ff_feature)

        if "gene" not in ff_feature.qual:
            gene = self._find_gene(gff_feature, context)
            if gene is not None:
                ff_feature.qual["gene"] = gene

    def _map_qualifiers(self, gff_feature):
        qual = {}
        for key, values in gff_feature.attributes.items():
            if key in _STRUCTURAL_ATTRIBUTES:
                continue
            name = self._table.to_qualifier(key)
            flag = "true" in values
            values = [value for value in values if value != "true"]
            if len(values) == 0:
                qual.setdefault(name, None)
                continue
            if flag:
                # A qualifier is either a flag or has values
                _logger.warning(
                    "Dropping flag value of qualifier '%s' of feature '%s', "
                    "as it has other values",
                    name,
                    gff_feature.id,
                )
            if qual.get(name) is not None:
                values.insert(0, qual[name])
            qual[name] = "\n".join(values)
        return qual

    def _find_gene(self, gff_feature, context):
        """
        Find the gene name of the closest ancestor, that has one.
        """
        visited = set()
        parent_id = gff_feature.parent_id
        while parent_id is not None:
            if parent_id in visited:
                raise MappingError(
                    "CYCLIC_PARENT",
                    f"Cyclic parent relation involving '{parent_id}'",
                    context.accession,
                    gff_feature.id,
                )
            visited.add(parent_id)
            parent = context.features_by_id[parent_id]
            gene = parent.get_attribute("gene")
            if gene is not None:
                return gene
            parent_id = parent.parent_id
        return None

    def _is_cds(self, term_id):
        return term_id == CDS or self._ontology.is_descendant_of(term_id, CDS)

    def _get_translation(self, key):
        offset_range = self._offsets.get(key)
        if offset_range is None:
            return None
        return self._translations.read_translation(offset_range)


def _map_location(gff_feature):
    partial = Location.Partial.NONE
    tokens = gff_feature.attributes.get("partial", [])
    if "start" in tokens:
        partial |= Location.Partial.FIVE_PRIME
    if "end" in tokens:
        partial |= Location.Partial.THREE_PRIME
    strand = (
        Location.Strand.REVERSE
        if gff_feature.strand == Location.Strand.REVERSE
        else Location.Strand.FORWARD
    )
    return Location(gff_feature.start, gff_feature.end, strand, partial)


def _join_location(compound, location):
    """
    Add a location to the compound location of an already mapped
    feature, keeping the strand information consistent.
    """
    if compound.complement and not location.is_complement:
        # Move the complement from the compound to the members
        compound.locations = [
            loc.complement(True).swap_partiality() for loc in compound.locations
        ]
        compound.complement = False
    elif compound.complement and location.is_complement:
        location = location.complement(False)
    elif not compound.complement and location.is_complement:
        location = location.swap_partiality()
    compound.add_location(location)


def _check_parents(gff_feature, context):
    for parent_id in gff_feature.attributes.get("Parent", []):
        if parent_id not in context.features_by_id:
            raise MappingError(
                "DANGLING_PARENT",
                f"Parent '{parent_id}' does not exist",
                context.accession,
                gff_feature.id,
            )
