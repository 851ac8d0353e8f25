# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
Mapping of flat-file entries to GFF3 annotations.
"""

__name__ = "ffgff.mapping"
__author__ = "The ffgff developers"
__all__ = ["AnnotationMapper"]

import logging
from ffgff.annotation import Entry, Location
from ffgff.error import MappingError
from ffgff.gff.feature import GFF3Annotation, GFF3Feature
from ffgff.gff.translation import translation_key
from ffgff.mapping.directives import sequence_region_from_entry, species_from_entry
from ffgff.mapping.tables import MappingTable
from ffgff.ontology import CDS, get_sequence_ontology

_logger = logging.getLogger(__name__)

# Features of the same start position are ordered by their key,
# so that hierarchically higher features come first
_KEY_PRECEDENCE = {
    "gene": 0,
    "mRNA": 1,
    "misc_RNA": 1,
    "ncRNA": 1,
    "rRNA": 1,
    "tRNA": 1,
    "tmRNA": 1,
    "5'UTR": 2,
    "exon": 2,
    "CDS": 3,
}
_DEFAULT_PRECEDENCE = 4


class _ConversionContext:
    """
    The mutable state of mapping a single entry.
    """

    def __init__(self, accession):
        self.accession = accession
        self.used_ids = set()

    def unique_id(self, base_id):
        """
        Get `base_id` or, if it is already used, `base_id` with the
        lowest unused numeric suffix.
        """
        feature_id = base_id
        counter = 0
        while feature_id in self.used_ids:
            counter += 1
            feature_id = f"{base_id}_{counter}"
        self.used_ids.add(feature_id)
        return feature_id


class AnnotationMapper:
    """
    Maps flat-file :class:`Entry` objects to :class:`GFF3Annotation`
    objects.

    Each flat-file feature becomes a single GFF3 feature spanning the
    complete extent of its location.
    Features sharing the same ``gene`` qualifier are put into a
    hierarchy: The first and longest of them becomes the parent of the
    others.

    Parameters
    ----------
    ontology : OntologyLookup, optional
        Used to check the GFF3 feature types.
        By default the bundled *Sequence Ontology* subset is used.
    table : MappingTable, optional
        The feature and qualifier mapping.
        By default :meth:`MappingTable.default_table()` is used.
    source : str, optional
        The value of the *source* column of the created features.
        By default the source is undefined (``.``).
    """

    def __init__(self, ontology=None, table=None, source="."):
        self._ontology = ontology if ontology is not None else get_sequence_ontology()
        self._table = table if table is not None else MappingTable.default_table()
        self._source = source

    def map_entry(self, entry):
        """
        Map a flat-file entry to a GFF3 annotation.

        Parameters
        ----------
        entry : Entry
            The entry to be mapped.

        Returns
        -------
        annotation : GFF3Annotation
            The annotation.
        translations : dict
            Maps translation keys to the translations of the features,
            that are written into the ``##FASTA`` section.

        Raises
        ------
        MappingError
            If the entry has no *source* feature or a feature cannot be
            mapped to a *Sequence Ontology* term.
        """
        region = sequence_region_from_entry(entry)
        accession = region.accession
        context = _ConversionContext(accession)

        features = sorted(
            (feature for feature in entry.features if feature.key != "source"),
            key=lambda feature: (
                feature.get_location_range()[0],
                _KEY_PRECEDENCE.get(feature.key, _DEFAULT_PRECEDENCE),
            ),
        )
        gene_groups = {}
        standalone = []
        for feature in features:
            gff_feature = self._map_feature(feature, accession)
            genes = feature.get_values("gene")
            if len(genes) > 0 and genes[0] is not None:
                gene_groups.setdefault(genes[0], []).append(gff_feature)
            else:
                standalone.append(gff_feature)

        gff_features = []
        for gene, members in gene_groups.items():
            gff_features.extend(_build_hierarchy(gene, members, context))
        gff_features.extend(standalone)

        if entry.topology == Entry.Topology.CIRCULAR and not any(
            "circular_RNA" in feature.qual for feature in entry.features
        ):
            gff_features.append(
                GFF3Feature(
                    accession,
                    self._source,
                    "region",
                    region.start,
                    region.end,
                    strand=Location.Strand.FORWARD,
                    attributes={"ID": accession, "Is_circular": "true"},
                )
            )

        translations = {}
        for gff_feature in gff_features:
            if gff_feature.id is None or "translation" not in gff_feature.attributes:
                continue
            translation = gff_feature.attributes.pop("translation")
            translations[translation_key(accession, gff_feature.id)] = "".join(
                translation
            )

        annotation = GFF3Annotation(region, species_from_entry(entry), gff_features)
        return annotation, translations

    def _map_feature(self, feature, accession):
        mapping = self._table.for_feature(feature)
        type = mapping.so_term if mapping is not None else feature.key
        term_id = self._ontology.resolve(type)
        if term_id is None or not self._ontology.is_feature_term(term_id):
            raise MappingError(
                "FF_UNMAPPED_FEATURE",
                f"Feature '{feature.key}' cannot be mapped to a sequence feature term",
                accession,
            )

        start, end = feature.get_location_range()
        strand = (
            Location.Strand.REVERSE
            if feature.location.is_reverse
            else Location.Strand.FORWARD
        )

        attributes = {}
        for name, value in feature.qual.items():
            if name == "phase":
                continue
            values = ["true"] if value is None else value.split("\n")
            attributes[self._table.to_attribute(name)] = values
        partial = []
        if feature.location.left_partial:
            partial.append("start")
        if feature.location.right_partial:
            partial.append("end")
        if len(partial) > 0:
            attributes["partial"] = partial

        return GFF3Feature(
            accession,
            self._source,
            type,
            start,
            end,
            strand=strand,
            phase=self._get_phase(feature, term_id),
            attributes=attributes,
        )

    def _get_phase(self, feature, term_id):
        phases = feature.get_values("phase")
        if len(phases) > 0 and phases[0] is not None:
            return int(phases[0])
        if term_id == CDS or self._ontology.is_descendant_of(term_id, CDS):
            codon_starts = feature.get_values("codon_start")
            if len(codon_starts) > 0 and codon_starts[0] is not None:
                return int(codon_starts[0]) - 1
            return 0
        return None


def _build_hierarchy(gene, members, context):
    """
    Link the features of a gene:
    The first and longest feature becomes the parent of all others.
    """
    members = sorted(members, key=lambda feature: (feature.start, -feature.end))
    root = members[0]
    root_id = context.unique_id(f"{root.type}_{gene}")
    root.attributes["ID"] = [root_id]
    locus_tag = root.attributes.get("locus_tag")
    for member in members[1:]:
        member.attributes["ID"] = [context.unique_id(f"{member.type}_{gene}")]
        member.attributes["Parent"] = [root_id]
        if locus_tag is not None and "locus_tag" not in member.attributes:
            member.attributes["locus_tag"] = list(locus_tag)
        member.attributes.pop("gene", None)
    _logger.debug("Gene '%s' comprises %d features", gene, len(members))
    return members
