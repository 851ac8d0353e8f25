# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
The builtin validation rules and fixes.
"""

__name__ = "ffgff.validation"
__author__ = "The ffgff developers"
__all__ = [
    "check_location",
    "check_dangling_parent",
    "check_region_bounds",
    "check_cds_phase",
    "create_ontology_check",
    "remove_duplicate_values",
    "uppercase_locus_tag",
    "remove_protein_id",
    "default_rules",
    "default_fixes",
]

import logging
from ffgff.error import ValidationError
from ffgff.ontology import CDS, get_sequence_ontology
from ffgff.validation.engine import Fix, Rule, Severity, Target

_logger = logging.getLogger(__name__)


def check_location(feature, line):
    """
    A feature must start at a positive position and must not end
    before it starts.
    """
    if feature.start < 1 or feature.end < 1:
        raise ValidationError(
            "LOCATION",
            f"Invalid start/end {feature.start}-{feature.end} "
            f"for accession '{feature.accession}'",
            line,
        )
    if feature.end < feature.start:
        raise ValidationError(
            "LOCATION",
            f"End {feature.end} is before start {feature.start} "
            f"for accession '{feature.accession}'",
            line,
        )


def check_dangling_parent(annotation, line):
    """
    Each ``Parent`` attribute must reference the ``ID`` of a feature of
    the same annotation.
    """
    ids = {feature.id for feature in annotation.features if feature.id is not None}
    for feature in annotation.features:
        for parent_id in feature.attributes.get("Parent", []):
            if parent_id not in ids:
                raise ValidationError(
                    "DANGLING_PARENT",
                    f"Parent '{parent_id}' of feature '{feature.type}' "
                    f"does not exist in '{annotation.accession}'",
                    line,
                )


def check_region_bounds(annotation, line):
    """
    All features must be located within the declared sequence region.
    """
    region = annotation.sequence_region
    if region is None:
        return
    for feature in annotation.features:
        if feature.start < region.start or feature.end > region.end:
            raise ValidationError(
                "SEQUENCE_REGION_BOUNDS",
                f"Feature '{feature.type}' at {feature.start}-{feature.end} "
                f"exceeds the sequence region {region.start}-{region.end} "
                f"of '{region.accession}'",
                line,
            )


def create_ontology_check(ontology=None):
    """
    Create a rule callback that checks whether the type of a feature
    resolves to a descendant of ``sequence_feature``.

    Parameters
    ----------
    ontology : OntologyLookup, optional
        The ontology.
        By default the bundled *Sequence Ontology* subset is used.

    Returns
    -------
    callback : callable
        The rule callback.
    """
    if ontology is None:
        ontology = get_sequence_ontology()

    def check_ontology_feature(feature, line):
        term_id = ontology.resolve(feature.type)
        if term_id is None or not ontology.is_feature_term(term_id):
            raise ValidationError(
                "ONTOLOGY_FEATURE",
                f"'{feature.type}' is not a sequence feature term",
                line,
            )

    return check_ontology_feature


def check_cds_phase(feature, line, ontology=None):
    """
    A CDS must have a phase.
    """
    if ontology is None:
        ontology = get_sequence_ontology()
    if feature.phase is not None:
        return
    term_id = ontology.resolve(feature.type)
    if term_id == CDS or (term_id is not None and ontology.is_descendant_of(term_id, CDS)):
        raise ValidationError(
            "CDS_PHASE", f"CDS at {feature.start}-{feature.end} has no phase", line
        )


def remove_duplicate_values(feature, line):
    """
    Remove repeated values of the same attribute.
    """
    for key, values in feature.attributes.items():
        unique = list(dict.fromkeys(values))
        if len(unique) != len(values):
            _logger.debug(
                "Removed duplicate values of attribute '%s' at line %s", key, line
            )
            feature.attributes[key] = unique


def uppercase_locus_tag(feature, line):
    """
    Convert the ``locus_tag`` values to upper case.
    """
    values = feature.attributes.get("locus_tag")
    if values is None:
        return
    upper = [value.upper() for value in values]
    if upper != values:
        _logger.debug("Converted locus_tag to upper case at line %s", line)
        feature.attributes["locus_tag"] = upper


def remove_protein_id(feature, line):
    """
    Remove the ``protein_id`` attribute, as protein IDs are assigned by
    the database.
    """
    if feature.attributes.pop("protein_id", None) is not None:
        _logger.info(
            "Removed protein_id from feature '%s' at line %s", feature.type, line
        )


def default_rules(ontology=None):
    """
    Get the builtin rules.

    Parameters
    ----------
    ontology : OntologyLookup, optional
        The ontology used by ontology dependent rules.
        By default the bundled *Sequence Ontology* subset is used.

    Returns
    -------
    rules : list of Rule
        The builtin rules.
    """
    if ontology is None:
        ontology = get_sequence_ontology()
    return [
        Rule("LOCATION", Target.FEATURE, check_location, Severity.ERROR),
        Rule(
            "ONTOLOGY_FEATURE",
            Target.FEATURE,
            create_ontology_check(ontology),
            Severity.ERROR,
        ),
        Rule(
            "CDS_PHASE",
            Target.FEATURE,
            lambda feature, line: check_cds_phase(feature, line, ontology),
            Severity.WARN,
        ),
        Rule(
            "DANGLING_PARENT",
            Target.ANNOTATION,
            check_dangling_parent,
            Severity.ERROR,
        ),
        Rule(
            "SEQUENCE_REGION_BOUNDS",
            Target.ANNOTATION,
            check_region_bounds,
            Severity.WARN,
        ),
    ]


def default_fixes():
    """
    Get the builtin fixes.

    Returns
    -------
    fixes : list of Fix
        The builtin fixes.
    """
    return [
        Fix("ATTRIBUTES_DUPLICATE_VALUE", Target.FEATURE, remove_duplicate_values, True),
        Fix("LOCUS_TAG_TO_UPPERCASE", Target.FEATURE, uppercase_locus_tag, True),
        Fix("PROTEIN_ID_REMOVE", Target.FEATURE, remove_protein_id, False),
    ]
