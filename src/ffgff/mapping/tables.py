# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.mapping"
__author__ = "The ffgff developers"
__all__ = ["FeatureMapping", "MappingTable"]

import functools
from collections import namedtuple
from os.path import dirname, join, realpath
from ffgff.file import InvalidFileError, TextFile

# Qualifier value that matches any value, but is never used as default
_WILDCARD = "*"


FeatureMapping = namedtuple(
    "FeatureMapping", ["feature_key", "so_term", "so_id", "qualifiers"]
)
FeatureMapping.__doc__ = """
A row of the feature mapping table, relating an INSDC feature key
(together with a set of distinguishing qualifiers) to a
*Sequence Ontology* term.

Parameters
----------
feature_key : str
    The INSDC feature key, e.g. ``'ncRNA'``.
so_term : str
    The name of the SO term, e.g. ``'lnc_RNA'``.
so_id : str
    The ID of the SO term, e.g. ``'SO:0001877'``.
qualifiers : dict
    Maps qualifier names to values.
    A value of ``None`` denotes a flag qualifier, ``'*'`` matches
    any value.
"""


class MappingTable:
    """
    The bidirectional mapping between INSDC feature keys and SO terms
    and between flat-file qualifiers and GFF3 attributes.

    Parameters
    ----------
    features : iterable object of FeatureMapping
        The feature mapping rows.
    qualifiers : dict
        Maps flat-file qualifier names to GFF3 attribute names.
        Names not contained in this dictionary are used unchanged in
        both formats.
    """

    _feature_file = join(dirname(realpath(__file__)), "feature_mapping.tsv")
    _qualifier_file = join(dirname(realpath(__file__)), "qualifier_mapping.tsv")

    def __init__(self, features, qualifiers):
        self._features = list(features)
        self._by_so_id = {}
        for mapping in self._features:
            self._by_so_id.setdefault(mapping.so_id, mapping)
        self._by_key = {}
        for mapping in self._features:
            self._by_key.setdefault(mapping.feature_key, []).append(mapping)
        self._to_attribute = dict(qualifiers)
        self._to_qualifier = {attr: qual for qual, attr in qualifiers.items()}

    @staticmethod
    @functools.lru_cache(maxsize=None)
    def default_table():
        """
        Get the bundled mapping table.

        Returns
        -------
        table : MappingTable
            The default table.
        """
        features = []
        for columns in _read_tsv(MappingTable._feature_file):
            if len(columns) < 3:
                raise InvalidFileError(
                    f"Expected at least 3 columns, but got {len(columns)}"
                )
            qualifiers = {}
            if len(columns) > 3:
                for entry in columns[3].split():
                    if "=" in entry:
                        name, value = entry.split("=", 1)
                        qualifiers[name] = value
                    else:
                        qualifiers[entry] = None
            features.append(FeatureMapping(columns[0], columns[1], columns[2], qualifiers))
        qualifiers = {}
        for columns in _read_tsv(MappingTable._qualifier_file):
            if len(columns) != 2:
                raise InvalidFileError(f"Expected 2 columns, but got {len(columns)}")
            qualifiers[columns[0]] = columns[1]
        return MappingTable(features, qualifiers)

    def for_so_id(self, so_id, ontology=None):
        """
        Find the mapping for a SO term.

        If the term itself is not mapped and an `ontology` is given,
        the mapping of the closest mapped ancestor is used.

        Parameters
        ----------
        so_id : str
            The ID of the SO term.
        ontology : OntologyLookup, optional
            Used to find mapped ancestors.

        Returns
        -------
        mapping : FeatureMapping or None
            The mapping, ``None`` if neither the term nor one of its
            ancestors is mapped.
        """
        if so_id in self._by_so_id:
            return self._by_so_id[so_id]
        if ontology is not None:
            for parent_id in ontology.get_parents(so_id):
                if parent_id in self._by_so_id:
                    return self._by_so_id[parent_id]
        return None

    def for_feature(self, feature):
        """
        Find the mapping that fits a flat-file feature best.

        Among all rows with the feature's key, the row whose
        qualifiers are all present in the feature and which has the
        most qualifiers is chosen.

        Parameters
        ----------
        feature : Feature
            The flat-file feature.

        Returns
        -------
        mapping : FeatureMapping or None
            The mapping, ``None`` if the feature key is not mapped.
        """
        best = None
        for mapping in self._by_key.get(feature.key, []):
            if not _qualifiers_match(mapping.qualifiers, feature.qual):
                continue
            if best is None or len(mapping.qualifiers) > len(best.qualifiers):
                best = mapping
        return best

    def default_qualifiers(self, mapping):
        """
        Get the qualifiers a flat-file feature should carry by default
        for the given mapping.

        Parameters
        ----------
        mapping : FeatureMapping
            The mapping.

        Returns
        -------
        qualifiers : dict
            The qualifiers, without wildcard values.
        """
        return {
            name: value
            for name, value in mapping.qualifiers.items()
            if value != _WILDCARD
        }

    def to_attribute(self, qualifier):
        return self._to_attribute.get(qualifier, qualifier)

    def to_qualifier(self, attribute):
        return self._to_qualifier.get(attribute, attribute)


def _qualifiers_match(required, qualifiers):
    for name, value in required.items():
        if name not in qualifiers:
            return False
        if value is None or value == _WILDCARD:
            continue
        actual = qualifiers[name]
        if actual is None or value not in actual.split("\n"):
            return False
    return True


def _read_tsv(path):
    for line in TextFile.read_iter(path):
        if len(line.strip()) == 0 or line.startswith("#"):
            continue
        yield line.split("\t")
