# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
The in-memory model of GFF3 records.
"""

__name__ = "ffgff.gff"
__author__ = "The ffgff developers"
__all__ = [
    "SequenceRegion",
    "Species",
    "GFF3Feature",
    "GFF3Annotation",
    "split_accession",
]

import base64
import hashlib
from urllib.parse import parse_qs, quote, urlparse

_TAXONOMY_URL = "https://www.ncbi.nlm.nih.gov/Taxonomy/Browser/wwwtax.cgi"


class SequenceRegion:
    """
    The extent of a reference sequence, as declared by a
    ``##sequence-region`` directive.

    Parameters
    ----------
    accession_id : str
        The accession without version.
    version : int or None
        The sequence version.
    start, end : int
        The 1-based, inclusive extent of the sequence.
    """

    def __init__(self, accession_id, version, start, end):
        self.accession_id = accession_id
        self.version = version
        self.start = start
        self.end = end

    @staticmethod
    def from_accession(accession, start, end):
        """
        Create a region from an accession that optionally contains a
        version, e.g. ``'OZ026791.1'``.
        """
        accession_id, version = split_accession(accession)
        return SequenceRegion(accession_id, version, start, end)

    @property
    def accession(self):
        if self.version is None:
            return self.accession_id
        return f"{self.accession_id}.{self.version}"

    def __repr__(self):
        return (
            f'SequenceRegion("{self.accession_id}", {self.version}, '
            f"{self.start}, {self.end})"
        )

    def __eq__(self, item):
        if not isinstance(item, SequenceRegion):
            return False
        return (
            self.accession_id == item.accession_id
            and self.version == item.version
            and self.start == item.start
            and self.end == item.end
        )


class Species:
    """
    A ``##species`` directive, referencing an organism in the NCBI
    taxonomy browser.

    Parameters
    ----------
    url : str
        The taxonomy browser URL.
    """

    def __init__(self, url):
        self.url = url

    @staticmethod
    def from_taxon(taxon_id=None, organism=None):
        """
        Create the directive from a taxon ID or, if no ID is given,
        from the organism name.
        """
        if taxon_id is not None:
            return Species(f"{_TAXONOMY_URL}?id={taxon_id}")
        if organism is not None:
            return Species(f"{_TAXONOMY_URL}?name={quote(organism)}")
        raise ValueError("Either a taxon ID or an organism name is required")

    @property
    def taxon_id(self):
        values = parse_qs(urlparse(self.url).query).get("id")
        return values[0] if values else None

    @property
    def organism(self):
        values = parse_qs(urlparse(self.url).query).get("name")
        return values[0] if values else None

    def __repr__(self):
        return f'Species("{self.url}")'

    def __eq__(self, item):
        return isinstance(item, Species) and self.url == item.url


class GFF3Feature:
    """
    A single feature line of a GFF3 file.

    ==============  ===============================  ==========================================================
    **seqid**       ``str``                          The accession of the reference sequence
    **source**      ``str``                          Source of the data (e.g. ``ENA``)
    **type**        ``str``                          Type of the feature (e.g. ``CDS``)
    **start**       ``int``                          Start coordinate of feature on the reference sequence
    **end**         ``int``                          End coordinate of feature on the reference sequence
    **score**       ``float`` or ``None``            Optional score (e.g. an E-value)
    **strand**      ``Location.Strand`` or ``None``  Strand of the feature, ``None`` if feature is not stranded
    **phase**       ``int`` or ``None``              Reading frame shift, ``None`` for non-CDS features
    **attributes**  ``dict``                         Maps attribute keys to lists of values
    ==============  ===============================  ==========================================================

    Attributes
    ----------
    seqid, source, type, start, end, score, strand, phase, attributes
        The feature columns as listed above.
    """

    def __init__(
        self,
        seqid,
        source,
        type,
        start,
        end,
        score=None,
        strand=None,
        phase=None,
        attributes=None,
    ):
        self.seqid = seqid
        self.source = source
        self.type = type
        self.start = start
        self.end = end
        self.score = score
        self.strand = strand
        self.phase = phase
        self.attributes = {}
        if attributes is not None:
            for key, values in attributes.items():
                if isinstance(values, str):
                    values = [values]
                self.attributes[key] = list(values)

    def __repr__(self):
        return (
            f'GFF3Feature("{self.seqid}", "{self.source}", "{self.type}", '
            f"{self.start}, {self.end}, attributes={self.attributes})"
        )

    @property
    def accession(self):
        return self.seqid

    @property
    def id(self):
        return self.get_attribute("ID")

    @property
    def parent_id(self):
        return self.get_attribute("Parent")

    def get_attribute(self, key):
        """
        Get the first value of an attribute.

        Parameters
        ----------
        key : str
            The attribute key.

        Returns
        -------
        value : str or None
            The first value, ``None`` if the attribute is absent.
        """
        values = self.attributes.get(key)
        if not values:
            return None
        return values[0]

    def add_attribute(self, key, value):
        self.attributes.setdefault(key, []).append(value)

    def hash_id(self):
        """
        Compute a content based identity of this feature.

        The identity is used to join multiple GFF3 lines of the same
        feature, if the feature has no ``ID``.
        Hence, the positions and the ``partial`` attribute, which
        differ between the lines of a feature, are not part of it.

        Returns
        -------
        hash_id : str
            The base64 encoded SHA-256 digest.
        """
        attributes = ";".join(
            f"{key}={','.join(values)}"
            for key, values in sorted(self.attributes.items())
            if key != "partial"
        )
        identity = "|".join(
            str(value)
            for value in (
                self.id,
                self.parent_id,
                self.seqid,
                self.source,
                self.type,
                self.score,
                self.phase,
                attributes,
            )
        )
        digest = hashlib.sha256(identity.encode("utf-8")).digest()
        return base64.b64encode(digest).decode("ascii")

    def __eq__(self, item):
        if not isinstance(item, GFF3Feature):
            return False
        return (
            self.seqid == item.seqid
            and self.source == item.source
            and self.type == item.type
            and self.start == item.start
            and self.end == item.end
            and self.score == item.score
            and self.strand == item.strand
            and self.phase == item.phase
            and self.attributes == item.attributes
        )


class GFF3Annotation:
    """
    All features of a GFF3 file that belong to the same reference
    sequence, together with the directives describing this sequence.

    Parameters
    ----------
    sequence_region : SequenceRegion, optional
        The extent of the reference sequence.
    species : list of Species, optional
        The organisms of the reference sequence.
    features : iterable object of GFF3Feature, optional
        The features in file order.

    Attributes
    ----------
    sequence_region, species, features
        Same as the parameters.
    """

    def __init__(self, sequence_region=None, species=None, features=None):
        self.sequence_region = sequence_region
        self.species = list(species) if species is not None else []
        self.features = list(features) if features is not None else []

    def __repr__(self):
        return (
            f"GFF3Annotation({self.sequence_region!r}, "
            f"features={len(self.features)})"
        )

    @property
    def accession(self):
        """
        The accession of the reference sequence, taken from the
        sequence region or, if absent, from the first feature.
        """
        if self.sequence_region is not None:
            return self.sequence_region.accession
        if len(self.features) > 0:
            return self.features[0].accession
        return None

    def add_feature(self, feature):
        self.features.append(feature)

    def merge(self, other):
        """
        Append the features of another annotation of the same reference
        sequence to this annotation.

        Parameters
        ----------
        other : GFF3Annotation
            The other annotation.
        """
        if other.accession != self.accession:
            raise ValueError(
                f"Cannot merge annotation of '{other.accession}' "
                f"into annotation of '{self.accession}'"
            )
        if self.sequence_region is None:
            self.sequence_region = other.sequence_region
        for species in other.species:
            if species not in self.species:
                self.species.append(species)
        self.features.extend(other.features)

    def is_empty(self):
        return len(self.features) == 0 and self.sequence_region is None

    def __len__(self):
        return len(self.features)

    def __iter__(self):
        return iter(self.features)


def split_accession(accession):
    """
    Split an accession into the accession ID and the version.

    Parameters
    ----------
    accession : str
        The accession, e.g. ``'OZ026791.1'``.

    Returns
    -------
    accession_id : str
        The accession without version.
    version : int or None
        The version, ``None`` if the accession has no numeric version.
    """
    accession_id, sep, version = accession.rpartition(".")
    if sep and version.isdigit():
        return accession_id, int(version)
    return accession, None
