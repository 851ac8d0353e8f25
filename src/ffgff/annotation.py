# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
The in-memory model of flat-file records: locations, features and
entries.
"""

__name__ = "ffgff"
__author__ = "The ffgff developers"
__all__ = ["Location", "CompoundLocation", "Feature", "Entry"]

import copy
from enum import Enum, Flag, auto


class Location:
    """
    A :class:`Location` defines a closed range of bases on the
    reference sequence.

    A feature can have multiple :class:`Location` instances if multiple
    locations are joined.

    Objects of this class are immutable.

    Parameters
    ----------
    first : int
        1-based starting base position.
    last : int
        Inclusive 1-based ending base position.
    strand : Strand
        :attr:`Strand.REVERSE` if this individual location is
        complemented.
    partial : Partial
        Partiality of the location ends.
        The flags are relative to the location's own strand:
        For a forward location :attr:`Partial.FIVE_PRIME` denotes the
        left end, for a reverse location it denotes the right end.

    Attributes
    ----------
    first, last, strand, partial
        Same as the parameters.
    """

    class Partial(Flag):
        """
        This enum type describes, which ends of a location are
        incomplete.

           - **NONE** - The location is complete
           - **FIVE_PRIME** - The feature starts at an unknown position
             before the 5' end of the location
           - **THREE_PRIME** - The feature ends at an unknown position
             after the 3' end of the location
        """

        NONE = 0
        FIVE_PRIME = auto()
        THREE_PRIME = auto()

    class Strand(Enum):
        """
        This enum type describes the strand of the location.
        """

        FORWARD = auto()
        REVERSE = auto()

    def __init__(self, first, last, strand=Strand.FORWARD, partial=Partial.NONE):
        if first > last:
            raise ValueError(
                "The first position cannot be higher than the last position"
            )
        self._first = first
        self._last = last
        self._strand = strand
        self._partial = partial

    def __repr__(self):
        """Represent Location as a string for debugging."""
        return (
            f"Location({self._first}, {self._last}, "
            f"strand=Location.{self._strand}, partial=Location.{self._partial})"
        )

    @property
    def first(self):
        return self._first

    @property
    def last(self):
        return self._last

    @property
    def strand(self):
        return self._strand

    @property
    def partial(self):
        return self._partial

    @property
    def is_complement(self):
        return self._strand == Location.Strand.REVERSE

    @property
    def left_partial(self):
        """
        Whether the lower position of this location is incomplete.
        """
        if self.is_complement:
            return bool(self._partial & Location.Partial.THREE_PRIME)
        return bool(self._partial & Location.Partial.FIVE_PRIME)

    @property
    def right_partial(self):
        """
        Whether the higher position of this location is incomplete.
        """
        if self.is_complement:
            return bool(self._partial & Location.Partial.FIVE_PRIME)
        return bool(self._partial & Location.Partial.THREE_PRIME)

    def complement(self, complemented=True):
        """
        Create a copy of this location with the given complement state.
        The partiality flags are kept as they are.

        Parameters
        ----------
        complemented : bool, optional
            Whether the new location is complemented.

        Returns
        -------
        location : Location
            The new location.
        """
        strand = Location.Strand.REVERSE if complemented else Location.Strand.FORWARD
        return Location(self._first, self._last, strand, self._partial)

    def swap_partiality(self):
        """
        Create a copy of this location with the *5'* and *3'*
        partiality flags exchanged.

        Returns
        -------
        location : Location
            The new location.
        """
        partial = Location.Partial.NONE
        if self._partial & Location.Partial.FIVE_PRIME:
            partial |= Location.Partial.THREE_PRIME
        if self._partial & Location.Partial.THREE_PRIME:
            partial |= Location.Partial.FIVE_PRIME
        return Location(self._first, self._last, self._strand, partial)

    def __str__(self):
        string = "{:d}-{:d}".format(self.first, self.last)
        if self.strand == Location.Strand.FORWARD:
            string = string + " >"
        else:
            string = "< " + string
        return string

    def __eq__(self, item):
        if not isinstance(item, Location):
            return False
        return (
            self.first == item.first
            and self.last == item.last
            and self.strand == item.strand
            and self.partial == item.partial
        )

    def __hash__(self):
        return hash((self._first, self._last, self._strand, self._partial))


class CompoundLocation:
    """
    An ordered collection of :class:`Location` objects, that together
    describe where a feature is located.

    In contrast to :class:`Location`, this class is mutable, as
    multi-line GFF3 features are joined location by location.

    Parameters
    ----------
    locations : iterable object of Location, optional
        The initial member locations.
    complement : bool, optional
        Whether the compound location as a whole is complemented, i.e.
        written as ``complement(join(...))``.

    Attributes
    ----------
    locations : list of Location
        The member locations in insertion order.
    complement : bool
        Same as the parameter.
    """

    def __init__(self, locations=None, complement=False):
        self.locations = list(locations) if locations is not None else []
        self.complement = complement

    def __repr__(self):
        return (
            f"CompoundLocation({self.locations!r}, complement={self.complement})"
        )

    def add_location(self, location):
        self.locations.append(location)

    def get_location_range(self):
        """
        Get the minimum first base and maximum last base of all member
        locations.

        Returns
        -------
        first : int
            The minimum first base of all locations.
        last : int
            The maximum last base of all locations.
        """
        if len(self.locations) == 0:
            raise ValueError("The compound location has no members")
        first = min(loc.first for loc in self.locations)
        last = max(loc.last for loc in self.locations)
        return first, last

    @property
    def is_reverse(self):
        """
        Whether the feature is located on the reverse strand, either
        because the compound location is complemented or because every
        member location is.
        """
        if self.complement:
            return True
        return len(self.locations) > 0 and all(
            loc.is_complement for loc in self.locations
        )

    @property
    def left_partial(self):
        first, _ = self.get_location_range()
        return any(loc.left_partial for loc in self.locations if loc.first == first)

    @property
    def right_partial(self):
        _, last = self.get_location_range()
        return any(loc.right_partial for loc in self.locations if loc.last == last)

    @property
    def five_prime_partial(self):
        return self.right_partial if self.is_reverse else self.left_partial

    @property
    def three_prime_partial(self):
        return self.left_partial if self.is_reverse else self.right_partial

    def __len__(self):
        return len(self.locations)

    def __iter__(self):
        return iter(self.locations)

    def __eq__(self, item):
        if not isinstance(item, CompoundLocation):
            return False
        return (
            self.locations == item.locations and self.complement == item.complement
        )


class Feature:
    """
    This class represents a single flat-file feature.
    It consists of a feature key, describing the general class of the
    feature, its location on the reference, and qualifiers, describing
    the feature in detail.

    Parameters
    ----------
    key : str
        The name of the feature class, e.g. *gene*, *CDS* or
        *regulatory*.
    location : CompoundLocation or iterable object of Location
        The location of the feature.
    qual : dict, optional
        Maps feature qualifiers to their corresponding values.
        The keys are always strings. A value is either a string or
        ``None`` if the qualifier key does not have a value.
        If a key has multiple values, the values are separated by a
        line break.

    Attributes
    ----------
    key, location, qual
        Same as the parameters.
    """

    def __init__(self, key, location, qual=None):
        self.key = key
        if not isinstance(location, CompoundLocation):
            location = CompoundLocation(location)
        self.location = location
        self.qual = copy.deepcopy(qual) if qual is not None else {}

    def __repr__(self):
        """Represent Feature as a string for debugging."""
        return f'Feature("{self.key}", {self.location!r}, qual={self.qual})'

    def get_location_range(self):
        return self.location.get_location_range()

    def get_values(self, key):
        """
        Get all values of a qualifier.

        Parameters
        ----------
        key : str
            The qualifier name.

        Returns
        -------
        values : list of (str or None)
            The values of the qualifier.
            Empty if the qualifier is absent and ``[None]`` for a flag
            qualifier.
        """
        if key not in self.qual:
            return []
        value = self.qual[key]
        if value is None:
            return [None]
        return value.split("\n")

    def add_value(self, key, value):
        """
        Add a value to a qualifier.
        If the qualifier already exists, the value is appended,
        separated by a line break.

        Parameters
        ----------
        key : str
            The qualifier name.
        value : str or None
            The value, ``None`` for a flag qualifier.
        """
        if key in self.qual and self.qual[key] is not None and value is not None:
            self.qual[key] += "\n" + value
        elif key not in self.qual:
            self.qual[key] = value

    def __eq__(self, item):
        if not isinstance(item, Feature):
            return False
        return (
            self.key == item.key
            and self.location == item.location
            and self.qual == item.qual
        )


class Entry:
    """
    A single flat-file record, i.e. a reference sequence described by
    its accession and the features located on it.

    The *source* feature describes the whole sequence and, if present,
    is always the first feature.

    Parameters
    ----------
    accession : str
        The primary accession.
    version : int, optional
        The sequence version.
    topology : Topology, optional
        Whether the sequence is linear or circular.
    molecule_type : str, optional
        The molecule type, e.g. ``'genomic DNA'``.
    description : str, optional
        Free text description of the record.
    features : iterable object of Feature, optional
        The features of the record.

    Attributes
    ----------
    accession, version, topology, molecule_type, description
        Same as the parameters.
    features : list of Feature
        The features of the record.
    """

    class Topology(Enum):
        LINEAR = "linear"
        CIRCULAR = "circular"

    def __init__(
        self,
        accession,
        version=None,
        topology=Topology.LINEAR,
        molecule_type=None,
        description=None,
        features=None,
    ):
        self.accession = accession
        self.version = version
        self.topology = topology
        self.molecule_type = molecule_type
        self.description = description
        self.features = []
        if features is not None:
            for feature in features:
                self.add_feature(feature)

    def __repr__(self):
        return (
            f'Entry("{self.accession}", version={self.version}, '
            f"topology=Entry.{self.topology}, features={len(self.features)})"
        )

    @property
    def accession_string(self):
        """
        The accession including the version, separated by a dot.
        """
        if self.version is None:
            return self.accession
        return f"{self.accession}.{self.version}"

    def add_feature(self, feature):
        """
        Add a feature to the entry.
        A *source* feature is moved in front of all other features.

        Parameters
        ----------
        feature : Feature
            The feature to be added.
        """
        if feature.key == "source" and self.get_source_feature() is None:
            self.features.insert(0, feature)
        else:
            self.features.append(feature)

    def get_source_feature(self):
        """
        Get the *source* feature of the entry.

        Returns
        -------
        source : Feature or None
            The *source* feature, ``None`` if the entry has none.
        """
        for feature in self.features:
            if feature.key == "source":
                return feature
        return None

    def __len__(self):
        return len(self.features)

    def __iter__(self):
        return iter(self.features)
