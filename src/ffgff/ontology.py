# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
Access to the *Sequence Ontology* (SO), which provides the controlled
vocabulary for GFF3 feature types.
"""

__name__ = "ffgff"
__author__ = "The ffgff developers"
__all__ = [
    "OntologyLookup",
    "OBOOntology",
    "get_sequence_ontology",
    "fetch_sequence_ontology",
    "SEQUENCE_FEATURE",
    "REGION",
    "CDS",
]

import abc
import functools
import logging
import re
from os.path import dirname, join, realpath
import networkx as nx
import requests
from ffgff.file import InvalidFileError, TextFile

_logger = logging.getLogger(__name__)

SEQUENCE_FEATURE = "SO:0000110"
REGION = "SO:0000001"
CDS = "SO:0000316"

_ID_PATTERN = re.compile(r"^SO:[0-9]{7}$")
_SYNONYM_PATTERN = re.compile(r'^"(?P<text>.*)"\s+(?P<scope>[A-Z]+)')
# Only these synonym scopes are used to resolve names
_RESOLVING_SCOPES = ("EXACT", "NARROW")

_SO_OBO_URL = (
    "https://raw.githubusercontent.com/The-Sequence-Ontology/"
    "SO-Ontologies/master/Ontology_Files/so.obo"
)


class OntologyLookup(metaclass=abc.ABCMeta):
    """
    Interface for resolving feature type names against an ontology.
    """

    def is_valid_id(self, term_id):
        """
        Check whether the given string is syntactically a term ID.

        Parameters
        ----------
        term_id : str
            The string to check, e.g. ``'SO:0000704'``.

        Returns
        -------
        valid : bool
            True, if `term_id` has the form ``SO:NNNNNNN``.
        """
        return _ID_PATTERN.match(term_id) is not None

    @abc.abstractmethod
    def resolve_name_or_synonym(self, name):
        """
        Find the term ID for a term name or synonym.

        Parameters
        ----------
        name : str
            The name or synonym of a term.

        Returns
        -------
        term_id : str or None
            The ID of the term, ``None`` if no term matches.
        """
        pass

    @abc.abstractmethod
    def get_name(self, term_id):
        pass

    @abc.abstractmethod
    def get_parents(self, term_id):
        pass

    @abc.abstractmethod
    def is_descendant_of(self, term_id, ancestor_id):
        pass

    def resolve(self, name):
        """
        Resolve a GFF3 feature type to a term ID.

        The type may either be a term ID itself or the name or a
        synonym of a term.

        Parameters
        ----------
        name : str
            The feature type.

        Returns
        -------
        term_id : str or None
            The ID of the term, ``None`` if the type cannot be resolved.
        """
        if self.is_valid_id(name):
            return name if self.get_name(name) is not None else None
        return self.resolve_name_or_synonym(name)

    def is_feature_term(self, term_id):
        """
        Check whether a term describes a sequence feature, i.e. whether
        it is ``sequence_feature`` itself or one of its descendants.
        """
        return term_id == SEQUENCE_FEATURE or self.is_descendant_of(
            term_id, SEQUENCE_FEATURE
        )


class OBOOntology(OntologyLookup):
    """
    An ontology read from a file in *OBO* format.

    The *is_a* relations of the terms are stored in a directed graph,
    whose edges point from a term to its parents.

    Parameters
    ----------
    graph : networkx.DiGraph
        The term graph.
        Each node is a term ID with the node attributes ``name`` and
        ``synonyms``.
    """

    def __init__(self, graph):
        self._graph = graph
        self._name_index = {}
        for term_id, data in graph.nodes(data=True):
            if "name" not in data:
                continue
            self._name_index.setdefault(data["name"].lower(), term_id)
        # Synonyms have lower priority than names
        for term_id, data in graph.nodes(data=True):
            for synonym in data.get("synonyms", ()):
                self._name_index.setdefault(synonym.lower(), term_id)

    @classmethod
    def read(cls, file):
        """
        Read an ontology from an *OBO* file.

        Only ``[Term]`` stanzas are evaluated.
        Obsolete terms are ignored.

        Parameters
        ----------
        file : file-like object or str
            The file to be read.
            Alternatively a file path can be supplied.

        Returns
        -------
        ontology : OBOOntology
            The parsed ontology.
        """
        graph = nx.DiGraph()
        for stanza in _iter_term_stanzas(TextFile.read_iter(file)):
            if "id" not in stanza:
                raise InvalidFileError("Term stanza without 'id'")
            if stanza.get("is_obsolete", ["false"])[0] == "true":
                continue
            term_id = stanza["id"][0]
            synonyms = []
            for synonym in stanza.get("synonym", []):
                match = _SYNONYM_PATTERN.match(synonym)
                if match is None:
                    raise InvalidFileError(f"Invalid synonym '{synonym}'")
                if match.group("scope") in _RESOLVING_SCOPES:
                    synonyms.append(match.group("text"))
            graph.add_node(term_id, name=stanza["name"][0], synonyms=synonyms)
            for parent in stanza.get("is_a", []):
                # Remove trailing comment, e.g. 'SO:0000001 ! region'
                parent_id = parent.split("!")[0].strip()
                graph.add_edge(term_id, parent_id)
        return cls(graph)

    @property
    def graph(self):
        return self._graph

    def resolve_name_or_synonym(self, name):
        return self._name_index.get(name.lower())

    def get_name(self, term_id):
        if term_id not in self._graph:
            return None
        return self._graph.nodes[term_id].get("name")

    def get_parents(self, term_id):
        """
        Get all ancestors of a term.

        Parameters
        ----------
        term_id : str
            The ID of the term.

        Returns
        -------
        parents : list of str
            The IDs of all ancestor terms, sorted from the closest to
            the most distant ancestor.
        """
        if term_id not in self._graph:
            return []
        distances = nx.single_source_shortest_path_length(self._graph, term_id)
        del distances[term_id]
        return sorted(distances, key=lambda parent: (distances[parent], parent))

    def is_descendant_of(self, term_id, ancestor_id):
        return ancestor_id in self._ancestors(term_id)

    @functools.lru_cache(maxsize=None)
    def _ancestors(self, term_id):
        if term_id not in self._graph:
            return frozenset()
        # Edges point to the parents
        return frozenset(nx.descendants(self._graph, term_id))


def _iter_term_stanzas(lines):
    stanza = None
    for line in lines:
        line = line.strip()
        if line.startswith("["):
            if stanza is not None:
                yield stanza
            stanza = {} if line == "[Term]" else None
        elif stanza is not None and ":" in line:
            tag, value = line.split(":", 1)
            stanza.setdefault(tag.strip(), []).append(value.strip())
    if stanza is not None:
        yield stanza


@functools.lru_cache(maxsize=None)
def get_sequence_ontology():
    """
    Get the bundled subset of the *Sequence Ontology*.

    The subset comprises all terms that are referenced in the
    feature mapping table and their ancestors.

    Returns
    -------
    ontology : OBOOntology
        The ontology.
    """
    return OBOOntology.read(join(dirname(realpath(__file__)), "so_subset.obo"))


def fetch_sequence_ontology(target_path, url=_SO_OBO_URL):
    """
    Download the complete *Sequence Ontology* in *OBO* format.

    Parameters
    ----------
    target_path : str
        The file the ontology is written to.
    url : str, optional
        The location of the *OBO* file.

    Returns
    -------
    ontology : OBOOntology
        The downloaded ontology.

    Raises
    ------
    requests.HTTPError
        If the server returns an error status.
    """
    _logger.info("Downloading Sequence Ontology from %s", url)
    r = requests.get(url, timeout=60)
    r.raise_for_status()
    with open(target_path, "w") as f:
        f.write(r.text)
    return OBOOntology.read(target_path)
