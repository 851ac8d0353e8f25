# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

from io import StringIO
import pytest
import ffgff
from .util import cannot_connect_to

SO_URL = (
    "https://raw.githubusercontent.com/The-Sequence-Ontology/"
    "SO-Ontologies/master/Ontology_Files/so.obo"
)

OBO_CONTENT = """format-version: 1.2
ontology: test

[Term]
id: SO:0000110
name: sequence_feature

[Term]
id: SO:0000001
name: region
synonym: "sequence" NARROW []
is_a: SO:0000110 ! sequence_feature

[Term]
id: SO:0000704
name: gene
synonym: "INSDC_feature:gene" EXACT []
synonym: "genetic unit" RELATED []
is_a: SO:0000001 ! region

[Term]
id: SO:0000999
name: old_term
is_obsolete: true

[Typedef]
id: part_of
name: part_of
"""


@pytest.fixture
def ontology():
    return ffgff.OBOOntology.read(StringIO(OBO_CONTENT))


@pytest.mark.parametrize(
    "name, exp_id",
    [
        ("gene", "SO:0000704"),
        ("GENE", "SO:0000704"),
        ("INSDC_feature:gene", "SO:0000704"),
        ("sequence", "SO:0000001"),
        ("SO:0000704", "SO:0000704"),
        # Related synonyms do not resolve
        ("genetic unit", None),
        ("old_term", None),
        ("SO:0000999", None),
        ("part_of", None),
        ("unknown", None),
    ]
)
def test_resolve(ontology, name, exp_id):
    assert ontology.resolve(name) == exp_id


def test_read(ontology):
    assert set(ontology.graph.nodes) == {"SO:0000110", "SO:0000001", "SO:0000704"}
    assert ontology.get_name("SO:0000704") == "gene"
    assert ontology.get_name("SO:0000999") is None
    assert ontology.get_parents("SO:0000704") == ["SO:0000001", "SO:0000110"]
    assert ontology.get_parents("SO:0000110") == []
    assert ontology.get_parents("SO:1234567") == []
    assert ontology.is_descendant_of("SO:0000704", "SO:0000110")
    assert not ontology.is_descendant_of("SO:0000110", "SO:0000704")
    assert ontology.is_feature_term("SO:0000110")
    assert ontology.is_feature_term("SO:0000704")


def test_read_invalid():
    with pytest.raises(ffgff.InvalidFileError):
        ffgff.OBOOntology.read(StringIO("[Term]\nname: no_id\n"))
    with pytest.raises(ffgff.InvalidFileError):
        ffgff.OBOOntology.read(
            StringIO("[Term]\nid: SO:0000001\nname: region\nsynonym: broken\n")
        )


@pytest.mark.parametrize(
    "term_id, valid",
    [
        ("SO:0000704", True),
        ("SO:704", False),
        ("GO:0000704", False),
        ("gene", False),
    ]
)
def test_is_valid_id(ontology, term_id, valid):
    assert ontology.is_valid_id(term_id) == valid


@pytest.mark.parametrize(
    "name, exp_id",
    [
        ("CDS", "SO:0000316"),
        ("coding_sequence", "SO:0000316"),
        ("lncRNA", "SO:0001877"),
        ("5' UTR", "SO:0000204"),
        ("mobile element", "SO:0001037"),
        # Broad synonym
        ("INSDC_feature:misc_feature", None),
    ]
)
def test_bundled_ontology(name, exp_id):
    ontology = ffgff.get_sequence_ontology()
    assert ontology.resolve(name) == exp_id
    if exp_id is not None:
        assert ontology.is_feature_term(exp_id)


def test_bundled_parents():
    """
    Ancestors are sorted from the closest to the most distant one.
    """
    ontology = ffgff.get_sequence_ontology()
    assert ontology.get_parents(ffgff.CDS) == [
        "SO:0000836",
        "SO:0000834",
        "SO:0000833",
        "SO:0000831",
        "SO:0001411",
        ffgff.REGION,
        ffgff.SEQUENCE_FEATURE,
    ]
    # Only a sequence attribute, not a feature
    assert not ontology.is_feature_term(ontology.resolve("circular"))


@pytest.mark.skipif(
    cannot_connect_to(SO_URL),
    reason="Sequence Ontology repository is not available",
)
def test_fetch_sequence_ontology(tmp_path):
    path = tmp_path / "so.obo"
    ontology = ffgff.fetch_sequence_ontology(str(path))
    assert path.exists()
    assert ontology.resolve("gene") == "SO:0000704"
    assert ontology.is_descendant_of(ffgff.CDS, ffgff.SEQUENCE_FEATURE)
