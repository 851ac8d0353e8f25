# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

from io import StringIO
from os.path import join
import warnings
import pytest
import ffgff
import ffgff.gff as gff
import ffgff.validation as validation
from ffgff import Location
from .util import data_dir

Severity = validation.Severity


def create_feature(type="gene", start=1, end=10, phase=None, **attributes):
    return gff.GFF3Feature(
        "A.1", ".", type, start, end,
        strand=Location.Strand.FORWARD, phase=phase, attributes=attributes,
    )


def create_annotation(*features):
    return gff.GFF3Annotation(
        gff.SequenceRegion("A", 1, 1, 100), [], list(features)
    )


def test_empty_engine():
    """
    An engine without rules and fixes accepts anything.
    """
    engine = validation.ValidationEngine()
    feature = create_feature(start=10, end=1, locus_tag=["abc", "abc"])
    engine.validate_feature(feature)
    assert feature.attributes == {"locus_tag": ["abc", "abc"]}
    assert engine.warnings == []
    assert engine.errors == []


@pytest.mark.parametrize(
    "start, end, valid",
    [
        (1, 10, True),
        (5, 5, True),
        (0, 10, False),
        (10, 1, False),
        (-5, -1, False),
    ]
)
def test_location_rule(start, end, valid):
    engine = validation.ValidationEngine.default()
    feature = create_feature(start=start, end=end)
    if valid:
        engine.validate_feature(feature, 1)
    else:
        with pytest.raises(ffgff.ValidationError) as info:
            engine.validate_feature(feature, 1)
        assert info.value.rule == "LOCATION"
        assert info.value.line == 1
        assert info.value.severity == Severity.ERROR


@pytest.mark.parametrize(
    "type, valid",
    [
        ("gene", True),
        ("SO:0000316", True),
        ("coding sequence", True),
        ("lncRNA", True),
        ("not_a_term", False),
        # A term, but not a sequence feature
        ("circular", False),
    ]
)
def test_ontology_rule(type, valid):
    engine = validation.ValidationEngine.default()
    feature = create_feature(type=type, phase=0)
    if valid:
        engine.validate_feature(feature)
    else:
        with pytest.raises(ffgff.ValidationError) as info:
            engine.validate_feature(feature)
        assert info.value.rule == "ONTOLOGY_FEATURE"


def test_cds_phase_rule():
    engine = validation.ValidationEngine.default()
    with pytest.warns(ffgff.ConversionWarning, match="CDS_PHASE"):
        engine.validate_feature(create_feature(type="CDS"), 3)
    assert len(engine.warnings) == 1
    assert engine.warnings[0].rule == "CDS_PHASE"
    assert engine.warnings[0].severity == Severity.WARN

    # Other features do not require a phase
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        engine.validate_feature(create_feature(type="exon"))
        engine.validate_feature(create_feature(type="CDS", phase=0))
    assert len(engine.warnings) == 1


def test_severity_override():
    config = validation.ValidationConfig(
        {"LOCATION": Severity.WARN, "CDS_PHASE": Severity.OFF}
    )
    engine = validation.ValidationEngine.default(config=config)
    with pytest.warns(ffgff.ConversionWarning, match="LOCATION"):
        engine.validate_feature(create_feature(type="CDS", start=10, end=1))
    # The CDS_PHASE violation is ignored
    assert [error.rule for error in engine.warnings] == ["LOCATION"]


def test_dangling_parent_rule():
    engine = validation.ValidationEngine.default()
    valid = create_annotation(
        create_feature(ID="g"),
        create_feature(type="mRNA", ID="m", Parent="g"),
    )
    engine.validate_annotation(valid)

    invalid = create_annotation(
        create_feature(type="mRNA", ID="m", Parent="g"),
    )
    with pytest.raises(ffgff.ValidationError) as info:
        engine.validate_annotation(invalid, 5)
    assert info.value.rule == "DANGLING_PARENT"
    assert "'g'" in info.value.message


def test_region_bounds_rule():
    engine = validation.ValidationEngine.default()
    annotation = create_annotation(create_feature(start=90, end=110))
    with pytest.warns(ffgff.ConversionWarning, match="SEQUENCE_REGION_BOUNDS"):
        engine.validate_annotation(annotation)


def test_collect_errors():
    """
    If the engine does not fail fast, all errors are raised together.
    """
    engine = validation.ValidationEngine.default(fail_fast=False)
    engine.validate_feature(create_feature(start=10, end=1), 1)
    engine.validate_feature(create_feature(type="not_a_term"), 2)
    engine.validate_feature(create_feature(), 3)
    assert [error.rule for error in engine.errors] == [
        "LOCATION", "ONTOLOGY_FEATURE"
    ]
    with pytest.raises(ffgff.AggregatedValidationError) as info:
        engine.raise_collected()
    assert info.value.errors == engine.errors
    assert "2 validation error(s)" in str(info.value)

    # Nothing is raised without errors
    validation.ValidationEngine.default(fail_fast=False).raise_collected()


def test_syntactic_error():
    error = ffgff.ValidationError("INVALID_RECORD", "Broken line", 7)
    assert str(error) == "INVALID_RECORD (line 7): Broken line"

    engine = validation.ValidationEngine()
    with pytest.raises(ffgff.ValidationError):
        engine.handle_syntactic_error(error)

    engine = validation.ValidationEngine(
        validation.ValidationConfig({"INVALID_RECORD": Severity.OFF})
    )
    assert engine.handle_syntactic_error(error) == Severity.OFF
    assert engine.warnings == []


def test_duplicate_value_fix():
    engine = validation.ValidationEngine.default()
    feature = create_feature(Note=["a", "b", "a"], Dbxref=["x"])
    engine.validate_feature(feature)
    assert feature.attributes == {"Note": ["a", "b"], "Dbxref": ["x"]}


def test_locus_tag_fix():
    engine = validation.ValidationEngine.default()
    feature = create_feature(locus_tag="abc_0001")
    engine.validate_feature(feature)
    assert feature.attributes["locus_tag"] == ["ABC_0001"]

    config = validation.ValidationConfig(fixes={"LOCUS_TAG_TO_UPPERCASE": False})
    engine = validation.ValidationEngine.default(config=config)
    feature = create_feature(locus_tag="abc_0001")
    engine.validate_feature(feature)
    assert feature.attributes["locus_tag"] == ["abc_0001"]


def test_protein_id_fix():
    # Disabled by default
    engine = validation.ValidationEngine.default()
    feature = create_feature(type="CDS", phase=0, protein_id="CAA00001.1")
    engine.validate_feature(feature)
    assert feature.attributes == {"protein_id": ["CAA00001.1"]}

    config = validation.ValidationConfig(fixes={"PROTEIN_ID_REMOVE": True})
    engine = validation.ValidationEngine.default(config=config)
    engine.validate_feature(feature)
    assert feature.attributes == {}


def test_fixes_before_rules():
    """
    Rules see the already fixed feature.
    """
    seen = []
    engine = validation.ValidationEngine(
        rules=[
            validation.Rule(
                "CUSTOM",
                validation.Target.FEATURE,
                lambda feature, line: seen.append(feature.get_attribute("locus_tag")),
                Severity.ERROR,
            )
        ],
        fixes=[
            validation.Fix(
                "UPPER",
                validation.Target.FEATURE,
                validation.uppercase_locus_tag,
                True,
            )
        ],
    )
    engine.validate_feature(create_feature(locus_tag="abc"))
    # Annotation targets are not affected by feature rules
    engine.validate_annotation(create_annotation())
    assert seen == ["ABC"]


def test_read_config():
    config = validation.ValidationConfig.read(join(data_dir(), "rules.json"))
    assert config.get_severity("DANGLING_PARENT", Severity.ERROR) == Severity.WARN
    assert config.get_severity("SEQUENCE_REGION_BOUNDS", Severity.WARN) == Severity.OFF
    assert config.get_severity("LOCATION", Severity.ERROR) == Severity.ERROR
    assert config.is_fix_enabled("PROTEIN_ID_REMOVE", False)
    assert not config.is_fix_enabled("LOCUS_TAG_TO_UPPERCASE", True)
    assert config.is_fix_enabled("ATTRIBUTES_DUPLICATE_VALUE", True)


def test_read_config_lower_case():
    config = validation.ValidationConfig.read(
        StringIO('{"severities": {"LOCATION": "warn"}}')
    )
    assert config.get_severity("LOCATION", Severity.ERROR) == Severity.WARN


def test_read_invalid_config():
    with pytest.raises(ValueError):
        validation.ValidationConfig.read(
            StringIO('{"severities": {"LOCATION": "FATAL"}}')
        )
