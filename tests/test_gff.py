# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

from io import StringIO
from os.path import join
import pytest
import ffgff
import ffgff.gff as gff
import ffgff.validation as validation
from .util import data_dir


def gff_file(*lines):
    """
    Create a GFF3 file from feature lines, whose columns are separated
    by spaces.
    """
    content = []
    for line in lines:
        if not line.startswith("#"):
            line = "\t".join(line.split(" ", 8))
        content.append(line + "\n")
    return StringIO("".join(content))


def lenient_engine(*rules):
    config = validation.ValidationConfig(
        {rule: validation.Severity.WARN for rule in rules}
    )
    return validation.ValidationEngine(config)


def test_read_example():
    with gff.GFFReader(join(data_dir(), "example.gff3")) as reader:
        assert reader.read_header() == "3"
        annotations = list(reader.read_annotations())

    assert [annotation.accession for annotation in annotations] == [
        "AB000001.1", "AB000002.1"
    ]
    first, second = annotations
    assert first.sequence_region == gff.SequenceRegion("AB000001", 1, 1, 12)
    assert first.species == [
        gff.Species(
            "https://www.ncbi.nlm.nih.gov/Taxonomy/Browser/wwwtax.cgi?id=562"
        )
    ]
    assert first.species[0].taxon_id == "562"
    assert [feature.type for feature in first] == ["gene", "mRNA", "CDS", "CDS"]
    cds = first.features[2]
    assert cds.start == 1
    assert cds.end == 5
    assert cds.strand == ffgff.Location.Strand.FORWARD
    assert cds.phase == 0
    assert cds.score is None
    assert cds.id == "CDS_abc"
    assert cds.parent_id == "mRNA_abc"
    assert cds.attributes["product"] == ["Abc protein"]

    assert second.species == []
    promoter = second.features[0]
    assert promoter.strand == ffgff.Location.Strand.REVERSE
    assert promoter.phase is None
    assert promoter.attributes == {"Note": ["first", "second"]}
    assert second.features[1].attributes == {"partial": ["start", "end"]}


def test_split_on_seqid_change():
    """
    A change of the sequence ID completes an annotation, even without
    '###' directive.
    """
    reader = gff.GFFReader(gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "##sequence-region B.1 1 100",
        "A.1 . gene 1 10 . + . ID=a",
        "A.1 . gene 20 30 . + . ID=b",
        "B.1 . gene 1 10 . + . ID=c",
    ))
    first = reader.read_annotation()
    assert first.accession == "A.1"
    assert [feature.id for feature in first] == ["a", "b"]
    second = reader.read_annotation()
    assert second.accession == "B.1"
    assert [feature.id for feature in second] == ["c"]
    assert reader.read_annotation() is None


def test_resolution_directive():
    """
    '###' completes an annotation, but consecutive annotations of the
    same sequence are merged when iterating.
    """
    file = gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "A.1 . gene 1 10 . + . ID=a",
        "###",
        "A.1 . gene 20 30 . + . ID=b",
    )
    reader = gff.GFFReader(file)
    assert len(reader.read_annotation()) == 1
    assert len(reader.read_annotation()) == 1
    assert reader.read_annotation() is None

    file.seek(0)
    annotations = list(gff.GFFReader(file).read_annotations())
    assert len(annotations) == 1
    assert [feature.id for feature in annotations[0]] == ["a", "b"]


def test_empty_region():
    """
    Declared sequence regions without features result in empty
    annotations at the end of the file.
    """
    reader = gff.GFFReader(gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "##sequence-region B.1 1 50",
        "A.1 . gene 1 10 . + . ID=a",
    ))
    annotations = list(reader)
    assert [annotation.accession for annotation in annotations] == ["A.1", "B.1"]
    assert len(annotations[1]) == 0
    assert annotations[1].sequence_region.end == 50


def test_region_species():
    """
    Species directives following a sequence region belong to this
    region, while other species directives apply to all regions.
    """
    reader = gff.GFFReader(gff_file(
        "##gff-version 3",
        "##species https://example.org?id=1",
        "##sequence-region A.1 1 100",
        "##species https://example.org?id=2",
        "##sequence-region B.1 1 100",
        "A.1 . gene 1 10 . + . ID=a",
        "B.1 . gene 1 10 . + . ID=b",
    ))
    first, second = list(reader)
    assert [species.taxon_id for species in first.species] == ["1", "2"]
    assert [species.taxon_id for species in second.species] == ["1"]
    # The feature line after the probed species directives is still read
    assert first.features[0].id == "a"


def test_missing_header():
    file = gff_file(
        "##sequence-region A.1 1 100",
        "A.1 . gene 1 10 . + . ID=a",
    )
    with pytest.raises(ffgff.ValidationError) as info:
        gff.GFFReader(file).read_annotation()
    assert info.value.rule == gff.INVALID_HEADER

    file.seek(0)
    reader = gff.GFFReader(file, lenient_engine(gff.INVALID_HEADER))
    with pytest.warns(ffgff.ConversionWarning):
        assert reader.read_header() is None
    # The first line is not lost
    annotation = reader.read_annotation()
    assert annotation.sequence_region is not None
    assert len(annotation) == 1


def test_undefined_seqid():
    file = gff_file(
        "##gff-version 3",
        "A.1 . gene 1 10 . + . ID=a",
    )
    with pytest.raises(ffgff.ValidationError) as info:
        gff.GFFReader(file).read_annotation()
    assert info.value.rule == gff.UNDEFINED_SEQID
    assert info.value.line == 2

    file.seek(0)
    engine = lenient_engine(gff.UNDEFINED_SEQID)
    with pytest.warns(ffgff.ConversionWarning):
        annotation = gff.GFFReader(file, engine).read_annotation()
    assert annotation.sequence_region is None
    assert annotation.accession == "A.1"
    assert [error.rule for error in engine.warnings] == [gff.UNDEFINED_SEQID]


def test_duplicate_seqid():
    file = gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "##sequence-region B.1 1 100",
        "A.1 . gene 1 10 . + . ID=a",
        "B.1 . gene 1 10 . + . ID=b",
        "A.1 . gene 20 30 . + . ID=c",
    )
    with pytest.raises(ffgff.ValidationError) as info:
        list(gff.GFFReader(file))
    assert info.value.rule == gff.DUPLICATE_SEQID
    assert info.value.line == 6


@pytest.mark.parametrize(
    "line",
    [
        "A.1 . gene 1 10 . +",
        "A.1 . gene x 10 . + . ID=a",
        "A.1 . gene 1 10 . * . ID=a",
        "A.1 . gene 1 10 . + 3 ID=a",
        "A.1 . gene 1 10 high + . ID=a",
        "A.1 . gene 1 10 . + . ID=a=b",
    ]
)
def test_invalid_record(line):
    file = gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        line,
        "A.1 . gene 20 30 . + . ID=valid",
    )
    with pytest.raises(ffgff.ValidationError) as info:
        gff.GFFReader(file).read_annotation()
    assert info.value.rule == gff.INVALID_RECORD

    file.seek(0)
    engine = lenient_engine(gff.INVALID_RECORD)
    with pytest.warns(ffgff.ConversionWarning):
        annotation = gff.GFFReader(file, engine).read_annotation()
    # The invalid line is skipped
    assert [feature.id for feature in annotation] == ["valid"]


def test_invalid_record_ignored():
    """
    An invalid record is skipped even if the rule is switched off.
    """
    file = gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "A.1 . gene x 10 . + . ID=a",
        "A.1 . gene 20 30 . + . ID=valid",
    )
    config = validation.ValidationConfig(
        {gff.INVALID_RECORD: validation.Severity.OFF}
    )
    engine = validation.ValidationEngine(config)
    annotation = gff.GFFReader(file, engine).read_annotation()
    assert [feature.id for feature in annotation] == ["valid"]
    assert engine.warnings == []
    assert engine.errors == []


def test_percent_encoding():
    reader = gff.GFFReader(gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "A.1 . gene 1 10 . + . ID=a;Note=x%3By%2Cz%3D,second",
    ))
    feature = reader.read_annotation().features[0]
    assert feature.attributes["Note"] == ["x;y,z=", "second"]

    output = StringIO()
    gff.GFFWriter(output).write_feature(feature)
    assert output.getvalue().split("\t")[-1] == "ID=a;Note=x%3By%2Cz%3D,second\n"


def test_fasta_section_ends_features():
    reader = gff.GFFReader(gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "A.1 . gene 1 10 . + . ID=a",
        "##FASTA",
        ">A.1|a",
        "MKV",
    ))
    annotations = list(reader)
    assert len(annotations) == 1
    assert len(annotations[0]) == 1


def test_validation_during_read():
    """
    Fixes are applied to each feature, while rules may reject it.
    """
    file = gff_file(
        "##gff-version 3",
        "##sequence-region A.1 1 100",
        "A.1 . gene 1 10 . + . ID=a;locus_tag=abc;Note=x,x",
        "A.1 . mRNA 1 10 . + . ID=b;Parent=missing",
    )
    engine = validation.ValidationEngine.default(
        config=validation.ValidationConfig(
            {"DANGLING_PARENT": validation.Severity.WARN}
        )
    )
    with pytest.warns(ffgff.ConversionWarning, match="missing"):
        annotation = gff.GFFReader(file, engine).read_annotation()
    gene = annotation.features[0]
    assert gene.attributes["locus_tag"] == ["ABC"]
    assert gene.attributes["Note"] == ["x"]
    assert [error.rule for error in engine.warnings] == ["DANGLING_PARENT"]


def test_write_annotation():
    annotation = gff.GFF3Annotation(
        gff.SequenceRegion("A", 2, 1, 100),
        [gff.Species.from_taxon(organism="Escherichia coli")],
        [
            gff.GFF3Feature(
                "A.2", ".", "gene", 1, 10,
                strand=ffgff.Location.Strand.REVERSE,
                attributes={"gene": "abc", "ID": "gene_abc"},
            ),
            gff.GFF3Feature("A.2", ".", "region", 1, 100, score=1.5),
        ],
    )
    output = StringIO()
    writer = gff.GFFWriter(output)
    writer.write_header()
    writer.write_annotation(annotation)
    assert output.getvalue().splitlines() == [
        "##gff-version 3",
        "##sequence-region A.2 1 100",
        "##species https://www.ncbi.nlm.nih.gov/Taxonomy/Browser/wwwtax.cgi"
        "?name=Escherichia%20coli",
        "A.2\t.\tgene\t1\t10\t.\t-\t.\tID=gene_abc;gene=abc",
        "A.2\t.\tregion\t1\t100\t1.5\t.\t.\t.",
        "###",
    ]
    assert annotation.species[0].organism == "Escherichia coli"


def test_read_written():
    """
    Reading a written file must give the same annotations.
    """
    with gff.GFFReader(join(data_dir(), "example.gff3")) as reader:
        ref_annotations = list(reader)
    output = StringIO()
    writer = gff.GFFWriter(output)
    writer.write_header()
    for annotation in ref_annotations:
        writer.write_annotation(annotation)

    output.seek(0)
    test_annotations = list(gff.GFFReader(output))
    assert len(test_annotations) == len(ref_annotations)
    for test_annotation, ref_annotation in zip(test_annotations, ref_annotations):
        assert test_annotation.sequence_region == ref_annotation.sequence_region
        assert test_annotation.species == ref_annotation.species
        assert test_annotation.features == ref_annotation.features


def test_hash_id():
    """
    The lines of a feature without 'ID' differ only in their positions
    and partiality, which are not part of the hash.
    """
    first = gff.GFF3Feature(
        "A.1", ".", "CDS", 1, 10, phase=0,
        attributes={"product": "x", "partial": "start"},
    )
    second = gff.GFF3Feature(
        "A.1", ".", "CDS", 20, 30, phase=0, attributes={"product": "x"}
    )
    other = gff.GFF3Feature(
        "A.1", ".", "CDS", 20, 30, phase=0, attributes={"product": "y"}
    )
    assert first.hash_id() == second.hash_id()
    assert first.hash_id() != other.hash_id()


@pytest.mark.parametrize(
    "accession, accession_id, version",
    [
        ("OZ026791.1", "OZ026791", 1),
        ("OZ026791", "OZ026791", None),
        ("chr1.a", "chr1.a", None),
    ]
)
def test_split_accession(accession, accession_id, version):
    assert gff.split_accession(accession) == (accession_id, version)
