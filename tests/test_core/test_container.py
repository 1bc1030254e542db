import numpy
import pytest
from numpy.testing import assert_allclose

from sitekit.core.alphabet import DNA, RNA, AlphabetMismatchError
from sitekit.core.container import (
    CompressedVectorSiteContainer,
    MapSequenceContainer,
    ProbabilisticVectorSiteContainer,
    VectorSiteContainer,
)
from sitekit.core.sequence import (
    ProbabilisticSequence,
    Sequence,
    SequenceError,
    SequenceNotAlignedError,
)
from sitekit.core.site import ProbabilisticSite, Site, SiteError
from sitekit.util.deserialise import deserialise_object
from sitekit.util.misc import IndexOutOfBoundsError


def assert_rows_match_columns(aln):
    for i in range(aln.num_sequences):
        seq = aln.sequence(i)
        assert len(seq) == aln.num_sites
        for j in range(aln.num_sites):
            assert aln.value_at(i, j) == aln.site(j)[i] == seq[j]


def test_sites_transposed(dna_sites):
    aln = VectorSiteContainer(dna_sites, alphabet=DNA)
    assert aln.num_sequences == 2
    assert aln.num_sites == 3
    assert aln.sequence_keys == ["Seq_0", "Seq_1"]
    assert aln.sequence(0).to_string() == "AGA"
    assert aln.sequence("Seq_1").to_string() == "CTA"
    assert aln.site_coordinates == [1, 2, 3]
    assert_rows_match_columns(aln)


def test_from_sequences(dna_aln):
    assert dna_aln.num_sequences == 3
    assert dna_aln.num_sites == 5
    assert dna_aln.sequence_keys == ["seq1", "seq2", "seq3"]
    assert dna_aln.site(2).to_string() == "GG-"
    assert dna_aln.site_coordinates == [1, 2, 3, 4, 5]
    assert dna_aln.to_array().shape == (3, 5)
    assert_rows_match_columns(dna_aln)


def test_from_size():
    aln = VectorSiteContainer.from_size(3, alphabet=DNA)
    assert aln.num_sequences == 3
    assert aln.num_sites == 0
    assert aln.sequence(1).to_string() == ""
    aln.add_site(Site("ACG", alphabet=DNA, coordinate=1))
    assert aln.sequence(2).to_string() == "G"
    with pytest.raises(SiteError):
        aln.add_site(Site("AC", alphabet=DNA, coordinate=2))


def test_sequence_keys_constructor(dna_sites):
    aln = VectorSiteContainer(dna_sites, alphabet=DNA, sequence_keys=["a", "b"])
    assert aln.sequence_keys == ["a", "b"]
    assert aln.sequence("b").name == "b"
    assert aln.sequence("b").to_string() == "CTA"


def test_add_site_checks(dna_aln):
    with pytest.raises(SiteError):
        dna_aln.add_site(Site("AC", alphabet=DNA, coordinate=9))
    with pytest.raises(SiteError):
        dna_aln.add_site(Site("ACG", alphabet=DNA, coordinate=2))
    with pytest.raises(AlphabetMismatchError):
        dna_aln.add_site(Site("ACG", alphabet=RNA, coordinate=9))
    with pytest.raises(TypeError):
        dna_aln.add_site(ProbabilisticSite([[1, 0, 0, 0]] * 3, alphabet=DNA))
    assert dna_aln.num_sites == 5
    dna_aln.add_site(Site("ACG", alphabet=DNA, coordinate=2), check_coordinate=False)
    assert dna_aln.num_sites == 6


def test_site_held_by_one_container(dna_sites):
    first = VectorSiteContainer(dna_sites, alphabet=DNA)
    second = VectorSiteContainer(alphabet=DNA)
    with pytest.raises(SiteError):
        second.add_site(first.site(0))
    second.add_site(first.site(0).copy())
    assert second.num_sites == 1


def test_insert_site(dna_sites):
    aln = VectorSiteContainer(dna_sites, alphabet=DNA)
    aln.insert_site(0, Site("TT", alphabet=DNA, coordinate=0))
    assert aln.sequence(0).to_string() == "TAGA"
    with pytest.raises(IndexOutOfBoundsError):
        aln.insert_site(9, Site("TT", alphabet=DNA, coordinate=10))


def test_set_site(dna_sites):
    aln = VectorSiteContainer(dna_sites, alphabet=DNA)
    old = aln.site(1)
    aln.set_site(1, Site("CC", alphabet=DNA, coordinate=2))
    assert aln.sequence(1).to_string() == "CCA"
    # the replaced site is released
    old.append("A")
    assert len(old) == 3


def test_remove_site(dna_sites):
    aln = VectorSiteContainer(dna_sites, alphabet=DNA)
    site = aln.remove_site(0)
    assert site.to_string() == "AC"
    assert aln.num_sites == 2
    assert aln.sequence(0).to_string() == "GA"
    other = VectorSiteContainer([site], alphabet=DNA)
    assert other.num_sites == 1


def test_delete_sites(dna_aln):
    dna_aln.delete_sites(1, 3)
    assert dna_aln.sequence("seq3").to_string() == "AN"
    assert dna_aln.site_coordinates == [1, 5]
    with pytest.raises(IndexOutOfBoundsError):
        dna_aln.delete_sites(1, 2)
    dna_aln.delete_site(0)
    assert dna_aln.num_sites == 1


def test_reindex_sites_idempotent(dna_aln):
    dna_aln.delete_sites(0, 2)
    dna_aln.reindex_sites()
    assert dna_aln.site_coordinates == [1, 2, 3]
    dna_aln.reindex_sites()
    assert dna_aln.site_coordinates == [1, 2, 3]


def test_set_site_coordinates(dna_sites):
    aln = VectorSiteContainer(dna_sites, alphabet=DNA)
    aln.set_site_coordinates([10, 20, 30])
    assert aln.site(1).coordinate == 20
    with pytest.raises(SiteError):
        aln.set_site_coordinates([1])


def test_cached_sequence_read_only(dna_aln):
    seq = dna_aln.sequence("seq1")
    assert dna_aln.sequence("seq1") is seq
    with pytest.raises(SequenceError):
        seq[0] = "T"
    with pytest.raises(SequenceError):
        seq.append("A")
    editable = seq.copy()
    editable[0] = "T"
    assert editable.to_string() == "TCGTA"
    assert dna_aln.sequence("seq1").to_string() == "ACGTA"


def test_cached_sequence_merge_refused(dna_aln):
    seq = dna_aln.sequence("seq1")
    with pytest.raises(SequenceError):
        seq.merge(Sequence("seq1", "TT", alphabet=DNA))
    assert len(dna_aln.sequence("seq1")) == dna_aln.num_sites
    assert_rows_match_columns(dna_aln)


def test_cached_sequence_read_only_without_events(dna_aln):
    seq = dna_aln.sequence("seq1")
    seq.propagate_events = False
    with pytest.raises(SequenceError):
        seq.append("A")
    with pytest.raises(SequenceError):
        seq[0] = "T"
    assert seq.to_string() == "ACGTA"
    assert_rows_match_columns(dna_aln)


def test_set_value_at(dna_aln):
    before = dna_aln.sequence("seq2")
    dna_aln.set_value_at("seq2", 0, "G")
    assert dna_aln.value_at("seq2", 0) == 2
    assert dna_aln.sequence("seq2").to_string() == "GCGTT"
    assert dna_aln.sequence("seq2") is not before
    assert_rows_match_columns(dna_aln)


def test_edit_held_site(dna_aln):
    dna_aln.site(0)[1] = "G"
    assert dna_aln.sequence("seq2").to_string() == "GCGTT"
    with pytest.raises(SiteError):
        dna_aln.site(0).append("A")
    with pytest.raises(SiteError):
        dna_aln.site(0).delete_element(0)
    with pytest.raises(SiteError):
        dna_aln.site(0).set_content("AAA")
    assert_rows_match_columns(dna_aln)


def test_edit_held_site_without_events(dna_aln):
    assert dna_aln.sequence(0)[0] == 0
    site = dna_aln.site(0)
    site.propagate_events = False
    site[0] = "G"
    assert dna_aln.site(0)[0] == 2
    assert dna_aln.sequence(0)[0] == 2
    with pytest.raises(SiteError):
        site.append("A")
    assert_rows_match_columns(dna_aln)


def test_add_sequence(dna_aln):
    dna_aln.add_sequence(Sequence("seq4", "TTTTT", alphabet=DNA), key="extra")
    assert dna_aln.sequence_keys[-1] == "extra"
    assert dna_aln.sequence_names[-1] == "seq4"
    assert dna_aln.site(0).to_string() == "AAAT"
    assert_rows_match_columns(dna_aln)


def test_add_sequence_checks(dna_aln):
    with pytest.raises(SequenceNotAlignedError):
        dna_aln.add_sequence(Sequence("seq4", "TT", alphabet=DNA))
    with pytest.raises(SequenceError):
        dna_aln.add_sequence(Sequence("seq1", "TTTTT", alphabet=DNA))
    with pytest.raises(AlphabetMismatchError):
        dna_aln.add_sequence(Sequence("seq4", "UUUUU", alphabet=RNA))
    assert dna_aln.num_sequences == 3


def test_insert_sequence(dna_aln):
    dna_aln.insert_sequence(0, Sequence("first", "GGGGG", alphabet=DNA))
    assert dna_aln.sequence_keys == ["first", "seq1", "seq2", "seq3"]
    assert dna_aln.sequence_position("seq1") == 1
    assert dna_aln.site(4).to_string() == "GATN"


def test_set_sequence(dna_aln):
    dna_aln.set_sequence("seq2", Sequence("renamed", "CCCCC", alphabet=DNA))
    assert dna_aln.sequence_keys == ["seq1", "seq2", "seq3"]
    assert dna_aln.sequence("seq2").name == "renamed"
    assert dna_aln.site(0).to_string() == "ACA"


def test_remove_sequence(dna_aln):
    seq = dna_aln.remove_sequence("seq2")
    assert seq.name == "seq2"
    assert seq.to_string() == "ACGTT"
    seq.append("A")
    assert dna_aln.num_sequences == 2
    assert not dna_aln.has_sequence("seq2")
    assert dna_aln.sequence(1).to_string() == "AC-TN"
    dna_aln.delete_sequence(0)
    assert dna_aln.sequence_keys == ["seq3"]
    assert_rows_match_columns(dna_aln)


def test_missing_sequence(dna_aln):
    with pytest.raises(SequenceError):
        dna_aln.sequence("nope")
    with pytest.raises(IndexOutOfBoundsError):
        dna_aln.sequence(3)


def test_sequence_names_and_keys(dna_aln):
    dna_aln.set_sequence_names(["a", "b", "c"], update_keys=False)
    assert dna_aln.sequence_keys == ["seq1", "seq2", "seq3"]
    assert dna_aln.sequence("seq1").name == "a"
    dna_aln.set_sequence_names(["x", "y", "z"])
    assert dna_aln.sequence_keys == ["x", "y", "z"]
    with pytest.raises(SequenceError):
        dna_aln.set_sequence_keys(["x", "x", "z"])
    with pytest.raises(SequenceError):
        dna_aln.set_sequence_names(["x"])


def test_sequence_comments(dna_aln):
    dna_aln.set_sequence_comments("seq1", ["note"])
    assert dna_aln.sequence_comments(0) == ["note"]
    assert dna_aln.sequence("seq1").comments == ["note"]


def test_state_value_at(dna_aln):
    assert dna_aln.state_value_at(4, "seq3", "A") == 1.0
    assert dna_aln.state_value_at(0, "seq1", "C") == 0.0
    assert dna_aln.state_value_at(2, "seq3", "G") == 0.0


def test_clear_and_empty(dna_aln):
    dna_aln.comments.append("keep")
    empty = dna_aln.create_empty_container()
    assert isinstance(empty, VectorSiteContainer)
    assert empty.num_sequences == empty.num_sites == 0
    site = dna_aln.site(0)
    dna_aln.clear()
    assert dna_aln.num_sequences == dna_aln.num_sites == 0
    assert dna_aln.comments == ["keep"]
    site.append("A")


def test_copy(dna_aln):
    new = dna_aln.copy()
    new.set_value_at(0, 0, "T")
    assert dna_aln.value_at(0, 0) == 0
    assert new.sequence_keys == dna_aln.sequence_keys
    assert new.site_coordinates == dna_aln.site_coordinates


def test_iterators(dna_aln):
    assert [s.name for s in dna_aln.iter_seqs()] == ["seq1", "seq2", "seq3"]
    assert [s.to_string() for s in dna_aln.iter_sites()][:2] == ["AAA", "CCC"]


def test_roundtrip_json(dna_aln):
    dna_aln.comments.append("aligned")
    got = deserialise_object(dna_aln.to_json())
    assert type(got) is VectorSiteContainer
    assert got.sequence_keys == dna_aln.sequence_keys
    assert got.comments == ["aligned"]
    assert got.site_coordinates == dna_aln.site_coordinates
    numpy.testing.assert_array_equal(got.to_array(), dna_aln.to_array())


def test_probabilistic_container():
    seqs = [
        ProbabilisticSequence("a", [[1, 0, 0, 0], [0.5, 0.5, 0, 0]], alphabet=DNA),
        ProbabilisticSequence("b", [[0, 0, 0, 1], [0, 0, 1, 0]], alphabet=DNA),
    ]
    aln = ProbabilisticVectorSiteContainer.from_sequences(seqs, alphabet=DNA)
    assert aln.num_sites == 2
    assert isinstance(aln.site(0), ProbabilisticSite)
    assert aln.state_value_at(1, "a", "C") == 0.5
    assert_allclose(aln.value_at("b", 0), [0, 0, 0, 1])
    assert aln.to_array().shape == (2, 2, 4)
    seq = aln.sequence("a")
    assert isinstance(seq, ProbabilisticSequence)
    assert_allclose(seq.get_content(), seqs[0].get_content())
    with pytest.raises(TypeError):
        aln.add_sequence(Sequence("c", "AC", alphabet=DNA))


@pytest.fixture
def repeated_sites():
    return [
        Site("AC", alphabet=DNA, coordinate=1),
        Site("GT", alphabet=DNA, coordinate=2),
        Site("AC", alphabet=DNA, coordinate=3),
        Site("AC", alphabet=DNA, coordinate=4),
    ]


def test_compressed_storage(repeated_sites):
    comp = CompressedVectorSiteContainer(repeated_sites, alphabet=DNA)
    assert comp.num_sites == 4
    assert comp.num_unique_sites == 2
    assert [comp.unique_site_index(i) for i in range(4)] == [0, 1, 0, 0]
    assert comp.site_coordinates == [1, 2, 3, 4]
    assert comp.site(2).coordinate == 3


def test_compressed_decompresses_exactly(repeated_sites):
    plain = VectorSiteContainer(
        [s.copy() for s in repeated_sites], alphabet=DNA
    )
    comp = CompressedVectorSiteContainer.from_container(plain)
    numpy.testing.assert_array_equal(comp.to_array(), plain.to_array())
    assert comp.sequence_keys == plain.sequence_keys
    for i in range(plain.num_sequences):
        assert comp.sequence(i).to_string() == plain.sequence(i).to_string()
    assert_rows_match_columns(comp)


def test_compressed_site_is_copy(repeated_sites):
    comp = CompressedVectorSiteContainer(repeated_sites, alphabet=DNA)
    site = comp.site(0)
    site[0] = "T"
    assert comp.site(2).to_string() == "AC"


def test_compressed_rejects_sequence_edits(repeated_sites):
    comp = CompressedVectorSiteContainer(repeated_sites, alphabet=DNA)
    before = comp.to_array()
    keys = comp.sequence_keys
    num_unique = comp.num_unique_sites
    seq = Sequence("new", "AAAA", alphabet=DNA)
    with pytest.raises(NotImplementedError):
        comp.add_sequence(seq)
    with pytest.raises(NotImplementedError):
        comp.set_sequence(0, seq)
    with pytest.raises(NotImplementedError):
        comp.remove_sequence(0)
    with pytest.raises(NotImplementedError):
        comp.delete_sequence(0)
    numpy.testing.assert_array_equal(comp.to_array(), before)
    assert comp.sequence_keys == keys
    assert comp.num_unique_sites == num_unique


def test_compressed_set_value_at(repeated_sites):
    comp = CompressedVectorSiteContainer(repeated_sites, alphabet=DNA)
    comp.set_value_at(0, 1, "A")
    assert comp.site(1).to_string() == "AT"
    assert comp.num_unique_sites == 2
    comp.set_value_at(1, 1, "C")
    assert comp.num_unique_sites == 1
    assert comp.sequence(0).to_string() == "AAAA"


def test_compressed_site_edits(repeated_sites):
    comp = CompressedVectorSiteContainer(repeated_sites, alphabet=DNA)
    removed = comp.remove_site(1)
    assert removed.to_string() == "GT"
    assert removed.coordinate == 2
    assert comp.num_unique_sites == 1
    comp.set_site(0, Site("TT", alphabet=DNA, coordinate=1))
    assert comp.num_unique_sites == 2
    comp.delete_sites(0, 1)
    assert comp.num_unique_sites == 1
    comp.reindex_sites()
    assert comp.site_coordinates == [1, 2]
    comp.reindex_sites()
    assert comp.site_coordinates == [1, 2]
    with pytest.raises(SiteError):
        comp.add_site(Site("ACG", alphabet=DNA, coordinate=9))


def test_compressed_copy_and_json(repeated_sites):
    comp = CompressedVectorSiteContainer(repeated_sites, alphabet=DNA)
    new = comp.copy()
    assert new.num_unique_sites == 2
    got = deserialise_object(comp.to_json())
    assert type(got) is CompressedVectorSiteContainer
    assert got.num_unique_sites == 2
    numpy.testing.assert_array_equal(got.to_array(), comp.to_array())


def test_map_container_sorted_keys():
    seqs = [Sequence("b", "AC", alphabet=DNA), Sequence("a", "ACGT", alphabet=DNA)]
    container = MapSequenceContainer(seqs, alphabet=DNA)
    assert container.sequence_keys == ["a", "b"]
    assert container.sequence(0).name == "a"
    assert container.value_at("a", 3) == 3
    assert container.state_value_at(0, "b", "A") == 1.0
    with pytest.raises(SequenceError):
        container.add_sequence(Sequence("a", "A", alphabet=DNA))


def test_map_container_stores_sequences():
    seq = Sequence("a", "AC", alphabet=DNA)
    container = MapSequenceContainer([seq], alphabet=DNA)
    assert container.sequence("a") is seq
    container.set_sequence("a", Sequence("z", "T", alphabet=DNA))
    assert container.sequence_keys == ["a"]
    assert container.sequence_names == ["z"]
    removed = container.remove_sequence(0)
    assert removed.name == "z"
    assert container.num_sequences == 0
    with pytest.raises(AlphabetMismatchError):
        container.add_sequence(Sequence("r", "U", alphabet=RNA))


def test_map_container_copy_and_json():
    container = MapSequenceContainer(
        [Sequence("b", "AC", alphabet=DNA), Sequence("a", "ACGT", alphabet=DNA)],
        alphabet=DNA,
    )
    container.comments.append("unaligned")
    new = container.copy()
    new.sequence("a")[0] = "T"
    assert container.sequence("a").to_string() == "ACGT"
    got = deserialise_object(container.to_json())
    assert got.sequence_keys == ["a", "b"]
    assert got.sequence("b").to_string() == "AC"
    assert got.comments == ["unaligned"]
    container.clear()
    assert container.num_sequences == 0
