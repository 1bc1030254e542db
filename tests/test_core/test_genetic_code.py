import pytest

from sitekit.core.alphabet import CODON_DNA, CODON_RNA, DNA, PROTEIN, BadCharError
from sitekit.core.genetic_code import (
    DEFAULT,
    GeneticCode,
    GeneticCodeError,
    GeneticCodeInitError,
    StopCodonError,
    available_codes,
    get_code,
)
from sitekit.core.sequence import Sequence


@pytest.mark.parametrize("gc", [1, "1", "Standard Nuclear", DEFAULT, None])
def test_get_code(gc):
    assert get_code(gc) is DEFAULT


def test_get_code_unknown():
    with pytest.raises(ValueError):
        get_code(99)


def test_available_codes():
    codes = available_codes()
    assert codes[0] == (1, "Standard Nuclear")
    assert (2, "Vertebrate Mitochondrial") in codes


def test_init_wrong_length():
    with pytest.raises(GeneticCodeInitError):
        GeneticCode("F" * 63)


def test_translate():
    assert DEFAULT.translate("ATG") == "M"
    assert DEFAULT.translate("atg") == "M"
    atg = CODON_DNA.char_to_int("ATG")
    assert DEFAULT.translate(atg) == PROTEIN.char_to_int("M")
    assert DEFAULT.translate("---") == "-"
    assert DEFAULT.translate("NNN") == "X"
    assert DEFAULT.translate("ANG") == "X"


@pytest.mark.parametrize("codon", ["TAA", "TAG", "TGA"])
def test_stops(codon):
    assert DEFAULT.is_stop(codon)
    with pytest.raises(StopCodonError):
        DEFAULT.translate(codon)


def test_stop_codon_lists():
    assert DEFAULT.stop_codons_as_char == ["TAA", "TAG", "TGA"]
    assert len(DEFAULT.stop_codons_as_int) == 3
    assert len(DEFAULT.sense_codons) == 61


def test_mitochondrial_code():
    mt = get_code(2)
    assert mt.translate("TGA") == "W"
    assert mt.is_stop("AGA")


def test_invalid_codon():
    with pytest.raises(BadCharError):
        DEFAULT.translate("AT")


def test_starts():
    assert DEFAULT.is_start("ATG")
    assert not DEFAULT.is_start("TTG")
    assert DEFAULT.is_alt_start("TTG")
    assert not DEFAULT.is_alt_start("TTT")


def test_synonymous():
    assert DEFAULT.are_synonymous("CTT", "TTA")
    assert not DEFAULT.are_synonymous("CTT", "ATT")
    leucine = DEFAULT.get_synonymous("L")
    assert len(leucine) == 6
    assert CODON_DNA.char_to_int("CTG") in leucine


@pytest.mark.parametrize("codon,expect", [("CTG", True), ("GGA", True), ("ATG", False), ("TTT", False), ("TAA", False)])
def test_four_fold(codon, expect):
    assert DEFAULT.is_four_fold_degenerated(codon) is expect


def test_rna_code():
    rna_code = GeneticCode(DEFAULT.code_sequence, codon_alphabet=CODON_RNA)
    assert rna_code.translate("AUG") == "M"
    assert rna_code.stop_codons_as_char == ["UAA", "UAG", "UGA"]


def test_translate_sequence():
    seq = Sequence("s1", "ATGAAATTT", alphabet=DNA)
    got = DEFAULT.translate_sequence(seq)
    assert got.alphabet == PROTEIN
    assert got.to_string() == "MKF"
    codons = Sequence("s1", "ATGAAA", alphabet=CODON_DNA)
    assert DEFAULT.translate_sequence(codons).to_string() == "MK"


def test_translate_sequence_errors():
    with pytest.raises(GeneticCodeError):
        DEFAULT.translate_sequence(Sequence("s1", "ATGA", alphabet=DNA))
    with pytest.raises(StopCodonError):
        DEFAULT.translate_sequence(Sequence("s1", "ATGTAA", alphabet=DNA))
    with pytest.raises(GeneticCodeError):
        DEFAULT.translate_sequence(Sequence("s1", "MK", alphabet=PROTEIN))


@pytest.mark.parametrize(
    "look,include,expect",
    [(False, False, "CCCATGAAA"), (True, False, "AAA"), (True, True, "ATGAAA")],
)
def test_get_coding_sequence(look, include, expect):
    seq = Sequence("s1", "CCCATGAAATAGCCC", alphabet=DNA)
    got = DEFAULT.get_coding_sequence(
        seq, look_for_init_codon=look, include_init_codon=include
    )
    assert got.to_string() == expect
    assert got.alphabet == DNA


def test_get_coding_sequence_no_start():
    seq = Sequence("s1", "CCCAAA", alphabet=DNA)
    got = DEFAULT.get_coding_sequence(seq, look_for_init_codon=True)
    assert got.to_string() == ""
