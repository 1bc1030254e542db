import pytest

import sitekit
from sitekit.core.container import VectorSiteContainer


def test_version():
    assert isinstance(sitekit.__version__, str)


def test_lazy_attributes():
    assert sitekit.DNA.alphabet_type == "DNA"
    assert sitekit.get_code(1).name == "Standard Nuclear"
    with pytest.raises(AttributeError):
        sitekit.not_an_attribute


def test_make_aligned():
    aln = sitekit.make_aligned({"a": "ACGT", "b": "ACGA", "c": "ACTT"})
    assert isinstance(aln, VectorSiteContainer)
    assert (aln.num_sites, aln.num_sequences) == (4, 3)
    assert aln.site(2).to_string() == "GGT"
    assert aln.sequence("b").to_string() == "ACGA"


def test_make_aligned_protein():
    aln = sitekit.make_aligned({"a": "MK", "b": "ML"}, alphabet="protein")
    assert aln.alphabet is sitekit.PROTEIN
