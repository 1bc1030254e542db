import gc

import pytest

from sitekit.core.alphabet import DNA
from sitekit.core.container import VectorSiteContainer
from sitekit.core.sequence import Sequence
from sitekit.core.site import Site


@pytest.fixture
def dna_seqs() -> list[Sequence]:
    return [
        Sequence("seq1", "ACGTA", alphabet=DNA),
        Sequence("seq2", "ACGTT", alphabet=DNA),
        Sequence("seq3", "AC-TN", alphabet=DNA),
    ]


@pytest.fixture
def dna_aln(dna_seqs) -> VectorSiteContainer:
    return VectorSiteContainer.from_sequences(dna_seqs, alphabet=DNA)


@pytest.fixture
def dna_sites() -> list[Site]:
    """3 sites of 2 sequences, coordinates 1 to 3"""
    return [
        Site("AC", alphabet=DNA, coordinate=1),
        Site("GT", alphabet=DNA, coordinate=2),
        Site("AA", alphabet=DNA, coordinate=3),
    ]


@pytest.fixture(scope="session", autouse=True)
def _try_cleaning_up_on_autouse_fixture_teardown():
    yield
    for _ in range(10):
        gc.collect()
