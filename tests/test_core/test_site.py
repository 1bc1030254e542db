import pytest

from sitekit.core.alphabet import DNA, PROTEIN
from sitekit.core.site import ProbabilisticSite, Site
from sitekit.util.deserialise import deserialise_object


def test_site_basics():
    site = Site("ACG", alphabet=DNA, coordinate=5)
    assert site.coordinate == 5
    assert len(site) == 3
    assert site.to_string() == "ACG"
    assert repr(site) == "Site('ACG', coordinate=5)"


def test_default_coordinate():
    assert Site(alphabet=PROTEIN).coordinate == 0


def test_copy_keeps_coordinate():
    site = Site("AC", alphabet=DNA, coordinate=3)
    new = site.copy()
    new.coordinate = 4
    new[0] = "T"
    assert site.coordinate == 3
    assert site.to_string() == "AC"


@pytest.mark.parametrize(
    "site",
    [
        Site("AC-N", alphabet=DNA, coordinate=7),
        ProbabilisticSite([[0.25] * 4, [1, 0, 0, 0]], alphabet=DNA, coordinate=2),
    ],
)
def test_roundtrip_json(site):
    got = deserialise_object(site.to_json())
    assert type(got) is type(site)
    assert got.coordinate == site.coordinate
    assert got.get_content().tolist() == site.get_content().tolist()
