import json

import pytest

from sitekit.core.alphabet import DNA
from sitekit.core.container import VectorSiteContainer
from sitekit.core.sequence import Sequence
from sitekit.util.deserialise import (
    deserialise_object,
    get_class,
    register_deserialiser,
)


def test_from_dict_and_string():
    seq = Sequence("s1", "ACG", alphabet=DNA)
    from_dict = deserialise_object(seq.to_rich_dict())
    from_str = deserialise_object(seq.to_json())
    assert from_dict.to_string() == from_str.to_string() == "ACG"


def test_from_path(tmp_path, dna_aln):
    path = tmp_path / "aln.json"
    path.write_text(dna_aln.to_json())
    got = deserialise_object(path)
    assert isinstance(got, VectorSiteContainer)
    assert got.sequence("seq3").to_string() == "AC-TN"
    got = deserialise_object(str(path))
    assert got.num_sites == 5


def test_untyped_returned_as_is():
    assert deserialise_object({"a": 1}) == {"a": 1}
    assert deserialise_object(json.dumps([1, 2])) == [1, 2]


def test_unknown_type():
    with pytest.raises(NotImplementedError):
        deserialise_object({"type": "sitekit.core.alphabet.NoSuchThing"})
    with pytest.raises(NotImplementedError):
        deserialise_object({"type": "no_such_module.Thing"})


def test_register_duplicate():
    with pytest.raises(ValueError):
        register_deserialiser("sitekit.core.sequence.Sequence")


def test_register_non_string():
    with pytest.raises(TypeError):
        register_deserialiser(Sequence)


def test_get_class():
    assert get_class("sitekit.core.sequence.Sequence") is Sequence
    with pytest.raises(ValueError):
        get_class("Sequence")
