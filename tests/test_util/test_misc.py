import numpy
import pytest

from sitekit.core.alphabet import DNA, StateAlphabet
from sitekit.util.misc import (
    DimensionError,
    IndexOutOfBoundsError,
    check_index,
    get_object_provenance,
)


@pytest.mark.parametrize("index", [0, 2, numpy.int64(1)])
def test_check_index(index):
    assert check_index(index, 3, "test") == int(index)


@pytest.mark.parametrize("index", [-1, 3, 10])
def test_check_index_out_of_bounds(index):
    with pytest.raises(IndexOutOfBoundsError) as err:
        check_index(index, 3, "test")
    assert err.value.index == index
    assert (err.value.lower, err.value.upper) == (0, 2)
    assert "test" in str(err.value)


def test_check_index_type():
    with pytest.raises(TypeError):
        check_index(1.0, 3, "test")


def test_exceptions_hierarchy():
    assert issubclass(IndexOutOfBoundsError, IndexError)
    assert issubclass(DimensionError, ValueError)


def test_get_object_provenance():
    assert get_object_provenance(StateAlphabet) == "sitekit.core.alphabet.StateAlphabet"
    assert get_object_provenance(DNA) == "sitekit.core.alphabet.NucleicAlphabet"
    assert get_object_provenance(1) == "int"
