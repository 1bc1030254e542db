import numpy
import pytest

from sitekit.core.alphabet import DNA, PROTEIN, BadIntError
from sitekit.core.alphabet_index import (
    GranthamAAChemicalDistance,
    SimpleScore,
    UserAlphabetIndex1,
)


def test_user_index():
    index = UserAlphabetIndex1(DNA, {"A": 1.5, 3: -1.0})
    assert index.get_index("A") == 1.5
    assert index.get_index("C") == 0.0
    assert index.index_vector().tolist() == [1.5, 0.0, 0.0, -1.0]
    index.set_index("G", 2.0)
    assert index.get_index(2) == 2.0


def test_user_index_unresolved():
    index = UserAlphabetIndex1(DNA)
    with pytest.raises(BadIntError):
        index.set_index("N", 1.0)


def test_simple_score():
    score = SimpleScore(PROTEIN, match=1.0, mismatch=-0.5)
    assert score.get_index("A", "A") == 1.0
    assert score.get_index("A", "V") == -0.5
    matrix = score.index_matrix()
    assert matrix.shape == (20, 20)
    assert numpy.trace(matrix) == 20.0
    assert score.is_symmetric()


def test_simple_score_generic_matrix():
    """the base class matrix agrees with the specialised one"""
    score = SimpleScore(DNA, match=2.0, mismatch=0.0)
    generic = super(SimpleScore, score).index_matrix()
    numpy.testing.assert_array_equal(generic, score.index_matrix())


@pytest.mark.parametrize(
    "aa1,aa2,expect",
    [("S", "R", 110), ("L", "I", 5), ("C", "W", 215), ("D", "E", 45), ("M", "W", 67)],
)
def test_grantham_values(aa1, aa2, expect):
    grantham = GranthamAAChemicalDistance()
    assert grantham.get_index(aa1, aa2) == expect
    assert grantham.get_index(aa2, aa1) == expect


def test_grantham_symmetric():
    grantham = GranthamAAChemicalDistance()
    matrix = grantham.index_matrix()
    assert matrix.shape == (20, 20)
    assert grantham.is_symmetric()
    numpy.testing.assert_array_equal(matrix, matrix.T)
    numpy.testing.assert_array_equal(numpy.diag(matrix), numpy.zeros(20))
    # every pair off the diagonal has a published distance
    assert (matrix + numpy.eye(20) > 0).all()
    assert matrix.max() == 215
    assert matrix[matrix > 0].min() == 5


@pytest.mark.parametrize("sign", ["arbitrary", "pc1"])
def test_grantham_signed(sign):
    grantham = GranthamAAChemicalDistance(sign=sign)
    assert not grantham.is_symmetric()
    matrix = grantham.index_matrix()
    numpy.testing.assert_array_equal(matrix, -matrix.T)
    numpy.testing.assert_array_equal(
        numpy.abs(matrix), GranthamAAChemicalDistance().index_matrix()
    )


def test_grantham_arbitrary_sign_follows_alphabet_order():
    grantham = GranthamAAChemicalDistance()
    grantham.set_symmetric(False)
    assert grantham.sign == "arbitrary"
    assert grantham.get_index("A", "R") == 112
    assert grantham.get_index("R", "A") == -112
    grantham.set_symmetric(True)
    assert grantham.get_index("R", "A") == 112


def test_grantham_pc1_sign():
    """hydrophobic leucine lies above acidic aspartate on the first axis"""
    grantham = GranthamAAChemicalDistance()
    grantham.set_pc1_sign(True)
    assert grantham.sign == "pc1"
    assert grantham.get_index("D", "L") == 172
    assert grantham.get_index("L", "D") == -172


def test_grantham_invalid():
    with pytest.raises(ValueError):
        GranthamAAChemicalDistance(sign="both")
    with pytest.raises(BadIntError):
        GranthamAAChemicalDistance().get_index("X", "A")
