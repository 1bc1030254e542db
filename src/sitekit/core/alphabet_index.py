"""numerical properties of the resolved states of an alphabet"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

import numpy
import numpy.typing as npt

from sitekit.core.alphabet import PROTEIN, StateAlphabet

FloatArrayType = npt.NDArray[numpy.float64]


class AlphabetIndex1(ABC):
    """a value for each resolved state"""

    @property
    @abstractmethod
    def alphabet(self) -> StateAlphabet: ...

    @abstractmethod
    def get_index(self, state: int | str) -> float: ...

    def index_vector(self) -> FloatArrayType:
        """values ordered by state_index"""
        return numpy.array(
            [self.get_index(code) for code in self.alphabet.resolved_ints]
        )


class AlphabetIndex2(ABC):
    """a value for each pair of resolved states"""

    @property
    @abstractmethod
    def alphabet(self) -> StateAlphabet: ...

    @abstractmethod
    def get_index(self, state1: int | str, state2: int | str) -> float: ...

    def index_matrix(self) -> FloatArrayType:
        """values indexed by state_index in both dimensions"""
        codes = self.alphabet.resolved_ints
        return numpy.array([[self.get_index(a, b) for b in codes] for a in codes])

    def is_symmetric(self) -> bool:
        matrix = self.index_matrix()
        return bool(numpy.allclose(matrix, matrix.T))


class UserAlphabetIndex1(AlphabetIndex1):
    """user assigned values, initially zero

    Parameters
    ----------
    alphabet
        the states to score
    values
        initial values keyed by state code or letter
    """

    def __init__(
        self,
        alphabet: StateAlphabet,
        values: Mapping[int | str, float] | None = None,
    ) -> None:
        self._alphabet = alphabet
        self._values = numpy.zeros(alphabet.size, dtype=numpy.float64)
        for state, value in (values or {}).items():
            self.set_index(state, value)

    @property
    def alphabet(self) -> StateAlphabet:
        return self._alphabet

    def get_index(self, state: int | str) -> float:
        return float(self._values[self._alphabet.state_index(state)])

    def set_index(self, state: int | str, value: float) -> None:
        self._values[self._alphabet.state_index(state)] = value

    def index_vector(self) -> FloatArrayType:
        return self._values.copy()


class SimpleScore(AlphabetIndex2):
    """match scores for identical states, mismatch otherwise"""

    def __init__(self, alphabet: StateAlphabet, match: float, mismatch: float) -> None:
        self._alphabet = alphabet
        self.match = match
        self.mismatch = mismatch

    @property
    def alphabet(self) -> StateAlphabet:
        return self._alphabet

    def get_index(self, state1: int | str, state2: int | str) -> float:
        index1 = self._alphabet.state_index(state1)
        index2 = self._alphabet.state_index(state2)
        return self.match if index1 == index2 else self.mismatch

    def index_matrix(self) -> FloatArrayType:
        size = self._alphabet.size
        matrix = numpy.full((size, size), self.mismatch, dtype=numpy.float64)
        numpy.fill_diagonal(matrix, self.match)
        return matrix


# published amino acid order, each row holds the distances to the later ones
_GRANTHAM_ORDER = "SRLPTAVGIFYCHQNKDEMW"
_GRANTHAM_UPPER = (
    (110, 145, 74, 58, 99, 124, 56, 142, 155, 144,
     112, 89, 68, 46, 121, 65, 80, 135, 177),
    (102, 103, 71, 112, 96, 125, 97, 97, 77, 180, 29, 43, 86, 26, 96, 54, 91, 101),
    (98, 92, 96, 32, 138, 5, 22, 36, 198, 99, 113, 153, 107, 172, 138, 15, 61),
    (38, 27, 68, 42, 95, 114, 110, 169, 77, 76, 91, 103, 108, 93, 87, 147),
    (58, 69, 59, 89, 103, 92, 149, 47, 42, 65, 78, 85, 65, 81, 128),
    (64, 60, 94, 113, 112, 195, 86, 91, 111, 106, 126, 107, 84, 148),
    (109, 29, 50, 55, 192, 84, 96, 133, 97, 152, 121, 21, 88),
    (135, 153, 147, 159, 98, 87, 80, 127, 94, 98, 127, 184),
    (21, 33, 198, 94, 109, 149, 102, 168, 134, 10, 61),
    (22, 205, 100, 116, 158, 102, 177, 140, 28, 40),
    (194, 83, 99, 143, 85, 160, 122, 36, 37),
    (174, 154, 139, 202, 154, 170, 196, 215),
    (24, 68, 32, 81, 40, 87, 115),
    (46, 53, 61, 29, 101, 130),
    (94, 23, 42, 142, 174),
    (101, 56, 95, 110),
    (45, 160, 181),
    (126, 152),
    (67,),
)

# composition, polarity, volume
_GRANTHAM_PROPERTIES = {
    "A": (0.0, 8.1, 31.0),
    "R": (0.65, 10.5, 124.0),
    "N": (1.33, 11.6, 56.0),
    "D": (1.38, 13.0, 54.0),
    "C": (2.75, 5.5, 55.0),
    "Q": (0.89, 10.5, 85.0),
    "E": (0.92, 12.3, 83.0),
    "G": (0.74, 9.0, 3.0),
    "H": (0.58, 10.4, 96.0),
    "I": (0.0, 5.2, 111.0),
    "L": (0.0, 4.9, 111.0),
    "K": (0.33, 11.3, 119.0),
    "M": (0.0, 5.7, 105.0),
    "F": (0.0, 5.2, 132.0),
    "P": (0.39, 8.0, 32.5),
    "S": (1.42, 9.2, 32.0),
    "T": (0.71, 8.6, 61.0),
    "W": (0.13, 5.4, 170.0),
    "Y": (0.20, 6.2, 136.0),
    "V": (0.0, 5.9, 84.0),
}


def _grantham_distances() -> FloatArrayType:
    size = PROTEIN.size
    matrix = numpy.zeros((size, size), dtype=numpy.float64)
    index = [PROTEIN.state_index(aa) for aa in _GRANTHAM_ORDER]
    for row, values in enumerate(_GRANTHAM_UPPER):
        i = index[row]
        for col, value in enumerate(values, start=row + 1):
            j = index[col]
            matrix[i, j] = matrix[j, i] = value
    return matrix


def _grantham_pc1() -> FloatArrayType:
    """coordinates of the amino acids on the first principal axis of their
    standardised composition, polarity and volume, oriented by volume"""
    props = numpy.array(
        [_GRANTHAM_PROPERTIES[PROTEIN.int_to_char(c)] for c in PROTEIN.resolved_ints]
    )
    scaled = (props - props.mean(axis=0)) / props.std(axis=0)
    _, vectors = numpy.linalg.eigh(numpy.corrcoef(scaled, rowvar=False))
    axis = vectors[:, -1]
    if axis[2] < 0:
        axis = -axis
    return scaled @ axis


class GranthamAAChemicalDistance(AlphabetIndex2):
    """Grantham (1974) amino acid chemical distance

    Grantham, R. Amino acid difference formula to help explain protein
    evolution. Science 185, 862-864 (1974). AAindex2 accession GRAR740104.

    Parameters
    ----------
    sign
        'none' for the symmetric distance. 'arbitrary' makes the distance
        positive when the first state precedes the second in the alphabet
        and negative otherwise. 'pc1' uses the sign of the difference between
        the coordinates of the second and first states on the first axis of
        a principal component analysis of composition, polarity and volume.
    """

    _signs = ("none", "arbitrary", "pc1")

    def __init__(self, sign: str = "none") -> None:
        self._distances = _grantham_distances()
        self._sign = "none"
        self._matrix = self._distances
        self.set_sign(sign)

    @property
    def alphabet(self) -> StateAlphabet:
        return PROTEIN

    @property
    def sign(self) -> str:
        return self._sign

    def set_sign(self, sign: str) -> None:
        if sign not in self._signs:
            msg = f"sign must be one of {self._signs}, not {sign!r}"
            raise ValueError(msg)
        if sign == "none":
            signs = numpy.ones_like(self._distances)
        else:
            order = (
                numpy.arange(PROTEIN.size, dtype=numpy.float64)
                if sign == "arbitrary"
                else _grantham_pc1()
            )
            signs = numpy.sign(order[None, :] - order[:, None])
        self._sign = sign
        self._matrix = self._distances * signs

    def set_symmetric(self, symmetric: bool) -> None:
        self.set_sign("none" if symmetric else "arbitrary")

    def set_pc1_sign(self, pc1: bool) -> None:
        self.set_sign("pc1" if pc1 else "arbitrary")

    def is_symmetric(self) -> bool:
        return self._sign == "none"

    def get_index(self, state1: int | str, state2: int | str) -> float:
        index1 = PROTEIN.state_index(state1)
        index2 = PROTEIN.state_index(state2)
        return float(self._matrix[index1, index2])

    def index_matrix(self) -> FloatArrayType:
        return self._matrix.copy()
