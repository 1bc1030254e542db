from __future__ import annotations

import dataclasses
import functools
import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from collections.abc import Sequence as PySeq
from typing import Any

import numpy
import numpy.typing as npt
from typing_extensions import Self

from sitekit.util.deserialise import register_deserialiser
from sitekit.util.misc import get_object_provenance

NumpyIntArrayType = npt.NDArray[numpy.integer]

GAP_CODE = -1
CODE_DTYPE = numpy.int32


class AlphabetError(ValueError): ...


class BadCharError(AlphabetError, KeyError):
    """a state string that is not declared in an alphabet"""

    def __init__(self, char: str, alphabet_type: str, detail: str = "") -> None:
        self.char = char
        msg = f"{char!r} is not a state of {alphabet_type}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class BadIntError(AlphabetError, KeyError):
    """an integer code that is not declared in an alphabet, or is of the wrong kind"""

    def __init__(self, code: int, alphabet_type: str, detail: str = "") -> None:
        self.code = code
        msg = f"{code!r} is not a valid code of {alphabet_type}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class AlphabetMismatchError(AlphabetError, TypeError):
    """two objects that must share an alphabet do not"""

    def __init__(self, context: str, first: AlphabetABC, second: AlphabetABC) -> None:
        msg = f"{context}: {first.alphabet_type!r} != {second.alphabet_type!r}"
        super().__init__(msg)


@dataclasses.dataclass(frozen=True, slots=True)
class AlphabetState:
    """one entry of an alphabet table"""

    num: int
    letter: str
    name: str


class AlphabetABC(ABC):
    """contract shared by every alphabet

    An alphabet maps state strings of fixed width to integer codes. Codes of
    resolved states index likelihood vectors via ``state_index``.
    """

    @property
    @abstractmethod
    def alphabet_type(self) -> str: ...

    @property
    @abstractmethod
    def size(self) -> int: ...

    @property
    @abstractmethod
    def state_coding_size(self) -> int: ...

    @property
    @abstractmethod
    def unknown_code(self) -> int: ...

    @abstractmethod
    def char_to_int(self, state: str) -> int: ...

    @abstractmethod
    def int_to_char(self, code: int) -> str: ...

    @abstractmethod
    def is_resolved_in(self, state1: int, state2: int) -> bool: ...

    @abstractmethod
    def get_alias(self, state: int) -> list[int]: ...

    @abstractmethod
    def get_generic(self, states: Iterable[int]) -> int: ...

    @property
    def gap_code(self) -> int:
        return GAP_CODE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlphabetABC):
            return NotImplemented
        return self.alphabet_type == other.alphabet_type

    def __hash__(self) -> int:
        return hash(self.alphabet_type)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.alphabet_type!r}, size={self.size})"


class StateAlphabet(AlphabetABC):
    """a table driven alphabet

    Parameters
    ----------
    states
        the table entries. Several letters may share a code, the first
        registered letter is the canonical one.
    alphabet_type
        identifies the alphabet, alphabets with equal types are equal
    unknown_code
        code of the fully ambiguous state
    generics
        maps the code of each partially ambiguous state to the resolved codes
        it stands for
    case_sensitive
        whether letters are matched exactly

    Notes
    -----
    Resolved states are every declared code that is not the gap, the unknown
    state or a generic.
    """

    def __init__(
        self,
        states: Iterable[AlphabetState],
        *,
        alphabet_type: str,
        unknown_code: int,
        generics: dict[int, Iterable[int]] | None = None,
        case_sensitive: bool = False,
    ) -> None:
        self._alphabet_type = alphabet_type
        self._case_sensitive = case_sensitive
        self._unknown_code = unknown_code
        self._states: list[AlphabetState] = []
        self._char_to_int: dict[str, int] = {}
        self._int_to_state: dict[int, AlphabetState] = {}
        coding_size = None
        for state in states:
            if coding_size is None:
                coding_size = len(state.letter)
            elif len(state.letter) != coding_size:
                msg = f"state {state.letter!r} length does not match {coding_size}"
                raise AlphabetError(msg)
            key = self._normalise(state.letter)
            if key in self._char_to_int:
                msg = f"duplicated letter {state.letter!r}"
                raise AlphabetError(msg)
            self._char_to_int[key] = state.num
            self._int_to_state.setdefault(state.num, state)
            self._states.append(state)

        if unknown_code not in self._int_to_state:
            msg = f"unknown code {unknown_code} is not a declared state"
            raise AlphabetError(msg)

        self._coding_size = coding_size or 1
        generics = generics or {}
        self._generics = {
            code: tuple(sorted(members)) for code, members in generics.items()
        }
        self._resolved = tuple(
            sorted(
                num
                for num in self._int_to_state
                if num not in (GAP_CODE, unknown_code) and num not in self._generics
            ),
        )
        self._state_index = {code: i for i, code in enumerate(self._resolved)}
        self._all_codes = numpy.array(sorted(self._int_to_state), dtype=CODE_DTYPE)

    def _normalise(self, letter: str) -> str:
        return letter if self._case_sensitive else letter.upper()

    @property
    def alphabet_type(self) -> str:
        return self._alphabet_type

    @property
    def size(self) -> int:
        """number of resolved states"""
        return len(self._resolved)

    def __len__(self) -> int:
        return self.size

    @property
    def num_types(self) -> int:
        """number of distinct non-gap codes"""
        return len(self._int_to_state) - (GAP_CODE in self._int_to_state)

    @property
    def state_coding_size(self) -> int:
        return self._coding_size

    @property
    def unknown_code(self) -> int:
        return self._unknown_code

    @property
    def gap_char(self) -> str:
        return self.int_to_char(GAP_CODE)

    @property
    def unknown_char(self) -> str:
        return self.int_to_char(self._unknown_code)

    @property
    def resolved_ints(self) -> tuple[int, ...]:
        return self._resolved

    @property
    def resolved_chars(self) -> tuple[str, ...]:
        return tuple(self.int_to_char(code) for code in self._resolved)

    @property
    def all_ints(self) -> NumpyIntArrayType:
        """every declared code, sorted"""
        return self._all_codes

    @property
    def states(self) -> tuple[AlphabetState, ...]:
        return tuple(self._states)

    def is_int_in_alphabet(self, code: int) -> bool:
        return code in self._int_to_state

    def is_char_in_alphabet(self, state: str) -> bool:
        return self._normalise(state) in self._char_to_int

    def char_to_int(self, state: str) -> int:
        try:
            return self._char_to_int[self._normalise(state)]
        except (KeyError, AttributeError):
            raise BadCharError(state, self.alphabet_type) from None

    def int_to_char(self, code: int) -> str:
        try:
            return self._int_to_state[code].letter
        except (KeyError, TypeError):
            raise BadIntError(code, self.alphabet_type) from None

    def get_name(self, state: int | str) -> str:
        code = self._as_code(state)
        return self._int_to_state[code].name

    def _as_code(self, state: int | str) -> int:
        if isinstance(state, str):
            return self.char_to_int(state)
        code = int(state)
        if code not in self._int_to_state:
            raise BadIntError(code, self.alphabet_type)
        return code

    def is_gap(self, state: int | str) -> bool:
        return self._as_code(state) == GAP_CODE

    def is_unresolved(self, state: int | str) -> bool:
        """True for generic and unknown states"""
        code = self._as_code(state)
        return code == self._unknown_code or code in self._generics

    def is_resolved(self, state: int | str) -> bool:
        return self._as_code(state) in self._state_index

    def get_alias(self, state: int) -> list[int]:
        """returns the resolved codes state stands for

        Notes
        -----
        The gap returns itself.
        """
        code = self._as_code(state)
        if code == GAP_CODE:
            return [GAP_CODE]
        if code == self._unknown_code:
            return list(self._resolved)
        if code in self._generics:
            return list(self._generics[code])
        return [code]

    def get_alias_chars(self, state: str) -> list[str]:
        return [self.int_to_char(c) for c in self.get_alias(self.char_to_int(state))]

    def is_resolved_in(self, state1: int, state2: int) -> bool:
        """whether resolved state2 is one of the states state1 stands for

        Raises
        ------
        BadIntError
            if state2 is not a resolved state
        """
        code1 = self._as_code(state1)
        code2 = self._as_code(state2)
        if code2 not in self._state_index:
            raise BadIntError(code2, self.alphabet_type, "is not a resolved state")
        if code1 == GAP_CODE:
            return False
        return code2 in self.get_alias(code1)

    @functools.cached_property
    def _alias_to_generic(self) -> dict[frozenset[int], int]:
        lookup = {frozenset((code,)): code for code in self._resolved}
        for code, members in self._generics.items():
            lookup.setdefault(frozenset(members), code)
        lookup[frozenset(self._resolved)] = self._unknown_code
        return lookup

    def get_generic(self, states: Iterable[int]) -> int:
        """returns the most specific code that covers all of states

        Notes
        -----
        Gaps are ignored unless they are the only state.
        """
        codes = [self._as_code(s) for s in states]
        if not codes:
            msg = "no states provided"
            raise AlphabetError(msg)
        members: set[int] = set()
        for code in codes:
            if code != GAP_CODE:
                members.update(self.get_alias(code))
        if not members:
            return GAP_CODE
        key = frozenset(members)
        if key in self._alias_to_generic:
            return self._alias_to_generic[key]
        candidates = [
            (len(alias), code)
            for alias, code in self._alias_to_generic.items()
            if key <= alias
        ]
        return min(candidates)[1]

    def state_index(self, state: int | str) -> int:
        """dense position of a resolved state, used to index likelihood vectors"""
        code = self._as_code(state)
        try:
            return self._state_index[code]
        except KeyError:
            raise BadIntError(
                code, self.alphabet_type, "is not a resolved state"
            ) from None

    def state_at(self, index: int) -> int:
        """code of the resolved state at dense position index"""
        if not 0 <= index < self.size:
            msg = f"state index {index} not in [0, {self.size - 1}]"
            raise IndexError(msg)
        return self._resolved[index]

    def to_indices(self, seq: str | PySeq[str]) -> NumpyIntArrayType:
        """encodes seq, a string is split into states of state_coding_size"""
        if isinstance(seq, str):
            width = self._coding_size
            if len(seq) % width:
                msg = f"length {len(seq)} is not a multiple of {width}"
                raise BadCharError(seq, self.alphabet_type, msg)
            seq = [seq[i : i + width] for i in range(0, len(seq), width)]
        return numpy.array([self.char_to_int(s) for s in seq], dtype=CODE_DTYPE)

    def from_indices(self, seq: Iterable[int]) -> str:
        return "".join(self.int_to_char(int(c)) for c in seq)

    def validate_codes(self, codes: NumpyIntArrayType) -> None:
        """raises BadIntError for the first code not in the alphabet"""
        valid = numpy.isin(codes, self._all_codes)
        if not valid.all():
            bad = int(codes[numpy.argmin(valid)])
            raise BadIntError(bad, self.alphabet_type)

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(StateAlphabet),
            "alphabet_type": self.alphabet_type,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_rich_dict())


class NucleicAlphabet(StateAlphabet):
    """DNA or RNA with the IUPAC ambiguity codes"""

    def __init__(self, alphabet_type: str, fourth: str) -> None:
        names = {
            "A": "Adenine",
            "C": "Cytosine",
            "G": "Guanine",
            "T": "Thymine",
            "U": "Uracile",
        }
        bases = "ACG" + fourth
        states = [
            AlphabetState(GAP_CODE, "-", "Gap"),
            AlphabetState(GAP_CODE, ".", "Gap"),
        ]
        states.extend(AlphabetState(i, b, names[b]) for i, b in enumerate(bases))
        generics = {}
        for offset, (letter, members) in enumerate(_IUPAC_GENERICS):
            members = members.replace("T", fourth)
            code = 4 + offset
            generics[code] = [bases.index(m) for m in members]
            states.append(AlphabetState(code, letter, " or ".join(members)))
        states.extend(AlphabetState(14, c, "Unresolved base") for c in "NXO0?")
        super().__init__(
            states,
            alphabet_type=alphabet_type,
            unknown_code=14,
            generics=generics,
        )
        self._complement = self._make_complement()

    def _make_complement(self) -> dict[int, int]:
        pair = {0: 3, 1: 2, 2: 1, 3: 0}
        result = {GAP_CODE: GAP_CODE, self.unknown_code: self.unknown_code}
        for code in self.all_ints.tolist():
            if code in result:
                continue
            result[code] = self.get_generic([pair[m] for m in self.get_alias(code)])
        return result

    def complement(self, state: int) -> int:
        return self._complement[self._as_code(state)]


_IUPAC_GENERICS = (
    ("M", "AC"),
    ("R", "AG"),
    ("W", "AT"),
    ("S", "CG"),
    ("Y", "CT"),
    ("K", "GT"),
    ("V", "ACG"),
    ("H", "ACT"),
    ("D", "AGT"),
    ("B", "CGT"),
)

_AMINO_ACIDS = (
    ("A", "Alanine"),
    ("R", "Arginine"),
    ("N", "Asparagine"),
    ("D", "Asparatic Acid"),
    ("C", "Cysteine"),
    ("Q", "Glutamine"),
    ("E", "Glutamic Acid"),
    ("G", "Glycine"),
    ("H", "Histidine"),
    ("I", "Isoleucine"),
    ("L", "Leucine"),
    ("K", "Lysine"),
    ("M", "Methionine"),
    ("F", "Phenylalanine"),
    ("P", "Proline"),
    ("S", "Serine"),
    ("T", "Threonine"),
    ("W", "Tryptophan"),
    ("Y", "Tyrosine"),
    ("V", "Valine"),
)


def _make_protein() -> StateAlphabet:
    states = [
        AlphabetState(GAP_CODE, "-", "Gap"),
        AlphabetState(GAP_CODE, ".", "Gap"),
    ]
    states.extend(AlphabetState(i, l, n) for i, (l, n) in enumerate(_AMINO_ACIDS))
    states.extend(
        [
            AlphabetState(20, "B", "N or D"),
            AlphabetState(21, "Z", "Q or E"),
            AlphabetState(22, "J", "I or L"),
            AlphabetState(23, "X", "Unresolved amino acid"),
            AlphabetState(23, "?", "Unresolved amino acid"),
        ],
    )
    letters = [l for l, _ in _AMINO_ACIDS]
    generics = {
        20: [letters.index("N"), letters.index("D")],
        21: [letters.index("Q"), letters.index("E")],
        22: [letters.index("I"), letters.index("L")],
    }
    return StateAlphabet(
        states,
        alphabet_type="Proteic",
        unknown_code=23,
        generics=generics,
    )


def _make_binary() -> StateAlphabet:
    states = [
        AlphabetState(GAP_CODE, "-", "Gap"),
        AlphabetState(0, "0", "Zero"),
        AlphabetState(1, "1", "One"),
        AlphabetState(2, "?", "Unknown"),
    ]
    return StateAlphabet(states, alphabet_type="Binary", unknown_code=2)


class CodonAlphabet(StateAlphabet):
    """the 64 triplets of a nucleic alphabet

    Codon codes are ``16 * n1 + 4 * n2 + n3`` for resolved nucleotides, any
    triplet holding an ambiguity or a partial gap decodes to the unknown state.
    """

    def __init__(self, nucleic: NucleicAlphabet) -> None:
        self._nucleic = nucleic
        bases = nucleic.resolved_chars
        states = [AlphabetState(GAP_CODE, "---", "Gap")]
        code = 0
        for b1 in bases:
            for b2 in bases:
                for b3 in bases:
                    states.append(AlphabetState(code, b1 + b2 + b3, b1 + b2 + b3))
                    code += 1
        states.append(AlphabetState(64, "NNN", "Unresolved codon"))
        super().__init__(
            states,
            alphabet_type=f"Codon(letter={nucleic.alphabet_type})",
            unknown_code=64,
        )

    @property
    def nucleic_alphabet(self) -> NucleicAlphabet:
        return self._nucleic

    def char_to_int(self, state: str) -> int:
        if not isinstance(state, str) or len(state) != 3:
            raise BadCharError(state, self.alphabet_type, "codons have length 3")
        if self.is_char_in_alphabet(state):
            return super().char_to_int(state)
        try:
            codes = [self._nucleic.char_to_int(c) for c in state]
        except BadCharError:
            raise BadCharError(state, self.alphabet_type) from None
        return self.get_codon(*codes)

    def get_codon(self, pos1: int, pos2: int, pos3: int) -> int:
        """codon code from three nucleotide codes"""
        codes = (pos1, pos2, pos3)
        if all(c == GAP_CODE for c in codes):
            return GAP_CODE
        if any(not self._nucleic.is_resolved(c) for c in codes):
            return self.unknown_code
        return 16 * pos1 + 4 * pos2 + pos3

    def get_n_position(self, codon: int, pos: int) -> int:
        """nucleotide code at position pos (0, 1 or 2) of codon"""
        if pos not in (0, 1, 2):
            msg = f"codon position {pos} not in [0, 2]"
            raise IndexError(msg)
        code = self._as_code(codon)
        if code == GAP_CODE:
            return GAP_CODE
        if code == self.unknown_code:
            return self._nucleic.unknown_code
        return (code >> (2 * (2 - pos))) & 3

    def get_positions(self, codon: int) -> tuple[int, int, int]:
        return tuple(self.get_n_position(codon, i) for i in range(3))

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(CodonAlphabet),
            "nucleic": self._nucleic.alphabet_type,
        }


DNA = NucleicAlphabet("DNA", "T")
RNA = NucleicAlphabet("RNA", "U")
PROTEIN = _make_protein()
BINARY = _make_binary()
CODON_DNA = CodonAlphabet(DNA)
CODON_RNA = CodonAlphabet(RNA)

_alphabets: dict[str, StateAlphabet] = {
    "dna": DNA,
    "rna": RNA,
    "protein": PROTEIN,
    "binary": BINARY,
    "codon": CODON_DNA,
    "codon_rna": CODON_RNA,
}


def available_alphabets() -> list[str]:
    """names accepted by get_alphabet"""
    return list(_alphabets)


def get_alphabet(name: str | AlphabetABC) -> AlphabetABC:
    """returns the shared alphabet instance

    Parameters
    ----------
    name
        one of available_alphabets() (case insensitive), an alphabet_type
        such as ``"Codon(letter=DNA)"``, or an alphabet which is returned as is
    """
    if isinstance(name, AlphabetABC):
        return name
    key = name.lower()
    if key in _alphabets:
        return _alphabets[key]
    for alpha in _alphabets.values():
        if alpha.alphabet_type == name:
            return alpha
    msg = f"unknown alphabet {name!r}, choose from {available_alphabets()}"
    raise ValueError(msg)


@register_deserialiser(
    get_object_provenance(StateAlphabet),
    get_object_provenance(NucleicAlphabet),
)
def deserialise_state_alphabet(data: dict) -> StateAlphabet:
    return get_alphabet(data["alphabet_type"])


@register_deserialiser(get_object_provenance(CodonAlphabet))
def deserialise_codon_alphabet(data: dict) -> CodonAlphabet:
    nucleic = get_alphabet(data["nucleic"])
    return CodonAlphabet(nucleic)
